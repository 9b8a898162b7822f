"""Repositories for Lead and OwnerPlan entities."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, or_
from sqlmodel import select

from src.leadflow.models import Enrollment, EnrollmentStatus, Lead, OwnerPlan, PlanTier
from src.leadflow.repositories.base import BaseRepository


def _no_active_enrollment():
    return ~exists().where(
        Enrollment.lead_id == Lead.id,
        Enrollment.status == EnrollmentStatus.ACTIVE.value,
    )


class LeadRepository(BaseRepository[Lead]):
    """Repository for CRM leads."""

    model = Lead

    async def list_unenrolled(
        self,
        limit: int,
        owner_ids: set[UUID] | None = None,
        statuses: set[str] | None = None,
        niches: set[str] | None = None,
    ) -> list[Lead]:
        """Leads with no active enrollment in any workflow.

        Args:
            limit: Batch size
            owner_ids: Only leads of these owners
            statuses: Narrow to leads in one of these contact statuses...
            niches: ...or in one of these niches. Both None means no narrowing.

        Most recently updated leads come first.
        """
        query = select(Lead).where(_no_active_enrollment())
        if owner_ids is not None:
            query = query.where(Lead.owner_id.in_(owner_ids))  # type: ignore[attr-defined]
        if statuses is not None or niches is not None:
            clauses = []
            if statuses:
                clauses.append(Lead.contact_status.in_(statuses))  # type: ignore[attr-defined]
            if niches:
                clauses.append(Lead.niche.in_(niches))  # type: ignore[union-attr]
            if not clauses:
                return []
            query = query.where(or_(*clauses))
        query = query.order_by(Lead.updated_at.desc(), Lead.id).limit(limit)  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_inactive(
        self,
        cutoff: datetime,
        statuses: list[str],
        limit: int,
    ) -> list[Lead]:
        """Engaged leads not contacted since cutoff and not in any active enrollment.

        Never-contacted leads come first, then the longest-quiet ones.
        """
        result = await self.session.execute(
            select(Lead)
            .where(
                Lead.contact_status.in_(statuses),  # type: ignore[attr-defined]
                or_(
                    Lead.last_contacted_at.is_(None),  # type: ignore[union-attr]
                    Lead.last_contacted_at < cutoff,  # type: ignore[operator]
                ),
                _no_active_enrollment(),
            )
            .order_by(Lead.last_contacted_at.asc().nulls_first(), Lead.id)  # type: ignore[union-attr]
            .limit(limit)
        )
        return list(result.scalars().all())


class OwnerPlanRepository(BaseRepository[OwnerPlan]):
    model = OwnerPlan

    async def get_tier(self, owner_id: UUID) -> str:
        """Owner's plan tier; owners without a plan row are treated as lite."""
        result = await self.session.execute(
            select(OwnerPlan.tier).where(OwnerPlan.owner_id == owner_id)
        )
        return result.scalar_one_or_none() or PlanTier.LITE.value
