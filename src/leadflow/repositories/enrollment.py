"""Repository for Enrollment entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select

from src.leadflow.models import Enrollment, EnrollmentStatus
from src.leadflow.repositories.base import BaseRepository

ACTIVE = EnrollmentStatus.ACTIVE.value
COMPLETED = EnrollmentStatus.COMPLETED.value


class EnrollmentRepository(BaseRepository[Enrollment]):
    """Repository for enrollments."""

    model = Enrollment

    async def get_active(
        self, lead_id: UUID, workflow_id: UUID, for_update: bool = False
    ) -> Enrollment | None:
        """Get the active enrollment of a lead in a workflow, if any."""
        query = select(Enrollment).where(
            Enrollment.lead_id == lead_id,
            Enrollment.workflow_id == workflow_id,
            Enrollment.status == ACTIVE,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_active_for_lead(self, lead_id: UUID) -> Enrollment | None:
        """Get the lead's oldest active enrollment across all workflows."""
        result = await self.session.execute(
            select(Enrollment)
            .where(Enrollment.lead_id == lead_id, Enrollment.status == ACTIVE)
            .order_by(Enrollment.enrolled_at, Enrollment.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def has_active(self, lead_id: UUID) -> bool:
        return await self.get_active_for_lead(lead_id) is not None

    async def completed_workflow_ids(self, lead_id: UUID) -> set[UUID]:
        """Workflows the lead has already run to completion."""
        result = await self.session.execute(
            select(Enrollment.workflow_id).where(
                Enrollment.lead_id == lead_id,
                Enrollment.status == COMPLETED,
            )
        )
        return set(result.scalars().all())

    async def list_due_ids(self, now: datetime, limit: int) -> list[UUID]:
        """IDs of active enrollments whose next action is due, oldest first."""
        result = await self.session.execute(
            select(Enrollment.id)
            .where(
                Enrollment.status == ACTIVE,
                Enrollment.next_action_at.is_not(None),  # type: ignore[union-attr]
                Enrollment.next_action_at <= now,  # type: ignore[operator]
            )
            .order_by(Enrollment.next_action_at, Enrollment.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_active_for_lead(self, lead_id: UUID) -> list[Enrollment]:
        result = await self.session.execute(
            select(Enrollment)
            .where(Enrollment.lead_id == lead_id, Enrollment.status == ACTIVE)
            .order_by(Enrollment.enrolled_at, Enrollment.id)
        )
        return list(result.scalars().all())

    async def complete_past_step(self, workflow_id: UUID, last_order: int, now: datetime) -> int:
        """Complete active enrollments positioned after the workflow's last step.

        Returns the number of enrollments completed.
        """
        result = await self.session.execute(
            update(Enrollment)
            .where(
                Enrollment.workflow_id == workflow_id,
                Enrollment.status == ACTIVE,
                Enrollment.current_step_order > last_order,  # type: ignore[operator]
            )
            .values(status=COMPLETED, next_action_at=None, completed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
