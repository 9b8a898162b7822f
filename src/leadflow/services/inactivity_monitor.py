"""Re-engagement of leads that have gone quiet."""

import math
from datetime import datetime, timedelta
from uuid import UUID

from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import AlreadyEnrolledError, StoreUnavailableError, is_store_fault
from src.leadflow.core.logging import get_logger
from src.leadflow.models import Lead
from src.leadflow.repositories import EnrollmentRepository, LeadRepository
from src.leadflow.schemas.engine import PhaseResult
from src.leadflow.schemas.workflow import InactiveForDaysTrigger
from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.workflow_service import WorkflowDefinition, WorkflowService

logger = get_logger(__name__)

PHASE = "inactivity"

# Reported when a lead was never contacted
NEVER_CONTACTED_DAYS = 999


class SweepResult(PhaseResult):
    """Inactivity phase counters plus the enrollments it created."""

    enrollment_ids: list[UUID] = Field(default_factory=list)


def days_inactive(lead: Lead, now: datetime) -> int:
    if lead.last_contacted_at is None:
        return NEVER_CONTACTED_DAYS
    return math.floor((now - lead.last_contacted_at) / timedelta(days=1))


class InactivityMonitor:
    """Feeds quiet, engaged leads into inactive_for_days workflows."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        enrollment_service: EnrollmentService | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.lead_repo = LeadRepository(session)
        self.enrollment_repo = EnrollmentRepository(session)
        self.workflow_service = WorkflowService(session)
        self.enrollment_service = enrollment_service or EnrollmentService(
            session,
            self.settings,
            enrollment_repo=self.enrollment_repo,
            lead_repo=self.lead_repo,
            workflow_service=self.workflow_service,
        )

    async def sweep(
        self,
        now: datetime,
        threshold_days: int | None = None,
        limit: int | None = None,
    ) -> SweepResult:
        """Enroll engaged leads not contacted for threshold_days.

        The workflow is the owner's first active inactive_for_days workflow
        whose own day count the lead has reached and that the lead has not
        already completed.
        """
        threshold_days = threshold_days or self.settings.inactivity_threshold_days
        limit = limit or self.settings.inactivity_batch_size
        result = SweepResult()

        definitions = [
            d
            for d in await self.workflow_service.load_active_definitions()
            if isinstance(d.trigger, InactiveForDaysTrigger)
        ]
        if not definitions:
            logger.debug("No re-engagement workflows, skipping sweep")
            return result

        cutoff = now - timedelta(days=threshold_days)
        leads = await self.lead_repo.list_inactive(cutoff, self.settings.engaged_statuses, limit)
        # Batch rows are read-only snapshots; per-item rollbacks must not expire them
        self.session.expunge_all()

        for lead in leads:
            result.processed += 1
            inactive = days_inactive(lead, now)
            try:
                # Re-check: an earlier phase or a concurrent run may have enrolled it
                if await self.enrollment_repo.has_active(lead.id):
                    result.skipped += 1
                    continue
                completed = await self.enrollment_repo.completed_workflow_ids(lead.id)
                definition = self._pick_workflow(definitions, lead, inactive, exclude=completed)
                if definition is None:
                    result.skipped += 1
                    continue
                enrollment = await self.enrollment_service.enroll(
                    lead,
                    definition,
                    reason="inactivity",
                    now=now,
                    metadata={"days_inactive": inactive},
                )
            except AlreadyEnrolledError:
                result.skipped += 1
                continue
            except Exception as e:
                await self.session.rollback()
                if is_store_fault(e):
                    raise StoreUnavailableError(str(e)) from e
                logger.warning("Failed to enroll inactive lead", lead_id=str(lead.id), error=str(e))
                result.record_error(PHASE, str(e), lead.id)
                continue
            result.succeeded += 1
            result.enrollment_ids.append(enrollment.id)

        logger.info(
            "Inactivity sweep complete",
            candidates=result.processed,
            enrolled=result.succeeded,
            threshold_days=threshold_days,
        )
        return result

    @staticmethod
    def _pick_workflow(
        definitions: list[WorkflowDefinition],
        lead: Lead,
        inactive: int,
        exclude: set[UUID] | None = None,
    ) -> WorkflowDefinition | None:
        for definition in definitions:
            if definition.workflow.owner_id != lead.owner_id:
                continue
            if exclude and definition.id in exclude:
                continue
            if inactive >= definition.trigger.value:
                return definition
        return None
