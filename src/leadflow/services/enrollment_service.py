"""Enrollment lifecycle: create, deduplicate, complete, cancel."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import (
    AlreadyEnrolledError,
    StoreUnavailableError,
    WorkflowInactiveError,
    WorkflowValidationError,
    is_store_fault,
)
from src.leadflow.core.logging import get_logger
from src.leadflow.models import ActionLog, Enrollment, EnrollmentStatus, Lead
from src.leadflow.repositories import ActionLogRepository, EnrollmentRepository, LeadRepository
from src.leadflow.schemas.engine import PhaseResult
from src.leadflow.services.trigger_matcher import TriggerMatcher
from src.leadflow.services.workflow_service import WorkflowDefinition, WorkflowService

logger = get_logger(__name__)

PHASE = "enroll"


class EnrollmentService:
    """Owns the invariant: at most one active enrollment per (lead, workflow).

    The pre-insert lookup catches the common case; the partial unique index
    on enrollments catches concurrent invocations, and both surface as
    AlreadyEnrolledError.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        enrollment_repo: EnrollmentRepository | None = None,
        lead_repo: LeadRepository | None = None,
        action_log_repo: ActionLogRepository | None = None,
        workflow_service: WorkflowService | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.enrollment_repo = enrollment_repo or EnrollmentRepository(session)
        self.lead_repo = lead_repo or LeadRepository(session)
        self.action_log_repo = action_log_repo or ActionLogRepository(session)
        self.workflow_service = workflow_service or WorkflowService(session)

    async def enroll(
        self,
        lead: Lead,
        definition: WorkflowDefinition,
        reason: str,
        now: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> Enrollment:
        """Enroll a lead at step 1 of a workflow and commit.

        No action runs here; the first due tick performs step 1.

        Raises:
            WorkflowInactiveError: the workflow is deactivated
            WorkflowValidationError: the workflow has no steps
            AlreadyEnrolledError: an active enrollment already exists
        """
        workflow = definition.workflow
        if not workflow.is_active:
            raise WorkflowInactiveError(f"Workflow {workflow.id} is not active")
        first_step = definition.step(1)
        if first_step is None:
            raise WorkflowValidationError(f"Workflow {workflow.id} has no steps", workflow.id)

        lead_id, workflow_id = lead.id, workflow.id
        if await self.enrollment_repo.get_active(lead_id, workflow_id) is not None:
            raise AlreadyEnrolledError(lead_id, workflow_id)

        enrollment = Enrollment(
            lead_id=lead_id,
            workflow_id=workflow_id,
            owner_id=workflow.owner_id,
            status=EnrollmentStatus.ACTIVE.value,
            current_step_order=1,
            next_action_at=now + timedelta(days=first_step.delay_days),
            enrolled_at=now,
            updated_at=now,
            meta={**(metadata or {}), "reason": reason},
        )
        self.enrollment_repo.add(enrollment)
        self.action_log_repo.add(
            ActionLog(
                owner_id=workflow.owner_id,
                lead_id=lead_id,
                enrollment_id=enrollment.id,
                workflow_id=workflow_id,
                step_order=None,
                action_type="enrolled",
                decision={
                    "workflow_id": str(workflow_id),
                    "workflow_name": workflow.name,
                    "reason": reason,
                    "trigger_type": definition.trigger.type,
                },
                success=True,
                created_at=now,
            )
        )

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            # Lost a race with a concurrent invocation
            raise AlreadyEnrolledError(lead_id, workflow_id) from e

        logger.info(
            "Lead enrolled",
            lead_id=str(lead_id),
            workflow_id=str(workflow_id),
            reason=reason,
            next_action_at=enrollment.next_action_at.isoformat() if enrollment.next_action_at else None,
        )
        return enrollment

    def complete(self, enrollment: Enrollment, now: datetime) -> Enrollment:
        """Mark an enrollment completed (no commit; caller owns the transaction)."""
        enrollment.status = EnrollmentStatus.COMPLETED.value
        enrollment.next_action_at = None
        enrollment.completed_at = now
        enrollment.updated_at = now
        self.enrollment_repo.add(enrollment)
        return enrollment

    def cancel(self, enrollment: Enrollment, reason: str, now: datetime) -> Enrollment:
        """Mark an enrollment cancelled (no commit; caller owns the transaction)."""
        enrollment.status = EnrollmentStatus.CANCELLED.value
        enrollment.next_action_at = None
        enrollment.updated_at = now
        enrollment.meta = {**(enrollment.meta or {}), "cancel_reason": reason}
        self.enrollment_repo.add(enrollment)
        return enrollment

    async def cancel_by_id(self, enrollment_id: UUID, reason: str, now: datetime) -> Enrollment:
        """Cancel an active enrollment and commit.

        Raises:
            LookupError: no such enrollment
        """
        enrollment = await self.enrollment_repo.get_by_id(enrollment_id, for_update=True)
        if enrollment is None:
            raise LookupError(f"Enrollment {enrollment_id} not found")
        if enrollment.is_active:
            self.cancel(enrollment, reason, now)
            await self.session.commit()
            logger.info("Enrollment cancelled", enrollment_id=str(enrollment_id), reason=reason)
        return enrollment

    async def enroll_matching(self, now: datetime, limit: int | None = None) -> PhaseResult:
        """Run the trigger matcher over leads without an active enrollment.

        A lead is enrolled into at most one workflow per pass, and never
        again into a workflow it has already completed.
        """
        limit = limit or self.settings.enroll_batch_size
        result = PhaseResult()

        definitions = await self.workflow_service.load_active_definitions()
        if not definitions:
            logger.debug("No active workflows, skipping enrollment")
            return result

        matcher = TriggerMatcher(definitions)
        statuses, niches = matcher.candidate_filters()
        leads = await self.lead_repo.list_unenrolled(
            limit,
            owner_ids=matcher.owner_ids,
            statuses=statuses,
            niches=niches,
        )
        # Batch rows are read-only snapshots; per-item rollbacks must not expire them
        self.session.expunge_all()

        for lead in leads:
            result.processed += 1
            try:
                completed = await self.enrollment_repo.completed_workflow_ids(lead.id)
                definition = matcher.match(lead, now, exclude=completed)
                if definition is None:
                    result.skipped += 1
                    continue
                await self.enroll(lead, definition, reason="trigger_matched", now=now)
                result.succeeded += 1
            except AlreadyEnrolledError:
                result.skipped += 1
            except Exception as e:
                await self.session.rollback()
                if is_store_fault(e):
                    raise StoreUnavailableError(str(e)) from e
                logger.warning("Failed to enroll lead", lead_id=str(lead.id), error=str(e))
                result.record_error(PHASE, str(e), lead.id)

        logger.info(
            "Enrollment pass complete",
            candidates=result.processed,
            enrolled=result.succeeded,
            failed=result.failed,
        )
        return result
