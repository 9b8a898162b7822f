"""Step execution: run due enrollment steps and move enrollments forward."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import (
    ExternalServiceError,
    StoreUnavailableError,
    WorkflowValidationError,
    is_store_fault,
)
from src.leadflow.core.logging import get_logger
from src.leadflow.core.notifications import MessageDispatcher, OutboundMessage
from src.leadflow.core.text_generation import LeadContext, TextGenerator
from src.leadflow.models import (
    ActionLog,
    DraftStatus,
    Enrollment,
    Lead,
    MessageDraft,
    MessageSignal,
    SignalType,
)
from src.leadflow.repositories import (
    ActionLogRepository,
    EnrollmentRepository,
    LeadRepository,
    MessageDraftRepository,
    MessageSignalRepository,
    OwnerPlanRepository,
)
from src.leadflow.schemas.engine import ExecutionReport
from src.leadflow.schemas.workflow import (
    AddNoteStep,
    ConditionStep,
    SendMessageStep,
    SetReminderStep,
    UpdateStatusStep,
    WaitStep,
)
from src.leadflow.services.conditions import ConditionEvaluator
from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.workflow_service import WorkflowDefinition, WorkflowService

logger = get_logger(__name__)

PHASE = "tick"

INVALID_WORKFLOW = "invalid_workflow"


@dataclass
class ActionOutcome:
    """Result of performing one step's action."""

    success: bool = True
    error: str | None = None
    condition_met: bool | None = None
    details: dict[str, Any] = field(default_factory=dict)


class StepExecutor:
    """Executes due steps, one enrollment at a time.

    Each enrollment commits on its own. A failed collaborator call is logged
    with success=false and the enrollment still advances; there is no
    automatic retry of a step.
    """

    def __init__(
        self,
        session: AsyncSession,
        text_generator: TextGenerator,
        dispatcher: MessageDispatcher,
        settings: Settings | None = None,
    ):
        self.session = session
        self.text_generator = text_generator
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.enrollment_repo = EnrollmentRepository(session)
        self.lead_repo = LeadRepository(session)
        self.action_log_repo = ActionLogRepository(session)
        self.draft_repo = MessageDraftRepository(session)
        self.signal_repo = MessageSignalRepository(session)
        self.plan_repo = OwnerPlanRepository(session)
        self.workflow_service = WorkflowService(session)
        self.enrollment_service = EnrollmentService(
            session,
            self.settings,
            enrollment_repo=self.enrollment_repo,
            action_log_repo=self.action_log_repo,
            workflow_service=self.workflow_service,
        )
        self.conditions = ConditionEvaluator(self.signal_repo)

    async def tick(self, now: datetime, limit: int | None = None) -> ExecutionReport:
        """Process every active enrollment whose next action is due.

        A failure on one enrollment never aborts the batch; only store
        faults propagate.
        """
        limit = limit or self.settings.tick_batch_size
        report = ExecutionReport()
        definitions: dict[UUID, WorkflowDefinition] = {}

        due_ids = await self.enrollment_repo.list_due_ids(now, limit)
        for enrollment_id in due_ids:
            report.processed += 1
            try:
                status, outcome = await self._process(enrollment_id, now, definitions)
                await self.session.commit()
            except WorkflowValidationError as e:
                await self.session.rollback()
                logger.warning(
                    "Cancelling enrollment, workflow cannot be run",
                    enrollment_id=str(enrollment_id),
                    error=str(e),
                )
                report.record_error(PHASE, str(e), enrollment_id)
                await self._cancel_unrunnable(enrollment_id, now)
                continue
            except Exception as e:
                await self.session.rollback()
                if is_store_fault(e):
                    raise StoreUnavailableError(str(e)) from e
                logger.warning(
                    "Failed to execute step",
                    enrollment_id=str(enrollment_id),
                    error=str(e),
                )
                report.record_error(PHASE, str(e), enrollment_id)
                continue

            if status == "skipped":
                report.skipped += 1
                continue
            if outcome is not None:
                report.executed += 1
                if outcome.success:
                    report.succeeded += 1
                else:
                    report.record_error(PHASE, outcome.error or "action failed", enrollment_id)
            if status in ("completed", "executed_completed"):
                report.completed += 1

        logger.info(
            "Tick complete",
            due=report.processed,
            executed=report.executed,
            completed=report.completed,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    async def _cancel_unrunnable(self, enrollment_id: UUID, now: datetime) -> None:
        """Take an enrollment whose workflow cannot run out of the due queue."""
        try:
            enrollment = await self.enrollment_repo.get_by_id(enrollment_id, for_update=True)
            if enrollment is not None and enrollment.is_active:
                self.enrollment_service.cancel(enrollment, INVALID_WORKFLOW, now)
                await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            if is_store_fault(e):
                raise StoreUnavailableError(str(e)) from e
            raise

    async def _process(
        self,
        enrollment_id: UUID,
        now: datetime,
        definitions: dict[UUID, WorkflowDefinition],
    ) -> tuple[str, ActionOutcome | None]:
        enrollment = await self.enrollment_repo.get_by_id(enrollment_id, for_update=True)
        # A concurrent invocation may already have moved it on
        if (
            enrollment is None
            or not enrollment.is_active
            or enrollment.next_action_at is None
            or enrollment.next_action_at > now
        ):
            return "skipped", None

        definition = definitions.get(enrollment.workflow_id)
        if definition is None:
            definition = await self.workflow_service.get_definition(enrollment.workflow_id)
            if definition is None:
                raise WorkflowValidationError(
                    f"Workflow {enrollment.workflow_id} no longer exists"
                )
            definitions[enrollment.workflow_id] = definition

        step = definition.step(enrollment.current_step_order)
        if step is None:
            self.enrollment_service.complete(enrollment, now)
            logger.info(
                "Enrollment completed, no step at current order",
                enrollment_id=str(enrollment.id),
                step_order=enrollment.current_step_order,
            )
            return "completed", None

        lead = await self.lead_repo.get_by_id(enrollment.lead_id, for_update=True)
        if lead is None:
            self.enrollment_service.cancel(enrollment, "lead_missing", now)
            return "cancelled", None

        spec = definition.spec(step.step_order)

        # A reply already short-circuited the wait for this step
        reply_advanced = (enrollment.meta or {}).get("reply_branch_to") == step.step_order
        if reply_advanced:
            enrollment.meta = {k: v for k, v in enrollment.meta.items() if k != "reply_branch_to"}

        if step.delay_days > 0 and not reply_advanced:
            previous = await self.action_log_repo.latest_for_enrollment(enrollment.id, step.action)
            window_start = now - timedelta(days=step.delay_days)
            if previous is not None and previous.created_at > window_start:
                # Delay not actually satisfied; wait until it is
                enrollment.next_action_at = previous.created_at + timedelta(days=step.delay_days)
                enrollment.updated_at = now
                self.enrollment_repo.add(enrollment)
                logger.info(
                    "Skipping step, same action ran within its delay window",
                    enrollment_id=str(enrollment.id),
                    step_order=step.step_order,
                    action=step.action,
                )
                return "skipped", None

        outcome = await self._perform(spec, lead, enrollment, definition, now)

        next_order = enrollment.current_step_order + 1
        branched = False
        if isinstance(spec, ConditionStep) and outcome.condition_met and spec.branch_to_order:
            next_order = spec.branch_to_order
            branched = True

        self.action_log_repo.add(
            ActionLog(
                owner_id=enrollment.owner_id,
                lead_id=lead.id,
                enrollment_id=enrollment.id,
                workflow_id=definition.id,
                step_order=step.step_order,
                action_type=step.action,
                decision={
                    "workflow_id": str(definition.id),
                    "workflow_name": definition.workflow.name,
                    "step_order": step.step_order,
                    "action": step.action,
                    "next_step_order": next_order,
                    "branched": branched,
                    **outcome.details,
                },
                success=outcome.success,
                error_message=outcome.error[:1000] if outcome.error else None,
                created_at=now,
            )
        )

        next_step = definition.step(next_order)
        if next_step is None:
            enrollment.current_step_order = next_order
            self.enrollment_service.complete(enrollment, now)
            logger.info(
                "Workflow completed for lead",
                enrollment_id=str(enrollment.id),
                lead_id=str(lead.id),
            )
            return "executed_completed", outcome

        enrollment.current_step_order = next_order
        enrollment.next_action_at = now + timedelta(days=next_step.delay_days)
        enrollment.updated_at = now
        self.enrollment_repo.add(enrollment)
        logger.info(
            "Moved to next step",
            enrollment_id=str(enrollment.id),
            step_order=next_order,
            next_action_at=enrollment.next_action_at.isoformat(),
            success=outcome.success,
        )
        return "executed", outcome

    async def _perform(
        self,
        spec: Any,
        lead: Lead,
        enrollment: Enrollment,
        definition: WorkflowDefinition,
        now: datetime,
    ) -> ActionOutcome:
        match spec:
            case SendMessageStep():
                return await self._send_message(spec, lead, enrollment, definition, now)
            case UpdateStatusStep(new_status=new_status):
                old_status = lead.contact_status
                lead.contact_status = new_status
                lead.updated_at = now
                self.lead_repo.add(lead)
                return ActionOutcome(details={"old_status": old_status, "new_status": new_status})
            case SetReminderStep(reminder_days=days):
                lead.next_follow_up_at = now + timedelta(days=days)
                lead.updated_at = now
                self.lead_repo.add(lead)
                return ActionOutcome(
                    details={
                        "next_follow_up_at": lead.next_follow_up_at.isoformat(),
                        "title": spec.title,
                    }
                )
            case ConditionStep():
                met = await self.conditions.evaluate(spec, lead, enrollment, now)
                return ActionOutcome(
                    condition_met=met,
                    details={"condition_type": spec.condition_type.value, "condition_met": met},
                )
            case AddNoteStep(text=text):
                stamp = now.strftime("%Y-%m-%d")
                note = f"[Workflow {stamp}] {text}"
                lead.notes = f"{lead.notes}\n{note}" if lead.notes else note
                lead.updated_at = now
                self.lead_repo.add(lead)
                return ActionOutcome(details={"note": text})
            case WaitStep():
                return ActionOutcome()
        raise WorkflowValidationError(f"Unsupported step action: {spec!r}")

    async def _send_message(
        self,
        spec: SendMessageStep,
        lead: Lead,
        enrollment: Enrollment,
        definition: WorkflowDefinition,
        now: datetime,
    ) -> ActionOutcome:
        context = LeadContext(
            business_name=lead.business_name,
            niche=lead.niche,
            contact_status=lead.contact_status,
            workflow_name=definition.workflow.name,
            message_type=spec.message_type,
            tone=spec.tone,
            prompt_hint=spec.prompt_hint,
        )
        try:
            generated = await self.text_generator.generate(context)
        except ExternalServiceError as e:
            logger.warning(
                "Message generation failed",
                enrollment_id=str(enrollment.id),
                error=str(e),
            )
            return ActionOutcome(success=False, error=str(e), details={"stage": "generate"})

        draft = MessageDraft(
            owner_id=enrollment.owner_id,
            lead_id=lead.id,
            enrollment_id=enrollment.id,
            subject=generated.subject[:255],
            body=generated.body,
            tone=spec.tone,
            message_type=spec.message_type,
            status=DraftStatus.DRAFT.value,
            created_at=now,
        )
        self.draft_repo.add(draft)
        details: dict[str, Any] = {"draft_id": str(draft.id), "message_type": spec.message_type}

        tier = await self.plan_repo.get_tier(enrollment.owner_id)
        if tier not in self.settings.auto_send_tiers or not lead.email:
            draft.status = DraftStatus.QUEUED.value
            details["sent"] = False
            details["queued_reason"] = "no_email" if not lead.email else f"tier:{tier}"
            logger.info(
                "Draft queued for manual approval",
                draft_id=str(draft.id),
                lead_id=str(lead.id),
                reason=details["queued_reason"],
            )
            return ActionOutcome(details=details)

        try:
            message_id = await self.dispatcher.send(
                OutboundMessage(
                    to=lead.email,
                    subject=draft.subject,
                    body=draft.body,
                    draft_id=str(draft.id),
                )
            )
        except ExternalServiceError as e:
            draft.status = DraftStatus.FAILED.value
            details["sent"] = False
            details["stage"] = "dispatch"
            logger.warning("Message dispatch failed", draft_id=str(draft.id), error=str(e))
            return ActionOutcome(success=False, error=str(e), details=details)

        draft.status = DraftStatus.SENT.value
        draft.provider_message_id = message_id
        draft.sent_at = now
        lead.last_contacted_at = now
        lead.updated_at = now
        self.lead_repo.add(lead)
        self.signal_repo.add(
            MessageSignal(
                draft_id=draft.id,
                provider_message_id=message_id,
                lead_id=lead.id,
                owner_id=enrollment.owner_id,
                event_type=SignalType.SENT.value,
                payload={"message_id": message_id},
                occurred_at=now,
                processed_at=now,
            )
        )
        details["sent"] = True
        details["message_id"] = message_id
        return ActionOutcome(details=details)
