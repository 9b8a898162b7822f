"""Inbound signal handling: provider webhooks and reply-driven branching."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import StoreUnavailableError, is_store_fault
from src.leadflow.core.logging import get_logger
from src.leadflow.models import (
    ActionLog,
    ConditionType,
    Lead,
    MessageSignal,
    SignalType,
)
from src.leadflow.models.base import utc_now
from src.leadflow.repositories import (
    ActionLogRepository,
    EnrollmentRepository,
    LeadRepository,
    MessageDraftRepository,
    MessageSignalRepository,
)
from src.leadflow.schemas.engine import PhaseResult, SignalAccepted, SignalEvent
from src.leadflow.schemas.workflow import ConditionStep
from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.workflow_service import WorkflowService

logger = get_logger(__name__)

PHASE = "signals"

# Provider event name -> stored signal type
PROVIDER_EVENT_TYPES: dict[str, SignalType] = {
    "email.sent": SignalType.SENT,
    "email.delivered": SignalType.DELIVERED,
    "email.opened": SignalType.OPENED,
    "email.clicked": SignalType.CLICKED,
    "email.bounced": SignalType.BOUNCED,
    "email.replied": SignalType.REPLIED,
    "email.received": SignalType.REPLIED,
}


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class SignalProcessor:
    """Consumes reply/open/click signals.

    Replies move early-stage leads into conversation and short-circuit any
    enrollment parked on a reply_received condition step.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.signal_repo = MessageSignalRepository(session)
        self.draft_repo = MessageDraftRepository(session)
        self.lead_repo = LeadRepository(session)
        self.enrollment_repo = EnrollmentRepository(session)
        self.action_log_repo = ActionLogRepository(session)
        self.workflow_service = WorkflowService(session)
        self.enrollment_service = EnrollmentService(
            session,
            self.settings,
            enrollment_repo=self.enrollment_repo,
            lead_repo=self.lead_repo,
            action_log_repo=self.action_log_repo,
            workflow_service=self.workflow_service,
        )

    async def ingest(self, event: SignalEvent) -> SignalAccepted:
        """Store a provider webhook event for the next processing window.

        Events for unknown message ids or of unhandled types are acknowledged
        but not stored, so the provider does not retry them.
        """
        signal_type = PROVIDER_EVENT_TYPES.get(event.type)
        if signal_type is None:
            logger.info("Unhandled provider event type", event_type=event.type)
            return SignalAccepted(matched=False)

        message_id = event.message_id
        draft = await self.draft_repo.get_by_provider_message_id(message_id) if message_id else None
        if draft is None:
            logger.info("No draft found for message", message_id=message_id)
            return SignalAccepted(matched=False, event_type=signal_type.value)

        signal = MessageSignal(
            draft_id=draft.id,
            provider_message_id=message_id,
            lead_id=draft.lead_id,
            owner_id=draft.owner_id,
            event_type=signal_type.value,
            payload=event.data,
            occurred_at=_naive_utc(event.occurred_at) if event.occurred_at else utc_now(),
        )
        self.signal_repo.add(signal)
        await self.session.commit()

        logger.info(
            "Signal recorded",
            signal_id=str(signal.id),
            event_type=signal.event_type,
            lead_id=str(signal.lead_id),
        )
        return SignalAccepted(matched=True, signal_id=signal.id, event_type=signal.event_type)

    async def process_pending(self, now: datetime, limit: int | None = None) -> PhaseResult:
        """Handle every unprocessed signal, oldest first, one commit each."""
        limit = limit or self.settings.signal_batch_size
        result = PhaseResult()

        for signal_id in await self.signal_repo.list_pending_ids(limit):
            result.processed += 1
            try:
                await self._handle(signal_id, now)
                await self.session.commit()
                result.succeeded += 1
            except Exception as e:
                await self.session.rollback()
                if is_store_fault(e):
                    raise StoreUnavailableError(str(e)) from e
                logger.warning("Failed to process signal", signal_id=str(signal_id), error=str(e))
                result.record_error(PHASE, str(e), signal_id)

        logger.info(
            "Signal processing complete",
            processed=result.succeeded,
            failed=result.failed,
        )
        return result

    async def _handle(self, signal_id: UUID, now: datetime) -> None:
        signal = await self.signal_repo.get_by_id(signal_id, for_update=True)
        if signal is None or signal.processed_at is not None:
            return

        signal.processed_at = now
        self.signal_repo.add(signal)

        if signal.event_type == SignalType.REPLIED.value:
            await self.on_reply(signal, now)
            return

        if signal.event_type in (SignalType.SENT.value, SignalType.DELIVERED.value):
            return

        self.action_log_repo.add(
            ActionLog(
                owner_id=signal.owner_id,
                lead_id=signal.lead_id,
                action_type=f"signal_{signal.event_type}",
                decision={"signal_id": str(signal.id), "draft_id": str(signal.draft_id)},
                success=True,
                created_at=now,
            )
        )

    async def on_reply(self, signal: MessageSignal, now: datetime) -> None:
        """Apply a reply to the lead and its active enrollments (no commit)."""
        lead = await self.lead_repo.get_by_id(signal.lead_id, for_update=True)
        if lead is None:
            logger.info("Reply for unknown lead", lead_id=str(signal.lead_id))
            return

        self._mark_in_conversation(lead, signal, now)

        for enrollment in await self.enrollment_repo.list_active_for_lead(lead.id):
            definition = await self.workflow_service.get_definition(enrollment.workflow_id)
            if definition is None:
                continue
            order = enrollment.current_step_order
            spec = definition.spec(order)
            if not (
                isinstance(spec, ConditionStep)
                and spec.condition_type == ConditionType.REPLY_RECEIVED
            ):
                continue

            target = spec.branch_to_order or order + 1
            self.action_log_repo.add(
                ActionLog(
                    owner_id=enrollment.owner_id,
                    lead_id=lead.id,
                    enrollment_id=enrollment.id,
                    workflow_id=definition.id,
                    step_order=order,
                    action_type="reply_branch",
                    decision={
                        "workflow_id": str(definition.id),
                        "from_step_order": order,
                        "next_step_order": target,
                        "signal_id": str(signal.id),
                    },
                    success=True,
                    created_at=now,
                )
            )

            enrollment.current_step_order = target
            if definition.step(target) is None:
                self.enrollment_service.complete(enrollment, now)
            else:
                enrollment.next_action_at = now
                enrollment.updated_at = now
                enrollment.meta = {**(enrollment.meta or {}), "reply_branch_to": target}
                self.enrollment_repo.add(enrollment)

            logger.info(
                "Reply advanced enrollment",
                enrollment_id=str(enrollment.id),
                from_step=order,
                to_step=target,
            )

    def _mark_in_conversation(self, lead: Lead, signal: MessageSignal, now: datetime) -> None:
        if lead.contact_status not in self.settings.early_stage_statuses:
            return
        old_status = lead.contact_status
        lead.contact_status = self.settings.reply_status
        lead.last_contacted_at = now
        lead.updated_at = now
        self.lead_repo.add(lead)
        self.action_log_repo.add(
            ActionLog(
                owner_id=lead.owner_id,
                lead_id=lead.id,
                action_type="status_changed",
                decision={
                    "old_status": old_status,
                    "new_status": lead.contact_status,
                    "signal_id": str(signal.id),
                },
                success=True,
                created_at=now,
            )
        )
