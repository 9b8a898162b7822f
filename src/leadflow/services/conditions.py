"""Predicates evaluated by condition steps."""

from datetime import datetime, timedelta

from src.leadflow.models import ConditionType, Enrollment, Lead, SignalType
from src.leadflow.repositories import MessageSignalRepository
from src.leadflow.schemas.workflow import ConditionStep

DEFAULT_NO_RESPONSE_DAYS = 7

_ENGAGEMENT_EVENTS = [
    SignalType.REPLIED.value,
    SignalType.OPENED.value,
    SignalType.CLICKED.value,
]


class ConditionEvaluator:
    """Evaluates a condition step against the signals recorded for a lead.

    Event-based conditions only count signals since the lead was enrolled,
    so engagement with an earlier sequence does not trigger a branch.
    """

    def __init__(self, signal_repo: MessageSignalRepository):
        self.signal_repo = signal_repo

    async def evaluate(
        self,
        spec: ConditionStep,
        lead: Lead,
        enrollment: Enrollment,
        now: datetime,
    ) -> bool:
        match spec.condition_type:
            case ConditionType.REPLY_RECEIVED:
                return await self.signal_repo.exists_since(
                    lead.id, SignalType.REPLIED.value, enrollment.enrolled_at
                )
            case ConditionType.EMAIL_OPENED:
                return await self.signal_repo.exists_since(
                    lead.id, SignalType.OPENED.value, enrollment.enrolled_at
                )
            case ConditionType.EMAIL_CLICKED:
                return await self.signal_repo.exists_since(
                    lead.id, SignalType.CLICKED.value, enrollment.enrolled_at
                )
            case ConditionType.NO_RESPONSE:
                days = int(spec.condition_value or DEFAULT_NO_RESPONSE_DAYS)
                last = await self.signal_repo.latest_inbound_at(lead.id, _ENGAGEMENT_EVENTS)
                return last is None or last < now - timedelta(days=days)
            case ConditionType.STATUS_EQUALS:
                return lead.contact_status == spec.condition_value
        return False
