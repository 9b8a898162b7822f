"""Model exports.

Import from here: `from src.leadflow.models import Lead, Workflow`
"""

from src.leadflow.models.activity import ActionLog
from src.leadflow.models.enrollment import Enrollment
from src.leadflow.models.enums import (
    ConditionType,
    DraftStatus,
    EnrollmentStatus,
    PlanTier,
    SignalType,
)
from src.leadflow.models.lead import Lead, OwnerPlan
from src.leadflow.models.messaging import MessageDraft, MessageSignal
from src.leadflow.models.workflow import Workflow, WorkflowStep

__all__ = [
    # Enums
    "ConditionType",
    "DraftStatus",
    "EnrollmentStatus",
    "PlanTier",
    "SignalType",
    # Models
    "ActionLog",
    "Enrollment",
    "Lead",
    "MessageDraft",
    "MessageSignal",
    "OwnerPlan",
    "Workflow",
    "WorkflowStep",
]
