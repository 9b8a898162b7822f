"""Repository layer - data access abstraction."""

from src.leadflow.repositories.activity import ActionLogRepository
from src.leadflow.repositories.base import BaseRepository
from src.leadflow.repositories.enrollment import EnrollmentRepository
from src.leadflow.repositories.lead import LeadRepository, OwnerPlanRepository
from src.leadflow.repositories.messaging import MessageDraftRepository, MessageSignalRepository
from src.leadflow.repositories.workflow import WorkflowRepository

__all__ = [
    "ActionLogRepository",
    "BaseRepository",
    "EnrollmentRepository",
    "LeadRepository",
    "MessageDraftRepository",
    "MessageSignalRepository",
    "OwnerPlanRepository",
    "WorkflowRepository",
]
