"""Shared enums for models."""

from enum import Enum


class ConditionType(str, Enum):
    """Predicates a condition step can branch on."""

    REPLY_RECEIVED = "reply_received"
    EMAIL_OPENED = "email_opened"
    EMAIL_CLICKED = "email_clicked"
    NO_RESPONSE = "no_response"
    STATUS_EQUALS = "status_equals"


class EnrollmentStatus(str, Enum):
    """Lifecycle of a lead's run through a workflow."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DraftStatus(str, Enum):
    """Outbound message state."""

    DRAFT = "draft"
    QUEUED = "queued"  # waiting for manual approval
    SENT = "sent"
    FAILED = "failed"


class SignalType(str, Enum):
    """Delivery/engagement events reported by the message provider."""

    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    REPLIED = "replied"
    BOUNCED = "bounced"


class PlanTier(str, Enum):
    """Owner subscription tier."""

    LITE = "lite"
    PRO = "pro"
    ENTERPRISE = "enterprise"
