"""CRM contact and owner plan models.

Both tables are owned by the wider CRM; the engine only reads them and
writes the lifecycle fields (contact_status, last_contacted_at,
next_follow_up_at).
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.leadflow.models.base import utc_now
from src.leadflow.models.enums import PlanTier


class Lead(SQLModel, table=True):
    __tablename__ = "leads"
    __table_args__ = (
        Index("ix_leads_owner_status", "owner_id", "contact_status"),
        Index("ix_leads_status_last_contacted", "contact_status", "last_contacted_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(index=True)
    business_name: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=255)
    niche: str | None = Field(default=None, max_length=100)
    contact_status: str = Field(default="new", max_length=50)
    last_contacted_at: datetime | None = Field(default=None)
    next_follow_up_at: datetime | None = Field(default=None)
    notes: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OwnerPlan(SQLModel, table=True):
    """Subscription tier of a lead owner; gates automatic sending."""

    __tablename__ = "owner_plans"

    owner_id: UUID = Field(primary_key=True)
    tier: str = Field(default=PlanTier.LITE.value, max_length=20)
    updated_at: datetime = Field(default_factory=utc_now)
