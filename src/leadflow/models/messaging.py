"""Outbound message drafts and provider delivery signals."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from src.leadflow.models.base import JSONType, utc_now
from src.leadflow.models.enums import DraftStatus


class MessageDraft(SQLModel, table=True):
    __tablename__ = "message_drafts"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(index=True)
    lead_id: UUID = Field(foreign_key="leads.id", index=True)
    enrollment_id: UUID | None = Field(default=None, index=True)
    subject: str = Field(max_length=255)
    body: str
    tone: str = Field(default="professional", max_length=50)
    message_type: str = Field(default="follow_up", max_length=50)
    status: str = Field(default=DraftStatus.DRAFT.value, max_length=20)
    provider_message_id: str | None = Field(default=None, max_length=255, index=True)
    sent_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class MessageSignal(SQLModel, table=True):
    """A provider event (sent, opened, replied, ...) correlated to a lead.

    processed_at stays null until the signal processor consumes it.
    """

    __tablename__ = "message_signals"
    __table_args__ = (
        Index("ix_message_signals_pending", "processed_at", "occurred_at"),
        Index("ix_message_signals_lead_event", "lead_id", "event_type"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    draft_id: UUID | None = Field(default=None, foreign_key="message_drafts.id")
    provider_message_id: str | None = Field(default=None, max_length=255)
    lead_id: UUID = Field(foreign_key="leads.id")
    owner_id: UUID = Field(index=True)
    event_type: str = Field(max_length=20)  # SignalType value
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )
    occurred_at: datetime = Field(default_factory=utc_now)
    processed_at: datetime | None = Field(default=None)
