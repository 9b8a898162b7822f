"""Append-only action log."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from src.leadflow.models.base import JSONType, utc_now


class ActionLog(SQLModel, table=True):
    """Record of every engine decision that touched a lead.

    Never updated after insert. Read back for the redundant-execution guard
    and for auditing.
    """

    __tablename__ = "action_logs"
    __table_args__ = (
        Index("ix_action_logs_enrollment_action", "enrollment_id", "action_type", "created_at"),
        Index("ix_action_logs_lead_created", "lead_id", "created_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(index=True)
    lead_id: UUID = Field(index=True)
    enrollment_id: UUID | None = Field(default=None)
    workflow_id: UUID | None = Field(default=None)
    step_order: int | None = Field(default=None)
    action_type: str = Field(max_length=50)
    decision: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )
    success: bool = Field(default=True)
    error_message: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
