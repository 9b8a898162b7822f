"""Enrollment model - a lead's progress through one workflow."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index, text
from sqlmodel import Field, SQLModel

from src.leadflow.models.base import JSONType, utc_now
from src.leadflow.models.enums import EnrollmentStatus


class Enrollment(SQLModel, table=True):
    """Runtime record of one lead moving through one workflow.

    At most one active row per (lead_id, workflow_id); the partial unique
    index turns concurrent check-then-insert races into an IntegrityError.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_active_lead_workflow",
            "lead_id",
            "workflow_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_enrollments_status_next_action", "status", "next_action_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    lead_id: UUID = Field(foreign_key="leads.id", index=True)
    workflow_id: UUID = Field(foreign_key="workflows.id", index=True)
    owner_id: UUID = Field(index=True)
    status: str = Field(default=EnrollmentStatus.ACTIVE.value, max_length=20)
    current_step_order: int = Field(default=1)
    next_action_at: datetime | None = Field(default=None)
    enrolled_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = Field(default=None)
    updated_at: datetime = Field(default_factory=utc_now)
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    meta: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSONType, nullable=False),
    )

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE.value
