"""Workflow definition models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from src.leadflow.models.base import JSONType, utc_now


class Workflow(SQLModel, table=True):
    """Named, ordered outreach sequence with a trigger predicate.

    Never deleted while enrollments reference it; soft-disabled via is_active.
    """

    __tablename__ = "workflows"
    __table_args__ = (Index("ix_workflows_owner_active", "owner_id", "is_active"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(index=True)
    name: str = Field(max_length=200)
    # Tagged predicate: {"type": "status_equals", "value": "new"}
    trigger: dict[str, Any] = Field(sa_column=Column(JSONType, nullable=False))
    # Lower runs first when several workflows match the same lead
    priority: int = Field(default=100)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def trigger_type(self) -> str | None:
        return (self.trigger or {}).get("type")


class WorkflowStep(SQLModel, table=True):
    """One action in a workflow.

    Immutable once written; editing a workflow replaces its whole step list.
    """

    __tablename__ = "workflow_steps"
    __table_args__ = (
        UniqueConstraint("workflow_id", "step_order", name="uq_workflow_steps_order"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_id: UUID = Field(foreign_key="workflows.id", index=True)
    step_order: int  # 1-based, dense
    action: str = Field(max_length=30)  # send_message, update_status, condition, ...
    delay_days: int = Field(default=0)
    params: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
