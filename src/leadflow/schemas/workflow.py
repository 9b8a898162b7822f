"""Workflow definition schemas.

Triggers and step parameters are tagged unions keyed on ``type`` / ``action``
so every variant carries only the fields it needs, and a malformed step is
rejected when the workflow is built rather than when it runs.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from src.leadflow.models.enums import ConditionType

# --- Triggers ---


class StatusEqualsTrigger(BaseModel):
    type: Literal["status_equals"] = "status_equals"
    value: str = Field(min_length=1, max_length=50)


class NicheEqualsTrigger(BaseModel):
    type: Literal["niche_equals"] = "niche_equals"
    value: str = Field(min_length=1, max_length=100)


class LeadImportedTrigger(BaseModel):
    type: Literal["lead_imported"] = "lead_imported"
    value: Any = None


class InactiveForDaysTrigger(BaseModel):
    type: Literal["inactive_for_days"] = "inactive_for_days"
    value: int = Field(ge=1, le=365)


Trigger = Annotated[
    StatusEqualsTrigger | NicheEqualsTrigger | LeadImportedTrigger | InactiveForDaysTrigger,
    Field(discriminator="type"),
]

trigger_adapter: TypeAdapter[Trigger] = TypeAdapter(Trigger)


# --- Steps ---


class _StepBase(BaseModel):
    delay_days: int = Field(default=0, ge=0, le=365)


class SendMessageStep(_StepBase):
    action: Literal["send_message"] = "send_message"
    message_type: str = Field(default="follow_up", max_length=50)
    tone: str = Field(default="professional", max_length=50)
    prompt_hint: str | None = Field(default=None, max_length=500)


class UpdateStatusStep(_StepBase):
    action: Literal["update_status"] = "update_status"
    new_status: str = Field(min_length=1, max_length=50)


class SetReminderStep(_StepBase):
    action: Literal["set_reminder"] = "set_reminder"
    reminder_days: int = Field(ge=0, le=365)
    title: str | None = Field(default=None, max_length=200)


class ConditionStep(_StepBase):
    action: Literal["condition"] = "condition"
    condition_type: ConditionType
    condition_value: str | None = Field(default=None, max_length=100)
    branch_to_order: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_condition_value(self) -> "ConditionStep":
        if self.condition_type == ConditionType.STATUS_EQUALS and not self.condition_value:
            raise ValueError("status_equals condition requires condition_value")
        if self.condition_type == ConditionType.NO_RESPONSE and self.condition_value:
            if not self.condition_value.isdigit():
                raise ValueError("no_response condition_value must be a number of days")
        return self


class AddNoteStep(_StepBase):
    action: Literal["add_note"] = "add_note"
    text: str = Field(min_length=1, max_length=1000)


class WaitStep(_StepBase):
    action: Literal["wait"] = "wait"


StepSpec = Annotated[
    SendMessageStep | UpdateStatusStep | SetReminderStep | ConditionStep | AddNoteStep | WaitStep,
    Field(discriminator="action"),
]

step_adapter: TypeAdapter[StepSpec] = TypeAdapter(StepSpec)


def validate_step_list(steps: list[Any]) -> list[Any]:
    """Check cross-step constraints: non-empty and branch targets exist."""
    if not steps:
        raise ValueError("A workflow needs at least one step")
    count = len(steps)
    for index, step in enumerate(steps, start=1):
        target = getattr(step, "branch_to_order", None)
        if target is not None and target > count:
            raise ValueError(
                f"Step {index} branches to step {target}, but the workflow has {count} steps"
            )
    return steps


def step_params(step: BaseModel) -> dict[str, Any]:
    """Serialize a step spec to the JSON bag stored on WorkflowStep.params."""
    return step.model_dump(mode="json", exclude={"action", "delay_days"})


# --- API payloads ---


class WorkflowCreate(BaseModel):
    """Schema for creating a workflow."""

    owner_id: UUID
    name: str = Field(min_length=1, max_length=200)
    trigger: Trigger
    steps: list[StepSpec]
    priority: int = Field(default=100, ge=0)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Workflow name cannot be empty or whitespace only")
        return v

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: list[Any]) -> list[Any]:
        return validate_step_list(v)


class WorkflowStepsReplace(BaseModel):
    """Schema for replacing a workflow's step list."""

    steps: list[StepSpec]

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: list[Any]) -> list[Any]:
        return validate_step_list(v)


class WorkflowStepRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_order: int
    action: str
    delay_days: int
    params: dict[str, Any]


class WorkflowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    name: str
    trigger: dict[str, Any]
    priority: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    steps: list[WorkflowStepRead] = []
