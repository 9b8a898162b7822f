"""Engine run summaries and signal ingestion payloads."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny


class ItemError(BaseModel):
    """One per-item (or phase-wide) failure reported back to the caller."""

    phase: str
    item_id: str | None = None
    message: str


class PhaseResult(BaseModel):
    """Counters for one orchestrator phase."""

    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[ItemError] = Field(default_factory=list)
    aborted: bool = False  # phase stopped on a store-level fault

    def record_error(self, phase: str, message: str, item_id: Any = None) -> None:
        self.failed += 1
        self.errors.append(
            ItemError(
                phase=phase,
                item_id=str(item_id) if item_id is not None else None,
                message=message[:500],
            )
        )


class ExecutionReport(PhaseResult):
    """Step executor tick outcome."""

    executed: int = 0
    completed: int = 0


class RunSummary(BaseModel):
    """JSON-shaped summary returned by a single engine invocation."""

    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    enrolled: int = 0
    signals_processed: int = 0
    steps_executed: int = 0
    phases: dict[str, SerializeAsAny[PhaseResult]] = Field(default_factory=dict)
    errors: list[ItemError] = Field(default_factory=list)

    @property
    def store_unavailable(self) -> bool:
        """True when every phase that ran was aborted by a store fault."""
        return bool(self.phases) and all(p.aborted for p in self.phases.values())


class EnrollSummary(BaseModel):
    """Result of the narrow enroller entry point."""

    run_id: str
    enrolled: int = 0
    skipped: int = 0
    errors: list[ItemError] = Field(default_factory=list)


class RunRequest(BaseModel):
    """Optional body for the run endpoint; `now` is for replays and tests."""

    now: datetime | None = None


class SignalEvent(BaseModel):
    """Provider webhook payload (Resend-style: ``{"type": ..., "data": {...}}``)."""

    type: str = Field(min_length=1, max_length=50)
    data: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime | None = None

    @property
    def message_id(self) -> str | None:
        return self.data.get("email_id") or self.data.get("message_id")


class SignalAccepted(BaseModel):
    received: bool = True
    matched: bool = False
    signal_id: UUID | None = None
    event_type: str | None = None


class EnrollmentCancel(BaseModel):
    reason: str = Field(default="owner_request", min_length=1, max_length=100)


class EnrollmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lead_id: UUID
    workflow_id: UUID
    status: str
    current_step_order: int
    next_action_at: datetime | None
    enrolled_at: datetime
    completed_at: datetime | None
    metadata: dict[str, Any] = Field(validation_alias="meta")
