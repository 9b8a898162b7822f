from src.leadflow.schemas.engine import (
    EnrollmentCancel,
    EnrollmentRead,
    EnrollSummary,
    ExecutionReport,
    ItemError,
    PhaseResult,
    RunRequest,
    RunSummary,
    SignalAccepted,
    SignalEvent,
)
from src.leadflow.schemas.workflow import (
    StepSpec,
    Trigger,
    WorkflowCreate,
    WorkflowRead,
    WorkflowStepRead,
    WorkflowStepsReplace,
)

__all__ = [
    # Engine
    "EnrollmentCancel",
    "EnrollmentRead",
    "EnrollSummary",
    "ExecutionReport",
    "ItemError",
    "PhaseResult",
    "RunRequest",
    "RunSummary",
    "SignalAccepted",
    "SignalEvent",
    # Workflow
    "StepSpec",
    "Trigger",
    "WorkflowCreate",
    "WorkflowRead",
    "WorkflowStepRead",
    "WorkflowStepsReplace",
]
