from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.inactivity_monitor import InactivityMonitor
from src.leadflow.services.orchestrator import Orchestrator
from src.leadflow.services.signal_processor import SignalProcessor
from src.leadflow.services.step_executor import StepExecutor
from src.leadflow.services.workflow_service import WorkflowService

__all__ = [
    "EnrollmentService",
    "InactivityMonitor",
    "Orchestrator",
    "SignalProcessor",
    "StepExecutor",
    "WorkflowService",
]
