"""FastAPI dependency injection definitions."""

from src.leadflow.api.dependencies.db import DBSession, get_db_session
from src.leadflow.api.dependencies.engine import EngineKey, SettingsDep, require_engine_key
from src.leadflow.api.dependencies.services import (
    DispatcherDep,
    EnrollmentServiceDep,
    OrchestratorDep,
    SignalProcessorDep,
    TextGeneratorDep,
    WorkflowServiceDep,
    get_dispatcher,
    get_enrollment_service,
    get_orchestrator,
    get_signal_processor,
    get_text_generator,
    get_workflow_service,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Engine
    "EngineKey",
    "SettingsDep",
    "require_engine_key",
    # Services
    "DispatcherDep",
    "EnrollmentServiceDep",
    "OrchestratorDep",
    "SignalProcessorDep",
    "TextGeneratorDep",
    "WorkflowServiceDep",
    "get_dispatcher",
    "get_enrollment_service",
    "get_orchestrator",
    "get_signal_processor",
    "get_text_generator",
    "get_workflow_service",
]
