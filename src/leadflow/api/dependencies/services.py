"""Service factory dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from src.leadflow.api.dependencies.db import DBSession
from src.leadflow.api.dependencies.engine import SettingsDep
from src.leadflow.core.notifications import MessageDispatcher, ResendDispatcher
from src.leadflow.core.text_generation import ChatCompletionsGenerator, TextGenerator
from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.orchestrator import Orchestrator
from src.leadflow.services.signal_processor import SignalProcessor
from src.leadflow.services.workflow_service import WorkflowService


async def get_text_generator(settings: SettingsDep) -> AsyncGenerator[TextGenerator]:
    """Get a text generator whose HTTP client lives for one request."""
    generator = ChatCompletionsGenerator(settings)
    try:
        yield generator
    finally:
        await generator.close()


def get_dispatcher(settings: SettingsDep) -> MessageDispatcher:
    return ResendDispatcher(settings)


TextGeneratorDep = Annotated[TextGenerator, Depends(get_text_generator)]
DispatcherDep = Annotated[MessageDispatcher, Depends(get_dispatcher)]


def get_orchestrator(
    session: DBSession,
    text_generator: TextGeneratorDep,
    dispatcher: DispatcherDep,
    settings: SettingsDep,
) -> Orchestrator:
    """Get an orchestrator bound to the request session."""
    return Orchestrator(session, text_generator, dispatcher, settings)


def get_signal_processor(session: DBSession, settings: SettingsDep) -> SignalProcessor:
    return SignalProcessor(session, settings)


def get_workflow_service(session: DBSession) -> WorkflowService:
    return WorkflowService(session)


def get_enrollment_service(session: DBSession, settings: SettingsDep) -> EnrollmentService:
    return EnrollmentService(session, settings)


OrchestratorDep = Annotated[Orchestrator, Depends(get_orchestrator)]
SignalProcessorDep = Annotated[SignalProcessor, Depends(get_signal_processor)]
WorkflowServiceDep = Annotated[WorkflowService, Depends(get_workflow_service)]
EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
