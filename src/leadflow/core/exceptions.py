"""Engine error taxonomy and HTTP exception handlers."""

from uuid import UUID

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.leadflow.core.logging import get_logger

logger = get_logger(__name__)


class EngineError(Exception):
    """Base class for workflow engine errors."""


class WorkflowValidationError(EngineError):
    """A workflow definition (trigger or steps) is malformed."""

    def __init__(self, message: str, workflow_id: UUID | None = None):
        super().__init__(message)
        self.workflow_id = workflow_id


class WorkflowInactiveError(EngineError):
    """Enrollment was requested into a deactivated workflow."""


class AlreadyEnrolledError(EngineError):
    """The lead already has an active enrollment in the workflow.

    Expected under at-least-once invocation; callers treat it as a no-op.
    """

    def __init__(self, lead_id: UUID, workflow_id: UUID):
        super().__init__(f"Lead {lead_id} already has an active enrollment in {workflow_id}")
        self.lead_id = lead_id
        self.workflow_id = workflow_id


class ExternalServiceError(EngineError):
    """A collaborator call (text generation, dispatch) failed."""


class TextGenerationError(ExternalServiceError):
    pass


class DispatchError(ExternalServiceError):
    pass


class StoreUnavailableError(EngineError):
    """The durable store could not be reached; fatal for the current phase."""


def is_store_fault(exc: BaseException) -> bool:
    """Connection-level database failures, as opposed to per-row errors."""
    return isinstance(exc, StoreUnavailableError | OperationalError | InterfaceError)


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(WorkflowValidationError)
    async def workflow_validation_handler(
        request: Request, exc: WorkflowValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": str(exc),
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.error("Store unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=503,
            content={
                "detail": "Store unavailable",
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
