"""Per-request structured log context."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.leadflow.core.logging import bind_request_context, clear_request_context


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Tag every log line emitted while serving a request with its id and route."""
    clear_request_context()
    bind_request_context(correlation_id.get(), method=request.method, path=request.url.path)
    try:
        return await call_next(request)
    finally:
        clear_request_context()
