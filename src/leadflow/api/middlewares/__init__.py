"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.leadflow.core.config import Settings

from .logging_context import logging_context_middleware

__all__ = ["setup_middlewares", "logging_context_middleware"]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure application middlewares (last added runs first)."""

    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", "X-Engine-Key", "X-Request-ID"],
    )

    # Correlation ID - generates/propagates X-Request-ID; outermost
    app.add_middleware(CorrelationIdMiddleware)
