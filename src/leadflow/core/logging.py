"""Logging configuration using structlog."""

import logging
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, unbind_contextvars


def setup_logging(debug: bool = False) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: If True, use colored console output. If False, use JSON for production.
    """
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None, **fields: str) -> None:
    """Bind the HTTP correlation ID (plus any route fields) to subsequent log calls."""
    if request_id:
        fields["request_id"] = request_id
    if fields:
        bind_contextvars(**fields)


def bind_run_context(run_id: str, trigger: str = "scheduler") -> None:
    """Bind engine invocation context to all subsequent log calls.

    Args:
        run_id: Identifier of the current engine invocation.
        trigger: What started the invocation ("scheduler", "enroller", "api").
    """
    bind_contextvars(run_id=run_id, trigger=trigger)


def bind_phase(phase: str) -> None:
    """Bind the engine phase currently running."""
    bind_contextvars(phase=phase)


def unbind_phase() -> None:
    unbind_contextvars("phase")


def clear_request_context() -> None:
    """Clear all request-scoped context."""
    clear_contextvars()
