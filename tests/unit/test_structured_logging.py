"""Tests for structured logging context."""

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.leadflow.core.logging import (
    bind_phase,
    bind_request_context,
    bind_run_context,
    clear_request_context,
    unbind_phase,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Create a capturing logger for tests."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    """Test that None request_id is not bound."""
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_request_context_with_route(capturing_logger):
    bind_request_context("req-9", method="POST", path="/api/v1/engine/run")
    structlog.get_logger().info("test message")

    entry = capturing_logger.calls[0]
    assert entry.kwargs["request_id"] == "req-9"
    assert entry.kwargs["method"] == "POST"
    assert entry.kwargs["path"] == "/api/v1/engine/run"


def test_bind_run_context(capturing_logger):
    bind_run_context("run-1", trigger="api")
    structlog.get_logger().info("Engine run started")

    entry = capturing_logger.calls[0]
    assert entry.kwargs["run_id"] == "run-1"
    assert entry.kwargs["trigger"] == "api"


def test_phase_is_bound_then_unbound(capturing_logger):
    logger = structlog.get_logger()
    bind_run_context("run-2")

    bind_phase("tick")
    logger.info("inside")
    unbind_phase()
    logger.info("outside")

    inside, outside = capturing_logger.calls
    assert inside.kwargs["phase"] == "tick"
    assert "phase" not in outside.kwargs
    assert outside.kwargs["run_id"] == "run-2"


def test_clear_request_context(capturing_logger):
    bind_run_context("run-3")
    clear_request_context()
    structlog.get_logger().info("after clear")

    assert "run_id" not in capturing_logger.calls[0].kwargs
