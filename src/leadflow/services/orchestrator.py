"""One engine invocation: enroll, signals, inactivity, tick."""

from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import is_store_fault
from src.leadflow.core.logging import bind_phase, bind_run_context, get_logger, unbind_phase
from src.leadflow.core.notifications import MessageDispatcher
from src.leadflow.core.text_generation import TextGenerator
from src.leadflow.models.base import utc_now
from src.leadflow.schemas.engine import (
    EnrollSummary,
    ExecutionReport,
    ItemError,
    PhaseResult,
    RunSummary,
)
from src.leadflow.services.enrollment_service import EnrollmentService
from src.leadflow.services.inactivity_monitor import InactivityMonitor
from src.leadflow.services.signal_processor import SignalProcessor
from src.leadflow.services.step_executor import StepExecutor

logger = get_logger(__name__)


class Orchestrator:
    """Runs each engine phase once, in a fixed order, isolated from the others.

    A phase that hits a store fault is marked aborted and the next phase
    still runs; everything else is reported per item inside the phase.
    """

    def __init__(
        self,
        session: AsyncSession,
        text_generator: TextGenerator,
        dispatcher: MessageDispatcher,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.enrollment_service = EnrollmentService(session, self.settings)
        self.signal_processor = SignalProcessor(session, self.settings)
        self.inactivity_monitor = InactivityMonitor(
            session, self.settings, enrollment_service=self.enrollment_service
        )
        self.step_executor = StepExecutor(session, text_generator, dispatcher, self.settings)

    async def run(self, now: datetime | None = None, trigger: str = "scheduler") -> RunSummary:
        """Run one full engine pass and return its summary."""
        now = now or utc_now()
        summary = RunSummary(run_id=str(uuid4()), started_at=utc_now())
        bind_run_context(summary.run_id, trigger=trigger)
        logger.info("Engine run started", now=now.isoformat())

        enroll = await self._run_phase(
            "enroll",
            lambda: self.enrollment_service.enroll_matching(now),
        )
        signals = await self._run_phase(
            "signals",
            lambda: self.signal_processor.process_pending(now),
        )
        inactivity = await self._run_phase(
            "inactivity",
            lambda: self.inactivity_monitor.sweep(now),
        )
        tick = await self._run_phase(
            "tick",
            lambda: self.step_executor.tick(now),
        )

        summary.phases = {
            "enroll": enroll,
            "signals": signals,
            "inactivity": inactivity,
            "tick": tick,
        }
        summary.enrolled = enroll.succeeded + inactivity.succeeded
        summary.signals_processed = signals.succeeded
        summary.steps_executed = tick.executed if isinstance(tick, ExecutionReport) else 0
        summary.errors = self._collect_errors(summary.phases.values())
        summary.finished_at = utc_now()

        logger.info(
            "Engine run finished",
            enrolled=summary.enrolled,
            signals_processed=summary.signals_processed,
            steps_executed=summary.steps_executed,
            errors=len(summary.errors),
        )
        return summary

    async def enroll_only(self, now: datetime | None = None) -> EnrollSummary:
        """Narrow entry point: only the trigger-matching enrollment pass."""
        now = now or utc_now()
        run_id = str(uuid4())
        bind_run_context(run_id, trigger="enroller")

        result = await self._run_phase(
            "enroll",
            lambda: self.enrollment_service.enroll_matching(now),
        )
        return EnrollSummary(
            run_id=run_id,
            enrolled=result.succeeded,
            skipped=result.skipped,
            errors=self._collect_errors([result]),
        )

    async def _run_phase(
        self, name: str, phase: Callable[[], Awaitable[PhaseResult]]
    ) -> PhaseResult:
        bind_phase(name)
        try:
            logger.info("Phase started")
            result = await phase()
            logger.info(
                "Phase finished",
                processed=result.processed,
                succeeded=result.succeeded,
                failed=result.failed,
            )
            return result
        except SQLAlchemyError as e:
            return await self._abort(name, e)
        except Exception as e:
            if is_store_fault(e):
                return await self._abort(name, e)
            raise
        finally:
            unbind_phase()

    async def _abort(self, name: str, exc: Exception) -> PhaseResult:
        logger.error("Phase aborted, store unavailable", error=str(exc))
        try:
            await self.session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning("Rollback after store fault failed", error=str(rollback_error))
        result = PhaseResult(aborted=True)
        result.record_error(name, "store unavailable")
        return result

    def _collect_errors(self, phases: Iterable[PhaseResult]) -> list[ItemError]:
        errors = [error for phase in phases for error in phase.errors]
        return errors[: self.settings.max_reported_errors]
