"""Workflow definitions: creation, editing, and validated loading for the engine."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.leadflow.core.exceptions import WorkflowValidationError
from src.leadflow.core.logging import get_logger
from src.leadflow.models import Workflow, WorkflowStep
from src.leadflow.models.base import utc_now
from src.leadflow.repositories import EnrollmentRepository, WorkflowRepository
from src.leadflow.schemas.workflow import (
    StepSpec,
    Trigger,
    WorkflowCreate,
    step_adapter,
    step_params,
    trigger_adapter,
    validate_step_list,
)

logger = get_logger(__name__)


@dataclass
class WorkflowDefinition:
    """A workflow with its trigger and steps parsed into typed specs.

    Built once per phase and treated as read-only.
    """

    workflow: Workflow
    trigger: Trigger
    steps: list[WorkflowStep]
    specs: dict[int, Any] = field(default_factory=dict)  # step_order -> StepSpec

    @property
    def id(self) -> UUID:
        return self.workflow.id

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def step(self, order: int) -> WorkflowStep | None:
        if 1 <= order <= len(self.steps):
            return self.steps[order - 1]
        return None

    def spec(self, order: int) -> Any:
        return self.specs.get(order)


def build_definition(workflow: Workflow, steps: list[WorkflowStep]) -> WorkflowDefinition:
    """Parse and check a stored workflow.

    Raises:
        WorkflowValidationError: malformed trigger, non-dense ordering,
            invalid step parameters, or a branch to a missing step
    """
    try:
        trigger = trigger_adapter.validate_python(workflow.trigger or {})
    except ValidationError as e:
        raise WorkflowValidationError(
            f"Workflow {workflow.id} has an invalid trigger: {e.errors()[0]['msg']}",
            workflow.id,
        ) from e

    ordered = sorted(steps, key=lambda s: s.step_order)
    expected = list(range(1, len(ordered) + 1))
    if [s.step_order for s in ordered] != expected:
        raise WorkflowValidationError(
            f"Workflow {workflow.id} step orders must be dense and start at 1",
            workflow.id,
        )

    specs: dict[int, Any] = {}
    for step in ordered:
        try:
            specs[step.step_order] = step_adapter.validate_python(
                {**(step.params or {}), "action": step.action, "delay_days": step.delay_days}
            )
        except ValidationError as e:
            raise WorkflowValidationError(
                f"Workflow {workflow.id} step {step.step_order} is invalid: "
                f"{e.errors()[0]['msg']}",
                workflow.id,
            ) from e

    try:
        validate_step_list([specs[o] for o in expected])
    except ValueError as e:
        raise WorkflowValidationError(f"Workflow {workflow.id}: {e}", workflow.id) from e

    return WorkflowDefinition(workflow=workflow, trigger=trigger, steps=ordered, specs=specs)


def steps_from_specs(specs: list[StepSpec]) -> list[WorkflowStep]:
    return [
        WorkflowStep(
            step_order=order,
            action=spec.action,
            delay_days=spec.delay_days,
            params=step_params(spec),
        )
        for order, spec in enumerate(specs, start=1)
    ]


class WorkflowService:
    """Service for workflow definitions."""

    def __init__(
        self,
        session: AsyncSession,
        workflow_repo: WorkflowRepository | None = None,
        enrollment_repo: EnrollmentRepository | None = None,
    ):
        self.session = session
        self.workflow_repo = workflow_repo or WorkflowRepository(session)
        self.enrollment_repo = enrollment_repo or EnrollmentRepository(session)

    async def create(self, data: WorkflowCreate) -> WorkflowDefinition:
        now = utc_now()
        workflow = Workflow(
            owner_id=data.owner_id,
            name=data.name,
            trigger=data.trigger.model_dump(mode="json"),
            priority=data.priority,
            is_active=data.is_active,
            created_at=now,
            updated_at=now,
        )
        self.workflow_repo.add(workflow)
        await self.session.flush()

        steps = steps_from_specs(data.steps)
        for step in steps:
            step.workflow_id = workflow.id
            self.session.add(step)
        await self.session.commit()

        logger.info(
            "Workflow created",
            workflow_id=str(workflow.id),
            owner_id=str(workflow.owner_id),
            trigger_type=workflow.trigger_type,
            steps=len(steps),
        )
        return build_definition(workflow, steps)

    async def replace_steps(self, workflow_id: UUID, specs: list[StepSpec]) -> WorkflowDefinition:
        """Replace a workflow's whole step list.

        Active enrollments keep their current_step_order. Those left past the
        new last step are completed in the same transaction.
        """
        workflow = await self._get_or_raise(workflow_id)
        steps = steps_from_specs(specs)
        await self.workflow_repo.replace_steps(workflow, steps)
        completed = await self.enrollment_repo.complete_past_step(
            workflow_id, len(steps), utc_now()
        )
        await self.session.commit()
        logger.info(
            "Workflow steps replaced",
            workflow_id=str(workflow_id),
            steps=len(steps),
            enrollments_completed=completed,
        )
        return build_definition(workflow, steps)

    async def set_active(self, workflow_id: UUID, is_active: bool) -> Workflow:
        workflow = await self._get_or_raise(workflow_id)
        workflow.is_active = is_active
        workflow.updated_at = utc_now()
        self.workflow_repo.add(workflow)
        await self.session.commit()
        logger.info("Workflow activation changed", workflow_id=str(workflow_id), active=is_active)
        return workflow

    async def list_for_owner(
        self, owner_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Workflow], str | None, bool]:
        return await self.workflow_repo.list_by_owner(owner_id, cursor=cursor, limit=limit)

    async def get_definition(self, workflow_id: UUID) -> WorkflowDefinition | None:
        """Load and validate one workflow, active or not.

        Raises:
            WorkflowValidationError: if the stored definition is malformed
        """
        workflow = await self.workflow_repo.get_by_id(workflow_id)
        if workflow is None:
            return None
        steps = await self.workflow_repo.list_steps(workflow_id)
        definition = build_definition(workflow, steps)
        self._detach(definition)
        return definition

    async def load_active_definitions(self, owner_id: UUID | None = None) -> list[WorkflowDefinition]:
        """Load active workflows in matching order, skipping malformed ones.

        Definitions come back detached from the session so that per-item
        rollbacks later in the phase cannot expire them.
        """
        workflows = await self.workflow_repo.list_active(owner_id)
        steps_by_workflow = await self.workflow_repo.steps_by_workflow([w.id for w in workflows])

        definitions: list[WorkflowDefinition] = []
        for workflow in workflows:
            try:
                definition = build_definition(workflow, steps_by_workflow.get(workflow.id, []))
            except WorkflowValidationError as e:
                logger.warning(
                    "Skipping invalid workflow",
                    workflow_id=str(workflow.id),
                    error=str(e),
                )
                continue
            definitions.append(definition)

        for definition in definitions:
            self._detach(definition)
        return definitions

    def _detach(self, definition: WorkflowDefinition) -> None:
        for obj in [definition.workflow, *definition.steps]:
            if obj in self.session:
                self.session.expunge(obj)

    async def _get_or_raise(self, workflow_id: UUID) -> Workflow:
        workflow = await self.workflow_repo.get_by_id(workflow_id)
        if workflow is None:
            raise LookupError(f"Workflow {workflow_id} not found")
        return workflow
