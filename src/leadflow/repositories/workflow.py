"""Repository for Workflow and WorkflowStep entities."""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select

from src.leadflow.models import Workflow, WorkflowStep
from src.leadflow.models.base import utc_now
from src.leadflow.repositories.base import BaseRepository


class WorkflowRepository(BaseRepository[Workflow]):
    """Repository for workflow definitions."""

    model = Workflow

    async def list_active(self, owner_id: UUID | None = None) -> list[Workflow]:
        """List active workflows in matching order.

        Ordered by priority, then creation time, then id so the first-match
        rule is deterministic across invocations.
        """
        query = select(Workflow).where(Workflow.is_active == True)  # noqa: E712
        if owner_id is not None:
            query = query.where(Workflow.owner_id == owner_id)
        query = query.order_by(Workflow.priority, Workflow.created_at, Workflow.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_owner(
        self,
        owner_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Workflow], str | None, bool]:
        query = select(Workflow).where(Workflow.owner_id == owner_id)
        return await self.paginate(query, cursor, limit)

    async def list_steps(self, workflow_id: UUID) -> list[WorkflowStep]:
        """Get a workflow's steps ordered by step_order."""
        result = await self.session.execute(
            select(WorkflowStep)
            .where(WorkflowStep.workflow_id == workflow_id)
            .order_by(WorkflowStep.step_order)
        )
        return list(result.scalars().all())

    async def steps_by_workflow(
        self, workflow_ids: list[UUID]
    ) -> dict[UUID, list[WorkflowStep]]:
        """Load the steps of several workflows in one query."""
        if not workflow_ids:
            return {}
        result = await self.session.execute(
            select(WorkflowStep)
            .where(WorkflowStep.workflow_id.in_(workflow_ids))  # type: ignore[attr-defined]
            .order_by(WorkflowStep.workflow_id, WorkflowStep.step_order)
        )
        grouped: dict[UUID, list[WorkflowStep]] = defaultdict(list)
        for step in result.scalars().all():
            grouped[step.workflow_id].append(step)
        return dict(grouped)

    async def replace_steps(self, workflow: Workflow, steps: list[WorkflowStep]) -> None:
        """Swap the step list of a workflow (no commit).

        Steps are immutable; edits always delete and re-insert the full list.
        """
        await self.session.execute(
            delete(WorkflowStep).where(WorkflowStep.workflow_id == workflow.id)  # type: ignore[arg-type]
        )
        await self.session.flush()
        for step in steps:
            step.workflow_id = workflow.id
            self.session.add(step)
        workflow.updated_at = utc_now()
        self.session.add(workflow)
