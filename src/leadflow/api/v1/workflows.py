"""Workflow definition endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.leadflow.api.dependencies import EngineKey, WorkflowServiceDep
from src.leadflow.models import Workflow, WorkflowStep
from src.leadflow.schemas.pagination import PaginatedResponse
from src.leadflow.schemas.workflow import (
    WorkflowCreate,
    WorkflowRead,
    WorkflowStepRead,
    WorkflowStepsReplace,
)

router = APIRouter(prefix="/workflows", tags=["workflows"], dependencies=[EngineKey])


def _to_read(workflow: Workflow, steps: list[WorkflowStep]) -> WorkflowRead:
    return WorkflowRead.model_validate(
        {
            **workflow.model_dump(),
            "steps": [WorkflowStepRead.model_validate(s) for s in steps],
        }
    )


def _not_found(workflow_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Workflow {workflow_id} not found",
    )


@router.get(
    "",
    response_model=PaginatedResponse[WorkflowRead],
    summary="List workflows",
    description="List an owner's workflows, newest first, with cursor-based pagination.",
)
async def list_workflows(
    service: WorkflowServiceDep,
    owner_id: Annotated[UUID, Query(description="Owning user")],
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[WorkflowRead]:
    workflows, next_cursor, has_more = await service.list_for_owner(
        owner_id, cursor=cursor, limit=limit
    )
    steps = await service.workflow_repo.steps_by_workflow([w.id for w in workflows])
    return PaginatedResponse(
        items=[_to_read(w, steps.get(w.id, [])) for w in workflows],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post(
    "",
    response_model=WorkflowRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create workflow",
    responses={
        201: {"description": "Workflow created"},
        422: {"description": "Invalid trigger or steps"},
    },
)
async def create_workflow(request: WorkflowCreate, service: WorkflowServiceDep) -> WorkflowRead:
    definition = await service.create(request)
    return _to_read(definition.workflow, definition.steps)


@router.put(
    "/{workflow_id}/steps",
    response_model=WorkflowRead,
    summary="Replace workflow steps",
    description=(
        "Replace the whole step list. Active enrollments keep their position; "
        "one past the new end completes on its next tick."
    ),
    responses={404: {"description": "Workflow not found"}},
)
async def replace_workflow_steps(
    workflow_id: UUID,
    request: WorkflowStepsReplace,
    service: WorkflowServiceDep,
) -> WorkflowRead:
    try:
        definition = await service.replace_steps(workflow_id, request.steps)
    except LookupError as e:
        raise _not_found(workflow_id) from e
    return _to_read(definition.workflow, definition.steps)


async def _set_active(
    workflow_id: UUID, is_active: bool, service: WorkflowServiceDep
) -> WorkflowRead:
    try:
        workflow = await service.set_active(workflow_id, is_active)
    except LookupError as e:
        raise _not_found(workflow_id) from e
    steps = await service.workflow_repo.list_steps(workflow_id)
    return _to_read(workflow, steps)


@router.post(
    "/{workflow_id}/activate",
    response_model=WorkflowRead,
    summary="Activate workflow",
    responses={404: {"description": "Workflow not found"}},
)
async def activate_workflow(workflow_id: UUID, service: WorkflowServiceDep) -> WorkflowRead:
    return await _set_active(workflow_id, True, service)


@router.post(
    "/{workflow_id}/deactivate",
    response_model=WorkflowRead,
    summary="Deactivate workflow",
    description="Stop matching new leads. Existing enrollments keep running.",
    responses={404: {"description": "Workflow not found"}},
)
async def deactivate_workflow(workflow_id: UUID, service: WorkflowServiceDep) -> WorkflowRead:
    return await _set_active(workflow_id, False, service)
