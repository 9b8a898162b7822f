"""Test helpers: collaborator fakes and common data creation patterns."""

from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.leadflow.core.exceptions import DispatchError, TextGenerationError
from src.leadflow.core.notifications import OutboundMessage
from src.leadflow.core.text_generation import GeneratedMessage, LeadContext
from src.leadflow.models import ActionLog, Enrollment
from src.leadflow.schemas.workflow import WorkflowCreate
from src.leadflow.services.workflow_service import WorkflowDefinition, WorkflowService


class FakeTextGenerator:
    """Returns a fixed message and records every context it was asked about."""

    def __init__(self) -> None:
        self.calls: list[LeadContext] = []

    async def generate(self, context: LeadContext) -> GeneratedMessage:
        self.calls.append(context)
        return GeneratedMessage(
            subject=f"Hello {context.business_name}",
            body=f"A {context.tone} {context.message_type} for {context.business_name}.",
        )


class FailingTextGenerator:
    async def generate(self, context: LeadContext) -> GeneratedMessage:
        raise TextGenerationError("text generation unavailable")


class FakeDispatcher:
    """Records sent messages and hands back sequential provider ids."""

    def __init__(self) -> None:
        self.sent: list[OutboundMessage] = []

    async def send(self, message: OutboundMessage) -> str:
        self.sent.append(message)
        return f"provider-{len(self.sent)}"


class FailingDispatcher:
    async def send(self, message: OutboundMessage) -> str:
        raise DispatchError("provider rejected the message")


async def create_workflow(
    session: AsyncSession,
    owner_id: UUID,
    trigger: dict[str, Any],
    steps: list[dict[str, Any]],
    **kwargs: Any,
) -> WorkflowDefinition:
    """Create a workflow through the service, as the API would."""
    data = WorkflowCreate.model_validate(
        {
            "owner_id": owner_id,
            "name": kwargs.pop("name", "Test workflow"),
            "trigger": trigger,
            "steps": steps,
            **kwargs,
        }
    )
    return await WorkflowService(session).create(data)


T = TypeVar("T")


async def reload(session: AsyncSession, model: type[T], id: Any) -> T:
    """Fetch a fresh copy of a row, bypassing the session's identity map."""
    result = await session.execute(
        select(model).where(model.id == id).execution_options(populate_existing=True)  # type: ignore[attr-defined]
    )
    return result.scalar_one()


async def enrollments_for(session: AsyncSession, lead_id: UUID) -> list[Enrollment]:
    result = await session.execute(
        select(Enrollment)
        .where(Enrollment.lead_id == lead_id)
        .order_by(Enrollment.enrolled_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def action_logs_for(session: AsyncSession, lead_id: UUID) -> list[ActionLog]:
    result = await session.execute(
        select(ActionLog)
        .where(ActionLog.lead_id == lead_id)
        .order_by(ActionLog.created_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
