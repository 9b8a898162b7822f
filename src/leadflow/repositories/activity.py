"""Repository for the append-only ActionLog."""

from uuid import UUID

from sqlmodel import select

from src.leadflow.models import ActionLog
from src.leadflow.repositories.base import BaseRepository


class ActionLogRepository(BaseRepository[ActionLog]):
    model = ActionLog

    async def latest_for_enrollment(
        self, enrollment_id: UUID, action_type: str
    ) -> ActionLog | None:
        """Most recent log of an action type produced by one enrollment."""
        result = await self.session.execute(
            select(ActionLog)
            .where(
                ActionLog.enrollment_id == enrollment_id,
                ActionLog.action_type == action_type,
            )
            .order_by(ActionLog.created_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()
