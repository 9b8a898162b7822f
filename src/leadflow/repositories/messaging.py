"""Repositories for message drafts and provider signals."""

from datetime import datetime
from uuid import UUID

from sqlmodel import select

from src.leadflow.models import MessageDraft, MessageSignal
from src.leadflow.repositories.base import BaseRepository


class MessageDraftRepository(BaseRepository[MessageDraft]):
    model = MessageDraft

    async def get_by_provider_message_id(self, message_id: str) -> MessageDraft | None:
        result = await self.session.execute(
            select(MessageDraft).where(MessageDraft.provider_message_id == message_id)
        )
        return result.scalars().first()


class MessageSignalRepository(BaseRepository[MessageSignal]):
    model = MessageSignal

    async def list_pending_ids(self, limit: int) -> list[UUID]:
        """Unprocessed signals, oldest first."""
        result = await self.session.execute(
            select(MessageSignal.id)
            .where(MessageSignal.processed_at.is_(None))  # type: ignore[union-attr]
            .order_by(MessageSignal.occurred_at, MessageSignal.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def exists_since(
        self,
        lead_id: UUID,
        event_type: str,
        since: datetime | None = None,
    ) -> bool:
        """Whether the lead produced an event of this type (optionally since a time)."""
        query = select(MessageSignal.id).where(
            MessageSignal.lead_id == lead_id,
            MessageSignal.event_type == event_type,
        )
        if since is not None:
            query = query.where(MessageSignal.occurred_at >= since)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def latest_inbound_at(self, lead_id: UUID, event_types: list[str]) -> datetime | None:
        """Time of the lead's most recent engagement event of the given types."""
        result = await self.session.execute(
            select(MessageSignal.occurred_at)
            .where(
                MessageSignal.lead_id == lead_id,
                MessageSignal.event_type.in_(event_types),  # type: ignore[attr-defined]
            )
            .order_by(MessageSignal.occurred_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()
