"""Keyset pagination over (created_at, id)."""

import base64
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page; null on the last page.",
    )
    has_more: bool = False


def encode_cursor(created_at: datetime, id: UUID) -> str:
    """Pack the sort key of the last row on a page into an opaque token."""
    raw = f"{created_at.isoformat()}|{id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Unpack a token produced by encode_cursor.

    Raises:
        ValueError: the token is not a cursor this service issued
    """
    try:
        created_at, _, id = base64.urlsafe_b64decode(cursor.encode()).decode().partition("|")
        return datetime.fromisoformat(created_at), UUID(id)
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError("Invalid cursor") from e
