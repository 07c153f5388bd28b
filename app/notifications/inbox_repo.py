"""Repository helpers for the member inbox (`notifications` table)."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from app.core.database import get_session_factory
from app.schema.sql import Notification, User
from app.utils.dates import format_time_ago
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboxEntry:
  sender_id: uuid.UUID | None
  recipient_id: uuid.UUID
  message: str


class InboxRepository:
  """Persist inbox messages to Postgres on a dedicated session."""

  async def insert_many(self, entries: list[InboxEntry]) -> None:
    if not entries:
      return
    session_factory = get_session_factory()
    if session_factory is None:
      return
    async with session_factory() as session:
      session.add_all([Notification(sender_id=entry.sender_id, recipient_id=entry.recipient_id, message=entry.message, is_read=False) for entry in entries])
      await session.commit()


class NullInboxRepository(InboxRepository):
  """No-op repository when persistence is unavailable."""

  async def insert_many(self, entries: list[InboxEntry]) -> None:
    logger.debug("Inbox persistence disabled; dropping %d message(s)", len(entries))


async def list_inbox(session: AsyncSession, recipient_id: uuid.UUID) -> list[dict[str, Any]]:
  """Inbox for one member, newest first, with the sender's name and email."""
  sender = aliased(User)
  stmt = (
    select(Notification, sender.full_name, sender.email, sender.profile_image_url)
    .outerjoin(sender, sender.id == Notification.sender_id)
    .where(Notification.recipient_id == recipient_id)
    .order_by(Notification.created_at.desc())
  )
  result = await session.execute(stmt)
  return [
    {
      "id": str(row[0].id),
      "sender_id": str(row[0].sender_id) if row[0].sender_id else None,
      "message": row[0].message,
      "is_read": row[0].is_read,
      "created_at": row[0].created_at.isoformat() if row[0].created_at else None,
      "time_ago": format_time_ago(row[0].created_at) if row[0].created_at else None,
      "sender": {"full_name": row[1], "email": row[2], "profile_image_url": row[3]} if row[0].sender_id else None,
    }
    for row in result.all()
  ]


async def mark_read(session: AsyncSession, *, notification_id: uuid.UUID, recipient_id: uuid.UUID) -> bool:
  """Mark one of the member's own messages as read."""
  stmt = update(Notification).where(Notification.id == notification_id, Notification.recipient_id == recipient_id).values(is_read=True)
  result = await session.execute(stmt)
  await session.commit()
  return bool(result.rowcount)
