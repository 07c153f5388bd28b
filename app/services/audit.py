"""Audit trail for account lifecycle events."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from app.schema.sql import AuditAction, AuditLog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

AUDIT_LIST_LIMIT = 100


async def log_audit_event(
  session: AsyncSession,
  *,
  action: AuditAction,
  actor_id: uuid.UUID | None,
  actor_email: str | None,
  target_id: uuid.UUID | None,
  target_email: str | None,
  additional_data: dict[str, Any] | None = None,
) -> None:
  """Record an audit row; failures are logged so they never break the audited action."""
  entry = AuditLog(actor_id=actor_id, actor_email=actor_email, action=action, target_id=target_id, target_email=target_email, additional_data=additional_data)
  try:
    session.add(entry)
    await session.commit()
  except Exception:  # noqa: BLE001
    await session.rollback()
    logger.error("Failed to write audit log action=%s target_id=%s", action.value, target_id, exc_info=True)


async def list_audit_logs(session: AsyncSession, *, limit: int = AUDIT_LIST_LIMIT) -> list[AuditLog]:
  result = await session.execute(select(AuditLog).order_by(AuditLog.created_at.desc()).limit(limit))
  return list(result.scalars().all())


async def clear_audit_logs(session: AsyncSession) -> int:
  result = await session.execute(delete(AuditLog))
  await session.commit()
  return int(result.rowcount or 0)


def serialize_audit_log(entry: AuditLog) -> dict[str, Any]:
  return {
    "id": str(entry.id),
    "actor_id": str(entry.actor_id) if entry.actor_id else None,
    "actor_email": entry.actor_email,
    "action": entry.action.value if isinstance(entry.action, AuditAction) else entry.action,
    "target_id": str(entry.target_id) if entry.target_id else None,
    "target_email": entry.target_email,
    "additional_data": entry.additional_data,
    "created_at": entry.created_at.isoformat() if entry.created_at else None,
  }
