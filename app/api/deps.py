"""Shared FastAPI dependencies for routes."""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status

from app.config import Settings, get_settings
from app.core.request_cache import RequestDeduplicator, get_request_deduplicator
from app.notifications.factory import build_notification_service
from app.notifications.service import NotificationService

__all__ = ["RequestDeduplicator", "get_notification_service", "get_request_deduplicator", "parse_uuid"]


def get_notification_service(settings: Settings = Depends(get_settings)) -> NotificationService:  # noqa: B008
  return build_notification_service(settings)


def parse_uuid(raw: str, label: str) -> uuid.UUID:
  """Parse a path id, answering 400 instead of a database error for malformed values."""
  try:
    return uuid.UUID(raw)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} id.") from exc
