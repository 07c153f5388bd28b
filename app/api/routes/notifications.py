import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_notification_service, parse_uuid
from app.api.models import SendMessageRequest
from app.core.database import get_db
from app.core.security import get_current_active_user
from app.notifications.contracts import Recipient
from app.notifications.inbox_repo import list_inbox, mark_read
from app.notifications.service import NotificationService
from app.schema.sql import User, UserStatus
from app.services.users import get_user_by_id, list_admin_ids

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_RECIPIENT = "admin"


@router.get("/notifications")
async def list_notifications(current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """Inbox of the caller with sender details, newest first."""
  items = await list_inbox(db, current_user.id)
  return {"notifications": items, "unread": sum(1 for item in items if not item["is_read"])}


@router.patch("/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str, current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, bool]:  # noqa: B008
  updated = await mark_read(db, notification_id=parse_uuid(notification_id, "notification"), recipient_id=current_user.id)
  if not updated:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")
  return {"success": True}


async def _resolve_recipient(db: AsyncSession, recipient_id: str) -> User:
  if recipient_id == ADMIN_RECIPIENT:
    admin_ids = await list_admin_ids(db)
    if not admin_ids:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin user not found.")
    # Member questions go to the first admin account.
    target = await get_user_by_id(db, admin_ids[0])
  else:
    target = await get_user_by_id(db, parse_uuid(recipient_id, "recipient"))

  if target is None or target.status != UserStatus.APPROVED:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found.")
  return target


@router.post("/notifications", status_code=status.HTTP_201_CREATED)
async def send_notification(
  request: SendMessageRequest,
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  notifications: NotificationService = Depends(get_notification_service),  # noqa: B008
) -> dict[str, Any]:
  """Send a message to one member, or to the administrator with recipient "admin"."""
  target = await _resolve_recipient(db, request.recipient_id)
  try:
    emailed = await notifications.send_message(sender_id=current_user.id, recipients=[Recipient(user_id=target.id, email=target.email, full_name=target.full_name)], message=request.message)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  return {"success": "Notification sent successfully", "recipient_id": str(target.id), "emailed": emailed}
