"""Notification orchestration for member-facing events."""

from __future__ import annotations

import logging
import uuid

from starlette.concurrency import run_in_threadpool

from app.notifications.contracts import EmailNotification, EmailSender, NotificationProviderError, Recipient
from app.notifications.inbox_repo import InboxEntry, InboxRepository
from app.notifications.templates import approval_inbox_message, render_account_approved_email, render_message_email

logger = logging.getLogger(__name__)


class NotificationService:
  """Writes inbox messages and mirrors them to email.

  Inbox writes are part of the caller's contract and propagate errors; email is
  best-effort and never fails the request.
  """

  def __init__(self, *, email_sender: EmailSender, inbox_repo: InboxRepository, email_enabled: bool, site_title: str, site_url: str | None = None) -> None:
    self._email_sender = email_sender
    self._inbox_repo = inbox_repo
    self._email_enabled = email_enabled
    self._site_title = site_title
    self._site_url = site_url

  async def send_email(self, notification: EmailNotification) -> bool:
    """Deliver one email; returns False instead of raising on failure."""
    if not self._email_enabled:
      return False
    try:
      await run_in_threadpool(self._email_sender.send, notification)
    except NotificationProviderError as exc:
      # Provider errors (bad address, quota) are expected; skip the traceback.
      logger.error("Email notification delivery failed (provider error): %s", exc)
      return False
    except Exception as exc:  # noqa: BLE001
      logger.error("Email notification delivery failed: %s", exc, exc_info=True)
      return False
    return True

  async def send_message(self, *, sender_id: uuid.UUID | None, recipients: list[Recipient], message: str) -> int:
    """Drop `message` into each recipient's inbox, then email them. Returns emails delivered."""
    message = message.strip()
    if not message:
      raise ValueError("Message is required")

    await self._inbox_repo.insert_many([InboxEntry(sender_id=sender_id, recipient_id=recipient.user_id, message=message) for recipient in recipients])

    delivered = 0
    for recipient in recipients:
      subject, text_body, html_body = render_message_email(site_title=self._site_title, full_name=recipient.full_name, message=message)
      if await self.send_email(EmailNotification(to_address=recipient.email, to_name=recipient.full_name, subject=subject, text=text_body, html=html_body)):
        delivered += 1
    return delivered

  async def notify_account_approved(self, *, approver_id: uuid.UUID | None, recipient: Recipient) -> None:
    """Welcome message plus approval email; failures are logged only."""
    try:
      await self._inbox_repo.insert_many([InboxEntry(sender_id=approver_id, recipient_id=recipient.user_id, message=approval_inbox_message(self._site_title))])
    except Exception as exc:  # noqa: BLE001
      logger.error("Approval inbox message failed user_id=%s error=%s", recipient.user_id, exc, exc_info=True)

    subject, text_body, html_body = render_account_approved_email(site_title=self._site_title, full_name=recipient.full_name, site_url=self._site_url)
    await self.send_email(EmailNotification(to_address=recipient.email, to_name=recipient.full_name, subject=subject, text=text_body, html=html_body))
