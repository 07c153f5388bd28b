"""Factory helpers for notification services."""

from __future__ import annotations

from app.config import Settings
from app.notifications.email_sender import MailerSendConfig, MailerSendEmailSender, NullEmailSender
from app.notifications.inbox_repo import InboxRepository, NullInboxRepository
from app.notifications.service import NotificationService


def build_notification_service(settings: Settings) -> NotificationService:
  """Construct a notification service based on environment configuration."""
  # Email stays off unless explicitly enabled so dev and test never deliver.
  if settings.email_notifications_enabled:
    config = MailerSendConfig(
      api_key=settings.mailersend_api_key or "",
      from_address=settings.email_from_address or "",
      from_name=settings.email_from_name,
      timeout_seconds=settings.mailersend_timeout_seconds,
      base_url=settings.mailersend_base_url,
    )
    email_sender = MailerSendEmailSender(config=config)
  else:
    email_sender = NullEmailSender()

  inbox_repo: InboxRepository = InboxRepository() if settings.pg_dsn else NullInboxRepository()
  return NotificationService(email_sender=email_sender, inbox_repo=inbox_repo, email_enabled=settings.email_notifications_enabled, site_title=settings.site_title, site_url=settings.site_url)
