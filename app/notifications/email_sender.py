"""Email delivery implementations.

MailerSend is called through its HTTP API with the standard library, so no provider
SDK is needed at runtime.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass

from app.notifications.contracts import EmailNotification, EmailSender, NotificationProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailerSendConfig:
  api_key: str
  from_address: str
  from_name: str | None
  timeout_seconds: int
  base_url: str = "https://api.mailersend.com/v1"


def build_mailersend_payload(config: MailerSendConfig, notification: EmailNotification) -> dict[str, object]:
  sender: dict[str, str] = {"email": config.from_address}
  if config.from_name:
    sender["name"] = config.from_name
  recipient: dict[str, str] = {"email": notification.to_address}
  if notification.to_name:
    recipient["name"] = notification.to_name
  return {"from": sender, "to": [recipient], "subject": notification.subject, "text": notification.text, "html": notification.html}


class MailerSendEmailSender(EmailSender):
  """MailerSend-backed email sender."""

  def __init__(self, *, config: MailerSendConfig) -> None:
    self._config = config

  def send(self, notification: EmailNotification) -> dict[str, str | None]:
    payload = build_mailersend_payload(self._config, notification)
    request = urllib.request.Request(
      url=f"{self._config.base_url.rstrip('/')}/email",
      data=json.dumps(payload).encode("utf-8"),
      method="POST",
      headers={"Authorization": f"Bearer {self._config.api_key}", "Content-Type": "application/json", "Accept": "application/json"},
    )

    try:
      with urllib.request.urlopen(request, timeout=self._config.timeout_seconds) as response:
        headers = dict(response.headers.items())
    except urllib.error.HTTPError as exc:
      raw_error = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
      logger.error("MailerSend email request failed status=%s body=%s", exc.code, raw_error)
      raise NotificationProviderError(f"MailerSend returned HTTP {exc.code}") from exc
    except urllib.error.URLError as exc:
      logger.error("MailerSend email request failed: %s", exc)
      raise NotificationProviderError(f"MailerSend unreachable: {exc.reason}") from exc

    # MailerSend answers 202 with an empty body; identifiers come back as headers.
    message_id = headers.get("X-Message-Id") or headers.get("X-Message-ID")
    return {"provider": "mailersend", "message_id": message_id, "request_id": headers.get("X-Request-Id") or headers.get("X-Request-ID")}


class NullEmailSender(EmailSender):
  """No-op email sender used when notifications are disabled."""

  def send(self, notification: EmailNotification) -> dict[str, str | None]:
    logger.debug("Email notifications disabled; dropping email to=%s subject=%s", notification.to_address, notification.subject)
    return {"provider": None, "message_id": None, "request_id": None}
