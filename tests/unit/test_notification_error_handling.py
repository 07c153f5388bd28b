import urllib.error
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from app.notifications.contracts import EmailNotification, NotificationProviderError, Recipient
from app.notifications.email_sender import MailerSendConfig, MailerSendEmailSender, build_mailersend_payload
from app.notifications.inbox_repo import InboxEntry
from app.notifications.service import NotificationService


@pytest.fixture
def mock_email_sender():
  return MagicMock()


@pytest.fixture
def mock_inbox_repo():
  repo = MagicMock()
  repo.insert_many = AsyncMock()
  return repo


@pytest.fixture
def notification_service(mock_email_sender, mock_inbox_repo):
  return NotificationService(email_sender=mock_email_sender, inbox_repo=mock_inbox_repo, email_enabled=True, site_title="Dojo Video Library", site_url="https://dojo.example.com")


def _recipient(email: str = "student@example.com") -> Recipient:
  return Recipient(user_id=uuid.uuid4(), email=email, full_name="Student")


@pytest.mark.anyio
async def test_send_message_writes_inbox_and_counts_delivered_emails(notification_service, mock_email_sender, mock_inbox_repo):
  recipients = [_recipient("a@example.com"), _recipient("b@example.com")]
  sender_id = uuid.uuid4()

  delivered = await notification_service.send_message(sender_id=sender_id, recipients=recipients, message="  Class moved to 7pm  ")

  assert delivered == 2
  entries = mock_inbox_repo.insert_many.call_args[0][0]
  assert entries == [InboxEntry(sender_id=sender_id, recipient_id=recipient.user_id, message="Class moved to 7pm") for recipient in recipients]
  sent = mock_email_sender.send.call_args_list[0][0][0]
  assert sent.subject == "New notification from the Dojo Video Library"
  assert "Class moved to 7pm" in sent.text


@pytest.mark.anyio
async def test_send_message_rejects_blank_message(notification_service, mock_inbox_repo):
  with pytest.raises(ValueError, match="Message is required"):
    await notification_service.send_message(sender_id=None, recipients=[_recipient()], message="   ")
  mock_inbox_repo.insert_many.assert_not_called()


@pytest.mark.anyio
async def test_send_message_survives_provider_error(notification_service, mock_email_sender):
  mock_email_sender.send.side_effect = NotificationProviderError("MailerSend returned HTTP 403")

  delivered = await notification_service.send_message(sender_id=None, recipients=[_recipient()], message="Hello")

  assert delivered == 0


@pytest.mark.anyio
async def test_send_email_skips_when_disabled(mock_email_sender, mock_inbox_repo):
  service = NotificationService(email_sender=mock_email_sender, inbox_repo=mock_inbox_repo, email_enabled=False, site_title="Dojo")
  notification = EmailNotification(to_address="to@example.com", to_name=None, subject="Sub", text="Text", html="<p>Text</p>")

  assert await service.send_email(notification) is False
  mock_email_sender.send.assert_not_called()


@pytest.mark.anyio
async def test_notify_account_approved_logs_inbox_failure(notification_service, mock_email_sender, mock_inbox_repo):
  mock_inbox_repo.insert_many.side_effect = RuntimeError("db down")

  await notification_service.notify_account_approved(approver_id=uuid.uuid4(), recipient=_recipient())

  sent = mock_email_sender.send.call_args[0][0]
  assert sent.subject == "Your Dojo Video Library account has been approved"
  assert "https://dojo.example.com" in sent.text


def test_build_mailersend_payload_includes_names_when_present():
  config = MailerSendConfig(api_key="key", from_address="dojo@example.com", from_name="Dojo", timeout_seconds=5)
  notification = EmailNotification(to_address="to@example.com", to_name=None, subject="Sub", text="Text", html="<p>Text</p>")

  payload = build_mailersend_payload(config, notification)

  assert payload["from"] == {"email": "dojo@example.com", "name": "Dojo"}
  assert payload["to"] == [{"email": "to@example.com"}]
  assert payload["subject"] == "Sub"


def test_mailer_send_email_sender_raises_provider_error():
  config = MailerSendConfig(api_key="key", from_address="from@ex.com", from_name="From", timeout_seconds=5)
  sender = MailerSendEmailSender(config=config)
  notification = EmailNotification(to_address="to@ex.com", to_name="To", subject="Sub", text="Text", html="HTML")

  with patch("urllib.request.urlopen") as mock_urlopen:
    mock_urlopen.side_effect = urllib.error.HTTPError(url="http://api", code=403, msg="Forbidden", hdrs={}, fp=None)

    with pytest.raises(NotificationProviderError, match="HTTP 403"):
      sender.send(notification)


def test_mailer_send_email_sender_raises_on_unreachable_host():
  config = MailerSendConfig(api_key="key", from_address="from@ex.com", from_name=None, timeout_seconds=5)
  sender = MailerSendEmailSender(config=config)
  notification = EmailNotification(to_address="to@ex.com", to_name=None, subject="Sub", text="Text", html="HTML")

  with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("name resolution failed")):
    with pytest.raises(NotificationProviderError, match="unreachable"):
      sender.send(notification)
