"""Email bodies for member notifications.

HTML uses inline styles only, and every interpolated value is escaped.
"""

from __future__ import annotations

import html

_HTML_SHELL = (
  '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
  '<div style="background: #1f2937; padding: 20px; text-align: center;">'
  '<h1 style="color: white; margin: 0;">{title}</h1>'
  "</div>"
  '<div style="background: #f9fafb; padding: 30px;">{body}</div>'
  "</div>"
)
_PARAGRAPH = '<p style="font-size: 16px; color: #374151;">{text}</p>'


def _greeting(full_name: str | None) -> str:
  return f"Hi {full_name}," if full_name else "Hi,"


def _render(site_title: str, paragraphs: list[str]) -> str:
  body = "".join(_PARAGRAPH.format(text=html.escape(paragraph)) for paragraph in paragraphs)
  return _HTML_SHELL.format(title=html.escape(site_title), body=body)


def render_message_email(*, site_title: str, full_name: str | None, message: str) -> tuple[str, str, str]:
  """Subject, text and HTML for an inbox message copied to email."""
  subject = f"New notification from the {site_title}"
  paragraphs = [_greeting(full_name), message]
  return subject, "\n\n".join(paragraphs), _render(site_title, paragraphs)


def render_account_approved_email(*, site_title: str, full_name: str | None, site_url: str | None) -> tuple[str, str, str]:
  subject = f"Your {site_title} account has been approved"
  paragraphs = [_greeting(full_name), f"Your account for the {site_title} has been approved. You can now sign in and browse the library."]
  if site_url:
    paragraphs.append(f"Sign in at {site_url}")
  return subject, "\n\n".join(paragraphs), _render(site_title, paragraphs)


def approval_inbox_message(site_title: str) -> str:
  return f"Welcome! Your account for the {site_title} has been approved."
