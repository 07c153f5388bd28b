"""Post-auth redirect validation and user-facing auth error messages."""

from __future__ import annotations

import re
from urllib.parse import unquote

_DOMAIN_LIKE_PATH = re.compile(r"^/?(www\.|[a-z0-9-]+\.[a-z]{2,})", re.IGNORECASE)
# A '%' that does not start a valid escape makes the value undecodable.
_BROKEN_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

EXCLUDED_RETURN_PATHS = frozenset(
  {
    "/",
    "/auth/login",
    "/auth/sign-up",
    "/auth/callback",
    "/auth/confirm",
    "/auth/confirm/callback",
    "/auth/reset-password",
    "/pending-approval",
    "/setup-admin",
  }
)
EXCLUDED_RETURN_PREFIXES = ("/auth/", "/admin/", "/api/")

AUTH_ERROR_MESSAGES = {
  "invalid_credentials": "Invalid email or password. Please check your credentials and try again.",
  "email_not_confirmed": "Please check your email and click the confirmation link before signing in.",
  "invalid_return_path": "Invalid redirect destination. Please try again.",
  "auth_error": "An authentication error occurred. Please try again.",
  "reset_expired": "Your password reset link has expired or is invalid. Please request a new one.",
}
DEFAULT_AUTH_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


def validate_return_to(return_to: str | None) -> str | None:
  """Return the decoded in-app path for a `returnTo` value, or None when unsafe.

  Values are URL-decoded before checks so encoded tricks like `%2Fwww.` are caught.
  Only relative paths are accepted; anything resembling a host, auth pages and
  admin/api prefixes are rejected.
  """
  if not return_to or not isinstance(return_to, str):
    return None

  raw = return_to.strip()
  if _BROKEN_ESCAPE.search(raw):
    return None
  try:
    decoded = unquote(raw, errors="strict")
  except UnicodeDecodeError:
    return None

  if not decoded.startswith("/"):
    return None
  if "://" in decoded or "//" in decoded:
    return None
  if _DOMAIN_LIKE_PATH.match(decoded):
    return None
  if decoded in EXCLUDED_RETURN_PATHS:
    return None
  if decoded.startswith(EXCLUDED_RETURN_PREFIXES):
    return None
  return decoded


def get_auth_error_message(error_code: str | None) -> str | None:
  """Map an auth error code to a message fit for display."""
  if not error_code:
    return None
  return AUTH_ERROR_MESSAGES.get(error_code, DEFAULT_AUTH_ERROR_MESSAGE)
