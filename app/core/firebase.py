import datetime
import logging
from typing import Any

import firebase_admin
from app.config import get_settings
from firebase_admin import auth, credentials

logger = logging.getLogger(__name__)


def initialize_firebase() -> None:
  """Initializes the Firebase Admin SDK."""
  if firebase_admin._apps:
    return

  settings = get_settings()
  if not settings.firebase_project_id:
    logger.warning("Firebase Project ID not set. Firebase Admin SDK not initialized.")
    return

  try:
    if settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    else:
      # Application Default Credentials on hosted runtimes.
      firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})
    logger.info("Firebase Admin SDK initialized successfully.")
  except Exception as e:
    logger.error(f"Failed to initialize Firebase Admin SDK: {e}")


def _ensure_initialized() -> None:
  if not firebase_admin._apps:
    initialize_firebase()


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verifies a Firebase ID token. Lazily initializes if needed."""
  _ensure_initialized()
  try:
    return auth.verify_id_token(id_token)
  except Exception as e:
    logger.error(f"Token verification failed: {e}")
    return None


def create_session_cookie(id_token: str, expires_in_seconds: int) -> str | None:
  """Exchange a freshly issued ID token for a long-lived session cookie."""
  _ensure_initialized()
  try:
    return auth.create_session_cookie(id_token, expires_in=datetime.timedelta(seconds=expires_in_seconds))
  except Exception as e:
    logger.error(f"Session cookie creation failed: {e}")
    return None


def verify_session_cookie(session_cookie: str) -> dict[str, Any] | None:
  """Verify a session cookie, rejecting revoked sessions."""
  _ensure_initialized()
  try:
    return auth.verify_session_cookie(session_cookie, check_revoked=True)
  except Exception as e:
    logger.warning(f"Session cookie verification failed: {e}")
    return None


def revoke_refresh_tokens(firebase_uid: str) -> None:
  """Invalidate every session of a user; used on sign-out and account deletion."""
  _ensure_initialized()
  try:
    auth.revoke_refresh_tokens(firebase_uid)
  except Exception as e:
    logger.warning(f"Refresh token revocation failed uid={firebase_uid}: {e}")
