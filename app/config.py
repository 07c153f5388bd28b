"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the video library service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  superadmin_email: str | None
  session_cookie_name: str
  session_ttl_seconds: int
  cookie_domains: tuple[str, ...]
  email_notifications_enabled: bool
  email_from_address: str | None
  email_from_name: str | None
  mailersend_api_key: str | None
  mailersend_timeout_seconds: int
  mailersend_base_url: str
  site_title: str
  site_url: str | None

  @property
  def secure_cookies(self) -> bool:
    """Only mark cookies secure in production so local http development keeps working."""
    return self.environment in {"production", "prod"}


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("VIDEOLIB_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("VIDEOLIB_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("VIDEOLIB_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_csv(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ()
  return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("VIDEOLIB_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("VIDEOLIB_DEBUG"))

  log_max_bytes = _positive_int("VIDEOLIB_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("VIDEOLIB_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("VIDEOLIB_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("VIDEOLIB_LOG_HTTP_4XX"))

  session_ttl_seconds = _positive_int("VIDEOLIB_SESSION_TTL_SECONDS", "432000")
  # Firebase rejects session cookies shorter than 5 minutes or longer than 2 weeks.
  if not 300 <= session_ttl_seconds <= 1209600:
    raise ValueError("VIDEOLIB_SESSION_TTL_SECONDS must be between 300 and 1209600.")

  email_notifications_enabled = _parse_bool(os.getenv("VIDEOLIB_EMAIL_NOTIFICATIONS_ENABLED"))
  email_from_address = _optional_str(os.getenv("VIDEOLIB_EMAIL_FROM_ADDRESS"))
  mailersend_api_key = _optional_str(os.getenv("VIDEOLIB_MAILERSEND_API_KEY"))
  mailersend_timeout_seconds = _positive_int("VIDEOLIB_MAILERSEND_TIMEOUT_SECONDS", "10")

  # Validate email settings only when delivery is enabled.
  if email_notifications_enabled:
    if not email_from_address:
      raise ValueError("VIDEOLIB_EMAIL_FROM_ADDRESS must be set when email notifications are enabled.")

    if not mailersend_api_key:
      raise ValueError("VIDEOLIB_MAILERSEND_API_KEY must be set when email notifications are enabled.")

  superadmin_email = _optional_str(os.getenv("VIDEOLIB_SUPERADMIN_EMAIL"))

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("VIDEOLIB_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=os.getenv("VIDEOLIB_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=int(os.getenv("VIDEOLIB_PG_CONNECT_TIMEOUT", "5")),
    firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
    firebase_service_account_json_path=os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH"),
    superadmin_email=superadmin_email.lower() if superadmin_email else None,
    session_cookie_name=(os.getenv("VIDEOLIB_SESSION_COOKIE_NAME") or "videolib_session").strip(),
    session_ttl_seconds=session_ttl_seconds,
    cookie_domains=_parse_csv(os.getenv("VIDEOLIB_COOKIE_DOMAINS")),
    email_notifications_enabled=email_notifications_enabled,
    email_from_address=email_from_address,
    email_from_name=_optional_str(os.getenv("VIDEOLIB_EMAIL_FROM_NAME")),
    mailersend_api_key=mailersend_api_key,
    mailersend_timeout_seconds=mailersend_timeout_seconds,
    mailersend_base_url=(os.getenv("VIDEOLIB_MAILERSEND_BASE_URL") or "https://api.mailersend.com/v1").strip(),
    site_title=(os.getenv("VIDEOLIB_SITE_TITLE") or "Dojo Video Library").strip(),
    site_url=_optional_str(os.getenv("VIDEOLIB_SITE_URL")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations and offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("VIDEOLIB_DEBUG"))
  pg_connect_timeout = _positive_int("VIDEOLIB_PG_CONNECT_TIMEOUT", "5")

  # Support fallback to DATABASE_URL for hosted Postgres providers.
  pg_dsn = os.getenv("VIDEOLIB_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
