import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from app.core.database import dispose_engine
from app.core.firebase import initialize_firebase
from app.core.logging import initialize_logging
from app.core.request_cache import RequestDeduplicator
from fastapi import FastAPI


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Configure logging and shared state once uvicorn has started."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified. environment=%s database=%s", settings.environment, _redact_dsn(settings.pg_dsn))
    # Initialize Firebase before handling requests.
    initialize_firebase()
  except Exception:
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Startup initialization failed; continuing with lazy initialization.", exc_info=True)

  # One in-flight request map per application instance.
  app.state.request_deduplicator = RequestDeduplicator()

  yield

  pending = len(app.state.request_deduplicator)
  app.state.request_deduplicator.clear()
  await dispose_engine()
  logger.info("Shutdown complete. pending_requests_dropped=%s", pending)


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
