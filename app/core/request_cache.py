"""In-flight request deduplication for coalescing identical async reads.

Concurrent callers that ask for the same logical resource (same key) share a single
underlying operation. The entry lives only while the operation is pending; settlement
(success or failure) removes it before any waiting caller resumes, so the next call
after settlement always starts fresh work.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import Request

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestDeduplicator:
  """Keyed map of pending operations shared by concurrent callers.

  Instances are owned by the application (see `app.core.lifespan`) rather than living
  at module level, so tests and independent scopes can hold separate caches.
  """

  def __init__(self) -> None:
    self._pending: dict[str, asyncio.Future[Any]] = {}

  def deduplicate(self, key: str, operation: Callable[[], Awaitable[T] | T]) -> Awaitable[T]:
    """Return the pending result for `key`, starting `operation` only when none exists."""
    existing = self._pending.get(key)
    if existing is not None:
      logger.debug("Joining in-flight request key=%s", key)
      return asyncio.shield(existing)

    # Check and insert happen without suspension, so two callers can never both start work.
    loop = asyncio.get_running_loop()
    result = operation()
    future: asyncio.Future[T]
    if inspect.isawaitable(result):
      future = asyncio.ensure_future(result, loop=loop)
    else:
      future = loop.create_future()
      future.set_result(result)
    if future.done():
      # Already settled: awaiting it will not yield, so it is never stored.
      logger.debug("Request key=%s settled synchronously", key)
      return future
    self._pending[key] = future
    # Registered before any awaiter so the entry is gone by the time callers resume.
    future.add_done_callback(lambda settled: self._evict(key, settled))
    logger.debug("Started request key=%s", key)
    # Shield so a cancelled caller cannot cancel work other callers are sharing.
    return asyncio.shield(future)

  def clear(self, key: str | None = None) -> None:
    """Forget one pending entry, or all of them when no key is given."""
    if key is None:
      self._pending.clear()
      return
    self._pending.pop(key, None)

  def is_pending(self, key: str) -> bool:
    return key in self._pending

  def pending_keys(self) -> list[str]:
    return list(self._pending)

  def __len__(self) -> int:
    return len(self._pending)

  def _evict(self, key: str, settled: asyncio.Future[Any]) -> None:
    # A cleared key may already hold a newer operation; only drop our own entry.
    if self._pending.get(key) is settled:
      del self._pending[key]
    # Mark the exception as retrieved when nobody awaited the shared result.
    if not settled.cancelled() and settled.exception() is not None:
      logger.debug("Request key=%s settled with error %s", key, type(settled.exception()).__name__)


def get_request_deduplicator(request: Request) -> RequestDeduplicator:
  """Resolve the application-owned deduplicator for route handlers."""
  deduplicator = getattr(request.app.state, "request_deduplicator", None)
  if deduplicator is None:
    # Lifespan did not run (e.g. a bare TestClient without context manager); attach one lazily.
    deduplicator = RequestDeduplicator()
    request.app.state.request_deduplicator = deduplicator
  return deduplicator
