"""View tracking and view-count aggregation over the `video_views` table."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from app.core.database import require_session_factory
from app.schema.sql import Video, VideoView
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VideoViewSummary:
  video_id: str
  total_views: int
  last_viewed: datetime.datetime | None


def batch_views_key(video_ids: Iterable[str]) -> str:
  """Cache key for a batch count request; order of ids does not matter."""
  return "video-views:batch:" + ",".join(sorted(video_ids))


def fill_missing_counts(video_ids: Iterable[str], counts: dict[str, int]) -> dict[str, int]:
  """Return counts for exactly the requested ids, zero where no views exist."""
  return {video_id: counts.get(video_id, 0) for video_id in video_ids}


async def record_video_view(session: AsyncSession, *, video_id: uuid.UUID, user_id: uuid.UUID | None) -> None:
  """Insert a view row and bump the aggregate counter on the video.

  The per-user row is best-effort: if it fails the view is retried anonymously so
  the counter still moves.
  """
  exists = await session.execute(select(Video.id).where(Video.id == video_id))
  if exists.scalar_one_or_none() is None:
    raise LookupError("Video not found")

  try:
    session.add(VideoView(video_id=video_id, user_id=user_id))
    await session.flush()
  except Exception:  # noqa: BLE001
    await session.rollback()
    if user_id is None:
      raise
    logger.warning("Failed to track user view video_id=%s user_id=%s; recording anonymously", video_id, user_id, exc_info=True)
    session.add(VideoView(video_id=video_id, user_id=None))
    await session.flush()

  await session.execute(update(Video).where(Video.id == video_id).values(views=Video.views + 1))
  await session.commit()


async def get_total_video_views(session: AsyncSession) -> int:
  result = await session.execute(select(func.count(VideoView.id)))
  return int(result.scalar_one() or 0)


async def get_video_views_in_range(session: AsyncSession, start: datetime.datetime, end: datetime.datetime) -> int:
  """Count views with `start <= viewed_at < end`."""
  stmt = select(func.count(VideoView.id)).where(VideoView.viewed_at >= start, VideoView.viewed_at < end)
  result = await session.execute(stmt)
  return int(result.scalar_one() or 0)


async def get_videos_with_view_counts(session: AsyncSession) -> list[VideoViewSummary]:
  stmt = select(VideoView.video_id, func.count(VideoView.id), func.max(VideoView.viewed_at)).group_by(VideoView.video_id)
  result = await session.execute(stmt)
  return [VideoViewSummary(video_id=str(video_id), total_views=int(total), last_viewed=last_viewed) for video_id, total, last_viewed in result.all()]


async def get_batch_view_counts(session: AsyncSession, video_ids: list[str]) -> dict[str, int]:
  if not video_ids:
    return {}

  parsed: dict[uuid.UUID, str] = {}
  for raw in video_ids:
    try:
      parsed[uuid.UUID(raw)] = raw
    except ValueError:
      # Malformed ids still appear in the result with zero views.
      continue

  counts: dict[str, int] = {}
  if parsed:
    stmt = select(VideoView.video_id, func.count(VideoView.id)).where(VideoView.video_id.in_(list(parsed))).group_by(VideoView.video_id)
    result = await session.execute(stmt)
    counts = {parsed[video_id]: int(total) for video_id, total in result.all() if video_id in parsed}
  return fill_missing_counts(video_ids, counts)


async def fetch_batch_view_counts(video_ids: list[str]) -> dict[str, int]:
  """Standalone read with its own session, safe to share between requests."""
  async with require_session_factory()() as session:
    return await get_batch_view_counts(session, video_ids)
