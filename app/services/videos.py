"""Video catalog reads and admin writes.

The catalog is loaded in a handful of set-based queries (videos, then each link
table joined to its target) and assembled in Python, so a listing never issues a
query per video.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from app.core.database import require_session_factory
from app.schema.catalog import CatalogVideo, CategoryRef, CurriculumRef, PerformerRef
from app.schema.sql import Category, Curriculum, Performer, Video, VideoCategory, VideoCurriculum, VideoPerformer
from app.services.video_views import VideoViewSummary, get_videos_with_view_counts
from app.utils.video_urls import get_google_drive_thumbnail, is_google_drive_url
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

PUBLISHED_CATALOG_KEY = "videos:published"


@dataclass(slots=True)
class VideoInput:
  """Admin payload for creating or updating a video."""

  title: str
  video_url: str
  description: str | None = None
  thumbnail_url: str | None = None
  duration_seconds: int | None = None
  is_published: bool = True
  recorded: str | None = None
  category_ids: list[uuid.UUID] = field(default_factory=list)
  performer_ids: list[uuid.UUID] = field(default_factory=list)
  curriculum_ids: list[uuid.UUID] = field(default_factory=list)


def assemble_catalog(
  videos: Iterable[Video],
  category_links: Iterable[tuple[uuid.UUID, Category]],
  curriculum_links: Iterable[tuple[uuid.UUID, Curriculum]],
  performer_links: Iterable[tuple[uuid.UUID, Performer]],
  view_summaries: Iterable[VideoViewSummary] = (),
) -> list[CatalogVideo]:
  """Join video rows with their link rows and view aggregates."""
  categories: dict[str, list[CategoryRef]] = defaultdict(list)
  for video_id, category in category_links:
    categories[str(video_id)].append(CategoryRef(id=str(category.id), name=category.name, color=category.color))

  curriculums: dict[str, list[CurriculumRef]] = defaultdict(list)
  for video_id, curriculum in curriculum_links:
    curriculums[str(video_id)].append(CurriculumRef(id=str(curriculum.id), name=curriculum.name, color=curriculum.color, display_order=curriculum.display_order))

  performers: dict[str, list[PerformerRef]] = defaultdict(list)
  for video_id, performer in performer_links:
    performers[str(video_id)].append(PerformerRef(id=str(performer.id), name=performer.name))

  summaries = {summary.video_id: summary for summary in view_summaries}

  catalog: list[CatalogVideo] = []
  for video in videos:
    key = str(video.id)
    summary = summaries.get(key)
    catalog.append(
      CatalogVideo(
        id=key,
        title=video.title,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        duration_seconds=video.duration_seconds,
        is_published=video.is_published,
        recorded=video.recorded,
        # Prefer the per-view log; fall back to the counter for videos viewed before it existed.
        views=summary.total_views if summary else (video.views or 0),
        created_at=video.created_at,
        updated_at=video.updated_at,
        categories=sorted(categories.get(key, []), key=lambda ref: ref.name.casefold()),
        curriculums=sorted(curriculums.get(key, []), key=lambda ref: ref.display_order),
        performers=sorted(performers.get(key, []), key=lambda ref: ref.name.casefold()),
        last_viewed_at=summary.last_viewed if summary else None,
      )
    )
  return catalog


async def load_catalog(session: AsyncSession, *, published_only: bool = True, video_ids: Sequence[uuid.UUID] | None = None) -> list[CatalogVideo]:
  stmt = select(Video).order_by(Video.title.asc())
  if published_only:
    stmt = stmt.where(Video.is_published.is_(True))
  if video_ids is not None:
    stmt = stmt.where(Video.id.in_(list(video_ids)))
  videos = list((await session.execute(stmt)).scalars().all())
  if not videos:
    return []

  ids = [video.id for video in videos]
  category_rows = await session.execute(select(VideoCategory.video_id, Category).join(Category, Category.id == VideoCategory.category_id).where(VideoCategory.video_id.in_(ids)))
  curriculum_rows = await session.execute(select(VideoCurriculum.video_id, Curriculum).join(Curriculum, Curriculum.id == VideoCurriculum.curriculum_id).where(VideoCurriculum.video_id.in_(ids)))
  performer_rows = await session.execute(select(VideoPerformer.video_id, Performer).join(Performer, Performer.id == VideoPerformer.performer_id).where(VideoPerformer.video_id.in_(ids)))
  summaries = await get_videos_with_view_counts(session)

  return assemble_catalog(
    videos,
    [(row[0], row[1]) for row in category_rows.all()],
    [(row[0], row[1]) for row in curriculum_rows.all()],
    [(row[0], row[1]) for row in performer_rows.all()],
    summaries,
  )


async def fetch_published_catalog() -> list[CatalogVideo]:
  """Load the published catalog on a dedicated session so concurrent requests can share it."""
  async with require_session_factory()() as session:
    return await load_catalog(session, published_only=True)


async def get_catalog_video(session: AsyncSession, video_id: uuid.UUID, *, published_only: bool = True) -> CatalogVideo | None:
  catalog = await load_catalog(session, published_only=published_only, video_ids=[video_id])
  return catalog[0] if catalog else None


def videos_for_level(catalog: Iterable[CatalogVideo], max_curriculum_order: int | None) -> list[CatalogVideo]:
  """Videos whose lowest curriculum is within reach; no limit when the member has no belt."""
  if max_curriculum_order is None:
    return list(catalog)
  return [video for video in catalog if video.curriculums and min(ref.display_order for ref in video.curriculums) <= max_curriculum_order]


async def _replace_links(session: AsyncSession, video_id: uuid.UUID, payload: VideoInput) -> None:
  await session.execute(delete(VideoCategory).where(VideoCategory.video_id == video_id))
  await session.execute(delete(VideoPerformer).where(VideoPerformer.video_id == video_id))
  await session.execute(delete(VideoCurriculum).where(VideoCurriculum.video_id == video_id))
  session.add_all([VideoCategory(video_id=video_id, category_id=category_id) for category_id in dict.fromkeys(payload.category_ids)])
  session.add_all([VideoPerformer(video_id=video_id, performer_id=performer_id) for performer_id in dict.fromkeys(payload.performer_ids)])
  session.add_all([VideoCurriculum(video_id=video_id, curriculum_id=curriculum_id) for curriculum_id in dict.fromkeys(payload.curriculum_ids)])


async def save_video(session: AsyncSession, payload: VideoInput, *, video_id: uuid.UUID | None = None, created_by: uuid.UUID | None = None) -> Video:
  """Create a video, or update one in place, replacing its category/performer/curriculum links."""
  title = (payload.title or "").strip()
  video_url = (payload.video_url or "").strip()
  if not title or not video_url:
    raise ValueError("Title and video URL are required")

  thumbnail_url = payload.thumbnail_url
  if not thumbnail_url and is_google_drive_url(video_url):
    thumbnail_url = get_google_drive_thumbnail(video_url)

  if video_id is not None:
    video = await session.get(Video, video_id)
    if video is None:
      raise LookupError("Video not found")
  else:
    video = Video(id=uuid.uuid4(), views=0, created_by=created_by)
    session.add(video)

  video.title = title
  video.video_url = video_url
  video.description = payload.description
  video.thumbnail_url = thumbnail_url
  video.duration_seconds = payload.duration_seconds
  video.is_published = payload.is_published
  video.recorded = payload.recorded
  if video_id is not None:
    video.updated_at = datetime.datetime.now(datetime.UTC)
  await session.flush()

  await _replace_links(session, video.id, payload)
  await session.commit()
  await session.refresh(video)
  logger.info("Video saved video_id=%s created=%s", video.id, video_id is None)
  return video


async def delete_video(session: AsyncSession, video_id: uuid.UUID) -> bool:
  video = await session.get(Video, video_id)
  if video is None:
    return False
  await session.delete(video)
  await session.commit()
  return True
