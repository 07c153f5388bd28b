import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import parse_uuid
from app.core.database import get_db
from app.core.request_cache import RequestDeduplicator, get_request_deduplicator
from app.core.security import get_current_active_user, get_optional_user
from app.schema.sql import User
from app.services.favorites import list_favorite_video_ids
from app.services.video_views import batch_views_key, fetch_batch_view_counts, record_video_view
from app.services.videos import PUBLISHED_CATALOG_KEY, fetch_published_catalog, get_catalog_video
from app.utils.video_sorting import sort_videos, video_matches_filters, video_matches_search

router = APIRouter()
logger = logging.getLogger(__name__)

LibrarySortField = Literal["title", "created_at", "recorded", "performers", "category", "curriculum", "views"]

MAX_BATCH_IDS = 200


def split_multi(values: list[str]) -> list[str]:
  """Accept both repeated query params and comma-separated lists."""
  return [item.strip() for value in values for item in value.split(",") if item.strip()]


@router.get("/videos")
async def list_videos(
  search: str | None = None,
  categories: list[str] = Query(default=[]),  # noqa: B008
  curriculums: list[str] = Query(default=[]),  # noqa: B008
  filter_mode: Literal["AND", "OR"] = "AND",
  sort_by: LibrarySortField = "title",
  sort_order: Literal["asc", "desc"] = "asc",
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  deduplicator: RequestDeduplicator = Depends(get_request_deduplicator),  # noqa: B008
) -> dict[str, Any]:
  """Published library with search, filters and sorting applied."""
  # Concurrent page loads share one catalog query.
  catalog = await deduplicator.deduplicate(PUBLISHED_CATALOG_KEY, fetch_published_catalog)
  favorites = await list_favorite_video_ids(db, current_user.id)

  selected_categories = split_multi(categories)
  selected_curriculums = split_multi(curriculums)
  query = (search or "").strip()
  matches = [video for video in catalog if (not query or video_matches_search(video, query)) and video_matches_filters(video, selected_categories, selected_curriculums, filter_mode)]
  ordered = sort_videos(matches, sort_by, sort_order)
  return {"videos": [video.to_dict(is_favorited=video.id in favorites) for video in ordered], "total": len(ordered)}


@router.get("/videos/views")
async def batch_view_counts(
  ids: list[str] = Query(default=[]),  # noqa: B008
  _current_user: User = Depends(get_current_active_user),  # noqa: B008
  deduplicator: RequestDeduplicator = Depends(get_request_deduplicator),  # noqa: B008
) -> dict[str, int]:
  """View counts for the requested ids; ids without views report 0."""
  video_ids = list(dict.fromkeys(split_multi(ids)))
  if not video_ids:
    return {}
  if len(video_ids) > MAX_BATCH_IDS:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"At most {MAX_BATCH_IDS} ids per request.")

  return await deduplicator.deduplicate(batch_views_key(video_ids), lambda: fetch_batch_view_counts(video_ids))


@router.get("/videos/{video_id}")
async def get_video(video_id: str, current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  parsed_id = parse_uuid(video_id, "video")
  video = await get_catalog_video(db, parsed_id, published_only=True)
  if video is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.")
  favorites = await list_favorite_video_ids(db, current_user.id)
  return video.to_dict(is_favorited=video.id in favorites)


@router.post("/videos/{video_id}/views", status_code=status.HTTP_201_CREATED)
async def record_view(video_id: str, viewer: User | None = Depends(get_optional_user), db: AsyncSession = Depends(get_db)) -> dict[str, bool]:  # noqa: B008
  """Count a play; anonymous plays are counted without a user."""
  parsed_id = parse_uuid(video_id, "video")
  try:
    await record_video_view(db, video_id=parsed_id, user_id=viewer.id if viewer else None)
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.") from exc
  return {"success": True}
