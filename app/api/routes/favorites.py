from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import parse_uuid
from app.core.database import get_db
from app.core.security import get_current_active_user
from app.schema.sql import User
from app.services.favorites import add_favorite, list_favorite_video_ids, remove_favorite
from app.services.videos import load_catalog

router = APIRouter()


@router.get("/favorites")
async def list_favorites(current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  favorite_ids = await list_favorite_video_ids(db, current_user.id)
  if not favorite_ids:
    return {"videos": [], "total": 0}
  videos = await load_catalog(db, published_only=True, video_ids=[parse_uuid(video_id, "video") for video_id in favorite_ids])
  return {"videos": [video.to_dict(is_favorited=True) for video in videos], "total": len(videos)}


@router.post("/favorites/{video_id}", status_code=status.HTTP_201_CREATED)
async def create_favorite(video_id: str, current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  parsed_id = parse_uuid(video_id, "video")
  try:
    await add_favorite(db, user_id=current_user.id, video_id=parsed_id)
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.") from exc
  return {"video_id": video_id, "is_favorited": True}


@router.delete("/favorites/{video_id}")
async def delete_favorite(video_id: str, current_user: User = Depends(get_current_active_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  parsed_id = parse_uuid(video_id, "video")
  removed = await remove_favorite(db, user_id=current_user.id, video_id=parsed_id)
  return {"video_id": video_id, "is_favorited": False, "removed": removed}
