from __future__ import annotations

import uuid

from app.schema.sql import Favorite, Video
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession


async def list_favorite_video_ids(session: AsyncSession, user_id: uuid.UUID) -> set[str]:
  result = await session.execute(select(Favorite.video_id).where(Favorite.user_id == user_id))
  return {str(video_id) for video_id in result.scalars().all()}


async def add_favorite(session: AsyncSession, *, user_id: uuid.UUID, video_id: uuid.UUID) -> None:
  """Mark a video as favorite; repeating the call is a no-op."""
  exists = await session.execute(select(Video.id).where(Video.id == video_id))
  if exists.scalar_one_or_none() is None:
    raise LookupError("Video not found")
  stmt = insert(Favorite).values(id=uuid.uuid4(), user_id=user_id, video_id=video_id).on_conflict_do_nothing(constraint="uq_user_favorites_user_video")
  await session.execute(stmt)
  await session.commit()


async def remove_favorite(session: AsyncSession, *, user_id: uuid.UUID, video_id: uuid.UUID) -> bool:
  result = await session.execute(delete(Favorite).where(Favorite.user_id == user_id, Favorite.video_id == video_id))
  await session.commit()
  return bool(result.rowcount)
