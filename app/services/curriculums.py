"""Curriculum (belt) management and the belt-progression lookups built on it."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from app.core.database import require_session_factory
from app.schema.sql import Curriculum, VideoCurriculum
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

CURRICULUM_LIST_KEY = "curriculums:list"
DEFAULT_NEXT_LEVEL_NAME = "Next Level"


class CurriculumInUseError(Exception):
  """Raised when deleting a curriculum that videos still reference."""

  def __init__(self, video_count: int) -> None:
    self.video_count = video_count
    super().__init__(f"Cannot delete curriculum. It is used by {video_count} video(s).")


@dataclass(frozen=True, slots=True)
class CurriculumWithCount:
  curriculum: Curriculum
  video_count: int

  def to_dict(self) -> dict[str, Any]:
    return {**serialize_curriculum(self.curriculum), "video_count": self.video_count}


def serialize_curriculum(curriculum: Curriculum) -> dict[str, Any]:
  return {
    "id": str(curriculum.id),
    "name": curriculum.name,
    "description": curriculum.description,
    "color": curriculum.color,
    "display_order": curriculum.display_order,
    "created_by": str(curriculum.created_by) if curriculum.created_by else None,
    "created_at": curriculum.created_at.isoformat() if curriculum.created_at else None,
  }


async def list_curriculums(session: AsyncSession) -> list[CurriculumWithCount]:
  """All curriculums by display order, each with the number of linked videos."""
  counts = select(VideoCurriculum.curriculum_id, func.count().label("video_count")).group_by(VideoCurriculum.curriculum_id).subquery()
  stmt = select(Curriculum, func.coalesce(counts.c.video_count, 0)).outerjoin(counts, counts.c.curriculum_id == Curriculum.id).order_by(Curriculum.display_order.asc(), Curriculum.name.asc())
  result = await session.execute(stmt)
  return [CurriculumWithCount(curriculum=row[0], video_count=int(row[1])) for row in result.all()]


async def fetch_curriculums() -> list[CurriculumWithCount]:
  """Standalone read with its own session, safe to share between requests."""
  async with require_session_factory()() as session:
    return await list_curriculums(session)


async def _next_display_order(session: AsyncSession) -> int:
  result = await session.execute(select(func.max(Curriculum.display_order)))
  current_max = result.scalar_one_or_none()
  return 0 if current_max is None else int(current_max) + 1


async def create_curriculum(session: AsyncSession, *, name: str, color: str, description: str | None = None, display_order: int | None = None, created_by: uuid.UUID | None = None) -> Curriculum:
  if not name.strip():
    raise ValueError("Name is required")
  if display_order is None:
    display_order = await _next_display_order(session)
  curriculum = Curriculum(id=uuid.uuid4(), name=name.strip(), color=color, description=description or None, display_order=display_order, created_by=created_by)
  session.add(curriculum)
  await session.commit()
  await session.refresh(curriculum)
  return curriculum


async def update_curriculum(session: AsyncSession, curriculum_id: uuid.UUID, *, name: str, color: str, description: str | None = None, display_order: int | None = None) -> Curriculum:
  curriculum = await session.get(Curriculum, curriculum_id)
  if curriculum is None:
    raise LookupError("Curriculum not found")
  curriculum.name = name.strip()
  curriculum.color = color
  curriculum.description = description or None
  if display_order is not None:
    curriculum.display_order = display_order
  await session.commit()
  await session.refresh(curriculum)
  return curriculum


async def delete_curriculum(session: AsyncSession, curriculum_id: uuid.UUID) -> None:
  """Delete a curriculum unless videos are still linked to it."""
  count_result = await session.execute(select(func.count()).select_from(VideoCurriculum).where(VideoCurriculum.curriculum_id == curriculum_id))
  video_count = int(count_result.scalar_one() or 0)
  if video_count > 0:
    raise CurriculumInUseError(video_count)

  curriculum = await session.get(Curriculum, curriculum_id)
  if curriculum is None:
    raise LookupError("Curriculum not found")
  await session.delete(curriculum)
  await session.commit()


async def reorder_curriculums(session: AsyncSession, orders: list[tuple[uuid.UUID, int]]) -> None:
  """Apply a batch of display-order changes in one transaction."""
  for curriculum_id, display_order in orders:
    curriculum = await session.get(Curriculum, curriculum_id)
    if curriculum is None:
      await session.rollback()
      raise LookupError(f"Curriculum not found: {curriculum_id}")
    curriculum.display_order = display_order
  await session.commit()


def next_belt_name(current: Curriculum | None, next_belt: Curriculum | None) -> str:
  """Name shown as the member's next goal."""
  if next_belt is not None:
    return next_belt.name
  if current is not None:
    return current.name
  return DEFAULT_NEXT_LEVEL_NAME


async def get_curriculum_by_order(session: AsyncSession, display_order: int) -> Curriculum | None:
  result = await session.execute(select(Curriculum).where(Curriculum.display_order == display_order).limit(1))
  return result.scalar_one_or_none()
