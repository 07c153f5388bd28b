import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import parse_uuid
from app.api.models import BeltUpdateRequest, ProfileUpdateRequest
from app.core.database import get_db
from app.core.request_cache import RequestDeduplicator, get_request_deduplicator
from app.core.security import get_current_active_user, get_current_head_teacher, get_current_teacher, get_current_user
from app.schema.sql import Curriculum, User
from app.services.curriculums import get_curriculum_by_order, next_belt_name
from app.services.favorites import list_favorite_video_ids
from app.services.users import SELF_EDITABLE_FIELDS, get_user_by_id, list_school_students, serialize_user, update_user_fields
from app.services.videos import PUBLISHED_CATALOG_KEY, fetch_published_catalog, videos_for_level
from app.utils.video_sorting import sort_videos

router = APIRouter()
logger = logging.getLogger(__name__)


async def _load_belt(db: AsyncSession, user: User) -> Curriculum | None:
  if user.current_belt_id is None:
    return None
  return await db.get(Curriculum, user.current_belt_id)


@router.get("/me")
async def read_profile(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """Profile of the caller, readable while approval is still pending."""
  return serialize_user(current_user, belt=await _load_belt(db, current_user))


@router.patch("/me")
async def update_profile(request: ProfileUpdateRequest, current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  changes = request.model_dump(exclude_unset=True)
  if not changes:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one field is required.")
  user = await update_user_fields(db, user=current_user, changes=changes, allowed=SELF_EDITABLE_FIELDS)
  return serialize_user(user, belt=await _load_belt(db, user))


@router.get("/me/level")
async def read_level(
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  deduplicator: RequestDeduplicator = Depends(get_request_deduplicator),  # noqa: B008
) -> dict[str, Any]:
  """Current belt, the next goal, and the videos a member at this level should study."""
  belt = await _load_belt(db, current_user)
  max_order = belt.display_order + 1 if belt is not None else None
  next_belt = await get_curriculum_by_order(db, max_order) if max_order is not None else None

  catalog = await deduplicator.deduplicate(PUBLISHED_CATALOG_KEY, fetch_published_catalog)
  favorites = await list_favorite_video_ids(db, current_user.id)
  videos = sort_videos(videos_for_level(catalog, max_order), "curriculum", "asc")
  return {
    "current_belt": {"id": str(belt.id), "name": belt.name, "color": belt.color, "display_order": belt.display_order} if belt else None,
    "next_belt_name": next_belt_name(belt, next_belt),
    "max_curriculum_order": max_order,
    "videos": [video.to_dict(is_favorited=video.id in favorites) for video in videos],
  }


@router.get("/students")
async def list_students(current_user: User = Depends(get_current_teacher), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  """Approved members of the teacher's own school."""
  if not current_user.school:
    return []
  students = await list_school_students(db, school=current_user.school)
  return [serialize_user(student) for student in students]


@router.patch("/students/{user_id}/belt")
async def update_student_belt(user_id: str, request: BeltUpdateRequest, current_user: User = Depends(get_current_head_teacher), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """Head teachers grade students of their own school."""
  student = await get_user_by_id(db, parse_uuid(user_id, "user"))
  if student is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
  if not current_user.school or student.school != current_user.school:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student belongs to another school.")

  try:
    student = await update_user_fields(db, user=student, changes={"current_belt_id": request.curriculum_id}, allowed=("current_belt_id",))
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Curriculum not found.") from exc
  logger.info("Belt updated student_id=%s by=%s curriculum_id=%s", student.id, current_user.id, request.curriculum_id)
  return serialize_user(student, belt=await _load_belt(db, student))
