"""User CRUD helpers implemented with SQLAlchemy ORM.

Routes and auth dependencies call into this module so query logic for profiles,
approval and school-scoped student listings lives in one place.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from app.schema.sql import Curriculum, User, UserRole, UserStatus
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

ListUsersResult = tuple[list[User], int]

# Profile fields members may edit about themselves.
SELF_EDITABLE_FIELDS = ("full_name", "school", "teacher", "profile_image_url")
# Fields administrators may edit on any account.
ADMIN_EDITABLE_FIELDS = ("full_name", "school", "teacher", "role", "current_belt_id")


@dataclass(slots=True)
class UserListFilters:
  """Optional filters for the admin user list."""

  page: int = 1
  limit: int = 20
  email: str | None = None
  status: UserStatus | None = None
  role: UserRole | None = None
  sort_by: str = "created_at"
  sort_order: str = "desc"


async def get_user_by_firebase_uid(session: AsyncSession, firebase_uid: str) -> User | None:
  """Fetch a user by Firebase UID to support auth and session validation."""
  result = await session.execute(select(User).where(User.firebase_uid == firebase_uid))
  return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: uuid.UUID) -> User | None:
  result = await session.execute(select(User).where(User.id == user_id))
  return result.scalar_one_or_none()


async def create_user(
  session: AsyncSession,
  *,
  firebase_uid: str,
  email: str,
  full_name: str | None,
  school: str | None,
  teacher: str | None,
  role: UserRole = UserRole.STUDENT,
  status: UserStatus = UserStatus.PENDING,
) -> User:
  """Create a new user row and commit it so callers can rely on the generated id."""
  user = User(id=uuid.uuid4(), firebase_uid=firebase_uid, email=email, full_name=full_name, school=school, teacher=teacher, role=role, status=status)
  if status == UserStatus.APPROVED:
    user.approved_at = datetime.datetime.now(datetime.UTC)
  session.add(user)
  await session.commit()
  await session.refresh(user)
  return user


async def update_user_status(session: AsyncSession, *, user: User, status: UserStatus, approved_by: uuid.UUID | None = None, role: UserRole | None = None) -> User:
  """Apply an admin decision to a user's account status (and role, on approval)."""
  if user.status == status and (role is None or user.role == role):
    return user

  user.status = status
  if role is not None:
    user.role = role
  if status == UserStatus.APPROVED:
    user.approved_by = approved_by
    user.approved_at = datetime.datetime.now(datetime.UTC)
  session.add(user)
  await session.commit()
  await session.refresh(user)
  return user


async def update_user_fields(session: AsyncSession, *, user: User, changes: dict[str, Any], allowed: tuple[str, ...]) -> User:
  """Apply a partial update restricted to `allowed` field names."""
  applied = {key: value for key, value in changes.items() if key in allowed}
  if not applied:
    return user

  if "current_belt_id" in applied and applied["current_belt_id"] is not None:
    belt = await session.get(Curriculum, applied["current_belt_id"])
    if belt is None:
      raise LookupError("Curriculum not found")

  for key, value in applied.items():
    setattr(user, key, value)
  session.add(user)
  await session.commit()
  await session.refresh(user)
  return user


async def list_users(session: AsyncSession, *, filters: UserListFilters | None = None) -> ListUsersResult:
  """List users with filtering, sorting and pagination for the admin console."""
  filters = filters or UserListFilters()
  offset = (filters.page - 1) * filters.limit

  conditions = []
  if filters.email:
    conditions.append(User.email.ilike(f"%{filters.email}%"))
  if filters.status:
    conditions.append(User.status == filters.status)
  if filters.role:
    conditions.append(User.role == filters.role)

  sort_columns = {"email": User.email, "status": User.status, "full_name": User.full_name, "role": User.role, "created_at": User.created_at}
  sort_column = sort_columns.get(filters.sort_by, User.created_at)
  order = sort_column.asc() if filters.sort_order.lower() == "asc" else sort_column.desc()

  stmt = select(User).where(*conditions).order_by(order).limit(filters.limit).offset(offset)
  result = await session.execute(stmt)
  users = list(result.scalars().all())

  count_result = await session.execute(select(func.count(User.id)).where(*conditions))
  total = int(count_result.scalar_one())
  return users, total


async def list_pending_users(session: AsyncSession) -> list[User]:
  result = await session.execute(select(User).where(User.status == UserStatus.PENDING).order_by(User.created_at.asc()))
  return list(result.scalars().all())


async def list_school_students(session: AsyncSession, *, school: str) -> list[User]:
  """Approved members of one school, as seen by its teachers."""
  stmt = select(User).where(User.school == school, User.status == UserStatus.APPROVED).order_by(User.full_name.asc())
  result = await session.execute(stmt)
  return list(result.scalars().all())


async def list_approved_users(session: AsyncSession, *, exclude: uuid.UUID | None = None) -> list[User]:
  """Broadcast audience: every approved member except `exclude`."""
  stmt = select(User).where(User.status == UserStatus.APPROVED)
  if exclude is not None:
    stmt = stmt.where(User.id != exclude)
  result = await session.execute(stmt.order_by(User.created_at.asc()))
  return list(result.scalars().all())


async def list_admin_ids(session: AsyncSession) -> list[uuid.UUID]:
  result = await session.execute(select(User.id).where(User.role == UserRole.ADMIN, User.status == UserStatus.APPROVED).order_by(User.created_at.asc()))
  return list(result.scalars().all())


async def count_users(session: AsyncSession, *, status: UserStatus | None = None) -> int:
  stmt = select(func.count(User.id))
  if status is not None:
    stmt = stmt.where(User.status == status)
  result = await session.execute(stmt)
  return int(result.scalar_one())


async def delete_user(session: AsyncSession, user_id: uuid.UUID) -> bool:
  """Delete a user; favorites and inbox rows cascade, authored rows are nulled."""
  user = await session.get(User, user_id)
  if not user:
    return False

  await session.delete(user)
  await session.commit()
  return True


def serialize_user(user: User, *, belt: Curriculum | None = None) -> dict[str, Any]:
  """Shape a user row for API responses."""
  payload: dict[str, Any] = {
    "id": str(user.id),
    "email": user.email,
    "full_name": user.full_name,
    "profile_image_url": user.profile_image_url,
    "school": user.school,
    "teacher": user.teacher,
    "role": user.role.value if isinstance(user.role, UserRole) else user.role,
    "status": user.status.value if isinstance(user.status, UserStatus) else user.status,
    "current_belt_id": str(user.current_belt_id) if user.current_belt_id else None,
    "approved_at": user.approved_at.isoformat() if user.approved_at else None,
    "created_at": user.created_at.isoformat() if user.created_at else None,
  }
  if belt is not None:
    payload["current_belt"] = {"id": str(belt.id), "name": belt.name, "color": belt.color, "display_order": belt.display_order}
  return payload
