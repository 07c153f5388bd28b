"""Category and performer catalogs used to tag videos."""

from __future__ import annotations

import uuid
from typing import Any

from app.schema.sql import Category, Performer
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession


class DuplicateNameError(ValueError):
  pass


async def _commit_unique(session: AsyncSession, label: str, name: str) -> None:
  try:
    await session.commit()
  except IntegrityError as exc:
    await session.rollback()
    raise DuplicateNameError(f"{label} '{name}' already exists") from exc


async def list_categories(session: AsyncSession) -> list[Category]:
  result = await session.execute(select(Category).order_by(Category.name.asc()))
  return list(result.scalars().all())


async def create_category(session: AsyncSession, *, name: str, color: str, description: str | None = None) -> Category:
  name = name.strip()
  if not name:
    raise ValueError("Name is required")
  category = Category(id=uuid.uuid4(), name=name, color=color, description=description or None)
  session.add(category)
  await _commit_unique(session, "Category", name)
  await session.refresh(category)
  return category


async def update_category(session: AsyncSession, category_id: uuid.UUID, *, name: str, color: str, description: str | None = None) -> Category:
  category = await session.get(Category, category_id)
  if category is None:
    raise LookupError("Category not found")
  category.name = name.strip()
  category.color = color
  category.description = description or None
  await _commit_unique(session, "Category", category.name)
  await session.refresh(category)
  return category


async def delete_category(session: AsyncSession, category_id: uuid.UUID) -> bool:
  category = await session.get(Category, category_id)
  if category is None:
    return False
  await session.delete(category)
  await session.commit()
  return True


async def list_performers(session: AsyncSession) -> list[Performer]:
  result = await session.execute(select(Performer).order_by(Performer.name.asc()))
  return list(result.scalars().all())


async def create_performer(session: AsyncSession, *, name: str, bio: str | None = None) -> Performer:
  name = name.strip()
  if not name:
    raise ValueError("Name is required")
  performer = Performer(id=uuid.uuid4(), name=name, bio=bio or None)
  session.add(performer)
  await _commit_unique(session, "Performer", name)
  await session.refresh(performer)
  return performer


async def update_performer(session: AsyncSession, performer_id: uuid.UUID, *, name: str, bio: str | None = None) -> Performer:
  performer = await session.get(Performer, performer_id)
  if performer is None:
    raise LookupError("Performer not found")
  performer.name = name.strip()
  performer.bio = bio or None
  await _commit_unique(session, "Performer", performer.name)
  await session.refresh(performer)
  return performer


async def delete_performer(session: AsyncSession, performer_id: uuid.UUID) -> bool:
  performer = await session.get(Performer, performer_id)
  if performer is None:
    return False
  await session.delete(performer)
  await session.commit()
  return True


def serialize_category(category: Category) -> dict[str, Any]:
  return {"id": str(category.id), "name": category.name, "color": category.color, "description": category.description}


def serialize_performer(performer: Performer) -> dict[str, Any]:
  return {"id": str(performer.id), "name": performer.name, "bio": performer.bio}
