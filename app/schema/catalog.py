"""Read models for the video catalog, shared by listing, sorting and admin views."""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass, field
from typing import Any

from app.utils.video_urls import format_duration


@dataclass(frozen=True)
class CategoryRef:
  id: str
  name: str
  color: str


@dataclass(frozen=True)
class CurriculumRef:
  id: str
  name: str
  color: str
  display_order: int


@dataclass(frozen=True)
class PerformerRef:
  id: str
  name: str


@dataclass
class CatalogVideo:
  """A video with its linked categories, curriculums and performers."""

  id: str
  title: str
  description: str | None
  video_url: str
  thumbnail_url: str | None
  duration_seconds: int | None
  is_published: bool
  recorded: str | None
  views: int | None
  created_at: datetime.datetime
  updated_at: datetime.datetime | None = None
  categories: list[CategoryRef] = field(default_factory=list)
  curriculums: list[CurriculumRef] = field(default_factory=list)
  performers: list[PerformerRef] = field(default_factory=list)
  last_viewed_at: datetime.datetime | None = None

  def to_dict(self, *, is_favorited: bool | None = None) -> dict[str, Any]:
    payload = asdict(self)
    payload["created_at"] = self.created_at.isoformat()
    payload["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
    payload["last_viewed_at"] = self.last_viewed_at.isoformat() if self.last_viewed_at else None
    payload["duration"] = format_duration(self.duration_seconds) if self.duration_seconds else None
    if is_favorited is not None:
      payload["is_favorited"] = is_favorited
    return payload
