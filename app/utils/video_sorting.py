"""Sorting and filtering for catalog videos, shared by the library and admin listings."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Literal

from app.schema.catalog import CatalogVideo

SortOrder = Literal["asc", "desc"]
FilterMode = Literal["AND", "OR"]

LIBRARY_SORT_FIELDS = ("title", "created_at", "recorded", "performers", "category", "curriculum", "views")
MANAGEMENT_SORT_FIELDS = (*LIBRARY_SORT_FIELDS, "last_viewed")

RECORDED_PREFIX = "recorded:"
PERFORMER_PREFIX = "performer:"
VIEWS_PREFIX = "views:"


def _text_compare(a: str, b: str) -> int:
  """Case-insensitive ordering with a case-sensitive tie-break."""
  left, right = (a.casefold(), a), (b.casefold(), b)
  return (left > right) - (left < right)


def _sign(value: float) -> int:
  return (value > 0) - (value < 0)


def performers_sort_value(video: CatalogVideo) -> str:
  return ", ".join(performer.name for performer in video.performers)


def categories_sort_value(video: CatalogVideo) -> str:
  return ", ".join(category.name for category in video.categories)


def curriculum_sort_value(video: CatalogVideo) -> int:
  """Lowest curriculum display order; videos without one sort last."""
  if not video.curriculums:
    return sys.maxsize
  return min(curriculum.display_order for curriculum in video.curriculums)


def compare_videos(a: CatalogVideo, b: CatalogVideo, sort_by: str, sort_order: SortOrder) -> int:
  """Three-way compare; ties fall back to title and unknown fields sort by title."""
  if sort_by == "created_at":
    comparison = _sign((a.created_at - b.created_at).total_seconds())
  elif sort_by == "recorded":
    comparison = _text_compare(a.recorded or "", b.recorded or "")
  elif sort_by == "performers":
    comparison = _text_compare(performers_sort_value(a), performers_sort_value(b))
  elif sort_by == "category":
    a_categories, b_categories = categories_sort_value(a), categories_sort_value(b)
    # Ascending pushes uncategorized videos to the end.
    if sort_order == "asc" and bool(a_categories) != bool(b_categories):
      comparison = 1 if not a_categories else -1
    else:
      comparison = _text_compare(a_categories, b_categories)
  elif sort_by == "curriculum":
    comparison = _sign(curriculum_sort_value(a) - curriculum_sort_value(b))
  elif sort_by == "views":
    comparison = _sign((a.views or 0) - (b.views or 0))
  else:
    comparison = _text_compare(a.title, b.title)
    sort_by = "title"

  if comparison == 0 and sort_by != "title":
    comparison = _text_compare(a.title, b.title)

  return comparison if sort_order == "asc" else -comparison


def compare_videos_with_last_viewed(a: CatalogVideo, b: CatalogVideo, sort_by: str, sort_order: SortOrder) -> int:
  """`compare_videos` plus the admin-only `last_viewed` field; never-viewed counts as oldest."""
  if sort_by != "last_viewed":
    return compare_videos(a, b, sort_by, sort_order)

  a_time = a.last_viewed_at.timestamp() if a.last_viewed_at else 0.0
  b_time = b.last_viewed_at.timestamp() if b.last_viewed_at else 0.0
  comparison = _sign(a_time - b_time)
  if comparison == 0:
    comparison = _text_compare(a.title, b.title)
  return comparison if sort_order == "asc" else -comparison


def sort_videos(videos: Iterable[CatalogVideo], sort_by: str = "title", sort_order: SortOrder = "asc") -> list[CatalogVideo]:
  return sorted(videos, key=cmp_to_key(lambda a, b: compare_videos_with_last_viewed(a, b, sort_by, sort_order)))


def video_matches_search(video: CatalogVideo, query: str) -> bool:
  """Match title, description or any performer name, case-insensitively."""
  needle = query.lower()
  if needle in video.title.lower():
    return True
  if video.description and needle in video.description.lower():
    return True
  return any(needle in performer.name.lower() for performer in video.performers)


@dataclass(frozen=True)
class SelectedFilters:
  category_ids: list[str]
  recorded_values: list[str]
  performer_ids: list[str]
  views_values: list[str]


def parse_selected_filters(selected: Sequence[str]) -> SelectedFilters:
  """Split the mixed filter list into plain category ids and prefixed filters."""
  prefixes = (RECORDED_PREFIX, PERFORMER_PREFIX, VIEWS_PREFIX)
  return SelectedFilters(
    category_ids=[item for item in selected if not item.startswith(prefixes)],
    recorded_values=[item.removeprefix(RECORDED_PREFIX) for item in selected if item.startswith(RECORDED_PREFIX)],
    performer_ids=[item.removeprefix(PERFORMER_PREFIX) for item in selected if item.startswith(PERFORMER_PREFIX)],
    views_values=[item.removeprefix(VIEWS_PREFIX) for item in selected if item.startswith(VIEWS_PREFIX)],
  )


def check_filter_match(selected: Sequence[str], video_items: set[str], filter_mode: FilterMode) -> bool:
  if not selected:
    return True
  if filter_mode == "AND":
    return all(item in video_items for item in selected)
  return any(item in video_items for item in selected)


def check_views_match(selected_views: Sequence[str], video_views: int, filter_mode: FilterMode) -> bool:
  """Views filters are minimum thresholds (`views:100` means at least 100)."""
  if not selected_views:
    return True
  thresholds = []
  for value in selected_views:
    try:
      thresholds.append(float(value))
    except ValueError:
      # A non-numeric threshold can never be met.
      thresholds.append(float("inf"))
  if filter_mode == "AND":
    return all(video_views >= threshold for threshold in thresholds)
  return any(video_views >= threshold for threshold in thresholds)


def video_matches_filters(video: CatalogVideo, selected_categories: Sequence[str], selected_curriculums: Sequence[str], filter_mode: FilterMode) -> bool:
  """Combine every active filter group with the same AND/OR mode."""
  parsed = parse_selected_filters(selected_categories)

  active: list[bool] = []
  if parsed.category_ids:
    active.append(check_filter_match(parsed.category_ids, {category.id for category in video.categories}, filter_mode))
  if selected_curriculums:
    active.append(check_filter_match(selected_curriculums, {curriculum.id for curriculum in video.curriculums}, filter_mode))
  if parsed.recorded_values:
    active.append((video.recorded or "") in parsed.recorded_values)
  if parsed.performer_ids:
    active.append(check_filter_match(parsed.performer_ids, {performer.id for performer in video.performers}, filter_mode))
  if parsed.views_values:
    active.append(check_views_match(parsed.views_values, video.views or 0, filter_mode))

  if not active:
    return True
  return all(active) if filter_mode == "AND" else any(active)
