import datetime

import pytest

from app.schema.catalog import CatalogVideo, CategoryRef, CurriculumRef, PerformerRef
from app.utils.video_sorting import (
  check_filter_match,
  check_views_match,
  compare_videos,
  compare_videos_with_last_viewed,
  parse_selected_filters,
  sort_videos,
  video_matches_filters,
  video_matches_search,
)

BASE_TIME = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)


def _video(title: str, **overrides) -> CatalogVideo:
  values = {
    "id": title.lower().replace(" ", "-"),
    "title": title,
    "description": None,
    "video_url": f"https://videos.example.com/{title}",
    "thumbnail_url": None,
    "duration_seconds": None,
    "is_published": True,
    "recorded": None,
    "views": 0,
    "created_at": BASE_TIME,
  }
  values.update(overrides)
  return CatalogVideo(**values)


def _titles(videos: list[CatalogVideo]) -> list[str]:
  return [video.title for video in videos]


def test_title_sort_is_case_insensitive():
  videos = [_video("bo staff"), _video("Armbar"), _video("Choke")]
  assert _titles(sort_videos(videos)) == ["Armbar", "bo staff", "Choke"]
  assert _titles(sort_videos(videos, "title", "desc")) == ["Choke", "bo staff", "Armbar"]


def test_unknown_sort_field_falls_back_to_title():
  videos = [_video("Zeta"), _video("Alpha")]
  assert _titles(sort_videos(videos, "does-not-exist")) == ["Alpha", "Zeta"]


def test_ties_break_on_title():
  videos = [_video("Kata B", views=5), _video("Kata A", views=5), _video("Kata C", views=1)]
  assert _titles(sort_videos(videos, "views", "asc")) == ["Kata C", "Kata A", "Kata B"]
  # Descending flips the tie-break as well.
  assert _titles(sort_videos(videos, "views", "desc")) == ["Kata B", "Kata A", "Kata C"]


def test_created_at_sort():
  older = _video("Older", created_at=BASE_TIME)
  newer = _video("Newer", created_at=BASE_TIME + datetime.timedelta(days=1))
  assert _titles(sort_videos([newer, older], "created_at", "asc")) == ["Older", "Newer"]


def test_category_sort_puts_uncategorized_last_when_ascending():
  red = CategoryRef(id="c1", name="Kicks", color="#f00")
  blue = CategoryRef(id="c2", name="Blocks", color="#00f")
  videos = [_video("None"), _video("Kick", categories=[red]), _video("Block", categories=[blue])]

  assert _titles(sort_videos(videos, "category", "asc")) == ["Block", "Kick", "None"]
  assert _titles(sort_videos(videos, "category", "desc")) == ["Kick", "Block", "None"]


def test_curriculum_sort_uses_lowest_order_and_empty_last():
  white = CurriculumRef(id="w", name="White", color="#fff", display_order=0)
  yellow = CurriculumRef(id="y", name="Yellow", color="#ff0", display_order=1)
  green = CurriculumRef(id="g", name="Green", color="#0f0", display_order=2)
  videos = [_video("Untagged"), _video("Green", curriculums=[green]), _video("Mixed", curriculums=[green, white]), _video("Yellow", curriculums=[yellow])]

  assert _titles(sort_videos(videos, "curriculum", "asc")) == ["Mixed", "Yellow", "Green", "Untagged"]


def test_performers_and_recorded_sort():
  videos = [_video("One", performers=[PerformerRef(id="p2", name="sato")]), _video("Two", performers=[PerformerRef(id="p1", name="Abe")])]
  assert _titles(sort_videos(videos, "performers", "asc")) == ["Two", "One"]

  recorded = [_video("Late", recorded="2024"), _video("Early", recorded="2019")]
  assert _titles(sort_videos(recorded, "recorded", "asc")) == ["Early", "Late"]


def test_compare_videos_returns_three_way_result():
  a, b = _video("A"), _video("B")
  assert compare_videos(a, b, "title", "asc") == -1
  assert compare_videos(b, a, "title", "asc") == 1
  assert compare_videos(a, a, "title", "asc") == 0


def test_last_viewed_treats_never_viewed_as_oldest():
  never = _video("Never")
  recent = _video("Recent", last_viewed_at=BASE_TIME)
  assert compare_videos_with_last_viewed(never, recent, "last_viewed", "asc") == -1
  assert _titles(sort_videos([never, recent], "last_viewed", "desc")) == ["Recent", "Never"]


def test_search_matches_title_description_and_performer():
  video = _video("Roundhouse", description="Hip rotation drills", performers=[PerformerRef(id="p", name="Kenji")])
  assert video_matches_search(video, "round")
  assert video_matches_search(video, "ROTATION")
  assert video_matches_search(video, "kenji")
  assert not video_matches_search(video, "armbar")


def test_parse_selected_filters_splits_prefixes():
  parsed = parse_selected_filters(["cat-1", "recorded:2024", "performer:p-9", "views:100"])
  assert parsed.category_ids == ["cat-1"]
  assert parsed.recorded_values == ["2024"]
  assert parsed.performer_ids == ["p-9"]
  assert parsed.views_values == ["100"]


@pytest.mark.parametrize(
  ("selected", "mode", "expected"),
  [
    ([], "AND", True),
    (["a", "b"], "AND", True),
    (["a", "z"], "AND", False),
    (["a", "z"], "OR", True),
    (["y", "z"], "OR", False),
  ],
)
def test_check_filter_match(selected, mode, expected):
  assert check_filter_match(selected, {"a", "b"}, mode) is expected


def test_check_views_match_thresholds():
  assert check_views_match(["10"], 10, "AND")
  assert not check_views_match(["10", "50"], 20, "AND")
  assert check_views_match(["10", "50"], 20, "OR")
  # Malformed thresholds never match.
  assert not check_views_match(["lots"], 10_000, "AND")


def test_video_matches_filters_combines_groups():
  kicks = CategoryRef(id="c-kicks", name="Kicks", color="#f00")
  yellow = CurriculumRef(id="cur-yellow", name="Yellow", color="#ff0", display_order=1)
  video = _video("Front kick", categories=[kicks], curriculums=[yellow], recorded="2024", views=30)

  assert video_matches_filters(video, ["c-kicks", "recorded:2024"], ["cur-yellow"], "AND")
  assert not video_matches_filters(video, ["c-kicks", "recorded:2019"], [], "AND")
  assert video_matches_filters(video, ["c-other", "recorded:2024"], [], "OR")
  assert video_matches_filters(video, ["views:25"], [], "AND")
  assert not video_matches_filters(video, ["views:50"], [], "AND")
  assert video_matches_filters(video, [], [], "AND")
