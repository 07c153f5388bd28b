import datetime
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.schema.sql import Category, Curriculum, Performer, Video, VideoView
from app.services.curriculums import DEFAULT_NEXT_LEVEL_NAME, CurriculumInUseError, delete_curriculum, next_belt_name
from app.services.video_views import VideoViewSummary, batch_views_key, fill_missing_counts, get_batch_view_counts, record_video_view
from app.services.videos import VideoInput, assemble_catalog, save_video, videos_for_level

CREATED = datetime.datetime(2026, 2, 1, tzinfo=datetime.UTC)


def _video_row(title: str, *, views: int = 0) -> Video:
  return Video(id=uuid.uuid4(), title=title, description=None, video_url=f"https://videos.example.com/{title}", thumbnail_url=None, duration_seconds=90, is_published=True, recorded=None, views=views, created_at=CREATED)


def _belt(name: str, order: int) -> Curriculum:
  return Curriculum(id=uuid.uuid4(), name=name, color="#fff", display_order=order)


def test_assemble_catalog_joins_links_and_views():
  first, second = _video_row("Front kick", views=7), _video_row("Side kick", views=3)
  kicks = Category(id=uuid.uuid4(), name="kicks", color="#f00")
  basics = Category(id=uuid.uuid4(), name="Basics", color="#0f0")
  yellow, white = _belt("Yellow", 1), _belt("White", 0)
  sensei = Performer(id=uuid.uuid4(), name="Sensei Abe")
  last_viewed = CREATED + datetime.timedelta(days=3)

  catalog = assemble_catalog(
    [first, second],
    [(first.id, kicks), (first.id, basics)],
    [(first.id, yellow), (first.id, white)],
    [(second.id, sensei)],
    [VideoViewSummary(video_id=str(first.id), total_views=12, last_viewed=last_viewed)],
  )

  front, side = catalog
  assert [ref.name for ref in front.categories] == ["Basics", "kicks"]
  assert [ref.display_order for ref in front.curriculums] == [0, 1]
  assert front.views == 12
  assert front.last_viewed_at == last_viewed
  # Without view rows the stored counter is used.
  assert side.views == 3
  assert side.last_viewed_at is None
  assert [ref.name for ref in side.performers] == ["Sensei Abe"]
  assert side.to_dict(is_favorited=True)["is_favorited"] is True
  assert side.to_dict()["duration"] == "1:30"


def test_videos_for_level_limits_by_lowest_curriculum():
  beginner, advanced, untagged = _video_row("Beginner"), _video_row("Advanced"), _video_row("Untagged")
  white, black = _belt("White", 0), _belt("Black", 5)
  catalog = assemble_catalog([beginner, advanced, untagged], [], [(beginner.id, white), (advanced.id, black)], [])

  assert [video.title for video in videos_for_level(catalog, 1)] == ["Beginner"]
  assert [video.title for video in videos_for_level(catalog, None)] == ["Beginner", "Advanced", "Untagged"]


def test_next_belt_name_fallbacks():
  white, yellow = _belt("White", 0), _belt("Yellow", 1)
  assert next_belt_name(white, yellow) == "Yellow"
  assert next_belt_name(yellow, None) == "Yellow"
  assert next_belt_name(None, None) == DEFAULT_NEXT_LEVEL_NAME


def test_batch_views_key_is_order_independent():
  assert batch_views_key(["b", "a"]) == batch_views_key(["a", "b"]) == "video-views:batch:a,b"


def test_fill_missing_counts_reports_every_requested_id():
  assert fill_missing_counts(["a", "b", "c"], {"a": 4, "z": 9}) == {"a": 4, "b": 0, "c": 0}


@pytest.mark.anyio
async def test_get_batch_view_counts_maps_back_to_requested_ids(mock_db_session):
  known = uuid.uuid4()
  result = MagicMock()
  result.all.return_value = [(known, 5)]
  mock_db_session.execute.return_value = result

  counts = await get_batch_view_counts(mock_db_session, [str(known).upper(), "not-a-uuid"])

  assert counts == {str(known).upper(): 5, "not-a-uuid": 0}


@pytest.mark.anyio
async def test_save_video_requires_title_and_url(mock_db_session):
  with pytest.raises(ValueError, match="Title and video URL are required"):
    await save_video(mock_db_session, VideoInput(title="  ", video_url="https://videos.example.com/a"))
  mock_db_session.commit.assert_not_called()


@pytest.mark.anyio
async def test_save_video_derives_drive_thumbnail(mock_db_session):
  payload = VideoInput(title="Kata", video_url="https://drive.google.com/file/d/abc123/view", category_ids=[uuid.uuid4()])

  video = await save_video(mock_db_session, payload)

  assert video.thumbnail_url == "https://drive.google.com/thumbnail?id=abc123&sz=w400-h300"
  assert video.title == "Kata"
  mock_db_session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_save_video_unknown_id_raises_lookup_error(mock_db_session):
  mock_db_session.get = AsyncMock(return_value=None)
  with pytest.raises(LookupError):
    await save_video(mock_db_session, VideoInput(title="Kata", video_url="https://videos.example.com/kata"), video_id=uuid.uuid4())


@pytest.mark.anyio
async def test_delete_curriculum_refuses_while_in_use(mock_db_session):
  result = MagicMock()
  result.scalar_one.return_value = 3
  mock_db_session.execute.return_value = result

  with pytest.raises(CurriculumInUseError) as exc_info:
    await delete_curriculum(mock_db_session, uuid.uuid4())

  assert str(exc_info.value) == "Cannot delete curriculum. It is used by 3 video(s)."
  mock_db_session.delete.assert_not_called()


def _video_exists(mock_db_session, video_id):
  found = MagicMock()
  found.scalar_one_or_none.return_value = video_id
  mock_db_session.execute.return_value = found


@pytest.mark.anyio
async def test_record_video_view_retries_anonymously_and_bumps_counter(mock_db_session):
  video_id, user_id = uuid.uuid4(), uuid.uuid4()
  _video_exists(mock_db_session, video_id)
  mock_db_session.flush = AsyncMock(side_effect=[RuntimeError("user fk violation"), None])

  await record_video_view(mock_db_session, video_id=video_id, user_id=user_id)

  added = [call.args[0] for call in mock_db_session.add.call_args_list]
  assert [view.user_id for view in added] == [user_id, None]
  assert all(isinstance(view, VideoView) and view.video_id == video_id for view in added)
  mock_db_session.rollback.assert_awaited_once()
  counter_update = mock_db_session.execute.await_args_list[-1].args[0]
  assert counter_update.table.name == "videos"
  mock_db_session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_record_video_view_anonymous_failure_propagates(mock_db_session):
  video_id = uuid.uuid4()
  _video_exists(mock_db_session, video_id)
  mock_db_session.flush = AsyncMock(side_effect=RuntimeError("database unavailable"))

  with pytest.raises(RuntimeError, match="database unavailable"):
    await record_video_view(mock_db_session, video_id=video_id, user_id=None)
  mock_db_session.commit.assert_not_called()


@pytest.mark.anyio
async def test_record_video_view_unknown_video_raises_lookup_error(mock_db_session):
  with pytest.raises(LookupError):
    await record_video_view(mock_db_session, video_id=uuid.uuid4(), user_id=None)
  mock_db_session.add.assert_not_called()
