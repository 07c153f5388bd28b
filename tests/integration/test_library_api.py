import asyncio
import datetime
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from app.api.deps import get_notification_service
from app.core.security import get_current_active_user, get_current_head_teacher, get_current_user, get_optional_user
from app.main import app
from app.schema.catalog import CatalogVideo, CategoryRef, CurriculumRef
from app.schema.sql import UserRole

CREATED = datetime.datetime(2026, 3, 1, tzinfo=datetime.UTC)


def _catalog_video(title: str, *, categories=(), curriculums=(), views: int = 0) -> CatalogVideo:
  return CatalogVideo(
    id=str(uuid.uuid4()),
    title=title,
    description=None,
    video_url=f"https://videos.example.com/{title}",
    thumbnail_url=None,
    duration_seconds=125,
    is_published=True,
    recorded=None,
    views=views,
    created_at=CREATED,
    categories=list(categories),
    curriculums=list(curriculums),
  )


@pytest.fixture
def member(make_user):
  user = make_user()
  app.dependency_overrides[get_current_active_user] = lambda: user
  app.dependency_overrides[get_current_user] = lambda: user
  return user


@pytest.fixture
def catalog():
  kicks = CategoryRef(id=str(uuid.uuid4()), name="Kicks", color="#f00")
  kata = CategoryRef(id=str(uuid.uuid4()), name="Kata", color="#00f")
  white = CurriculumRef(id=str(uuid.uuid4()), name="White", color="#fff", display_order=0)
  return [
    _catalog_video("Side kick", categories=[kicks], curriculums=[white], views=4),
    _catalog_video("Heian Shodan", categories=[kata], views=10),
    _catalog_video("Front kick", categories=[kicks, kata], views=1),
  ]


@pytest.mark.anyio
async def test_health_carries_security_headers(async_client: AsyncClient):
  response = await async_client.get("/health")

  assert response.status_code == 200
  assert response.json()["status"] == "ok"
  assert response.headers["x-robots-tag"] == "noindex, nofollow, noarchive, nosnippet"
  assert response.headers["x-request-id"]


@pytest.mark.anyio
async def test_concurrent_listings_share_one_catalog_load(async_client: AsyncClient, member, catalog):
  calls = 0

  async def slow_catalog():
    nonlocal calls
    calls += 1
    await asyncio.sleep(0.05)
    return catalog

  with patch("app.api.routes.videos.fetch_published_catalog", slow_catalog), patch("app.api.routes.videos.list_favorite_video_ids", AsyncMock(return_value=set())):
    responses = await asyncio.gather(*(async_client.get("/v1/videos") for _ in range(4)))

  assert [response.status_code for response in responses] == [200, 200, 200, 200]
  assert calls == 1
  assert all(response.json()["total"] == 3 for response in responses)
  # Settled work is evicted so the next request loads fresh data.
  assert len(app.state.request_deduplicator) == 0


@pytest.mark.anyio
async def test_listing_filters_sorts_and_marks_favorites(async_client: AsyncClient, member, catalog):
  favorite_id = catalog[2].id
  with patch("app.api.routes.videos.fetch_published_catalog", AsyncMock(return_value=catalog)), patch("app.api.routes.videos.list_favorite_video_ids", AsyncMock(return_value={favorite_id})):
    response = await async_client.get("/v1/videos", params={"categories": catalog[0].categories[0].id, "sort_by": "views", "sort_order": "desc"})

  assert response.status_code == 200
  body = response.json()
  assert [video["title"] for video in body["videos"]] == ["Side kick", "Front kick"]
  assert [video["is_favorited"] for video in body["videos"]] == [False, True]
  assert body["videos"][0]["duration"] == "2:05"


@pytest.mark.anyio
async def test_listing_or_mode_matches_any_filter(async_client: AsyncClient, member, catalog):
  with patch("app.api.routes.videos.fetch_published_catalog", AsyncMock(return_value=catalog)), patch("app.api.routes.videos.list_favorite_video_ids", AsyncMock(return_value=set())):
    response = await async_client.get("/v1/videos", params=[("categories", catalog[1].categories[0].id), ("curriculums", catalog[0].curriculums[0].id), ("filter_mode", "OR")])

  assert response.json()["total"] == 3


@pytest.mark.anyio
async def test_batch_view_counts_reports_zero_for_unknown_ids(async_client: AsyncClient, member):
  fetch = AsyncMock(return_value={"a": 3, "b": 0})
  with patch("app.api.routes.videos.fetch_batch_view_counts", fetch):
    response = await async_client.get("/v1/videos/views", params={"ids": "b,a,a"})

  assert response.status_code == 200
  assert response.json() == {"a": 3, "b": 0}
  fetch.assert_awaited_once_with(["b", "a"])


@pytest.mark.anyio
async def test_batch_view_counts_without_ids_is_empty(async_client: AsyncClient, member):
  response = await async_client.get("/v1/videos/views")

  assert response.status_code == 200
  assert response.json() == {}


@pytest.mark.anyio
async def test_get_video_rejects_malformed_id(async_client: AsyncClient, member):
  response = await async_client.get("/v1/videos/not-a-uuid")

  assert response.status_code == 400
  assert response.json()["detail"] == "Invalid video id."


@pytest.mark.anyio
async def test_add_favorite_for_missing_video_is_not_found(async_client: AsyncClient, member):
  with patch("app.api.routes.favorites.add_favorite", AsyncMock(side_effect=LookupError("Video not found"))):
    response = await async_client.post(f"/v1/favorites/{uuid.uuid4()}")

  assert response.status_code == 404


@pytest.mark.anyio
async def test_curriculum_listing_is_shared(async_client: AsyncClient, member):
  with patch("app.api.routes.curriculums.fetch_curriculums", AsyncMock(return_value=[])) as fetch:
    response = await async_client.get("/v1/curriculums")

  assert response.status_code == 200
  assert response.json() == []
  fetch.assert_awaited_once()


@pytest.mark.anyio
async def test_member_can_message_admin(async_client: AsyncClient, member, make_user):
  admin = make_user(role=UserRole.ADMIN, email="admin@example.com")
  service = AsyncMock()
  service.send_message.return_value = 1

  app.dependency_overrides[get_notification_service] = lambda: service
  with patch("app.api.routes.notifications.list_admin_ids", AsyncMock(return_value=[admin.id])), patch("app.api.routes.notifications.get_user_by_id", AsyncMock(return_value=admin)):
    response = await async_client.post("/v1/notifications", json={"recipient_id": "admin", "message": "When is the next grading?"})

  assert response.status_code == 201
  assert response.json()["recipient_id"] == str(admin.id)
  kwargs = service.send_message.await_args.kwargs
  assert kwargs["sender_id"] == member.id
  assert [recipient.email for recipient in kwargs["recipients"]] == ["admin@example.com"]


@pytest.mark.anyio
async def test_head_teacher_cannot_grade_other_school(async_client: AsyncClient, make_user):
  head_teacher = make_user(role=UserRole.HEAD_TEACHER, school="North Dojo")
  student = make_user(school="South Dojo")
  app.dependency_overrides[get_current_head_teacher] = lambda: head_teacher

  with patch("app.api.routes.users.get_user_by_id", AsyncMock(return_value=student)):
    response = await async_client.patch(f"/api/user/students/{student.id}/belt", json={"curriculum_id": None})

  assert response.status_code == 403


@pytest.mark.anyio
async def test_record_view_for_unknown_video_is_not_found(async_client: AsyncClient, db_session):
  response = await async_client.post(f"/v1/videos/{uuid.uuid4()}/views")

  assert response.status_code == 404
  assert response.json()["detail"] == "Video not found."
  db_session.commit.assert_not_called()


@pytest.mark.anyio
async def test_record_view_survives_user_tracking_failure(async_client: AsyncClient, db_session, make_user):
  viewer = make_user()
  video_id = uuid.uuid4()
  app.dependency_overrides[get_optional_user] = lambda: viewer
  found = MagicMock()
  found.scalar_one_or_none.return_value = video_id
  db_session.execute.return_value = found
  db_session.flush = AsyncMock(side_effect=[RuntimeError("user fk violation"), None])

  response = await async_client.post(f"/v1/videos/{video_id}/views")

  assert response.status_code == 201
  assert response.json() == {"success": True}
  assert [call.args[0].user_id for call in db_session.add.call_args_list] == [viewer.id, None]
  db_session.commit.assert_awaited_once()
