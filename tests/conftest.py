"""Test configuration for importing the application package."""

from __future__ import annotations

import os

# Settings are read at import time of app.main.
os.environ.setdefault("VIDEOLIB_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("VIDEOLIB_ENV", "test")

import datetime  # noqa: E402
import uuid  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.database import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.schema.sql import User, UserRole, UserStatus  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def mock_db_session():
  session = AsyncMock()
  # Mock execute result
  result = MagicMock()
  result.scalar_one_or_none.return_value = None
  result.scalar_one.return_value = None
  session.execute.return_value = result
  session.get.return_value = None
  session.add = MagicMock()
  session.add_all = MagicMock()
  return session


@pytest.fixture
def override_get_db(mock_db_session):
  async def _get_db():
    yield mock_db_session

  return _get_db


@pytest.fixture
async def async_client(override_get_db):
  app.dependency_overrides[get_db] = override_get_db
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
  app.state.request_deduplicator = None


@pytest.fixture
def db_session(mock_db_session):
  return mock_db_session


@pytest.fixture
def make_user():
  def _make_user(*, role: UserRole = UserRole.STUDENT, status: UserStatus = UserStatus.APPROVED, school: str | None = "North Dojo", email: str = "member@example.com") -> User:
    return User(
      id=uuid.uuid4(),
      firebase_uid=f"uid-{uuid.uuid4().hex[:8]}",
      email=email,
      full_name="Test Member",
      school=school,
      teacher="Sensei Test",
      role=role,
      status=status,
      created_at=datetime.datetime(2026, 1, 5, tzinfo=datetime.UTC),
    )

  return _make_user
