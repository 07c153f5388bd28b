import dataclasses
import datetime
import json
import os
import uuid
from decimal import Decimal

import pytest
from fastapi.responses import Response

from app.config import get_settings
from app.core.cookies import LEGACY_AUTH_COOKIE_NAMES, NO_CACHE_HEADERS, create_signout_response, set_session_cookie
from app.core.json import ApiJSONResponse
from app.schema.sql import UserRole
from app.utils.env import load_env_file, parse_env_lines


@pytest.fixture
def fresh_settings(monkeypatch):
  get_settings.cache_clear()
  monkeypatch.setenv("VIDEOLIB_ALLOWED_ORIGINS", "http://localhost:3000, https://dojo.example.com")
  yield monkeypatch
  get_settings.cache_clear()


def test_settings_parse_origins_and_defaults(fresh_settings):
  settings = get_settings()
  assert settings.allowed_origins == ("http://localhost:3000", "https://dojo.example.com")
  assert settings.session_cookie_name == "videolib_session"
  assert settings.site_title == "Dojo Video Library"


def test_settings_reject_wildcard_origin(fresh_settings):
  fresh_settings.setenv("VIDEOLIB_ALLOWED_ORIGINS", "*")
  with pytest.raises(ValueError, match="VIDEOLIB_ALLOWED_ORIGINS"):
    get_settings()


def test_settings_require_mailersend_key_when_email_enabled(fresh_settings):
  fresh_settings.setenv("VIDEOLIB_EMAIL_NOTIFICATIONS_ENABLED", "true")
  fresh_settings.setenv("VIDEOLIB_EMAIL_FROM_ADDRESS", "dojo@example.com")
  fresh_settings.delenv("VIDEOLIB_MAILERSEND_API_KEY", raising=False)
  with pytest.raises(ValueError, match="VIDEOLIB_MAILERSEND_API_KEY"):
    get_settings()


def test_settings_reject_out_of_range_session_ttl(fresh_settings):
  fresh_settings.setenv("VIDEOLIB_SESSION_TTL_SECONDS", "60")
  with pytest.raises(ValueError, match="VIDEOLIB_SESSION_TTL_SECONDS"):
    get_settings()


def test_parse_env_lines_handles_comments_quotes_and_export():
  lines = ["# comment", "", "export VIDEOLIB_ENV=production", 'VIDEOLIB_SITE_TITLE="North Dojo"', "BROKEN_LINE", "EMPTY="]
  assert parse_env_lines(lines) == {"VIDEOLIB_ENV": "production", "VIDEOLIB_SITE_TITLE": "North Dojo", "EMPTY": ""}


def test_load_env_file_keeps_existing_values(tmp_path, monkeypatch):
  env_file = tmp_path / ".env"
  env_file.write_text("VIDEOLIB_TEST_KEEP=from-file\nVIDEOLIB_TEST_NEW=added\n", encoding="utf-8")
  monkeypatch.setenv("VIDEOLIB_TEST_KEEP", "from-env")
  monkeypatch.delenv("VIDEOLIB_TEST_NEW", raising=False)

  load_env_file(env_file)

  assert os.environ["VIDEOLIB_TEST_KEEP"] == "from-env"
  assert os.environ["VIDEOLIB_TEST_NEW"] == "added"
  monkeypatch.delenv("VIDEOLIB_TEST_NEW")


def test_signout_response_clears_every_cookie_variant():
  settings = dataclasses.replace(get_settings(), cookie_domains=(".dojo.example.com",))

  response = create_signout_response(settings, "/library")

  assert response.status_code == 303
  assert response.headers["location"] == "/library"
  for header, value in NO_CACHE_HEADERS.items():
    assert response.headers[header] == value
  cleared = response.headers.getlist("set-cookie")
  for name in (settings.session_cookie_name, *LEGACY_AUTH_COOKIE_NAMES):
    assert any(cookie.startswith(f"{name}=") and "Domain=.dojo.example.com" in cookie for cookie in cleared)
    assert any(cookie.startswith(f"{name}=") and "Domain=" not in cookie for cookie in cleared)



def test_set_session_cookie_is_http_only():
  settings = get_settings()
  response = Response()
  set_session_cookie(response, "cookie-value", settings)
  header = response.headers["set-cookie"]
  assert header.startswith(f"{settings.session_cookie_name}=cookie-value")
  assert "HttpOnly" in header
  assert "SameSite=lax" in header
  assert f"Max-Age={settings.session_ttl_seconds}" in header


def test_api_json_response_encodes_orm_types():
  video_id = uuid.uuid4()
  moment = datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC)
  response = ApiJSONResponse(content={"id": video_id, "at": moment, "role": UserRole.HEAD_TEACHER, "total": Decimal("3"), "ratio": Decimal("0.5")})
  assert json.loads(response.body) == {"id": str(video_id), "at": moment.isoformat(), "role": "Head Teacher", "total": 3, "ratio": 0.5}
