"""Unit tests for redirect validation, video URL and date helpers."""

from __future__ import annotations

import datetime

import pytest

from app.utils.dates import format_time_ago, week_bounds
from app.utils.redirects import DEFAULT_AUTH_ERROR_MESSAGE, get_auth_error_message, validate_return_to
from app.utils.video_urls import extract_google_drive_id, format_duration, get_google_drive_thumbnail, is_google_drive_url


@pytest.mark.parametrize(
  ("value", "expected"),
  [
    ("/library", "/library"),
    ("%2Flibrary%2Ffavorites", "/library/favorites"),
    ("/videos?sort=title", "/videos?sort=title"),
    (None, None),
    ("", None),
    ("library", None),
    ("https://evil.example.com", None),
    ("//evil.example.com", None),
    ("/www.evil.com", None),
    ("%2Fevil.com", None),
    ("/", None),
    ("/auth/login", None),
    ("/pending-approval", None),
    ("/auth/anything", None),
    ("/admin/users", None),
    ("/api/user/me", None),
    ("/bad%zzescape", None),
  ],
)
def test_validate_return_to(value, expected):
  assert validate_return_to(value) == expected


def test_get_auth_error_message():
  assert get_auth_error_message(None) is None
  assert get_auth_error_message("") is None
  assert get_auth_error_message("reset_expired").startswith("Your password reset link has expired")
  assert get_auth_error_message("something_new") == DEFAULT_AUTH_ERROR_MESSAGE


def test_google_drive_helpers():
  url = "https://drive.google.com/file/d/1AbC-d_9/view?usp=sharing"
  assert is_google_drive_url(url)
  assert not is_google_drive_url("https://videos.example.com/clip.mp4")
  assert extract_google_drive_id(url) == "1AbC-d_9"
  assert extract_google_drive_id("https://drive.google.com/open") is None
  assert get_google_drive_thumbnail(url) == "https://drive.google.com/thumbnail?id=1AbC-d_9&sz=w400-h300"
  assert get_google_drive_thumbnail("https://drive.google.com/open") is None


@pytest.mark.parametrize(("seconds", "expected"), [(0, "0:00"), (65, "1:05"), (599.9, "9:59"), (3600, "1:00:00"), (3725, "1:02:05")])
def test_format_duration(seconds, expected):
  assert format_duration(seconds) == expected


def test_format_time_ago_buckets():
  now = datetime.datetime(2026, 5, 20, 12, 0, tzinfo=datetime.UTC)
  assert format_time_ago(now - datetime.timedelta(seconds=30), now=now) == "just now"
  assert format_time_ago(now - datetime.timedelta(minutes=5), now=now) == "5 minutes ago"
  assert format_time_ago(now - datetime.timedelta(hours=3), now=now) == "3 hours ago"
  assert format_time_ago(now - datetime.timedelta(days=2), now=now) == "2 days ago"
  assert format_time_ago(now - datetime.timedelta(days=65), now=now) == "2 months ago"
  # Naive timestamps are treated as UTC.
  assert format_time_ago(datetime.datetime(2026, 5, 20, 11, 0), now=now) == "1 hours ago"


def test_week_bounds_start_on_monday():
  # 2026-05-20 is a Wednesday.
  now = datetime.datetime(2026, 5, 20, 15, 30, tzinfo=datetime.UTC)
  last_week_start, this_week_start, next_week_start = week_bounds(now)

  assert this_week_start == datetime.datetime(2026, 5, 18, tzinfo=datetime.UTC)
  assert last_week_start == datetime.datetime(2026, 5, 11, tzinfo=datetime.UTC)
  assert next_week_start == datetime.datetime(2026, 5, 25, tzinfo=datetime.UTC)


def test_week_bounds_on_monday_midnight():
  now = datetime.datetime(2026, 5, 18, 0, 0, tzinfo=datetime.UTC)
  _, this_week_start, _ = week_bounds(now)
  assert this_week_start == now
