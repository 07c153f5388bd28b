from __future__ import annotations

import datetime


def utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


def format_time_ago(moment: datetime.datetime, *, now: datetime.datetime | None = None) -> str:
  """Coarse relative time used in notification and audit listings."""
  now = now or utc_now()
  if moment.tzinfo is None:
    moment = moment.replace(tzinfo=datetime.UTC)
  seconds = int((now - moment).total_seconds())

  if seconds < 60:
    return "just now"
  if seconds < 3600:
    return f"{seconds // 60} minutes ago"
  if seconds < 86400:
    return f"{seconds // 3600} hours ago"
  if seconds < 2592000:
    return f"{seconds // 86400} days ago"
  return f"{seconds // 2592000} months ago"


def week_bounds(now: datetime.datetime | None = None) -> tuple[datetime.datetime, datetime.datetime, datetime.datetime]:
  """Return (last week start, this week start, next week start), weeks starting Monday 00:00."""
  now = now or utc_now()
  midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
  this_week_start = midnight - datetime.timedelta(days=now.weekday())
  last_week_start = this_week_start - datetime.timedelta(days=7)
  next_week_start = this_week_start + datetime.timedelta(days=7)
  return last_week_start, this_week_start, next_week_start
