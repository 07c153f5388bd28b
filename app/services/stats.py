"""Dashboard figures for the admin console."""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass
from typing import Any

from app.schema.sql import UserStatus
from app.services.users import count_users
from app.services.video_views import get_total_video_views, get_video_views_in_range
from app.utils.dates import week_bounds
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True, slots=True)
class AdminStats:
  total_users: int
  pending_users: int
  total_views: int
  views_this_week: int
  views_last_week: int

  def to_dict(self) -> dict[str, Any]:
    return asdict(self)


async def collect_admin_stats(session: AsyncSession, *, now: datetime.datetime | None = None) -> AdminStats:
  last_week_start, this_week_start, next_week_start = week_bounds(now)
  return AdminStats(
    total_users=await count_users(session),
    pending_users=await count_users(session, status=UserStatus.PENDING),
    total_views=await get_total_video_views(session),
    views_this_week=await get_video_views_in_range(session, this_week_start, next_week_start),
    views_last_week=await get_video_views_in_range(session, last_week_start, this_week_start),
  )
