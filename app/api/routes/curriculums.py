from typing import Any

from fastapi import APIRouter, Depends

from app.core.request_cache import RequestDeduplicator, get_request_deduplicator
from app.core.security import get_current_active_user
from app.schema.sql import User
from app.services.curriculums import CURRICULUM_LIST_KEY, fetch_curriculums

router = APIRouter()


@router.get("/curriculums")
async def list_curriculums(_current_user: User = Depends(get_current_active_user), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> list[dict[str, Any]]:  # noqa: B008
  """Belts in display order with the number of videos tagged with each."""
  curriculums = await deduplicator.deduplicate(CURRICULUM_LIST_KEY, fetch_curriculums)
  return [item.to_dict() for item in curriculums]
