import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_notification_service, parse_uuid
from app.api.models import (
  AdminNotificationRequest,
  AdminUserUpdateRequest,
  ApproveUserRequest,
  CategoryRequest,
  CurriculumReorderRequest,
  CurriculumRequest,
  PerformerRequest,
  UserListQuery,
  VideoSaveRequest,
)
from app.api.routes.videos import split_multi
from app.core.database import get_db
from app.core.firebase import revoke_refresh_tokens
from app.core.request_cache import RequestDeduplicator, get_request_deduplicator
from app.core.security import get_current_admin_user
from app.notifications.contracts import Recipient
from app.notifications.service import NotificationService
from app.schema.sql import AuditAction, Curriculum, User, UserStatus
from app.services.audit import clear_audit_logs, list_audit_logs, log_audit_event, serialize_audit_log
from app.services.curriculums import CURRICULUM_LIST_KEY, CurriculumInUseError, create_curriculum, delete_curriculum, list_curriculums, reorder_curriculums, serialize_curriculum, update_curriculum
from app.services.metadata import (
  DuplicateNameError,
  create_category,
  create_performer,
  delete_category,
  delete_performer,
  list_categories,
  list_performers,
  serialize_category,
  serialize_performer,
  update_category,
  update_performer,
)
from app.services.stats import collect_admin_stats
from app.services.users import (
  ADMIN_EDITABLE_FIELDS,
  UserListFilters,
  delete_user,
  get_user_by_id,
  list_approved_users,
  list_pending_users,
  list_users,
  serialize_user,
  update_user_fields,
  update_user_status,
)
from app.services.videos import PUBLISHED_CATALOG_KEY, VideoInput, delete_video, get_catalog_video, load_catalog, save_video
from app.utils.video_sorting import sort_videos, video_matches_filters, video_matches_search

router = APIRouter()
logger = logging.getLogger(__name__)

ManagementSortField = Literal["title", "created_at", "recorded", "performers", "category", "curriculum", "views", "last_viewed"]

# Curriculum changes show up in both the catalog (belt tags) and the curriculum list.
CATALOG_READ_KEYS = (PUBLISHED_CATALOG_KEY, CURRICULUM_LIST_KEY)


async def _load_user_or_404(db: AsyncSession, user_id: str) -> User:
  user = await get_user_by_id(db, parse_uuid(user_id, "user"))
  if user is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
  return user


def _recipient(user: User) -> Recipient:
  return Recipient(user_id=user.id, email=user.email, full_name=user.full_name)


def _drop_shared_reads(deduplicator: RequestDeduplicator, *keys: str) -> None:
  # Readers arriving after a write start a fresh load instead of joining one begun before it.
  for key in keys:
    deduplicator.clear(key)


# Users


@router.get("/users")
async def list_user_accounts(query: UserListQuery = Depends(), _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """List users with filters, sorting and pagination."""
  filters = UserListFilters(page=query.page, limit=query.limit, email=query.email, status=query.status, role=query.role, sort_by=query.sort_by, sort_order=query.sort_order)
  users, total = await list_users(db, filters=filters)
  return {"items": [serialize_user(user) for user in users], "total": total, "limit": query.limit, "offset": (query.page - 1) * query.limit}


@router.get("/users/pending")
async def list_pending_accounts(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  users = await list_pending_users(db)
  return [serialize_user(user) for user in users]


@router.patch("/users/{user_id}/approve")
async def approve_user(
  user_id: str,
  request: ApproveUserRequest | None = None,
  current_user: User = Depends(get_current_admin_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  notifications: NotificationService = Depends(get_notification_service),  # noqa: B008
) -> dict[str, Any]:
  """Approve an account with a role and notify the member."""
  user = await _load_user_or_404(db, user_id)
  role = (request or ApproveUserRequest()).role

  # Avoid resending notifications on repeated approval calls.
  if user.status == UserStatus.APPROVED and user.role == role:
    return serialize_user(user)

  was_approved = user.status == UserStatus.APPROVED
  # Persist approval before notifying so delivery failures cannot block access.
  user = await update_user_status(db, user=user, status=UserStatus.APPROVED, approved_by=current_user.id, role=role)
  await log_audit_event(
    db,
    action=AuditAction.USER_APPROVAL,
    actor_id=current_user.id,
    actor_email=current_user.email,
    target_id=user.id,
    target_email=user.email,
    additional_data={"role": role.value},
  )
  if not was_approved:
    await notifications.notify_account_approved(approver_id=current_user.id, recipient=_recipient(user))
  logger.info("User approved user_id=%s role=%s by=%s", user.id, role.value, current_user.id)
  return serialize_user(user)


@router.patch("/users/{user_id}/reject")
async def reject_user(user_id: str, current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """Reject an account after review."""
  user = await _load_user_or_404(db, user_id)
  user = await update_user_status(db, user=user, status=UserStatus.REJECTED)
  await log_audit_event(db, action=AuditAction.USER_REJECTION, actor_id=current_user.id, actor_email=current_user.email, target_id=user.id, target_email=user.email)
  return serialize_user(user)


@router.patch("/users/{user_id}")
async def update_user_account(user_id: str, request: AdminUserUpdateRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  changes = request.model_dump(exclude_unset=True)
  if not changes:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one field is required.")
  if "role" in changes and changes["role"] is None:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role cannot be empty.")

  user = await _load_user_or_404(db, user_id)
  try:
    user = await update_user_fields(db, user=user, changes=changes, allowed=ADMIN_EDITABLE_FIELDS)
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Curriculum not found.") from exc
  belt = await db.get(Curriculum, user.current_belt_id) if user.current_belt_id else None
  return serialize_user(user, belt=belt)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_account(user_id: str, current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> None:  # noqa: B008
  """Delete an account permanently and end its sessions."""
  user = await _load_user_or_404(db, user_id)
  if user.id == current_user.id:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admins cannot delete their own account.")

  target_id, target_email, firebase_uid = user.id, user.email, user.firebase_uid
  if not await delete_user(db, target_id):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
  await run_in_threadpool(revoke_refresh_tokens, firebase_uid)
  await log_audit_event(db, action=AuditAction.USER_DELETION, actor_id=current_user.id, actor_email=current_user.email, target_id=target_id, target_email=target_email)


# Videos


@router.get("/videos")
async def list_all_videos(
  search: str | None = None,
  categories: list[str] = Query(default=[]),  # noqa: B008
  curriculums: list[str] = Query(default=[]),  # noqa: B008
  filter_mode: Literal["AND", "OR"] = "AND",
  sort_by: ManagementSortField = "title",
  sort_order: Literal["asc", "desc"] = "asc",
  _current_user: User = Depends(get_current_admin_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict[str, Any]:
  """Every video, published or not, with last-viewed timestamps."""
  catalog = await load_catalog(db, published_only=False)
  query = (search or "").strip()
  selected_categories = split_multi(categories)
  selected_curriculums = split_multi(curriculums)
  matches = [video for video in catalog if (not query or video_matches_search(video, query)) and video_matches_filters(video, selected_categories, selected_curriculums, filter_mode)]
  ordered = sort_videos(matches, sort_by, sort_order)
  return {"videos": [video.to_dict() for video in ordered], "total": len(ordered)}


def _video_input(request: VideoSaveRequest) -> VideoInput:
  return VideoInput(
    title=request.title,
    video_url=request.video_url,
    description=request.description,
    thumbnail_url=request.thumbnail_url,
    duration_seconds=request.duration_seconds,
    is_published=request.is_published,
    recorded=request.recorded,
    category_ids=request.category_ids,
    performer_ids=request.performer_ids,
    curriculum_ids=request.curriculum_ids,
  )


async def _save_video_or_error(db: AsyncSession, request: VideoSaveRequest, *, video_id: Any = None, created_by: Any = None) -> dict[str, Any]:
  try:
    video = await save_video(db, _video_input(request), video_id=video_id, created_by=created_by)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.") from exc
  saved = await get_catalog_video(db, video.id, published_only=False)
  return saved.to_dict() if saved else {"id": str(video.id)}


@router.post("/videos", status_code=status.HTTP_201_CREATED)
async def create_video(request: VideoSaveRequest, current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  saved = await _save_video_or_error(db, request, created_by=current_user.id)
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return saved


@router.put("/videos/{video_id}")
async def update_video(video_id: str, request: VideoSaveRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  saved = await _save_video_or_error(db, request, video_id=parse_uuid(video_id, "video"))
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return saved


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_video(video_id: str, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> None:  # noqa: B008
  if not await delete_video(db, parse_uuid(video_id, "video")):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found.")
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)


# Categories and performers


@router.get("/categories")
async def list_category_records(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  return [serialize_category(category) for category in await list_categories(db)]


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category_record(request: CategoryRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    category = await create_category(db, name=request.name, color=request.color, description=request.description)
  except DuplicateNameError as exc:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return serialize_category(category)


@router.put("/categories/{category_id}")
async def update_category_record(category_id: str, request: CategoryRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    category = await update_category(db, parse_uuid(category_id, "category"), name=request.name, color=request.color, description=request.description)
  except DuplicateNameError as exc:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found.") from exc
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return serialize_category(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_record(category_id: str, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> None:  # noqa: B008
  if not await delete_category(db, parse_uuid(category_id, "category")):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found.")
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)


@router.get("/performers")
async def list_performer_records(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  return [serialize_performer(performer) for performer in await list_performers(db)]


@router.post("/performers", status_code=status.HTTP_201_CREATED)
async def create_performer_record(request: PerformerRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    performer = await create_performer(db, name=request.name, bio=request.bio)
  except DuplicateNameError as exc:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return serialize_performer(performer)


@router.put("/performers/{performer_id}")
async def update_performer_record(performer_id: str, request: PerformerRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    performer = await update_performer(db, parse_uuid(performer_id, "performer"), name=request.name, bio=request.bio)
  except DuplicateNameError as exc:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Performer not found.") from exc
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)
  return serialize_performer(performer)


@router.delete("/performers/{performer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_performer_record(performer_id: str, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> None:  # noqa: B008
  if not await delete_performer(db, parse_uuid(performer_id, "performer")):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Performer not found.")
  _drop_shared_reads(deduplicator, PUBLISHED_CATALOG_KEY)


# Curriculums


@router.get("/curriculums")
async def list_curriculum_records(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  return [item.to_dict() for item in await list_curriculums(db)]


@router.post("/curriculums", status_code=status.HTTP_201_CREATED)
async def create_curriculum_record(request: CurriculumRequest, current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    curriculum = await create_curriculum(db, name=request.name, color=request.color, description=request.description, display_order=request.display_order, created_by=current_user.id)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  _drop_shared_reads(deduplicator, *CATALOG_READ_KEYS)
  return serialize_curriculum(curriculum)


@router.put("/curriculums/{curriculum_id}")
async def update_curriculum_record(curriculum_id: str, request: CurriculumRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, Any]:  # noqa: B008
  try:
    curriculum = await update_curriculum(db, parse_uuid(curriculum_id, "curriculum"), name=request.name, color=request.color, description=request.description, display_order=request.display_order)
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Curriculum not found.") from exc
  _drop_shared_reads(deduplicator, *CATALOG_READ_KEYS)
  return serialize_curriculum(curriculum)


@router.delete("/curriculums/{curriculum_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_curriculum_record(curriculum_id: str, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> None:  # noqa: B008
  """Delete a curriculum; refused while any video is tagged with it."""
  try:
    await delete_curriculum(db, parse_uuid(curriculum_id, "curriculum"))
  except CurriculumInUseError as exc:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Curriculum not found.") from exc
  _drop_shared_reads(deduplicator, *CATALOG_READ_KEYS)


@router.post("/curriculums/reorder")
async def reorder_curriculum_records(request: CurriculumReorderRequest, _current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db), deduplicator: RequestDeduplicator = Depends(get_request_deduplicator)) -> dict[str, bool]:  # noqa: B008
  try:
    await reorder_curriculums(db, [(item.id, item.display_order) for item in request.orders])
  except LookupError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
  _drop_shared_reads(deduplicator, *CATALOG_READ_KEYS)
  return {"success": True}


# Notifications, stats and audit trail


@router.post("/notifications", status_code=status.HTTP_201_CREATED)
async def send_admin_notification(
  request: AdminNotificationRequest,
  current_user: User = Depends(get_current_admin_user),  # noqa: B008
  db: AsyncSession = Depends(get_db),  # noqa: B008
  notifications: NotificationService = Depends(get_notification_service),  # noqa: B008
) -> dict[str, Any]:
  """Broadcast to every approved member, or message one member."""
  if request.broadcast == (request.recipient_id is not None):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide either recipient_id or broadcast.")

  if request.broadcast:
    targets = await list_approved_users(db, exclude=current_user.id)
  else:
    target = await get_user_by_id(db, request.recipient_id)
    if target is None:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found.")
    targets = [target]

  if not targets:
    return {"sent": 0, "emailed": 0}
  try:
    emailed = await notifications.send_message(sender_id=current_user.id, recipients=[_recipient(user) for user in targets], message=request.message)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
  logger.info("Admin notification sent by=%s recipients=%s broadcast=%s", current_user.id, len(targets), request.broadcast)
  return {"sent": len(targets), "emailed": emailed}


@router.get("/stats")
async def read_stats(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> dict[str, int]:  # noqa: B008
  stats = await collect_admin_stats(db)
  return stats.to_dict()


@router.get("/audit-logs")
async def read_audit_logs(_current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:  # noqa: B008
  return [serialize_audit_log(entry) for entry in await list_audit_logs(db)]


@router.delete("/audit-logs")
async def purge_audit_logs(current_user: User = Depends(get_current_admin_user), db: AsyncSession = Depends(get_db)) -> dict[str, int]:  # noqa: B008
  deleted = await clear_audit_logs(db)
  logger.info("Audit logs cleared by=%s rows=%s", current_user.id, deleted)
  return {"deleted": deleted}
