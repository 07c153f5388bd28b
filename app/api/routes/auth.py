import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.api.models import IdTokenRequest, SignupRequest
from app.config import Settings, get_settings
from app.core.cookies import create_signout_response, has_auth_cookies, set_session_cookie
from app.core.database import get_db
from app.core.firebase import create_session_cookie, revoke_refresh_tokens, verify_id_token, verify_session_cookie
from app.schema.sql import AuditAction, UserRole, UserStatus
from app.services.audit import log_audit_event
from app.services.users import create_user, get_user_by_firebase_uid, serialize_user
from app.utils.redirects import get_auth_error_message, validate_return_to

router = APIRouter()
logger = logging.getLogger(__name__)


async def _verify_or_401(id_token: str) -> dict[str, Any]:
  try:
    decoded_token = await run_in_threadpool(verify_id_token, id_token)
  except Exception as e:
    logger.error("Token verification crashed: %s", e, exc_info=True)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid ID token") from e

  if not decoded_token:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid ID token")
  return decoded_token


@router.post("/login")
async def login(request: IdTokenRequest, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:  # noqa: B008
  """Report whether the Firebase account already has a library profile."""
  decoded_token = await _verify_or_401(request.id_token)
  firebase_uid = decoded_token.get("uid")
  if not firebase_uid:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token missing uid")

  user = await get_user_by_firebase_uid(db, firebase_uid)
  if not user:
    logger.info("Login checked: user not registered uid=%s", firebase_uid)
    return {"exists": False, "user": None}

  return {"exists": True, "user": serialize_user(user)}


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, db: AsyncSession = Depends(get_db), settings: Settings = Depends(get_settings)) -> dict[str, Any]:  # noqa: B008
  """Register a new member; accounts wait for admin approval unless they belong to the superadmin."""
  decoded_token = await _verify_or_401(request.id_token)
  firebase_uid = decoded_token.get("uid")
  token_email = decoded_token.get("email")
  if not firebase_uid or not token_email:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token missing uid or email")

  if await get_user_by_firebase_uid(db, firebase_uid):
    logger.warning("Signup failed: user already registered uid=%s", firebase_uid)
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already registered")

  # The configured superadmin bootstraps the first admin account.
  is_superadmin = bool(settings.superadmin_email) and str(token_email).lower() == settings.superadmin_email
  role = UserRole.ADMIN if is_superadmin else UserRole.STUDENT
  account_status = UserStatus.APPROVED if is_superadmin else UserStatus.PENDING

  try:
    user = await create_user(db, firebase_uid=firebase_uid, email=str(token_email), full_name=request.full_name, school=request.school, teacher=request.teacher, role=role, status=account_status)
  except Exception as e:
    logger.error("Signup failed: database error uid=%s: %s", firebase_uid, e, exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create user") from e

  await log_audit_event(db, action=AuditAction.USER_SIGNUP, actor_id=user.id, actor_email=user.email, target_id=user.id, target_email=user.email, additional_data={"school": user.school, "teacher": user.teacher})
  logger.info("Signup successful user_id=%s status=%s", user.id, user.status.value)
  return {"user": serialize_user(user)}


@router.post("/session")
async def create_session(request: IdTokenRequest, response: Response, settings: Settings = Depends(get_settings)) -> dict[str, Any]:  # noqa: B008
  """Swap a fresh ID token for an HTTP-only session cookie."""
  await _verify_or_401(request.id_token)
  session_cookie = await run_in_threadpool(create_session_cookie, request.id_token, settings.session_ttl_seconds)
  if not session_cookie:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not create session")

  set_session_cookie(response, session_cookie, settings)
  return {"ok": True, "expires_in": settings.session_ttl_seconds}


@router.post("/signout")
async def signout(request: Request, return_to: str | None = Query(default=None, alias="returnTo"), settings: Settings = Depends(get_settings)) -> RedirectResponse:  # noqa: B008
  """Clear every auth cookie and send the browser back to a safe in-app path."""
  if not has_auth_cookies(request, settings):
    logger.info("Signout requested without auth cookies")
  session_cookie = request.cookies.get(settings.session_cookie_name)
  if session_cookie:
    claims = await run_in_threadpool(verify_session_cookie, session_cookie)
    if claims and claims.get("uid"):
      await run_in_threadpool(revoke_refresh_tokens, claims["uid"])

  return create_signout_response(settings, validate_return_to(return_to) or "/")


@router.get("/error-message")
async def auth_error_message(code: str | None = None) -> dict[str, str | None]:
  """Resolve an auth error code from a redirect into display text."""
  return {"code": code, "message": get_auth_error_message(code)}
