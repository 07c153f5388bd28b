from __future__ import annotations

import logging
from typing import Annotated, Any

from app.config import get_settings
from app.core.database import get_db
from app.core.firebase import verify_id_token, verify_session_cookie
from app.schema.sql import User, UserRole, UserStatus
from app.services.users import get_user_by_firebase_uid
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Browsers authenticate with the session cookie, so a missing bearer header is not an error by itself.
security_scheme = HTTPBearer(auto_error=False)

PENDING_APPROVAL_ERROR = "PENDING_APPROVAL"


def _unauthorized(detail: str) -> HTTPException:
  return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers={"WWW-Authenticate": "Bearer"})


async def _resolve_claims(request: Request, token: HTTPAuthorizationCredentials | None) -> dict[str, Any] | None:
  """Verify the bearer ID token, falling back to the session cookie."""
  if token is not None and token.credentials:
    return await run_in_threadpool(verify_id_token, token.credentials)

  session_cookie = request.cookies.get(get_settings().session_cookie_name)
  if session_cookie:
    return await run_in_threadpool(verify_session_cookie, session_cookie)
  return None


async def get_verified_claims(request: Request, token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> dict[str, Any]:
  """Verified Firebase claims for the caller; used by signup before a profile exists."""
  claims = await _resolve_claims(request, token)
  if not claims:
    raise _unauthorized("Invalid authentication credentials")
  if not claims.get("uid"):
    raise _unauthorized("Invalid token claims")
  return claims


async def get_current_identity(claims: dict[str, Any] = Depends(get_verified_claims), db: AsyncSession = Depends(get_db)) -> tuple[User, dict[str, Any]]:  # noqa: B008
  """Verify Firebase credentials and hydrate the member profile."""
  user = await get_user_by_firebase_uid(db, claims["uid"])
  if not user:
    # Members must sign up explicitly; verified Firebase users without a profile are rejected.
    raise _unauthorized("User not found")
  return user, claims


async def get_current_user(current_identity: tuple[User, dict[str, Any]] = Depends(get_current_identity)) -> User:  # noqa: B008
  return current_identity[0]


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:  # noqa: B008
  """Only approved members reach library routes; everyone else is told approval is pending."""
  if current_user.status != UserStatus.APPROVED:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"error": PENDING_APPROVAL_ERROR, "status": current_user.status.value})
  return current_user


async def get_optional_user(request: Request, token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)], db: AsyncSession = Depends(get_db)) -> User | None:  # noqa: B008
  """Resolve the caller when credentials are present and valid, otherwise None."""
  claims = await _resolve_claims(request, token)
  if not claims or not claims.get("uid"):
    return None
  return await get_user_by_firebase_uid(db, claims["uid"])


def require_roles(*roles: UserRole):  # noqa: ANN201
  """Build a dependency that admits approved members holding one of `roles`."""
  allowed = frozenset(roles)

  async def _dependency(current_user: User = Depends(get_current_active_user)) -> User:  # noqa: B008
    if current_user.role not in allowed:
      raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return current_user

  return _dependency


get_current_admin_user = require_roles(UserRole.ADMIN)
get_current_teacher = require_roles(UserRole.TEACHER, UserRole.HEAD_TEACHER)
get_current_head_teacher = require_roles(UserRole.HEAD_TEACHER)
