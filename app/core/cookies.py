"""Auth cookie handling shared by the session and sign-out endpoints."""

from __future__ import annotations

from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse

from app.config import Settings

# Names left behind by the previous hosted-auth frontend; cleared on sign-out so stale sessions die.
LEGACY_AUTH_COOKIE_NAMES = ("sb-access-token", "sb-refresh-token", "supabase-auth-token")

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate", "Pragma": "no-cache", "Expires": "0"}


def auth_cookie_names(settings: Settings) -> tuple[str, ...]:
  return (settings.session_cookie_name, *LEGACY_AUTH_COOKIE_NAMES)


def has_auth_cookies(request: Request, settings: Settings) -> bool:
  return any(name in request.cookies for name in auth_cookie_names(settings))


def set_session_cookie(response: Response, session_cookie: str, settings: Settings) -> None:
  response.set_cookie(
    settings.session_cookie_name,
    session_cookie,
    max_age=settings.session_ttl_seconds,
    path="/",
    secure=settings.secure_cookies,
    httponly=True,
    samesite="lax",
  )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
  """Expire every auth cookie, host-only and for each configured domain."""
  for domain in (None, *settings.cookie_domains):
    for name in auth_cookie_names(settings):
      response.delete_cookie(name, path="/", domain=domain, secure=settings.secure_cookies, httponly=True, samesite="lax")


def _no_cache(response: Response) -> Response:
  for header, value in NO_CACHE_HEADERS.items():
    response.headers[header] = value
  return response


def create_signout_response(settings: Settings, redirect_to: str = "/") -> RedirectResponse:
  response = RedirectResponse(url=redirect_to, status_code=status.HTTP_303_SEE_OTHER)
  clear_auth_cookies(response, settings)
  _no_cache(response)
  return response
