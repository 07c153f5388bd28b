from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import admin, auth, curriculums, favorites, notifications, users, videos
from app.config import get_settings
from app.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from app.core.json import ApiJSONResponse
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

app = FastAPI(title=settings.site_title, default_response_class=ApiJSONResponse, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(
  CORSMiddleware,
  allow_origins=list(settings.allowed_origins),
  allow_credentials=True,
  allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
  allow_headers=["content-type", "authorization"],
  expose_headers=["content-length", "x-request-id"],
)


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/user", tags=["users"])
app.include_router(videos.router, prefix="/v1", tags=["videos"])
app.include_router(favorites.router, prefix="/v1", tags=["favorites"])
app.include_router(curriculums.router, prefix="/v1", tags=["curriculums"])
app.include_router(notifications.router, prefix="/v1", tags=["notifications"])
app.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
