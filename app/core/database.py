from __future__ import annotations

from collections.abc import AsyncGenerator

from app.config import get_database_settings
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
  pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def database_url() -> str | None:
  """Return the configured DSN rewritten for the asyncpg driver."""
  dsn = get_database_settings().pg_dsn
  if dsn and dsn.startswith("postgres://"):
    # Hosted providers still hand out the legacy scheme.
    dsn = dsn.replace("postgres://", "postgresql://", 1)
  if dsn and dsn.startswith("postgresql://"):
    dsn = dsn.replace("postgresql://", "postgresql+asyncpg://", 1)
  return dsn


def get_db_engine() -> AsyncEngine | None:
  global _engine
  if _engine is None:
    url = database_url()
    if url:
      settings = get_database_settings()
      _engine = create_async_engine(url, echo=settings.debug, pool_pre_ping=True, connect_args={"timeout": settings.pg_connect_timeout})
  return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  global _session_factory
  if _session_factory is None:
    engine = get_db_engine()
    if engine is not None:
      _session_factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  return _session_factory


def require_session_factory() -> async_sessionmaker[AsyncSession]:
  """Return the session factory or fail loudly when no database is configured."""
  factory = get_session_factory()
  if factory is None:
    raise RuntimeError("Database connection is not configured (VIDEOLIB_PG_DSN is missing).")
  return factory


async def get_db() -> AsyncGenerator[AsyncSession]:
  """Dependency to get a database session."""
  async with require_session_factory()() as session:
    try:
      yield session
    finally:
      await session.close()


async def dispose_engine() -> None:
  """Close pooled connections on shutdown."""
  global _engine, _session_factory
  if _engine is not None:
    await _engine.dispose()
  _engine = None
  _session_factory = None
