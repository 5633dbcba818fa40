"""Process-wide async engine plus the session context used outside FastAPI
(Celery tasks and the CLI)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from agora.config import get_settings

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(url: str, **engine_kwargs) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend."""
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        engine_kwargs.setdefault("connect_args", {"timeout": 30})
    else:
        engine_kwargs.setdefault("pool_size", 5)
        engine_kwargs.setdefault("max_overflow", 10)
        engine_kwargs.setdefault("pool_pre_ping", True)
        engine_kwargs.setdefault("pool_recycle", 3600)

    return create_async_engine(url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory; objects stay usable after commit."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def _get_async_engine() -> AsyncEngine:
    global _async_engine
    if _async_engine is None:
        _async_engine = build_engine(get_settings().database_url)
    return _async_engine


def _get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = build_session_factory(_get_async_engine())
    return _async_session_factory


def configure_engine(engine: AsyncEngine) -> None:
    """Replace the process-wide engine (tests, CLI overrides)."""
    global _async_engine, _async_session_factory
    _async_engine = engine
    _async_session_factory = build_session_factory(engine)


async def dispose_engine() -> None:
    """Dispose the process-wide engine and forget it."""
    global _async_engine, _async_session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that is rolled back if the block raises."""
    async with _get_async_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
