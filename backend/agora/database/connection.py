"""Schema bootstrap, shutdown and health probes for the API process."""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from agora.config import get_settings
from agora.database.base import Base
from agora.database.session import _get_async_engine, dispose_engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    # Registers every table on Base.metadata
    import agora.models  # noqa: F401

    engine = _get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def close_db() -> None:
    await dispose_engine()


async def check_db_connection() -> bool:
    """True when a trivial query round-trips."""
    try:
        async with _get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def get_db_info() -> dict:
    settings = get_settings()
    return {
        "url": _sanitize_database_url(settings.database_url),
        "environment": settings.environment,
    }


def _sanitize_database_url(url: str) -> str:
    """Mask the password so the URL can be logged."""
    if "@" not in url or "://" not in url:
        return url

    protocol, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        username = credentials.split(":", 1)[0]
        return f"{protocol}://{username}:***@{host}"
    return url
