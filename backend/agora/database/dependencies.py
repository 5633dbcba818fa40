"""Request-scoped database session for the API routes."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from agora.database.session import _get_async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, closed once the response is sent.

    Services own their transactions (commit or rollback), so nothing is
    committed here.
    """
    async with _get_async_session_factory()() as session:
        yield session
