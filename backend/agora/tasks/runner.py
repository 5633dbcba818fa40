"""Run async service code from synchronous Celery tasks."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from agora.database.session import dispose_engine

T = TypeVar("T")


def run_async(fn: Callable[[], Awaitable[T]]) -> T:
    """
    Run ``fn`` in a fresh event loop.

    Pooled connections belong to the loop that opened them, so the engine is
    disposed before the loop closes and rebuilt by the next task.
    """

    async def _wrapped() -> T:
        try:
            return await fn()
        finally:
            await dispose_engine()

    return asyncio.run(_wrapped())
