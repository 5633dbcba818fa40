"""Shared fixtures: a throwaway SQLite database and in-memory collaborators."""

import asyncio

import pytest
from sqlalchemy.pool import NullPool

import agora.models  # noqa: F401
from agora.database import Base, build_engine, build_session_factory, configure_engine
from agora.database.session import dispose_engine
from agora.services import collaborators, treasury_service
from tests.helpers import Fakes


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'agora.db'}", poolclass=NullPool)

    async def _create() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    configure_engine(engine)
    yield engine
    asyncio.run(dispose_engine())


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def fakes():
    fakes = Fakes()
    collaborators.configure(
        oracle=fakes.oracle,
        ledger=fakes.ledger,
        secrets=fakes.secrets,
        announcer=fakes.sink,
    )
    treasury_service.secrets = fakes.secrets
    yield fakes
    collaborators.reset()
    treasury_service.secrets = None
