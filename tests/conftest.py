"""Shared test fixtures for the rollkeep test suite.

Engine tests build a RollContext from in-memory collaborators: FakeConfig,
StaticPrompt, CollectingPresenter and CollectingNotifier. No database needed.

HTTP tests use the client fixture, which wires an AsyncClient to the app with
get_db pointed at a fresh in-memory SQLite database (StaticPool, so every
session sees the same database) and get_config pointed at the test's
FakeConfig. session_factory opens sessions on the same database for asserting
state written by a request.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rollkeep.database import Base, get_db
from rollkeep.main import app
from rollkeep.orchestrator import RollContext
from rollkeep.presentation import CollectingNotifier, CollectingPresenter
from rollkeep.prompts import ModifierResult, StaticPrompt
from rollkeep.routers.rolls import get_config


@dataclass
class FakeConfig:
    """ConfigProvider with plain attributes tests can flip mid-test."""

    lt_exception: bool = False
    show_options: dict[str, bool] = field(default_factory=dict)
    npc_void: bool = False

    def house_rule_enabled(self) -> bool:
        return self.lt_exception

    def show_roll_options(self, kind: str) -> bool:
        return self.show_options.get(kind, False)

    def allow_npc_void_points(self) -> bool:
        return self.npc_void


@pytest.fixture
def config() -> FakeConfig:
    return FakeConfig()


@pytest.fixture
def presenter() -> CollectingPresenter:
    return CollectingPresenter()


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def make_context(config, presenter, notifier):
    """Build a RollContext whose prompt answers with the given modifiers.

    Pass cancel=True for a prompt that is dismissed.
    """

    def _make(modifiers: ModifierResult | None = None, *, cancel: bool = False, **kwargs):
        answer = None if cancel else (modifiers or ModifierResult())
        return RollContext(
            config=config,
            prompt=StaticPrompt(answer),
            presenter=kwargs.pop("presenter", presenter),
            notifier=notifier,
            **kwargs,
        )

    return _make


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def client(session_factory, config):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config] = lambda: config

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_config, None)
