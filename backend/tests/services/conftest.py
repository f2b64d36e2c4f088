"""Service test fixtures — async DB, seeded groups, recording dispatcher and API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db, get_dispatcher and get_settings overridden for route tests
    - db_manager patched so the scheduler tick endpoint uses the test DB
    - RecordingDispatcher captures every event instead of sending it

Design Decisions:
    - SQLite in-memory with StaticPool: one shared connection so every session sees
      the same database; the partial unique index is created through sqlite_where
    - Races are simulated by monkeypatching pre-checks, not by real concurrency
"""

import random
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from mirrio.api.dependencies import get_dispatcher
from mirrio.config import Settings, get_settings
from mirrio.db.base import Base
from mirrio.infrastructure.database import get_db, DatabaseSessionManager
import mirrio.infrastructure.database as db_module
from mirrio.main import app
from mirrio.models import Edition, Group, GroupMember, Statement
from mirrio.services.round_controller import RoundController

ADMIN_TOKEN = "test-admin-token"


class RecordingDispatcher:
    """Collects events; `succeed=False` simulates a failing transport."""

    def __init__(self, succeed: bool = True):
        self.events = []
        self.succeed = succeed

    async def dispatch(self, event) -> bool:
        self.events.append(event)
        return self.succeed

    def payloads(self) -> list[dict]:
        return [e.to_payload() for e in self.events]


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        voting_window_hours=24,
        cooldown_hours=48,
        admin_token=ADMIN_TOKEN,
        notification_webhook_url=None,
        scheduler_enabled=False,
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(succeed=False)


@pytest.fixture
def controller(test_db, dispatcher, settings):
    return RoundController(test_db, dispatcher, settings, rng=random.Random(7))


@pytest.fixture
def seed(test_db):
    """Factory: edition with N statements and a group with M members (first = owner)."""

    async def _seed(
        n_statements: int = 3,
        members: int = 3,
        active: bool = True,
        user_ids: list | None = None,
    ):
        edition = Edition(
            name="Classic", slug=f"classic-{uuid4().hex[:8]}", active=active,
        )
        test_db.add(edition)
        await test_db.flush()
        statements = [
            Statement(text=f"Who is most likely to do thing #{i}?", edition_id=edition.id)
            for i in range(n_statements)
        ]
        test_db.add_all(statements)
        users = list(user_ids) if user_ids else [uuid4() for _ in range(members)]
        group = Group(name="Friends", owner_id=users[0], edition_id=edition.id)
        test_db.add(group)
        await test_db.flush()
        test_db.add_all([GroupMember(group_id=group.id, user_id=u) for u in users])
        await test_db.commit()
        # Plain ids survive rollbacks that expire the ORM objects
        return SimpleNamespace(
            edition=edition,
            statements=statements,
            group=group,
            users=users,
            group_id=group.id,
            edition_id=edition.id,
            statement_ids=[st.id for st in statements],
        )

    return _seed


@pytest.fixture
async def client(test_engine, test_session_factory, dispatcher, settings):
    """FastAPI test client with DB, dispatcher and settings overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_settings] = lambda: settings

    # Patch db_manager for the scheduler tick, which opens its own sessions
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
