"""
Pytest configuration and fixtures.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import WebSocketDisconnect
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kaza.auth.jwt import create_access_token
from kaza.models import Base, BrokerLevel, BrokerTier, ManagerTier, Profile, ProfileRole


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


# ── Profiles ──────────────────────────────────────────────


@pytest.fixture
def make_profile(db_session):
    """Factory: await make_profile(role, name, level=None, manager=None)."""

    async def _make(role, name, level=None, manager=None, is_active=True):
        profile = Profile(
            display_name=name,
            email=f"{name.lower().replace(' ', '.')}@kaza.test",
            role=role,
            broker_level=level,
            manager_id=manager.id if manager else None,
            is_active=is_active,
        )
        db_session.add(profile)
        await db_session.commit()
        await db_session.refresh(profile)
        return profile

    return _make


@pytest_asyncio.fixture
async def director(make_profile):
    return await make_profile(ProfileRole.DIRECTOR, "Diretora Ana")


@pytest_asyncio.fixture
async def manager(make_profile):
    return await make_profile(ProfileRole.MANAGER, "Gerente Bruno")


@pytest_asyncio.fixture
async def junior(make_profile, manager):
    return await make_profile(ProfileRole.BROKER, "Carla Junior", BrokerLevel.JUNIOR, manager)


@pytest_asyncio.fixture
async def senior(make_profile, manager):
    return await make_profile(ProfileRole.BROKER, "Davi Senior", BrokerLevel.SENIOR, manager)


# ── Tiers ─────────────────────────────────────────────────


@pytest.fixture
def add_broker_tiers(db_session):
    """Factory: await add_broker_tiers(level, [(sequence_number, percentage), ...])."""

    async def _add(level, steps):
        for sequence_number, percentage in steps:
            db_session.add(
                BrokerTier(
                    level=level,
                    sequence_number=sequence_number,
                    percentage=Decimal(percentage),
                    active=True,
                )
            )
        await db_session.commit()

    return _add


@pytest.fixture
def add_manager_tiers(db_session):
    """Factory: await add_manager_tiers([(range_start, range_end, percentage), ...])."""

    async def _add(ranges):
        tiers = []
        for range_start, range_end, percentage in ranges:
            tier = ManagerTier(
                range_start=range_start,
                range_end=range_end,
                percentage=Decimal(percentage),
                active=True,
            )
            db_session.add(tier)
            tiers.append(tier)
        await db_session.commit()
        for tier in tiers:
            await db_session.refresh(tier)
        return tiers

    return _add


# ── HTTP client ───────────────────────────────────────────


@pytest.fixture
def auth_headers():
    """Factory: auth_headers(profile) -> Authorization header with a fresh token."""

    def _headers(profile):
        token = create_access_token(profile.id, profile.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_session):
    """HTTP client against the app with get_db bound to the test session."""
    from kaza.db import get_db
    from kaza.main import app

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── WebSocket handlers ────────────────────────────────────


class FakeWebSocket:
    """Enough of starlette's WebSocket to drive a route function directly."""

    def __init__(self, headers=None):
        self.headers = headers or {}
        self.cookies = {}
        self.accepted = False
        self.close_code = None
        self.sent = []
        self._incoming = asyncio.Queue()

    async def accept(self):
        self.accepted = True

    async def close(self, code=1000):
        self.close_code = code

    async def send_json(self, data):
        self.sent.append(data)

    async def receive(self):
        return await self._incoming.get()

    async def receive_text(self):
        message = await self.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message["code"])
        return message["text"]

    def client_sends(self, data):
        self._incoming.put_nowait({"type": "websocket.receive", "text": json.dumps(data)})

    def client_disconnects(self):
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": 1000})

    async def wait_sent(self, count, timeout=1):
        async def _wait():
            while len(self.sent) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_wait(), timeout)


@pytest.fixture
def fake_websocket():
    """Factory: fake_websocket(headers) -> FakeWebSocket."""
    return FakeWebSocket


@pytest.fixture
def session_factory(db_session):
    """Stand-in for get_db_context that hands out the test session."""

    @asynccontextmanager
    async def _factory():
        yield db_session

    return _factory
