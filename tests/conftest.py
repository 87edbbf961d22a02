import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planit.core.cache import RedisCache
from planit.core.database import Base, get_db
from planit.core.redis_lifecycle import get_cache, get_change_feed
from planit.core.security import create_access_token
from planit.dependencies.services import get_session_factory
from planit.main import app
from planit.services.persistence.sql_persistence import SqlPersistence
from planit.services.realtime.change_feed import Subscription
import planit.models  # noqa: F401

OWNER = "user-olivia"
ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"
OUTSIDER = "user-mallory"
TRIP_ID = "trip-lisbon"


class RecordingFeed:
    """In-memory change feed: keeps every published event and delivers it inline."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.published = []
        self.subscriptions = []

    async def publish(self, event):
        self.published.append(event)
        if self.deliver:
            await self.dispatch(event)

    async def dispatch(self, event):
        for handle in list(self.subscriptions):
            if handle.matches(event):
                await handle.callback(event)

    async def subscribe(self, table, filter, callback, event="*"):
        handle = Subscription(table=table, filter=dict(filter or {}), callback=callback, event=event)
        self.subscriptions.append(handle)
        return handle

    async def unsubscribe(self, handle):
        handle.active = False
        if handle in self.subscriptions:
            self.subscriptions.remove(handle)

    async def close(self):
        self.subscriptions.clear()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def feed():
    return RecordingFeed()


@pytest.fixture
def persistence_for(session_factory, feed):
    def _build(user_id, target_feed=None):
        return SqlPersistence(session_factory, user_id, target_feed if target_feed is not None else feed)
    return _build


@pytest_asyncio.fixture
async def trip(session_factory):
    """A trip owned by Olivia with Alice, Bob and Carol as members; Mallory is a stranger."""
    system = SqlPersistence(session_factory, None)
    for user_id in (OWNER, ALICE, BOB, CAROL, OUTSIDER):
        name = user_id.split("-")[1].title()
        await system.insert("users", {"id": user_id, "email": f"{name.lower()}@example.com", "full_name": name})
    await system.insert(
        "trips",
        {
            "id": TRIP_ID,
            "name": "Lisbon long weekend",
            "destination": "Lisbon",
            "start_date": date(2026, 5, 1),
            "end_date": date(2026, 5, 4),
            "currency": "EUR",
            "user_id": OWNER,
        },
    )
    for user_id in (OWNER, ALICE, BOB, CAROL):
        await system.insert(
            "trip_participants", {"trip_id": TRIP_ID, "user_id": user_id, "is_owner": user_id == OWNER}
        )
    return TRIP_ID


@pytest_asyncio.fixture
async def voting_activity(trip, persistence_for):
    """Alice's tram tour, open for voting."""
    row = await persistence_for(ALICE).insert(
        "activities",
        {
            "trip_id": trip,
            "title": "Tram 28 tour",
            "category": "sightseeing",
            "status": "voting",
            "cost": Decimal("36.00"),
            "date": date(2026, 5, 2),
            "created_by": ALICE,
        },
    )
    return row["id"]


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest_asyncio.fixture
async def fake_redis():
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest_asyncio.fixture
async def api_client(session_factory, feed, fake_redis):
    async def _db():
        async with session_factory() as session:
            yield session

    async def _cache():
        yield RedisCache(fake_redis)

    async def _feed():
        yield feed

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_cache] = _cache
    app.dependency_overrides[get_change_feed] = _feed

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
