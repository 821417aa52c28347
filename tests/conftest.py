import pytest
import fakeredis
import fakeredis.aioredis
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pinchat.main import app
from pinchat.models.base import Base
from pinchat.models.user import User
from pinchat.core.security import hash_pin
from pinchat.database.postgres import get_db_session
from pinchat.database.redis import SessionStore
from pinchat.dependencies.service_dependencies import get_session_store

DATABASE_URL = "sqlite+aiosqlite:///:memory:"

@pytest.fixture
async def async_session():
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session_factory = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with async_session_factory() as session:
        yield session
    await engine.dispose()

@pytest.fixture
async def session_store():
    store = SessionStore("redis://fake")
    store.redis = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield store
    await store.redis.aclose()

@pytest.fixture
def override_dependencies(async_session, session_store):
    async def _override():
        yield async_session
    app.dependency_overrides[get_db_session] = _override
    app.dependency_overrides[get_session_store] = lambda: session_store
    yield
    app.dependency_overrides.clear()

@pytest.fixture
async def async_test_client(override_dependencies):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

@pytest.fixture
async def make_client(override_dependencies):
    """Factory for extra clients, each with its own cookie jar (one per user)."""
    clients = []

    def _make():
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()

@pytest.fixture
def register():
    async def _register(client, username, pin="1234"):
        response = await client.post("/api/auth/register", json={"username": username, "pin": pin})
        assert response.status_code == 201, response.text
        return response
    return _register

@pytest.fixture
def enter_room():
    """Create the room, or join it if it already exists."""
    async def _enter(client, name="lobby", pin="1234"):
        response = await client.post("/api/chatrooms/create", json={"name": name, "pin": pin})
        if response.status_code == 409:
            response = await client.post("/api/chatrooms/join", json={"name": name, "pin": pin})
        assert response.status_code in (200, 201), response.text
        me = await client.get("/api/user/me")
        return me.json()["currentChatRoomId"]
    return _enter

@pytest.fixture
async def test_user(async_session):
    user = User(
        username="testuser",
        hashed_pin=hash_pin("1234")
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user

@pytest.fixture
async def other_user(async_session):
    user = User(
        username="otheruser",
        hashed_pin=hash_pin("5678")
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user
