"""
Shared fixtures: an in-memory SQLite database per test, a local
ConnectionManager and fake WebSocket connections.
"""

import json

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import zord.models  # noqa: F401  (registers tables on Base.metadata)
from zord.core.security import create_access_token
from zord.db.database import Base
from zord.models import MediaType, Post, PostHashtag, User, UserRole, Visibility
from zord.models.post import extract_hashtags
from zord.services.websocket_manager import ConnectionManager


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
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
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# REALTIME
# =============================================================================

class FakeWebSocket:
    """Records frames instead of writing them to a network socket."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.closed = False
        self.frames = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("connection reset")
        self.frames.append(json.loads(data))

    async def close(self, code: int = 1000):
        self.closed = True

    def of_type(self, event_type: str):
        return [f for f in self.frames if f["type"] == event_type]


@pytest.fixture
def make_socket():
    return FakeWebSocket


@pytest.fixture
def connections():
    return ConnectionManager(backend="local", send_timeout=1.0)


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make_user(
        name: str = None,
        college_id: str = "IITD",
        role: UserRole = UserRole.STUDENT,
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        user = User(
            name=name,
            email=f"user{counter['n']}@{college_id.lower()}.edu",
            password_hash="not-a-real-hash",
            college_id=college_id,
            college_name=f"College {college_id}",
            role=role,
            avatar="",
            bio="",
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def make_post(db):
    async def _make_post(
        owner: User,
        visibility: Visibility = Visibility.EVERYONE,
        caption: str = None,
    ) -> Post:
        post = Post(
            owner=owner,
            caption=caption,
            media_url="https://cdn.example.com/p.jpg",
            media_type=MediaType.IMAGE,
            media_public_id="zord/p",
            visibility=visibility,
            likes_count=0,
            comments_count=0,
            is_active=True,
            hashtags=[PostHashtag(tag=t) for t in extract_hashtags(caption)],
        )
        db.add(post)
        await db.commit()
        return post

    return _make_post


@pytest.fixture
def headers_for():
    def _headers_for(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}

    return _headers_for


# =============================================================================
# HTTP CLIENT
# =============================================================================

@pytest.fixture
async def client(session_factory, connections):
    from zord.api.deps import get_connection_manager
    from zord.db.database import get_db
    from zord.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_connection_manager] = lambda: connections

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
