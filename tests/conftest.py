"""
3sConnect Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   A fresh in-memory SQLite database (aiosqlite + StaticPool) per test,
       fake identity and media collaborators, and an httpx AsyncClient
       talking to create_app(...) through ASGITransport.

Fixture Hierarchy (all function-scoped):
    ├── engine / session_factory: schema created per test, dropped after
    ├── db: one AsyncSession for service-level tests
    ├── identity: FakeIdentityProvider (token "token-<id>" → identity <id>)
    ├── media: FakeMediaStorage (records uploads, can be told to fail)
    ├── app / client: FastAPI app with the fakes; its session dependency
    │   opens sessions on the test database
    └── alice / bob / carol: synced users
"""

import os
import tempfile

# Override settings for testing BEFORE any threesconnect imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MEDIA_BACKEND"] = "cloudinary"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="threesconnect_test_")
os.environ["CLERK_JWKS_URL"] = "https://clerk.test/.well-known/jwks.json"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from threesconnect import database
from threesconnect.database import Base
from threesconnect.exceptions import IdentityProviderError, UploadError
from threesconnect.main import create_app
from threesconnect.models import User
from threesconnect.services.identity import IdentityProfile, IdentityProvider
from threesconnect.services.media import MediaStorage


# ══════════════════════════════════════════════════════════════════════════
# Fake Collaborators
# ══════════════════════════════════════════════════════════════════════════

class FakeIdentityProvider(IdentityProvider):
    """Accepts tokens of the form "token-<identity>" for registered identities."""

    def __init__(self):
        self.profiles: Dict[str, IdentityProfile] = {}
        self.profile_calls: List[str] = []
        self.fail_profiles = False

    def register(self, external_id: str, email: str, first_name: str = "", last_name: str = "",
                 avatar_url: str = "") -> str:
        self.profiles[external_id] = IdentityProfile(
            email=email, first_name=first_name, last_name=last_name, avatar_url=avatar_url
        )
        return f"token-{external_id}"

    async def verify_token(self, token: str) -> Optional[str]:
        if not token.startswith("token-"):
            return None
        external_id = token[len("token-"):]
        return external_id if external_id in self.profiles else None

    async def get_profile(self, external_id: str) -> IdentityProfile:
        self.profile_calls.append(external_id)
        if self.fail_profiles or external_id not in self.profiles:
            raise IdentityProviderError(context={"clerk_id": external_id})
        return self.profiles[external_id]


class FakeMediaStorage(MediaStorage):
    def __init__(self):
        self.uploads: List[Tuple[bytes, str, str]] = []
        self.fail = False

    async def upload(self, content: bytes, content_type: str, folder: str) -> str:
        if self.fail:
            raise UploadError(context={"provider": "fake"})
        self.uploads.append((content, content_type, folder))
        return f"https://media.test/{folder}/{len(self.uploads)}.jpg"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite shared by every session of one test (StaticPool)."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Collaborators, App and Client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def media():
    return FakeMediaStorage()


@pytest.fixture
def app(identity, media, session_factory, monkeypatch):
    """The real get_db_session, bound to the per-test database."""
    monkeypatch.setattr(database, "async_session_factory", session_factory)
    return create_app(identity_provider=identity, media_storage=media)


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient routed straight into the app.

    Usage:
        async def test_feed(client):
            response = await client.get("/api/posts")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


# ══════════════════════════════════════════════════════════════════════════
# Seed Users
# ══════════════════════════════════════════════════════════════════════════

async def _seed_user(session_factory, identity, external_id: str, username: str) -> User:
    email = f"{username}@example.com"
    identity.register(external_id, email, first_name=username.title())
    async with session_factory() as session:
        user = User(
            clerk_id=external_id,
            email=email,
            username=username,
            first_name=username.title(),
        )
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def alice(session_factory, identity):
    return await _seed_user(session_factory, identity, "user_alice", "alice")


@pytest_asyncio.fixture
async def bob(session_factory, identity):
    return await _seed_user(session_factory, identity, "user_bob", "bob")


@pytest_asyncio.fixture
async def carol(session_factory, identity):
    return await _seed_user(session_factory, identity, "user_carol", "carol")


@pytest.fixture
def sample_image_bytes():
    """Smallest JPEG: SOI + JFIF header + EOI. Enough for type/size checks."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )
