"""Test fixtures — a fresh in-memory SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own aiosqlite engine on an in-memory database.
   StaticPool keeps a single connection alive, so every session sees
   the same tables and rows.
2. The app's get_db dependency is overridden to hand out sessions from
   that engine, one per request, just like production.
3. The media host is replaced by an httpx MockTransport, so avatar and
   cover uploads never leave the process.

The environment is configured before any vidtube import, because
vidtube.config builds its Settings singleton at import time.
"""

import os

os.environ.setdefault("VIDTUBE_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("VIDTUBE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("VIDTUBE_MEDIA_CLOUD_NAME", "demo")
os.environ.setdefault("VIDTUBE_MEDIA_API_KEY", "key-123")
os.environ.setdefault("VIDTUBE_MEDIA_API_SECRET", "secret-456")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vidtube.auth.dependencies import get_media_uploader
from vidtube.auth.jwt import TokenConfig, TokenIssuer
from vidtube.auth.password import CredentialVerifier
from vidtube.db.engine import get_db
from vidtube.db.models import Base
from vidtube.main import app
from vidtube.media.uploader import MediaHostConfig, MediaUploader

TEST_DB_URL = "sqlite+aiosqlite://"

MEDIA_URL = "https://media.test/image/upload/v1/abc123.png"


def fake_media_host(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"secure_url": MEDIA_URL, "public_id": "abc123"})


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh schema per test. Disposed (and thus dropped) afterwards."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def issuer():
    return TokenIssuer(
        TokenConfig(access_secret="test-access-secret", refresh_secret="test-refresh-secret")
    )


@pytest.fixture()
def verifier():
    return CredentialVerifier(rounds=4)


def _override_db(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    return override_get_db


def _override_uploader():
    return MediaUploader(
        MediaHostConfig(cloud_name="demo", api_key="key-123", api_secret="secret-456"),
        transport=httpx.MockTransport(fake_media_host),
    )


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's get_db and media host overridden for testing."""
    app.dependency_overrides[get_db] = _override_db(session_factory)
    app.dependency_overrides[get_media_uploader] = _override_uploader

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def secure_client(session_factory):
    """Same as `client` but over https, so Secure session cookies round-trip.

    Learn: Session cookies are set with Secure=True, and httpx's cookie
    jar (like a browser) only sends them back over https.
    """
    app.dependency_overrides[get_db] = _override_db(session_factory)
    app.dependency_overrides[get_media_uploader] = _override_uploader

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def signup(client):
    """Register + login helper. Returns the login response body."""

    async def _signup(username="alice", email=None, password="pw1", fullname=None):
        email = email or f"{username}@x.com"
        r = await client.post(
            "/api/v1/auth/register",
            json={
                "username": username,
                "email": email,
                "fullname": fullname or username.title(),
                "password": password,
            },
        )
        assert r.status_code == 201, r.text
        r = await client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": password},
        )
        assert r.status_code == 200, r.text
        return r.json()

    return _signup
