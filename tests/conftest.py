"""Shared fixtures for the test suite."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api import channels_router, health_router, history_router, me_router
from app.api import routes_channels, routes_history, routes_me
from app.api.dependencies import get_media_storage, get_upload_dir
from app.auth import router as auth_module
from app.auth.router import router as auth_router
from app.config import Settings
from app.db import crud
from app.db.models import Base
from app.db.session import get_session
from app.errors import register_exception_handlers
from app.storage import MediaStorage, UploadedMedia

TEST_PASSWORD = "secret-password"


class FakeMediaStorage(MediaStorage):
    """In-memory media storage that records uploads and deletions."""

    def __init__(self, fail_uploads: bool = False):
        self.fail_uploads = fail_uploads
        self.uploaded: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self._counter = 0

    async def upload(self, local_path):
        if not local_path:
            return None
        path = Path(local_path)
        try:
            if self.fail_uploads:
                return None
            self._counter += 1
            public_id = f"media-{self._counter}{path.suffix}"
            self.uploaded[public_id] = path.read_bytes()
            return UploadedMedia(url=f"https://cdn.test/{public_id}", public_id=public_id)
        finally:
            path.unlink(missing_ok=True)

    async def delete(self, public_id):
        if not public_id:
            return None
        self.deleted.append(public_id)
        return self.uploaded.pop(public_id, None) is not None


@pytest.fixture(autouse=True)
def token_settings():
    """Patch token settings so no environment is needed."""
    settings = MagicMock(spec=Settings)
    settings.access_token_secret = "test-access-secret"
    settings.refresh_token_secret = "test-refresh-secret"
    settings.access_token_expire_minutes = 15
    settings.refresh_token_expire_days = 10
    settings.jwt_algorithm = "HS256"

    with patch("app.auth.tokens.get_settings", return_value=settings):
        yield settings


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Rate limiters keep state per process; keep them out of the tests."""
    limiters = [
        auth_module.limiter,
        routes_me.limiter,
        routes_channels.limiter,
        routes_history.limiter,
    ]
    for limiter in limiters:
        limiter.enabled = False
    yield
    for limiter in limiters:
        limiter.enabled = True


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory test database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    yield sessionmaker

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db):
    """Create a database session for testing."""
    async with test_db() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(test_db):
    """Create a registered user with a known password."""
    async with test_db() as db:
        user = await crud.create_user(
            db,
            username="alice",
            email="alice@example.com",
            full_name="Alice Liddell",
            password=TEST_PASSWORD,
            avatar="https://cdn.test/alice.png",
            avatar_public_id="alice.png",
        )
    return user


@pytest.fixture
def media_storage():
    return FakeMediaStorage()


def override_get_session(sessionmaker):
    """Create a dependency override for get_session."""

    async def _override():
        async with sessionmaker() as session:
            yield session

    return _override


@pytest.fixture
def test_app(test_db, media_storage, tmp_path):
    """Create a test FastAPI app with every router and error handler."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(channels_router)
    app.include_router(history_router)

    app.dependency_overrides[get_session] = override_get_session(test_db)
    app.dependency_overrides[get_media_storage] = lambda: media_storage
    app.dependency_overrides[get_upload_dir] = lambda: tmp_path / "uploads"
    return app


@pytest_asyncio.fixture
async def client(test_app):
    """HTTPS client so the secure session cookies round-trip."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client
