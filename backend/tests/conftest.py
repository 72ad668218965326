"""Pytest fixtures for the videotube users backend."""

import io
import os
import tempfile
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("UPLOAD_TEMP_DIR", tempfile.mkdtemp(prefix="videotube-uploads-"))
os.environ.setdefault("COOKIE_SECURE", "true")

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db, get_media_host
from app import create_app
from services import RateLimiter, UploadedMedia, remove_local_file, set_rate_limiter

MEDIA_BASE_URL = "https://media.test"


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["database_url"] = database_url
    command.upgrade(alembic_cfg, "head")


class FakeMediaHost:
    """Records uploads and deletes instead of talking to MinIO."""

    def __init__(self) -> None:
        self.uploads: list[UploadedMedia] = []
        self.deleted: list[str] = []

    async def upload(self, local_path: Path, *, folder: str) -> UploadedMedia:
        key = f"{folder}/{local_path.name}"
        remove_local_file(local_path)
        media = UploadedMedia(uri=f"{MEDIA_BASE_URL}/{key}", key=key)
        self.uploads.append(media)
        return media

    async def delete(self, uri: str) -> None:
        self.deleted.append(uri)


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture(scope="session")
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture()
def media_host() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture()
def app(session_maker, media_host: FakeMediaHost) -> Iterator[FastAPI]:
    """Create the FastAPI app with test database and media host overrides."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_media_host] = lambda: media_host
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app.

    The https base URL lets the client send back the secure auth cookies.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


class InMemoryRedis:
    def __init__(self) -> None:
        self.data: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        value = self.data.get(key, 0) + 1
        self.data[key] = value
        return value

    async def expire(self, key: str, ttl: int) -> None:  # pragma: no cover - noop
        return None


@pytest.fixture(autouse=True)
def _rate_limiter_stub() -> Iterator[None]:
    limiter = RateLimiter(InMemoryRedis(), limit=1_000, window_seconds=60)
    set_rate_limiter(limiter)
    yield
    set_rate_limiter(None)


@pytest.fixture()
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def register_user(async_client: AsyncClient, png_bytes: bytes):
    """Return a coroutine that registers a user through the API."""

    async def _register(
        username: str = "ada",
        *,
        fullname: str = "Ada Lovelace",
        email: str | None = None,
        password: str = "s3cret!",
        cover_image: bytes | None = None,
    ) -> dict:
        files = {"avatar": ("avatar.png", png_bytes, "image/png")}
        if cover_image is not None:
            files["coverImage"] = ("cover.png", cover_image, "image/png")
        response = await async_client.post(
            "/api/v1/users/register",
            data={
                "fullname": fullname,
                "username": username,
                "email": email or f"{username}@x.com",
                "password": password,
            },
            files=files,
        )
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _register


@pytest.fixture()
def login_user(async_client: AsyncClient):
    """Return a coroutine that logs in and leaves the auth cookies on the client."""

    async def _login(username: str = "ada", password: str = "s3cret!") -> dict:
        response = await async_client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text
        return response.json()["data"]

    return _login
