"""
Ponto Urbano Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (throwaway database and storage,
       API client, mocked sessions, real image bytes).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Settings pointing at a per-test SQLite file and upload dir
    ├── container: ServiceContainer with tables created
    ├── app / client: the real app factory behind an HTTPX AsyncClient
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── sample_image_bytes / make_image: real images generated with Pillow
    └── temp_storage: Temporary directory for file operations
"""

import io
import os
import tempfile
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports: importing
# pontourbano.main builds a module-level app from the environment.
_IMPORT_ROOT = tempfile.mkdtemp(prefix="pontourbano_test_")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_IMPORT_ROOT, "import.db")
os.environ["STORAGE_ROOT"] = os.path.join(_IMPORT_ROOT, "uploads")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from pontourbano.config import Settings  # noqa: E402
from pontourbano.container import ServiceContainer  # noqa: E402
from pontourbano.main import create_app  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings for one test: its own SQLite file and upload directory.

    bcrypt_rounds=4 is the minimum bcrypt accepts and keeps the suite fast.
    """
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_backend="local",
        storage_root=str(tmp_path / "uploads"),
        session_secret="test-session-secret",
        session_https_only=False,
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def container(test_settings) -> AsyncGenerator[ServiceContainer, None]:
    """
    A ServiceContainer with its tables created.

    ASGITransport does not run the lifespan, so startup work the app would do
    (create_tables) happens here.
    """
    services = ServiceContainer(test_settings)
    await services.database.create_tables()
    yield services
    await services.shutdown()


@pytest.fixture
def app(container):
    return create_app(container=container)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    The client keeps cookies between requests, so a POST /login followed by a
    POST /problemas behaves like one browser.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


# ══════════════════════════════════════════════════════════════════════════
# Unit-test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_remove_photo(mock_db_session):
            mock_db_session.get.return_value = report
            await service.remove_photo(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh directory for file storage tests (removed by pytest)."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def make_image():
    """
    Factory for real image bytes.

    Usage:
        content = make_image("JPEG", (2000, 1000))
    """
    def _make(fmt: str = "PNG", size=(64, 48), color=(200, 40, 40)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def sample_image_bytes(make_image) -> bytes:
    """A small PNG that passes every upload check unchanged."""
    return make_image("PNG", (64, 48))
