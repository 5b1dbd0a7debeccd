from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import database
from config import get_settings
from api.blobs.repositories import blob_repository
from api.drops.repositories import drops_repository

ADMIN_PASS = "test-pass"
ADMIN_HEADERS = {"X-Admin-Pass": ADMIN_PASS}


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("DROP_ADMIN_PASS", ADMIN_PASS)
    monkeypatch.setenv("SWEEP_INTERVAL", "0.2")
    monkeypatch.setenv("ORPHAN_GRACE", "300")
    monkeypatch.setenv("OPERATION_TIMEOUT", "30")
    monkeypatch.setenv("DEFAULT_EXPIRY", "1h")
    monkeypatch.setenv("MAX_FILE_SIZE", "1MB")
    monkeypatch.setenv("BASE_URL", "")
    get_settings.cache_clear()
    database.reset_engine()

    settings = get_settings()
    database.init_db()
    yield settings

    database.reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def make_drop():
    """Create a drop through the repositories, blob first."""

    def _make(data: bytes = b"payload", ttl: timedelta | None = None, max_downloads: int | None = None) -> str:
        code = drops_repository.reserve_code()
        blob_repository.put(code, data)
        drops_repository.create(code=code, size=len(data), ttl=ttl, max_downloads=max_downloads)
        return code

    return _make


@pytest_asyncio.fixture
async def client(settings):
    from main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
