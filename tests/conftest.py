import httpx
import pytest
from httpx import ASGITransport


@pytest.fixture
def mock_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("IMAGE_DIR", str(tmp_path / "images"))
    monkeypatch.setenv("IMAGE_PUBLIC_BASE_URL", "https://cdn.test/property-images")
    monkeypatch.setenv("STORAGE_BACKEND", "local")


@pytest.fixture
async def client(mock_env):
    from listing_scraper.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
