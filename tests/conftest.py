"""
Pytest configuration and fixtures for the Ark proxy tests.
"""

from pathlib import Path

import pytest
import respx
from fastapi.testclient import TestClient

from app import create_app
from config import Settings

TEXT_URL = "https://ark.test/api/v3/responses"
IMAGE_URL = "https://ark.test/api/v3/images/generations"
INDEX_HTML = b"<!DOCTYPE html><html><body>orange</body></html>"


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A static root with an index page plus a few typed files."""
    root = tmp_path / "public"
    root.mkdir()
    (root / "product-generator-orange.html").write_bytes(INDEX_HTML)
    (root / "app.js").write_text("console.log('hi');", encoding="utf-8")
    (root / "logo.PNG").write_bytes(b"\x89PNG\r\n\x1a\n")
    (root / "data.bin").write_bytes(b"\x00\x01\x02")
    (root / ".env").write_text("ARK_API_KEY=leak", encoding="utf-8")
    (root / "assets").mkdir()
    (root / "assets" / "style.css").write_text("body{}", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("outside the root", encoding="utf-8")
    return root


def make_settings(static_root: Path, **overrides) -> Settings:
    values = dict(
        ark_api_key="test-key",
        ark_api_url=TEXT_URL,
        ark_model="text-model-1",
        ark_image_api_url=IMAGE_URL,
        ark_image_model="image-model-1",
        static_root=static_root,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(static_root: Path) -> Settings:
    return make_settings(static_root)


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client(static_root: Path):
    """App without ARK_API_KEY."""
    with TestClient(create_app(make_settings(static_root, ark_api_key=""))) as test_client:
        yield test_client


@pytest.fixture
def upstream():
    """Mock for the provider endpoints; unmatched hosts are rejected."""
    with respx.mock(assert_all_called=False) as router:
        yield router
