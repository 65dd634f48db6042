"""
Site CMS - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A temporary site directory (index.html, bundled content.json, data dir)
- Settings factories for server and serverless mode
- A TestClient wired to a freshly built app
- Small sample image payloads
"""

import base64
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from sitecms.config import MODE_SERVER, MODE_SERVERLESS, Settings
from sitecms.main import create_app

ADMIN_PASSWORD = "test-secret"

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

SVG_BYTES = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"/>'

FALLBACK_CONTENT: Dict[str, Any] = {
    "hero": {"title": "Welcome", "subtitle": "Bundled copy"},
    "sections": [],
}


# ---------------------------------------------------------------------------
# Site directory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """
    Create a minimal pre-built site:
    - index.html    (the public page)
    - admin.html    (the editor)
    - content.json  (bundled fallback document)
    """
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("<h1>Home</h1>", encoding="utf-8")
    (site / "admin.html").write_text("<h1>Admin</h1>", encoding="utf-8")
    (site / "content.json").write_text(json.dumps(FALLBACK_CONTENT), encoding="utf-8")
    return site


@pytest.fixture
def bare_site_dir(tmp_path: Path) -> Path:
    """A site directory with no bundled content.json."""
    site = tmp_path / "bare"
    site.mkdir()
    return site


# ---------------------------------------------------------------------------
# Settings fixtures
# ---------------------------------------------------------------------------


def make_settings(site: Path, **overrides) -> Settings:
    settings = Settings(
        site_dir=site,
        data_dir=site / "data",
        fallback_content_file=site / "content.json",
        admin_password=ADMIN_PASSWORD,
    )
    return replace(settings, **overrides)


@pytest.fixture
def server_settings(site_dir: Path) -> Settings:
    return make_settings(site_dir, mode=MODE_SERVER)


@pytest.fixture
def serverless_settings(site_dir: Path) -> Settings:
    return make_settings(site_dir, mode=MODE_SERVERLESS)


# ---------------------------------------------------------------------------
# Client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_factory() -> Iterator[Callable[..., TestClient]]:
    """Build a TestClient (lifespan started) for the given settings/backends."""
    clients = []

    def _make(settings: Settings, **backends) -> TestClient:
        client = TestClient(create_app(settings, **backends))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def server_client(client_factory, server_settings) -> TestClient:
    return client_factory(server_settings)


@pytest.fixture
def serverless_client(client_factory, serverless_settings) -> TestClient:
    return client_factory(serverless_settings)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"x-admin-password": ADMIN_PASSWORD}
