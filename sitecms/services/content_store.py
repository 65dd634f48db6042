"""
Site CMS - Content Document Storage

The site's text and settings live in one JSON document.  Writes always
replace the whole document; reads that fail fall back to the copy bundled
with the site (``content.json``) so the public page keeps rendering.

Backends:
- :class:`LocalContentStore`     — JSON file on local disk (server mode)
- :class:`JsonBinContentStore`   — JSONBin.io bin via its REST API
- :class:`ReadOnlyContentStore`  — bundled copy only; writes are refused
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from sitecms.config import Settings
from sitecms.errors import NotConfigured, ReadFailure, StorageError, UpstreamFailure


def load_fallback(path: Path) -> Any:
    """Read the bundled content document.  Any failure yields an empty object."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("ℹ️  No usable fallback content at {}: {}", path, e)
        return {}


class ContentStore:
    """Interface for content document backends."""

    name = "base"

    async def read(self) -> Any:
        """Return the stored document or raise :class:`ReadFailure`."""
        raise NotImplementedError

    async def write(self, document: Any) -> None:
        """Replace the stored document with *document*."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Local file
# ---------------------------------------------------------------------------
class LocalContentStore(ContentStore):
    name = "local"

    def __init__(self, content_file: Path):
        self.content_file = Path(content_file)

    async def read(self) -> Any:
        try:
            raw = self.content_file.read_text(encoding="utf-8")
            return json.loads(raw)
        except (OSError, ValueError) as e:
            raise ReadFailure(f"Failed to read {self.content_file}: {e}") from e

    async def write(self, document: Any) -> None:
        try:
            self.content_file.parent.mkdir(parents=True, exist_ok=True)
            self.content_file.write_text(
                json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as e:
            logger.error("❌ Failed to write {}: {}", self.content_file, e)
            raise StorageError("Failed to save content") from e
        logger.info("💾 Content saved to {}", self.content_file)


# ---------------------------------------------------------------------------
# JSONBin.io
# ---------------------------------------------------------------------------
class JsonBinContentStore(ContentStore):
    """Content document kept in a single JSONBin bin.

    *transport* is passed through to :class:`httpx.AsyncClient` so tests can
    substitute an :class:`httpx.MockTransport`.
    """

    name = "jsonbin"

    def __init__(
        self,
        bin_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bin_url = bin_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"X-Master-Key": self.api_key},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def read(self) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.bin_url}/latest")
        except httpx.HTTPError as e:
            raise ReadFailure(f"JSONBin read error: {e}") from e

        if not response.is_success:
            raise ReadFailure(f"JSONBin read failed ({response.status_code})")

        try:
            return response.json()["record"]
        except (ValueError, KeyError, TypeError) as e:
            raise ReadFailure(f"Unexpected JSONBin response: {e}") from e

    async def write(self, document: Any) -> None:
        try:
            async with self._client() as client:
                response = await client.put(self.bin_url, json=document)
        except httpx.HTTPError as e:
            logger.error("❌ JSONBin write error: {}", e)
            raise UpstreamFailure(f"Failed to save content: {e}") from e

        if not response.is_success:
            logger.error(
                "❌ JSONBin write failed ({}): {}",
                response.status_code,
                response.text[:200],
            )
            raise UpstreamFailure("Failed to save content: JSONBin write failed")

        logger.info("⬆️  Content saved to JSONBin")


# ---------------------------------------------------------------------------
# Read-only (no storage configured)
# ---------------------------------------------------------------------------
class ReadOnlyContentStore(ContentStore):
    name = "read-only"

    def __init__(self, fallback_file: Path):
        self.fallback_file = Path(fallback_file)

    async def read(self) -> Any:
        return load_fallback(self.fallback_file)

    async def write(self, document: Any) -> None:
        raise NotConfigured(
            "Storage not configured. Set JSONBIN_BIN_ID and JSONBIN_API_KEY "
            "environment variables."
        )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class ContentService:
    """Reads and replaces the content document, hiding read failures."""

    def __init__(self, store: ContentStore, fallback_file: Path):
        self.store = store
        self.fallback_file = Path(fallback_file)

    async def get(self) -> Any:
        try:
            return await self.store.read()
        except ReadFailure as e:
            logger.warning("⚠️  {} — serving fallback content", e)
            return load_fallback(self.fallback_file)

    async def replace(self, document: Any) -> None:
        await self.store.write(document)


def build_content_service(settings: Settings) -> ContentService:
    """Pick the content backend for *settings*."""
    if settings.jsonbin_configured:
        store: ContentStore = JsonBinContentStore(
            settings.jsonbin_url,
            settings.jsonbin_api_key,
            timeout=settings.http_timeout,
        )
    elif settings.serves_static:
        store = LocalContentStore(settings.content_file)
    else:
        store = ReadOnlyContentStore(settings.fallback_content_file)

    return ContentService(store, settings.fallback_content_file)
