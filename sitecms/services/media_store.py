"""
Site CMS - Image Uploads

Validates uploaded images and stores them either on local disk (served back
under ``/uploads``) or on Cloudinary through an unsigned upload preset.

Uploads arrive in one of two shapes and are normalized to
:class:`ImageUpload` before anything else happens:

- multipart form field ``image`` (the admin page in server mode)
- JSON ``{"image": "data:image/png;base64,..."}`` (serverless mode)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import aiofiles
import httpx
from loguru import logger

from sitecms.config import ALLOWED_IMAGE_EXTENSIONS, ALLOWED_IMAGE_MIME_TYPES, Settings
from sitecms.errors import BadRequest, NotConfigured, StorageError, UpstreamFailure
from sitecms.utils import (
    decode_data_uri,
    encode_data_uri,
    extension_for_mime,
    file_extension,
    generate_asset_name,
)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------
@dataclass
class ImageUpload:
    """An image received from a client, not yet stored."""

    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return file_extension(self.filename)

    @property
    def size(self) -> int:
        return len(self.data)

    def to_data_uri(self) -> str:
        return encode_data_uri(self.content_type, self.data)


@dataclass
class StoredAsset:
    name: str
    url: str
    size: int = 0

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def parse_data_uri(value: str) -> ImageUpload:
    """Turn a base64 data URI into an :class:`ImageUpload`."""
    try:
        mime_type, data = decode_data_uri(value)
    except ValueError as e:
        raise BadRequest(f"Invalid image data: {e}") from e
    return ImageUpload(
        filename=f"image{extension_for_mime(mime_type)}",
        content_type=mime_type,
        data=data,
    )


def validate_image(upload: ImageUpload) -> ImageUpload:
    """Reject anything that is not an allowed image type (both extension and MIME)."""
    if not upload.data:
        raise BadRequest("No file uploaded")

    ext_ok = upload.extension in ALLOWED_IMAGE_EXTENSIONS
    mime_ok = (upload.content_type or "").lower() in ALLOWED_IMAGE_MIME_TYPES
    if not (ext_ok and mime_ok):
        logger.warning(
            "🚫 Rejected upload {} ({})", upload.filename, upload.content_type
        )
        raise BadRequest("Only image files are allowed")
    return upload


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------
class MediaStore:
    name = "base"

    def ensure_ready(self) -> None:
        """Raise before the upload body is read if this backend cannot store it."""

    async def save(self, upload: ImageUpload) -> StoredAsset:
        raise NotImplementedError


class LocalMediaStore(MediaStore):
    name = "local"

    def __init__(self, uploads_dir: Path, url_prefix: str = "/uploads"):
        self.uploads_dir = Path(uploads_dir)
        self.url_prefix = url_prefix.rstrip("/")

    async def save(self, upload: ImageUpload) -> StoredAsset:
        name = generate_asset_name(upload.extension)
        dest = self.uploads_dir / name
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(dest, "wb") as f:
                await f.write(upload.data)
        except OSError as e:
            logger.error("❌ Failed to store upload {}: {}", dest, e)
            raise StorageError("Failed to store upload") from e

        logger.info("🖼️  Stored {} ({} bytes)", name, upload.size)
        return StoredAsset(name=name, url=f"{self.url_prefix}/{name}", size=upload.size)


class CloudinaryMediaStore(MediaStore):
    """Unsigned uploads to Cloudinary.  Returns the asset's ``secure_url``."""

    name = "cloudinary"

    def __init__(
        self,
        upload_url: str,
        upload_preset: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.upload_url = upload_url
        self.upload_preset = upload_preset
        self.timeout = timeout
        self._transport = transport

    async def save(self, upload: ImageUpload) -> StoredAsset:
        form = {"file": upload.to_data_uri(), "upload_preset": self.upload_preset}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.upload_url, data=form)
        except httpx.HTTPError as e:
            logger.error("❌ Cloudinary upload error: {}", e)
            raise UpstreamFailure(f"Cloudinary upload failed: {e}") from e

        if not response.is_success:
            message = _cloudinary_error(response)
            logger.error("❌ Cloudinary upload failed ({}): {}", response.status_code, message)
            raise UpstreamFailure(message)

        try:
            body = response.json()
            url = body["secure_url"]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamFailure("Cloudinary upload failed: unexpected response") from e

        logger.info("☁️  Uploaded {} to Cloudinary ({} bytes)", upload.filename, upload.size)
        return StoredAsset(name=body.get("public_id", ""), url=url, size=upload.size)


def _cloudinary_error(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return "Cloudinary upload failed"


class UnconfiguredMediaStore(MediaStore):
    name = "unconfigured"

    message = (
        "Image uploads not configured. Set CLOUDINARY_CLOUD_NAME and "
        "CLOUDINARY_UPLOAD_PRESET environment variables."
    )

    def ensure_ready(self) -> None:
        raise NotConfigured(self.message)

    async def save(self, upload: ImageUpload) -> StoredAsset:
        raise NotConfigured(self.message)


def build_media_store(settings: Settings) -> MediaStore:
    """Pick the upload backend for *settings*."""
    if settings.cloudinary_configured:
        return CloudinaryMediaStore(
            settings.cloudinary_upload_url,
            settings.cloudinary_upload_preset,
            timeout=settings.http_timeout,
        )
    if settings.serves_static:
        return LocalMediaStore(settings.uploads_dir)
    return UnconfiguredMediaStore()
