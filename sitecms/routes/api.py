"""
Site CMS - JSON API Routes

Provides the REST API endpoints for:
- Reading and replacing the site's content document
- Uploading images (multipart or base64 data URI)
- Health check
"""

import json
import time
from typing import Any

from fastapi import APIRouter, Depends, Request
from loguru import logger
from starlette.datastructures import UploadFile

from sitecms.auth import require_admin
from sitecms.errors import BadRequest, PayloadTooLarge
from sitecms.services.content_store import ContentService
from sitecms.services.media_store import (
    ImageUpload,
    MediaStore,
    parse_data_uri,
    validate_image,
)

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()

UPLOAD_FIELD = "image"
_CHUNK_SIZE = 65536


def _content_service(request: Request) -> ContentService:
    return request.app.state.content_service


def _media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


async def _read_json_body(request: Request) -> Any:
    """Parse the JSON body, streaming it with a byte cap.

    Chunked requests carry no Content-Length, so the size middleware cannot
    reject them up front.
    """
    max_bytes = request.app.state.settings.max_body_bytes
    chunks: list[bytes] = []
    total_size = 0
    async for chunk in request.stream():
        total_size += len(chunk)
        if total_size > max_bytes:
            raise PayloadTooLarge("Request body too large")
        chunks.append(chunk)

    try:
        return json.loads(b"".join(chunks))
    except ValueError:
        raise BadRequest("Request body must be valid JSON")


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for the service."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "mode": settings.mode,
        "content_backend": _content_service(request).store.name,
        "media_backend": _media_store(request).name,
        "uptime_seconds": round(time.time() - _START_TIME, 2),
        "version": settings.app_version,
    }


# ---------------------------------------------------------------------------
# Content document
# ---------------------------------------------------------------------------
@router.get("/content")
async def api_get_content(request: Request):
    """Return the current content document (or the bundled fallback)."""
    return await _content_service(request).get()


@router.put("/content", dependencies=[Depends(require_admin)])
async def api_put_content(request: Request):
    """Replace the whole content document with the request body."""
    document = await _read_json_body(request)
    await _content_service(request).replace(document)
    return {"success": True}


# ---------------------------------------------------------------------------
# Image upload
# ---------------------------------------------------------------------------
async def _read_upload_file(file: UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded file in chunks, enforcing the size ceiling."""
    chunks: list[bytes] = []
    total_size = 0
    while chunk := await file.read(_CHUNK_SIZE):
        total_size += len(chunk)
        if total_size > max_bytes:
            raise PayloadTooLarge(
                f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _multipart_upload(request: Request, max_bytes: int) -> ImageUpload:
    form = await request.form()
    try:
        file = form.get(UPLOAD_FIELD)
        if not isinstance(file, UploadFile) or not file.filename:
            raise BadRequest("No file uploaded")

        data = await _read_upload_file(file, max_bytes)
        return ImageUpload(
            filename=file.filename,
            content_type=file.content_type or "",
            data=data,
        )
    finally:
        await form.close()


async def _data_uri_upload(request: Request, max_bytes: int) -> ImageUpload:
    body = await _read_json_body(request)
    image = body.get(UPLOAD_FIELD) if isinstance(body, dict) else None
    if not image:
        raise BadRequest("No image provided")

    upload = parse_data_uri(image)
    if upload.size > max_bytes:
        raise PayloadTooLarge(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )
    return upload


@router.post("/upload", dependencies=[Depends(require_admin)])
async def api_upload_image(request: Request):
    """
    Store one image and return its public URL.

    Accepts either a multipart form with an ``image`` file field or a JSON
    body ``{"image": "data:<mime>;base64,<data>"}``.
    """
    media_store = _media_store(request)
    media_store.ensure_ready()

    max_bytes = request.app.state.settings.max_upload_bytes
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data"):
        upload = await _multipart_upload(request, max_bytes)
    elif content_type.startswith("application/json"):
        upload = await _data_uri_upload(request, max_bytes)
    else:
        raise BadRequest(
            "Expected multipart/form-data with an 'image' field "
            "or a JSON body with a base64 'image' data URI"
        )

    validate_image(upload)

    logger.info(
        "📤 Upload received: {} ({} bytes, {})",
        upload.filename,
        upload.size,
        upload.content_type,
    )
    asset = await media_store.save(upload)
    return asset.to_dict()
