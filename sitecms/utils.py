"""
Site CMS - Shared Utilities

Helpers for naming uploaded assets and decoding browser data URIs.
"""

import base64
import binascii
import mimetypes
import random
import time
from pathlib import Path

# mimetypes.guess_extension returns ".jpe" / ".svgz" on some platforms
_PREFERRED_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


def generate_asset_name(extension: str) -> str:
    """
    Build a unique file name for an uploaded asset.

    Format: ``<epoch milliseconds>-<random 0..1e9><extension>``, e.g.
    ``1718040000123-482913301.png``.
    """
    millis = int(time.time() * 1000)
    suffix = random.randint(0, 10**9)
    return f"{millis}-{suffix}{extension.lower()}"


def file_extension(filename: str | None) -> str:
    """Lower-cased extension including the dot, or "" if there is none."""
    if not filename:
        return ""
    return Path(filename).suffix.lower()


def extension_for_mime(mime_type: str) -> str:
    mime_type = mime_type.lower()
    return _PREFERRED_EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ""


def decode_data_uri(value: str) -> tuple[str, bytes]:
    """
    Split a ``data:<mime>;base64,<payload>`` string into (mime type, bytes).

    Raises ValueError if the string is not a base64 data URI.
    """
    if not isinstance(value, str) or not value.startswith("data:"):
        raise ValueError("not a data URI")

    header, sep, payload = value.partition(",")
    if not sep:
        raise ValueError("data URI has no payload")

    params = header[len("data:"):].split(";")
    mime_type = params[0].strip().lower()
    if "base64" not in (p.strip().lower() for p in params[1:]):
        raise ValueError("data URI is not base64 encoded")

    # Browsers and editors may wrap long base64 payloads across lines
    payload = "".join(payload.split())
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 payload: {e}") from e

    return mime_type, data


def encode_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
