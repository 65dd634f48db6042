"""
Site CMS - Configuration

All settings are loaded from environment variables (and an optional .env
file) into a single immutable :class:`Settings` object.  The application
factory receives that object explicitly; nothing reads the environment after
startup.

Storage backends are chosen from what is configured:

- JSONBin credentials present   -> remote content document
- Cloudinary credentials present -> remote image hosting
- otherwise, in ``server`` mode  -> local disk under ``DATA_DIR``
- otherwise, in ``serverless``   -> read-only content, uploads disabled
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from sitecms import __version__

MODE_SERVER = "server"
MODE_SERVERLESS = "serverless"
VALID_MODES = {MODE_SERVER, MODE_SERVERLESS}

DEFAULT_ADMIN_PASSWORD = "111825"

# ---------------------------------------------------------------------------
# Upload limits
# ---------------------------------------------------------------------------
ALLOWED_IMAGE_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp", ".svg"}
ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
}
DEFAULT_MAX_UPLOAD_MB = 10
BODY_OVERHEAD_BYTES = 1024 * 1024


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for one deployment."""

    site_dir: Path
    data_dir: Path
    fallback_content_file: Path

    app_name: str = "Site CMS"
    app_env: str = "development"
    app_version: str = __version__
    mode: str = MODE_SERVER
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"

    admin_password: str = DEFAULT_ADMIN_PASSWORD

    # JSONBin (remote content document)
    jsonbin_bin_id: str = ""
    jsonbin_api_key: str = ""
    jsonbin_base_url: str = "https://api.jsonbin.io/v3"

    # Cloudinary (remote image hosting, unsigned upload preset)
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""
    cloudinary_base_url: str = "https://api.cloudinary.com/v1_1"

    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_MB * 1024 * 1024
    http_timeout: float = 30.0
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))

    def __post_init__(self) -> None:
        if self.mode not in VALID_MODES:
            raise ValueError(
                f"Invalid CMS mode: {self.mode!r}. "
                f"Must be one of: {', '.join(sorted(VALID_MODES))}"
            )

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------
    @property
    def content_file(self) -> Path:
        return self.data_dir / "content.json"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def max_body_bytes(self) -> int:
        """Largest request body accepted at all.

        Multipart boundaries and base64 inflate the body past the raw image
        size, so this sits above ``max_upload_bytes``.
        """
        return self.max_upload_bytes * 4 // 3 + BODY_OVERHEAD_BYTES

    # ------------------------------------------------------------------
    # Remote backends
    # ------------------------------------------------------------------
    @property
    def jsonbin_configured(self) -> bool:
        return bool(self.jsonbin_bin_id and self.jsonbin_api_key)

    @property
    def jsonbin_url(self) -> str:
        return f"{self.jsonbin_base_url.rstrip('/')}/b/{self.jsonbin_bin_id}"

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)

    @property
    def cloudinary_upload_url(self) -> str:
        base = self.cloudinary_base_url.rstrip("/")
        return f"{base}/{self.cloudinary_cloud_name}/image/upload"

    @property
    def serves_static(self) -> bool:
        """Only the long-running server serves site files and uploads itself."""
        return self.mode == MODE_SERVER

    @property
    def using_default_password(self) -> bool:
        return self.admin_password == DEFAULT_ADMIN_PASSWORD

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from the process environment.

        Keyword arguments override individual fields (the CLI uses this for
        ``--host``/``--port``/``--mode``).
        """
        _ = load_dotenv()

        site_dir = Path(os.getenv("SITE_DIR", os.getcwd())).resolve()
        data_dir = Path(os.getenv("DATA_DIR", str(site_dir / "data"))).resolve()
        fallback = Path(
            os.getenv("FALLBACK_CONTENT_FILE", str(site_dir / "content.json"))
        )

        values = dict(
            site_dir=site_dir,
            data_dir=data_dir,
            fallback_content_file=fallback,
            app_name=os.getenv("APP_NAME", "Site CMS"),
            app_env=os.getenv("APP_ENV", "development"),
            app_version=os.getenv("APP_VERSION", __version__),
            mode=os.getenv("CMS_MODE", MODE_SERVER).strip().lower(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            debug=_env_bool("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            admin_password=os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
            jsonbin_bin_id=os.getenv("JSONBIN_BIN_ID", ""),
            jsonbin_api_key=os.getenv("JSONBIN_API_KEY", ""),
            jsonbin_base_url=os.getenv("JSONBIN_BASE_URL", "https://api.jsonbin.io/v3"),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_upload_preset=os.getenv("CLOUDINARY_UPLOAD_PRESET", ""),
            cloudinary_base_url=os.getenv(
                "CLOUDINARY_BASE_URL", "https://api.cloudinary.com/v1_1"
            ),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_MB", str(DEFAULT_MAX_UPLOAD_MB)))
            * 1024
            * 1024,
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        settings = cls(**values)

        if settings.app_env == "production" and settings.using_default_password:
            raise RuntimeError(
                "ADMIN_PASSWORD must be changed from the default value in production. "
                "Set the ADMIN_PASSWORD environment variable to a private secret."
            )

        return settings


def ensure_directories(settings: Settings) -> None:
    """Create the local data and uploads directories (server mode only).

    Serverless deployments have a read-only file system, so nothing is
    created there.
    """
    if not settings.serves_static:
        return
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
