"""
Site CMS - Configuration Tests

Tests for sitecms/config.py. Validates:
- Defaults when no environment variables are set
- Environment variables and keyword overrides
- Derived paths and remote backend URLs
- Mode validation and the production password guard
- ensure_directories only touching disk in server mode
"""

from pathlib import Path

import pytest

from sitecms.config import (
    BODY_OVERHEAD_BYTES,
    DEFAULT_ADMIN_PASSWORD,
    MODE_SERVER,
    MODE_SERVERLESS,
    Settings,
    ensure_directories,
)
from tests.conftest import make_settings

_ENV_VARS = [
    "APP_ENV",
    "CMS_MODE",
    "HOST",
    "PORT",
    "DEBUG",
    "LOG_LEVEL",
    "ADMIN_PASSWORD",
    "SITE_DIR",
    "DATA_DIR",
    "FALLBACK_CONTENT_FILE",
    "JSONBIN_BIN_ID",
    "JSONBIN_API_KEY",
    "JSONBIN_BASE_URL",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_UPLOAD_PRESET",
    "CLOUDINARY_BASE_URL",
    "MAX_UPLOAD_MB",
    "HTTP_TIMEOUT",
    "CORS_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear every variable Settings reads and point SITE_DIR at tmp_path."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("sitecms.config.load_dotenv", lambda *a, **k: False)
    monkeypatch.setenv("SITE_DIR", str(tmp_path))
    return monkeypatch


# ===========================================================================
# Settings.from_env
# ===========================================================================


class TestFromEnv:
    """Test building settings from the environment."""

    def test_defaults(self, clean_env, tmp_path):
        settings = Settings.from_env()
        assert settings.mode == MODE_SERVER
        assert settings.port == 3000
        assert settings.host == "0.0.0.0"
        assert settings.admin_password == DEFAULT_ADMIN_PASSWORD
        assert settings.max_upload_bytes == 10 * 1024 * 1024
        assert settings.cors_origins == ("*",)
        assert settings.site_dir == tmp_path.resolve()
        assert settings.data_dir == tmp_path.resolve() / "data"

    def test_reads_environment(self, clean_env):
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("CMS_MODE", "Serverless")
        clean_env.setenv("ADMIN_PASSWORD", "hunter2")
        clean_env.setenv("MAX_UPLOAD_MB", "2")
        clean_env.setenv("DEBUG", "true")
        clean_env.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        settings = Settings.from_env()
        assert settings.port == 8080
        assert settings.mode == MODE_SERVERLESS
        assert settings.admin_password == "hunter2"
        assert settings.max_upload_bytes == 2 * 1024 * 1024
        assert settings.debug is True
        assert settings.cors_origins == ("https://a.example", "https://b.example")

    def test_keyword_overrides_win(self, clean_env):
        clean_env.setenv("CMS_MODE", "server")
        settings = Settings.from_env(mode=MODE_SERVERLESS, port=None)
        assert settings.mode == MODE_SERVERLESS
        # None overrides are ignored
        assert settings.port == 3000

    def test_invalid_mode_raises(self, clean_env):
        clean_env.setenv("CMS_MODE", "lambda")
        with pytest.raises(ValueError, match="Invalid CMS mode"):
            Settings.from_env()

    def test_production_rejects_default_password(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        with pytest.raises(RuntimeError, match="ADMIN_PASSWORD"):
            Settings.from_env()

    def test_production_accepts_custom_password(self, clean_env):
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("ADMIN_PASSWORD", "a-real-secret")
        settings = Settings.from_env()
        assert settings.using_default_password is False


# ===========================================================================
# Derived properties
# ===========================================================================


class TestDerived:
    """Test derived paths and backend detection."""

    def test_local_paths(self, site_dir):
        settings = make_settings(site_dir)
        assert settings.content_file == site_dir / "data" / "content.json"
        assert settings.uploads_dir == site_dir / "data" / "uploads"

    def test_jsonbin_requires_both_values(self, site_dir):
        assert not make_settings(site_dir, jsonbin_bin_id="abc").jsonbin_configured
        assert not make_settings(site_dir, jsonbin_api_key="key").jsonbin_configured
        assert make_settings(
            site_dir, jsonbin_bin_id="abc", jsonbin_api_key="key"
        ).jsonbin_configured

    def test_jsonbin_url(self, site_dir):
        settings = make_settings(site_dir, jsonbin_bin_id="abc123")
        assert settings.jsonbin_url == "https://api.jsonbin.io/v3/b/abc123"

    def test_cloudinary_requires_both_values(self, site_dir):
        assert not make_settings(site_dir, cloudinary_cloud_name="demo").cloudinary_configured
        assert make_settings(
            site_dir, cloudinary_cloud_name="demo", cloudinary_upload_preset="unsigned"
        ).cloudinary_configured

    def test_cloudinary_upload_url(self, site_dir):
        settings = make_settings(site_dir, cloudinary_cloud_name="demo")
        assert (
            settings.cloudinary_upload_url
            == "https://api.cloudinary.com/v1_1/demo/image/upload"
        )

    def test_serves_static_only_in_server_mode(self, site_dir):
        assert make_settings(site_dir, mode=MODE_SERVER).serves_static
        assert not make_settings(site_dir, mode=MODE_SERVERLESS).serves_static

    def test_body_limit_covers_base64_upload(self, site_dir):
        settings = make_settings(site_dir, max_upload_bytes=3 * 1024)
        assert settings.max_body_bytes == 4 * 1024 + BODY_OVERHEAD_BYTES


# ===========================================================================
# ensure_directories
# ===========================================================================


class TestEnsureDirectories:
    def test_creates_data_and_uploads(self, site_dir):
        settings = make_settings(site_dir, mode=MODE_SERVER)
        ensure_directories(settings)
        assert settings.data_dir.is_dir()
        assert settings.uploads_dir.is_dir()

    def test_idempotent(self, site_dir):
        settings = make_settings(site_dir, mode=MODE_SERVER)
        ensure_directories(settings)
        ensure_directories(settings)
        assert settings.uploads_dir.is_dir()

    def test_serverless_creates_nothing(self, site_dir):
        settings = make_settings(site_dir, mode=MODE_SERVERLESS)
        ensure_directories(settings)
        assert not Path(settings.data_dir).exists()
