"""
Site CMS - Entry Point Tests

Tests for the process entry points:
- ``sitecms`` / ``python -m sitecms`` argument handling
- the ``sitecms.server`` and ``sitecms.serverless`` ASGI apps
"""

import importlib
import os
from unittest.mock import patch

import pytest

from sitecms.__main__ import main


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch restores whatever main() writes
    monkeypatch.setenv("HOST", "0.0.0.0")
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("CMS_MODE", "server")
    for name in ("APP_ENV", "JSONBIN_BIN_ID", "CLOUDINARY_CLOUD_NAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SITE_DIR", str(tmp_path))
    return monkeypatch


class TestCli:
    def test_defaults(self, isolated_env):
        with patch("sitecms.__main__.uvicorn.run") as run:
            assert main([]) == 0
        run.assert_called_once()
        args, kwargs = run.call_args
        assert args == ("sitecms.server:app",)
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 3000
        assert kwargs["reload"] is False

    def test_flags_override_environment(self, isolated_env):
        isolated_env.setenv("PORT", "9000")
        with patch("sitecms.__main__.uvicorn.run") as run:
            main(["--host", "127.0.0.1", "--port", "4000", "--mode", "serverless", "--reload"])
        kwargs = run.call_args.kwargs
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 4000
        assert kwargs["reload"] is True

    def test_mode_is_exported_for_the_app(self, isolated_env):
        with patch("sitecms.__main__.uvicorn.run"):
            main(["--mode", "serverless"])
        assert os.environ["CMS_MODE"] == "serverless"

    def test_rejects_unknown_mode(self, isolated_env):
        with pytest.raises(SystemExit):
            main(["--mode", "lambda"])


class TestServerlessApp:
    def test_app_runs_in_serverless_mode(self, isolated_env):
        import sitecms.serverless

        module = importlib.reload(sitecms.serverless)
        settings = module.app.state.settings
        assert settings.mode == "serverless"
        assert settings.serves_static is False
        assert module.app.state.media_store.name == "unconfigured"
        assert module.app.state.content_service.store.name == "read-only"

    def test_import_does_not_build_a_server_app(self, isolated_env):
        import sitecms.main
        import sitecms.serverless

        importlib.reload(sitecms.serverless)
        assert not hasattr(sitecms.main, "app")


class TestServerApp:
    def test_app_runs_in_server_mode(self, isolated_env):
        import sitecms.server

        module = importlib.reload(sitecms.server)
        settings = module.app.state.settings
        assert settings.mode == "server"
        assert settings.serves_static is True
        assert module.app.state.content_service.store.name == "local"
