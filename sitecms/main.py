"""
Site CMS - Main Application

Single FastAPI application that serves:
- REST API endpoints for the content document and image uploads
- The pre-built site files and uploaded images (server mode only)
- Health check endpoint

Configuration comes in through an explicit :class:`~sitecms.config.Settings`
object; the storage backends are built from it once, in :func:`create_app`,
and handed to the routes via ``app.state``.
"""

import sys
import time
from contextlib import asynccontextmanager
from pathlib import PurePosixPath

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from sitecms.auth import ADMIN_PASSWORD_HEADER
from sitecms.config import Settings, ensure_directories
from sitecms.errors import CMSError
from sitecms.routes.api import router as api_router
from sitecms.services.content_store import ContentService, build_content_service
from sitecms.services.media_store import MediaStore, build_media_store


# ---------------------------------------------------------------------------
# Logging setup — stdout only
# ---------------------------------------------------------------------------
def setup_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level="DEBUG" if settings.debug else settings.log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )


# ---------------------------------------------------------------------------
# Static files
# ---------------------------------------------------------------------------
class SiteFiles(StaticFiles):
    """Static file app that never serves dotfiles (e.g. ``.env``).

    When mounted at ``/`` it also sees requests for API paths whose method
    matched no route; those get a 405 (or 404 for unknown API paths) instead
    of a file lookup.
    """

    def __init__(self, *args, api_router: APIRouter | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_router = api_router

    async def get_response(self, path, scope):
        parts = PurePosixPath(path).parts
        if any(part.startswith(".") for part in parts):
            raise StarletteHTTPException(status_code=404)
        if self.api_router is not None and parts and parts[0] == "api":
            allowed = _allowed_methods(self.api_router, "/" + "/".join(parts))
            if allowed:
                raise StarletteHTTPException(
                    status_code=405, headers={"Allow": ", ".join(sorted(allowed))}
                )
            raise StarletteHTTPException(status_code=404)
        return await super().get_response(path, scope)


def _allowed_methods(router: APIRouter, path: str) -> set[str]:
    """Methods the API router accepts for *path* (empty if no route matches)."""
    methods: set[str] = set()
    for route in router.routes:
        if isinstance(route, APIRoute) and route.path_regex.match(path):
            methods |= route.methods
    return methods


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
def _log_banner(settings: Settings, app: FastAPI) -> None:
    base = f"http://localhost:{settings.port}"
    logger.info("🏠 {} v{}", settings.app_name, settings.app_version)
    logger.info("📋 Environment: {} | Mode: {}", settings.app_env, settings.mode)
    if settings.serves_static:
        logger.info("🌐 Site:   {}", base)
        logger.info("🛠️  Admin:  {}/admin.html", base)
    logger.info(
        "🗄️  Content: {} | Uploads: {}",
        app.state.content_service.store.name,
        app.state.media_store.name,
    )
    logger.info("🔑 Password: {}", settings.admin_password)
    if settings.using_default_password:
        logger.warning("⚠️  Using the default admin password — set ADMIN_PASSWORD")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup:
        1. Create the local data/uploads directories (server mode)
        2. Log the startup banner
    """
    settings: Settings = app.state.settings

    try:
        ensure_directories(settings)
    except OSError as e:
        logger.critical("❌ Could not create data directories: {}", e)
        raise

    _log_banner(settings, app)
    logger.success("✅ Application ready — listening on {}:{}", settings.host, settings.port)

    yield

    logger.info("👋 Shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(
    settings: Settings | None = None,
    *,
    content_service: ContentService | None = None,
    media_store: MediaStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    *content_service* and *media_store* default to the backends selected
    from *settings*; tests pass their own.
    """
    if settings is None:
        settings = Settings.from_env()

    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Content document and image upload backend for a single-page site.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.content_service = content_service or build_content_service(settings)
    app.state.media_store = media_store or build_media_store(settings)

    # ------------------------------------------------------------------
    # Exception handlers — every error body is {"error": "..."}
    # ------------------------------------------------------------------
    @app.exception_handler(CMSError)
    async def cms_error_handler(request: Request, exc: CMSError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error: {}", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("❌ Unhandled error on {} {}: {}", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # ------------------------------------------------------------------
    # Body size limit (host-level, before any route reads the body)
    # ------------------------------------------------------------------
    body_limit = settings.max_body_bytes

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Reject requests whose declared body exceeds the upload ceiling."""
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > body_limit:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"error": "Request body too large"},
            )
        return await call_next(request)

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} — unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status_code = response.status_code
        fields = dict(
            method=request.method,
            path=request.url.path,
            status=status_code,
            duration=duration,
        )
        message = "📤 {method} {path} — {status} [{duration}s]"

        if status_code >= 500:
            logger.error(message, **fields)
        elif status_code >= 400:
            logger.warning(message, **fields)
        elif request.url.path.startswith("/api/"):
            logger.info(message, **fields)
        else:
            logger.debug(message, **fields)

        return response

    # ------------------------------------------------------------------
    # CORS (outermost, so error responses carry the headers too)
    # ------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "PUT", "POST", "OPTIONS"],
        allow_headers=["Content-Type", ADMIN_PASSWORD_HEADER],
    )

    # ------------------------------------------------------------------
    # Routers, then static files (the "/" mount must be last)
    # ------------------------------------------------------------------
    app.include_router(api_router)

    if settings.serves_static:
        app.mount(
            "/uploads",
            SiteFiles(directory=str(settings.uploads_dir), check_dir=False),
            name="uploads",
        )
        app.mount(
            "/",
            SiteFiles(
                directory=str(settings.site_dir),
                html=True,
                check_dir=False,
                api_router=api_router,
            ),
            name="site",
        )

    return app

