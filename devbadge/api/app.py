"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from devbadge.api.core.config import get_settings
from devbadge.api.core.dependencies import close_clients
from devbadge.api.routers import (
    auth_router,
    commands_router,
    guilds_router,
    meta_router,
    tracking_router,
    translation_router,
    twitch_router,
)
from devbadge.api.routers.auth_router import AUTH_COOKIE

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time
    _start_time = time.time()

    settings = get_settings()
    logger.info("Starting dashboard")
    logger.info(f"Data directory: {settings.data_path}")
    logger.info(f"Bot control URL: {settings.bot_control_url}")
    if not settings.control_secret:
        logger.warning("CONTROL_SECRET is not set; live bot features will be unavailable")

    yield

    logger.info("Shutting down dashboard")
    try:
        await close_clients()
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Every error response carries an ``error`` field"""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return _error(422, f"{location}: {message}" if location else message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="DevBadge Dashboard",
        description="Per-server configuration for the DevBadge Discord bot",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(meta_router.router)
    app.include_router(guilds_router.router)
    app.include_router(translation_router.router)
    app.include_router(twitch_router.router)
    app.include_router(tracking_router.router)
    app.include_router(commands_router.router)

    @app.get("/", include_in_schema=False)
    async def index(request: Request):
        if request.cookies.get(AUTH_COOKIE):
            return RedirectResponse(url="/dashboard", status_code=302)
        return FileResponse(STATIC_DIR / "index.html")

    @app.get("/dashboard", include_in_schema=False)
    async def dashboard(request: Request):
        if not request.cookies.get(AUTH_COOKIE):
            return RedirectResponse(url="/", status_code=302)
        return FileResponse(STATIC_DIR / "dashboard.html")

    # Liveness check, no external dependency
    @app.get("/health")
    async def health():
        return {"status": "healthy", "uptime_seconds": int(time.time() - _start_time)}

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    logger.info("FastAPI application configured")
    return app
