"""FastAPI application factory.

Instantiate with:
    uvicorn fbms.backend.api.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fbms.backend.api.router import router
from fbms.backend.core.errors import AuthenticationError, FBMSError
from fbms.backend.core.utils.config import load_runtime_config
from fbms.backend.db.session import Database
from fbms.backend.services import accounting, settings
from fbms.backend.services.sales import CartStore

logger = logging.getLogger(__name__)

# Override in production:  CORS_ORIGINS="https://your-domain.com"
_CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, the chart of accounts and the settings row."""
    database: Database = app.state.database
    database.create_all()
    with database.session_scope() as session:
        accounting.ensure_default_chart(session)
        settings.get_settings(session, app.state.config)
    Path(app.state.config.get("backup", {}).get("directory", "backups")).mkdir(parents=True, exist_ok=True)
    logger.info("Backend ready – database %s", database.url)
    yield
    database.dispose()


def create_app(config: dict[str, Any] | None = None, database: Database | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Configuration dict; defaults to :func:`load_runtime_config`
        database: Database to use; defaults to ``config["database"]``
    """
    config = config or load_runtime_config()
    if database is None:
        db_cfg = config.get("database", {})
        database = Database(db_cfg.get("url", "sqlite:///fbms.db"), echo=bool(db_cfg.get("echo", False)))

    application = FastAPI(
        title="FBMS API",
        version="1.0.0",
        description="Filipino Business Management System backend",
        lifespan=lifespan,
    )
    application.state.config = config
    application.state.database = database
    application.state.cart_store = CartStore(config)

    # ── CORS ───────────────────────────────────────────────────────────────
    application.add_middleware(
        CORSMiddleware,
        allow_origins=_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Domain errors → JSON ───────────────────────────────────────────────
    application.add_exception_handler(FBMSError, _fbms_error_handler)

    # ── Register all API routes under /api ─────────────────────────────────
    application.include_router(router, prefix="/api")

    _install_access_log_filter()

    return application


async def _fbms_error_handler(request: Request, exc: FBMSError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


class _QuietPollFilter(logging.Filter):
    """Drop uvicorn access-log records for /api/health."""

    _NOISY = ("/api/health",)

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(path in msg for path in self._NOISY)


def _install_access_log_filter() -> None:
    uvicorn_access = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, _QuietPollFilter) for f in uvicorn_access.filters):
        uvicorn_access.addFilter(_QuietPollFilter())


def __getattr__(name: str):
    # ``uvicorn fbms.backend.api.app:app`` builds the app on first access, so
    # importing this module (tests, CLI) does not open the default database.
    if name == "app":
        application = create_app()
        globals()["app"] = application
        return application
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
