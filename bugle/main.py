"""
FastAPI application entrypoint for the Drive session layer.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.sessions import SessionMiddleware

from bugle.api.grant import build_grant_router
from bugle.api.middleware import DriveSessionMiddleware
from bugle.api.routes import build_router
from bugle.core.config import get_settings
from bugle.core.logging import configure_logging
from bugle.dependencies import get_capability_factory, get_page_cache, get_refresh_vault
from bugle.services import OpenedDriveFile

OpenHandler = Callable[[Request, OpenedDriveFile], Awaitable[Response]]


def create_app(*, on_open: Optional[OpenHandler] = None) -> FastAPI:
    """Factory for the FastAPI application.

    Settings, credentials, pages and the vault are all resolved before any
    route is registered, so a bad configuration raises ``ConfigError`` here
    and no half-configured app is returned.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    get_capability_factory()
    get_refresh_vault()
    get_page_cache()

    app = FastAPI(
        title="Bugle",
        version="0.1.0",
        description="Google Drive login sessions with vaulted refresh tokens.",
    )
    app.state.on_open = on_open
    app.add_middleware(DriveSessionMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session.secret_key,
        session_cookie=settings.session.cookie_name,
        max_age=settings.session.max_age,
        https_only=settings.session.https_only,
    )
    app.include_router(build_router(settings))
    app.include_router(build_grant_router(settings))
    return app


app = create_app()

__all__ = ["app", "create_app"]
