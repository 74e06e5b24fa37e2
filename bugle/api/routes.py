"""
FastAPI routes for the Drive session layer.

Paths come from settings, so the router is assembled by :func:`build_router`
at application start instead of with module-level decorators.
"""

from __future__ import annotations

import html
import json
import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from bugle.clients import DriveClient, OAuthTokenExchangeError, RemoteAPIError
from bugle.core.config import AppSettings
from bugle.dependencies import (
    get_app_settings,
    get_drive_file_opener,
    get_page_cache,
    get_request_drive,
    get_session_conductor,
    get_session_store,
)
from bugle.services import (
    CookieSessionStore,
    DriveFileOpener,
    OpenRequestError,
    PageCache,
    SessionConductor,
)

logger = logging.getLogger(__name__)


def _render_profile(request: Request, me: dict, level: int, logout_path: str) -> str:
    user = me.get("user", {})
    page = f"<h2>Welcome, {html.escape(str(user.get('displayName', '')))}</h2>"
    page += f'<img src="{html.escape(str(user.get("photoLink", "")), quote=True)}" />'
    if level > 1:
        page += "<p>From Drive</p><pre>" + html.escape(json.dumps(me, indent=4)) + "</pre>"
    if level > 2:
        headers = dict(request.headers)
        page += "<p>From request headers</p><pre>" + html.escape(json.dumps(headers, indent=4)) + "</pre>"
    if level > 3:
        info = {
            "client": list(request.client) if request.client else None,
            "method": request.method,
            "url": str(request.url),
        }
        page += "<p>From request info</p><pre>" + html.escape(json.dumps(info, indent=4)) + "</pre>"
    page += f'<p><a href="{html.escape(logout_path, quote=True)}">Logout</a></p>'
    return page


def build_router(settings: AppSettings) -> APIRouter:
    """Register the callback, page, logout, profile and optional open routes."""
    router = APIRouter()
    paths = settings.paths

    async def drive_callback(
        store: Annotated[CookieSessionStore, Depends(get_session_store)],
        conductor: Annotated[SessionConductor, Depends(get_session_conductor)],
    ) -> RedirectResponse:
        """Commit the tokens handed over by the grant step, then redirect."""
        outcome = await conductor.conduct(store)
        logger.info("Drive login callback finished as %s", outcome.state.value)
        return RedirectResponse(url=outcome.redirect_to, status_code=HTTPStatus.FOUND)

    def cached_page(name: str):
        async def show_page(
            pages: Annotated[PageCache, Depends(get_page_cache)],
        ) -> HTMLResponse:
            return HTMLResponse(pages[name])

        show_page.__name__ = f"show_{name}_page"
        return show_page

    async def logout(
        store: Annotated[CookieSessionStore, Depends(get_session_store)],
    ) -> PlainTextResponse:
        store.reset()
        return PlainTextResponse("Goodbye")

    async def profile(
        request: Request,
        drive: Annotated[Optional[DriveClient], Depends(get_request_drive)],
        app_settings: Annotated[AppSettings, Depends(get_app_settings)],
    ) -> Response:
        if drive is None:
            return RedirectResponse(url=app_settings.paths.retry, status_code=HTTPStatus.FOUND)
        try:
            me = await drive.about_me()
        except RemoteAPIError as exc:
            logger.warning("Drive profile lookup failed: %s", exc)
            raise HTTPException(
                status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                detail="no response from Google Drive",
            ) from exc
        level = app_settings.use_me_level
        if level <= 0:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND)
        return HTMLResponse(_render_profile(request, me, level, app_settings.paths.logout))

    router.add_api_route(settings.google.callback, drive_callback, methods=["GET"])
    router.add_api_route(paths.login, cached_page("login"), methods=["GET"])
    router.add_api_route(paths.logout, logout, methods=["GET"])
    router.add_api_route(paths.retry, cached_page("retry"), methods=["GET"])
    router.add_api_route(paths.reset, cached_page("retry"), methods=["GET"])
    router.add_api_route(paths.me, profile, methods=["GET"])

    if settings.open_url:

        async def open_drive_file(
            request: Request,
            opener: Annotated[DriveFileOpener, Depends(get_drive_file_opener)],
        ) -> Response:
            """Handle a file chosen in the Drive UI through "Open with"."""
            try:
                opened = await opener.open(request.query_params)
            except OpenRequestError as exc:
                raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
            except (OAuthTokenExchangeError, RemoteAPIError) as exc:
                logger.warning("Opening Drive file failed: %s", exc)
                raise HTTPException(
                    status_code=HTTPStatus.BAD_GATEWAY,
                    detail="Google Drive did not return the selected file.",
                ) from exc

            on_open: Any = getattr(request.app.state, "on_open", None)
            if on_open is not None:
                return await on_open(request, opened)
            out = json.dumps([opened.user, opened.file, opened.contents], indent=2)
            return PlainTextResponse(out)

        router.add_api_route(settings.open_url, open_drive_file, methods=["GET"])

    return router


__all__ = ["build_router"]
