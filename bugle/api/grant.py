"""
Minimal grant step: send the user to Google and hand the tokens to the session.

It leaves the provider response in the ``fresh`` slot and redirects to the
configured Google callback path, where the session conductor takes over.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from bugle.clients import GoogleOAuthClient, OAuthStateEncoder, OAuthTokenExchangeError
from bugle.core.config import AppSettings
from bugle.dependencies import (
    get_app_settings,
    get_google_oauth_client,
    get_oauth_state_encoder,
    get_session_store,
)
from bugle.services import CookieSessionStore, Slot

logger = logging.getLogger(__name__)


def _redirect_uri(request: Request, settings: AppSettings) -> str:
    if settings.hostname:
        return f"https://{settings.hostname}{settings.paths.connect_callback}"
    return str(request.url_for("grant_callback"))


def build_grant_router(settings: AppSettings) -> APIRouter:
    router = APIRouter()

    async def start_grant(
        request: Request,
        oauth_client: Annotated[GoogleOAuthClient, Depends(get_google_oauth_client)],
        state_encoder: Annotated[OAuthStateEncoder, Depends(get_oauth_state_encoder)],
        app_settings: Annotated[AppSettings, Depends(get_app_settings)],
    ) -> RedirectResponse:
        """Redirect to the Google consent screen with a signed state token."""
        state = state_encoder.encode(
            {
                "nonce": uuid.uuid4().hex,
                "issued_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        url = oauth_client.build_authorization_url(
            state, redirect_uri=_redirect_uri(request, app_settings)
        )
        return RedirectResponse(url=url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    async def grant_callback(
        request: Request,
        oauth_client: Annotated[GoogleOAuthClient, Depends(get_google_oauth_client)],
        state_encoder: Annotated[OAuthStateEncoder, Depends(get_oauth_state_encoder)],
        store: Annotated[CookieSessionStore, Depends(get_session_store)],
        app_settings: Annotated[AppSettings, Depends(get_app_settings)],
        state: str = Query(..., description="OAuth state token."),
        code: Optional[str] = Query(None, description="Authorization code returned by Google."),
        error: Optional[str] = Query(None, description="Error reported by Google."),
    ) -> RedirectResponse:
        """Exchange the code and leave the tokens for the session conductor."""
        retry = RedirectResponse(url=app_settings.paths.retry, status_code=HTTPStatus.FOUND)
        state_data = state_encoder.decode(state)

        issued_at_raw = state_data.get("issued_at")
        if not issued_at_raw:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail="Missing issued_at in state token.",
            )
        try:
            issued_at = datetime.fromisoformat(issued_at_raw)
        except ValueError as exc:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail="Invalid issued_at in state token.",
            ) from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - issued_at > timedelta(
            seconds=app_settings.oauth.state_ttl_seconds
        ):
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
            )

        if error or not code:
            logger.info("Google consent did not complete: %s", error or "no code")
            return retry

        try:
            bundle = await oauth_client.exchange_authorization_code(
                code, redirect_uri=_redirect_uri(request, app_settings)
            )
        except OAuthTokenExchangeError as exc:
            logger.warning("Authorization code exchange failed: %s", exc)
            return retry

        store.set(Slot.FRESH, bundle)
        return RedirectResponse(
            url=app_settings.google.callback, status_code=HTTPStatus.FOUND
        )

    router.add_api_route(settings.paths.connect, start_grant, methods=["GET"])
    router.add_api_route(
        settings.paths.connect_callback,
        grant_callback,
        methods=["GET"],
        name="grant_callback",
    )
    return router


__all__ = ["build_grant_router"]
