"""
Pre- and post-handler hooks around every request.

Before the endpoint runs, a Drive client for the session's tokens is attached
as ``request.state.drive`` (``None`` when logged out). After it runs, an
access token rotated by google-auth during the request is written back to
the confirmed session slot.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from bugle.dependencies import get_session_conductor, get_session_store
from bugle.services import SessionConductor

logger = logging.getLogger(__name__)


def _resolve(request: Request, dependency: Callable):
    """Honour ``app.dependency_overrides`` outside of FastAPI's injector."""
    app: FastAPI = request.app
    provider = app.dependency_overrides.get(dependency, dependency)
    return provider()


class DriveSessionMiddleware(BaseHTTPMiddleware):
    """Must be installed inside (added before) Starlette's SessionMiddleware."""

    async def dispatch(self, request: Request, call_next):
        conductor: SessionConductor = _resolve(request, get_session_conductor)
        store = get_session_store(request)

        drive = conductor.attach_capability(store)
        request.state.drive = drive

        response = await call_next(request)

        if conductor.reconcile_tokens(store, drive):
            logger.debug("%s %s refreshed session tokens", request.method, request.url.path)
        return response


__all__ = ["DriveSessionMiddleware"]
