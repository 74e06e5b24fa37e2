"""Request-scoped dependencies: the session slots and the attached Drive client."""

from typing import Optional

from fastapi import Request

from bugle.clients import DriveClient
from bugle.services import CookieSessionStore


def get_session_store(request: Request) -> CookieSessionStore:
    """Wrap the signed cookie session of this request."""
    return CookieSessionStore(request.session)


def get_request_drive(request: Request) -> Optional[DriveClient]:
    """Return the capability attached by the pre-handler hook, if any."""
    return getattr(request.state, "drive", None)


__all__ = ["get_request_drive", "get_session_store"]
