"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_capability_factory,
    get_drive_file_opener,
    get_google_credentials,
    get_google_oauth_client,
    get_oauth_state_encoder,
    get_page_cache,
    get_refresh_vault,
    get_session_conductor,
)
from .config import get_app_settings
from .session import get_request_drive, get_session_store

__all__ = [
    "get_app_settings",
    "get_capability_factory",
    "get_drive_file_opener",
    "get_google_credentials",
    "get_google_oauth_client",
    "get_oauth_state_encoder",
    "get_page_cache",
    "get_refresh_vault",
    "get_request_drive",
    "get_session_conductor",
    "get_session_store",
]
