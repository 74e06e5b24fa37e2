"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Optional

from bugle.clients import GoogleOAuthClient, OAuthStateEncoder
from bugle.core.config import GoogleCredentials, get_settings
from bugle.services import (
    CapabilityFactory,
    DriveFileOpener,
    PageCache,
    RefreshTokenVault,
    SessionConductor,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_google_credentials() -> GoogleCredentials:
    """Provide the immutable OAuth client credentials."""
    return GoogleCredentials.from_settings(_settings().google)


@lru_cache()
def get_capability_factory() -> CapabilityFactory:
    """Provide the factory that turns session tokens into Drive clients."""
    settings = _settings()
    return CapabilityFactory(
        get_google_credentials(),
        salt=settings.hexid_salt,
        scopes=settings.oauth.scopes,
    )


@lru_cache()
def get_refresh_vault() -> RefreshTokenVault:
    """Provide the refresh token vault, disabled unless a stash is configured."""
    return RefreshTokenVault.from_settings(_settings().drive.refresh_token_stash)


@lru_cache()
def get_session_conductor() -> SessionConductor:
    """Provide the login callback conductor."""
    settings = _settings()
    return SessionConductor(
        factory=get_capability_factory(),
        vault=get_refresh_vault(),
        landing_path=settings.my_redirect,
        retry_path=settings.paths.retry,
    )


@lru_cache()
def get_page_cache() -> PageCache:
    """Provide login and retry pages read once per process."""
    return PageCache.load(_settings())


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the session secret."""
    return OAuthStateEncoder(secret_key=_settings().session.secret_key)


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    return GoogleOAuthClient(get_google_credentials(), _settings().oauth)


@lru_cache()
def get_drive_file_opener() -> Optional[DriveFileOpener]:
    """Provide the "Open with" helper when an open URL is configured."""
    settings = _settings()
    if not settings.open_url:
        return None
    return DriveFileOpener(
        oauth_client=get_google_oauth_client(),
        factory=get_capability_factory(),
        redirect_uri=f"https://{settings.hostname}{settings.open_url}",
        fields=settings.open_fields,
        max_size=settings.open_max_size,
    )


__all__ = [
    "get_capability_factory",
    "get_drive_file_opener",
    "get_google_credentials",
    "get_google_oauth_client",
    "get_oauth_state_encoder",
    "get_page_cache",
    "get_refresh_vault",
    "get_session_conductor",
]
