"""Expose constructed client wrappers."""

from .google_auth import GoogleOAuthClient, OAuthStateEncoder, OAuthTokenExchangeError
from .google_drive import DriveClient, RemoteAPIError, RemoteFileNotFoundError

__all__ = [
    "DriveClient",
    "GoogleOAuthClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "RemoteAPIError",
    "RemoteFileNotFoundError",
]
