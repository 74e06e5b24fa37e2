"""Construct the per-request Drive capability from resolved tokens."""

from __future__ import annotations

from typing import Optional, Sequence

from bugle.clients.google_drive import DriveClient
from bugle.core.config import GoogleCredentials
from bugle.schemas.auth import TokenBundle


class CapabilityFactory:
    """Bind credentials and salt once; build a :class:`DriveClient` per request."""

    def __init__(
        self,
        credentials: GoogleCredentials,
        *,
        salt: str = "",
        scopes: Optional[Sequence[str]] = None,
    ) -> None:
        self._credentials = credentials
        self._salt = salt
        self._scopes = tuple(scopes or ())

    @property
    def credentials(self) -> GoogleCredentials:
        return self._credentials

    def build(self, bundle: Optional[TokenBundle]) -> Optional[DriveClient]:
        """Return a capability, or ``None`` when there is no usable access token."""
        if bundle is None or not bundle.access_token:
            return None
        return DriveClient.from_bundle(
            bundle,
            client_id=self._credentials.key,
            client_secret=self._credentials.secret,
            scopes=self._scopes,
            salt=self._salt,
        )


def build_capability(
    bundle: Optional[TokenBundle], credentials: GoogleCredentials, salt: str = ""
) -> Optional[DriveClient]:
    return CapabilityFactory(credentials, salt=salt).build(bundle)


__all__ = ["CapabilityFactory", "GoogleCredentials", "build_capability"]
