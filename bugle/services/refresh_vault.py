"""
Out-of-band storage of the refresh token in the user's Drive.

The refresh token is the longest-lived secret in the flow. Keeping a sealed
copy in the hidden ``appDataFolder`` lets a returning user recover it after
the session cookie was evicted, without running the consent screen again.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from bugle.core.config import RefreshTokenStashSettings
from bugle.services.token_cipher import DecryptionError, EncryptionError, TokenCodec

logger = logging.getLogger(__name__)


class VaultReadError(Exception):
    """Raised when the vaulted token is missing, unreadable or corrupt."""


class VaultWriteError(Exception):
    """Raised when the vaulted token could not be written."""


class AppDataStorage(Protocol):
    async def upload_app_data(
        self, name: str, content: str, *, mime_type: str = ..., clobber: bool = ...
    ) -> dict: ...

    async def download_app_data(self, name: str) -> str: ...


class RefreshTokenVault:
    """Seal refresh tokens into, and recover them from, remote app storage."""

    def __init__(self, codec: Optional[TokenCodec], file_name: Optional[str]) -> None:
        self._codec = codec
        self._file_name = file_name

    @classmethod
    def disabled(cls) -> "RefreshTokenVault":
        return cls(None, None)

    @classmethod
    def from_settings(cls, stash: RefreshTokenStashSettings) -> "RefreshTokenVault":
        if not stash.enabled:
            return cls.disabled()
        codec = TokenCodec(key=stash.key or "", ttl_seconds=stash.ttl_seconds)
        return cls(codec, stash.file)

    @property
    def configured(self) -> bool:
        return self._codec is not None and bool(self._file_name)

    async def persist(self, storage: AppDataStorage, refresh_token: str) -> None:
        """Seal ``refresh_token`` and overwrite the remote copy."""
        if not self.configured:
            return
        try:
            sealed = self._codec.seal(refresh_token)
            await storage.upload_app_data(
                self._file_name, sealed, mime_type="text/plain", clobber=True
            )
        except EncryptionError as exc:
            raise VaultWriteError("Could not seal refresh token") from exc
        except Exception as exc:
            raise VaultWriteError(
                f"Could not store refresh token as {self._file_name}"
            ) from exc
        logger.info("Vaulted refresh token to %s", self._file_name)

    async def recover(self, storage: AppDataStorage) -> Optional[str]:
        """Return the vaulted refresh token, or ``None`` when vaulting is off."""
        if not self.configured:
            return None
        try:
            sealed = await storage.download_app_data(self._file_name)
        except Exception as exc:
            raise VaultReadError(f"Could not read {self._file_name}") from exc
        try:
            token = self._codec.unseal(sealed)
        except DecryptionError as exc:
            raise VaultReadError(f"{self._file_name} could not be unsealed") from exc
        if not token:
            raise VaultReadError(f"{self._file_name} holds an empty token")
        return token


__all__ = ["AppDataStorage", "RefreshTokenVault", "VaultReadError", "VaultWriteError"]
