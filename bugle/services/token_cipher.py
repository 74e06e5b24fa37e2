"""Authenticated encryption for refresh tokens stored outside the session."""

from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken


class EncryptionError(Exception):
    """Raised when a token cannot be sealed, usually because of a bad key."""


class DecryptionError(Exception):
    """Raised when a sealed blob is tampered, truncated, expired or foreign."""


def _fernet_for(key: str) -> Fernet:
    """Accept a native Fernet key or derive one from a passphrase."""
    if not isinstance(key, str) or not key:
        raise ValueError("Token sealing key must be a non-empty string.")
    try:
        if len(base64.urlsafe_b64decode(key.encode("utf-8"))) == 32:
            return Fernet(key.encode("utf-8"))
    except (binascii.Error, ValueError):
        pass
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


class TokenCodec:
    """Seal and unseal refresh tokens with a Fernet key.

    ``ttl_seconds`` optionally bounds how old a sealed blob may be when it is
    unsealed; older blobs are rejected as expired.
    """

    def __init__(self, *, key: str, ttl_seconds: Optional[int] = None) -> None:
        self._key = key
        self._ttl = ttl_seconds

    def seal(self, refresh_token: str) -> str:
        """Encrypt a refresh token and return the opaque blob."""
        try:
            fernet = _fernet_for(self._key)
        except ValueError as exc:
            raise EncryptionError(str(exc)) from exc
        return fernet.encrypt(refresh_token.encode("utf-8")).decode("utf-8")

    def unseal(self, blob: str | bytes) -> str:
        """Decrypt a blob produced by :meth:`seal`."""
        try:
            fernet = _fernet_for(self._key)
        except ValueError as exc:
            raise DecryptionError(str(exc)) from exc
        if isinstance(blob, str):
            blob = blob.strip().encode("utf-8")
        try:
            plaintext = fernet.decrypt(blob, ttl=self._ttl)
        except InvalidToken as exc:
            raise DecryptionError(
                "Failed to unseal token; blob is invalid, expired or sealed with another key."
            ) from exc
        return plaintext.decode("utf-8")


def seal(refresh_token: str, key: str) -> str:
    return TokenCodec(key=key).seal(refresh_token)


def unseal(blob: str | bytes, key: str, ttl_seconds: Optional[int] = None) -> str:
    return TokenCodec(key=key, ttl_seconds=ttl_seconds).unseal(blob)


__all__ = ["DecryptionError", "EncryptionError", "TokenCodec", "seal", "unseal"]
