"""Service layer exports."""

from .capability import CapabilityFactory, build_capability
from .conductor import ConductorOutcome, ConductorState, SessionConductor
from .file_opener import DriveFileOpener, OpenedDriveFile, OpenRequestError
from .pages import PageCache
from .refresh_vault import RefreshTokenVault, VaultReadError, VaultWriteError
from .session_store import CookieSessionStore, SessionStore, Slot
from .token_cipher import DecryptionError, EncryptionError, TokenCodec
from .token_resolver import resolve_tokens

__all__ = [
    "CapabilityFactory",
    "ConductorOutcome",
    "ConductorState",
    "CookieSessionStore",
    "DecryptionError",
    "DriveFileOpener",
    "EncryptionError",
    "OpenRequestError",
    "OpenedDriveFile",
    "PageCache",
    "RefreshTokenVault",
    "SessionConductor",
    "SessionStore",
    "Slot",
    "TokenCodec",
    "VaultReadError",
    "VaultWriteError",
    "build_capability",
    "resolve_tokens",
]
