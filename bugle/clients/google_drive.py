"""Request-scoped Google Drive client bound to one user's tokens."""

from __future__ import annotations

import asyncio
import hashlib
import io
from datetime import timezone
from typing import Any, Callable, Optional, Sequence, TypeVar

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from bugle.schemas.auth import TokenBundle

T = TypeVar("T")

TOKEN_URL = "https://oauth2.googleapis.com/token"
APP_DATA_FOLDER = "appDataFolder"


class RemoteAPIError(Exception):
    """Raised when a Drive call fails, including token refresh failures."""


class RemoteFileNotFoundError(RemoteAPIError):
    """Raised when a named Drive object does not exist."""


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Act on a user's Drive with the credentials resolved for this request.

    Construction performs no network I/O; the Drive service object is built on
    first use inside a worker thread. google-auth refreshes the access token
    transparently when it expires, which is why callers read the tokens back
    through :meth:`current_tokens` after the request.
    """

    def __init__(
        self,
        *,
        credentials: Credentials,
        salt: str = "",
        bundle: Optional[TokenBundle] = None,
    ) -> None:
        self._credentials = credentials
        self._salt = salt
        self._bundle = bundle
        self._service = None

    @classmethod
    def from_bundle(
        cls,
        bundle: TokenBundle,
        *,
        client_id: str,
        client_secret: str,
        scopes: Optional[Sequence[str]] = None,
        salt: str = "",
    ) -> "DriveClient":
        expiry = bundle.expiry
        if expiry is not None and expiry.tzinfo is not None:
            # google-auth compares against naive UTC timestamps.
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
        credentials = Credentials(
            token=bundle.access_token,
            refresh_token=bundle.refresh_token,
            token_uri=TOKEN_URL,
            client_id=client_id,
            client_secret=client_secret,
            scopes=list(scopes) if scopes else None,
            expiry=expiry,
        )
        return cls(credentials=credentials, salt=salt, bundle=bundle)

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def current_tokens(self) -> TokenBundle:
        """Return the tokens as they stand now, including any rotation."""
        expiry = self._credentials.expiry
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        update: dict[str, Any] = {
            "access_token": self._credentials.token,
            "refresh_token": self._credentials.refresh_token,
            "expiry": expiry,
        }
        if self._bundle is not None:
            return self._bundle.model_copy(update=update)
        return TokenBundle(**update)

    def hexid(self, value: str) -> str:
        """Salted, stable identifier for a Drive object or user id."""
        return hashlib.sha256(f"{self._salt}{value}".encode("utf-8")).hexdigest()

    def _drive(self):
        if self._service is None:
            self._service = build(
                "drive", "v3", credentials=self._credentials, cache_discovery=False
            )
        return self._service

    async def _run(self, func: Callable[[], T]) -> T:
        def _guarded() -> T:
            try:
                return func()
            except HttpError as exc:
                status = getattr(exc.resp, "status", None)
                raise RemoteAPIError(f"Drive API returned HTTP {status}") from exc
            except GoogleAuthError as exc:
                raise RemoteAPIError("Drive credentials were rejected") from exc

        return await asyncio.to_thread(_guarded)

    async def about_me(self) -> dict:
        """Fetch the signed-in user's profile and quota."""

        def _execute() -> dict:
            return self._drive().about().get(fields="user,storageQuota").execute()

        return await self._run(_execute)

    async def get_file_metadata(self, file_id: str, *, fields: str = "*") -> dict:
        """Fetch metadata for a Drive file."""

        def _execute() -> dict:
            return self._drive().files().get(fileId=file_id, fields=fields).execute()

        return await self._run(_execute)

    def _download_bytes(self, file_id: str) -> bytes:
        request = self._drive().files().get_media(fileId=file_id)
        fh = io.BytesIO()
        downloader = MediaIoBaseDownload(fh, request)
        done = False
        while not done:
            _, done = downloader.next_chunk()
        return fh.getvalue()

    async def download_text(self, file_id: str) -> str:
        """Download a file and decode it as UTF-8 text."""
        data = await self._run(lambda: self._download_bytes(file_id))
        return data.decode("utf-8", errors="replace")

    def _find_app_data(self, name: str) -> list[dict]:
        listing = (
            self._drive()
            .files()
            .list(
                spaces=APP_DATA_FOLDER,
                q=f"name = '{_escape_query(name)}' and trashed = false",
                fields="files(id,name,modifiedTime)",
                pageSize=10,
            )
            .execute()
        )
        return listing.get("files", [])

    async def upload_app_data(
        self,
        name: str,
        content: str,
        *,
        mime_type: str = "text/plain",
        clobber: bool = True,
    ) -> dict:
        """Store ``content`` under ``name`` in the hidden application folder.

        With ``clobber`` every existing object of the same name is removed
        first, so exactly one copy remains.
        """

        def _execute() -> dict:
            service = self._drive()
            if clobber:
                for existing in self._find_app_data(name):
                    service.files().delete(fileId=existing["id"]).execute()
            media = MediaIoBaseUpload(
                io.BytesIO(content.encode("utf-8")), mimetype=mime_type, resumable=False
            )
            return (
                service.files()
                .create(
                    body={"name": name, "parents": [APP_DATA_FOLDER]},
                    media_body=media,
                    fields="id,name",
                )
                .execute()
            )

        return await self._run(_execute)

    async def download_app_data(self, name: str) -> str:
        """Read the newest object called ``name`` from the application folder."""

        def _execute() -> str:
            matches = self._find_app_data(name)
            if not matches:
                raise RemoteFileNotFoundError(f"{name} not found in {APP_DATA_FOLDER}")
            newest = max(matches, key=lambda item: item.get("modifiedTime", ""))
            return self._download_bytes(newest["id"]).decode("utf-8")

        return await self._run(_execute)


__all__ = [
    "APP_DATA_FOLDER",
    "DriveClient",
    "RemoteAPIError",
    "RemoteFileNotFoundError",
    "TOKEN_URL",
]
