"""Open a file the user picked in the Drive UI with "Open with"."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from bugle.clients.google_auth import GoogleOAuthClient
from bugle.clients.google_drive import DriveClient
from bugle.services.capability import CapabilityFactory

logger = logging.getLogger(__name__)


class OpenRequestError(ValueError):
    """Raised when the Drive UI parameters are missing or malformed."""


@dataclass
class OpenedDriveFile:
    user: dict
    drive: DriveClient
    file: dict
    contents: Optional[str]


def _parse_state(params: Mapping[str, str]) -> dict[str, Any]:
    raw_state = params.get("state")
    if not raw_state:
        raise OpenRequestError("missing state parameter")
    try:
        state = json.loads(raw_state)
    except json.JSONDecodeError as exc:
        raise OpenRequestError("state parameter is not JSON") from exc
    ids = state.get("ids") if isinstance(state, dict) else None
    if not isinstance(ids, list) or not ids:
        raise OpenRequestError("state parameter lists no file ids")
    if not isinstance(ids[0], str) or not ids[0]:
        raise OpenRequestError("state parameter has a malformed file id")
    return state


class DriveFileOpener:
    """Exchange the Drive UI code, then load the selected file's metadata and text."""

    def __init__(
        self,
        *,
        oauth_client: GoogleOAuthClient,
        factory: CapabilityFactory,
        redirect_uri: str,
        fields: str = "*",
        max_size: int = 100 * 1024,
    ) -> None:
        self._oauth = oauth_client
        self._factory = factory
        self._redirect_uri = redirect_uri
        self._fields = fields
        self._max_size = max_size

    def _metadata_fields(self) -> str:
        if self._fields == "*" or "size" in self._fields.split(","):
            return self._fields
        return f"{self._fields},size"

    async def open(self, params: Mapping[str, str]) -> OpenedDriveFile:
        state = _parse_state(params)
        code = params.get("code")
        if not code:
            raise OpenRequestError("missing code parameter")

        bundle = await self._oauth.exchange_authorization_code(
            code, redirect_uri=self._redirect_uri
        )
        drive = self._factory.build(bundle)
        if drive is None:
            raise OpenRequestError("token exchange returned no access token")

        file_id = state["ids"][0]
        about = await drive.about_me()
        metadata = await drive.get_file_metadata(file_id, fields=self._metadata_fields())

        contents = None
        size = metadata.get("size")
        if size is not None and int(size) <= self._max_size:
            contents = await drive.download_text(file_id)
        else:
            logger.info("Skipping contents of %s (size %s)", file_id, size)

        return OpenedDriveFile(
            user=about.get("user", {}),
            drive=drive,
            file=metadata,
            contents=contents,
        )


__all__ = ["DriveFileOpener", "OpenRequestError", "OpenedDriveFile"]
