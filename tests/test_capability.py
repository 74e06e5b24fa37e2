try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import httplib2
import pytest
from googleapiclient.errors import HttpError

from bugle.clients.google_drive import DriveClient, RemoteAPIError, RemoteFileNotFoundError
from bugle.core.config import GoogleCredentials
from bugle.schemas import TokenBundle
from bugle.services.capability import CapabilityFactory, build_capability

CREDENTIALS = GoogleCredentials(key="client", secret="secret", callback="/a/googledrive")


class _Call:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._result


class StubFiles:
    def __init__(self, existing: list[dict]) -> None:
        self.existing = existing
        self.deleted: list[str] = []
        self.created: list[dict] = []

    def list(self, **kwargs):
        return _Call({"files": list(self.existing)})

    def delete(self, fileId):
        self.deleted.append(fileId)
        return _Call({})

    def create(self, body, media_body, fields):
        self.created.append(body)
        return _Call({"id": "new-id", "name": body["name"]})


class StubService:
    def __init__(self, files: StubFiles | None = None, about_error: Exception | None = None) -> None:
        self._files = files or StubFiles([])
        self._about_error = about_error

    def files(self):
        return self._files

    def about(self):
        service = self

        class _About:
            def get(self, fields):
                return _Call({"user": {"displayName": "Ada"}}, service._about_error)

        return _About()


def test_build_returns_none_without_access_token() -> None:
    factory = CapabilityFactory(CREDENTIALS)

    assert factory.build(None) is None
    assert factory.build(TokenBundle(access_token="")) is None
    assert build_capability(None, CREDENTIALS) is None


def test_build_binds_tokens_and_credentials() -> None:
    expiry = datetime.now(timezone.utc) + timedelta(hours=1)
    bundle = TokenBundle(access_token="a1", refresh_token="r1", expiry=expiry)

    drive = CapabilityFactory(CREDENTIALS, salt="pepper").build(bundle)

    assert isinstance(drive, DriveClient)
    assert drive.credentials.token == "a1"
    assert drive.credentials.refresh_token == "r1"
    assert drive.credentials.client_id == "client"
    assert drive.credentials.client_secret == "secret"
    assert drive.credentials.expiry.tzinfo is None
    assert not drive.credentials.expired


def test_current_tokens_reflects_rotation() -> None:
    drive = build_capability(TokenBundle(access_token="a1", refresh_token="r1"), CREDENTIALS)

    drive.credentials.token = "a2"

    current = drive.current_tokens()
    assert current.access_token == "a2"
    assert current.refresh_token == "r1"


def test_hexid_depends_on_salt() -> None:
    bundle = TokenBundle(access_token="a1")
    first = build_capability(bundle, CREDENTIALS, salt="one")
    second = build_capability(bundle, CREDENTIALS, salt="two")

    assert first.hexid("file-1") == first.hexid("file-1")
    assert first.hexid("file-1") != second.hexid("file-1")


@pytest.mark.asyncio
async def test_api_errors_surface_as_remote_api_error() -> None:
    drive = build_capability(TokenBundle(access_token="a1"), CREDENTIALS)
    error = HttpError(httplib2.Response({"status": 401}), b"unauthorized")
    drive._service = StubService(about_error=error)

    with pytest.raises(RemoteAPIError):
        await drive.about_me()


@pytest.mark.asyncio
async def test_upload_app_data_clobbers_existing_objects() -> None:
    drive = build_capability(TokenBundle(access_token="a1"), CREDENTIALS)
    files = StubFiles([{"id": "old-1"}, {"id": "old-2"}])
    drive._service = StubService(files)

    created = await drive.upload_app_data("token.txt", "sealed")

    assert files.deleted == ["old-1", "old-2"]
    assert files.created == [{"name": "token.txt", "parents": ["appDataFolder"]}]
    assert created["id"] == "new-id"


@pytest.mark.asyncio
async def test_download_app_data_missing_object() -> None:
    drive = build_capability(TokenBundle(access_token="a1"), CREDENTIALS)
    drive._service = StubService(StubFiles([]))

    with pytest.raises(RemoteFileNotFoundError):
        await drive.download_app_data("token.txt")
