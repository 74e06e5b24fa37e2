try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json

import httpx
import pytest
from _fakes import FakeDrive, html_token_endpoint, oauth_client_over, unreachable_token_endpoint

from bugle.main import app
from bugle.schemas import TokenBundle
from bugle.services.file_opener import DriveFileOpener, OpenRequestError


class OpenableDrive(FakeDrive):
    def __init__(self, bundle: TokenBundle, size: int) -> None:
        super().__init__(bundle)
        self.size = size
        self.requested_fields: list[str] = []

    async def get_file_metadata(self, file_id: str, *, fields: str = "*") -> dict:
        self.requested_fields.append(fields)
        return {"id": file_id, "name": "notes.txt", "size": str(self.size)}

    async def download_text(self, file_id: str) -> str:
        return "hello drive"


class OpenFactory:
    def __init__(self, size: int) -> None:
        self.size = size

    def build(self, bundle):
        return OpenableDrive(bundle, self.size)


class ExchangeClient:
    def __init__(self) -> None:
        self.redirects: list[str] = []

    async def exchange_authorization_code(self, code: str, *, redirect_uri: str) -> TokenBundle:
        self.redirects.append(redirect_uri)
        return TokenBundle(access_token="a-open")


def _opener(size: int = 10, fields: str = "*", max_size: int = 100) -> DriveFileOpener:
    return DriveFileOpener(
        oauth_client=ExchangeClient(),
        factory=OpenFactory(size),
        redirect_uri="https://drive.example.com/a/open",
        fields=fields,
        max_size=max_size,
    )


def _params(**state) -> dict:
    return {"code": "open-code", "state": json.dumps({"ids": ["file-9"], "action": "open", **state})}


@pytest.mark.asyncio
async def test_open_reads_small_files() -> None:
    opened = await _opener().open(_params())

    assert opened.user == {"displayName": "Ada", "photoLink": "https://img/ada"}
    assert opened.file["id"] == "file-9"
    assert opened.contents == "hello drive"


@pytest.mark.asyncio
async def test_open_skips_contents_of_large_files() -> None:
    opened = await _opener(size=1000, max_size=100).open(_params())

    assert opened.contents is None


@pytest.mark.asyncio
async def test_open_adds_size_to_restricted_fields() -> None:
    opened = await _opener(fields="id,name").open(_params())

    assert opened.drive.requested_fields == ["id,name,size"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"code": "c"},
        {"code": "c", "state": "{not json"},
        {"code": "c", "state": json.dumps({"ids": []})},
        {"code": "c", "state": json.dumps({"ids": "file-9"})},
        {"code": "c", "state": json.dumps({"ids": [""]})},
        {"state": json.dumps({"ids": ["f"]})},
    ],
)
async def test_open_rejects_bad_parameters(params) -> None:
    with pytest.raises(OpenRequestError):
        await _opener().open(params)


@pytest.mark.anyio
async def test_open_route_returns_json_text() -> None:
    from bugle import dependencies

    app.dependency_overrides[dependencies.get_drive_file_opener] = lambda: _opener()
    try:
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            response = await client.get("/a/open", params=_params())
            bad = await client.get("/a/open", params={"code": "c"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    user, file, contents = json.loads(response.text)
    assert user["displayName"] == "Ada"
    assert file["name"] == "notes.txt"
    assert contents == "hello drive"
    assert bad.status_code == 400


@pytest.mark.anyio
@pytest.mark.parametrize("handler", [unreachable_token_endpoint, html_token_endpoint])
async def test_open_route_reports_token_endpoint_failure(handler) -> None:
    from bugle import dependencies

    opener = DriveFileOpener(
        oauth_client=oauth_client_over(handler),
        factory=OpenFactory(10),
        redirect_uri="https://drive.example.com/a/open",
    )
    app.dependency_overrides[dependencies.get_drive_file_opener] = lambda: opener
    try:
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            response = await client.get("/a/open", params=_params())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
