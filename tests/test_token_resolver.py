try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from bugle.services.session_store import CookieSessionStore
from bugle.services.token_resolver import resolve_tokens


def _store(fresh=None, confirmed=None) -> CookieSessionStore:
    session: dict = {}
    if fresh is not None:
        session["grant"] = {"response": fresh}
    if confirmed is not None:
        session["bugle"] = confirmed
    return CookieSessionStore(session)


@pytest.mark.parametrize(
    ("fresh", "confirmed", "expected"),
    [
        ({"access_token": "a1", "refresh_token": "r1"}, {"access_token": "a0", "refresh_token": "r0"}, ("a1", "r1")),
        ({"access_token": "a1"}, {"access_token": "a0", "refresh_token": "r0"}, ("a0", "r0")),
        ({"access_token": "a1"}, {"access_token": "a0"}, ("a1", None)),
        (None, {"access_token": "a0"}, ("a0", None)),
        ({"access_token": "a1", "refresh_token": ""}, None, ("a1", "")),
        (None, None, None),
    ],
)
def test_priority(fresh, confirmed, expected) -> None:
    bundle = resolve_tokens(_store(fresh, confirmed))

    if expected is None:
        assert bundle is None
    else:
        assert (bundle.access_token, bundle.refresh_token) == expected


def test_resolved_bundle_is_stripped() -> None:
    bundle = resolve_tokens(
        _store({"access_token": "a1", "refresh_token": "r1", "raw": {"id_token": "x"}, "_raw": "y"})
    )

    assert bundle.raw is None
    assert "raw" not in bundle.to_session()


def test_mutating_result_leaves_session_alone() -> None:
    store = _store(confirmed={"access_token": "a0", "refresh_token": "r0"})

    bundle = resolve_tokens(store)
    bundle.access_token = "changed"

    assert resolve_tokens(store).access_token == "a0"
