"""Pick the single best token bundle available in a client's session."""

from __future__ import annotations

from typing import Optional

from bugle.schemas.auth import TokenBundle
from bugle.services.session_store import SessionStore, Slot


def resolve_tokens(store: SessionStore) -> Optional[TokenBundle]:
    """
    Return the most useful bundle, or ``None`` when the client is logged out.

    Refresh-capable bundles win over access-only ones regardless of age, since
    only they let the capability recover after the access token expires.
    Between equals, the fresh grant response beats the confirmed slot.
    """
    fresh = store.get(Slot.FRESH)
    confirmed = store.get(Slot.CONFIRMED)

    ordered = (
        (fresh, True),
        (confirmed, True),
        (fresh, False),
        (confirmed, False),
    )
    for bundle, needs_refresh in ordered:
        if bundle is None:
            continue
        if needs_refresh and not bundle.refresh_token:
            continue
        if not needs_refresh and not bundle.access_token:
            continue
        return bundle.stripped()
    return None


__all__ = ["resolve_tokens"]
