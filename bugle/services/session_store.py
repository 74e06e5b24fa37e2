"""
Per-client token slots on top of a signed cookie session.

The core only talks to the :class:`SessionStore` protocol; whichever session
backend the host wires in just needs to expose a mutable mapping.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, MutableMapping, Optional, Protocol

from pydantic import ValidationError

from bugle.schemas.auth import TokenBundle

logger = logging.getLogger(__name__)

GRANT_KEY = "grant"
BUGLE_KEY = "bugle"


class Slot(str, enum.Enum):
    FRESH = "fresh"
    CONFIRMED = "confirmed"


class SessionStore(Protocol):
    def get(self, slot: Slot) -> Optional[TokenBundle]: ...

    def set(self, slot: Slot, bundle: TokenBundle) -> None: ...

    def clear(self, slot: Slot) -> None: ...

    def reset(self) -> None: ...


class CookieSessionStore:
    """Map the two token slots onto session keys.

    ``fresh`` lives where the upstream grant component leaves the raw provider
    response (``session["grant"]["response"]``); ``confirmed`` is owned by this
    layer (``session["bugle"]``).
    """

    def __init__(
        self,
        session: MutableMapping[str, Any],
        *,
        grant_key: str = GRANT_KEY,
        bugle_key: str = BUGLE_KEY,
    ) -> None:
        self._session = session
        self._grant_key = grant_key
        self._bugle_key = bugle_key

    def _read(self, slot: Slot) -> Any:
        if slot is Slot.FRESH:
            grant = self._session.get(self._grant_key)
            if isinstance(grant, dict):
                return grant.get("response")
            return None
        return self._session.get(self._bugle_key)

    def get(self, slot: Slot) -> Optional[TokenBundle]:
        payload = self._read(slot)
        if not isinstance(payload, dict):
            return None
        try:
            return TokenBundle.model_validate(payload)
        except ValidationError:
            logger.debug("Ignoring unparseable %s slot content", slot.value)
            return None

    def set(self, slot: Slot, bundle: TokenBundle) -> None:
        payload = bundle.to_session()
        if slot is Slot.FRESH:
            self._session[self._grant_key] = {"response": payload}
        else:
            self._session[self._bugle_key] = payload

    def clear(self, slot: Slot) -> None:
        key = self._grant_key if slot is Slot.FRESH else self._bugle_key
        self._session.pop(key, None)

    def reset(self) -> None:
        self._session.clear()


__all__ = ["BUGLE_KEY", "CookieSessionStore", "GRANT_KEY", "SessionStore", "Slot"]
