"""
Reconcile session slots, the refresh token vault and the Drive capability.

``SessionConductor.conduct`` runs once when the upstream grant component hands
control back after the consent screen. ``attach_capability`` and
``reconcile_tokens`` are the lighter pre- and post-handler steps run around
every other request.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from bugle.clients.google_drive import DriveClient
from bugle.schemas.auth import TokenBundle
from bugle.services.capability import CapabilityFactory
from bugle.services.refresh_vault import RefreshTokenVault, VaultReadError, VaultWriteError
from bugle.services.session_store import SessionStore, Slot
from bugle.services.token_resolver import resolve_tokens

logger = logging.getLogger(__name__)


class ConductorState(str, enum.Enum):
    NO_TOKEN = "no_token"
    VAULT_RECOVER_PENDING = "vault_recover_pending"
    VAULT_PERSIST_PENDING = "vault_persist_pending"
    COMMITTED = "committed"
    RETRY = "retry"


@dataclass(frozen=True)
class ConductorOutcome:
    state: ConductorState
    redirect_to: str
    bundle: Optional[TokenBundle] = None


class SessionConductor:
    """Drive a login callback to either a committed session or a retry."""

    def __init__(
        self,
        *,
        factory: CapabilityFactory,
        vault: RefreshTokenVault,
        landing_path: str = "/a/me",
        retry_path: str = "/a/googledriveretry",
    ) -> None:
        self._factory = factory
        self._vault = vault
        self._landing_path = landing_path
        self._retry_path = retry_path

    def _retry(self) -> ConductorOutcome:
        return ConductorOutcome(ConductorState.RETRY, self._retry_path)

    async def conduct(self, store: SessionStore) -> ConductorOutcome:
        state = ConductorState.NO_TOKEN
        try:
            bundle = resolve_tokens(store)
            drive = self._factory.build(bundle)
            if bundle is None or drive is None:
                logger.info("No usable tokens in session; routing to retry")
                return self._retry()

            if self._vault.configured:
                if bundle.refresh_token:
                    state = ConductorState.VAULT_PERSIST_PENDING
                    try:
                        await self._vault.persist(drive, bundle.refresh_token)
                    except VaultWriteError as exc:
                        logger.warning("Refresh token vault write failed: %s", exc)
                else:
                    state = ConductorState.VAULT_RECOVER_PENDING
                    try:
                        recovered = await self._vault.recover(drive)
                    except VaultReadError as exc:
                        logger.warning("Refresh token vault read failed: %s", exc)
                    else:
                        bundle = bundle.model_copy(update={"refresh_token": recovered})

            self.commit(store, bundle)
        except Exception:
            logger.exception("Session commit failed in state %s", state.value)
            return self._retry()

        return ConductorOutcome(ConductorState.COMMITTED, self._landing_path, bundle)

    @staticmethod
    def commit(store: SessionStore, bundle: TokenBundle) -> None:
        """Make ``bundle`` the confirmed tokens and drop the consumed grant."""
        store.set(Slot.CONFIRMED, bundle.stripped())
        store.clear(Slot.FRESH)

    def attach_capability(self, store: SessionStore) -> Optional[DriveClient]:
        """Pre-handler step: a capability for the current tokens, if any."""
        return self._factory.build(resolve_tokens(store))

    @staticmethod
    def reconcile_tokens(store: SessionStore, drive: Optional[DriveClient]) -> bool:
        """Post-handler step: persist an access token rotated during the request.

        Returns whether the confirmed slot was rewritten. A failure here only
        means the next request refreshes the access token again.
        """
        if drive is None:
            return False
        try:
            current = drive.current_tokens()
            if not (current.access_token and current.refresh_token):
                return False
            confirmed = store.get(Slot.CONFIRMED)
            # No confirmed slot means logged out (or never committed) during this request.
            if confirmed is None or confirmed.access_token == current.access_token:
                return False
            store.set(Slot.CONFIRMED, current.stripped())
        except Exception as exc:
            logger.warning("Could not persist rotated tokens: %s", exc)
            return False
        logger.debug("Access token rotated; confirmed slot updated")
        return True


__all__ = ["ConductorOutcome", "ConductorState", "SessionConductor"]
