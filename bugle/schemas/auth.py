"""Schemas related to OAuth tokens and flows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

_INTERNAL_FIELDS = ("raw", "_raw")


class TokenBundle(BaseModel):
    """Tokens issued by Google for one user, as carried between requests."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    raw: Optional[Any] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _derive_expiry(cls, data: Any) -> Any:
        """Translate a provider ``expires_in`` into an absolute expiry."""
        if not isinstance(data, dict):
            return data
        if data.get("expiry") is None and data.get("expires_in"):
            data = dict(data)
            data["expiry"] = datetime.now(timezone.utc) + timedelta(
                seconds=int(data["expires_in"])
            )
        return data

    def stripped(self) -> "TokenBundle":
        """Return a copy without provider-internal payloads."""
        return self.model_copy(update={"raw": None})

    def to_session(self) -> dict[str, Any]:
        """Serialize for a JSON cookie; internal fields are never included."""
        payload = self.model_dump(mode="json", exclude_none=True)
        for name in _INTERNAL_FIELDS:
            payload.pop(name, None)
        return payload


__all__ = ["TokenBundle"]
