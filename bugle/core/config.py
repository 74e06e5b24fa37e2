"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the request hooks and the
maintenance scripts share a single, read-only configuration surface. Settings
are loaded once per process and never mutated afterwards.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
HTML_ROOT = PACKAGE_ROOT / "html"


class ConfigError(Exception):
    """Raised when provider credentials or options are missing or malformed."""


def _load_env_file(path: str = ".env") -> None:
    """Export key=value pairs from a .env file into ``os.environ``.

    The nested settings objects are built through ``default_factory`` and only
    read the process environment; ``env_file`` on ``AppSettings`` does not
    reach them.
    """
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GoogleSettings(BaseSettings):
    """OAuth client credentials issued by the Google developer console."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., min_length=1, validation_alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(
        ..., min_length=1, validation_alias="GOOGLE_CLIENT_SECRET"
    )
    callback: str = Field(
        "/a/googledrive",
        validation_alias="GOOGLE_CALLBACK_PATH",
        description="Path the upstream grant component redirects to with fresh tokens.",
    )


@dataclass(frozen=True)
class GoogleCredentials:
    """Process-wide OAuth client credentials, read once at startup."""

    key: str
    secret: str
    callback: str

    @classmethod
    def from_settings(cls, settings: GoogleSettings) -> "GoogleCredentials":
        return cls(
            key=settings.client_id,
            secret=settings.client_secret,
            callback=settings.callback,
        )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "https://www.googleapis.com/auth/drive.file",
            "https://www.googleapis.com/auth/drive.appdata",
            "https://www.googleapis.com/auth/userinfo.profile",
        ),
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class RefreshTokenStashSettings(BaseSettings):
    """Where and how refresh tokens are vaulted in the user's Drive."""

    model_config = SettingsConfigDict(populate_by_name=True)

    location: Optional[Literal["appDataFolder"]] = Field(
        None,
        validation_alias="DRIVE_REFRESH_TOKEN_STASH_LOCATION",
        description="Set to 'appDataFolder' to enable refresh token vaulting.",
    )
    file: str = Field(
        "bugle-refresh-token.txt", validation_alias="DRIVE_REFRESH_TOKEN_STASH_FILE"
    )
    key: Optional[str] = Field(
        None,
        validation_alias="DRIVE_REFRESH_TOKEN_STASH_KEY",
        description="Fernet key or passphrase used to seal the vaulted token.",
    )
    ttl_seconds: Optional[int] = Field(
        None,
        validation_alias="DRIVE_REFRESH_TOKEN_STASH_TTL",
        description="Reject sealed tokens older than this many seconds.",
    )

    @model_validator(mode="after")
    def _require_key_when_enabled(self) -> "RefreshTokenStashSettings":
        if self.location and (not self.key or not self.file):
            raise ValueError(
                "refresh token stash requires both a file name and a key"
            )
        return self

    @property
    def enabled(self) -> bool:
        return self.location == "appDataFolder"


class DriveSettings(BaseSettings):
    """Drive-specific behaviour."""

    refresh_token_stash: RefreshTokenStashSettings = Field(
        default_factory=RefreshTokenStashSettings
    )


class SessionSettings(BaseSettings):
    """Signed cookie session configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    secret_key: str = Field(..., min_length=1, validation_alias="SESSION_SECRET_KEY")
    cookie_name: str = Field("bugle_session", validation_alias="SESSION_COOKIE_NAME")
    max_age: int = Field(14 * 24 * 60 * 60, validation_alias="SESSION_MAX_AGE")
    https_only: bool = Field(False, validation_alias="SESSION_HTTPS_ONLY")


class PathSettings(BaseSettings):
    """Routes served by the session layer."""

    model_config = SettingsConfigDict(populate_by_name=True)

    login: str = Field("/a/login", validation_alias="BUGLE_LOGIN_PATH")
    logout: str = Field("/a/logout", validation_alias="BUGLE_LOGOUT_PATH")
    retry: str = Field("/a/googledriveretry", validation_alias="BUGLE_RETRY_PATH")
    reset: str = Field("/a/googledrivereset", validation_alias="BUGLE_RESET_PATH")
    me: str = Field("/a/me", validation_alias="BUGLE_ME_PATH")
    connect: str = Field("/connect/google", validation_alias="BUGLE_CONNECT_PATH")
    connect_callback: str = Field(
        "/connect/google/callback", validation_alias="BUGLE_CONNECT_CALLBACK_PATH"
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    hostname: Optional[str] = Field(None, validation_alias="BUGLE_HOSTNAME")
    open_url: Optional[str] = Field(
        None,
        validation_alias="BUGLE_OPEN_URL",
        description="Path registered with the Drive UI 'Open with' integration.",
    )
    login_html_file: Path = Field(
        HTML_ROOT / "loginWithGoogleDrive.html",
        validation_alias="BUGLE_LOGIN_HTML_FILE",
    )
    retry_html_file: Path = Field(
        HTML_ROOT / "retryWithGoogleDrive.html",
        validation_alias="BUGLE_RETRY_HTML_FILE",
    )
    open_fields: str = Field("*", validation_alias="BUGLE_OPEN_FIELDS")
    open_max_size: int = Field(100 * 1024, validation_alias="BUGLE_OPEN_MAX_SIZE")
    hexid_salt: str = Field("", validation_alias="BUGLE_HEXID_SALT")
    my_redirect: str = Field("/a/me", validation_alias="BUGLE_MY_REDIRECT")
    use_me_level: int = Field(0, validation_alias="BUGLE_USE_ME_LEVEL")
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    drive: DriveSettings = Field(default_factory=DriveSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    @model_validator(mode="after")
    def _require_hostname_for_open_url(self) -> "AppSettings":
        if self.open_url and not self.hostname:
            raise ValueError("open_url requires hostname to build the redirect URI")
        return self


def load_settings(**overrides) -> AppSettings:
    """Build settings, converting validation failures into ``ConfigError``."""
    try:
        return AppSettings(**overrides)  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigError(f"bugle: invalid configuration: {exc}") from exc


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return load_settings()


__all__ = [
    "AppSettings",
    "ConfigError",
    "DriveSettings",
    "GoogleCredentials",
    "GoogleSettings",
    "OAuthSettings",
    "PathSettings",
    "RefreshTokenStashSettings",
    "SessionSettings",
    "get_settings",
    "load_settings",
]
