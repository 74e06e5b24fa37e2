try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from bugle.core.config import (
    ConfigError,
    GoogleCredentials,
    OAuthSettings,
    RefreshTokenStashSettings,
    _load_env_file,
    load_settings,
)


def test_missing_google_credentials_fail_initialization(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)

    with pytest.raises(ConfigError):
        load_settings()


def test_empty_google_secret_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "")

    with pytest.raises(ConfigError):
        load_settings()


def test_open_url_requires_hostname(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BUGLE_OPEN_URL", "/a/open")
    monkeypatch.delenv("BUGLE_HOSTNAME", raising=False)

    with pytest.raises(ConfigError):
        load_settings()


def test_enabled_stash_requires_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRIVE_REFRESH_TOKEN_STASH_LOCATION", "appDataFolder")
    monkeypatch.delenv("DRIVE_REFRESH_TOKEN_STASH_KEY", raising=False)

    with pytest.raises(ConfigError):
        load_settings()


def test_stash_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRIVE_REFRESH_TOKEN_STASH_LOCATION", "appDataFolder")
    monkeypatch.setenv("DRIVE_REFRESH_TOKEN_STASH_KEY", "vault-key")

    stash = load_settings().drive.refresh_token_stash

    assert stash.enabled
    assert stash.key == "vault-key"
    assert RefreshTokenStashSettings().enabled


def test_scopes_accept_comma_separated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OAUTH_SCOPES", "openid, https://www.googleapis.com/auth/drive.appdata")

    assert OAuthSettings().scopes == ("openid", "https://www.googleapis.com/auth/drive.appdata")


def test_credentials_are_frozen() -> None:
    credentials = GoogleCredentials.from_settings(load_settings().google)

    assert credentials.key == "test-client-id"
    with pytest.raises(AttributeError):
        credentials.key = "other"  # type: ignore[misc]


def test_env_file_reaches_nested_settings(
    tmp_path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for name in ("GOOGLE_CALLBACK_PATH", "SESSION_COOKIE_NAME"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\n"
        "GOOGLE_CALLBACK_PATH=/from-dotenv\n"
        "SESSION_COOKIE_NAME='dotenv_session'\n"
        "GOOGLE_CLIENT_ID=ignored-because-already-set\n"
    )

    _load_env_file(str(env_file))
    settings = load_settings()

    assert settings.google.callback == "/from-dotenv"
    assert settings.session.cookie_name == "dotenv_session"
    assert settings.google.client_id == "test-client-id"
