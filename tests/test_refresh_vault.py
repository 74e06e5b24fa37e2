try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from _fakes import FakeDrive

from bugle.core.config import RefreshTokenStashSettings
from bugle.schemas import TokenBundle
from bugle.services.refresh_vault import RefreshTokenVault, VaultReadError, VaultWriteError
from bugle.services.token_cipher import TokenCodec, unseal


def _vault(key: str = "vault-key") -> RefreshTokenVault:
    return RefreshTokenVault(TokenCodec(key=key), "refresh.txt")


def _drive() -> FakeDrive:
    return FakeDrive(TokenBundle(access_token="a1"))


@pytest.mark.asyncio
async def test_persist_seals_and_overwrites() -> None:
    drive = _drive()
    vault = _vault()

    await vault.persist(drive, "r1")
    await vault.persist(drive, "r2")

    name, content, clobber = drive.uploads[-1]
    assert name == "refresh.txt"
    assert clobber is True
    assert content != "r2"
    assert unseal(content, "vault-key") == "r2"


@pytest.mark.asyncio
async def test_recover_roundtrip() -> None:
    drive = _drive()
    vault = _vault()
    await vault.persist(drive, "r1")

    assert await vault.recover(drive) == "r1"


@pytest.mark.asyncio
async def test_recover_missing_object() -> None:
    with pytest.raises(VaultReadError):
        await _vault().recover(_drive())


@pytest.mark.asyncio
async def test_recover_with_wrong_key() -> None:
    drive = _drive()
    await _vault("first").persist(drive, "r1")

    with pytest.raises(VaultReadError):
        await _vault("second").recover(drive)


@pytest.mark.asyncio
async def test_persist_failure_raises_write_error() -> None:
    drive = _drive()
    drive.fail_uploads = True

    with pytest.raises(VaultWriteError):
        await _vault().persist(drive, "r1")


@pytest.mark.asyncio
async def test_disabled_vault_is_a_no_op() -> None:
    drive = _drive()
    vault = RefreshTokenVault.disabled()

    assert vault.configured is False
    await vault.persist(drive, "r1")
    assert drive.uploads == []
    assert await vault.recover(drive) is None


def test_from_settings() -> None:
    off = RefreshTokenVault.from_settings(RefreshTokenStashSettings())
    on = RefreshTokenVault.from_settings(
        RefreshTokenStashSettings(location="appDataFolder", file="r.txt", key="k")
    )

    assert off.configured is False
    assert on.configured is True
