"""Utility for verifying that the session layer's environment is intact.

The tool performs three checks:

1. It loads ``AppSettings`` from the provided ``.env`` file, surfacing missing
   Google credentials or inconsistent options before the app refuses to boot.
2. When refresh token vaulting is enabled, it seals and unseals a probe value
   with the configured key so a mistyped key is caught before users log in.
3. It can record and verify a checksum for the ``.env`` file so unexpected
   edits are detected.

Example usages::

    # Validate settings and record the expected checksum.
    python -m scripts.check_env record --env-file /opt/bugle/.env \
        --hash-file /opt/bugle/.env.sha256

    # Run later (e.g. from cron/systemd) to alert on drift.
    python -m scripts.check_env verify --env-file /opt/bugle/.env \
        --hash-file /opt/bugle/.env.sha256

    # Print a fresh key for DRIVE_REFRESH_TOKEN_STASH_KEY.
    python -m scripts.check_env generate-key
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from cryptography.fernet import Fernet

from bugle.core.config import AppSettings, ConfigError, _load_env_file, load_settings
from bugle.services.token_cipher import DecryptionError, EncryptionError, TokenCodec

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_STASH_ERROR = 4
EXIT_RUNTIME_ERROR = 5

_PROBE = "bugle-stash-probe"


def _compute_hash(env_file: Path) -> str:
    """Return the SHA256 checksum for the target environment file."""
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _validate_settings(env_file: Path) -> AppSettings:
    """Ensure settings can be loaded from the supplied env file."""
    _load_env_file(str(env_file))
    return load_settings()


def _check_stash(settings: AppSettings) -> None:
    """Round-trip a probe through the vault codec when vaulting is enabled."""
    stash = settings.drive.refresh_token_stash
    if not stash.enabled:
        return
    codec = TokenCodec(key=stash.key or "", ttl_seconds=stash.ttl_seconds)
    if codec.unseal(codec.seal(_PROBE)) != _PROBE:
        raise DecryptionError("stash key round trip returned a different value")


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    """Persist the current checksum to ``hash_file``."""
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Investigate recent changes before restarting services.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate session settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common_arguments(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    record_parser = subparsers.add_parser(
        "record",
        help="Validate settings and store the checksum baseline.",
    )
    add_common_arguments(record_parser)
    record_parser.add_argument(
        "--hash-file",
        required=True,
        type=Path,
        help="Location to write the checksum baseline.",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Validate settings and compare the checksum with the baseline.",
    )
    add_common_arguments(verify_parser)
    verify_parser.add_argument(
        "--hash-file",
        required=True,
        type=Path,
        help="Location of the previously recorded checksum baseline.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate settings without touching any checksum files.",
    )
    add_common_arguments(check_parser)

    subparsers.add_parser(
        "generate-key",
        help="Print a new Fernet key for DRIVE_REFRESH_TOKEN_STASH_KEY.",
    )

    return parser


def _ensure_env_file(env_file: Path) -> None:
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool."
        )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "generate-key":
        print(Fernet.generate_key().decode("utf-8"))
        return EXIT_OK

    env_file: Path = args.env_file

    try:
        _ensure_env_file(env_file)
        settings = _validate_settings(env_file)
        _check_stash(settings)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ConfigError as exc:
        print(f"Settings validation failed:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except (EncryptionError, DecryptionError) as exc:
        print(f"Refresh token stash key is unusable: {exc}", file=sys.stderr)
        return EXIT_STASH_ERROR

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
