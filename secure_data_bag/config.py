"""
Centralized configuration for secure_data_bag.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from secure_data_bag.config import get_config
    cfg = get_config()
    print(cfg.cipher)          # "aes-256-cbc"
    print(cfg.secret_file)     # "/etc/chef/encrypted_data_bag_secret" or $SECURE_BAG_SECRET_FILE
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SECRET_FILE = Path("/etc/chef/encrypted_data_bag_secret")
DEFAULT_CIPHER = "aes-256-cbc"
DEFAULT_SECRET_TIMEOUT = 10.0


@dataclass(frozen=True)
class Config:
    """Top-level secure_data_bag configuration."""

    # Where the secret comes from when the caller names none (path or URI)
    secret_file: str | None = None

    # Seconds before a remote secret fetch gives up
    secret_timeout: float = DEFAULT_SECRET_TIMEOUT

    # Cipher used for newly encrypted values
    cipher: str = DEFAULT_CIPHER

    # Extra field names protected on every item, on top of "password"
    encoded_fields: tuple[str, ...] = ()


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _default_secret_file() -> str | None:
    explicit = os.environ.get("SECURE_BAG_SECRET_FILE")
    if explicit:
        return explicit
    if DEFAULT_SECRET_FILE.exists():
        return str(DEFAULT_SECRET_FILE)
    return None


def _split_fields(raw: str) -> tuple[str, ...]:
    return tuple(f.strip() for f in raw.split(",") if f.strip())


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    return Config(
        secret_file=_default_secret_file(),
        secret_timeout=float(
            os.environ.get("SECURE_BAG_SECRET_TIMEOUT", str(DEFAULT_SECRET_TIMEOUT))
        ),
        cipher=os.environ.get("SECURE_BAG_CIPHER", DEFAULT_CIPHER),
        encoded_fields=_split_fields(os.environ.get("SECURE_BAG_ENCODED_FIELDS", "")),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
