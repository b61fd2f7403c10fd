"""
Root-level shared test fixtures.

Inherited by the package tests and the cross-module suites under tests/.
"""

from __future__ import annotations

import secrets

import pytest

from secure_data_bag.config import reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Remove SECURE_BAG_* env vars and the host default secret file from view."""
    for key in [
        "SECURE_BAG_SECRET_FILE",
        "SECURE_BAG_SECRET_TIMEOUT",
        "SECURE_BAG_CIPHER",
        "SECURE_BAG_ENCODED_FIELDS",
    ]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(
        "secure_data_bag.config.DEFAULT_SECRET_FILE", tmp_path / "no-default-secret"
    )
    reset_config()
    yield
    reset_config()


@pytest.fixture
def key():
    """A random secret."""
    return secrets.token_hex(32).encode()


@pytest.fixture
def secret_file(tmp_path, key):
    """A secret file holding ``key`` with a trailing newline."""
    path = tmp_path / "encrypted_data_bag_secret"
    path.write_bytes(key + b"\n")
    return path
