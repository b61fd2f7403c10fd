"""
Secret resolution — turn a secret source into raw key bytes.

A source is either a URI (``https://vault.internal/bag-secret``), fetched over
HTTP, or a local file path. Both are read in full and stripped of surrounding
whitespace. Nothing here caches; SecureDataBagItem memoizes the result.

Usage:
    from secure_data_bag.secret import load_secret, read_secret

    key = load_secret("/etc/chef/encrypted_data_bag_secret")
    key = read_secret(secret=None, secret_file="https://keys.local/bag")
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import httpx

from secure_data_bag.config import get_config
from secure_data_bag.errors import (
    InvalidSecret,
    SecretMissing,
    SecretNotFound,
    SecretUnavailable,
)

logger = logging.getLogger(__name__)

_URI_RE = re.compile(r"^\w+://")


def is_remote(source: str) -> bool:
    return bool(_URI_RE.match(source))


def load_secret(source: str | Path | None = None, *, timeout: float | None = None) -> bytes:
    """Load a secret from a file path or URI.

    Args:
        source: Path or URI. Falls back to the configured default secret file.
        timeout: Seconds for a remote fetch. Defaults to the configured timeout.

    Returns:
        The stripped secret bytes (never empty).

    Raises:
        SecretMissing: no source given and none configured.
        SecretNotFound: the file does not exist or the server answered non-2xx.
        SecretUnavailable: the remote source could not be reached.
        InvalidSecret: the source was empty after stripping whitespace.
    """
    cfg = get_config()
    if source is None:
        source = cfg.secret_file
    if not source:
        raise SecretMissing("No secret specified and no secret found.")
    source = str(source)

    if is_remote(source):
        key = _fetch_remote(source, cfg.secret_timeout if timeout is None else timeout)
    else:
        key = _read_file(source)

    if len(key) < 1:
        raise InvalidSecret(f"Invalid zero length secret in '{source}'", source=source)
    return key


def _fetch_remote(source: str, timeout: float) -> bytes:
    logger.debug("Fetching remote secret from %s", source)
    try:
        resp = httpx.get(source, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SecretNotFound(
            f"Remote secret not found at '{source}' (HTTP {exc.response.status_code})",
            source=source,
        ) from exc
    except (httpx.RequestError, httpx.InvalidURL) as exc:
        raise SecretUnavailable(
            f"Remote secret not available from '{source}'", source=source
        ) from exc
    return resp.content.strip()


def _read_file(source: str) -> bytes:
    path = Path(source)
    if not path.exists():
        raise SecretNotFound(f"Secret file not found '{source}'", source=source)
    logger.debug("Reading secret from %s", path)
    try:
        return path.read_bytes().strip()
    except OSError as exc:
        raise SecretUnavailable(f"Secret file unreadable '{source}'", source=source) from exc


def read_secret(
    secret: str | bytes | None = None,
    secret_file: str | Path | None = None,
    *,
    timeout: float | None = None,
) -> bytes:
    """Resolve the key for an item. A literal secret wins over a secret file."""
    if secret is not None:
        key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        if not key:
            raise InvalidSecret("Invalid zero length secret", source="<inline>")
        return key
    return load_secret(secret_file, timeout=timeout)
