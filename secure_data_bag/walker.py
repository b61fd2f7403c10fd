"""
Record walker — recursive encode/decode of nested data bag records.

Decode finds encrypted values by their structure (a mapping holding
``encrypted_data``), so it needs no field list and is a no-op on plaintext.
Encode protects every field whose name is in ``fields`` at whatever depth it
appears. Sequences are walked element by element in both directions.

Neither direction mutates its input; new containers are returned.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence
from typing import Any

from secure_data_bag.config import DEFAULT_CIPHER
from secure_data_bag.crypto import decrypt_value, encrypt_value
from secure_data_bag.envelope import is_encrypted
from secure_data_bag.errors import MalformedRecord

logger = logging.getLogger(__name__)

# Top-level fields that identify the item and are never encrypted
IDENTITY_FIELDS = frozenset({"id"})


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def decode(record: Any, key: bytes) -> Any:
    """Decrypt every encrypted value in *record*.

    A record that is itself one encrypted value (legacy whole-record mode) is
    decrypted directly and whatever it held is returned.
    """
    if is_encrypted(record):
        return decrypt_value(record, key)
    if not isinstance(record, Mapping):
        raise MalformedRecord(f"Expected a mapping to decode, got {type(record).__name__}")
    return _decode_mapping(record, key)


def _decode_mapping(record: Mapping[str, Any], key: bytes) -> dict[str, Any]:
    return {field: _decode_value(value, key) for field, value in record.items()}


def _decode_value(value: Any, key: bytes) -> Any:
    if is_encrypted(value):
        return decrypt_value(value, key)
    if isinstance(value, Mapping):
        return _decode_mapping(value, key)
    if _is_sequence(value):
        return [_decode_value(v, key) for v in value]
    return value


def encode(
    record: Any,
    key: bytes,
    fields: Collection[str],
    *,
    cipher: str = DEFAULT_CIPHER,
) -> dict[str, Any]:
    """Encrypt the values of every field named in *fields*, at any depth.

    The top-level ``id`` is left in plaintext even when *fields* names it,
    since the store looks items up by it. Nested ``id`` fields are encrypted
    like any other. Already-encrypted values are not detected: encoding twice
    wraps twice.
    """
    if not isinstance(record, Mapping):
        raise MalformedRecord(f"Expected a mapping to encode, got {type(record).__name__}")
    fields = frozenset(fields)
    logger.debug("Encoding fields %s with %s", sorted(fields), cipher)
    return {
        field: value if field in IDENTITY_FIELDS else _encode_field(field, value, key, fields, cipher)
        for field, value in record.items()
    }


def _encode_mapping(
    record: Mapping[str, Any], key: bytes, fields: frozenset[str], cipher: str
) -> dict[str, Any]:
    return {
        field: _encode_field(field, value, key, fields, cipher)
        for field, value in record.items()
    }


def _encode_field(field: str, value: Any, key: bytes, fields: frozenset[str], cipher: str) -> Any:
    if field in fields:
        return encrypt_value(value, key, cipher=cipher)
    return _encode_value(value, key, fields, cipher)


def _encode_value(value: Any, key: bytes, fields: frozenset[str], cipher: str) -> Any:
    if isinstance(value, Mapping):
        return _encode_mapping(value, key, fields, cipher)
    if _is_sequence(value):
        return [_encode_value(v, key, fields, cipher) for v in value]
    return value


def contains_encrypted(record: Any) -> bool:
    """True if any value anywhere in *record* is encrypted."""
    if is_encrypted(record):
        return True
    if isinstance(record, Mapping):
        return any(contains_encrypted(v) for v in record.values())
    if _is_sequence(record):
        return any(contains_encrypted(v) for v in record)
    return False
