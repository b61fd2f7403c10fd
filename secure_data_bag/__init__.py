"""
secure_data_bag — field-level encryption for data bag items.

Public API:
    SecureDataBagItem(...)          → item that encrypts selected fields on save
    load_secret(source)             → secret bytes from a file path or URI
    read_secret(secret, file)       → literal secret, else load_secret(file)
    encode(record, key, fields)     → copy of record with fields encrypted
    decode(record, key)             → copy of record with encrypted values decrypted
"""

from __future__ import annotations

from secure_data_bag.crypto import decrypt_value, encrypt_value
from secure_data_bag.envelope import EncryptedValue, EncryptionEnvelope, is_encrypted
from secure_data_bag.errors import (
    CipherError,
    DecryptionFailed,
    EncryptionFailed,
    InvalidSecret,
    MalformedRecord,
    SecretError,
    SecretMissing,
    SecretNotFound,
    SecretUnavailable,
    SecureBagError,
)
from secure_data_bag.item import SecureDataBagItem
from secure_data_bag.secret import load_secret, read_secret
from secure_data_bag.walker import decode, encode

__version__ = "0.4.0"

__all__ = [
    "SecureDataBagItem",
    "EncryptionEnvelope",
    "EncryptedValue",
    "load_secret",
    "read_secret",
    "encode",
    "decode",
    "encrypt_value",
    "decrypt_value",
    "is_encrypted",
    "SecureBagError",
    "SecretError",
    "SecretMissing",
    "SecretNotFound",
    "SecretUnavailable",
    "InvalidSecret",
    "CipherError",
    "EncryptionFailed",
    "DecryptionFailed",
    "MalformedRecord",
]
