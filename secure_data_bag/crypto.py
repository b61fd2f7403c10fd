"""
Value encryption for data bag items.

The cipher key is the SHA-256 digest of the secret. Each value is wrapped as
``{"json_wrapper": value}`` and serialized to JSON before encryption, so any
JSON value (not just strings) survives the round trip.

Formats:
    version 1: AES-256-CBC, PKCS7 padding, 16-byte IV (read only)
    version 2: version 1 plus HMAC-SHA256 over the base64 ciphertext
    version 3: AES-256-GCM, 12-byte IV, 16-byte auth tag
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from collections.abc import Mapping
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secure_data_bag.config import DEFAULT_CIPHER
from secure_data_bag.envelope import EncryptedValue
from secure_data_bag.errors import DecryptionFailed, EncryptionFailed

CBC_CIPHER = "aes-256-cbc"
GCM_CIPHER = "aes-256-gcm"

# cipher -> format version written for new values
WRITE_VERSIONS = {CBC_CIPHER: 2, GCM_CIPHER: 3}
READ_VERSIONS = {1: CBC_CIPHER, 2: CBC_CIPHER, 3: GCM_CIPHER}

WRAPPER_KEY = "json_wrapper"
CBC_IV_SIZE = 16
GCM_IV_SIZE = 12
GCM_TAG_SIZE = 16


def derive_key(secret: bytes) -> bytes:
    """32-byte AES key from an arbitrary-length secret."""
    return hashlib.sha256(secret).digest()


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionFailed(f"Encrypted value has invalid base64 {what}") from exc


def _hmac(secret: bytes, encrypted_data: str) -> bytes:
    return hmac.new(secret, encrypted_data.encode("utf-8"), hashlib.sha256).digest()


def encrypt_value(value: Any, secret: bytes, *, cipher: str = DEFAULT_CIPHER) -> dict[str, Any]:
    """Encrypt one value. Returns the marker dict stored in place of *value*."""
    if not secret:
        raise EncryptionFailed("Cannot encrypt with an empty secret")
    version = WRITE_VERSIONS.get(cipher)
    if version is None:
        raise EncryptionFailed(f"Unsupported cipher '{cipher}'")
    try:
        plaintext = json.dumps({WRAPPER_KEY: value}).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncryptionFailed(f"Value is not JSON serializable: {exc}") from exc

    key = derive_key(secret)
    if cipher == GCM_CIPHER:
        iv = secrets.token_bytes(GCM_IV_SIZE)
        sealed = AESGCM(key).encrypt(iv, plaintext, None)
        encrypted = EncryptedValue(
            encrypted_data=_b64(sealed[:-GCM_TAG_SIZE]),
            iv=_b64(iv),
            cipher=cipher,
            version=version,
            auth_tag=_b64(sealed[-GCM_TAG_SIZE:]),
        )
        return encrypted.to_dict()

    iv = secrets.token_bytes(CBC_IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    encrypted_data = _b64(encryptor.update(padded) + encryptor.finalize())
    encrypted = EncryptedValue(
        encrypted_data=encrypted_data,
        iv=_b64(iv),
        cipher=cipher,
        version=version,
        hmac=_b64(_hmac(secret, encrypted_data)),
    )
    return encrypted.to_dict()


def decrypt_value(data: Mapping[str, Any] | EncryptedValue, secret: bytes) -> Any:
    """Decrypt a marker dict back to the original value."""
    value = data if isinstance(data, EncryptedValue) else EncryptedValue.from_mapping(data)

    expected_cipher = READ_VERSIONS.get(value.version)
    if expected_cipher is None:
        raise DecryptionFailed(f"Unsupported encrypted value version {value.version}")
    if value.cipher != expected_cipher:
        raise DecryptionFailed(
            f"Cipher '{value.cipher}' does not match format version {value.version}"
        )

    key = derive_key(secret)
    if value.version == 3:
        plaintext = _decrypt_gcm(value, key)
    else:
        if value.version == 2:
            _verify_hmac(value, secret)
        plaintext = _decrypt_cbc(value, key)

    try:
        return json.loads(plaintext.decode("utf-8"))[WRAPPER_KEY]
    except (UnicodeDecodeError, ValueError, KeyError, TypeError) as exc:
        raise DecryptionFailed(
            "Error decrypting value (wrong secret or corrupted data)"
        ) from exc


def _verify_hmac(value: EncryptedValue, secret: bytes) -> None:
    if not value.hmac:
        raise DecryptionFailed("Version 2 encrypted value is missing its hmac")
    expected = _hmac(secret, value.encrypted_data)
    if not hmac.compare_digest(expected, _unb64(value.hmac, "hmac")):
        raise DecryptionFailed("Error decrypting value: hmac does not match (wrong secret?)")


def _decrypt_cbc(value: EncryptedValue, key: bytes) -> bytes:
    iv = _unb64(value.iv, "iv")
    ciphertext = _unb64(value.encrypted_data, "data")
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise DecryptionFailed(
            "Error decrypting value (wrong secret or corrupted data)"
        ) from exc


def _decrypt_gcm(value: EncryptedValue, key: bytes) -> bytes:
    if not value.auth_tag:
        raise DecryptionFailed("Version 3 encrypted value is missing its auth_tag")
    iv = _unb64(value.iv, "iv")
    sealed = _unb64(value.encrypted_data, "data") + _unb64(value.auth_tag, "auth_tag")
    try:
        return AESGCM(key).decrypt(iv, sealed, None)
    except (InvalidTag, ValueError) as exc:
        raise DecryptionFailed(
            "Error decrypting value (wrong secret or corrupted data)"
        ) from exc
