"""
Error kinds raised by secure_data_bag.

Every failure surfaces as one of these. Callers that only care about
"something went wrong with the item" can catch SecureBagError.
"""

from __future__ import annotations


class SecureBagError(Exception):
    pass


class SecretError(SecureBagError):
    """Base for secret resolution failures. ``source`` names where we looked."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class SecretMissing(SecretError):
    pass


class SecretNotFound(SecretError):
    pass


class SecretUnavailable(SecretError):
    pass


class InvalidSecret(SecretError):
    pass


class CipherError(SecureBagError):
    pass


class EncryptionFailed(CipherError):
    pass


class DecryptionFailed(CipherError):
    pass


class MalformedRecord(SecureBagError):
    pass
