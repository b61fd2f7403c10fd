"""Encryption envelope and encrypted value models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from secure_data_bag.config import DEFAULT_CIPHER
from secure_data_bag.errors import MalformedRecord

MARKER_KEY = "encrypted_data"
BASELINE_FIELDS: tuple[str, ...] = ("password",)


def dedupe(fields: Iterable[str]) -> list[str]:
    """Drop repeated names, keeping first-seen order."""
    return list(dict.fromkeys(fields))


class EncryptionEnvelope(BaseModel):
    """How an item's values were (or will be) encrypted.

    ``iv`` is only ever read from a legacy whole-item ``encryption`` block.
    Values encrypted field by field carry their own iv in their marker.
    """

    model_config = ConfigDict(frozen=True)

    cipher: str = DEFAULT_CIPHER
    iv: str | None = None
    encoded_fields: list[str] = []

    @field_validator("encoded_fields", mode="before")
    @classmethod
    def _dedupe_fields(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return dedupe(v)

    @classmethod
    def from_metadata(cls, data: Mapping[str, Any] | None) -> EncryptionEnvelope:
        """Build an envelope from a stored whole-item ``encryption`` block."""
        return cls().merge_metadata(data)

    def merge_metadata(self, data: Mapping[str, Any] | None) -> EncryptionEnvelope:
        """Return a copy updated with the keys a stored ``encryption`` block sets.

        Keys that are absent or None keep their current value.
        """
        if not data:
            return self
        if not isinstance(data, Mapping):
            raise MalformedRecord("Encryption metadata must be a mapping")
        values = {k: v for k, v in data.items() if v is not None}
        try:
            return self.model_validate({**self.model_dump(), **values})
        except ValidationError as exc:
            raise MalformedRecord(f"Invalid encryption metadata: {exc}") from exc

    def effective_fields(self, explicit_fields: Iterable[str] | None = None) -> list[str]:
        return dedupe([*(explicit_fields or ()), *self.encoded_fields, *BASELINE_FIELDS])

    def describe(self) -> dict[str, Any]:
        return {
            "cipher": self.cipher,
            "iv": self.iv,
            "encoded_fields": self.effective_fields(),
        }


class EncryptedValue(BaseModel):
    """The stored form of one encrypted value.

    ``version`` 1 and 2 are AES-256-CBC (2 adds ``hmac``), 3 is AES-256-GCM
    with ``auth_tag``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    encrypted_data: str
    iv: str
    cipher: str
    version: int = 1
    hmac: str | None = None
    auth_tag: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EncryptedValue:
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise MalformedRecord(f"Malformed encrypted value: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def is_encrypted(value: Any) -> bool:
    """True if *value* is a marker, regardless of which field holds it."""
    return isinstance(value, Mapping) and MARKER_KEY in value
