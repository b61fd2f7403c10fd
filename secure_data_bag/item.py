"""
SecureDataBagItem — a data bag item with field-level encryption.

Held in memory the item is always plaintext. It is encrypted only on the way
out (``to_dict`` / ``to_json``), with every field named in ``encoded_fields``
(plus ``password``) replaced by an encrypted value.

Usage:
    from secure_data_bag import SecureDataBagItem

    # Reading a stored item (decoded immediately)
    item = SecureDataBagItem.from_dict(stored, data_bag="db", secret_file="/etc/secret")
    item.raw_data["password"]          # plaintext

    # Writing
    item = SecureDataBagItem(data_bag="db", secret="s3cr3t", encoded_fields=["token"])
    item.raw_data = {"id": "prod", "password": "x", "token": "y"}
    store.save(item.to_dict())
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from secure_data_bag import walker
from secure_data_bag.config import get_config
from secure_data_bag.envelope import EncryptionEnvelope
from secure_data_bag.errors import MalformedRecord
from secure_data_bag.secret import read_secret

logger = logging.getLogger(__name__)

CHEF_TYPE = "data_bag_item"
JSON_CLASS = "Chef::DataBagItem"
METADATA_KEY = "encryption"

VALID_ID_RE = re.compile(r"^[.\-\w]+$")


def validate_id(item_id: Any) -> str:
    """Check an item id (letters, digits, ``.``, ``-``, ``_``)."""
    if not isinstance(item_id, str) or not VALID_ID_RE.match(item_id):
        raise MalformedRecord(
            f"Data bag item id must be letters, digits, '.', '-' or '_', got {item_id!r}"
        )
    return item_id


class SecureDataBagItem:
    """A data bag item whose selected fields are stored encrypted."""

    def __init__(
        self,
        key: bytes | str | None = None,
        *,
        data_bag: str | None = None,
        secret: str | bytes | None = None,
        secret_file: str | None = None,
        encoded_fields: Iterable[str] | None = None,
        cipher: str | None = None,
        timeout: float | None = None,
    ):
        cfg = get_config()
        self.data_bag = data_bag
        self.secret = secret
        self.secret_file = secret_file if secret_file is not None else cfg.secret_file
        self.timeout = timeout
        self._key: bytes | None = None
        if key is not None:
            self.key = key
        self._envelope = EncryptionEnvelope(
            cipher=cipher or cfg.cipher,
            encoded_fields=[*(encoded_fields or ()), *cfg.encoded_fields],
        )
        self._raw_data: dict[str, Any] = {}

    # ── Key ──────────────────────────────────────────────────────────

    @property
    def key(self) -> bytes:
        """The secret, resolved on first use and cached for the item's lifetime."""
        if self._key is None:
            self._key = read_secret(self.secret, self.secret_file, timeout=self.timeout)
            logger.debug("Resolved secret for data bag item %s", self.object_name)
        return self._key

    @key.setter
    def key(self, value: bytes | str) -> None:
        self._key = value.encode("utf-8") if isinstance(value, str) else bytes(value)

    # ── Encryption settings ─────────────────────────────────────────

    @property
    def envelope(self) -> EncryptionEnvelope:
        return self._envelope

    @property
    def cipher(self) -> str:
        return self._envelope.cipher

    @cipher.setter
    def cipher(self, value: str) -> None:
        self._envelope = self._envelope.model_copy(update={"cipher": value})

    @property
    def iv(self) -> str | None:
        """The iv of a legacy whole-item ``encryption`` block, if one was loaded."""
        return self._envelope.iv

    @property
    def encoded_fields(self) -> list[str]:
        """The fields to encrypt, baseline ``password`` included."""
        return self._envelope.effective_fields()

    @encoded_fields.setter
    def encoded_fields(self, fields: Iterable[str]) -> None:
        # model_copy skips validation, so rebuild to keep the dedupe
        self._envelope = EncryptionEnvelope(
            cipher=self._envelope.cipher,
            iv=self._envelope.iv,
            encoded_fields=list(fields),
        )

    @property
    def encryption(self) -> dict[str, Any]:
        return self._envelope.describe()

    # ── Data ─────────────────────────────────────────────────────────

    @property
    def raw_data(self) -> dict[str, Any]:
        return self._raw_data

    @raw_data.setter
    def raw_data(self, data: Mapping[str, Any]) -> None:
        if not isinstance(data, Mapping):
            raise MalformedRecord(f"Data bag item must be a mapping, got {type(data).__name__}")
        data = copy.deepcopy(dict(data))
        metadata = data.pop(METADATA_KEY, None)
        if metadata is not None:
            self._envelope = self._envelope.merge_metadata(metadata)
        self._raw_data = data
        self.decode_data()

    def decode_data(self) -> dict[str, Any]:
        """Decrypt any encrypted values held in ``raw_data``."""
        if walker.contains_encrypted(self._raw_data):
            decoded = walker.decode(self._raw_data, self.key)
            if not isinstance(decoded, Mapping):
                raise MalformedRecord("Encrypted data bag item did not decrypt to a mapping")
            self._raw_data = dict(decoded)
        return self._raw_data

    def encode_data(self) -> dict[str, Any]:
        """Return an encrypted copy of ``raw_data``; ``raw_data`` itself is untouched."""
        return walker.encode(self._raw_data, self.key, self.encoded_fields, cipher=self.cipher)

    @property
    def id(self) -> str | None:
        return self._raw_data.get("id")

    @property
    def object_name(self) -> str:
        return f"data_bag_item_{self.data_bag}_{self.id}"

    # ── Transitions ──────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **options: Any) -> SecureDataBagItem:
        """Build an item from a stored dict, decrypting it on the way in.

        Accepts both the ``to_dict`` form and the ``to_json`` form (body under
        ``raw_data``). Bookkeeping fields are dropped; a stored ``data_bag`` is
        used unless one is passed in.
        """
        if not isinstance(data, Mapping):
            raise MalformedRecord(f"Data bag item must be a mapping, got {type(data).__name__}")
        if "json_class" in data and isinstance(data.get("raw_data"), Mapping):
            bag = data.get("data_bag")
            body = dict(data["raw_data"])
        else:
            body = dict(data)
            bag = body.pop("data_bag", None)
            body.pop("chef_type", None)
            body.pop("json_class", None)
        if bag is not None:
            options.setdefault("data_bag", bag)
        item = cls(**options)
        item.raw_data = body
        return item

    @classmethod
    def from_item(cls, other: Any, **options: Any) -> SecureDataBagItem:
        """Build an item from another item, keeping its data bag name.

        A SecureDataBagItem source hands over its plaintext, encryption settings
        and either its resolved key or its secret sources; anything else must
        offer ``to_dict()``.
        """
        options.setdefault("data_bag", getattr(other, "data_bag", None))
        if isinstance(other, SecureDataBagItem):
            if not {"key", "secret", "secret_file"} & options.keys():
                if other._key is not None:
                    options["key"] = other._key
                else:
                    options["secret"] = other.secret
                    options["secret_file"] = other.secret_file
                    options.setdefault("timeout", other.timeout)
            options.setdefault("cipher", other.cipher)
            options.setdefault("encoded_fields", other.encoded_fields)
            item = cls(**options)
            item.raw_data = other.raw_data
            return item
        return cls.from_dict(other.to_dict(), **options)

    def to_dict(self, metadata: bool = False) -> dict[str, Any]:
        """Storable form: encrypted body plus bookkeeping fields."""
        result = self.encode_data()
        result["chef_type"] = CHEF_TYPE
        result["data_bag"] = self.data_bag
        if metadata:
            result[METADATA_KEY] = self.encryption
        return result

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(
            {
                "name": self.object_name,
                "json_class": JSON_CLASS,
                "chef_type": CHEF_TYPE,
                "data_bag": self.data_bag,
                "raw_data": self.encode_data(),
            },
            **kwargs,
        )

    def validate(self) -> None:
        """Raise MalformedRecord unless the item has a valid id."""
        validate_id(self.id)

    def __repr__(self) -> str:
        return f"<SecureDataBagItem {self.data_bag}/{self.id}>"
