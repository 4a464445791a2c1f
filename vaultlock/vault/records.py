"""
Vault Records — Persisted vault record and portable backup formats.

Wire format (JSON, byte fields as base64 text, timestamps in epoch ms):

    VaultRecord: {"version": 1, "salt": "...", "iv": "...", "cipher": "...",
                  "iterations": 210000, "createdAt": 1700000000000}
    VaultBackup: {"version": 1, "address": "...", "meta": <VaultRecord>,
                  "exportedAt": 1700000000000}
"""
import base64
import binascii
import time
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .crypto import NONCE_SIZE, TAG_SIZE
from .exceptions import AccountMismatch, InvalidFormat, VersionMismatch

VAULT_VERSION = 1


def b64encode(data: bytes) -> str:
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> bytes:
    """Decode strict standard base64 text.

    Raises:
        ValueError: If ``value`` is not valid base64.
    """
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise ValueError(f"Invalid base64 value: {err}") from None


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class VaultRecord(BaseModel):
    """Password-wrapped data-encryption key for one account."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: int = VAULT_VERSION
    salt: str
    iv: str
    cipher: str
    iterations: int = Field(ge=1)
    created_at: int = Field(alias="createdAt")

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        if not b64decode(v):
            raise ValueError("salt must not be empty")
        return v

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: str) -> str:
        size = len(b64decode(v))
        if size != NONCE_SIZE:
            raise ValueError(f"iv must decode to {NONCE_SIZE} bytes, got {size}")
        return v

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        if len(b64decode(v)) < TAG_SIZE:
            raise ValueError("cipher is shorter than an authentication tag")
        return v

    @property
    def salt_bytes(self) -> bytes:
        return b64decode(self.salt)

    @property
    def iv_bytes(self) -> bytes:
        return b64decode(self.iv)

    @property
    def cipher_bytes(self) -> bytes:
        return b64decode(self.cipher)

    @classmethod
    def build(
        cls,
        salt: bytes,
        iv: bytes,
        cipher: bytes,
        iterations: int,
        created_at: Optional[int] = None,
    ) -> "VaultRecord":
        """Create a record from raw byte fields."""
        return cls(
            version=VAULT_VERSION,
            salt=b64encode(salt),
            iv=b64encode(iv),
            cipher=b64encode(cipher),
            iterations=iterations,
            created_at=created_at if created_at is not None else now_ms(),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return orjson.dumps(self.to_dict()).decode("utf-8")


class VaultBackup(BaseModel):
    """Portable export of one VaultRecord, bound to its account."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: int = VAULT_VERSION
    address: str = Field(min_length=1)
    meta: VaultRecord
    exported_at: int = Field(alias="exportedAt")

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump(by_alias=True)).decode("utf-8")


def _loads(raw: Any) -> Any:
    try:
        return orjson.loads(raw)
    except (orjson.JSONDecodeError, TypeError) as err:
        raise InvalidFormat(f"Unparsable vault data: {err}") from None


def _check_version(found: Any) -> None:
    if found != VAULT_VERSION or isinstance(found, bool):
        raise VersionMismatch(found, VAULT_VERSION)


def parse_record(raw: Any) -> VaultRecord:
    """Parse a stored vault record.

    Args:
        raw: JSON text (str or bytes) or an already decoded mapping.

    Raises:
        InvalidFormat: If the data is unparsable or structurally invalid.
        VersionMismatch: If the record has an unsupported version.
    """
    data = raw if isinstance(raw, dict) else _loads(raw)
    if not isinstance(data, dict):
        raise InvalidFormat("Vault record must be a JSON object")
    _check_version(data.get("version"))
    try:
        return VaultRecord.model_validate(data)
    except ValidationError as err:
        raise InvalidFormat(f"Malformed vault record: {err}") from None


def parse_backup(payload: Any, account: Optional[str] = None) -> VaultBackup:
    """Parse and validate a serialized VaultBackup.

    Args:
        payload: JSON text produced by :meth:`VaultBackup.to_json`.
        account: When given, the backup's address must equal it.

    Raises:
        InvalidFormat: Unparsable payload or wrong structure.
        VersionMismatch: Unsupported backup or record version.
        AccountMismatch: Backup address differs from ``account``.
    """
    data = _loads(payload)
    if not isinstance(data, dict):
        raise InvalidFormat("Vault backup must be a JSON object")
    _check_version(data.get("version"))
    meta = data.get("meta")
    address = data.get("address")
    if not isinstance(meta, dict) or not isinstance(address, str):
        raise InvalidFormat("Vault backup is missing 'meta' or 'address'")
    if account is not None and address != account:
        raise AccountMismatch(address, account)
    record = parse_record(meta)
    try:
        return VaultBackup(
            version=data["version"],
            address=address,
            meta=record,
            exported_at=data.get("exportedAt"),
        )
    except ValidationError as err:
        raise InvalidFormat(f"Malformed vault backup: {err}") from None
