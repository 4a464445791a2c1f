"""Vault — Password-wrapped data-encryption key bound to an account.

Security Note (Threat Model):
    The unwrapped vault key lives in process memory while the vault is
    unlocked, and in session storage until the vault is locked or the
    session ends. Anyone able to read either can use the key. The trust
    boundary is the local device and its storage.
"""

from .config import VaultConfig
from .controller import VaultController, VaultStatus
from .crypto import VaultKey, derive_key, generate_key, encrypt, decrypt, export_key, import_key
from .envelope import SealedPayload, seal, open_sealed
from .exceptions import (
    VaultError,
    NotFound,
    AlreadyExists,
    AuthenticationFailed,
    InvalidFormat,
    VersionMismatch,
    AccountMismatch,
    DerivationTimeout,
    VaultLocked,
)
from .record_store import VaultRecordStore
from .records import VaultRecord, VaultBackup, parse_record, parse_backup
from .storage import KeyValueStorage, MemoryStorage, FileStorage, RedisStorage

__all__ = [
    "VaultConfig",
    "VaultController",
    "VaultStatus",
    "VaultKey",
    "derive_key",
    "generate_key",
    "encrypt",
    "decrypt",
    "export_key",
    "import_key",
    "SealedPayload",
    "seal",
    "open_sealed",
    "VaultError",
    "NotFound",
    "AlreadyExists",
    "AuthenticationFailed",
    "InvalidFormat",
    "VersionMismatch",
    "AccountMismatch",
    "DerivationTimeout",
    "VaultLocked",
    "VaultRecordStore",
    "VaultRecord",
    "VaultBackup",
    "parse_record",
    "parse_backup",
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
]
