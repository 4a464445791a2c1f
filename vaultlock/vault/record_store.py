"""
VaultRecordStore — Per-account persistence of vault records and cached keys.

Provides:
- ``has`` / ``load`` / ``save`` / ``delete`` — the durable vault record
- ``cache_key`` / ``read_cached_key`` / ``clear_cached_key`` — the unwrapped
  vault key in session storage

Malformed durable records (unparsable JSON, unknown version, bad fields)
are reported as absent rather than raised. This keeps the vault usable
after a schema change at the cost of silently ignoring an unreadable
record; the discard is logged at warning level.

Security Note:
    The session cache holds raw key material. It is cleared every time the
    durable record is deleted or replaced so a stale key is never served
    after a password change or import.
"""
import logging
from typing import Optional

from .config import VaultConfig
from .crypto import VaultKey, export_key, import_key
from .exceptions import InvalidFormat, VersionMismatch
from .records import VaultRecord, b64decode, b64encode, parse_record
from .storage import KeyValueStorage, MemoryStorage

logger = logging.getLogger("vaultlock.vault")


class VaultRecordStore:
    """Durable vault records plus an ephemeral key cache, keyed by account."""

    def __init__(
        self,
        durable: KeyValueStorage,
        session: Optional[KeyValueStorage] = None,
        config: Optional[VaultConfig] = None,
    ):
        self._durable = durable
        self._session = session if session is not None else MemoryStorage()
        self.config = config or VaultConfig()

    # ------------------------------------------------------------------
    # Durable record
    # ------------------------------------------------------------------

    async def has(self, account: str) -> bool:
        """Return True if a readable record exists for ``account``."""
        return await self.load(account) is not None

    async def load(self, account: str) -> Optional[VaultRecord]:
        """Load the account's record, or None if absent or malformed."""
        raw = await self._durable.get(self.config.storage_key(account))
        if not raw:
            return None
        try:
            return parse_record(raw)
        except (InvalidFormat, VersionMismatch) as err:
            logger.warning(
                "Discarding unreadable vault record for account=%s: %s",
                account, type(err).__name__,
            )
            return None

    async def save(self, account: str, record: VaultRecord) -> None:
        """Persist ``record``, replacing any previous one.

        The cached key is dropped first; callers that still hold the key
        re-cache it after the write.
        """
        await self.clear_cached_key(account)
        await self._durable.set(self.config.storage_key(account), record.to_json())
        logger.debug("Vault record saved: account=%s", account)

    async def delete(self, account: str) -> None:
        """Remove the account's record and its cached key."""
        await self.clear_cached_key(account)
        await self._durable.remove(self.config.storage_key(account))
        logger.debug("Vault record deleted: account=%s", account)

    # ------------------------------------------------------------------
    # Session key cache
    # ------------------------------------------------------------------

    async def cache_key(self, account: str, key: VaultKey) -> None:
        """Store the unwrapped vault key for ``session_ttl`` seconds at most."""
        await self._session.set(
            self.config.session_key(account),
            b64encode(export_key(key)),
            ttl=self.config.session_ttl,
        )

    async def read_cached_key(self, account: str) -> Optional[VaultKey]:
        """Return the cached vault key, or None if absent or unreadable."""
        raw = await self._session.get(self.config.session_key(account))
        if not raw:
            return None
        try:
            return import_key(b64decode(raw))
        except ValueError:
            logger.warning("Ignoring unreadable cached key for account=%s", account)
            return None

    async def clear_cached_key(self, account: str) -> None:
        """Forget the cached vault key."""
        await self._session.remove(self.config.session_key(account))
