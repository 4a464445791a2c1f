"""
VaultController — Lifecycle state machine over a per-account vault.

Provides the API the application talks to:
- ``sync(account)`` — reconcile in-memory status with storage
- ``create_vault`` / ``unlock`` / ``change_password`` — password operations
- ``lock`` / ``clear`` — drop the live key, or the whole vault
- ``export_backup`` / ``import_backup`` — move a vault between devices
- ``seal`` / ``open`` — protect application payloads with the live key

Status per account is one of ``missing``, ``locked`` or ``unlocked``; the
vault key is held in memory only while ``unlocked``.

Concurrency:
    ``sync`` is single-flight: a call arriving while a sync for the same
    account is running awaits that run instead of starting another. The
    password operations are expected to be issued one at a time by the
    caller (one password prompt open at a time); concurrent ``unlock``
    calls for the same account are not serialized here. ``clear`` lets an
    in-flight sync finish before deleting, then syncs afresh.

Security Note:
    Never log passwords or key material. Only log account identifiers,
    status transitions and iteration counts.
"""
import asyncio
import logging
from enum import Enum
from typing import Optional

from .config import VaultConfig
from .crypto import (
    SALT_SIZE,
    VaultKey,
    decrypt,
    derive_key,
    encrypt,
    export_key,
    generate_key,
    import_key,
    random_bytes,
)
from .envelope import SealedPayload, open_sealed, seal
from .exceptions import (
    AlreadyExists,
    AuthenticationFailed,
    DerivationTimeout,
    NotFound,
    VaultLocked,
)
from .record_store import VaultRecordStore
from .records import VaultBackup, VaultRecord, now_ms, parse_backup

logger = logging.getLogger("vaultlock.vault")


class VaultStatus(str, Enum):
    MISSING = "missing"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class VaultController:
    """Owns the vault status and live key for the current account.

    One controller is meant to exist per process; it follows whichever
    account the application passes to :meth:`sync`.
    """

    def __init__(
        self,
        store: VaultRecordStore,
        config: Optional[VaultConfig] = None,
    ):
        self._store = store
        self._config = config or store.config
        self._status = VaultStatus.LOCKED
        self._key: Optional[VaultKey] = None
        self._current_account: Optional[str] = None
        self._sync_task: Optional[asyncio.Task] = None
        self._sync_account: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"<VaultController account={self._current_account!r} "
            f"status={self._status.value}>"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> VaultStatus:
        return self._status

    @property
    def vault_key(self) -> Optional[VaultKey]:
        return self._key

    @property
    def current_account(self) -> Optional[str]:
        return self._current_account

    @property
    def config(self) -> VaultConfig:
        return self._config

    def require_key(self) -> VaultKey:
        """Return the live vault key.

        Raises:
            VaultLocked: If the vault is not unlocked.
        """
        if self._status is not VaultStatus.UNLOCKED or self._key is None:
            raise VaultLocked(
                f"Vault is {self._status.value} for account "
                f"{self._current_account!r}"
            )
        return self._key

    def _reset(self) -> None:
        self._status = VaultStatus.LOCKED
        self._key = None
        self._current_account = None

    async def _set_unlocked(self, account: str, key: VaultKey) -> None:
        self._current_account = account
        self._key = key
        self._status = VaultStatus.UNLOCKED
        await self._store.cache_key(account, key)

    @staticmethod
    def _check_account(account: str) -> None:
        if not account:
            raise ValueError("account must be a non-empty string")

    # ------------------------------------------------------------------
    # Key wrapping helpers
    # ------------------------------------------------------------------

    async def _derive(self, password: str, salt: bytes, iterations: int) -> VaultKey:
        """Run PBKDF2 off the event loop, honouring ``derive_timeout``."""
        work = asyncio.to_thread(derive_key, password, salt, iterations)
        if self._config.derive_timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, self._config.derive_timeout)
        except asyncio.TimeoutError:
            raise DerivationTimeout(
                f"Key derivation exceeded {self._config.derive_timeout}s "
                f"({iterations} iterations)"
            ) from None

    async def _wrap(self, key: VaultKey, password: str) -> VaultRecord:
        salt = random_bytes(SALT_SIZE)
        iterations = self._config.iterations
        wrapping_key = await self._derive(password, salt, iterations)
        cipher, iv = encrypt(export_key(key), wrapping_key)
        return VaultRecord.build(salt=salt, iv=iv, cipher=cipher, iterations=iterations)

    async def _unwrap(self, record: VaultRecord, password: str) -> VaultKey:
        wrapping_key = await self._derive(password, record.salt_bytes, record.iterations)
        raw = decrypt(record.cipher_bytes, wrapping_key, record.iv_bytes)
        try:
            return import_key(raw)
        except ValueError:
            raise AuthenticationFailed() from None

    async def _load_or_raise(self, account: str) -> VaultRecord:
        record = await self._store.load(account)
        if record is None:
            raise NotFound(account)
        return record

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(self, account: Optional[str]) -> VaultStatus:
        """Reconcile status with storage for ``account``.

        An empty ``account`` (e.g. after a wallet disconnect) resets the
        controller. A cached session key unlocks without a password;
        otherwise the status becomes ``locked`` or ``missing``.

        Returns:
            The status after the sync.
        """
        while self._sync_task is not None and not self._sync_task.done():
            task, pending = self._sync_task, self._sync_account
            if pending == account:
                await asyncio.shield(task)
                return self._status
            await asyncio.wait({task})

        task = asyncio.ensure_future(self._run_sync(account))
        self._sync_task = task
        self._sync_account = account
        task.add_done_callback(self._sync_done)
        await asyncio.shield(task)
        return self._status

    def _sync_done(self, task: asyncio.Task) -> None:
        if self._sync_task is task:
            self._sync_task = None
            self._sync_account = None

    async def _run_sync(self, account: Optional[str]) -> None:
        if not account:
            self._reset()
            return

        if (
            self._current_account == account
            and self._status is VaultStatus.UNLOCKED
            and self._key is not None
        ):
            return

        self._current_account = account
        cached = await self._store.read_cached_key(account)
        if cached is not None:
            self._key = cached
            self._status = VaultStatus.UNLOCKED
            logger.debug("Vault unlocked from session cache: account=%s", account)
            return

        self._key = None
        if await self._store.has(account):
            self._status = VaultStatus.LOCKED
        else:
            self._status = VaultStatus.MISSING
        logger.debug("Vault synced: account=%s status=%s", account, self._status.value)

    # ------------------------------------------------------------------
    # Password operations
    # ------------------------------------------------------------------

    async def create_vault(self, account: str, password: str) -> VaultKey:
        """Create a vault with a fresh data-encryption key.

        An existing vault is overwritten unless ``strict_create`` is set.

        Raises:
            AlreadyExists: If ``strict_create`` is set and a vault exists.
        """
        self._check_account(account)
        if await self._store.has(account):
            if self._config.strict_create:
                raise AlreadyExists(account)
            logger.warning("Overwriting existing vault: account=%s", account)

        key = generate_key()
        record = await self._wrap(key, password)
        await self._store.save(account, record)
        await self._set_unlocked(account, key)
        logger.info(
            "Vault created: account=%s iterations=%d", account, record.iterations,
        )
        return key

    async def unlock(self, account: str, password: str) -> VaultKey:
        """Unlock the vault with its password.

        Raises:
            NotFound: If no vault exists for ``account``.
            AuthenticationFailed: Wrong password or corrupted record.
        """
        self._check_account(account)
        record = await self._load_or_raise(account)
        try:
            key = await self._unwrap(record, password)
        except AuthenticationFailed:
            logger.info("Vault unlock failed: account=%s", account)
            raise
        await self._set_unlocked(account, key)
        logger.info("Vault unlocked: account=%s", account)
        return key

    async def change_password(
        self,
        account: str,
        old_password: str,
        new_password: str,
    ) -> VaultKey:
        """Rewrap the same vault key under a new password.

        The data-encryption key does not change; only its salt, nonce and
        wrapping ciphertext do.

        Raises:
            NotFound: If no vault exists for ``account``.
            AuthenticationFailed: If ``old_password`` is wrong.
        """
        self._check_account(account)
        record = await self._load_or_raise(account)
        key = await self._unwrap(record, old_password)
        new_record = await self._wrap(key, new_password)
        await self._store.save(account, new_record)
        await self._set_unlocked(account, key)
        logger.info("Vault password changed: account=%s", account)
        return key

    async def upgrade_iterations(self, account: str, password: str) -> bool:
        """Rewrap the vault key if its record uses fewer iterations than configured.

        Returns:
            True if the record was rewrapped, False if it was already at or
            above the configured work factor.
        """
        self._check_account(account)
        record = await self._load_or_raise(account)
        key = await self._unwrap(record, password)
        if record.iterations >= self._config.iterations:
            await self._set_unlocked(account, key)
            return False
        new_record = await self._wrap(key, password)
        await self._store.save(account, new_record)
        await self._set_unlocked(account, key)
        logger.info(
            "Vault work factor upgraded: account=%s iterations=%d->%d",
            account, record.iterations, new_record.iterations,
        )
        return True

    # ------------------------------------------------------------------
    # Lock / clear
    # ------------------------------------------------------------------

    async def lock(self, account: Optional[str] = None) -> None:
        """Drop the live key and the session cache entry.

        The durable record is untouched. Defaults to the current account.
        """
        target = account or self._current_account
        if target is None:
            self._key = None
            return
        await self._store.clear_cached_key(target)
        if target == self._current_account:
            self._key = None
            if self._status is VaultStatus.UNLOCKED:
                self._status = VaultStatus.LOCKED
        logger.info("Vault locked: account=%s", target)

    async def clear(self, account: str) -> VaultStatus:
        """Delete the vault and its cached key, then re-sync.

        Waits for any in-flight sync first, so the re-sync reads storage
        after the delete instead of joining a run that predates it.

        Irreversible; confirming with the user is the caller's job.
        """
        self._check_account(account)
        # a sync already past its cache read would restore the deleted key
        while self._sync_task is not None and not self._sync_task.done():
            await asyncio.wait({self._sync_task})
        await self._store.delete(account)
        if account == self._current_account:
            self._key = None
            self._status = VaultStatus.MISSING
        logger.info("Vault cleared: account=%s", account)
        return await self.sync(account)

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def export_backup(self, account: str) -> str:
        """Serialize the account's vault record as a portable backup.

        Raises:
            NotFound: If no vault exists for ``account``.
        """
        self._check_account(account)
        record = await self._load_or_raise(account)
        backup = VaultBackup(address=account, meta=record, exported_at=now_ms())
        logger.info("Vault exported: account=%s", account)
        return backup.to_json()

    async def import_backup(self, account: str, payload: str | bytes) -> None:
        """Replace the account's vault with a backup and lock it.

        The caller must unlock with the backup's original password.

        Raises:
            InvalidFormat: Unparsable payload.
            VersionMismatch: Unsupported backup or record version.
            AccountMismatch: Backup was exported for another account.
        """
        self._check_account(account)
        backup = parse_backup(payload, account)
        await self._store.save(account, backup.meta)
        await self._store.clear_cached_key(account)
        self._current_account = account
        self._key = None
        self._status = VaultStatus.LOCKED
        logger.info("Vault imported: account=%s", account)

    # ------------------------------------------------------------------
    # Payload sealing
    # ------------------------------------------------------------------

    def seal(self, data: bytes) -> SealedPayload:
        """Encrypt ``data`` under a fresh data key wrapped by the vault key."""
        return seal(data, self.require_key())

    def open(self, sealed: SealedPayload) -> bytes:
        """Decrypt a payload produced by :meth:`seal`."""
        return open_sealed(sealed, self.require_key())
