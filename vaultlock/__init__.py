"""VaultLock.

Client-side vault that keeps one password-wrapped data-encryption key per
account and hands it out only while unlocked.
"""
from pathlib import Path
from typing import Optional

from .version import __version__
from .vault import (
    VaultConfig,
    VaultController,
    VaultRecordStore,
    VaultStatus,
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
)


def create_controller(
    durable_path: Path | str,
    session: Optional[KeyValueStorage] = None,
    config: Optional[VaultConfig] = None,
) -> VaultController:
    """Build a controller over a file-backed durable store.

    Args:
        durable_path: Path of the JSON document holding vault records.
        session: Session storage; a fresh in-memory one when omitted.
        config: Vault configuration; read from the environment when omitted.
    """
    config = config or VaultConfig.from_env()
    store = VaultRecordStore(
        FileStorage(durable_path),
        session if session is not None else MemoryStorage(),
        config=config,
    )
    return VaultController(store, config=config)


__all__ = ["__version__", "create_controller"]
