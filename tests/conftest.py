"""
Shared pytest fixtures for the vault test suite.

PBKDF2 runs at the configured minimum work factor so each derivation is
fast; the production default is exercised separately in test_crypto.py.
"""
import pytest

from vaultlock.vault import (
    MemoryStorage,
    VaultConfig,
    VaultController,
    VaultRecordStore,
)

ACCOUNT = "0x7a1f2c"
OTHER_ACCOUNT = "0x99be04"
PASSWORD = "correct horse battery staple"


@pytest.fixture
def config():
    """Low work-factor configuration for tests."""
    return VaultConfig(iterations=1000)


@pytest.fixture
def durable():
    """Durable medium (device/profile storage)."""
    return MemoryStorage()


@pytest.fixture
def session():
    """Session medium (cleared at session end)."""
    return MemoryStorage()


@pytest.fixture
def store(durable, session, config):
    return VaultRecordStore(durable, session, config=config)


@pytest.fixture
def controller(store, config):
    return VaultController(store, config=config)


@pytest.fixture
def reload(durable, session, config):
    """Build a fresh controller over the same storage, as a page reload does."""
    def _reload(session_storage=None):
        store = VaultRecordStore(
            durable,
            session if session_storage is None else session_storage,
            config=config,
        )
        return VaultController(store, config=config)
    return _reload
