"""
Tests for the top-level package helpers.
"""
import pytest

import vaultlock
from vaultlock import create_controller
from vaultlock.vault import MemoryStorage, VaultConfig, VaultStatus


def test_version():
    assert vaultlock.__version__


@pytest.mark.asyncio
async def test_file_backed_controller(tmp_path):
    config = VaultConfig(iterations=1000)
    path = tmp_path / "vault.json"
    session = MemoryStorage()
    vault = create_controller(path, session=session, config=config)
    assert await vault.sync("0xabc") is VaultStatus.MISSING
    await vault.create_vault("0xabc", "pw")
    assert path.exists()

    # New session on the same device: record survives, key cache does not.
    again = create_controller(path, config=config)
    assert await again.sync("0xabc") is VaultStatus.LOCKED
    await again.unlock("0xabc", "pw")
    assert "unlocked" in repr(again)


@pytest.mark.asyncio
async def test_create_controller_accepts_str_path(tmp_path):
    session = MemoryStorage()
    vault = create_controller(
        str(tmp_path / "vault.json"), session=session, config=VaultConfig(iterations=1000),
    )
    await vault.create_vault("0xabc", "pw")
    assert len(session) == 1
    assert vault.config.iterations == 1000
