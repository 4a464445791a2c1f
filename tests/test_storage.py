"""
Tests for vault storage backends.
"""
import asyncio
import os
import stat

import orjson
import pytest

from vaultlock.vault.storage import (
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
    RedisStorage,
)
from vaultlock.vault import VaultConfig, VaultController, VaultRecordStore

from .conftest import ACCOUNT, PASSWORD


class FakeRedis:
    """Minimal async stand-in for a redis client."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value.encode("utf-8")
        self.ttls[key] = ttl

    async def delete(self, key):
        self.data.pop(key, None)


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self):
        storage = MemoryStorage()
        assert await storage.get("a") is None
        await storage.set("a", "1")
        assert await storage.get("a") == "1"
        await storage.remove("a")
        assert await storage.get("a") is None

    @pytest.mark.asyncio
    async def test_remove_missing_is_noop(self):
        await MemoryStorage().remove("missing")

    def test_clear(self):
        storage = MemoryStorage({"a": "1"})
        storage.clear()
        assert len(storage) == 0

    def test_protocol(self):
        assert isinstance(MemoryStorage(), KeyValueStorage)
        assert isinstance(RedisStorage(FakeRedis()), KeyValueStorage)


class TestFileStorage:
    """Tests for FileStorage."""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "vault.json"
        await FileStorage(path).set("k", "v")
        assert await FileStorage(path).get("k") == "v"

    @pytest.mark.asyncio
    async def test_file_mode(self, tmp_path):
        path = tmp_path / "nested" / "vault.json"
        await FileStorage(path).set("k", "v")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        storage = FileStorage(tmp_path / "vault.json")
        await storage.set("k", "v")
        await storage.set("other", "w")
        await storage.remove("k")
        assert await storage.get("k") is None
        assert await storage.get("other") == "w"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await FileStorage(tmp_path / "none.json").get("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "vault.json"
        path.write_text("{broken")
        storage = FileStorage(path)
        assert await storage.get("k") is None
        await storage.set("k", "v")
        assert orjson.loads(path.read_bytes()) == {"k": "v"}


class TestRedisStorage:
    """Tests for RedisStorage."""

    @pytest.mark.asyncio
    async def test_round_trip_with_ttl(self):
        redis = FakeRedis()
        storage = RedisStorage(redis, ttl=120)
        await storage.set("k", "v")
        assert redis.ttls["k"] == 120
        assert await storage.get("k") == "v"
        await storage.remove("k")
        assert await storage.get("k") is None

    @pytest.mark.asyncio
    async def test_set_ttl_overrides_default(self):
        redis = FakeRedis()
        await RedisStorage(redis, ttl=3600).set("k", "v", ttl=90)
        assert redis.ttls["k"] == 90

    @pytest.mark.asyncio
    async def test_cached_key_uses_configured_session_ttl(self, monkeypatch):
        """VAULT_SESSION_TTL reaches SETEX through the record store."""
        monkeypatch.setenv("VAULT_SESSION_TTL", "120")
        monkeypatch.setenv("VAULT_KDF_ITERATIONS", "1000")
        config = VaultConfig.from_env()
        redis = FakeRedis()
        store = VaultRecordStore(MemoryStorage(), RedisStorage(redis), config=config)
        controller = VaultController(store)
        await controller.create_vault(ACCOUNT, PASSWORD)
        assert redis.ttls == {config.session_key(ACCOUNT): 120}
        await controller.lock()
        await controller.unlock(ACCOUNT, PASSWORD)
        assert set(redis.ttls.values()) == {120}


class TestFileStorageConcurrency:
    """Tests for FileStorage under concurrent writers."""

    @pytest.mark.asyncio
    async def test_concurrent_sets_are_serialized(self, tmp_path):
        storage = FileStorage(tmp_path / "vault.json")
        await asyncio.gather(*(storage.set(f"k{i}", str(i)) for i in range(10)))
        for i in range(10):
            assert await storage.get(f"k{i}") == str(i)

    @pytest.mark.asyncio
    async def test_ttl_is_ignored(self, tmp_path):
        storage = FileStorage(tmp_path / "vault.json")
        await storage.set("k", "v", ttl=5)
        assert await storage.get("k") == "v"
