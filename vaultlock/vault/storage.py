"""
Vault Storage — Text key-value media the record store persists into.

Two media are used by the vault:
- durable: lives as long as the device/profile (``FileStorage``)
- session: lives as long as the current session (``MemoryStorage``,
  or ``RedisStorage`` with a TTL when several processes share a session)

All backends expose the same async interface so the record store does not
care which one it is given.
"""
import os
import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

import orjson

logger = logging.getLogger("vaultlock.vault")


@runtime_checkable
class KeyValueStorage(Protocol):
    """Async text key-value storage.

    ``ttl`` is a lifetime hint in seconds; media without expiry ignore it.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage; its lifetime is the lifetime of the object."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every entry, as happens when a session ends."""
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)


class FileStorage:
    """Durable storage kept in a single JSON document on disk.

    Writes replace the file atomically and the file is created with mode
    0600. An unreadable document is treated as empty and logged.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as err:
            logger.warning("Ignoring unreadable vault storage %s: %s", self.path, err)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring vault storage %s: not a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".vault-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(orjson.dumps(data, option=orjson.OPT_SORT_KEYS))
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write, data)


class RedisStorage:
    """Session storage on an async redis-compatible client.

    Entries are written with ``SETEX`` so they expire with the session.
    A ``ttl`` passed to :meth:`set` overrides the default one.
    """

    def __init__(self, redis: Any, ttl: int = 3600):
        self._redis = redis
        self._ttl = ttl

    async def get(self, key: str) -> Optional[str]:
        value = await self._redis.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        await self._redis.setex(key, ttl or self._ttl, value)

    async def remove(self, key: str) -> None:
        await self._redis.delete(key)
