"""Key-value store adapters implementing KeyValueStorePort.

Holds credentials, rate-limiter state, the Claude tier and the preferred
provider.  Values are JSON-compatible and serialized with orjson wherever
they leave the process.
"""

from __future__ import annotations

import asyncio
import copy
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import orjson
import redis.asyncio as redis
import structlog

from textsense.ports.outbound import KeyValueStorePort

logger = structlog.get_logger(__name__)


class MemoryKeyValueStore(KeyValueStorePort):
    """Process-local store; state is lost on restart."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        for key, value in mapping.items():
            self._data[key] = copy.deepcopy(value)

    async def delete(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStorePort):
    """Single JSON document on disk, rewritten atomically on every ``set``.

    File I/O runs in a worker thread so the event loop never blocks.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        async with self._lock:
            data = await self._load()
            return {k: copy.deepcopy(data[k]) for k in keys if k in data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        async with self._lock:
            data = await self._load()
            for key, value in mapping.items():
                data[key] = copy.deepcopy(value)
            await asyncio.to_thread(self._write, data)

    async def delete(self, keys: Iterable[str]) -> None:
        async with self._lock:
            data = await self._load()
            for key in keys:
                data.pop(key, None)
            await asyncio.to_thread(self._write, data)

    async def health_check(self) -> bool:
        """True when the file (or the directory that will hold it) is writable."""
        return await asyncio.to_thread(self._writable)

    def _writable(self) -> bool:
        if self._path.exists():
            return os.access(self._path, os.R_OK | os.W_OK)
        ancestor = self._path.parent
        while not ancestor.exists() and ancestor != ancestor.parent:
            ancestor = ancestor.parent
        return ancestor.is_dir() and os.access(ancestor, os.W_OK | os.X_OK)

    async def _load(self) -> dict[str, Any]:
        """Caller holds lock."""
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            loaded = orjson.loads(self._path.read_bytes())
        except orjson.JSONDecodeError as exc:
            logger.warning("store_file_corrupt", path=str(self._path), error=str(exc))
            return {}
        if not isinstance(loaded, dict):
            logger.warning("store_file_not_object", path=str(self._path))
            return {}
        return loaded

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        tmp.replace(self._path)


class RedisKeyValueStore(KeyValueStorePort):
    """Async Redis adapter; each key is stored as an orjson-encoded string.

    Falls back to an in-memory store when no URL is configured.
    """

    def __init__(self, url: str, *, max_connections: int = 20, namespace: str = "textsense") -> None:
        self._namespace = namespace
        self._use_memory = not url
        if self._use_memory:
            logger.warning("redis_url_missing_falling_back_to_memory")
            self._memory = MemoryKeyValueStore()
            return
        self._pool = redis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        self._client = redis.Redis(connection_pool=self._pool)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        if self._use_memory:
            return await self._memory.get(keys)
        wanted = list(keys)
        if not wanted:
            return {}
        try:
            raw = await self._client.mget([self._key(k) for k in wanted])
        except redis.RedisError as exc:
            logger.error("redis_get_error", keys=wanted, error=str(exc))
            raise
        return {k: orjson.loads(v) for k, v in zip(wanted, raw) if v is not None}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        if self._use_memory:
            return await self._memory.set(mapping)
        if not mapping:
            return
        try:
            await self._client.mset(
                {self._key(k): orjson.dumps(v).decode() for k, v in mapping.items()}
            )
        except redis.RedisError as exc:
            logger.error("redis_set_error", keys=list(mapping), error=str(exc))
            raise

    async def delete(self, keys: Iterable[str]) -> None:
        if self._use_memory:
            return await self._memory.delete(keys)
        wanted = [self._key(k) for k in keys]
        if not wanted:
            return
        try:
            await self._client.delete(*wanted)
        except redis.RedisError as exc:
            logger.error("redis_delete_error", keys=wanted, error=str(exc))
            raise

    async def close(self) -> None:
        if not self._use_memory:
            await self._client.aclose()
            await self._pool.aclose()

    async def health_check(self) -> bool:
        if self._use_memory:
            return True
        try:
            return bool(await self._client.ping())
        except redis.RedisError:
            return False


__all__ = ["JsonFileKeyValueStore", "MemoryKeyValueStore", "RedisKeyValueStore"]
