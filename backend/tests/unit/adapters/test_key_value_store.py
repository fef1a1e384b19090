"""Unit tests for the key-value store adapters."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import orjson
import pytest
import redis.asyncio as redis

from textsense.adapters.outbound.store import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
)


class TestMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_get_returns_only_present_keys(self) -> None:
        store = MemoryKeyValueStore({"a": 1})
        assert await store.get(["a", "b"]) == {"a": 1}

    @pytest.mark.asyncio
    async def test_values_are_copied(self) -> None:
        store = MemoryKeyValueStore()
        value = {"requests": [1, 2]}
        await store.set({"k": value})
        value["requests"].append(3)
        assert (await store.get(["k"]))["k"] == {"requests": [1, 2]}

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        store = MemoryKeyValueStore({"a": 1, "b": 2})
        await store.delete(["a", "missing"])
        assert await store.get(["a", "b"]) == {"b": 2}


class TestJsonFileKeyValueStore:
    @pytest.mark.asyncio
    async def test_round_trip_across_instances(self, tmp_path) -> None:
        path = tmp_path / "state" / "store.json"
        await JsonFileKeyValueStore(path).set({"groq_api_key": "gsk", "n": [1, 2]})

        reopened = JsonFileKeyValueStore(path)
        assert await reopened.get(["groq_api_key", "n"]) == {"groq_api_key": "gsk", "n": [1, 2]}
        assert orjson.loads(path.read_bytes())["groq_api_key"] == "gsk"

    @pytest.mark.asyncio
    async def test_corrupt_file_reads_as_empty(self, tmp_path) -> None:
        path = tmp_path / "store.json"
        path.write_text("{not json")
        store = JsonFileKeyValueStore(path)
        assert await store.get(["anything"]) == {}

        await store.set({"k": "v"})
        assert orjson.loads(path.read_bytes()) == {"k": "v"}

    @pytest.mark.asyncio
    async def test_delete_persists(self, tmp_path) -> None:
        path = tmp_path / "store.json"
        store = JsonFileKeyValueStore(path)
        await store.set({"a": 1, "b": 2})
        await store.delete(["a"])
        assert await JsonFileKeyValueStore(path).get(["a", "b"]) == {"b": 2}

    @pytest.mark.asyncio
    async def test_healthy_before_first_write(self, tmp_path) -> None:
        store = JsonFileKeyValueStore(tmp_path / "not" / "yet" / "store.json")
        assert await store.health_check() is True

    @pytest.mark.asyncio
    async def test_unhealthy_when_parent_is_a_file(self, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        store = JsonFileKeyValueStore(blocker / "store.json")
        assert await store.health_check() is False


class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_empty_url_uses_memory(self) -> None:
        store = RedisKeyValueStore("")
        await store.set({"k": {"x": 1}})
        assert await store.get(["k"]) == {"k": {"x": 1}}
        assert await store.health_check() is True

    @pytest.mark.asyncio
    async def test_values_are_json_encoded_under_namespace(self) -> None:
        store = RedisKeyValueStore("redis://localhost:6379/0", namespace="ts")
        with patch.object(store._client, "mset", new_callable=AsyncMock) as mset:
            await store.set({"claude_tier": "tier2"})
        mset.assert_awaited_once_with({"ts:claude_tier": '"tier2"'})

        with patch.object(
            store._client, "mget", new_callable=AsyncMock, return_value=['{"a":1}', None]
        ) as mget:
            assert await store.get(["x", "y"]) == {"x": {"a": 1}}
        mget.assert_awaited_once_with(["ts:x", "ts:y"])

    @pytest.mark.asyncio
    async def test_redis_errors_propagate(self) -> None:
        store = RedisKeyValueStore("redis://localhost:6379/0")
        with patch.object(
            store._client,
            "mget",
            new_callable=AsyncMock,
            side_effect=redis.ConnectionError("down"),
        ):
            with pytest.raises(redis.RedisError):
                await store.get(["k"])

    @pytest.mark.asyncio
    async def test_health_check_false_when_unreachable(self) -> None:
        store = RedisKeyValueStore("redis://localhost:6379/0")
        with patch.object(
            store._client, "ping", new_callable=AsyncMock, side_effect=redis.ConnectionError("down")
        ):
            assert await store.health_check() is False
