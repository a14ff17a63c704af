"""Redis key-value store adapter.

This adapter implements the KeyValueStore port on top of the asyncio client
of redis-py. A single client (backed by its connection pool) is shared by
every table of a datastore, so concurrent coroutines pipeline over the same
pool.

Atomic batches map to ``MULTI``/``EXEC`` transactions
(``pipeline(transaction=True)``); non-atomic batches to plain pipelines.

References:
    - https://redis.readthedocs.io/en/stable/examples/asyncio_examples.html
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Sequence

import redis.asyncio as aioredis
from redis.asyncio.client import Pipeline

from redis_schema.infrastructure.config import RedisConfig
from redis_schema.infrastructure.logging import get_logger

logger = get_logger(__name__)


class RedisCommandBatch:
    """Command batch backed by a redis-py pipeline."""

    def __init__(self, pipeline: Pipeline, atomic: bool) -> None:
        self._pipeline = pipeline
        self._atomic = atomic
        self._size = 0

    @property
    def atomic(self) -> bool:
        return self._atomic

    def __len__(self) -> int:
        return self._size

    def _queued(self) -> RedisCommandBatch:
        self._size += 1
        return self

    def hset(self, key: str, mapping: Mapping[str, str]) -> RedisCommandBatch:
        self._pipeline.hset(key, mapping=dict(mapping))
        return self._queued()

    def hdel(self, key: str, *fields: str) -> RedisCommandBatch:
        self._pipeline.hdel(key, *fields)
        return self._queued()

    def hmget(self, key: str, fields: Sequence[str]) -> RedisCommandBatch:
        self._pipeline.hmget(key, list(fields))
        return self._queued()

    def delete(self, *keys: str) -> RedisCommandBatch:
        self._pipeline.delete(*keys)
        return self._queued()

    def exists(self, *keys: str) -> RedisCommandBatch:
        self._pipeline.exists(*keys)
        return self._queued()

    def sadd(self, key: str, *members: str) -> RedisCommandBatch:
        self._pipeline.sadd(key, *members)
        return self._queued()

    def srem(self, key: str, *members: str) -> RedisCommandBatch:
        self._pipeline.srem(key, *members)
        return self._queued()

    async def execute(self) -> list[Any]:
        """Send the queued commands in one round trip."""
        if self._size == 0:
            return []
        results = await self._pipeline.execute()
        self._size = 0
        return list(results)


class RedisKeyValueStore:
    """KeyValueStore implementation over ``redis.asyncio.Redis``.

    The client must be created with ``decode_responses=True`` so that hash
    fields and set members come back as ``str``.
    """

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: RedisConfig) -> RedisKeyValueStore:
        """Create a store from connection settings (no I/O)."""
        client = aioredis.from_url(
            config.url,
            decode_responses=True,
            socket_timeout=config.socket_timeout_seconds,
            socket_connect_timeout=config.connect_timeout_seconds,
            max_connections=config.max_connections,
        )
        return cls(client)

    @classmethod
    async def connect(cls, config: RedisConfig) -> RedisKeyValueStore:
        """Create a store and, when configured, wait until Redis answers.

        Raises:
            redis.exceptions.ConnectionError: If the ready check fails.
        """
        store = cls.from_config(config)
        if config.ready_check:
            try:
                await store.ping()
            except Exception:
                await store.close()
                raise
        logger.info("redis_connected", ready_check=config.ready_check)
        return store

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._client.hgetall(key)

    async def hget(self, key: str, field: str) -> str | None:
        return await self._client.hget(key, field)

    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        return await self._client.hmget(key, list(fields))

    async def hset(self, key: str, mapping: Mapping[str, str]) -> int:
        return await self._client.hset(key, mapping=dict(mapping))

    async def hdel(self, key: str, *fields: str) -> int:
        return await self._client.hdel(key, *fields)

    async def delete(self, *keys: str) -> int:
        return await self._client.delete(*keys)

    async def exists(self, *keys: str) -> int:
        return await self._client.exists(*keys)

    async def sadd(self, key: str, *members: str) -> int:
        return await self._client.sadd(key, *members)

    async def srem(self, key: str, *members: str) -> int:
        return await self._client.srem(key, *members)

    async def smembers(self, key: str) -> set[str]:
        return set(await self._client.smembers(key))

    async def sunion(self, *keys: str) -> set[str]:
        return set(await self._client.sunion(list(keys)))

    async def sismember(self, key: str, member: str) -> bool:
        return bool(await self._client.sismember(key, member))

    async def scan(self, match: str, count: int = 100) -> AsyncIterator[list[str]]:
        cursor = 0
        while True:
            cursor, keys = await self._client.scan(cursor=cursor, match=match, count=count)
            yield list(keys)
            if cursor == 0:
                break

    def batch(self, atomic: bool = True) -> RedisCommandBatch:
        return RedisCommandBatch(self._client.pipeline(transaction=atomic), atomic)

    async def close(self) -> None:
        await self._client.aclose()
