"""Outbound adapters - implementations of outbound ports.

These adapters implement the KeyValueStore port: a redis-py backed store for
production and a dictionary backed store for tests and local development.
"""

from redis_schema.adapters.outbound.memory_store import (
    InMemoryCommandBatch,
    InMemoryKeyValueStore,
    WrongTypeError,
)
from redis_schema.adapters.outbound.redis_store import RedisCommandBatch, RedisKeyValueStore

__all__ = [
    "InMemoryCommandBatch",
    "InMemoryKeyValueStore",
    "WrongTypeError",
    "RedisCommandBatch",
    "RedisKeyValueStore",
]
