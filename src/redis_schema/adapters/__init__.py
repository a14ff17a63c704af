"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Outbound adapters: Implement the key-value store port (Redis, in-memory)
"""

from redis_schema.adapters.outbound import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
)

__all__ = [
    # Outbound adapters
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
]
