"""Outbound ports - dependencies of the record store on external systems."""

from redis_schema.ports.outbound.key_value_store import CommandBatch, KeyValueStore

__all__ = [
    "CommandBatch",
    "KeyValueStore",
]
