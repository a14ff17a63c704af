"""Inbound ports - API contracts offered to the ORM layer."""

from redis_schema.ports.inbound.record_store import (
    Criteria,
    Record,
    RecordStorePort,
    Where,
)

__all__ = [
    "Criteria",
    "Record",
    "RecordStorePort",
    "Where",
]
