"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (RecordStorePort)
- Outbound ports: Dependencies on external systems (KeyValueStore)

Adapters implement these ports with concrete functionality.
"""

from redis_schema.ports.inbound import Criteria, Record, RecordStorePort, Where
from redis_schema.ports.outbound import CommandBatch, KeyValueStore

__all__ = [
    # Inbound ports
    "Criteria",
    "Record",
    "RecordStorePort",
    "Where",
    # Outbound ports
    "CommandBatch",
    "KeyValueStore",
]
