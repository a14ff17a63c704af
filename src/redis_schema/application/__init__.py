"""Application layer for the record store.

The application layer composes the domain services with the key-value store
port to implement the record store operations.

Exports:
    Record store:
        - RecordStore: Indexed records of one table
    Datastores:
        - Datastore: A connection and the tables defined on it
        - DatastoreRegistry: Open datastores keyed by identity
    Queries:
        - resolve_ids: Resolve a single-attribute filter to identifiers
    Drops:
        - delete_matching: Scan-and-delete of a key pattern
"""

from redis_schema.application.bulk_delete import delete_matching
from redis_schema.application.datastore import Datastore, DatastoreRegistry
from redis_schema.application.query_translator import IdLookup, plan, read_ids, resolve_ids
from redis_schema.application.record_store import RecordStore, generate_id

__all__ = [
    "RecordStore",
    "generate_id",
    "Datastore",
    "DatastoreRegistry",
    "IdLookup",
    "plan",
    "read_ids",
    "resolve_ids",
    "delete_matching",
]
