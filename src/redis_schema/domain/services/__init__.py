"""Domain services for the record store.

Pure functions with no I/O: value serialization, canonical hashing and
storage key naming. They are composed by the application layer, which owns
all interaction with the key-value store.
"""

from redis_schema.domain.services.content_hasher import (
    canonical_json,
    content_hash,
    number_to_string,
)
from redis_schema.domain.services.key_naming import index_key, record_key
from redis_schema.domain.services.value_codec import (
    EMPTY,
    MISSING,
    is_empty,
    serialize_record,
    serialize_value,
    unserialize_record,
    unserialize_value,
)

__all__ = [
    "EMPTY",
    "MISSING",
    "canonical_json",
    "number_to_string",
    "content_hash",
    "index_key",
    "is_empty",
    "record_key",
    "serialize_record",
    "serialize_value",
    "unserialize_record",
    "unserialize_value",
]
