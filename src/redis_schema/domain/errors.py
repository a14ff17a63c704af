"""Error taxonomy for the record store.

Every error carries a stable ``code`` so that callers can tell a duplicate
key apart from a malformed query or a backend failure without parsing
messages. Backend errors raised by the key-value client are never wrapped
and propagate unchanged.

Codes:
    - E_UNIQUE: duplicate primary key on create
    - E_IMMUTABLE_KEY: update touches the primary key
    - E_REQUIRED: missing value for a required attribute
    - E_TYPE: value does not match the declared attribute type
    - E_UNKNOWN_ATTRIBUTE: record references an attribute not in the schema
    - E_NOT_INDEXED: filter on an attribute without an index
    - E_EMPTY_QUERY: filter without any attribute
    - E_MULTI_ATTR_QUERY: filter on more than one attribute
    - E_INVALID_QUERY: malformed filter expression
    - E_INVALID_SCHEMA: inconsistent table definition
    - E_DATASTORE: datastore registration / lookup failure
"""

from __future__ import annotations

from typing import ClassVar


class RecordStoreError(Exception):
    """Base class for all record store errors."""

    code: ClassVar[str] = "E_RECORD_STORE"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class UniqueConstraintError(RecordStoreError):
    """A record with the given primary key already exists."""

    code = "E_UNIQUE"

    def __init__(self, table: str, primary_key: str, record_id: str) -> None:
        super().__init__(
            f'A record with "{primary_key}"="{record_id}" already exists on {table}'
        )
        self.table = table
        self.primary_key = primary_key
        self.record_id = record_id


class ImmutableKeyError(RecordStoreError):
    """An update attempted to change the primary key."""

    code = "E_IMMUTABLE_KEY"


class RequiredValueError(RecordStoreError):
    """A required attribute received no value."""

    code = "E_REQUIRED"


class ValueTypeError(RecordStoreError):
    """A value does not match the declared attribute type."""

    code = "E_TYPE"


class UnknownAttributeError(RecordStoreError):
    """A record or selection references an attribute not in the schema."""

    code = "E_UNKNOWN_ATTRIBUTE"


class NotIndexedError(RecordStoreError):
    """A filter targets an attribute that has no secondary index."""

    code = "E_NOT_INDEXED"


class EmptyQueryError(RecordStoreError):
    """A filter does not name any attribute."""

    code = "E_EMPTY_QUERY"

    def __init__(self, message: str = "You must filter by at least one attribute") -> None:
        super().__init__(message)


class MultiAttributeQueryError(RecordStoreError):
    """A filter names more than one attribute."""

    code = "E_MULTI_ATTR_QUERY"


class InvalidQueryError(RecordStoreError):
    """A filter expression has an unsupported shape."""

    code = "E_INVALID_QUERY"


class SchemaError(RecordStoreError):
    """A table definition violates the schema invariants."""

    code = "E_INVALID_SCHEMA"


class DatastoreError(RecordStoreError):
    """A datastore or table could not be registered or found."""

    code = "E_DATASTORE"
