"""Storage key naming for records and index sets.

Formats:
    record:        ``{table}:{id}``
    index:         ``{table}.index:{column}:{content_hash(value)}``
    wildcards:     ``{table}:*``, ``{table}.index:{column}:*``, ``{table}.index:*``

The ``.index:`` infix keeps index keys out of the record key space of the
same table, so ``{table}:*`` never matches an index set.
"""

from __future__ import annotations

from redis_schema.domain.services.content_hasher import content_hash

WILDCARD = "*"
INDEX_SUFFIX = ".index"


def record_key(table: str, record_id: str | None = None) -> str:
    """Return the hash key of a record, or the table-wide wildcard pattern."""
    return f"{table}:{WILDCARD if record_id is None else record_id}"


def index_key(table: str, column: str | None = None, value: str | None = None) -> str:
    """Return the set key indexing ``column`` = ``value``.

    Args:
        table: Table name.
        column: Indexed column; omitted yields the wildcard for every index
            of the table.
        value: Serialized value; omitted yields the wildcard for every index
            set of the column. Present values are content-hashed.
    """
    if column is None:
        return f"{table}{INDEX_SUFFIX}:{WILDCARD}"
    suffix = WILDCARD if value is None else content_hash(value)
    return f"{table}{INDEX_SUFFIX}:{column}:{suffix}"
