"""Query translator: single-attribute filters to record identifiers.

Supported filter shapes::

    {attr: value}                 equality
    {attr: {"in": [v1, v2]}}      any of the values
    {attr: [v1, v2]}              shorthand for "in"
    {"and": [single_filter]}      wrapper used for one-hop relationship lookups

A mapping condition is always read as modifiers and a list as "in", so a JSON
object or array value is matched with ``{attr: {"in": [value]}}``.

Primary-key filters are answered without touching the store, since record
identifiers are primary keys. Filters on indexed attributes read the index
set of each value (``SMEMBERS`` for one value, ``SUNION`` for several).

Every validation error is raised before any store command is sent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from redis_schema.domain.entities.schema import AttributeDefinition, TableSchema
from redis_schema.domain.errors import (
    EmptyQueryError,
    InvalidQueryError,
    MultiAttributeQueryError,
    NotIndexedError,
    ValueTypeError,
)
from redis_schema.domain.services.key_naming import index_key
from redis_schema.domain.services.value_codec import EMPTY, serialize_attribute
from redis_schema.ports.inbound.record_store import Where
from redis_schema.ports.outbound.key_value_store import KeyValueStore

AND = "and"
IN = "in"


@dataclass(frozen=True)
class IdLookup:
    """Resolved form of a filter.

    Primary-key lookups carry the requested ``ids``; index lookups carry the
    ``index_keys`` to read (empty when every value was null).
    """

    attribute: AttributeDefinition
    by_primary_key: bool
    ids: tuple[str, ...] = ()
    index_keys: tuple[str, ...] = ()


def _unwrap(where: Any) -> tuple[str, Any]:
    if not isinstance(where, Mapping):
        raise InvalidQueryError(f"Invalid filter {where!r}, expected a mapping.")
    if len(where) == 0:
        raise EmptyQueryError()
    if len(where) > 1:
        raise MultiAttributeQueryError(
            "Cannot find records using multiple attributes "
            f"({', '.join(map(str, where))}); filter by a single attribute."
        )

    ((name, condition),) = where.items()

    if name == AND:
        if (
            not isinstance(condition, Sequence)
            or isinstance(condition, str)
            or len(condition) != 1
        ):
            raise InvalidQueryError('An "and" filter must wrap exactly one filter.')
        return _unwrap(condition[0])

    return name, condition


def _values(name: str, condition: Any) -> list[Any]:
    """Return the requested values, normalizing the "in" forms to a list."""
    if isinstance(condition, Mapping):
        if set(condition) != {IN}:
            modifiers = ", ".join(map(str, condition)) or "none"
            raise InvalidQueryError(
                f'Unsupported modifier(s) {modifiers} for attribute "{name}", only "in" is allowed.'
            )
        values = condition[IN]
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise InvalidQueryError(f'The "in" modifier of "{name}" must be a list of values.')
        return list(values)

    if isinstance(condition, (list, tuple)):
        return list(condition)

    return [condition]


def plan(schema: TableSchema, where: Where) -> IdLookup:
    """Validate a filter and compute how to resolve it.

    Raises:
        InvalidQueryError, EmptyQueryError, MultiAttributeQueryError,
        NotIndexedError, ValueTypeError, RequiredValueError
    """
    name, condition = _unwrap(where)
    values = _values(name, condition)

    attr = schema.lookup(name)

    if attr is not None and attr.name == schema.primary_key:
        for value in values:
            if not isinstance(value, str):
                raise ValueTypeError(
                    f'Invalid value {value!r} for primary key "{schema.primary_key}", expected a string.'
                )
        return IdLookup(attribute=attr, by_primary_key=True, ids=tuple(dict.fromkeys(values)))

    if attr is None or not attr.is_indexed:
        raise NotIndexedError(
            f'The attribute "{name}" is not indexed, you can\'t find records using this attribute.'
        )

    tokens = [serialize_attribute(attr, value) for value in values]
    keys = tuple(
        dict.fromkeys(
            index_key(schema.table_name, attr.column_name, token)
            for token in tokens
            if token != EMPTY
        )
    )
    return IdLookup(attribute=attr, by_primary_key=False, index_keys=keys)


async def read_ids(store: KeyValueStore, lookup: IdLookup) -> list[str]:
    """Execute a planned lookup.

    Primary-key lookups return the requested identifiers whether or not the
    records exist; index lookups return current index members, sorted.
    """
    if lookup.by_primary_key:
        return list(lookup.ids)

    if not lookup.index_keys:
        return []

    if len(lookup.index_keys) == 1:
        members = await store.smembers(lookup.index_keys[0])
    else:
        members = await store.sunion(*lookup.index_keys)

    return sorted(members)


async def resolve_ids(store: KeyValueStore, schema: TableSchema, where: Where) -> list[str]:
    """Resolve a filter into the identifiers of matching records."""
    return await read_ids(store, plan(schema, where))
