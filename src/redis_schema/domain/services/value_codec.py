"""Value codec: typed attribute values to hash-field strings and back.

Rendering rules:
    boolean  ``True`` / ``False``  <-> ``"true"`` / ``"false"``
    number   finite int or float   <-> ECMAScript Number-to-String rendering
    string   str                   <-> itself
    json     any JSON value        <-> canonical JSON

Null policy: ``None`` and the empty string both mean "no value" for every
type. On a non-required attribute they serialize to the ``EMPTY`` sentinel,
which the record store never writes (and deletes when it was previously
present). On a required attribute they raise ``RequiredValueError``.

``MISSING`` stands for an explicitly undefined value and is always rejected;
the codec never substitutes defaults.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Mapping

from redis_schema.domain.entities.schema import AttributeDefinition, TableSchema
from redis_schema.domain.errors import RequiredValueError, ValueTypeError
from redis_schema.domain.services.content_hasher import canonical_json, number_to_string
from redis_schema.domain.value_objects.attribute_types import AttributeType

EMPTY = ""

TRUE_TOKEN = "true"
FALSE_TOKEN = "false"

_INTEGER_TOKEN = re.compile(r"-?\d+")
_NUMBER_TOKEN = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")


class _Missing:
    """Sentinel type for an undefined value."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def is_empty(value: Any) -> bool:
    """Whether a value means "no value" under the null policy."""
    return value is None or (isinstance(value, str) and value == EMPTY)


# =============================================================================
# Value level
# =============================================================================


def _parse_number(token: str) -> int | float:
    if _INTEGER_TOKEN.fullmatch(token):
        return int(token)
    if _NUMBER_TOKEN.fullmatch(token):
        result = float(token)
        if math.isfinite(result):
            return result
    raise ValueTypeError(f'Invalid value "{token}", expected a number.')


def serialize_value(attr_type: AttributeType, value: Any, required: bool = False) -> str:
    """Serialize a typed value to its stored string representation.

    Args:
        attr_type: Declared attribute type.
        value: Value to serialize.
        required: Whether the attribute is required.

    Returns:
        The serialized string, or ``EMPTY`` for a null non-required value.

    Raises:
        RequiredValueError: If a required attribute has no value.
        ValueTypeError: If the value is ``MISSING`` or does not match the type.
    """
    if value is MISSING:
        raise ValueTypeError(f"Invalid undefined value, expected a {attr_type.value}.")

    if is_empty(value):
        if required:
            raise RequiredValueError(f"Invalid empty value, expected a {attr_type.value}.")
        return EMPTY

    if attr_type is AttributeType.STRING:
        if not isinstance(value, str):
            raise ValueTypeError(f"Invalid value {value!r}, expected a string.")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueTypeError(f"Invalid value {value!r}, it is not valid Unicode.") from exc
        return value

    if attr_type is AttributeType.BOOLEAN:
        if not isinstance(value, bool):
            raise ValueTypeError(f"Invalid value {value!r}, expected a boolean.")
        return TRUE_TOKEN if value else FALSE_TOKEN

    if attr_type is AttributeType.NUMBER:
        return number_to_string(value)

    if attr_type is AttributeType.JSON:
        return canonical_json(value)

    raise ValueTypeError(f'Invalid value {value!r} for type "{attr_type.value}"')


def unserialize_value(attr_type: AttributeType, token: str | None, required: bool = False) -> Any:
    """Parse a stored string back into a typed value.

    ``None`` (field absent) and ``EMPTY`` yield ``None`` on non-required
    attributes.

    Raises:
        RequiredValueError: If a required attribute has no stored value.
        ValueTypeError: If the token cannot be parsed as the declared type.
    """
    if token is MISSING:
        raise ValueTypeError(f"Invalid undefined value, expected a {attr_type.value}.")

    if is_empty(token):
        if required:
            raise RequiredValueError(f"Invalid empty value, expected a {attr_type.value}.")
        return None

    if not isinstance(token, str):
        raise ValueTypeError(f"Invalid stored value {token!r}, expected a string.")

    if attr_type is AttributeType.STRING:
        return token

    if attr_type is AttributeType.BOOLEAN:
        if token == TRUE_TOKEN:
            return True
        if token == FALSE_TOKEN:
            return False
        raise ValueTypeError(f'Invalid value "{token}", expected a boolean.')

    if attr_type is AttributeType.NUMBER:
        return _parse_number(token)

    if attr_type is AttributeType.JSON:
        try:
            return json.loads(token)
        except ValueError as exc:
            raise ValueTypeError(f'Invalid value "{token}", expected JSON.') from exc

    raise ValueTypeError(f'Invalid value "{token}" for type "{attr_type.value}"')


# =============================================================================
# Record level
# =============================================================================


def serialize_attribute(attr: AttributeDefinition, value: Any) -> str:
    return serialize_value(attr.type, value, attr.required)


def unserialize_attribute(attr: AttributeDefinition, token: str | None) -> Any:
    return unserialize_value(attr.type, token, attr.required)


def serialize_record(
    schema: TableSchema,
    record: Mapping[str, Any],
    partial: bool = False,
) -> dict[str, str]:
    """Serialize a record into ``{column_name: token}``.

    Keys may be attribute names or column names. Collection attributes are
    skipped. Null values are kept as ``EMPTY`` so callers can distinguish a
    cleared field from an untouched one.

    Args:
        schema: Table schema.
        record: Attribute values.
        partial: If False, every required persisted attribute must be given.

    Raises:
        UnknownAttributeError: If a key matches no attribute or column.
        RequiredValueError: If a required attribute is null or, for full
            records, absent.
        ValueTypeError: If a value does not match its declared type.
    """
    result: dict[str, str] = {}
    for key, value in record.items():
        attr = schema.resolve(key)
        if attr.is_collection:
            continue
        result[attr.column_name] = serialize_attribute(attr, value)

    if not partial:
        for attr in schema.persisted():
            if attr.required and attr.column_name not in result:
                raise RequiredValueError(
                    f'Missing value for required attribute "{attr.name}" on {schema.table_name}.'
                )

    return result


def unserialize_record(schema: TableSchema, raw: Mapping[str, str | None]) -> dict[str, Any]:
    """Unserialize ``{column_name: token}`` into ``{attribute_name: value}``.

    Absent or empty non-required fields are left out of the result.

    Raises:
        UnknownAttributeError: If a field matches no attribute or column.
        RequiredValueError: If a required field is absent.
        ValueTypeError: If a token does not parse as its declared type.
    """
    record: dict[str, Any] = {}
    for key, token in raw.items():
        attr = schema.resolve(key)
        if attr.is_collection:
            continue
        value = unserialize_attribute(attr, token)
        if value is not None:
            record[attr.name] = value
    return record
