"""Closed set of attribute types supported by the record store."""

from __future__ import annotations

from enum import Enum

from redis_schema.domain.errors import SchemaError


class AttributeType(Enum):
    """Declared type of a table attribute.

    Every stored value is a string; the type decides how a typed value is
    rendered into that string and parsed back out of it.
    """

    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    JSON = "json"

    @classmethod
    def parse(cls, name: str | AttributeType) -> AttributeType:
        """Resolve a type name (or an existing member) to an AttributeType.

        Raises:
            SchemaError: If the name is not one of the supported types.
        """
        if isinstance(name, AttributeType):
            return name
        try:
            return cls(name)
        except ValueError:
            allowed = '", "'.join(member.value for member in cls)
            raise SchemaError(
                f'Invalid type "{name}", only "{allowed}" can be used.'
            ) from None
