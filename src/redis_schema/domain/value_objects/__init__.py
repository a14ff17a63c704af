"""Value objects for the record store domain.

Exports:
    - AttributeType: Closed set of attribute types (boolean, number, string, json)
"""

from redis_schema.domain.value_objects.attribute_types import AttributeType

__all__ = [
    "AttributeType",
]
