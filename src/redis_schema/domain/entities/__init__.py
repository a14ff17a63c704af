"""Domain entities for the record store.

Exports:
    - AttributeDefinition: Typed definition of one table attribute
    - TableSchema: Per-table metadata (attributes, primary key, indexes)
"""

from redis_schema.domain.entities.schema import AttributeDefinition, TableSchema

__all__ = [
    "AttributeDefinition",
    "TableSchema",
]
