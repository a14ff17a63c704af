"""Table schema entities.

A ``TableSchema`` is the per-table metadata that drives the value codec and
index bookkeeping: which attributes exist, how they are typed, which column
each one is stored under and which columns carry a secondary index.

Attribute definitions are usually supplied by an ORM layer as plain
dictionaries, e.g.::

    {
        "id": {"type": "string"},
        "firstName": {"type": "string", "required": True, "meta": {"index": True}},
        "owner": {"model": "user"},
        "pokemons": {"collection": "pokemon", "via": "owner"},
    }

``TableSchema.from_definition`` turns such a mapping into typed entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from redis_schema.domain.errors import SchemaError, UnknownAttributeError
from redis_schema.domain.value_objects.attribute_types import AttributeType

# Key separator and the characters Redis SCAN MATCH treats as glob syntax
_RESERVED_TABLE_CHARS = frozenset(":*?[]\\")
_INDEX_SUFFIX = ".index"


@dataclass(frozen=True)
class AttributeDefinition:
    """Definition of a single table attribute.

    Attributes:
        name: Attribute name as seen by callers.
        type: Declared value type.
        required: Whether a value must always be present.
        indexed: Whether a secondary index is maintained (explicit flag).
        column_name: Hash field the value is stored under (defaults to name).
        model: Target table of a single-reference association.
        collection: Target table of a plural association. Collection
            attributes are never persisted nor indexed.
    """

    name: str
    type: AttributeType = AttributeType.STRING
    required: bool = False
    indexed: bool = False
    column_name: str = ""
    model: str | None = None
    collection: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("Attribute name cannot be empty")
        if not self.column_name:
            object.__setattr__(self, "column_name", self.name)

    @property
    def is_reference(self) -> bool:
        """Single-reference association (always indexed)."""
        return self.model is not None

    @property
    def is_collection(self) -> bool:
        """Plural association (never stored on the owning record)."""
        return self.collection is not None

    @property
    def is_persisted(self) -> bool:
        return not self.is_collection

    @property
    def is_indexed(self) -> bool:
        """Whether a secondary index is maintained for this attribute."""
        return not self.is_collection and (self.indexed or self.is_reference)

    @classmethod
    def from_definition(cls, name: str, definition: Mapping[str, Any]) -> AttributeDefinition:
        """Build a definition from ORM-style attribute metadata.

        Recognized keys: ``type``, ``required``, ``columnName`` (or
        ``column_name``), ``model``, ``collection``, ``index`` and
        ``meta.index``.
        """
        meta = definition.get("meta") or {}
        model = definition.get("model")
        collection = definition.get("collection")

        type_name = definition.get("type")
        if type_name is None:
            if model is None and collection is None:
                raise SchemaError(f'Attribute "{name}" is missing a type')
            type_name = AttributeType.STRING

        return cls(
            name=name,
            type=AttributeType.parse(type_name),
            required=definition.get("required") is True,
            indexed=meta.get("index") is True or definition.get("index") is True,
            column_name=definition.get("columnName") or definition.get("column_name") or name,
            model=model,
            collection=collection,
        )


@dataclass
class TableSchema:
    """Schema of a table stored as Redis hashes.

    Invariants (checked on construction):
        - ``primary_key`` names exactly one declared attribute of type string
        - no attribute name collides with another attribute's column name
        - no two attributes share a column name
        - ``table_name`` holds no key separator or SCAN glob character
          (``:``, ``*``, ``?``, ``[``, ``]``, ``\\``) and does not end in
          ``.index``, so drop patterns never reach another table's keys

    Derived on construction:
        - ``indexed_columns``: columns of explicitly indexed or reference
          attributes, in declaration order
    """

    table_name: str
    primary_key: str
    attributes: dict[str, AttributeDefinition]
    indexed_columns: tuple[str, ...] = field(init=False)
    _by_column: dict[str, AttributeDefinition] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.table_name:
            raise SchemaError("Table name cannot be empty")
        if any(char in self.table_name for char in _RESERVED_TABLE_CHARS) or (
            self.table_name.endswith(_INDEX_SUFFIX)
        ):
            raise SchemaError(f'Invalid table name "{self.table_name}"')

        by_column: dict[str, AttributeDefinition] = {}
        for name, attr in self.attributes.items():
            if name != attr.name:
                raise SchemaError(f'Attribute registered as "{name}" is named "{attr.name}"')
            if attr.column_name in by_column:
                raise SchemaError(
                    f'Attributes "{by_column[attr.column_name].name}" and "{name}" '
                    f'share the column "{attr.column_name}"'
                )
            by_column[attr.column_name] = attr

        for column, attr in by_column.items():
            other = self.attributes.get(column)
            if other is not None and other is not attr:
                raise SchemaError(
                    f'Column "{column}" of attribute "{attr.name}" collides with '
                    f'attribute "{other.name}"'
                )

        pk = self.attributes.get(self.primary_key)
        if pk is None:
            raise SchemaError(
                f'Primary key "{self.primary_key}" is not an attribute of {self.table_name}'
            )
        if pk.type is not AttributeType.STRING or pk.is_collection:
            raise SchemaError(f'Primary key "{self.primary_key}" must be of type string')

        self._by_column = by_column
        self.indexed_columns = tuple(
            attr.column_name for attr in self.attributes.values() if attr.is_indexed
        )

    @classmethod
    def from_definition(
        cls,
        attributes: Mapping[str, Mapping[str, Any]],
        primary_key: str,
        table_name: str,
    ) -> TableSchema:
        """Build a schema from ORM-style attribute metadata."""
        return cls(
            table_name=table_name,
            primary_key=primary_key,
            attributes={
                name: AttributeDefinition.from_definition(name, definition)
                for name, definition in attributes.items()
            },
        )

    @property
    def primary_key_attribute(self) -> AttributeDefinition:
        return self.attributes[self.primary_key]

    @property
    def primary_key_column(self) -> str:
        return self.primary_key_attribute.column_name

    def persisted(self) -> Iterator[AttributeDefinition]:
        """Iterate attributes that are stored on the record hash."""
        return (attr for attr in self.attributes.values() if attr.is_persisted)

    def lookup(self, name: str) -> AttributeDefinition | None:
        """Find an attribute by attribute name or column name."""
        attr = self.attributes.get(name)
        if attr is not None:
            return attr
        return self._by_column.get(name)

    def resolve(self, name: str) -> AttributeDefinition:
        """Find an attribute by attribute name or column name.

        Raises:
            UnknownAttributeError: If neither matches.
        """
        attr = self.lookup(name)
        if attr is None:
            raise UnknownAttributeError(
                f'The key "{name}" is not present on the {self.table_name} definition.'
            )
        return attr

    def is_indexed(self, name: str) -> bool:
        attr = self.lookup(name)
        return attr is not None and attr.is_indexed
