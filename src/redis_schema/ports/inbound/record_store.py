"""Record Store port - the data-access contract offered to the ORM layer.

One record store serves one table. Filters are single-attribute:

    {"id": "abc"}                         primary-key lookup
    {"id": ["a", "b"]}                    several primary keys
    {"firstName": "Ada"}                  indexed equality
    {"firstName": {"in": ["Ada", "Bo"]}}  union of indexed values
    {"and": [{"owner": "u1"}]}            single-filter wrapper

Composite filtering is the caller's job (one call per attribute).

Consistency:
    Each record's mutation is applied in one atomic batch. Operations
    touching several records are NOT atomic across records.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Mapping, Protocol, Sequence, TypedDict

from redis_schema.domain.entities.schema import TableSchema

Record = dict[str, Any]
Where = Mapping[str, Any]


class Criteria(TypedDict, total=False):
    """Find criteria as produced by the ORM layer."""

    where: Where
    select: Sequence[str]


class RecordStorePort(Protocol):
    """Protocol for the indexed record store of one table.

    Example:
        user = await users.create({"firstName": "Ada"})
        found = await users.find({"where": {"firstName": "Ada"}})
        await users.update({"where": {"id": user["id"]}}, {"lastName": "Lovelace"})
        await users.destroy({"where": {"id": user["id"]}})
    """

    @property
    @abstractmethod
    def schema(self) -> TableSchema:
        """Table schema served by this store."""
        ...

    @property
    @abstractmethod
    def indexes(self) -> tuple[str, ...]:
        """Columns that carry a secondary index."""
        ...

    @abstractmethod
    async def create(self, attributes: Mapping[str, Any]) -> Record:
        """Create a record, generating its primary key when absent.

        Raises:
            UniqueConstraintError: If the given primary key already exists.
        """
        ...

    @abstractmethod
    async def create_each(self, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        """Create several records; results follow input order."""
        ...

    @abstractmethod
    async def fetch_ids(self, where: Where) -> list[str]:
        """Resolve a filter to record identifiers."""
        ...

    @abstractmethod
    async def find_by_ids(
        self, ids: Sequence[str], select: Sequence[str] | None = None
    ) -> list[Record]:
        """Fetch records by identifier, skipping missing ones."""
        ...

    @abstractmethod
    async def find(self, criteria: Criteria) -> list[Record]: ...

    @abstractmethod
    async def find_one(self, criteria: Criteria) -> Record | None: ...

    @abstractmethod
    async def count(self, ids: str | Sequence[str]) -> int:
        """Count how many of the identifiers currently exist."""
        ...

    @abstractmethod
    async def update_by_ids(
        self, ids: Sequence[str], values: Mapping[str, Any]
    ) -> list[Record]:
        """Apply changes to the given records.

        Raises:
            ImmutableKeyError: If ``values`` contains the primary key.
        """
        ...

    @abstractmethod
    async def update(self, criteria: Criteria, values: Mapping[str, Any]) -> list[Record]: ...

    @abstractmethod
    async def destroy_by_ids(self, ids: Sequence[str]) -> list[Record]:
        """Delete records and their index memberships; returns the deleted records."""
        ...

    @abstractmethod
    async def destroy(self, criteria: Criteria) -> list[Record]: ...

    @abstractmethod
    async def drop(self) -> int:
        """Delete every record and index of the table; returns keys removed."""
        ...
