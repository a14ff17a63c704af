"""Record Store - indexed records of one table on a key-value store.

Storage layout for a table ``user`` with ``firstName`` indexed::

    user:3f9a...                          hash   {id, firstName, lastName, ...}
    user.index:firstName:<md5("Ada")>     set    {3f9a..., 81c0...}

Every mutation of a record (its hash plus the index sets it belongs to) is
queued in one atomic batch, so other clients never observe a record whose
indexes disagree with its fields. Operations that touch several records issue
one batch per record and run them concurrently; there is no atomicity across
records.

Usage:
    users = RecordStore(schema, store)
    ada = await users.create({"firstName": "Ada", "lastName": "Lovelace"})
    await users.update({"where": {"firstName": "Ada"}}, {"lastName": None})
    await users.destroy({"where": {"id": ada["id"]}})

References:
    - Redis transactions: https://redis.io/docs/latest/develop/interact/transactions/
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Sequence

from opentelemetry import trace

from redis_schema.application.bulk_delete import delete_matching
from redis_schema.application.query_translator import plan, read_ids
from redis_schema.domain.entities.schema import TableSchema
from redis_schema.domain.errors import ImmutableKeyError, UniqueConstraintError
from redis_schema.domain.services.key_naming import index_key, record_key
from redis_schema.domain.services.value_codec import (
    EMPTY,
    is_empty,
    serialize_record,
    unserialize_record,
)
from redis_schema.infrastructure.logging import get_logger
from redis_schema.infrastructure.metrics import MetricsRegistry, get_metrics
from redis_schema.infrastructure.tracing import trace_span
from redis_schema.ports.inbound.record_store import Criteria, Record, Where
from redis_schema.ports.outbound.key_value_store import CommandBatch, KeyValueStore

# Stored fields of one record, keyed by column name.
RawRecord = dict[str, str]


def generate_id(length: int = 16) -> str:
    """Generate a random hexadecimal record identifier."""
    return uuid.uuid4().hex[:length]


class RecordStore:
    """Indexed record store of a single table.

    Attributes are stored as hash fields named after their column; index
    sets are maintained for every column listed in ``indexes``. Records
    returned to callers are keyed by attribute name and never contain
    collection attributes or empty values.

    Thread Safety:
        Not thread-safe. Concurrent use from many coroutines of one event
        loop is supported.
    """

    def __init__(
        self,
        schema: TableSchema,
        store: KeyValueStore,
        *,
        scan_count: int = 100,
        metrics: MetricsRegistry | None = None,
        id_factory: Callable[[], str] | None = None,
        id_length: int = 16,
    ) -> None:
        """Initialize the record store.

        Args:
            schema: Schema of the table.
            store: Connection shared with the other tables of the datastore.
            scan_count: SCAN page size used by ``drop``.
            metrics: Metrics registry (defaults to the global one).
            id_factory: Generator of primary keys for records created without one.
            id_length: Length of generated identifiers when ``id_factory`` is None.
        """
        self._schema = schema
        self._store = store
        self._scan_count = scan_count
        self._metrics = metrics or get_metrics()
        self._id_factory = id_factory or (lambda: generate_id(id_length))
        self._logger = get_logger(__name__, table=schema.table_name)

    @property
    def schema(self) -> TableSchema:
        return self._schema

    @property
    def table_name(self) -> str:
        return self._schema.table_name

    @property
    def indexes(self) -> tuple[str, ...]:
        """Columns that carry a secondary index."""
        return self._schema.indexed_columns

    # =========================================================================
    # Instrumentation
    # =========================================================================

    @contextmanager
    def _observe(self, operation: str) -> Iterator[trace.Span]:
        """Trace an operation and record its latency and outcome."""
        start = time.perf_counter()
        status = "success"
        try:
            with trace_span(
                f"record_store.{operation}",
                {"db.system": "redis", "db.operation": operation, "table": self.table_name},
            ) as span:
                yield span
        except Exception:
            status = "error"
            raise
        finally:
            self._metrics.operation_latency_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )
            self._metrics.operations_total.labels(
                table=self.table_name, operation=operation, status=status
            ).inc()

    def _count_batch(self, operation: str, added: int, removed: int) -> None:
        self._metrics.atomic_batches_total.labels(table=self.table_name, operation=operation).inc()
        if added:
            self._metrics.index_mutations_total.labels(table=self.table_name, kind="add").inc(added)
        if removed:
            self._metrics.index_mutations_total.labels(
                table=self.table_name, kind="remove"
            ).inc(removed)

    # =========================================================================
    # Create
    # =========================================================================

    async def create(self, attributes: Mapping[str, Any]) -> Record:
        """Create a record.

        A primary key is generated when the input has none (absent, ``None``
        or empty). A given primary key is checked for existence first; the
        window between that check and the write is not protected.

        Raises:
            UniqueConstraintError: If a record with the primary key exists.
            RequiredValueError, ValueTypeError, UnknownAttributeError: On
                invalid input, before anything is written.
        """
        with self._observe("create") as span:
            record = await self._create(attributes)
            span.set_attribute("record.id", record[self._schema.primary_key])
        return record

    async def create_each(self, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        """Create several records concurrently; results follow input order.

        Each record is created independently. When one fails the error
        propagates, and records created by the others are kept.
        """
        with self._observe("create_each") as span:
            span.set_attribute("record.count", len(records))
            created = await asyncio.gather(*(self._create(values) for values in records))
        return list(created)

    async def _create(self, attributes: Mapping[str, Any]) -> Record:
        schema = self._schema
        pk = schema.primary_key_attribute

        values = dict(attributes)
        record_id = values.pop(pk.column_name, None) if pk.column_name != pk.name else None
        record_id = values.get(pk.name, record_id)

        generated = is_empty(record_id)
        if generated:
            record_id = self._id_factory()
        values[pk.name] = record_id

        fields = {
            column: token
            for column, token in serialize_record(schema, values).items()
            if token != EMPTY
        }

        if not generated and await self._store.exists(record_key(self.table_name, record_id)):
            raise UniqueConstraintError(self.table_name, pk.name, record_id)

        batch = self._store.batch(atomic=True)
        batch.hset(record_key(self.table_name, record_id), fields)
        added = 0
        for column in schema.indexed_columns:
            token = fields.get(column)
            if token is not None:
                batch.sadd(index_key(self.table_name, column, token), record_id)
                added += 1
        await batch.execute()

        self._count_batch("create", added=added, removed=0)
        self._metrics.records_affected_total.labels(table=self.table_name, operation="create").inc()
        self._logger.debug("record_created", record_id=record_id, generated_id=generated)
        return unserialize_record(schema, fields)

    # =========================================================================
    # Read
    # =========================================================================

    async def fetch_ids(self, where: Where) -> list[str]:
        """Resolve a single-attribute filter to record identifiers."""
        with self._observe("fetch_ids"):
            return await self._fetch_ids(where)

    async def _fetch_ids(self, where: Where | None) -> list[str]:
        lookup = plan(self._schema, where if where is not None else {})
        if not lookup.by_primary_key:
            self._metrics.index_lookups_total.labels(
                table=self.table_name, column=lookup.attribute.column_name
            ).inc()
        return await read_ids(self._store, lookup)

    def _columns(self, select: Sequence[str] | None = None) -> list[str]:
        """Columns to fetch: the primary key first, then the selection."""
        schema = self._schema
        if select is None:
            attrs = list(schema.persisted())
        else:
            attrs = [schema.resolve(name) for name in select]

        columns = [schema.primary_key_column]
        for attr in attrs:
            if attr.is_collection or attr.column_name in columns:
                continue
            columns.append(attr.column_name)
        return columns

    async def _read(self, ids: Sequence[str], columns: Sequence[str]) -> list[tuple[str, RawRecord]]:
        """Fetch stored fields of each id in one pipelined round trip.

        Ids whose hash does not exist are left out.
        """
        if not ids:
            return []

        batch = self._store.batch(atomic=False)
        for record_id in ids:
            batch.hmget(record_key(self.table_name, record_id), columns)
        replies = await batch.execute()

        rows: list[tuple[str, RawRecord]] = []
        for record_id, reply in zip(ids, replies):
            # The primary key column comes first; an empty one means no hash.
            if is_empty(reply[0]):
                continue
            rows.append(
                (
                    record_id,
                    {column: token for column, token in zip(columns, reply) if token is not None},
                )
            )
        return rows

    async def find_by_ids(
        self, ids: Sequence[str], select: Sequence[str] | None = None
    ) -> list[Record]:
        """Fetch records by identifier, in input order.

        Args:
            ids: Record identifiers; missing records are skipped.
            select: Attribute (or column) names to return. The primary key is
                always included. Defaults to every persisted attribute.

        Raises:
            UnknownAttributeError: If ``select`` names an unknown attribute.
        """
        with self._observe("find_by_ids"):
            return await self._find_by_ids(ids, select)

    async def _find_by_ids(
        self, ids: Sequence[str], select: Sequence[str] | None = None
    ) -> list[Record]:
        columns = self._columns(select)
        rows = await self._read(ids, columns)
        return [unserialize_record(self._schema, raw) for _, raw in rows]

    async def find(self, criteria: Criteria) -> list[Record]:
        with self._observe("find") as span:
            ids = await self._fetch_ids(criteria.get("where"))
            records = await self._find_by_ids(ids, criteria.get("select"))
            span.set_attribute("record.count", len(records))
        return records

    async def find_one(self, criteria: Criteria) -> Record | None:
        """Return the first record matching the criteria, if any."""
        with self._observe("find_one"):
            ids = await self._fetch_ids(criteria.get("where"))
            for record_id in ids:
                records = await self._find_by_ids([record_id], criteria.get("select"))
                if records:
                    return records[0]
        return None

    async def count(self, ids: str | Sequence[str]) -> int:
        """Count how many of the identifiers have a stored record.

        Like ``EXISTS``, an identifier given twice is counted twice.
        """
        with self._observe("count"):
            if isinstance(ids, str):
                ids = [ids]
            if not ids:
                return 0
            return await self._store.exists(*(record_key(self.table_name, i) for i in ids))

    # =========================================================================
    # Update
    # =========================================================================

    async def update_by_ids(self, ids: Sequence[str], values: Mapping[str, Any]) -> list[Record]:
        """Apply ``values`` to the given records.

        ``None`` and empty strings clear a field: it is removed from the hash
        and from its index. Fields whose stored value is unchanged are left
        alone, and a record with nothing to change gets no batch.

        Returns:
            The updated records, in the order the ids were given. Missing ids
            are skipped.

        Raises:
            ImmutableKeyError: If ``values`` contains the primary key.
            RequiredValueError, ValueTypeError, UnknownAttributeError: On
                invalid values, before anything is read or written.
        """
        with self._observe("update") as span:
            records = await self._update_by_ids(ids, values)
            span.set_attribute("record.count", len(records))
        return records

    async def update(self, criteria: Criteria, values: Mapping[str, Any]) -> list[Record]:
        with self._observe("update") as span:
            self._check_immutable(values)
            changes = serialize_record(self._schema, values, partial=True)
            ids = await self._fetch_ids(criteria.get("where"))
            records = await self._apply_update(ids, changes)
            span.set_attribute("record.count", len(records))
        return records

    def _check_immutable(self, values: Mapping[str, Any]) -> None:
        pk = self._schema.primary_key_attribute
        if pk.name in values or pk.column_name in values:
            raise ImmutableKeyError(
                f'The primary key "{pk.name}" of {self.table_name} cannot be updated.'
            )

    async def _update_by_ids(self, ids: Sequence[str], values: Mapping[str, Any]) -> list[Record]:
        self._check_immutable(values)
        changes = serialize_record(self._schema, values, partial=True)
        return await self._apply_update(ids, changes)

    async def _apply_update(self, ids: Sequence[str], changes: Mapping[str, str]) -> list[Record]:
        ids = list(dict.fromkeys(ids))
        rows = await self._read(ids, self._columns())
        if not rows:
            return []

        indexed = set(self._schema.indexed_columns)
        batches: list[CommandBatch] = []
        records: list[Record] = []

        for record_id, current in rows:
            cleared = [
                column for column, token in changes.items() if token == EMPTY and column in current
            ]
            assigned = {
                column: token
                for column, token in changes.items()
                if token != EMPTY and current.get(column) != token
            }

            merged = {**current, **assigned}
            for column in cleared:
                del merged[column]
            records.append(unserialize_record(self._schema, merged))

            if not cleared and not assigned:
                continue

            key = record_key(self.table_name, record_id)
            batch = self._store.batch(atomic=True)
            if cleared:
                batch.hdel(key, *cleared)
            if assigned:
                batch.hset(key, assigned)

            added = removed = 0
            for column in (*cleared, *assigned):
                if column not in indexed:
                    continue
                old = current.get(column)
                if not is_empty(old):
                    batch.srem(index_key(self.table_name, column, old), record_id)
                    removed += 1
                new = assigned.get(column)
                if new is not None:
                    batch.sadd(index_key(self.table_name, column, new), record_id)
                    added += 1

            self._count_batch("update", added=added, removed=removed)
            batches.append(batch)

        await asyncio.gather(*(batch.execute() for batch in batches))

        self._metrics.records_affected_total.labels(
            table=self.table_name, operation="update"
        ).inc(len(batches))
        self._logger.debug("records_updated", matched=len(rows), changed=len(batches))
        return records

    # =========================================================================
    # Destroy
    # =========================================================================

    async def destroy_by_ids(self, ids: Sequence[str]) -> list[Record]:
        """Delete records and every index membership they hold.

        Returns:
            The records as they were before deletion. Missing ids are skipped.
        """
        with self._observe("destroy") as span:
            records = await self._destroy_by_ids(ids)
            span.set_attribute("record.count", len(records))
        return records

    async def destroy(self, criteria: Criteria) -> list[Record]:
        with self._observe("destroy") as span:
            ids = await self._fetch_ids(criteria.get("where"))
            records = await self._destroy_by_ids(ids)
            span.set_attribute("record.count", len(records))
        return records

    async def _destroy_by_ids(self, ids: Sequence[str]) -> list[Record]:
        ids = list(dict.fromkeys(ids))
        rows = await self._read(ids, self._columns())

        batches: list[CommandBatch] = []
        records: list[Record] = []
        for record_id, current in rows:
            records.append(unserialize_record(self._schema, current))

            batch = self._store.batch(atomic=True)
            batch.delete(record_key(self.table_name, record_id))
            removed = 0
            for column in self._schema.indexed_columns:
                token = current.get(column)
                if not is_empty(token):
                    batch.srem(index_key(self.table_name, column, token), record_id)
                    removed += 1

            self._count_batch("destroy", added=0, removed=removed)
            batches.append(batch)

        await asyncio.gather(*(batch.execute() for batch in batches))

        if records:
            self._metrics.records_affected_total.labels(
                table=self.table_name, operation="destroy"
            ).inc(len(records))
            self._logger.debug("records_destroyed", count=len(records))
        return records

    # =========================================================================
    # Drop
    # =========================================================================

    async def drop(self) -> int:
        """Delete every record and every index set of the table.

        Idempotent: dropping an empty table deletes nothing.

        Returns:
            Number of keys deleted.
        """
        with self._observe("drop"):
            deleted = sum(
                await asyncio.gather(
                    delete_matching(self._store, record_key(self.table_name), self._scan_count),
                    delete_matching(self._store, index_key(self.table_name), self._scan_count),
                )
            )

        self._metrics.dropped_keys_total.labels(table=self.table_name).inc(deleted)
        self._logger.info("table_dropped", deleted_keys=deleted)
        return deleted
