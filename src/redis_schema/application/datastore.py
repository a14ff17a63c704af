"""Datastores: one key-value connection and the tables defined on it.

A ``Datastore`` owns a single ``KeyValueStore`` shared by the record stores
of all its tables. A ``DatastoreRegistry`` keeps the open datastores of a
process by identity, connecting to Redis on registration and closing the
connection on teardown.

Usage:
    registry = DatastoreRegistry(config)
    datastore = await registry.register("default")
    users = datastore.define_table(
        {"id": {"type": "string"}, "firstName": {"type": "string", "meta": {"index": True}}},
        primary_key="id",
        table_name="user",
    )
    ...
    await registry.close_all()
"""

from __future__ import annotations

from typing import Any, Mapping

from redis_schema.adapters.outbound.redis_store import RedisKeyValueStore
from redis_schema.application.record_store import RecordStore
from redis_schema.domain.entities.schema import TableSchema
from redis_schema.domain.errors import DatastoreError
from redis_schema.infrastructure.config import Config, StoreConfig
from redis_schema.infrastructure.logging import get_logger
from redis_schema.infrastructure.metrics import MetricsRegistry, get_metrics
from redis_schema.ports.outbound.key_value_store import KeyValueStore

logger = get_logger(__name__)


class Datastore:
    """A key-value connection together with the tables defined on it."""

    def __init__(
        self,
        identity: str,
        store: KeyValueStore,
        *,
        store_config: StoreConfig | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._identity = identity
        self._store = store
        self._store_config = store_config or StoreConfig()
        self._metrics = metrics or get_metrics()
        self._tables: dict[str, RecordStore] = {}

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def tables(self) -> dict[str, RecordStore]:
        """Record stores keyed by table name."""
        return dict(self._tables)

    def define(self, schema: TableSchema) -> RecordStore:
        """Create the record store of a table.

        Raises:
            DatastoreError: If the table is already defined.
        """
        if schema.table_name in self._tables:
            raise DatastoreError(
                f'Table "{schema.table_name}" is already defined on datastore "{self._identity}"'
            )

        table = RecordStore(
            schema,
            self._store,
            scan_count=self._store_config.scan_count,
            metrics=self._metrics,
            id_length=self._store_config.id_length,
        )
        self._tables[schema.table_name] = table
        self._metrics.tables_registered.inc()

        logger.info(
            "table_defined",
            datastore=self._identity,
            table=schema.table_name,
            indexes=list(schema.indexed_columns),
        )
        return table

    def define_table(
        self,
        attributes: Mapping[str, Mapping[str, Any]],
        primary_key: str,
        table_name: str,
    ) -> RecordStore:
        """Build a schema from ORM-style metadata and define the table."""
        return self.define(TableSchema.from_definition(attributes, primary_key, table_name))

    def table(self, name: str) -> RecordStore:
        """Return the record store of a table.

        Raises:
            DatastoreError: If no such table is defined.
        """
        table = self._tables.get(name)
        if table is None:
            raise DatastoreError(f'Unknown table "{name}" on datastore "{self._identity}"')
        return table

    async def close(self) -> None:
        """Forget every table and close the connection."""
        if self._tables:
            self._metrics.tables_registered.dec(len(self._tables))
            self._tables.clear()
        await self._store.close()


class DatastoreRegistry:
    """Open datastores of the process, keyed by identity."""

    def __init__(self, config: Config, metrics: MetricsRegistry | None = None) -> None:
        self._config = config
        self._metrics = metrics or get_metrics()
        self._datastores: dict[str, Datastore] = {}

    @property
    def identities(self) -> list[str]:
        return list(self._datastores)

    def __contains__(self, identity: object) -> bool:
        return identity in self._datastores

    async def register(self, identity: str, store: KeyValueStore | None = None) -> Datastore:
        """Open a datastore.

        Args:
            identity: Unique name of the datastore.
            store: Connection to use; when omitted a Redis connection is made
                from ``config.redis`` (running its ready check).

        Raises:
            DatastoreError: If the identity is empty or already registered.
            redis.exceptions.ConnectionError: If Redis cannot be reached.
        """
        if not identity:
            raise DatastoreError("A datastore must have an identity")
        if identity in self._datastores:
            raise DatastoreError(f'Datastore "{identity}" is already registered')

        if store is None:
            store = await RedisKeyValueStore.connect(self._config.redis)

        datastore = Datastore(
            identity,
            store,
            store_config=self._config.store,
            metrics=self._metrics,
        )
        self._datastores[identity] = datastore

        logger.info("datastore_registered", datastore=identity)
        return datastore

    def get(self, identity: str) -> Datastore:
        """Return a registered datastore.

        Raises:
            DatastoreError: If the identity is not registered.
        """
        datastore = self._datastores.get(identity)
        if datastore is None:
            raise DatastoreError(f'Datastore "{identity}" is not registered')
        return datastore

    async def teardown(self, identity: str) -> None:
        """Close a datastore and forget it.

        Raises:
            DatastoreError: If the identity is not registered.
        """
        datastore = self._datastores.pop(identity, None)
        if datastore is None:
            raise DatastoreError(f'Cannot tear down unknown datastore "{identity}"')
        await datastore.close()
        logger.info("datastore_torn_down", datastore=identity)

    async def close_all(self) -> None:
        """Tear down every registered datastore."""
        for identity in list(self._datastores):
            await self.teardown(identity)
