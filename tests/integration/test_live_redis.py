"""Record store tests against a live Redis server.

Skipped unless REDIS_SCHEMA_TEST_REDIS_URL points at a disposable database,
e.g. ``redis://127.0.0.1:6379/15``. Each test drops the tables it uses.
"""

from __future__ import annotations

import os
from typing import Any, Generator

import pytest

from redis_schema.adapters.outbound.redis_store import RedisKeyValueStore
from redis_schema.application.record_store import RecordStore
from redis_schema.domain.entities.schema import TableSchema
from redis_schema.domain.errors import UniqueConstraintError
from redis_schema.domain.services.key_naming import index_key
from redis_schema.infrastructure.config import RedisConfig
from redis_schema.infrastructure.metrics import MetricsRegistry

REDIS_URL = os.environ.get("REDIS_SCHEMA_TEST_REDIS_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.redis,
    pytest.mark.skipif(not REDIS_URL, reason="REDIS_SCHEMA_TEST_REDIS_URL is not set"),
]


@pytest.fixture
def redis_store(run) -> Generator[RedisKeyValueStore, None, None]:
    store = run(RedisKeyValueStore.connect(RedisConfig(url=REDIS_URL or "")))
    yield store
    run(store.close())


@pytest.fixture
def live_users(
    run,
    redis_store: RedisKeyValueStore,
    user_attributes: dict[str, dict[str, Any]],
    metrics_registry: MetricsRegistry,
) -> Generator[RecordStore, None, None]:
    schema = TableSchema.from_definition(
        user_attributes, primary_key="id", table_name="redis_schema_test_user"
    )
    users = RecordStore(schema, redis_store, scan_count=10, metrics=metrics_registry)
    run(users.drop())
    yield users
    run(users.drop())


def test_lifecycle(run, live_users: RecordStore, redis_store: RedisKeyValueStore) -> None:
    table = live_users.table_name
    user = run(live_users.create({"firstName": "Ada", "lastName": "Lovelace", "active": True}))

    assert run(redis_store.sismember(index_key(table, "firstName", "Ada"), user["id"]))
    assert run(live_users.find({"where": {"firstName": "Ada"}})) == [user]

    with pytest.raises(UniqueConstraintError):
        run(live_users.create({"id": user["id"], "firstName": "Grace"}))

    run(live_users.update_by_ids([user["id"]], {"firstName": "Grace", "lastName": None}))
    assert run(live_users.find({"where": {"firstName": "Ada"}})) == []
    assert run(live_users.find_one({"where": {"firstName": "Grace"}})) == {
        "id": user["id"],
        "firstName": "Grace",
        "active": True,
    }

    assert run(live_users.destroy({"where": {"id": user["id"]}}))
    assert run(live_users.count(user["id"])) == 0
    assert run(redis_store.smembers(index_key(table, "active", "true"))) == set()


def test_drop(run, live_users: RecordStore, redis_store: RedisKeyValueStore) -> None:
    run(live_users.create_each([{"firstName": f"User {i}"} for i in range(25)]))

    assert run(live_users.drop()) == 50
    assert run(live_users.drop()) == 0
