"""Unit tests for the scan-and-delete sweeper."""

from __future__ import annotations

from typing import AsyncIterator

import pytest

from redis_schema.adapters.outbound.memory_store import InMemoryKeyValueStore
from redis_schema.application.bulk_delete import delete_matching


class FailingScanStore(InMemoryKeyValueStore):
    """Store whose scan breaks after the first page."""

    async def scan(self, match: str, count: int = 100) -> AsyncIterator[list[str]]:
        yield self.keys(match)[:count]
        raise ConnectionError("connection lost during SCAN")


@pytest.mark.unit
class TestDeleteMatching:
    """Tests for delete_matching."""

    def test_deletes_every_matching_key(self, run, memory_store: InMemoryKeyValueStore) -> None:
        for i in range(7):
            memory_store._hset(f"user:{i}", {"id": str(i)})
        memory_store._hset("pokemon:1", {"id": "1"})

        assert run(delete_matching(memory_store, "user:*", page_size=3)) == 7
        assert memory_store.keys() == ["pokemon:1"]

    def test_no_matches(self, run, memory_store: InMemoryKeyValueStore) -> None:
        assert run(delete_matching(memory_store, "user:*")) == 0

    def test_idempotent(self, run, memory_store: InMemoryKeyValueStore) -> None:
        memory_store._sadd("user.index:firstName:abc", ["1"])

        assert run(delete_matching(memory_store, "user.index:*")) == 1
        assert run(delete_matching(memory_store, "user.index:*")) == 0

    def test_scan_error_waits_for_started_batches(self, run) -> None:
        store = FailingScanStore()
        for i in range(4):
            store._hset(f"user:{i}", {"id": str(i)})

        with pytest.raises(ConnectionError):
            run(delete_matching(store, "user:*", page_size=2))

        # The first page was deleted before the error surfaced
        assert store.keys() == ["user:2", "user:3"]

    def test_batch_error_propagates(self, run, memory_store: InMemoryKeyValueStore) -> None:
        memory_store._hset("user:1", {"id": "1"})
        memory_store.fail_next_batch(RuntimeError("READONLY"))

        with pytest.raises(RuntimeError, match="READONLY"):
            run(delete_matching(memory_store, "user:*"))
