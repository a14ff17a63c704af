"""In-memory key-value store adapter.

Implements the KeyValueStore port with plain dictionaries, for tests and
local development without a Redis server. Semantics follow Redis where the
record store depends on them:

- an empty hash or set is removed, so ``exists`` reports it as absent
- ``delete`` removes keys of any kind
- ``scan`` matches glob patterns and pages through a snapshot of the keys

A batch applies all of its commands inside one synchronous step of the event
loop, so no other coroutine can observe it half-applied; atomic and
non-atomic batches therefore behave the same.
"""

from __future__ import annotations

import asyncio
from fnmatch import fnmatchcase
from typing import Any, AsyncIterator, Callable, Mapping, Sequence

from redis_schema.infrastructure.logging import get_logger

logger = get_logger(__name__)


class WrongTypeError(Exception):
    """Operation against a key holding the wrong kind of value."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"WRONGTYPE Operation against a key holding the wrong kind of value: {key}"
        )


class InMemoryCommandBatch:
    """Command batch that replays queued calls against an InMemoryKeyValueStore."""

    def __init__(self, store: InMemoryKeyValueStore, atomic: bool) -> None:
        self._store = store
        self._atomic = atomic
        self._commands: list[Callable[[], Any]] = []

    @property
    def atomic(self) -> bool:
        return self._atomic

    def __len__(self) -> int:
        return len(self._commands)

    def _queue(self, command: Callable[[], Any]) -> InMemoryCommandBatch:
        self._commands.append(command)
        return self

    def hset(self, key: str, mapping: Mapping[str, str]) -> InMemoryCommandBatch:
        values = dict(mapping)
        return self._queue(lambda: self._store._hset(key, values))

    def hdel(self, key: str, *fields: str) -> InMemoryCommandBatch:
        return self._queue(lambda: self._store._hdel(key, fields))

    def hmget(self, key: str, fields: Sequence[str]) -> InMemoryCommandBatch:
        names = list(fields)
        return self._queue(lambda: self._store._hmget(key, names))

    def delete(self, *keys: str) -> InMemoryCommandBatch:
        return self._queue(lambda: self._store._delete(keys))

    def exists(self, *keys: str) -> InMemoryCommandBatch:
        return self._queue(lambda: self._store._exists(keys))

    def sadd(self, key: str, *members: str) -> InMemoryCommandBatch:
        return self._queue(lambda: self._store._sadd(key, members))

    def srem(self, key: str, *members: str) -> InMemoryCommandBatch:
        return self._queue(lambda: self._store._srem(key, members))

    async def execute(self) -> list[Any]:
        if not self._commands:
            return []
        # Yield once so concurrent batches interleave like network round trips.
        await asyncio.sleep(0)
        self._store._check_failure()
        commands, self._commands = self._commands, []
        return [command() for command in commands]


class InMemoryKeyValueStore:
    """KeyValueStore implementation backed by dictionaries.

    Attributes:
        hashes: Hash keys mapped to their fields.
        sets: Set keys mapped to their members.
    """

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.sets: dict[str, set[str]] = {}
        self._closed = False
        self._fail_with: Exception | None = None

    # -------------------------------------------------------------------------
    # Test hooks
    # -------------------------------------------------------------------------

    def fail_next_batch(self, error: Exception) -> None:
        """Make the next executed batch raise ``error`` without applying."""
        self._fail_with = error

    def _check_failure(self) -> None:
        if self._closed:
            raise ConnectionError("Connection closed")
        if self._fail_with is not None:
            error, self._fail_with = self._fail_with, None
            raise error

    def keys(self, pattern: str = "*") -> list[str]:
        """Return every key matching a glob pattern, sorted."""
        return sorted(key for key in (*self.hashes, *self.sets) if fnmatchcase(key, pattern))

    # -------------------------------------------------------------------------
    # Synchronous primitives
    # -------------------------------------------------------------------------

    def _hash_for_write(self, key: str) -> dict[str, str]:
        if key in self.sets:
            raise WrongTypeError(key)
        return self.hashes.setdefault(key, {})

    def _set_for_write(self, key: str) -> set[str]:
        if key in self.hashes:
            raise WrongTypeError(key)
        return self.sets.setdefault(key, set())

    def _hset(self, key: str, mapping: Mapping[str, str]) -> int:
        fields = self._hash_for_write(key)
        added = sum(1 for name in mapping if name not in fields)
        fields.update({name: str(value) for name, value in mapping.items()})
        return added

    def _hdel(self, key: str, names: Sequence[str]) -> int:
        fields = self.hashes.get(key)
        if fields is None:
            return 0
        removed = sum(1 for name in set(names) if fields.pop(name, None) is not None)
        if not fields:
            del self.hashes[key]
        return removed

    def _hmget(self, key: str, names: Sequence[str]) -> list[str | None]:
        if key in self.sets:
            raise WrongTypeError(key)
        fields = self.hashes.get(key, {})
        return [fields.get(name) for name in names]

    def _delete(self, keys: Sequence[str]) -> int:
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    def _exists(self, keys: Sequence[str]) -> int:
        return sum(1 for key in keys if key in self.hashes or key in self.sets)

    def _sadd(self, key: str, members: Sequence[str]) -> int:
        current = self._set_for_write(key)
        added = sum(1 for member in set(members) if member not in current)
        current.update(members)
        return added

    def _srem(self, key: str, members: Sequence[str]) -> int:
        if key in self.hashes:
            raise WrongTypeError(key)
        current = self.sets.get(key)
        if current is None:
            return 0
        removed = sum(1 for member in set(members) if member in current)
        current.difference_update(members)
        if not current:
            del self.sets[key]
        return removed

    def _smembers(self, key: str) -> set[str]:
        if key in self.hashes:
            raise WrongTypeError(key)
        return set(self.sets.get(key, set()))

    # -------------------------------------------------------------------------
    # KeyValueStore port
    # -------------------------------------------------------------------------

    async def _call(self, command: Callable[[], Any]) -> Any:
        await asyncio.sleep(0)
        if self._closed:
            raise ConnectionError("Connection closed")
        return command()

    async def ping(self) -> bool:
        return await self._call(lambda: True)

    async def hgetall(self, key: str) -> dict[str, str]:
        def command() -> dict[str, str]:
            if key in self.sets:
                raise WrongTypeError(key)
            return dict(self.hashes.get(key, {}))

        return await self._call(command)

    async def hget(self, key: str, field: str) -> str | None:
        return (await self._call(lambda: self._hmget(key, [field])))[0]

    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        return await self._call(lambda: self._hmget(key, list(fields)))

    async def hset(self, key: str, mapping: Mapping[str, str]) -> int:
        return await self._call(lambda: self._hset(key, mapping))

    async def hdel(self, key: str, *fields: str) -> int:
        return await self._call(lambda: self._hdel(key, fields))

    async def delete(self, *keys: str) -> int:
        return await self._call(lambda: self._delete(keys))

    async def exists(self, *keys: str) -> int:
        return await self._call(lambda: self._exists(keys))

    async def sadd(self, key: str, *members: str) -> int:
        return await self._call(lambda: self._sadd(key, members))

    async def srem(self, key: str, *members: str) -> int:
        return await self._call(lambda: self._srem(key, members))

    async def smembers(self, key: str) -> set[str]:
        return await self._call(lambda: self._smembers(key))

    async def sunion(self, *keys: str) -> set[str]:
        def command() -> set[str]:
            result: set[str] = set()
            for key in keys:
                result |= self._smembers(key)
            return result

        return await self._call(command)

    async def sismember(self, key: str, member: str) -> bool:
        return await self._call(lambda: member in self._smembers(key))

    async def scan(self, match: str, count: int = 100) -> AsyncIterator[list[str]]:
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        snapshot = await self._call(lambda: self.keys(match))
        if not snapshot:
            yield []
            return
        for start in range(0, len(snapshot), count):
            await asyncio.sleep(0)
            yield snapshot[start:start + count]

    def batch(self, atomic: bool = True) -> InMemoryCommandBatch:
        return InMemoryCommandBatch(self, atomic)

    async def close(self) -> None:
        self._closed = True
        logger.debug("memory_store_closed")
