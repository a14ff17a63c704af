"""Key-value store port.

This outbound port defines the minimal command set the record store needs
from its backing store: hashes, sets, key existence, paginated pattern scans
and command batching.

Batches come in two flavors:
- atomic: all commands apply as one indivisible unit relative to every other
  client (``MULTI``/``EXEC`` on Redis)
- non-atomic: commands are only pipelined to save round trips

References:
    - Redis command reference: HASH, SET, SCAN, MULTI/EXEC
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, AsyncIterator, Mapping, Protocol, Sequence


class CommandBatch(Protocol):
    """A group of commands sent to the store in one round trip.

    Command methods only queue the command and return the batch so calls can
    be chained. ``execute`` sends the queued commands and returns one result
    per command, in queue order.
    """

    @property
    @abstractmethod
    def atomic(self) -> bool:
        """Whether the batch applies as one indivisible unit."""
        ...

    @abstractmethod
    def __len__(self) -> int:
        """Number of queued commands."""
        ...

    @abstractmethod
    def hset(self, key: str, mapping: Mapping[str, str]) -> CommandBatch: ...

    @abstractmethod
    def hdel(self, key: str, *fields: str) -> CommandBatch: ...

    @abstractmethod
    def hmget(self, key: str, fields: Sequence[str]) -> CommandBatch: ...

    @abstractmethod
    def delete(self, *keys: str) -> CommandBatch: ...

    @abstractmethod
    def exists(self, *keys: str) -> CommandBatch: ...

    @abstractmethod
    def sadd(self, key: str, *members: str) -> CommandBatch: ...

    @abstractmethod
    def srem(self, key: str, *members: str) -> CommandBatch: ...

    @abstractmethod
    async def execute(self) -> list[Any]:
        """Send the queued commands.

        Returns:
            One result per queued command. An empty batch returns ``[]``
            without contacting the store.

        Raises:
            Exception: Backend errors propagate unchanged. For atomic
                batches no command is applied when the batch fails to queue.
        """
        ...


class KeyValueStore(Protocol):
    """Protocol for the connection to a Redis-like key-value store.

    All methods are coroutines; many may be in flight at once on the same
    store instance.
    """

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the store answers commands."""
        ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Return every field of a hash (empty dict if absent)."""
        ...

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None:
        """Return one field of a hash."""
        ...

    @abstractmethod
    async def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        """Return the given fields of a hash, ``None`` for absent fields."""
        ...

    @abstractmethod
    async def hset(self, key: str, mapping: Mapping[str, str]) -> int:
        """Set hash fields; returns the number of new fields."""
        ...

    @abstractmethod
    async def hdel(self, key: str, *fields: str) -> int:
        """Delete hash fields; returns the number removed."""
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns the number removed."""
        ...

    @abstractmethod
    async def exists(self, *keys: str) -> int:
        """Count how many of the given keys exist."""
        ...

    @abstractmethod
    async def sadd(self, key: str, *members: str) -> int: ...

    @abstractmethod
    async def srem(self, key: str, *members: str) -> int: ...

    @abstractmethod
    async def smembers(self, key: str) -> set[str]: ...

    @abstractmethod
    async def sunion(self, *keys: str) -> set[str]: ...

    @abstractmethod
    async def sismember(self, key: str, member: str) -> bool: ...

    @abstractmethod
    def scan(self, match: str, count: int = 100) -> AsyncIterator[list[str]]:
        """Iterate the keys matching a glob pattern, one page at a time.

        Pages may be empty; iteration ends when the scan cursor completes.
        Keys written or deleted during the scan may or may not be reported.
        """
        ...

    @abstractmethod
    def batch(self, atomic: bool = True) -> CommandBatch:
        """Start a new command batch."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""
        ...
