"""Scan-and-delete sweeper used by table drops.

Keys are discovered with a paginated ``SCAN`` and every non-empty page is
deleted in its own pipelined ``DEL`` batch. Delete batches are started
without waiting for them so the scan keeps streaming; each one is tracked and
all of them are awaited before the sweep reports completion.

A key created while the sweep is running may survive it. Running the sweep
again removes it, and sweeping an already empty pattern is a no-op.
"""

from __future__ import annotations

import asyncio

from redis_schema.infrastructure.logging import get_logger
from redis_schema.ports.outbound.key_value_store import KeyValueStore

logger = get_logger(__name__)


async def _delete_page(store: KeyValueStore, keys: list[str]) -> int:
    results = await store.batch(atomic=False).delete(*keys).execute()
    return int(results[0]) if results else 0


async def delete_matching(store: KeyValueStore, pattern: str, page_size: int = 100) -> int:
    """Delete every key matching a glob pattern.

    Args:
        store: Key-value store to sweep.
        pattern: Glob pattern handed to ``SCAN MATCH``.
        page_size: ``SCAN COUNT`` hint.

    Returns:
        Number of keys deleted.

    Raises:
        Exception: Scan and delete errors propagate. When the scan fails,
            already started delete batches are awaited first.
    """
    in_flight: list[asyncio.Future[int]] = []

    try:
        async for page in store.scan(match=pattern, count=page_size):
            if not page:
                continue
            in_flight.append(asyncio.ensure_future(_delete_page(store, page)))
    except BaseException:
        await asyncio.gather(*in_flight, return_exceptions=True)
        raise

    results = await asyncio.gather(*in_flight, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result

    deleted = sum(results)
    logger.debug("keys_swept", pattern=pattern, batches=len(in_flight), deleted=deleted)
    return deleted
