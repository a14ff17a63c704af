"""Pytest configuration and fixtures for redis_schema tests."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Awaitable, Callable, Generator, TypeVar

import pytest
from prometheus_client import CollectorRegistry

from redis_schema.adapters.outbound.memory_store import InMemoryKeyValueStore
from redis_schema.application.record_store import RecordStore
from redis_schema.domain.entities.schema import TableSchema
from redis_schema.infrastructure.config import Config, RedisConfig, StoreConfig
from redis_schema.infrastructure.metrics import MetricsRegistry

T = TypeVar("T")

USER_ATTRIBUTES: dict[str, dict[str, Any]] = {
    "id": {"type": "string"},
    "active": {"type": "boolean", "meta": {"index": True}},
    "age": {"type": "number"},
    "firstName": {"type": "string", "required": True, "meta": {"index": True}},
    "lastName": {"type": "string"},
    "pokemons": {"collection": "pokemon", "via": "owner"},
    "profile": {"collection": "profile", "via": "user"},
}

POKEMON_ATTRIBUTES: dict[str, dict[str, Any]] = {
    "id": {"type": "string"},
    "name": {"type": "string", "required": True},
    "owner": {"model": "user"},
}

PROFILE_ATTRIBUTES: dict[str, dict[str, Any]] = {
    "id": {"type": "string"},
    "bio": {"type": "string"},
    "user": {"model": "user"},
}


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration that never contacts Redis on its own."""
    return Config(
        redis=RedisConfig(url="redis://127.0.0.1:6379/15", ready_check=False),
        store=StoreConfig(scan_count=2, id_length=16),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def run() -> Generator[Callable[[Awaitable[T]], T], None, None]:
    """Run coroutines to completion on an event loop private to the test."""
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.close()


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def user_attributes() -> dict[str, dict[str, Any]]:
    """ORM-style definition of the user model."""
    return {name: dict(definition) for name, definition in USER_ATTRIBUTES.items()}


@pytest.fixture
def user_schema(user_attributes: dict[str, dict[str, Any]]) -> TableSchema:
    return TableSchema.from_definition(user_attributes, primary_key="id", table_name="user")


@pytest.fixture
def pokemon_schema() -> TableSchema:
    return TableSchema.from_definition(POKEMON_ATTRIBUTES, primary_key="id", table_name="pokemon")


@pytest.fixture
def profile_schema() -> TableSchema:
    return TableSchema.from_definition(PROFILE_ATTRIBUTES, primary_key="id", table_name="profile")


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Deterministic id factory: u0001, u0002, ..."""
    counter = itertools.count(1)
    return lambda: f"u{next(counter):04d}"


@pytest.fixture
def users(
    user_schema: TableSchema,
    memory_store: InMemoryKeyValueStore,
    metrics_registry: MetricsRegistry,
) -> RecordStore:
    return RecordStore(user_schema, memory_store, scan_count=2, metrics=metrics_registry)


@pytest.fixture
def pokemons(
    pokemon_schema: TableSchema,
    memory_store: InMemoryKeyValueStore,
    metrics_registry: MetricsRegistry,
) -> RecordStore:
    return RecordStore(pokemon_schema, memory_store, scan_count=2, metrics=metrics_registry)


@pytest.fixture
def profiles(
    profile_schema: TableSchema,
    memory_store: InMemoryKeyValueStore,
    metrics_registry: MetricsRegistry,
) -> RecordStore:
    return RecordStore(profile_schema, memory_store, scan_count=2, metrics=metrics_registry)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "redis: Tests against a live Redis server")
