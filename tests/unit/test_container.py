"""Unit tests for the dependency injection container."""

from __future__ import annotations

from typing import Generator

import pytest

from redis_schema.adapters.outbound.memory_store import InMemoryKeyValueStore
from redis_schema.application.datastore import DatastoreRegistry
from redis_schema.infrastructure.config import Config
from redis_schema.infrastructure.container import Container, get_container


@pytest.fixture
def container(test_config: Config) -> Generator[Container, None, None]:
    """Provide a fresh container built from the test configuration."""
    Container.reset()
    yield Container.create(test_config)
    Container.reset()


@pytest.mark.unit
class TestContainer:

    def test_wiring(self, container: Container, test_config: Config) -> None:
        assert container.config is test_config
        assert isinstance(container.datastores, DatastoreRegistry)
        assert container.datastores.identities == []

    def test_singleton(self, container: Container) -> None:
        assert Container.get() is container
        assert get_container() is container
        assert Container.create() is container

    def test_reset(self, container: Container) -> None:
        Container.reset()

        assert Container._instance is None

    def test_shutdown_closes_datastores(
        self, run, container: Container, memory_store: InMemoryKeyValueStore
    ) -> None:
        run(container.datastores.register("default", memory_store))

        run(Container.shutdown())

        assert Container._instance is None
        assert container.datastores.identities == []
        with pytest.raises(ConnectionError):
            run(memory_store.exists("user:1"))

    def test_shutdown_without_instance(self, run) -> None:
        Container.reset()

        run(Container.shutdown())

        assert Container._instance is None
