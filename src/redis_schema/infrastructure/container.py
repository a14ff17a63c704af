"""Dependency injection container for the record store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace

from redis_schema.application.datastore import DatastoreRegistry
from redis_schema.infrastructure.config import Config, get_config
from redis_schema.infrastructure.logging import setup_logging
from redis_schema.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from redis_schema.infrastructure.tracing import setup_tracing


@dataclass
class Container:
    """Dependency injection container for record store components."""

    config: Config
    logger: structlog.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry
    datastores: DatastoreRegistry

    _instance: ClassVar[Container | None] = None

    @classmethod
    def create(cls, config: Config | None = None) -> Container:
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = config or get_config()
        observability = config.observability

        logger = setup_logging(observability.log_level, observability.log_format)
        tracer = setup_tracing(
            service_name=observability.otel_service_name,
            otlp_endpoint=observability.otel_endpoint,
        )
        if observability.metrics_port is not None:
            metrics = setup_metrics(observability.metrics_port)
        else:
            metrics = get_metrics()

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
            datastores=DatastoreRegistry(config, metrics=metrics),
        )

        logger.info(
            "redis_schema_container_initialized",
            metrics_port=observability.metrics_port,
        )

        return cls._instance

    @classmethod
    def get(cls) -> Container:
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    async def shutdown(cls) -> None:
        """Close every registered datastore and drop the singleton."""
        instance, cls._instance = cls._instance, None
        if instance is None:
            return
        identities = instance.datastores.identities
        await instance.datastores.close_all()
        instance.logger.info("redis_schema_container_shutdown", datastores=identities)

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
