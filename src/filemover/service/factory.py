"""
Builds components from configuration.
"""

from __future__ import annotations

from filemover.catalog.base import ConfigStore
from filemover.catalog.http import HttpConfigStore
from filemover.catalog.static import StaticConfigStore
from filemover.config.loader import Config
from filemover.core.retry import RetryPolicy
from filemover.exceptions import ConfigurationError
from filemover.ledger.base import ProcessedFileLedger
from filemover.ledger.duckdb import DuckDBLedger
from filemover.ledger.http import HttpLedger
from filemover.ledger.memory import InMemoryLedger
from filemover.messaging.adapters.base import MessageBus
from filemover.messaging.adapters.memory import InMemoryBus
from filemover.messaging.adapters.rabbitmq import RabbitMQBus
from filemover.tenancy.connections import ConnectionRouter
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.resolver import DEFAULT_TENANT_TTL, TenantResolver
from filemover.utils.logging import get_logger

logger = get_logger("filemover.service.factory")


def build_bus(config: Config) -> MessageBus:
    url = str(config.broker.get("url") or "")
    if url.startswith("memory://"):
        return InMemoryBus(
            dedup_window=int(config.broker.get("dedup_window", 10_000)),
            requeue_delay=float(config.broker.get("requeue_delay_s", 1.0)),
            history_size=int(config.broker.get("history_size", 1000)),
        )
    if url.startswith(("amqp://", "amqps://")):
        return RabbitMQBus(url=url)
    raise ConfigurationError(f"Unsupported broker.url scheme: {url!r} (expected amqp://, amqps:// or memory://)")


def build_directory(config: Config) -> TenantDirectory:
    return TenantDirectory.from_config(config.tenants)


def build_router(config: Config, directory: TenantDirectory) -> ConnectionRouter:
    return ConnectionRouter(
        template=config.routing.get("template"),
        overrides=config.routing.get("overrides") or {},
        directory=directory,
    )


def build_resolver(config: Config, directory: TenantDirectory) -> TenantResolver:
    fallback = config.get("tenancy.dev_fallback_tenant")
    if fallback and not config.is_development:
        logger.warning(f"Ignoring tenancy.dev_fallback_tenant in '{config.environment}' environment")
        fallback = None
    return TenantResolver(
        directory,
        ttl=float(config.get("tenancy.cache_ttl_s", DEFAULT_TENANT_TTL)),
        fallback_tenant=fallback,
    )


def build_ledger(config: Config, router: ConnectionRouter) -> ProcessedFileLedger:
    ledger_type = str(config.get("ledger.type", "duckdb")).lower()
    if ledger_type == "duckdb":
        return DuckDBLedger(router)
    if ledger_type == "http":
        base_url = config.get("ledger.base_url") or config.get("catalog.base_url")
        if not base_url:
            raise ConfigurationError("ledger.type 'http' requires ledger.base_url or catalog.base_url")
        return HttpLedger(str(base_url), timeout=float(config.get("ledger.timeout_s", 30.0)))
    if ledger_type == "memory":
        return InMemoryLedger()
    raise ConfigurationError(f"Unknown ledger.type: {ledger_type!r}")


def build_catalog(config: Config, directory: TenantDirectory) -> ConfigStore:
    catalog_type = str(config.get("catalog.type", "static")).lower()
    if catalog_type == "static":
        return StaticConfigStore.from_config(directory, config.get("transfers"))
    if catalog_type == "http":
        base_url = config.get("catalog.base_url")
        if not base_url:
            raise ConfigurationError("catalog.type 'http' requires catalog.base_url")
        return HttpConfigStore(str(base_url), directory, timeout=float(config.get("catalog.timeout_s", 30.0)))
    raise ConfigurationError(f"Unknown catalog.type: {catalog_type!r}")


def build_retry_policy(config: Config) -> RetryPolicy:
    try:
        return RetryPolicy.from_config(config.consumer.get("retry"))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid consumer.retry settings: {e}") from e
