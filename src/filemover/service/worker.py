"""
Long-running worker: detection scheduler plus transfer consumers.

Wiring::

    DetectionScheduler --scan--> Scanner --publish--> EventPublisher
            |                                              |
            +--on_register--> TopologyRegistry <-----------+
                                   |
                                   +--listener--> TransferConsumer.attach
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any

from aiohttp import web

from filemover.catalog.base import ConfigStore
from filemover.config.loader import Config
from filemover.detection.dedup import DedupEngine
from filemover.detection.scanner import Scanner
from filemover.detection.scheduler import DetectionScheduler
from filemover.ledger.base import ProcessedFileLedger
from filemover.messaging.adapters.base import MessageBus
from filemover.messaging.publisher import EventPublisher
from filemover.messaging.topology import TopologyRegistry
from filemover.service import factory
from filemover.service.http import create_app
from filemover.transfer.consumer import TransferConsumer
from filemover.utils.logging import get_logger

logger = get_logger("filemover.service.worker")


class FileMoverWorker:
    """
    Owns every component of a running worker.

    Components can be injected (tests); anything not given is built from
    ``config``.
    """

    def __init__(
        self,
        config: Config,
        *,
        bus: MessageBus | None = None,
        ledger: ProcessedFileLedger | None = None,
        catalog: ConfigStore | None = None,
    ):
        config.validate()
        self.config = config

        self.directory = factory.build_directory(config)
        self.resolver = factory.build_resolver(config, self.directory)
        self.router = factory.build_router(config, self.directory)
        self.bus = bus or factory.build_bus(config)
        self.ledger = ledger or factory.build_ledger(config, self.router)
        self.catalog = catalog or factory.build_catalog(config, self.directory)

        self.topology = TopologyRegistry(self.bus)
        self.publisher = EventPublisher(self.bus, self.topology)
        self.dedup = DedupEngine(self.ledger)
        self.scanner = Scanner(self.resolver, self.catalog, self.dedup, self.publisher)
        self.scheduler = DetectionScheduler(
            self.scanner,
            self.catalog,
            discovery_interval=float(config.scheduler.get("discovery_interval_s", 60.0)),
            timezone=config.scheduler.get("timezone"),
        )
        self.consumer = TransferConsumer(
            self.bus,
            policy=factory.build_retry_policy(config),
            concurrency=int(config.consumer.get("concurrency", 4)),
        )

        # New schedules get their channel up front
        self.scheduler.on_register(self._provision_channel)

        self._http_runner: web.AppRunner | None = None

    async def _provision_channel(self, tenant_id: str, config_id: int) -> None:
        await self.topology.get_channel(tenant_id, config_id)

    async def start(self, *, enable_scheduler: bool = True, enable_consumer: bool = True) -> None:
        await self.bus.connect()
        if enable_consumer:
            # Every provisioned channel gets a consumer
            self.topology.add_listener(self.consumer.attach)
        if enable_scheduler:
            self.scheduler.start()
        await self._start_http()
        logger.info(f"FileMover worker started (environment={self.config.environment})")

    async def _start_http(self) -> None:
        http_config = self.config.get("service.http", {}) or {}
        if not http_config.get("enabled", False):
            return
        host = str(http_config.get("host", "127.0.0.1"))
        port = int(http_config.get("port", 8080))
        self._http_runner = web.AppRunner(create_app(self), access_log=None)
        await self._http_runner.setup()
        await web.TCPSite(self._http_runner, host, port).start()
        logger.info(f"Status endpoints on http://{host}:{port}")

    async def stop(self) -> None:
        """
        Graceful shutdown: stop scheduling, let in-flight scans and
        transfers finish, then close connections.
        """
        if self._http_runner is not None:
            await self._http_runner.cleanup()
            self._http_runner = None
        await self.scheduler.stop()
        await self.bus.stop()
        await self.bus.disconnect()
        await self.ledger.close()
        await self.catalog.close()
        logger.info(
            f"FileMover worker stopped (transfers: {self.consumer.stats.succeeded} ok, "
            f"{self.consumer.stats.dead_lettered} dead-lettered)"
        )

    async def __aenter__(self) -> FileMoverWorker:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()


async def serve(
    worker: FileMoverWorker,
    stop_event: asyncio.Event | None = None,
    *,
    enable_scheduler: bool = True,
    enable_consumer: bool = True,
) -> None:
    """Run ``worker`` until ``stop_event`` is set or SIGINT/SIGTERM arrives."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    await worker.start(enable_scheduler=enable_scheduler, enable_consumer=enable_consumer)
    try:
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await worker.stop()


def run_worker(config: Config) -> None:
    """Run the worker (blocking)."""
    asyncio.run(serve(FileMoverWorker(config)))
