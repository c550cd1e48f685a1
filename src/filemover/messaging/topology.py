"""
Runtime provisioning of tenant+config channels.

Channels are not declared up front: the first request for a (tenant, config)
pair declares the channel on the bus and records an immutable
ChannelBinding. Later requests return the recorded binding. Bindings are kept
for the process lifetime and are re-derived from the same pure naming
function after a restart.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from filemover.core.cache import SingleFlightCache
from filemover.messaging.adapters.base import MessageBus, dead_letter_name
from filemover.utils.logging import get_logger

logger = get_logger("filemover.messaging.topology")

CHANNEL_PREFIX = "transfer"

BindingListener = Callable[["ChannelBinding"], Awaitable[None]]


def channel_name(tenant_id: str, config_id: int) -> str:
    """``transfer-{tenant_id}-{config_id}``."""
    return f"{CHANNEL_PREFIX}-{tenant_id}-{config_id}"


@dataclass(frozen=True)
class ChannelBinding:
    tenant_id: str
    config_id: int
    channel_name: str

    @property
    def dead_letter_channel(self) -> str:
        return dead_letter_name(self.channel_name)


class TopologyRegistry:
    """
    Resolves and provisions channels exactly once per (tenant, config).

    N concurrent first calls for the same pair share a single provisioning;
    a failed provisioning is not recorded, so the next call retries it.
    Listeners registered with ``add_listener`` run once per new binding,
    inside that single provisioning.
    """

    def __init__(self, bus: MessageBus):
        self.bus = bus
        self._bindings: SingleFlightCache[tuple[str, int], ChannelBinding] = SingleFlightCache()
        self._listeners: list[BindingListener] = []

    def add_listener(self, listener: BindingListener) -> None:
        self._listeners.append(listener)

    async def get_binding(self, tenant_id: str, config_id: int) -> ChannelBinding:
        return await self._bindings.get_or_compute(
            (tenant_id, config_id), lambda: self._provision(tenant_id, config_id)
        )

    async def get_channel(self, tenant_id: str, config_id: int) -> str:
        """
        Channel name for (tenant, config), provisioning it on first use.

        Raises:
            MessagingError: If the bus cannot declare the channel
        """
        return (await self.get_binding(tenant_id, config_id)).channel_name

    def is_registered(self, tenant_id: str, config_id: int) -> bool:
        return (tenant_id, config_id) in self._bindings

    def list_bindings(self) -> list[ChannelBinding]:
        return sorted((b for _, b in self._bindings.items()), key=lambda b: (b.tenant_id, b.config_id))

    @property
    def provision_count(self) -> int:
        """Provisioning attempts made so far, failed ones included."""
        return self._bindings.computations

    async def _provision(self, tenant_id: str, config_id: int) -> ChannelBinding:
        binding = ChannelBinding(tenant_id=tenant_id, config_id=config_id, channel_name=channel_name(tenant_id, config_id))
        await self.bus.declare_channel(binding.channel_name)
        logger.info(f"Provisioned channel {binding.channel_name}")

        for listener in self._listeners:
            try:
                await listener(binding)
            except Exception as e:
                logger.error(f"Channel listener failed for {binding.channel_name}: {e}", exc_info=True)
        return binding
