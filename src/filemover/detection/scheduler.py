"""
Per (tenant, config) detection scheduling.

Each registered config owns an independent timer task. A discovery loop
lists active tenants and configs on a coarse interval and registers,
refreshes or unregisters schedules to match. There is no global lock: one
tenant's slow scan never delays another's timer.

State per schedule::

    unscheduled -> scheduled -> running -> scheduled
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from filemover.catalog.base import ConfigStore
from filemover.detection.cron_parser import CronParseError, Schedule, parse_schedule
from filemover.detection.scanner import Scanner, ScanResult, ScanStatus
from filemover.exceptions import FileMoverError, SchedulingOverlap
from filemover.utils.logging import get_logger

logger = get_logger("filemover.detection.scheduler")

ScheduleKey = tuple[str, int]
RegisterHook = Callable[[str, int], Awaitable[None]]


class ScheduleState(StrEnum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    RUNNING = "running"


@dataclass
class ScheduleEntry:
    tenant_id: str
    config_id: int
    schedule: Schedule
    state: ScheduleState = ScheduleState.SCHEDULED
    next_fire: datetime | None = None
    last_run: datetime | None = None
    last_result: ScanResult | None = None
    runs: int = 0
    dropped: int = 0
    timer: asyncio.Task | None = field(default=None, repr=False)

    @property
    def key(self) -> ScheduleKey:
        return (self.tenant_id, self.config_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "config_id": self.config_id,
            "schedule": self.schedule.expression,
            "state": str(self.state),
            "next_fire": self.next_fire.isoformat() if self.next_fire else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "runs": self.runs,
            "dropped": self.dropped,
        }


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DetectionScheduler:
    """
    Drives scans for every active transfer config.

    Args:
        scanner: Performs the actual scan
        catalog: Source of active tenants and configs
        discovery_interval: Seconds between discovery passes
        timezone: Zone cron expressions are evaluated in (default UTC)
        clock: Returns the current aware datetime
        sleep: Timer sleep, replaceable in tests
    """

    def __init__(
        self,
        scanner: Scanner,
        catalog: ConfigStore,
        discovery_interval: float = 60.0,
        timezone: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.scanner = scanner
        self.catalog = catalog
        self.discovery_interval = discovery_interval
        self.timezone = timezone
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[ScheduleKey, ScheduleEntry] = {}
        self._running: dict[ScheduleKey, asyncio.Task] = {}
        self._hooks: list[RegisterHook] = []
        self._discovery_task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    # --- registration -------------------------------------------------------

    def on_register(self, hook: RegisterHook) -> None:
        """Call ``hook(tenant_id, config_id)`` whenever a schedule is registered."""
        self._hooks.append(hook)

    def is_registered(self, tenant_id: str, config_id: int) -> bool:
        return (tenant_id, config_id) in self._entries

    def get_entry(self, tenant_id: str, config_id: int) -> ScheduleEntry | None:
        return self._entries.get((tenant_id, config_id))

    async def register(self, tenant_id: str, config_id: int, schedule_spec: str | None) -> ScheduleEntry:
        """
        Register a schedule, or refresh it if the spec changed.

        Raises:
            CronParseError: If ``schedule_spec`` is not a valid schedule
        """
        schedule = parse_schedule(schedule_spec)
        # Rejects expressions that can never fire, e.g. "0 0 30 2 *"
        schedule.next_fire(self._clock(), self.timezone)
        key = (tenant_id, config_id)
        entry = self._entries.get(key)

        if entry is not None:
            if entry.schedule.expression != schedule.expression:
                logger.info(
                    f"Rescheduling tenant='{tenant_id}' config={config_id}: "
                    f"{entry.schedule.expression!r} -> {schedule.expression!r}"
                )
                self._cancel_timer(entry)
                entry.schedule = schedule
                self._start_timer(entry)
            return entry

        entry = ScheduleEntry(tenant_id=tenant_id, config_id=config_id, schedule=schedule)
        self._entries[key] = entry
        self._start_timer(entry)
        logger.info(f"Scheduled tenant='{tenant_id}' config={config_id} ({schedule.expression})")

        for hook in self._hooks:
            try:
                await hook(tenant_id, config_id)
            except Exception as e:
                logger.error(f"Register hook failed for tenant='{tenant_id}' config={config_id}: {e}")
        return entry

    def unregister(self, tenant_id: str, config_id: int) -> None:
        """Stop scheduling a config; a scan already running is left to finish."""
        entry = self._entries.pop((tenant_id, config_id), None)
        if entry is None:
            return
        self._cancel_timer(entry)
        entry.state = ScheduleState.UNSCHEDULED
        entry.next_fire = None
        logger.info(f"Unscheduled tenant='{tenant_id}' config={config_id}")

    # --- discovery ----------------------------------------------------------

    async def discover(self) -> None:
        """
        Match registered schedules to the active configs.

        A tenant whose configs cannot be listed keeps its current schedules.
        """
        try:
            tenant_ids = await self.catalog.list_active_tenants()
        except Exception as e:
            logger.error(f"Discovery could not list active tenants: {e}")
            return

        seen: set[ScheduleKey] = set()
        for tenant_id in tenant_ids:
            try:
                configs = await self.catalog.list_active_configs(tenant_id)
            except Exception as e:
                logger.error(f"Discovery could not list configs for tenant '{tenant_id}': {e}")
                seen.update(key for key in self._entries if key[0] == tenant_id)
                continue

            for config in configs:
                key = (tenant_id, config.config_id)
                try:
                    await self.register(tenant_id, config.config_id, config.schedule_spec)
                except CronParseError as e:
                    logger.error(f"Invalid schedule for tenant='{tenant_id}' config={config.config_id}: {e}")
                    continue
                seen.add(key)

        for key in [k for k in self._entries if k not in seen]:
            self.unregister(*key)

    async def _discovery_loop(self) -> None:
        while not self._stopping.is_set():
            await self.discover()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.discovery_interval)
            except TimeoutError:
                pass

    # --- timers and runs ----------------------------------------------------

    def _start_timer(self, entry: ScheduleEntry) -> None:
        entry.state = ScheduleState.SCHEDULED
        entry.timer = asyncio.create_task(self._timer(entry))

    def _cancel_timer(self, entry: ScheduleEntry) -> None:
        if entry.timer is not None and not entry.timer.done():
            entry.timer.cancel()
        entry.timer = None

    async def _timer(self, entry: ScheduleEntry) -> None:
        last_fire: datetime | None = None
        while not self._stopping.is_set():
            now = self._clock()
            # A wake-up slightly ahead of the wall clock must not fire the same boundary twice
            base = now if last_fire is None else max(now, last_fire)
            entry.next_fire = entry.schedule.next_fire(base, self.timezone)
            delay = max(0.0, (entry.next_fire - now).total_seconds())
            await self._sleep(delay)
            last_fire = entry.next_fire
            self._fire(entry.key)

    def _fire(self, key: ScheduleKey) -> asyncio.Task | None:
        running = self._running.get(key)
        if running is not None and not running.done():
            logger.warning(str(SchedulingOverlap(*key)) + "; trigger dropped")
            entry = self._entries.get(key)
            if entry is not None:
                entry.dropped += 1
            return None
        task = asyncio.create_task(self._run(key))
        self._running[key] = task
        return task

    async def _run(self, key: ScheduleKey) -> ScanResult:
        tenant_id, config_id = key
        entry = self._entries.get(key)
        if entry is not None:
            entry.state = ScheduleState.RUNNING

        try:
            result = await self.scanner.scan(tenant_id, config_id)
        except FileMoverError as e:
            logger.warning(f"Scan failed for tenant='{tenant_id}' config={config_id}: {e}")
            result = ScanResult(tenant_id=tenant_id, config_id=config_id).finish(ScanStatus.FAILED, str(e))
        except Exception as e:
            logger.error(f"Unexpected scan error for tenant='{tenant_id}' config={config_id}: {e}", exc_info=True)
            result = ScanResult(tenant_id=tenant_id, config_id=config_id).finish(ScanStatus.FAILED, str(e))
        finally:
            self._running.pop(key, None)

        if entry is not None:
            entry.last_run = result.started_at
            entry.last_result = result
            entry.runs += 1
            if self._entries.get(key) is entry:
                entry.state = ScheduleState.SCHEDULED
        return result

    async def trigger(self, tenant_id: str, config_id: int) -> ScanResult:
        """
        Run a scan now, registered or not, and wait for it.

        Raises:
            SchedulingOverlap: If a scan for this config is already running
        """
        task = self._fire((tenant_id, config_id))
        if task is None:
            raise SchedulingOverlap(tenant_id, config_id)
        return await task

    # --- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        self._stopping.clear()
        self._discovery_task = asyncio.create_task(self._discovery_loop())
        logger.info(f"Detection scheduler started (discovery every {self.discovery_interval:g}s)")

    async def stop(self) -> None:
        """Stop discovery and timers, then wait for in-flight scans."""
        self._stopping.set()
        tasks = []
        if self._discovery_task is not None:
            self._discovery_task.cancel()
            tasks.append(self._discovery_task)
            self._discovery_task = None
        for entry in self._entries.values():
            if entry.timer is not None:
                tasks.append(entry.timer)
            self._cancel_timer(entry)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._running:
            await asyncio.gather(*list(self._running.values()), return_exceptions=True)
        logger.info("Detection scheduler stopped")

    def status(self) -> dict[str, Any]:
        """Scheduler status for the CLI and logs."""
        return {
            "running": self._discovery_task is not None and not self._discovery_task.done(),
            "scheduled": len(self._entries),
            "active_scans": sum(1 for t in self._running.values() if not t.done()),
            "schedules": [e.to_dict() for _, e in sorted(self._entries.items())],
        }
