"""
In-process message bus on asyncio queues.

Used by tests and single-process runs. Messages do not survive a restart.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict, defaultdict, deque
from datetime import UTC, datetime

from filemover.exceptions import MessagingError
from filemover.messaging.adapters.base import (
    DEDUP_HEADER,
    Message,
    MessageBus,
    MessageHandler,
    dead_letter_name,
)
from filemover.utils.logging import get_logger

logger = get_logger("filemover.messaging.memory")


class _Worker:
    def __init__(self) -> None:
        self.task: asyncio.Task | None = None
        self.busy = False


class InMemoryBus(MessageBus):
    """
    Message bus backed by one ``asyncio.Queue`` per channel.

    Publishing with a ``dedup_key`` already seen on the channel (within the
    last ``dedup_window`` keys) is dropped, mimicking broker-side dedup.
    A handler that raises has its message put back after ``requeue_delay``.

    ``published`` and ``dead_letters`` keep only the most recent
    ``history_size`` messages (per channel for dead letters); nothing consumes
    dead-letter channels in-process.

    Args:
        dedup_window: Number of recent dedup keys remembered per channel
        requeue_delay: Seconds before a failed message is redelivered
        history_size: Messages kept in ``published`` and per ``dead_letters`` channel
    """

    def __init__(self, dedup_window: int = 10_000, requeue_delay: float = 1.0, history_size: int = 1000):
        self.dedup_window = dedup_window
        self.requeue_delay = requeue_delay
        self.history_size = history_size
        self.declare_counts: dict[str, int] = defaultdict(int)
        self.published: deque[Message] = deque(maxlen=history_size)
        self.dead_letters: dict[str, deque[Message]] = defaultdict(lambda: deque(maxlen=self.history_size))
        self._declared: set[str] = set()
        self._queues: dict[str, asyncio.Queue[Message]] = {}
        self._seen: dict[str, OrderedDict[str, None]] = defaultdict(OrderedDict)
        self._workers: dict[str, list[_Worker]] = defaultdict(list)
        self._connected = False
        self._stopping = False

    async def connect(self) -> None:
        self._connected = True
        self._stopping = False
        logger.debug("In-memory bus connected")

    async def disconnect(self) -> None:
        self._connected = False

    def _require_connected(self) -> None:
        if not self._connected:
            raise MessagingError("Message bus not connected. Call connect() first.")

    async def declare_channel(self, channel: str) -> None:
        self._require_connected()
        self.declare_counts[channel] += 1
        self._declared.update((channel, dead_letter_name(channel)))
        self._queues.setdefault(channel, asyncio.Queue())

    def is_declared(self, channel: str) -> bool:
        return channel in self._declared

    async def publish(self, channel: str, message: Message, *, dedup_key: str | None = None) -> None:
        self._require_connected()
        queue = self._queues.get(channel)
        if queue is None:
            raise MessagingError(f"Channel '{channel}' has not been declared", details={"channel": channel})

        if dedup_key:
            seen = self._seen[channel]
            if dedup_key in seen:
                logger.debug(f"Dropping duplicate message {dedup_key} on {channel}")
                return
            seen[dedup_key] = None
            if len(seen) > self.dedup_window:
                seen.popitem(last=False)
            message.message_id = dedup_key
            message.headers[DEDUP_HEADER] = dedup_key

        message.channel = channel
        message.timestamp = message.timestamp or datetime.now(UTC)
        self.published.append(message)
        queue.put_nowait(message)

    async def subscribe(self, channel: str, handler: MessageHandler, *, concurrency: int = 4) -> None:
        self._require_connected()
        if channel not in self._queues:
            await self.declare_channel(channel)
        queue = self._queues[channel]
        for _ in range(max(1, concurrency)):
            worker = _Worker()
            worker.task = asyncio.create_task(self._run_worker(channel, queue, handler, worker))
            self._workers[channel].append(worker)
        logger.debug(f"Subscribed to {channel} with concurrency {concurrency}")

    async def _run_worker(
        self, channel: str, queue: asyncio.Queue[Message], handler: MessageHandler, worker: _Worker
    ) -> None:
        while not self._stopping:
            message = await queue.get()
            worker.busy = True
            try:
                await handler(message)
            except Exception as e:
                logger.error(f"Handler for {channel} failed, requeueing: {e}")
                self._requeue(queue, message)
            finally:
                worker.busy = False
                queue.task_done()

    def _requeue(self, queue: asyncio.Queue[Message], message: Message) -> None:
        if self._stopping:
            return
        message.redelivered = True
        asyncio.get_running_loop().call_later(self.requeue_delay, queue.put_nowait, message)

    async def dead_letter(self, channel: str, message: Message) -> None:
        self._require_connected()
        name = dead_letter_name(channel)
        message.channel = name
        self.dead_letters[channel].append(message)
        logger.debug(f"Dead-lettered message {message.message_id} to {name}")

    async def join(self, channel: str) -> None:
        """Wait until every message published to ``channel`` so far has been handled."""
        queue = self._queues.get(channel)
        if queue is not None:
            await queue.join()

    async def stop(self) -> None:
        self._stopping = True
        tasks = []
        for workers in self._workers.values():
            for worker in workers:
                if worker.task is None:
                    continue
                # Idle workers are parked in queue.get(); busy ones finish their message
                if not worker.busy:
                    worker.task.cancel()
                tasks.append(worker.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._workers.clear()
