"""
Tests for destinations, dead-letter entries and the transfer consumer.
"""

import json

import pytest

from filemover.core.retry import RetryManager, RetryPolicy
from filemover.exceptions import TransferFailure
from filemover.messaging.adapters.base import Message
from filemover.messaging.adapters.memory import InMemoryBus
from filemover.messaging.topology import ChannelBinding, TopologyRegistry
from filemover.transfer.consumer import TransferConsumer
from filemover.transfer.dead_letter import DeadLetterEntry
from filemover.transfer.destinations import Destination, DfsDestination, SftpDestination

CHANNEL = "transfer-firm-abc-7"


class FlakyDestination(Destination):
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def write(self, event):
        self.calls += 1
        if self.calls <= self.failures:
            raise TransferFailure(f"share unavailable (call {self.calls})")
        return f"/dest/{event.file_name}"


async def _connected_bus() -> InMemoryBus:
    bus = InMemoryBus()
    await bus.connect()
    await bus.declare_channel(CHANNEL)
    return bus


class TestDfsDestination:
    @pytest.mark.asyncio
    async def test_copies_file(self, make_event, tmp_path):
        event = make_event(content=b"payload")
        target = await DfsDestination().write(event)
        assert target == str(tmp_path / "dest" / "report.csv")
        assert (tmp_path / "dest" / "report.csv").read_bytes() == b"payload"
        assert not (tmp_path / "dest" / "report.csv.filemover-part").exists()

    @pytest.mark.asyncio
    async def test_overwrites(self, make_event, tmp_path):
        (tmp_path / "dest").mkdir()
        (tmp_path / "dest" / "report.csv").write_bytes(b"old")
        await DfsDestination().write(make_event(content=b"new"))
        assert (tmp_path / "dest" / "report.csv").read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_missing_source_is_retryable(self, make_event, tmp_path):
        event = make_event(file_path=str(tmp_path / "gone.csv"))
        with pytest.raises(TransferFailure) as exc_info:
            await DfsDestination().write(event)
        assert exc_info.value.retryable is True
        assert list((tmp_path / "dest").glob("*.filemover-part")) == []

    @pytest.mark.asyncio
    async def test_no_destination_is_permanent(self, make_event):
        with pytest.raises(TransferFailure) as exc_info:
            await DfsDestination().write(make_event(destination_location=""))
        assert exc_info.value.retryable is False


class TestSftpDestination:
    @pytest.mark.asyncio
    async def test_always_permanent_failure(self, make_event):
        event = make_event(destination_type="SFTP", destination_location="sftp://partner/in")
        with pytest.raises(TransferFailure) as exc_info:
            await SftpDestination().write(event)
        assert exc_info.value.retryable is False


class TestDeadLetterEntry:
    def test_from_failure_and_back(self):
        entry = DeadLetterEntry.from_failure(
            CHANNEL, "retries exhausted", OSError("disk full"), tenant_id="firm-abc", config_id=7
        )
        assert entry.exception_type == "OSError"
        assert entry.total_attempts == 0
        data = json.loads(entry.to_json())
        assert data["tenant_id"] == "firm-abc"
        assert DeadLetterEntry.from_dict(entry.to_dict()) == entry


class TestTransferConsumer:
    @pytest.mark.asyncio
    async def test_success(self, make_event, recording_manager, tmp_path):
        bus = await _connected_bus()
        consumer = TransferConsumer(bus, retry_manager=recording_manager)
        event = make_event()

        await consumer.handle(CHANNEL, Message(value=event.to_dict()))

        assert consumer.stats.succeeded == 1
        assert (tmp_path / "dest" / "report.csv").exists()
        assert bus.dead_letters == {}

    @pytest.mark.asyncio
    async def test_retry_then_success(self, make_event, recording_manager, sleeps):
        bus = await _connected_bus()
        flaky = FlakyDestination(failures=2)
        consumer = TransferConsumer(bus, destinations={"DFS": flaky}, retry_manager=recording_manager)

        await consumer.handle(CHANNEL, Message(value=make_event().to_dict()))

        assert flaky.calls == 3
        assert sleeps == [5.0, 5.0]
        assert consumer.stats.succeeded == 1
        assert consumer.stats.dead_lettered == 0

    @pytest.mark.asyncio
    async def test_three_attempts_then_dead_letter(self, make_event, recording_manager, sleeps):
        bus = await _connected_bus()
        flaky = FlakyDestination(failures=10)
        consumer = TransferConsumer(bus, destinations={"DFS": flaky}, retry_manager=recording_manager)
        event = make_event()

        await consumer.handle(CHANNEL, Message(value=event.to_dict(), message_id=event.dedup_key))

        assert flaky.calls == 3
        assert sleeps == [5.0, 5.0]
        dead = bus.dead_letters[CHANNEL]
        assert len(dead) == 1
        assert dead[0].channel == f"{CHANNEL}-deadletter"
        assert dead[0].value["event"] == event.to_dict()
        failure = dead[0].value["failure"]
        assert failure["reason"] == "retries exhausted"
        assert failure["total_attempts"] == 3
        assert len(failure["retry_history"]) == 3
        assert failure["dedup_key"] == event.dedup_key
        assert dead[0].headers["x-attempts"] == "3"
        assert dead[0].message_id == event.dedup_key
        assert consumer.stats.dead_lettered == 1

    @pytest.mark.asyncio
    async def test_configured_attempts(self, make_event, recording_manager):
        bus = await _connected_bus()
        flaky = FlakyDestination(failures=10)
        policy = RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=1.0)
        consumer = TransferConsumer(bus, destinations={"DFS": flaky}, policy=policy, retry_manager=recording_manager)

        await consumer.handle(CHANNEL, Message(value=make_event().to_dict()))
        assert flaky.calls == 5

    @pytest.mark.asyncio
    async def test_sftp_dead_lettered_without_retry(self, make_event, recording_manager, sleeps):
        bus = await _connected_bus()
        consumer = TransferConsumer(bus, retry_manager=recording_manager)
        event = make_event(destination_type="SFTP", destination_location="sftp://partner/in")

        await consumer.handle(CHANNEL, Message(value=event.to_dict()))

        failure = bus.dead_letters[CHANNEL][0].value["failure"]
        assert failure["reason"] == "permanent failure"
        assert failure["total_attempts"] == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_unknown_destination_type(self, make_event, recording_manager):
        bus = await _connected_bus()
        consumer = TransferConsumer(bus, retry_manager=recording_manager)

        await consumer.handle(CHANNEL, Message(value=make_event(destination_type="S3").to_dict()))

        failure = bus.dead_letters[CHANNEL][0].value["failure"]
        assert failure["reason"] == "unsupported destination"
        assert failure["total_attempts"] == 0

    @pytest.mark.asyncio
    async def test_invalid_payload(self, recording_manager):
        bus = await _connected_bus()
        consumer = TransferConsumer(bus, retry_manager=recording_manager)

        await consumer.handle(CHANNEL, Message(value={"payload": "garbage"}))

        dead = bus.dead_letters[CHANNEL][0]
        assert dead.value["event"] == {"payload": "garbage"}
        assert dead.value["failure"]["reason"] == "invalid payload"
        assert consumer.stats.received == 1

    @pytest.mark.asyncio
    async def test_attach_subscribes_once(self, make_event, recording_manager, tmp_path):
        bus = InMemoryBus()
        await bus.connect()
        consumer = TransferConsumer(bus, concurrency=2, retry_manager=recording_manager)
        topology = TopologyRegistry(bus)
        topology.add_listener(consumer.attach)

        await topology.get_channel("firm-abc", 7)
        await consumer.attach(ChannelBinding("firm-abc", 7, CHANNEL))
        assert consumer.channels == [CHANNEL]
        assert len(bus._workers[CHANNEL]) == 2

        event = make_event()
        await bus.publish(CHANNEL, Message(value=event.to_dict()), dedup_key=event.dedup_key)
        await bus.join(CHANNEL)
        await bus.stop()

        assert consumer.stats.succeeded == 1
        assert (tmp_path / "dest" / "report.csv").exists()

    @pytest.mark.asyncio
    async def test_default_manager(self, make_event):
        bus = await _connected_bus()
        consumer = TransferConsumer(bus)
        assert isinstance(consumer.retry_manager, RetryManager)
        await consumer.handle(CHANNEL, Message(value=make_event().to_dict()))
        assert consumer.stats.succeeded == 1
