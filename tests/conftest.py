"""
Shared fixtures for FileMover tests.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from filemover.core.retry import RetryManager, RetryPolicy
from filemover.core.types import FileDetectedEvent
from filemover.tenancy.directory import TenantDirectory
from filemover.tenancy.resolver import TenantResolver

TENANTS = {
    "firm-abc": {"database_mode": "dedicated"},
    "firm-xyz": {
        "database_mode": "shared",
        "schema": "firm_xyz",
        "allowed_client_codes": ["client-xyz-1", "client-xyz-2", "client-xyz-3"],
    },
    "firm-def": {"database_mode": "Dedicated", "schema": "firm_def", "routing_key": "def-routing"},
    "firm-old": {"database_mode": "dedicated", "active": False},
}


async def _no_sleep(delay: float) -> None:
    return None


@pytest.fixture
def directory() -> TenantDirectory:
    return TenantDirectory.from_config(TENANTS)


@pytest.fixture
def resolver(directory: TenantDirectory) -> TenantResolver:
    return TenantResolver(directory, ttl=600)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Three attempts, no delay."""
    return RetryPolicy(max_attempts=3, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def recording_manager(sleeps: list[float]) -> RetryManager:
    """RetryManager that records requested delays instead of sleeping."""

    async def sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryManager(sleep=sleep)


@pytest.fixture
def make_event(tmp_path):
    """Factory for FileDetectedEvents pointing at a real file under tmp_path."""

    def factory(name: str = "report.csv", content: bytes = b"a,b\n1,2\n", **overrides) -> FileDetectedEvent:
        source_dir = tmp_path / "source"
        source_dir.mkdir(exist_ok=True)
        path = source_dir / name
        path.write_bytes(content)
        fields = {
            "tenant_id": "firm-abc",
            "config_id": 7,
            "file_path": str(path),
            "file_name": name,
            "size_bytes": len(content),
            "mtime": datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
            "source_type": "DFS",
            "destination_type": "DFS",
            "destination_location": str(tmp_path / "dest"),
            "dedup_key": f"fp-{name}",
        }
        fields.update(overrides)
        return FileDetectedEvent(**fields)

    return factory
