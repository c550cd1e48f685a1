"""
Tests for CLI commands.

Uses typer's CliRunner against a throwaway project directory.
"""

from datetime import UTC, datetime

import pytest
import yaml
from typer.testing import CliRunner

from filemover import __version__
from filemover.cli.main import app
from filemover.detection.fingerprint import canonical_string, fingerprint

runner = CliRunner()


@pytest.fixture
def project(tmp_path):
    """A project with one DFS-to-DFS transfer, memory broker and memory ledger."""
    (tmp_path / "in").mkdir()
    (tmp_path / "in" / "trades.csv").write_text("id,qty\n1,100\n")
    config = {
        "name": "cli-test",
        "environment": "dev",
        "broker": {"url": "memory://"},
        "routing": {"template": "data/{routing_key}.duckdb"},
        "tenants": {
            "firm-abc": {"database_mode": "dedicated"},
            "firm-xyz": {"database_mode": "shared", "schema": "firm_xyz", "allowed_client_codes": ["client-xyz-1"]},
        },
        "ledger": {"type": "memory"},
        "catalog": {"type": "static"},
        "transfers": [
            {
                "config_id": 1,
                "tenant_id": "firm-abc",
                "source_location": str(tmp_path / "in"),
                "destination_location": str(tmp_path / "out"),
                "schedule_spec": "*/5 * * * *",
            },
            {
                "config_id": 2,
                "tenant_id": "firm-abc",
                "source_location": str(tmp_path / "in"),
                "destination_location": str(tmp_path / "out2"),
                "schedule_spec": "not a schedule",
            },
        ],
        "logging": {"level": "WARNING", "console_type": "plain"},
    }
    (tmp_path / "config.yaml").write_text(yaml.safe_dump(config))
    return tmp_path


class TestVersion:
    """Tests for --version flag."""

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"filemover version {__version__}" in result.output

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "filemover version" in result.output


class TestHelp:
    """Tests for help output."""

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "filemover" in result.output.lower()

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "scan" in result.output

    @pytest.mark.parametrize("command", ["run", "scan", "info", "fingerprint"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestFingerprint:
    def test_from_options(self):
        result = runner.invoke(
            app, ["fingerprint", "--name", "trades.csv", "--mtime", "2024-01-15T10:30:00Z", "--size", "120"]
        )
        assert result.exit_code == 0
        expected = fingerprint("trades.csv", datetime(2024, 1, 15, 10, 30, tzinfo=UTC), 120)
        assert result.output.strip() == expected

    def test_naive_mtime_is_utc(self):
        naive = runner.invoke(app, ["fingerprint", "--name", "a.csv", "--mtime", "2024-01-15T10:30:00", "--size", "1"])
        aware = runner.invoke(
            app, ["fingerprint", "--name", "a.csv", "--mtime", "2024-01-15T10:30:00+00:00", "--size", "1"]
        )
        assert naive.output == aware.output

    def test_canonical(self):
        result = runner.invoke(
            app,
            ["fingerprint", "--canonical", "--name", "trades.csv", "--mtime", "2024-01-15T10:30:00Z", "--size", "120"],
        )
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0] == canonical_string("trades.csv", datetime(2024, 1, 15, 10, 30, tzinfo=UTC), 120)
        assert len(lines) == 2

    def test_from_path(self, project):
        path = project / "in" / "trades.csv"
        result = runner.invoke(app, ["fingerprint", str(path)])
        assert result.exit_code == 0
        stat = path.stat()
        expected = fingerprint("trades.csv", datetime.fromtimestamp(stat.st_mtime, tz=UTC), stat.st_size)
        assert result.output.strip() == expected

    def test_missing_path(self, tmp_path):
        result = runner.invoke(app, ["fingerprint", str(tmp_path / "nope.csv")])
        assert result.exit_code == 1

    def test_incomplete_options(self):
        result = runner.invoke(app, ["fingerprint", "--name", "trades.csv"])
        assert result.exit_code == 2

    def test_bad_mtime(self):
        result = runner.invoke(app, ["fingerprint", "--name", "a.csv", "--mtime", "yesterday", "--size", "1"])
        assert result.exit_code == 2


class TestInfo:
    def test_lists_tenants_and_transfers(self, project):
        result = runner.invoke(app, ["info", "--project-dir", str(project)])
        assert result.exit_code == 0, result.output
        assert "cli-test" in result.output
        assert "Tenants (2)" in result.output
        assert "firm-xyz" in result.output
        assert "Transfers" in result.output

    def test_missing_project(self, tmp_path):
        result = runner.invoke(app, ["info", "--project-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "config.yaml" in result.output


class TestScan:
    def test_scan_transfers_with_memory_broker(self, project):
        result = runner.invoke(app, ["scan", "--project-dir", str(project), "firm-abc", "1"])
        assert result.exit_code == 0, result.output
        assert "completed" in result.output
        assert "transferred" in result.output
        assert (project / "out" / "trades.csv").read_text() == "id,qty\n1,100\n"

    def test_no_transfer(self, project):
        result = runner.invoke(app, ["scan", "--project-dir", str(project), "--no-transfer", "firm-abc", "1"])
        assert result.exit_code == 0, result.output
        assert "transferred" not in result.output
        assert not (project / "out").exists()

    def test_unknown_tenant_fails(self, project):
        result = runner.invoke(app, ["scan", "--project-dir", str(project), "firm-nope", "1"])
        assert result.exit_code == 1
        assert "failed" in result.output

    def test_unknown_config_is_skipped(self, project):
        result = runner.invoke(app, ["scan", "--project-dir", str(project), "firm-abc", "99"])
        assert result.exit_code == 0
        assert "config not found" in result.output


class TestRun:
    def test_nothing_to_run(self, project):
        result = runner.invoke(app, ["run", "--project-dir", str(project), "--no-scheduler", "--no-consumer"])
        assert result.exit_code == 2

    def test_missing_project(self, tmp_path):
        result = runner.invoke(app, ["run", "--project-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error" in result.output
