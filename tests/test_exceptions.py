"""
Tests for the exception hierarchy.
"""

import pytest

from filemover.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ConfigurationMissing,
    FileMoverError,
    InitializationError,
    LedgerConflict,
    LedgerError,
    MessagingError,
    ResolutionError,
    RetryError,
    SchedulingOverlap,
    TransferFailure,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_type",
        [
            ConfigurationError,
            InitializationError,
            ResolutionError,
            LedgerError,
            MessagingError,
            RetryError,
        ],
    )
    def test_subclasses_base(self, exc_type):
        err = exc_type("boom")
        assert isinstance(err, FileMoverError)
        assert err.message == "boom"
        assert err.details == {}

    def test_configuration_missing_is_configuration_error(self):
        err = ConfigurationMissing("firm-abc")
        assert isinstance(err, ConfigurationError)
        assert err.tenant_id == "firm-abc"
        assert "firm-abc" in str(err)
        assert err.details == {"tenant_id": "firm-abc"}

    def test_ledger_conflict_is_ledger_error(self):
        err = LedgerConflict(7, "abc123")
        assert isinstance(err, LedgerError)
        assert err.config_id == 7
        assert err.fingerprint == "abc123"

    def test_transfer_failure_retryable_flag(self):
        assert TransferFailure("disk full").retryable is True
        permanent = TransferFailure("no sftp", retryable=False)
        assert permanent.retryable is False
        assert isinstance(permanent, RetryError)


class TestMessages:
    def test_authorization_error(self):
        err = AuthorizationError("firm-xyz", "client-xyz-9")
        assert "client-xyz-9" in str(err)
        assert err.details == {"tenant_id": "firm-xyz", "client_code": "client-xyz-9"}

    def test_scheduling_overlap(self):
        err = SchedulingOverlap("firm-abc", 7)
        assert "already running" in str(err)
        assert err.details["config_id"] == 7

    def test_details_passthrough(self):
        err = FileMoverError("x", details={"k": "v"})
        assert err.details == {"k": "v"}
