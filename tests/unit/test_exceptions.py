"""Unit tests for custom exception classes."""

import pytest

from contract_lifecycle.exceptions import (
    AbiDecodingError,
    AbiEncodingError,
    ArgumentCountMismatch,
    ArtifactsUnavailable,
    CompilationError,
    ConfigurationError,
    DeploymentTimedOut,
    DriverNotFound,
    LifecycleError,
    NotUpgradeable,
    ProxyNotFound,
    RollbackTargetNotFound,
    TransportError,
    UnknownMigration,
    UnrecognizedAbiEntry,
    UnsupportedOperation,
)


class TestExceptionCatching:
    """Test that exceptions can be caught as their base types."""

    @pytest.mark.parametrize(
        "exc,builtin",
        [
            (AbiEncodingError("test"), ValueError),
            (AbiDecodingError("test"), ValueError),
            (UnrecognizedAbiEntry("test"), LookupError),
            (TransportError("test"), RuntimeError),
            (ArtifactsUnavailable("test"), FileNotFoundError),
            (CompilationError("test"), RuntimeError),
            (NotUpgradeable("test"), ValueError),
            (RollbackTargetNotFound("test"), LookupError),
            (ProxyNotFound("test"), LookupError),
            (DeploymentTimedOut("test"), TimeoutError),
            (UnsupportedOperation("test"), NotImplementedError),
            (UnknownMigration("test"), LookupError),
            (DriverNotFound("test"), KeyError),
            (ConfigurationError("test"), ValueError),
        ],
    )
    def test_catch_as_builtin(self, exc, builtin):
        """Test that each error can be caught as its builtin base."""
        with pytest.raises(builtin):
            raise exc

    def test_catch_all_as_lifecycle_error(self):
        """Test that all custom exceptions can be caught as LifecycleError."""
        exceptions = [
            ArgumentCountMismatch(2, 1),
            UnrecognizedAbiEntry("test"),
            TransportError("test", code=-32000),
            ArtifactsUnavailable("test"),
            NotUpgradeable("test"),
            RollbackTargetNotFound("test"),
            ProxyNotFound("test"),
            DeploymentTimedOut("test"),
        ]

        for exc in exceptions:
            with pytest.raises(LifecycleError):
                raise exc

    def test_argument_count_mismatch_is_encoding_error(self):
        with pytest.raises(AbiEncodingError):
            raise ArgumentCountMismatch(2, 1)


class TestExceptionDetails:
    """Test attributes and messages carried by exceptions."""

    def test_argument_count_mismatch_counts(self):
        exc = ArgumentCountMismatch(2, 3)

        assert exc.expected == 2
        assert exc.got == 3
        assert "expected 2, got 3" in str(exc)

    def test_transport_error_code(self):
        exc = TransportError("nonce too low", code=-32000)

        assert exc.code == -32000
        assert exc.status is None
        assert exc.message == "nonce too low"
        assert str(exc) == "RPC error [-32000]: nonce too low"

    def test_transport_error_status(self):
        exc = TransportError("bad gateway", status=502)

        assert exc.status == 502
        assert "502" in str(exc)

    def test_driver_not_found_message_unquoted(self):
        assert str(DriverNotFound("Driver 'x' not registered")) == "Driver 'x' not registered"
