"""Custom exception classes for contract-lifecycle library."""

from typing import Optional


class LifecycleError(Exception):
    """Base exception for contract lifecycle errors."""

    pass


class AbiEncodingError(LifecycleError, ValueError):
    """Raised when a value cannot be encoded for its ABI type."""

    pass


class ArgumentCountMismatch(AbiEncodingError):
    """Raised when the number of arguments differs from the ABI inputs."""

    def __init__(self, expected: int, got: int):
        super().__init__(f"Parameter count mismatch: expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class AbiDecodingError(LifecycleError, ValueError):
    """Raised when return data is too short for the declared outputs."""

    pass


class UnrecognizedAbiEntry(LifecycleError, LookupError):
    """Raised when a method or constructor is not found in an ABI."""

    pass


class TransportError(LifecycleError, RuntimeError):
    """Raised when an RPC round-trip fails at the HTTP or JSON-RPC level."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        status: Optional[int] = None,
    ):
        if code is not None:
            text = f"RPC error [{code}]: {message}"
        elif status is not None:
            text = f"RPC request failed with status {status}: {message}"
        else:
            text = message
        super().__init__(text)
        self.code = code
        self.status = status
        self.message = message


class ArtifactsUnavailable(LifecycleError, FileNotFoundError):
    """Raised when no ABI/bytecode can be resolved for a contract."""

    pass


class DefectiveArtifactError(LifecycleError, ValueError):
    """Raised when an artifact file is missing its ABI or bytecode."""

    pass


class CompilationError(LifecycleError, RuntimeError):
    """Raised when the Solidity compiler fails or is unavailable."""

    pass


class NotUpgradeable(LifecycleError, ValueError):
    """Raised when upgrading or rolling back a non-upgradeable contract."""

    pass


class RollbackTargetNotFound(LifecycleError, LookupError):
    """Raised when no earlier version exists to roll back to."""

    pass


class ProxyNotFound(LifecycleError, LookupError):
    """Raised when a contract has no proxy or its proxy record is missing."""

    pass


class InvalidProxyLink(LifecycleError, ValueError):
    """Raised when a proxy link would break contract family invariants."""

    pass


class DeploymentTimedOut(LifecycleError, TimeoutError):
    """Raised when a required transaction receipt is never observed."""

    pass


class TransactionReverted(LifecycleError, RuntimeError):
    """Raised when a transaction receipt reports failure."""

    pass


class SenderRequired(LifecycleError, ValueError):
    """Raised when a transaction has no sender and no default account is set."""

    pass


class ContractNotDeployed(LifecycleError, ValueError):
    """Raised when interacting with a contract record that has no address."""

    pass


class UnsupportedOperation(LifecycleError, NotImplementedError):
    """Raised when a backend lacks a capability required by the operation."""

    pass


class UnknownMigration(LifecycleError, LookupError):
    """Raised when a named migration hook is not registered."""

    pass


class DriverNotFound(LifecycleError, KeyError):
    """Raised when a driver name is not present in the registry."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConfigurationError(LifecycleError, ValueError):
    """Raised when configuration values are malformed."""

    pass


class InvalidRollbackLink(LifecycleError, ValueError):
    """Raised when a rollback marker references a transaction outside its family."""

    pass
