"""
contract-lifecycle: Python library for deploying, calling and upgrading smart contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .config import LifecycleConfig
from .deployer import DeploymentOrchestrator
from .drivers import ChainDriver, EvmDriver, LedgerDbDriver
from .exceptions import (
    ArgumentCountMismatch,
    ArtifactsUnavailable,
    DeploymentTimedOut,
    LifecycleError,
    NotUpgradeable,
    ProxyNotFound,
    RollbackTargetNotFound,
    TransportError,
    UnrecognizedAbiEntry,
)
from .interactor import ContractInteractor
from .models import ContractRecord, TransactionRecord
from .registry import DriverRegistry
from .rpc import EthereumRpcClient
from .store import ContractStore, create_schema
from .types import DeploymentRequest
from .upgrader import UpgradeOrchestrator

try:
    __version__ = version("contract-lifecycle")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentOrchestrator",
    "UpgradeOrchestrator",
    "ContractInteractor",
    "DriverRegistry",
    "ChainDriver",
    "EvmDriver",
    "LedgerDbDriver",
    "EthereumRpcClient",
    "ContractStore",
    "create_schema",
    "ContractRecord",
    "TransactionRecord",
    "DeploymentRequest",
    "LifecycleConfig",
    "LifecycleError",
    "ArgumentCountMismatch",
    "UnrecognizedAbiEntry",
    "TransportError",
    "ArtifactsUnavailable",
    "NotUpgradeable",
    "RollbackTargetNotFound",
    "ProxyNotFound",
    "DeploymentTimedOut",
]
