"""Data types and dataclasses for contract-lifecycle library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_VERSION


class BackendKind(Enum):
    """
    Ledger backend variants.

    Value strings are what ContractRecord.type stores.
    """

    EVM = "evm"
    LEDGER_DB = "ledger-db"


class ContractStatus(Enum):
    """Lifecycle status of a deployed contract version."""

    DEPLOYED = "deployed"
    UPGRADED = "upgraded"
    DEPRECATED = "deprecated"
    FAILED = "failed"


class TransactionStatus(Enum):
    """Status of a recorded on-chain interaction."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REVERTED = "reverted"


class Capability(Enum):
    """Capabilities a driver may offer; callers branch on these, not on driver class."""

    GAS = "gas"
    CONTRACTS = "contracts"
    RECEIPTS = "receipts"
    EVENTS = "events"


@dataclass
class Artifacts:
    """Compiled contract artifacts."""

    abi: List[Dict[str, Any]]
    bytecode: str  # Hex, with or without 0x prefix


@dataclass
class Receipt:
    """Normalized transaction receipt (integers already decoded from hex)."""

    transaction_hash: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    contract_address: Optional[str] = None
    gas_used: Optional[int] = None
    status: bool = True
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    logs: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DeploymentResult:
    """
    Outcome of submitting a deployment to a driver.

    A None address means the transaction was submitted but no receipt with
    a contract address was observed within the polling budget.
    """

    transaction_hash: Optional[str]
    network: str
    address: Optional[str] = None
    gas_used: Optional[int] = None
    block_number: Optional[int] = None
    receipt_status: Optional[bool] = None
    supported: bool = True


@dataclass
class DeploymentRequest:
    """Parameters for DeploymentOrchestrator.deploy()."""

    name: str
    version: str = DEFAULT_VERSION
    network: Optional[str] = None
    abi: Optional[List[Dict[str, Any]]] = None
    bytecode: Optional[str] = None
    source_code: Optional[str] = None
    source_file: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)
    sender: Optional[str] = None
    gas_limit: Optional[int] = None
    preview: bool = False
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class DeploymentPreview:
    """Cost estimate for a deployment that was not submitted."""

    contract_name: str
    network: str
    sender: Optional[str]
    gas_limit: int
    gas_price: int
    estimated_cost_wei: int
    constructor_args: List[Any]
    bytecode_size: int

    @property
    def estimated_cost_eth(self) -> float:
        return self.estimated_cost_wei / 10**18


@dataclass
class DeploymentOutcome:
    """Result of a full deployment: persisted record, driver result, artifacts used."""

    contract: Any  # ContractRecord
    deployment: DeploymentResult
    artifacts: Artifacts


@dataclass
class UpgradeResult:
    """Result of UpgradeOrchestrator.upgrade()."""

    old_contract: Any  # ContractRecord
    new_contract: Any  # ContractRecord
    proxy_updated: bool
    transaction: Any = None  # TransactionRecord of the upgradeTo call


@dataclass
class RollbackResult:
    """Result of UpgradeOrchestrator.rollback()."""

    current_contract: Any  # ContractRecord
    restored_contract: Any  # ContractRecord
    transaction: Any  # TransactionRecord with method_name "rollback"


@dataclass
class UpgradeableDeployment:
    """Result of UpgradeOrchestrator.create_upgradeable_contract()."""

    proxy: Any  # ContractRecord
    implementation: Any  # ContractRecord
