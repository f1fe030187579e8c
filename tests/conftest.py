"""Shared pytest fixtures for contract-lifecycle tests."""

import itertools
from typing import Any, Dict, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from contract_lifecycle.config import DeploymentSettings, GasSettings, LifecycleConfig
from contract_lifecycle.constants import PROXY_ABI, PROXY_BYTECODE
from contract_lifecycle.deployer import DeploymentOrchestrator
from contract_lifecycle.drivers import ChainDriver
from contract_lifecycle.exceptions import TransportError
from contract_lifecycle.interactor import ContractInteractor
from contract_lifecycle.store import ContractStore, create_schema
from contract_lifecycle.types import (
    Artifacts,
    BackendKind,
    Capability,
    DeploymentResult,
    Receipt,
)
from contract_lifecycle.upgrader import UpgradeOrchestrator

SENDER = "0x" + "aa" * 20

COUNTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [{"name": "initial", "type": "uint256"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "count",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "increment",
        "inputs": [{"name": "by", "type": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]

COUNTER_BYTECODE = "0x6080604052348015600f57600080fd5b50"


class FakeDriver(ChainDriver):
    """
    Scripted in-memory ChainDriver.

    Every submission is mined immediately unless ``mine`` is False. Methods
    listed in ``revert_methods`` produce failing receipts, and ``fail_deploy``
    / ``fail_methods`` make submissions raise TransportError.
    """

    kind = BackendKind.EVM
    capabilities = frozenset({Capability.GAS, Capability.CONTRACTS, Capability.RECEIPTS})

    def __init__(self, network: str = "local", default_account: Optional[str] = SENDER):
        self.network = network
        self.default_account = default_account
        self.receipts: Dict[str, Receipt] = {}
        self.deployments: List[Dict[str, Any]] = []
        self.sent: List[Dict[str, Any]] = []
        self.call_results: Dict[str, Any] = {}
        self.revert_methods: set = set()
        self.fail_methods: set = set()
        self.fail_deploy = False
        self.fail_estimate = False
        self.mine = True
        self.gas_estimate = 100_000
        self._counter = itertools.count(1)
        self._block = itertools.count(100)

    def _hash(self) -> str:
        return "0x" + format(next(self._counter), "064x")

    def _mined(self, transaction_hash: str, address: Optional[str] = None, status: bool = True):
        receipt = Receipt(
            transaction_hash=transaction_hash,
            block_number=next(self._block),
            contract_address=address,
            gas_used=21_000,
            status=status,
        )
        if self.mine:
            self.receipts[transaction_hash] = receipt
        return receipt

    def deploy(
        self,
        bytecode: str,
        abi: Any,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> DeploymentResult:
        if self.fail_deploy:
            raise TransportError("insufficient funds", code=-32000)

        transaction_hash = self._hash()
        address = "0x" + format(len(self.deployments) + 1, "040x")
        self.deployments.append(
            {
                "bytecode": bytecode,
                "constructor_args": list(constructor_args),
                "sender": sender,
                "gas_limit": gas_limit,
                "address": address,
            }
        )
        receipt = self._mined(transaction_hash, address)

        if not self.mine:
            return DeploymentResult(
                transaction_hash=transaction_hash,
                network=self.network,
                address=None,
                gas_used=None,
            )

        return DeploymentResult(
            transaction_hash=transaction_hash,
            network=self.network,
            address=address,
            gas_used=receipt.gas_used,
            block_number=receipt.block_number,
            receipt_status=True,
        )

    def call_method(self, address: str, abi: Any, method: str, args: Sequence[Any] = ()) -> Any:
        return self.call_results.get(method)

    def send_method(
        self,
        address: str,
        abi: Any,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> str:
        if method in self.fail_methods:
            raise TransportError(f"{method} rejected", code=-32000)

        transaction_hash = self._hash()
        self.sent.append(
            {
                "hash": transaction_hash,
                "address": address,
                "method": method,
                "args": list(args),
                "sender": sender,
            }
        )
        self._mined(transaction_hash, status=method not in self.revert_methods)
        return transaction_hash

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        if self.fail_estimate:
            raise TransportError("execution reverted", code=3)
        return self.gas_estimate

    def get_receipt(self, transaction_hash: str) -> Optional[Receipt]:
        return self.receipts.get(transaction_hash)

    def gas_price(self) -> int:
        return 20_000_000_000

    def balance(self, address: str) -> int:
        return 0

    def is_available(self) -> bool:
        return True

    def info(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "network": self.network}

    def proxy_artifacts(self) -> Artifacts:
        return Artifacts(abi=PROXY_ABI, bytecode=PROXY_BYTECODE)


class FakeLedgerSession:
    """In-memory LedgerSession keyed by table and document id."""

    def __init__(self, available: bool = True):
        self.available = available
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def describe_ledger(self, name: str) -> Dict[str, Any]:
        if not self.available:
            raise ConnectionError(f"ledger {name} unreachable")
        return {"Name": name, "State": "ACTIVE"}

    def insert_document(self, table: str, document: Dict[str, Any]) -> None:
        self.tables.setdefault(table, {})[document["id"]] = dict(document)

    def fetch_document(self, table: str, document_id: str) -> Optional[Dict[str, Any]]:
        return self.tables.get(table, {}).get(document_id)


@pytest.fixture
def session():
    """Session bound to a fresh in-memory SQLite database."""
    engine = create_engine("sqlite://")
    create_schema(engine)
    with Session(engine) as db_session:
        yield db_session
    engine.dispose()


@pytest.fixture
def store(session) -> ContractStore:
    return ContractStore(session)


@pytest.fixture
def config() -> LifecycleConfig:
    """Configuration with short confirmation waits."""
    return LifecycleConfig(
        gas=GasSettings(default_limit=3_000_000, multiplier=1.1),
        deployment=DeploymentSettings(
            receipt_attempts=2,
            receipt_delay=0,
            confirmation_interval=0.01,
            confirmation_timeout=0.05,
        ),
    )


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def ledger_session() -> FakeLedgerSession:
    return FakeLedgerSession()


@pytest.fixture
def deployer(driver, store, config) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(driver, store, config=config)


@pytest.fixture
def interactor(driver, store, config) -> ContractInteractor:
    return ContractInteractor(driver, store, config=config)


@pytest.fixture
def upgrader(deployer, interactor, store) -> UpgradeOrchestrator:
    return UpgradeOrchestrator(deployer, interactor, store)


@pytest.fixture
def sender() -> str:
    return SENDER


@pytest.fixture
def counter_abi() -> List[Dict[str, Any]]:
    """ABI of a small counter contract with a uint256 constructor argument."""
    return [dict(entry) for entry in COUNTER_ABI]


@pytest.fixture
def counter_bytecode() -> str:
    return COUNTER_BYTECODE
