"""Ledger backend drivers: a common contract over EVM nodes and document ledgers."""

import hashlib
import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Union

from .abi import (
    decode_result,
    encode_call,
    encode_constructor,
    find_constructor,
    find_method,
    load_abi,
)
from .constants import (
    DEFAULT_GAS_LIMIT,
    DEFAULT_LEDGER_NAME,
    DEFAULT_RECEIPT_ATTEMPTS,
    DEFAULT_RECEIPT_DELAY,
    LEDGER_EVENTS_TABLE,
    PROXY_ABI,
    PROXY_BYTECODE,
)
from .exceptions import SenderRequired, TransportError, UnsupportedOperation
from .rpc import EthereumRpcClient
from .types import Artifacts, BackendKind, Capability, DeploymentResult, Receipt

logger = logging.getLogger(__name__)

AbiLike = Union[str, List[Dict[str, Any]], None]


class ChainDriver(ABC):
    """
    Capability contract shared by every ledger backend.

    Callers must branch on ``supports(...)`` rather than on the concrete class.
    """

    kind: BackendKind
    capabilities: FrozenSet[Capability] = frozenset()
    network: str
    default_account: Optional[str] = None

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    def deploy(
        self,
        bytecode: str,
        abi: AbiLike,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> DeploymentResult:
        """Submit contract creation and report address, hash and gas used."""

    @abstractmethod
    def call_method(
        self, address: str, abi: AbiLike, method: str, args: Sequence[Any] = ()
    ) -> Any:
        """Invoke a method read-only and return its decoded result."""

    @abstractmethod
    def send_method(
        self,
        address: str,
        abi: AbiLike,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> str:
        """Submit a state-changing method call and return the transaction hash."""

    @abstractmethod
    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        """Estimate gas for a transaction skeleton."""

    @abstractmethod
    def get_receipt(self, transaction_hash: str) -> Optional[Receipt]:
        """Fetch a receipt, or None if not yet available."""

    @abstractmethod
    def gas_price(self) -> int:
        """Current gas price in wei."""

    @abstractmethod
    def balance(self, address: str) -> int:
        """Account balance in wei."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend answers requests."""

    @abstractmethod
    def info(self) -> Dict[str, Any]:
        """Descriptive information about the backend connection."""

    def proxy_artifacts(self) -> Artifacts:
        """Artifacts of the minimal upgradeable proxy for this backend."""
        raise UnsupportedOperation(f"Backend '{self.kind.value}' has no proxy contract")


class EvmDriver(ChainDriver):
    """Driver for EVM-compatible chains reached through JSON-RPC."""

    kind = BackendKind.EVM
    capabilities = frozenset({Capability.GAS, Capability.CONTRACTS, Capability.RECEIPTS})

    def __init__(
        self,
        client: EthereumRpcClient,
        network: str = "local",
        default_account: Optional[str] = None,
        default_gas_limit: int = DEFAULT_GAS_LIMIT,
        receipt_attempts: int = DEFAULT_RECEIPT_ATTEMPTS,
        receipt_delay: float = DEFAULT_RECEIPT_DELAY,
        proxy: Optional[Artifacts] = None,
    ):
        self.client = client
        self.network = network
        self.default_account = default_account
        self.default_gas_limit = default_gas_limit
        self.receipt_attempts = receipt_attempts
        self.receipt_delay = receipt_delay
        self._proxy = proxy or Artifacts(abi=PROXY_ABI, bytecode=PROXY_BYTECODE)

    def deploy(
        self,
        bytecode: str,
        abi: AbiLike,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> DeploymentResult:
        """
        Deploy bytecode and poll for the created contract address.

        The result carries a None address when no receipt with a contract
        address appears within ``receipt_attempts`` polls; the transaction
        may still be mined later.

        Raises:
            SenderRequired: If no sender and no default account
            AbiEncodingError: If constructor arguments cannot be encoded
            TransportError: If submission fails
        """
        sender = self._sender(sender)
        data = encode_constructor(constructor_args, find_constructor(load_abi(abi)), bytecode)
        transaction = {"from": sender, "data": "0x" + data.hex()}
        transaction["gas"] = self._gas_limit(transaction, gas_limit)

        transaction_hash = self.client.send_transaction(transaction)
        receipt = self._await_contract_address(transaction_hash)

        if receipt is None or receipt.contract_address is None:
            logger.warning(
                "No contract address observed for %s after %d attempts",
                transaction_hash,
                self.receipt_attempts,
            )

        return DeploymentResult(
            transaction_hash=transaction_hash,
            network=self.network,
            address=receipt.contract_address if receipt else None,
            gas_used=receipt.gas_used if receipt else None,
            block_number=receipt.block_number if receipt else None,
            receipt_status=receipt.status if receipt else None,
        )

    def call_method(
        self, address: str, abi: AbiLike, method: str, args: Sequence[Any] = ()
    ) -> Any:
        """
        Call a method through ``eth_call``.

        Returns:
            Decoded outputs when the ABI declares any, else the raw hex result

        Raises:
            UnrecognizedAbiEntry: If the method is not in the ABI
        """
        entry = find_method(load_abi(abi), method)
        data = encode_call(method, args, entry.get("inputs", []))

        result = self.client.call({"to": address, "data": "0x" + data.hex()})

        if entry.get("outputs"):
            return decode_result(result, entry["outputs"])
        return result

    def send_method(
        self,
        address: str,
        abi: AbiLike,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> str:
        entry = find_method(load_abi(abi), method)
        data = encode_call(method, args, entry.get("inputs", []))

        transaction = {"from": self._sender(sender), "to": address, "data": "0x" + data.hex()}
        transaction["gas"] = self._gas_limit(transaction, gas_limit)

        return self.client.send_transaction(transaction)

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return self.client.estimate_gas(transaction)

    def get_receipt(self, transaction_hash: str) -> Optional[Receipt]:
        return self.client.get_transaction_receipt(transaction_hash)

    def gas_price(self) -> int:
        return self.client.gas_price()

    def balance(self, address: str) -> int:
        return self.client.get_balance(address)

    def is_available(self) -> bool:
        try:
            self.client.block_number()
            return True
        except TransportError:
            return False

    def info(self) -> Dict[str, Any]:
        block_number = chain_id = None

        try:
            block_number = self.client.block_number()
        except TransportError as e:
            logger.debug("Block number unavailable: %s", e)

        try:
            chain_id = self.client.chain_id()
        except TransportError as e:
            logger.debug("Chain id unavailable: %s", e)

        return {
            "type": self.kind.value,
            "network": self.network,
            "rpc_url": self.client.rpc_url,
            "block_number": block_number,
            "chain_id": chain_id,
            "default_account": self.default_account,
        }

    def proxy_artifacts(self) -> Artifacts:
        return self._proxy

    def _sender(self, sender: Optional[str]) -> str:
        sender = sender or self.default_account
        if not sender:
            raise SenderRequired("A sender address is required for transactions")
        return sender

    def _gas_limit(self, transaction: Dict[str, Any], gas_limit: Optional[int]) -> int:
        if gas_limit is not None:
            return gas_limit
        try:
            return self.client.estimate_gas(transaction)
        except TransportError as e:
            logger.warning(
                "Gas estimation failed, using default %d: %s", self.default_gas_limit, e
            )
            return self.default_gas_limit

    def _await_contract_address(self, transaction_hash: str) -> Optional[Receipt]:
        receipt = None
        for attempt in range(self.receipt_attempts):
            if attempt:
                time.sleep(self.receipt_delay)
            receipt = self.get_receipt(transaction_hash)
            if receipt is not None:
                break
        return receipt


class LedgerSession(Protocol):
    """Narrow client interface to an immutable document ledger."""

    def describe_ledger(self, name: str) -> Dict[str, Any]:
        ...

    def insert_document(self, table: str, document: Dict[str, Any]) -> None:
        ...

    def fetch_document(self, table: str, document_id: str) -> Optional[Dict[str, Any]]:
        ...


class LedgerDbDriver(ChainDriver):
    """
    Driver for a document ledger without contract execution.

    Contract operations degrade to synthetic transaction identifiers so that
    callers receive the same result shape as on EVM backends. Events are the
    native primitive: each recorded document carries a hash of its canonical
    JSON and the ledger name, which verify_integrity() recomputes.
    """

    kind = BackendKind.LEDGER_DB
    capabilities = frozenset({Capability.EVENTS, Capability.RECEIPTS})

    def __init__(self, session: LedgerSession, ledger_name: str = DEFAULT_LEDGER_NAME):
        self.session = session
        self.ledger_name = ledger_name
        self.network = ledger_name

    def record_event(self, data: Dict[str, Any]) -> str:
        document_id = f"doc_{uuid.uuid4().hex}"
        self.session.insert_document(
            LEDGER_EVENTS_TABLE,
            {
                "id": document_id,
                "data": canonical_json(data),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "hash": self.generate_hash(data),
            },
        )
        logger.info("Event %s recorded on ledger %s", document_id, self.ledger_name)
        return document_id

    def get_event(self, document_id: str) -> Optional[Dict[str, Any]]:
        document = self.session.fetch_document(LEDGER_EVENTS_TABLE, document_id)
        if document is None:
            return None
        return json.loads(document["data"])

    def verify_integrity(self, document_id: str, data: Dict[str, Any]) -> bool:
        document = self.session.fetch_document(LEDGER_EVENTS_TABLE, document_id)
        if document is None:
            return False
        return document["hash"] == self.generate_hash(data)

    def generate_hash(self, data: Dict[str, Any]) -> str:
        return hashlib.sha256((canonical_json(data) + self.ledger_name).encode("utf-8")).hexdigest()

    def send_transaction(self, transaction: Dict[str, Any]) -> str:
        return self.record_event(transaction.get("data", transaction))

    def deploy(
        self,
        bytecode: str,
        abi: AbiLike,
        constructor_args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> DeploymentResult:
        transaction_id = _synthetic_id()
        logger.warning(
            "Contract deployment not supported on ledger %s (%s)", self.ledger_name, transaction_id
        )
        return DeploymentResult(
            transaction_hash=transaction_id,
            network=self.ledger_name,
            address=None,
            gas_used=0,
            supported=False,
        )

    def call_method(
        self, address: str, abi: AbiLike, method: str, args: Sequence[Any] = ()
    ) -> Any:
        transaction_id = _synthetic_id()
        logger.warning(
            "Contract call %s not supported on ledger %s (%s)",
            method,
            self.ledger_name,
            transaction_id,
        )
        return transaction_id

    def send_method(
        self,
        address: str,
        abi: AbiLike,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> str:
        return self.call_method(address, abi, method, args)

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return 0

    def get_receipt(self, transaction_hash: str) -> Optional[Receipt]:
        document = self.session.fetch_document(LEDGER_EVENTS_TABLE, transaction_hash)
        if document is None:
            return None
        return Receipt(transaction_hash=transaction_hash, block_number=None, status=True)

    def gas_price(self) -> int:
        return 0

    def balance(self, address: str) -> int:
        logger.warning("Account balance not applicable for ledger %s", self.ledger_name)
        return 0

    def is_available(self) -> bool:
        try:
            self.session.describe_ledger(self.ledger_name)
            return True
        except Exception as e:
            logger.warning("Ledger %s not available: %s", self.ledger_name, e)
            return False

    def info(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "network": self.network,
            "ledger_name": self.ledger_name,
            "available": self.is_available(),
        }


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _synthetic_id() -> str:
    return f"ledger_tx_{uuid.uuid4().hex}"
