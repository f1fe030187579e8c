"""Method calls against deployed contracts."""

import json
import logging
from typing import Any, List, Optional, Sequence

from .abi import encode_call, find_method, is_read_only, load_abi
from .config import LifecycleConfig
from .constants import ZERO_ADDRESS
from .drivers import ChainDriver
from .exceptions import (
    ContractNotDeployed,
    DeploymentTimedOut,
    LifecycleError,
    TransactionReverted,
    UnrecognizedAbiEntry,
)
from .models import ContractRecord, TransactionRecord
from .receipts import receipt_fields, wait_for_receipt
from .store import ContractStore
from .types import TransactionStatus

logger = logging.getLogger(__name__)


class ContractInteractor:
    """Calls view methods and submits recorded transactions to deployed contracts."""

    def __init__(
        self,
        driver: ChainDriver,
        store: ContractStore,
        config: Optional[LifecycleConfig] = None,
    ):
        self.driver = driver
        self.store = store
        self.config = config or LifecycleConfig()

    def call(self, contract: ContractRecord, method: str, args: Sequence[Any] = ()) -> Any:
        """
        Call a method read-only and return its decoded result.

        Raises:
            ContractNotDeployed: If the record has no address
            UnrecognizedAbiEntry: If no ABI is stored or the method is missing
        """
        self._method_entry(contract, method)
        return self.driver.call_method(contract.address, contract.abi, method, list(args))

    def transact(
        self,
        contract: ContractRecord,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
        wait: bool = False,
        timeout: Optional[float] = None,
    ) -> TransactionRecord:
        """
        Submit a state-changing method call and record it.

        The TransactionRecord starts ``pending``. With ``wait`` the receipt is
        awaited and the record moves to ``success`` or ``reverted``.

        Returns:
            The persisted TransactionRecord

        Raises:
            DeploymentTimedOut: If waiting and no receipt appears before the timeout
            TransactionReverted: If waiting and the receipt reports failure
        """
        self._method_entry(contract, method)

        transaction_hash = self.driver.send_method(
            contract.address, contract.abi, method, list(args), sender, gas_limit
        )

        with self.store.transaction():
            record = self.store.create_transaction(
                transaction_hash=transaction_hash,
                contract_id=contract.id,
                method_name=method,
                parameters=list(args),
                from_address=sender or self.driver.default_account,
                to_address=contract.address,
                status=TransactionStatus.PENDING,
            )

        if not wait:
            return record

        if timeout is None:
            timeout = self.config.deployment.confirmation_timeout
        receipt = wait_for_receipt(
            self.driver, transaction_hash, timeout, self.config.deployment.confirmation_interval
        )
        if receipt is None:
            raise DeploymentTimedOut(f"No receipt for {method} transaction {transaction_hash}")

        with self.store.transaction():
            self.store.update_transaction(record, **receipt_fields(receipt))

        if not receipt.status:
            raise TransactionReverted(f"Transaction {transaction_hash} calling {method} reverted")

        return record

    def estimate_gas(
        self,
        contract: ContractRecord,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[str] = None,
    ) -> int:
        """
        Estimate gas for a method call.

        Returns:
            Driver estimate, or the configured default limit if estimation fails
        """
        entry = self._method_entry(contract, method)
        data = encode_call(method, list(args), entry.get("inputs", []))

        try:
            return self.driver.estimate_gas(
                {
                    "from": sender or self.driver.default_account or ZERO_ADDRESS,
                    "to": contract.address,
                    "data": "0x" + data.hex(),
                }
            )
        except LifecycleError as e:
            logger.warning(
                "Gas estimation for %s failed, using default %d: %s",
                method,
                self.config.gas.default_limit,
                e,
            )
            return self.config.gas.default_limit

    def is_read_only(self, contract: ContractRecord, method: str) -> bool:
        return is_read_only(self._method_entry(contract, method))

    @staticmethod
    def parse_parameters(text: str) -> List[Any]:
        """
        Parse method parameters from text.

        Accepts a JSON array, else a comma-separated list of strings.
        """
        text = text.strip()
        if not text:
            return []

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, list):
            return parsed

        return [part.strip() for part in text.split(",")]

    def _method_entry(self, contract: ContractRecord, method: str) -> dict:
        if not contract.address:
            raise ContractNotDeployed(f"Contract '{contract.name}' has no address")
        if not contract.abi:
            raise UnrecognizedAbiEntry(f"No ABI stored for contract '{contract.name}'")
        return find_method(load_abi(contract.abi), method)
