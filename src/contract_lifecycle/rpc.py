"""JSON-RPC transport to an Ethereum-compatible node."""

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

from .constants import DEFAULT_RPC_TIMEOUT
from .exceptions import TransportError
from .types import Receipt
from .utils import from_quantity, to_quantity

logger = logging.getLogger(__name__)

# Transaction fields sent as quantities on the wire
_QUANTITY_FIELDS = ("gas", "gasPrice", "value", "nonce", "maxFeePerGas", "maxPriorityFeePerGas")


class EthereumRpcClient:
    """
    Thin JSON-RPC 2.0 client over HTTP.

    Integers are normalized at this boundary: quantities in transaction
    skeletons are hex-encoded on the way out and results are decoded to int
    on the way back. Calls are not retried.
    """

    def __init__(
        self,
        rpc_url: str = "http://localhost:8545",
        timeout: float = DEFAULT_RPC_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a JSON-RPC call and return its ``result``.

        Raises:
            TransportError: On network failure, non-2xx status, or a JSON-RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        try:
            response = self._session.post(self.rpc_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("RPC request %s to %s failed: %s", method, self.rpc_url, e)
            raise TransportError(f"Failed to connect to RPC endpoint: {e}") from e

        if not 200 <= response.status_code < 300:
            raise TransportError(response.text, status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON-RPC response: {e}", status=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise TransportError("Invalid JSON-RPC response", status=response.status_code)

        error = data.get("error")
        if error is not None:
            if not isinstance(error, dict):
                raise TransportError(
                    f"Invalid JSON-RPC error: {error}", status=response.status_code
                )
            raise TransportError(error.get("message", "unknown error"), code=error.get("code"))

        return data.get("result")

    def block_number(self) -> int:
        return from_quantity(self.request("eth_blockNumber"))

    def chain_id(self) -> int:
        return from_quantity(self.request("eth_chainId"))

    def gas_price(self) -> int:
        return from_quantity(self.request("eth_gasPrice"))

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return from_quantity(self.request("eth_estimateGas", [_encode_transaction(transaction)]))

    def send_transaction(self, transaction: Dict[str, Any]) -> str:
        """Submit a transaction and return its hash."""
        return self.request("eth_sendTransaction", [_encode_transaction(transaction)])

    def call(self, transaction: Dict[str, Any], block: str = "latest") -> str:
        """Execute a read-only call and return the raw hex result."""
        return self.request("eth_call", [_encode_transaction(transaction), block])

    def get_balance(self, address: str, block: str = "latest") -> int:
        return from_quantity(self.request("eth_getBalance", [address, block]))

    def get_transaction_receipt(self, transaction_hash: str) -> Optional[Receipt]:
        """
        Fetch a receipt.

        Returns:
            Receipt, or None while the transaction is not yet mined
        """
        result = self.request("eth_getTransactionReceipt", [transaction_hash])
        if result is None:
            return None

        status = result.get("status")
        return Receipt(
            transaction_hash=result.get("transactionHash", transaction_hash),
            block_number=from_quantity(result.get("blockNumber")),
            block_hash=result.get("blockHash"),
            contract_address=result.get("contractAddress"),
            gas_used=from_quantity(result.get("gasUsed")),
            status=True if status is None else from_quantity(status) == 1,
            from_address=result.get("from"),
            to_address=result.get("to"),
            logs=result.get("logs") or [],
        )


def _encode_transaction(transaction: Dict[str, Any]) -> Dict[str, Any]:
    encoded = dict(transaction)
    for key in _QUANTITY_FIELDS:
        if isinstance(encoded.get(key), int):
            encoded[key] = to_quantity(encoded[key])
    return encoded
