"""Receipt polling shared by confirmation waits."""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .constants import DEFAULT_CONFIRMATION_INTERVAL
from .types import Receipt, TransactionStatus


def wait_for_receipt(
    driver,
    transaction_hash: str,
    timeout: float,
    interval: float = DEFAULT_CONFIRMATION_INTERVAL,
) -> Optional[Receipt]:
    """
    Poll a driver until a receipt with a block number appears.

    Args:
        driver: ChainDriver to query
        transaction_hash: Transaction to wait for
        timeout: Wall-clock budget in seconds
        interval: Sleep between polls in seconds

    Returns:
        The receipt, or None once the timeout elapses without one
    """
    deadline = time.monotonic() + timeout

    while True:
        receipt = driver.get_receipt(transaction_hash)
        if receipt is not None and receipt.block_number is not None:
            return receipt

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        time.sleep(min(interval, remaining))


def receipt_fields(receipt: Receipt) -> Dict[str, Any]:
    """TransactionRecord fields for a terminal receipt."""
    return {
        "status": TransactionStatus.SUCCESS if receipt.status else TransactionStatus.REVERTED,
        "block_number": receipt.block_number,
        "gas_used": receipt.gas_used,
        "confirmed_at": datetime.now(timezone.utc),
    }
