"""
Transaction utilities: signing, sending, simulating and waiting.
"""

import time
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from web3 import Web3

RECEIPT_TIMEOUT = 120

DEFAULT_DEADLINE_SECONDS = 1200


def build_deadline(seconds: int = DEFAULT_DEADLINE_SECONDS, now: Optional[float] = None) -> int:
    """Unix timestamp `seconds` from now (20 minutes by default)."""
    if now is None:
        now = time.time()
    return int(now) + seconds


def send_transaction(w3: 'Web3', account, transaction: Dict, label: str = 'tx', timeout: int = RECEIPT_TIMEOUT):
    """
    Sign and send a transaction, then wait for its receipt.

    Args:
        w3: Web3 instance
        account: Account object for signing transactions
        transaction: Built transaction dict
        label: Name printed next to the hash
        timeout: Seconds to wait for the receipt

    Returns:
        Transaction receipt. The caller checks `receipt.status`.
    """
    signed_txn = account.sign_transaction(transaction)
    tx_hash = w3.eth.send_raw_transaction(signed_txn.raw_transaction)
    print(f"[TX] {label} tx: {tx_hash.hex()}")
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    print(f"[TX] {label} mined in block {receipt.blockNumber} (status: {receipt.status})")
    return receipt


def simulate_transaction(contract_function, sender: str, label: str = 'tx'):
    """
    Execute a contract call with eth_call without sending anything.

    Returns:
        The call's return value. Reverts propagate as web3 exceptions.
    """
    result = contract_function.call({'from': sender})
    print(f"[TX] [DRY RUN] {label} simulated: {result}")
    return result


def receipt_hash(receipt) -> str:
    tx_hash = receipt.transactionHash
    return tx_hash.hex() if hasattr(tx_hash, 'hex') else str(tx_hash)


def wait_for_confirmation(seconds: int) -> None:
    """Pause so follow-up reads observe the committed state."""
    remaining_time = seconds
    while remaining_time > 0:
        print(f"\rWaiting for {remaining_time} seconds after transaction", end='', flush=True)
        time.sleep(1)
        remaining_time -= 1
    print()
