"""
Native balance checks ahead of sending transactions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from web3 import Web3
    from utils.gas_utils import GasManager


def check_native_balance(
    w3: 'Web3',
    address: str,
    gas_manager: 'GasManager',
    gas_limit: int,
    value: int = 0
) -> bool:
    """
    Check that `address` can pay for `gas_limit` gas plus `value`.

    Args:
        w3: Web3 instance
        address: Wallet address
        gas_manager: GasManager instance
        gas_limit: Gas limit of the transaction about to be sent
        value: Native amount sent along with the transaction, in Wei

    Returns:
        True if sufficient balance, False otherwise
    """
    gas_price = gas_manager.get_gas_price()
    balance_wei = w3.eth.get_balance(address)
    total_needed = value + gas_price * gas_limit
    if balance_wei < total_needed:
        print(f"  WARNING: Insufficient native balance. Need {w3.from_wei(total_needed, 'ether'):.6f}, have {w3.from_wei(balance_wei, 'ether'):.6f}")
        return False
    return True
