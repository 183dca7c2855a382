"""
ERC20 token helpers: address normalization, metadata, balances and approvals.
"""

from typing import Optional, TYPE_CHECKING

from eth_utils import to_checksum_address

from utils.balance_utils import check_native_balance
from utils.transaction_utils import send_transaction

if TYPE_CHECKING:
    from web3 import Web3
    from utils.gas_utils import GasManager

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

MAX_UINT256 = 2**256 - 1

APPROVE_GAS_LIMIT = 150000


def normalize_address(address: str) -> str:
    """
    Checksum an address.

    Raises:
        ValueError: if `address` is not a 20-byte hex address
    """
    if not isinstance(address, str) or not address.startswith('0x') or len(address) != 42:
        raise ValueError(f"not an address: {address!r}")
    return to_checksum_address(address)


def is_zero_address(address: Optional[str]) -> bool:
    return not address or int(address, 16) == 0


def get_token_abi():
    """
    Get the ERC20 ABI subset used by the harness.

    Returns:
        List of ABI entries for approve, allowance, balanceOf, decimals and symbol
    """
    return [
        {
            "inputs": [
                {"internalType": "address", "name": "spender", "type": "address"},
                {"internalType": "uint256", "name": "amount", "type": "uint256"}
            ],
            "name": "approve",
            "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "address", "name": "owner", "type": "address"},
                {"internalType": "address", "name": "spender", "type": "address"}
            ],
            "name": "allowance",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
            "name": "balanceOf",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "decimals",
            "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "symbol",
            "outputs": [{"internalType": "string", "name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function"
        }
    ]


def get_token_contract(w3: 'Web3', token_address: str):
    return w3.eth.contract(address=normalize_address(token_address), abi=get_token_abi())


def get_token_balance(w3: 'Web3', token_address: str, owner: str) -> int:
    """
    Get the token balance of `owner` in base units.

    Args:
        w3: Web3 instance
        token_address: Token contract address
        owner: Address to check the balance of

    Returns:
        Balance in base units
    """
    token_contract = get_token_contract(w3, token_address)
    return int(token_contract.functions.balanceOf(normalize_address(owner)).call())


def get_token_symbol(w3: 'Web3', token_address: str) -> str:
    """Token symbol, or an empty string for tokens that do not implement it."""
    try:
        return str(get_token_contract(w3, token_address).functions.symbol().call())
    except Exception:
        return ''


def check_and_approve_token(
    token_address: str,
    spender: str,
    amount: int,
    w3: 'Web3',
    account,
    address: str,
    gas_manager: 'GasManager',
    dry_run: bool = False
) -> bool:
    """
    Check token balance and approve `spender` if the allowance is short.

    Args:
        token_address: Token contract address
        spender: Contract address to approve (the router)
        amount: Amount the spender must be able to pull, in base units
        w3: Web3 instance
        account: Account object for signing transactions
        address: Wallet address
        gas_manager: GasManager instance
        dry_run: Report what would be approved without sending anything

    Returns:
        True if the allowance covers `amount` (or would, in dry-run), False otherwise
    """
    token_contract = get_token_contract(w3, token_address)

    token_balance = token_contract.functions.balanceOf(address).call()
    if token_balance < amount:
        print(f"  WARNING: Insufficient token balance. Need {amount}, have {token_balance}")
        print(f"  Token Address: {token_address}")
        return False

    allowance = token_contract.functions.allowance(address, spender).call()
    if allowance >= amount:
        return True

    if dry_run:
        print(f"  [DRY RUN] Would approve {spender} to spend {token_address}")
        return True

    if not check_native_balance(w3, address, gas_manager, APPROVE_GAS_LIMIT):
        return False

    approve_txn = token_contract.functions.approve(spender, MAX_UINT256).build_transaction({
        'from': address,
        'gas': APPROVE_GAS_LIMIT,
        'gasPrice': gas_manager.get_gas_price(),
        'nonce': w3.eth.get_transaction_count(address)
    })
    receipt = send_transaction(w3, account, approve_txn, label='approve')
    if receipt.status != 1:
        print(f"  ERROR: Approval transaction failed")
        return False
    print(f"  Approval confirmed for {token_address}")
    return True
