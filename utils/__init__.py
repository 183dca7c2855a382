"""
Utility modules for liquidity arithmetic, caching and EVM transactions.
"""

from .conversion_utils import to_base_units, to_decimal, format_amount
from .slippage_utils import SlippageTolerance, minimum_acceptable, maximum_acceptable
from .pool_utils import project_withdrawal, withdrawal_minimums, compute_pair_amount, initial_pool_amounts
from .cache_utils import ResourceCache
from .gas_utils import GasManager
from .balance_utils import check_native_balance
from .token_utils import normalize_address, get_token_balance, check_and_approve_token
from .transaction_utils import send_transaction, simulate_transaction, wait_for_confirmation

__all__ = [
    'to_base_units',
    'to_decimal',
    'format_amount',
    'SlippageTolerance',
    'minimum_acceptable',
    'maximum_acceptable',
    'project_withdrawal',
    'withdrawal_minimums',
    'compute_pair_amount',
    'initial_pool_amounts',
    'ResourceCache',
    'GasManager',
    'check_native_balance',
    'normalize_address',
    'get_token_balance',
    'check_and_approve_token',
    'send_transaction',
    'simulate_transaction',
    'wait_for_confirmation',
]
