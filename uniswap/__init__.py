"""
Uniswap V2 ledger reader and provisioner.
"""

from .ledger import Web3Ledger
from .uniswap_v2 import UniswapV2Provisioner

__all__ = [
    'Web3Ledger',
    'UniswapV2Provisioner',
]
