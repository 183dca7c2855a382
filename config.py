"""
Harness configuration, read from the environment (and a .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _get_float(name: str):
    value = os.getenv(name)
    return float(value) if value else None


RPC_URL = os.getenv('RPC_URL', 'http://127.0.0.1:8545')
PRIVATE_KEY = os.getenv('PRIVATE_KEY', '')

# 'mainnet' shares the unprefixed cache files, any other network gets its own
NETWORK = os.getenv('NETWORK', 'mainnet')
CACHE_DIR = os.getenv('CACHE_DIR', 'cache')

UNISWAP_V2_FACTORY = os.getenv('UNISWAP_V2_FACTORY', '0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f')
UNISWAP_V2_ROUTER = os.getenv('UNISWAP_V2_ROUTER', '0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D')

BASE_TOKEN_ADDRESS = os.getenv('BASE_TOKEN_ADDRESS', '')
QUOTE_TOKEN_ADDRESS = os.getenv('QUOTE_TOKEN_ADDRESS', '')

SLIPPAGE_BPS = int(os.getenv('SLIPPAGE_BPS', '100'))
GAS_PRICE_GWEI = _get_float('GAS_PRICE_GWEI')
MAX_GAS_PRICE_GWEI = _get_float('MAX_GAS_PRICE_GWEI') or 200
DRY_RUN = _get_bool('DRY_RUN')

# Seconds to wait after a transaction before reading state again
WAIT_TIME_AFTER_TRANSACTION = int(os.getenv('WAIT_TIME_AFTER_TRANSACTION', '15'))


def cache_prefix(network: str = None) -> str:
    """Cache file prefix for `network` ('' on mainnet, 'sepolia_' on sepolia)."""
    network = (network if network is not None else NETWORK).strip().lower()
    if not network or network == 'mainnet':
        return ''
    return f"{network}_"
