"""
Read-only ledger access for Uniswap V2 style pairs and ERC20 tokens.
"""

from typing import Dict, Optional

from web3 import Web3

from models import AssetDescriptor, PoolState
from utils.token_utils import get_token_balance, get_token_contract, get_token_symbol, normalize_address


def get_pair_abi():
    """Uniswap V2 pair ABI subset: tokens, reserves, LP supply and owning factory."""
    return [
        {
            "inputs": [],
            "name": "token0",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "token1",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "getReserves",
            "outputs": [
                {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
                {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
                {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"}
            ],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "totalSupply",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function"
        },
        {
            "inputs": [],
            "name": "factory",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "stateMutability": "view",
            "type": "function"
        }
    ]


class Web3Ledger:
    """LedgerReader backed by a web3 connection."""

    def __init__(self, w3: Web3):
        self.w3 = w3
        # Token decimals are immutable, pool state is never cached
        self._descriptors: Dict[str, AssetDescriptor] = {}

    def get_asset_descriptor(self, asset: str) -> AssetDescriptor:
        address = normalize_address(asset)
        if address not in self._descriptors:
            decimals = get_token_contract(self.w3, address).functions.decimals().call()
            self._descriptors[address] = AssetDescriptor(
                address=address,
                decimals=int(decimals),
                symbol=get_token_symbol(self.w3, address),
            )
        return self._descriptors[address]

    def get_balance(self, asset: str, owner: str) -> int:
        return get_token_balance(self.w3, asset, owner)

    def get_pool_state(self, pool_id: str, base_asset: Optional[str] = None) -> PoolState:
        """
        Fetch a fresh snapshot of a pair.

        Args:
            pool_id: Pair address
            base_asset: Token to report as the base side. Defaults to token0.

        Returns:
            PoolState with reserves oriented so `base` is `base_asset`
        """
        pair_address = normalize_address(pool_id)
        pair = self.w3.eth.contract(address=pair_address, abi=get_pair_abi())

        token0 = normalize_address(pair.functions.token0().call())
        token1 = normalize_address(pair.functions.token1().call())
        reserve0, reserve1, _ = pair.functions.getReserves().call()
        share_supply = pair.functions.totalSupply().call()
        factory = normalize_address(pair.functions.factory().call())

        if base_asset is not None:
            base_asset = normalize_address(base_asset)
            if base_asset not in (token0, token1):
                raise ValueError(f"{base_asset} is not a token of pair {pair_address}")
            if base_asset == token1:
                token0, token1 = token1, token0
                reserve0, reserve1 = reserve1, reserve0

        return PoolState(
            pool_id=pair_address,
            base=self.get_asset_descriptor(token0),
            quote=self.get_asset_descriptor(token1),
            share=self.get_asset_descriptor(pair_address),
            base_reserve=int(reserve0),
            quote_reserve=int(reserve1),
            share_supply=int(share_supply),
            program_id=factory,
        )
