"""
Gas price management utilities.
"""

from typing import Optional
from web3 import Web3

FALLBACK_GAS_PRICE_GWEI = 30


class GasManager:
    """Picks the gas price for outgoing transactions."""

    def __init__(
        self,
        w3: Web3,
        gas_price_gwei: Optional[float] = None,
        max_gas_price_gwei: float = 200,
        verbose: bool = True
    ):
        """
        Initialize gas manager.

        Args:
            w3: Web3 instance
            gas_price_gwei: Fixed gas price in Gwei (None to use network price)
            max_gas_price_gwei: Cap applied to the network price, in Gwei
            verbose: Whether to print the chosen price
        """
        self.w3 = w3
        self.gas_price_gwei = gas_price_gwei
        self.max_gas_price_gwei = max_gas_price_gwei
        self.verbose = verbose

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[GAS] {message}")

    def get_gas_price(self) -> int:
        """
        Get the gas price in Wei.

        A fixed price wins; otherwise the RPC price capped at the maximum;
        otherwise a fallback when the RPC cannot be queried.
        """
        if self.gas_price_gwei:
            fixed_gas_wei = self.w3.to_wei(self.gas_price_gwei, 'gwei')
            self._log(f"Using FIXED gas price: {self.gas_price_gwei} Gwei")
            return fixed_gas_wei

        max_gas_price = self.w3.to_wei(self.max_gas_price_gwei, 'gwei')
        try:
            gas_price = self.w3.eth.gas_price
        except Exception as e:
            self._log(f"Using FALLBACK gas price: {FALLBACK_GAS_PRICE_GWEI} Gwei (RPC fetch failed: {str(e)})")
            return self.w3.to_wei(FALLBACK_GAS_PRICE_GWEI, 'gwei')

        if gas_price > max_gas_price:
            self._log(f"Using RPC gas price (capped): {gas_price / 1e9:.2f} Gwei -> {self.max_gas_price_gwei} Gwei")
            return max_gas_price
        self._log(f"Using gas price from RPC: {gas_price / 1e9:.2f} Gwei")
        return gas_price
