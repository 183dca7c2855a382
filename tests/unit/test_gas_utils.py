"""
Unit tests for gas price selection.
"""

from unittest.mock import MagicMock, PropertyMock

from web3 import Web3

from utils.gas_utils import FALLBACK_GAS_PRICE_GWEI, GasManager


def make_w3(gas_price_wei=None, error=None) -> MagicMock:
    w3 = MagicMock()
    w3.to_wei.side_effect = Web3.to_wei
    if error is not None:
        type(w3.eth).gas_price = PropertyMock(side_effect=error)
    else:
        w3.eth.gas_price = gas_price_wei
    return w3


class TestGasManager:

    def test_fixed_price_wins(self) -> None:
        w3 = make_w3(gas_price_wei=Web3.to_wei(80, 'gwei'))
        manager = GasManager(w3, gas_price_gwei=5, verbose=False)
        assert manager.get_gas_price() == Web3.to_wei(5, 'gwei')

    def test_rpc_price(self) -> None:
        w3 = make_w3(gas_price_wei=Web3.to_wei(20, 'gwei'))
        assert GasManager(w3, verbose=False).get_gas_price() == Web3.to_wei(20, 'gwei')

    def test_rpc_price_capped(self) -> None:
        w3 = make_w3(gas_price_wei=Web3.to_wei(300, 'gwei'))
        manager = GasManager(w3, max_gas_price_gwei=200, verbose=False)
        assert manager.get_gas_price() == Web3.to_wei(200, 'gwei')

    def test_fallback_when_rpc_fails(self) -> None:
        w3 = make_w3(error=ConnectionError('node unreachable'))
        manager = GasManager(w3, verbose=False)
        assert manager.get_gas_price() == Web3.to_wei(FALLBACK_GAS_PRICE_GWEI, 'gwei')
