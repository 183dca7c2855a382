"""
Unit tests for token helpers, approvals and transaction plumbing.
"""

from unittest.mock import MagicMock, patch

import pytest
from web3 import Web3

from utils.balance_utils import check_native_balance
from utils.token_utils import MAX_UINT256, check_and_approve_token, is_zero_address, normalize_address
from utils.transaction_utils import build_deadline, receipt_hash, send_transaction

TOKEN = Web3.to_checksum_address('0x' + '12' * 20)
SPENDER = Web3.to_checksum_address('0x' + '34' * 20)
WALLET = Web3.to_checksum_address('0x' + '56' * 20)


class TestAddresses:

    def test_normalize(self) -> None:
        assert normalize_address(TOKEN.lower()) == TOKEN

    @pytest.mark.parametrize('address', ['', '0x1234', 'mintA', None, '12' * 21])
    def test_normalize_rejects(self, address) -> None:
        with pytest.raises(ValueError):
            normalize_address(address)

    def test_zero_address(self) -> None:
        assert is_zero_address('0x' + '00' * 20)
        assert is_zero_address(None)
        assert not is_zero_address(TOKEN)


@pytest.fixture
def token():
    token = MagicMock()
    token.functions.balanceOf.return_value.call.return_value = 1000
    token.functions.allowance.return_value.call.return_value = 0
    return token


@pytest.fixture
def w3(token):
    w3 = MagicMock()
    w3.eth.contract.return_value = token
    w3.eth.get_transaction_count.return_value = 3
    return w3


@pytest.fixture
def gas_manager():
    gas_manager = MagicMock()
    gas_manager.get_gas_price.return_value = 10**9
    return gas_manager


class TestCheckAndApproveToken:

    def test_insufficient_token_balance(self, w3, token, gas_manager) -> None:
        assert not check_and_approve_token(TOKEN, SPENDER, 5000, w3, MagicMock(), WALLET, gas_manager)
        token.functions.approve.assert_not_called()

    def test_allowance_already_sufficient(self, w3, token, gas_manager) -> None:
        token.functions.allowance.return_value.call.return_value = 1000
        assert check_and_approve_token(TOKEN, SPENDER, 500, w3, MagicMock(), WALLET, gas_manager)
        token.functions.approve.assert_not_called()

    def test_dry_run_sends_nothing(self, w3, token, gas_manager) -> None:
        assert check_and_approve_token(TOKEN, SPENDER, 500, w3, MagicMock(), WALLET, gas_manager, dry_run=True)
        token.functions.approve.assert_not_called()

    def test_approves_max(self, w3, token, gas_manager) -> None:
        with patch('utils.token_utils.check_native_balance', return_value=True), \
                patch('utils.token_utils.send_transaction') as send:
            send.return_value = MagicMock(status=1)
            assert check_and_approve_token(TOKEN, SPENDER, 500, w3, MagicMock(), WALLET, gas_manager)

        token.functions.approve.assert_called_once_with(SPENDER, MAX_UINT256)
        token.functions.approve.return_value.build_transaction.assert_called_once_with({
            'from': WALLET, 'gas': 150000, 'gasPrice': 10**9, 'nonce': 3
        })

    def test_failed_approval(self, w3, token, gas_manager) -> None:
        with patch('utils.token_utils.check_native_balance', return_value=True), \
                patch('utils.token_utils.send_transaction') as send:
            send.return_value = MagicMock(status=0)
            assert not check_and_approve_token(TOKEN, SPENDER, 500, w3, MagicMock(), WALLET, gas_manager)


class TestNativeBalance:

    def test_enough(self, gas_manager) -> None:
        w3 = MagicMock()
        w3.eth.get_balance.return_value = 10**9 * 21000
        assert check_native_balance(w3, WALLET, gas_manager, 21000)

    def test_short(self, gas_manager) -> None:
        w3 = MagicMock()
        w3.eth.get_balance.return_value = 10**9 * 21000
        w3.from_wei.side_effect = Web3.from_wei
        assert not check_native_balance(w3, WALLET, gas_manager, 21000, value=1)


class TestTransactions:

    def test_deadline(self) -> None:
        assert build_deadline(1200, now=1_700_000_000.7) == 1_700_001_200

    def test_send_transaction(self) -> None:
        w3 = MagicMock()
        account = MagicMock()
        tx_hash = bytes.fromhex('cd' * 32)
        w3.eth.send_raw_transaction.return_value = tx_hash
        w3.eth.wait_for_transaction_receipt.return_value = MagicMock(status=1, blockNumber=10, transactionHash=tx_hash)

        receipt = send_transaction(w3, account, {'nonce': 1}, label='test')

        account.sign_transaction.assert_called_once_with({'nonce': 1})
        w3.eth.send_raw_transaction.assert_called_once_with(account.sign_transaction.return_value.raw_transaction)
        w3.eth.wait_for_transaction_receipt.assert_called_once_with(tx_hash, timeout=120)
        assert receipt_hash(receipt) == 'cd' * 32
