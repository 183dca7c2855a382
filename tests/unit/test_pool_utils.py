"""
Unit tests for proportional pool arithmetic.
"""

from decimal import Decimal

import pytest

from errors import InsufficientLiquidity, InvalidAmount, InvalidTolerance
from models import AssetDescriptor
from tests.fakes import make_pool
from utils.pool_utils import (
    compute_pair_amount,
    initial_pool_amounts,
    project_withdrawal,
    withdrawal_minimums,
)
from utils.slippage_utils import SlippageTolerance

NO_SLIPPAGE = SlippageTolerance(0, 1)


class TestProjectWithdrawal:

    def test_proportional_share(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        projected = project_withdrawal(pool, 10_000)
        assert projected.base_amount == 20_000
        assert projected.quote_amount == 40_000

    def test_zero_share(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        projected = project_withdrawal(pool, 0)
        assert (projected.base_amount, projected.quote_amount) == (0, 0)

    def test_truncates(self) -> None:
        pool = make_pool(10, 7, 3)
        projected = project_withdrawal(pool, 1)
        assert projected.base_amount == 3
        assert projected.quote_amount == 2

    def test_full_supply_returns_reserves(self) -> None:
        pool = make_pool(123_456_789, 987_654_321, 55_555)
        projected = project_withdrawal(pool, 55_555)
        assert projected.base_amount == 123_456_789
        assert projected.quote_amount == 987_654_321

    def test_empty_pool_is_one_to_one(self) -> None:
        """No shares outstanding: 1 share redeems 1 of each asset in decimal space"""
        pool = make_pool(0, 0, 0, base_decimals=9, quote_decimals=6, share_decimals=6)
        projected = project_withdrawal(pool, 1_000_000)
        assert projected.base_amount == 1_000_000_000
        assert projected.quote_amount == 1_000_000

    def test_empty_pool_truncates_lower_precision(self) -> None:
        pool = make_pool(0, 0, 0, base_decimals=2, quote_decimals=6, share_decimals=6)
        projected = project_withdrawal(pool, 1_234_567)
        assert projected.base_amount == 123
        assert projected.quote_amount == 1_234_567

    def test_rejects_non_integer_share(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        with pytest.raises(InvalidAmount):
            project_withdrawal(pool, Decimal('1.5'))

    def test_rejects_negative_share(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        with pytest.raises(InvalidAmount):
            project_withdrawal(pool, -1)


class TestWithdrawalMinimums:

    def test_applies_tolerance_to_both_sides(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        minimums = withdrawal_minimums(pool, 10_000, SlippageTolerance(1, 100))
        assert minimums.base_amount == 19_800
        assert minimums.quote_amount == 39_600

    def test_zero_tolerance_equals_projection(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        assert withdrawal_minimums(pool, 10_000, NO_SLIPPAGE) == project_withdrawal(pool, 10_000)


class TestComputePairAmount:

    def test_ratio_two(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        quote = compute_pair_amount(pool, '1', NO_SLIPPAGE)
        assert quote.fixed_side == 'base'
        assert quote.fixed_amount == 1_000_000
        assert quote.other_amount == 2_000_000
        assert quote.other_amount_min == 2_000_000
        assert quote.other_amount_max == 2_000_000

    def test_slippage_bounds(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        quote = compute_pair_amount(pool, '1', SlippageTolerance(1, 100))
        assert quote.other_amount_min == 1_980_000
        assert quote.other_amount_max == 2_020_000

    def test_fixed_quote_side(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        quote = compute_pair_amount(pool, '1', NO_SLIPPAGE, fixed_side='quote')
        assert quote.fixed_amount == 1_000_000
        assert quote.other_amount == 500_000

    def test_mixed_decimals(self) -> None:
        """1 base (18 dp) per 2000 quote (6 dp)"""
        pool = make_pool(10 * 10**18, 20_000 * 10**6, 10**18, base_decimals=18, quote_decimals=6)
        quote = compute_pair_amount(pool, '0.5', NO_SLIPPAGE)
        assert quote.fixed_amount == 5 * 10**17
        assert quote.other_amount == 1_000 * 10**6

    def test_empty_reserve_prices_one_to_one(self) -> None:
        pool = make_pool(0, 0, 0, base_decimals=6, quote_decimals=9)
        quote = compute_pair_amount(pool, '2.5', NO_SLIPPAGE)
        assert quote.fixed_amount == 2_500_000
        assert quote.other_amount == 2_500_000_000

    def test_amount_below_precision_truncates_to_zero(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        quote = compute_pair_amount(pool, '0.0000001', NO_SLIPPAGE)
        assert quote.fixed_amount == 0
        assert quote.other_amount == 0

    def test_bad_side(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        with pytest.raises(ValueError):
            compute_pair_amount(pool, '1', NO_SLIPPAGE, fixed_side='lp')

    def test_bad_tolerance(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        with pytest.raises(InvalidTolerance):
            compute_pair_amount(pool, '1', SlippageTolerance(3, 2))

    def test_negative_amount(self) -> None:
        pool = make_pool(1_000_000, 2_000_000, 500_000)
        with pytest.raises(InvalidAmount):
            compute_pair_amount(pool, '-1', NO_SLIPPAGE)


class TestInitialPoolAmounts:

    def test_defaults(self) -> None:
        base = AssetDescriptor('mintA', 6, 'AAA')
        quote = AssetDescriptor('mintB', 9, 'BBB')
        assert initial_pool_amounts(base, quote) == (100_000_000, 100_000_000_000)

    def test_too_little_liquidity(self) -> None:
        base = AssetDescriptor('mintA', 6, 'AAA')
        quote = AssetDescriptor('mintB', 6, 'BBB')
        with pytest.raises(InsufficientLiquidity):
            initial_pool_amounts(base, quote, '1', '1')
