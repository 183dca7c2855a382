"""
Proportional pool arithmetic for deposits and withdrawals.

Reserves are read from a PoolState snapshot; fetch it right before using the
results, since reserves move with every trade.
"""

from typing import Tuple

from errors import InsufficientLiquidity, InvalidAmount
from models import FIXED_SIDES, AssetDescriptor, PairQuote, PoolState, WithdrawalProjection
from utils.conversion_utils import DecimalLike, to_base_units, to_decimal
from utils.slippage_utils import SlippageTolerance, maximum_acceptable, minimum_acceptable


def _rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Same decimal-space value expressed in another precision, truncated."""
    return to_base_units(to_decimal(amount, from_decimals), to_decimals)


def _check_base_units(name: str, amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an int amount in base units, got {amount!r}")
    if amount < 0:
        raise InvalidAmount(f"{name} must not be negative, got {amount}")


def project_withdrawal(pool: PoolState, share_amount: int) -> WithdrawalProjection:
    """
    Amounts of each reserve redeemed by burning `share_amount` share tokens.

    Burning a fraction f of the outstanding shares yields a fraction f of each
    reserve. An empty pool (no shares outstanding) redeems 1:1 in decimal space.

    Args:
        pool: Fresh pool snapshot
        share_amount: Share tokens to burn, in base units

    Returns:
        Projected base and quote amounts in base units, truncated
    """
    _check_base_units('share_amount', share_amount)

    if pool.share_supply == 0:
        return WithdrawalProjection(
            base_amount=_rescale(share_amount, pool.share.decimals, pool.base.decimals),
            quote_amount=_rescale(share_amount, pool.share.decimals, pool.quote.decimals),
        )

    # share/supply * reserve, multiplied before dividing so nothing is lost
    return WithdrawalProjection(
        base_amount=share_amount * pool.base_reserve // pool.share_supply,
        quote_amount=share_amount * pool.quote_reserve // pool.share_supply,
    )


def withdrawal_minimums(
    pool: PoolState,
    share_amount: int,
    tolerance: SlippageTolerance
) -> WithdrawalProjection:
    """Projected withdrawal with the slippage bound applied to each asset."""
    projected = project_withdrawal(pool, share_amount)
    return WithdrawalProjection(
        base_amount=minimum_acceptable(projected.base_amount, tolerance),
        quote_amount=minimum_acceptable(projected.quote_amount, tolerance),
    )


def compute_pair_amount(
    pool: PoolState,
    fixed_amount: DecimalLike,
    tolerance: SlippageTolerance,
    fixed_side: str = 'base'
) -> PairQuote:
    """
    Amount of the other asset needed to deposit `fixed_amount` at the current price.

    other = fixed * (other_reserve / fixed_reserve), evaluated in decimal space
    and truncated to the other asset's base units. A pool with an empty
    reserve prices the pair 1:1 in decimal space.

    Args:
        pool: Fresh pool snapshot
        fixed_amount: Human-readable amount of the fixed side, paid exactly
        tolerance: Slippage tolerance for the other side
        fixed_side: 'base' or 'quote'

    Returns:
        PairQuote with the fixed amount and the other side's bounds
    """
    if fixed_side not in FIXED_SIDES:
        raise ValueError(f"fixed_side must be one of {FIXED_SIDES}, got {fixed_side!r}")
    other_side = 'quote' if fixed_side == 'base' else 'base'

    fixed_asset = pool.asset_of(fixed_side)
    other_asset = pool.asset_of(other_side)
    fixed_units = to_base_units(fixed_amount, fixed_asset.decimals)

    fixed_reserve = pool.reserve_of(fixed_side)
    other_reserve = pool.reserve_of(other_side)
    if fixed_reserve == 0 or other_reserve == 0:
        other_units = _rescale(fixed_units, fixed_asset.decimals, other_asset.decimals)
    else:
        # Decimal scaling of both reserves cancels out against the fixed amount's
        other_units = fixed_units * other_reserve // fixed_reserve

    return PairQuote(
        fixed_side=fixed_side,
        fixed_amount=fixed_units,
        other_amount=other_units,
        other_amount_min=minimum_acceptable(other_units, tolerance),
        other_amount_max=maximum_acceptable(other_units, tolerance),
    )


def initial_pool_amounts(
    base: AssetDescriptor,
    quote: AssetDescriptor,
    base_amount: DecimalLike = '100',
    quote_amount: DecimalLike = '100'
) -> Tuple[int, int]:
    """
    Base-unit amounts for seeding a new pool.

    Raises:
        InsufficientLiquidity: if base * quote does not exceed one full base
            token squared, the pool would open with too little liquidity
    """
    base_units = to_base_units(base_amount, base.decimals)
    quote_units = to_base_units(quote_amount, quote.decimals)
    if base_units * quote_units <= (10 ** base.decimals) ** 2:
        raise InsufficientLiquidity(
            f"initial liquidity too low ({base_units} x {quote_units}), "
            f"try adding more base/quote amount"
        )
    return base_units, quote_units
