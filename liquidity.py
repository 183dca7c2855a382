"""
Liquidity deposits and withdrawals against a provisioned pool.

Every operation fetches a fresh pool snapshot, validates and computes its
bounds before anything is submitted, then hands the parameters to the
ResourceCreator.
"""

from typing import Callable, Iterable, Optional, Tuple

from errors import ExternalCallFailure, InsufficientLiquidity, InvalidAmount, LiquidityError, UnsupportedResourceType
from models import (
    AddLiquidityParams,
    LedgerReader,
    LiquidityResult,
    PoolState,
    RemoveLiquidityParams,
    ResourceCreator,
)
from utils.conversion_utils import DecimalLike, format_amount, to_base_units
from utils.pool_utils import compute_pair_amount, project_withdrawal
from utils.slippage_utils import SlippageTolerance, minimum_acceptable


def check_pool_program(pool: PoolState, valid_programs: Optional[Iterable[str]]) -> None:
    """Reject pools not owned by one of `valid_programs` (None allows any)."""
    if valid_programs is None:
        return
    if pool.program_id not in set(valid_programs):
        raise UnsupportedResourceType(
            f"target pool {pool.pool_id} is not an AMM pool (program {pool.program_id or 'unknown'})"
        )


def build_add_liquidity(
    pool: PoolState,
    fixed_amount: DecimalLike,
    tolerance: SlippageTolerance,
    fixed_side: str = 'base'
) -> AddLiquidityParams:
    """
    Parameters for depositing `fixed_amount` of one side at the current price.

    Raises:
        InvalidAmount: the fixed amount truncates to zero base units
        InvalidTolerance: tolerance above 100%
    """
    quote = compute_pair_amount(pool, fixed_amount, tolerance, fixed_side)
    if quote.fixed_amount == 0:
        raise InvalidAmount(f"Amount must be greater than zero, got {fixed_amount!r}")
    return AddLiquidityParams(
        pool_id=pool.pool_id,
        fixed_side=fixed_side,
        fixed_amount=quote.fixed_amount,
        other_amount_min=quote.other_amount_min,
        other_amount_max=quote.other_amount_max,
    )


def build_remove_liquidity(
    pool: PoolState,
    share_amount: int,
    tolerance: SlippageTolerance
) -> RemoveLiquidityParams:
    """
    Parameters for burning `share_amount` share tokens (base units).

    Raises:
        InvalidAmount: zero share amount
        InsufficientLiquidity: a minimum exceeds the pool's current reserve
    """
    if share_amount == 0:
        raise InvalidAmount("Amount must be greater than zero")
    projected = project_withdrawal(pool, share_amount)
    base_amount_min = minimum_acceptable(projected.base_amount, tolerance)
    quote_amount_min = minimum_acceptable(projected.quote_amount, tolerance)

    if base_amount_min > pool.base_reserve:
        raise InsufficientLiquidity(
            f"withdraw base amount ({base_amount_min}) exceeds available liquidity ({pool.base_reserve})"
        )
    if quote_amount_min > pool.quote_reserve:
        raise InsufficientLiquidity(
            f"withdraw quote amount ({quote_amount_min}) exceeds available liquidity ({pool.quote_reserve})"
        )

    return RemoveLiquidityParams(
        pool_id=pool.pool_id,
        share_amount=share_amount,
        base_amount_min=base_amount_min,
        quote_amount_min=quote_amount_min,
        projected=projected,
    )


class LiquidityManager:
    """Runs liquidity operations through a LedgerReader and a ResourceCreator."""

    def __init__(
        self,
        ledger: LedgerReader,
        creator: ResourceCreator,
        owner: Optional[str] = None,
        valid_programs: Optional[Iterable[str]] = None,
        verbose: bool = True
    ):
        """
        Initialize the manager.

        Args:
            ledger: Source of fresh pool snapshots and balances
            creator: Submits the liquidity transactions
            owner: Wallet whose share-token balance is reported before/after
            valid_programs: Program (factory) addresses a pool must belong to
            verbose: Whether to print amounts and balances
        """
        self.ledger = ledger
        self.creator = creator
        self.owner = owner
        self.valid_programs = set(valid_programs) if valid_programs is not None else None
        self.verbose = verbose

    def _log(self, message: str) -> None:
        if self.verbose:
            print(message)

    def fetch_pool(self, pool_id: str, base_asset: Optional[str] = None) -> PoolState:
        pool = self.ledger.get_pool_state(pool_id, base_asset)
        check_pool_program(pool, self.valid_programs)
        return pool

    def _share_balance(self, pool: PoolState) -> Optional[int]:
        if not self.owner:
            return None
        return self.ledger.get_balance(pool.share.address, self.owner)

    def _submit(self, operation: str, pool: PoolState, call: Callable[[], Optional[str]]) -> Optional[str]:
        try:
            return call()
        except LiquidityError:
            raise
        except Exception as e:
            raise ExternalCallFailure(operation, {'poolId': pool.pool_id}, str(e)) from e

    def add_liquidity(
        self,
        pool_id: str,
        fixed_amount: DecimalLike,
        tolerance: SlippageTolerance,
        fixed_side: str = 'base',
        base_asset: Optional[str] = None
    ) -> LiquidityResult:
        """
        Deposit `fixed_amount` (human-readable) of the fixed side plus the
        matching amount of the other side.

        Args:
            pool_id: Pool address
            fixed_amount: Human-readable amount paid exactly
            tolerance: Slippage tolerance on the other side
            fixed_side: 'base' or 'quote'
            base_asset: Token to treat as the base side

        Returns:
            LiquidityResult with the submitted parameters
        """
        pool = self.fetch_pool(pool_id, base_asset)
        params = build_add_liquidity(pool, fixed_amount, tolerance, fixed_side)
        other = pool.asset_of('quote' if fixed_side == 'base' else 'base')
        self._log(f"  Adding liquidity to {pool.pool_id}: "
                  f"{format_amount(params.fixed_amount, pool.asset_of(fixed_side).decimals, pool.asset_of(fixed_side).symbol)} fixed, "
                  f"other side between {format_amount(params.other_amount_min, other.decimals)} "
                  f"and {format_amount(params.other_amount_max, other.decimals, other.symbol)} (slippage {tolerance})")

        balance_before = self._share_balance(pool)
        tx_handle = self._submit('add_liquidity', pool, lambda: self.creator.add_liquidity(
            pool, params.fixed_amount, params.other_amount_min, fixed_side, params.other_amount_max
        ))
        balance_after = self._share_balance(pool)

        result = LiquidityResult('add_liquidity', tx_handle, params, pool, balance_before, balance_after)
        self._report(result)
        return result

    def remove_liquidity(
        self,
        pool_id: str,
        share_amount: DecimalLike,
        tolerance: SlippageTolerance,
        base_asset: Optional[str] = None
    ) -> LiquidityResult:
        """
        Burn `share_amount` (human-readable) share tokens.

        Args:
            pool_id: Pool address
            share_amount: Human-readable share amount to burn
            tolerance: Slippage tolerance applied to each asset's minimum
            base_asset: Token to treat as the base side

        Returns:
            LiquidityResult with the submitted parameters
        """
        pool = self.fetch_pool(pool_id, base_asset)
        params = build_remove_liquidity(pool, to_base_units(share_amount, pool.share.decimals), tolerance)
        self._log(f"  Removing liquidity from {pool.pool_id}: "
                  f"{format_amount(params.share_amount, pool.share.decimals)} shares, "
                  f"base min {format_amount(params.base_amount_min, pool.base.decimals, pool.base.symbol)}, "
                  f"quote min {format_amount(params.quote_amount_min, pool.quote.decimals, pool.quote.symbol)}")

        balance_before = self._share_balance(pool)
        tx_handle = self._submit('remove_liquidity', pool, lambda: self.creator.remove_liquidity(
            pool, params.share_amount, params.base_amount_min, params.quote_amount_min
        ))
        balance_after = self._share_balance(pool)

        result = LiquidityResult('remove_liquidity', tx_handle, params, pool, balance_before, balance_after)
        self._report(result)
        return result

    def add_remove_liquidity(
        self,
        pool_id: str,
        add_amount: DecimalLike,
        remove_amount: DecimalLike,
        tolerance: SlippageTolerance,
        base_asset: Optional[str] = None
    ) -> Tuple[LiquidityResult, LiquidityResult]:
        """Deposit then withdraw, each against its own fresh snapshot."""
        added = self.add_liquidity(pool_id, add_amount, tolerance, 'base', base_asset)
        removed = self.remove_liquidity(pool_id, remove_amount, tolerance, base_asset)
        return added, removed

    def _report(self, result: LiquidityResult) -> None:
        if result.tx_handle:
            self._log(f"  {result.operation} tx: {result.tx_handle}")
        if result.share_balance_delta is not None:
            share = result.pool_before.share
            self._log(f"  User LP amount {format_amount(result.share_balance_before, share.decimals)} -> "
                      f"{format_amount(result.share_balance_after, share.decimals)}")
