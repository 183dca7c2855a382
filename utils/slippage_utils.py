"""
Slippage tolerance and the bounds derived from it.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from errors import InvalidAmount, InvalidTolerance

BPS_DENOMINATOR = 10000


@dataclass(frozen=True)
class SlippageTolerance:
    """
    Maximum acceptable adverse deviation, as numerator / denominator.

    A tolerance above 100% can be constructed but is rejected when a bound is
    computed from it.
    """
    numerator: int
    denominator: int

    def __post_init__(self):
        for name in ('numerator', 'denominator'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidTolerance(f"{name} must be an int, got {value!r}")
            if value < 0:
                raise InvalidTolerance(f"{name} must not be negative, got {value}")
        if self.denominator == 0:
            raise InvalidTolerance("denominator must be greater than zero")

    @classmethod
    def from_bps(cls, bps: int) -> 'SlippageTolerance':
        """Tolerance from basis points (50 bps = 0.5%)."""
        return cls(bps, BPS_DENOMINATOR)

    @classmethod
    def from_fraction(cls, fraction: Union[str, Decimal]) -> 'SlippageTolerance':
        """Tolerance from an exact decimal fraction such as '0.01'."""
        if isinstance(fraction, float):
            raise InvalidTolerance(f"pass the fraction as a string, not a float: {fraction!r}")
        try:
            value = Decimal(fraction)
        except (InvalidOperation, TypeError):
            raise InvalidTolerance(f"not a decimal fraction: {fraction!r}")
        if not value.is_finite():
            raise InvalidTolerance(f"fraction must be finite, got {fraction!r}")
        numerator, denominator = value.as_integer_ratio()
        return cls(numerator, denominator)

    @property
    def bps(self) -> Decimal:
        return Decimal(self.numerator * BPS_DENOMINATOR) / Decimal(self.denominator)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


def _check(target: int, tolerance: SlippageTolerance) -> None:
    if isinstance(target, bool) or not isinstance(target, int):
        raise InvalidAmount(f"target must be an int amount in base units, got {target!r}")
    if target < 0:
        raise InvalidAmount(f"target must not be negative, got {target}")
    if tolerance.numerator > tolerance.denominator:
        raise InvalidTolerance(f"slippage tolerance {tolerance} exceeds 100%")


def minimum_acceptable(target: int, tolerance: SlippageTolerance) -> int:
    """
    Smallest amount to accept for `target` at the given tolerance.

    Computed as target - floor(target * numerator / denominator), so the
    result is always within [0, target].
    """
    _check(target, tolerance)
    slippage_amount = target * tolerance.numerator // tolerance.denominator
    return max(0, min(target, target - slippage_amount))


def maximum_acceptable(target: int, tolerance: SlippageTolerance) -> int:
    """Largest amount to pay for `target`: target + ceil(target * numerator / denominator)."""
    _check(target, tolerance)
    slippage_amount = -(-target * tolerance.numerator // tolerance.denominator)
    return target + slippage_amount
