"""
Amount conversion utilities between human-readable and base-unit token amounts.

Amounts never pass through float: base units must match on-chain integer
accounting exactly.
"""

from decimal import Context, Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Union

from errors import InvalidAmount, InvalidPrecision
from models import MAX_DECIMALS

# Room for the product of two uint256 values
AMOUNT_CONTEXT = Context(prec=160, rounding=ROUND_DOWN)

DecimalLike = Union[Decimal, int, str]


def check_decimals(decimals: int) -> int:
    """Validate a decimal places count and return it."""
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidPrecision(f"decimals must be an int, got {decimals!r}")
    if decimals < 0:
        raise InvalidPrecision(f"decimals must not be negative, got {decimals}")
    if decimals > MAX_DECIMALS:
        raise InvalidPrecision(f"decimals must not exceed {MAX_DECIMALS}, got {decimals}")
    return decimals


def parse_amount(amount: DecimalLike) -> Decimal:
    """
    Parse a human-readable amount into a Decimal.

    Args:
        amount: Decimal, int or numeric string. Floats are rejected.

    Returns:
        Non-negative finite Decimal
    """
    if isinstance(amount, float):
        raise InvalidAmount(f"float amounts are not accepted, pass a string or Decimal: {amount!r}")
    if isinstance(amount, bool) or not isinstance(amount, (Decimal, int, str)):
        raise InvalidAmount(f"unsupported amount type: {type(amount).__name__}")
    try:
        value = Decimal(amount.strip()) if isinstance(amount, str) else Decimal(amount)
    except InvalidOperation:
        raise InvalidAmount(f"not a decimal number: {amount!r}")
    if not value.is_finite():
        raise InvalidAmount(f"amount must be finite, got {amount!r}")
    if value < 0:
        raise InvalidAmount(f"amount must not be negative, got {amount!r}")
    return value


def to_base_units(amount: DecimalLike, decimals: int) -> int:
    """
    Convert human-readable amount to the token's base units.

    Digits beyond `decimals` are truncated toward zero so the result never
    exceeds what was authorized.

    Args:
        amount: Amount in human-readable units
        decimals: Number of decimals for the token

    Returns:
        Amount in base units
    """
    check_decimals(decimals)
    value = parse_amount(amount)
    with localcontext(AMOUNT_CONTEXT):
        scaled = value.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def to_decimal(amount: int, decimals: int) -> Decimal:
    """
    Convert base units to a human-readable Decimal. Exact.

    Args:
        amount: Amount in base units
        decimals: Number of decimals for the token

    Returns:
        Amount in human-readable units
    """
    check_decimals(decimals)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"base-unit amount must be an int, got {amount!r}")
    if amount < 0:
        raise InvalidAmount(f"base-unit amount must not be negative, got {amount}")
    with localcontext(AMOUNT_CONTEXT):
        return Decimal(amount).scaleb(-decimals)


def format_amount(amount: int, decimals: int, symbol: str = '') -> str:
    """Render a base-unit amount for console output."""
    text = f"{to_decimal(amount, decimals):f}"
    return f"{text} {symbol}" if symbol else text
