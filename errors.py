"""
Error taxonomy for liquidity arithmetic and resource provisioning.
"""

from typing import Dict, Optional


class LiquidityError(Exception):
    """Base class for every error raised by the harness."""


class InvalidPrecision(LiquidityError, ValueError):
    """Decimal places configuration is negative or out of range."""


class InvalidTolerance(LiquidityError, ValueError):
    """Slippage fraction is malformed or exceeds 100%."""


class InvalidAmount(LiquidityError, ValueError):
    """Amount is zero where it must not be, negative, or not an exact number."""


class InsufficientLiquidity(LiquidityError):
    """A computed amount exceeds what the pool currently holds."""


class UnsupportedResourceType(LiquidityError):
    """Resource kind or pool program is not one the harness recognizes."""


class CacheCorruption(LiquidityError):
    """A cached record could not be parsed."""


class ExternalCallFailure(LiquidityError):
    """
    A creation or execution collaborator failed.

    Args:
        kind: Resource kind or operation name ('market', 'pool', 'add_liquidity', ...)
        identity: Identity fields of the resource involved
        message: Underlying failure message
    """

    def __init__(self, kind: str, identity: Optional[Dict[str, str]] = None, message: str = ''):
        self.kind = kind
        self.identity = dict(identity or {})
        self.message = message
        super().__init__(f"{kind} {self.identity}: {message}")


class ResourceAlreadyExists(ExternalCallFailure):
    """
    The external system refused creation because the resource already exists.

    `address` holds the best-effort recovered address fields of the existing
    resource, or None when they could not be recovered.
    """

    def __init__(
        self,
        kind: str,
        identity: Optional[Dict[str, str]] = None,
        address: Optional[Dict[str, str]] = None,
        message: str = 'account already in use'
    ):
        self.address = dict(address) if address else None
        super().__init__(kind, identity, message)
