"""
Domain types and collaborator contracts for pool provisioning.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from errors import InvalidAmount, InvalidPrecision

MAX_DECIMALS = 255

FIXED_SIDES = ('base', 'quote')


@dataclass(frozen=True)
class AssetDescriptor:
    """
    Token identity and precision as reported by the ledger.

    Attributes:
        address: Token contract address
        decimals: Number of decimal places (0-255)
        symbol: Token symbol, informational only
    """
    address: str
    decimals: int
    symbol: str = ''

    def __post_init__(self):
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise InvalidPrecision(f"decimals must be an int, got {self.decimals!r}")
        if not 0 <= self.decimals <= MAX_DECIMALS:
            raise InvalidPrecision(f"decimals must be between 0 and {MAX_DECIMALS}, got {self.decimals}")


@dataclass(frozen=True)
class PoolState:
    """
    Read-only snapshot of a pool. Fetch a fresh one before every computation.

    Attributes:
        pool_id: Pool (pair) address
        base: Base asset descriptor
        quote: Quote asset descriptor
        share: Share (LP) token descriptor
        base_reserve: Base reserve in base units
        quote_reserve: Quote reserve in base units
        share_supply: Outstanding share tokens in base units
        program_id: Address of the program (factory) that owns the pool
    """
    pool_id: str
    base: AssetDescriptor
    quote: AssetDescriptor
    share: AssetDescriptor
    base_reserve: int
    quote_reserve: int
    share_supply: int
    program_id: str = ''

    def __post_init__(self):
        for name in ('base_reserve', 'quote_reserve', 'share_supply'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidAmount(f"{name} must be a non-negative int, got {value!r}")

    def reserve_of(self, side: str) -> int:
        return self.base_reserve if side == 'base' else self.quote_reserve

    def asset_of(self, side: str) -> AssetDescriptor:
        return self.base if side == 'base' else self.quote


@dataclass
class CachedResource:
    """Persisted record of a provisioned resource."""
    kind: str
    identity: Dict[str, str]
    address: Dict[str, str]
    created_at: str = ''

    def to_dict(self) -> Dict:
        return {
            'kind': self.kind,
            'identity': dict(self.identity),
            'address': dict(self.address),
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'CachedResource':
        return cls(
            kind=str(data['kind']),
            identity={str(k): str(v) for k, v in data['identity'].items()},
            address={str(k): str(v) for k, v in data['address'].items()},
            created_at=str(data.get('created_at', '')),
        )


@dataclass
class MarketCreation:
    market_id: str
    address: Dict[str, str]
    tx_handles: List[str] = field(default_factory=list)
    # True when produced by a dry run; nothing exists on-chain
    simulated: bool = False


@dataclass
class PoolCreation:
    pool_id: str
    address: Dict[str, str]
    tx_handles: List[str] = field(default_factory=list)
    simulated: bool = False


@dataclass(frozen=True)
class WithdrawalProjection:
    """Per-asset amounts in base units."""
    base_amount: int
    quote_amount: int


@dataclass(frozen=True)
class PairQuote:
    """
    Amounts for a deposit that keeps the pool's current price.

    The fixed side is paid exactly; the other side is bounded by
    [other_amount_min, other_amount_max].
    """
    fixed_side: str
    fixed_amount: int
    other_amount: int
    other_amount_min: int
    other_amount_max: int


@dataclass(frozen=True)
class AddLiquidityParams:
    pool_id: str
    fixed_side: str
    fixed_amount: int
    other_amount_min: int
    other_amount_max: int


@dataclass(frozen=True)
class RemoveLiquidityParams:
    pool_id: str
    share_amount: int
    base_amount_min: int
    quote_amount_min: int
    projected: WithdrawalProjection


@dataclass
class LiquidityResult:
    """Outcome of a submitted liquidity operation."""
    operation: str
    tx_handle: Optional[str]
    params: object
    pool_before: PoolState
    share_balance_before: Optional[int] = None
    share_balance_after: Optional[int] = None

    @property
    def share_balance_delta(self) -> Optional[int]:
        if self.share_balance_before is None or self.share_balance_after is None:
            return None
        return self.share_balance_after - self.share_balance_before


class LedgerReader(Protocol):
    """Read access to the ledger. Every call returns state as of call time."""

    def get_pool_state(self, pool_id: str, base_asset: Optional[str] = None) -> PoolState:
        ...

    def get_asset_descriptor(self, asset: str) -> AssetDescriptor:
        ...

    def get_balance(self, asset: str, owner: str) -> int:
        ...


class ResourceCreator(Protocol):
    """
    Creates resources and submits liquidity operations.

    Implementations raise errors.ResourceAlreadyExists when the external
    system reports that the resource is already provisioned.
    """

    def create_market(self, base_asset: str, quote_asset: str, lot_size, tick_size) -> MarketCreation:
        ...

    def create_pool(
        self,
        market_id: str,
        base_asset: str,
        quote_asset: str,
        base_amount: int,
        quote_amount: int,
        start_time: int = 0
    ) -> PoolCreation:
        ...

    def add_liquidity(
        self,
        pool: PoolState,
        fixed_amount: int,
        other_amount_min: int,
        fixed_side: str,
        other_amount_max: Optional[int] = None
    ) -> Optional[str]:
        ...

    def remove_liquidity(
        self,
        pool: PoolState,
        share_amount: int,
        base_amount_min: int,
        quote_amount_min: int
    ) -> Optional[str]:
        ...
