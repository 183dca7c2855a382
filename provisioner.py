"""
Idempotent provisioning of the market and the pool built on it.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from errors import ExternalCallFailure, LiquidityError, ResourceAlreadyExists, UnsupportedResourceType
from models import CachedResource, LedgerReader, MarketCreation, PoolCreation, ResourceCreator
from utils.cache_utils import ResourceCache
from utils.conversion_utils import DecimalLike
from utils.pool_utils import initial_pool_amounts

# Resource kind -> address field holding the resource's own id
RESOURCE_KINDS = {
    'market': 'marketId',
    'pool': 'ammId',
}


class ProvisioningState(Enum):
    UNCACHED = 'uncached'
    VERIFYING = 'verifying'
    REUSED = 'reused'
    STALE = 'stale'
    PROVISIONED = 'provisioned'
    ALREADY_PROVISIONED = 'already_provisioned'


@dataclass
class ProvisioningOutcome:
    """
    Result of ensuring one resource.

    Attributes:
        kind: Resource kind
        state: Final state (REUSED, PROVISIONED or ALREADY_PROVISIONED)
        resource_id: Address of the resource; None only when an existing
            resource was reported but its address could not be recovered
        address: All address fields of the resource
        identity: Identity fields the resource was checked against
        history: States visited, in order
        tx_handles: Transactions sent to create the resource
        simulated: True when created by a dry run and not cached
    """
    kind: str
    state: ProvisioningState
    resource_id: Optional[str]
    address: Dict[str, str]
    identity: Dict[str, str]
    history: List[ProvisioningState] = field(default_factory=list)
    tx_handles: List[str] = field(default_factory=list)
    simulated: bool = False


class ProvisioningWorkflow:
    """Ensures the market, then the pool, exist exactly once per identity."""

    def __init__(
        self,
        creator: ResourceCreator,
        cache: ResourceCache,
        ledger: LedgerReader,
        lot_size: DecimalLike = Decimal('1'),
        tick_size: DecimalLike = Decimal('0.01'),
        initial_base_amount: DecimalLike = '100',
        initial_quote_amount: DecimalLike = '100',
        start_time: int = 0,
        verbose: bool = True
    ):
        """
        Initialize the workflow.

        Args:
            creator: ResourceCreator used on cache misses
            cache: ResourceCache consulted before any creation
            ledger: LedgerReader used to size the initial pool deposit
            lot_size: Market lot size, passed through to the creator
            tick_size: Market tick size, passed through to the creator
            initial_base_amount: Human-readable base amount seeded into a new pool
            initial_quote_amount: Human-readable quote amount seeded into a new pool
            start_time: Pool opening time (unix seconds, 0 for immediately)
            verbose: Whether to print each decision
        """
        self.creator = creator
        self.cache = cache
        self.ledger = ledger
        self.lot_size = lot_size
        self.tick_size = tick_size
        self.initial_base_amount = initial_base_amount
        self.initial_quote_amount = initial_quote_amount
        self.start_time = start_time
        self.verbose = verbose

    def _log(self, kind: str, message: str) -> None:
        if self.verbose:
            print(f"[{kind.upper()}] {message}")

    def ensure(
        self,
        kind: str,
        identity: Dict[str, str],
        create: Callable[[], Union[MarketCreation, PoolCreation]]
    ) -> ProvisioningOutcome:
        """
        Return the cached resource for `identity`, creating it on a miss.

        Args:
            kind: Resource kind, one of RESOURCE_KINDS
            identity: Identity fields the resource must match
            create: Calls the external creator; invoked only on a miss

        Returns:
            ProvisioningOutcome

        Raises:
            UnsupportedResourceType: `kind` is not a known resource kind
            ExternalCallFailure: creation failed (never retried here)
        """
        if kind not in RESOURCE_KINDS:
            raise UnsupportedResourceType(f"unknown resource kind: {kind!r}")
        id_key = RESOURCE_KINDS[kind]
        identity = {str(k): str(v) for k, v in identity.items()}
        history = []

        if self.cache.has(kind):
            history.append(ProvisioningState.VERIFYING)
            record = self.cache.lookup(kind, identity)
            if record is not None and record.address.get(id_key):
                history.append(ProvisioningState.REUSED)
                self._log(kind, f"Reusing cached {kind} {record.address[id_key]}")
                return ProvisioningOutcome(
                    kind=kind,
                    state=ProvisioningState.REUSED,
                    resource_id=record.address[id_key],
                    address=dict(record.address),
                    identity=identity,
                    history=history,
                )
            if record is not None:
                self.cache.delete(kind)
            history.append(ProvisioningState.STALE)
            self._log(kind, f"Cached {kind} is stale, creating a new one")
        else:
            history.append(ProvisioningState.UNCACHED)
            self._log(kind, f"No cached {kind}, creating one")

        try:
            created = create()
        except ResourceAlreadyExists as e:
            return self._already_provisioned(kind, identity, e, history)
        except LiquidityError:
            raise
        except Exception as e:
            raise ExternalCallFailure(kind, identity, str(e)) from e

        resource_id = created.market_id if isinstance(created, MarketCreation) else created.pool_id
        address = dict(created.address)
        address.setdefault(id_key, resource_id)
        history.append(ProvisioningState.PROVISIONED)

        if created.simulated:
            self._log(kind, f"[DRY RUN] {kind} would be created at {resource_id}, not caching")
        else:
            self.cache.store(kind, CachedResource(kind=kind, identity=identity, address=address))
            self._log(kind, f"Created {kind} {resource_id} ({len(created.tx_handles)} txs)")

        return ProvisioningOutcome(
            kind=kind,
            state=ProvisioningState.PROVISIONED,
            resource_id=resource_id,
            address=address,
            identity=identity,
            history=history,
            tx_handles=list(created.tx_handles),
            simulated=created.simulated,
        )

    def _already_provisioned(
        self,
        kind: str,
        identity: Dict[str, str],
        error: ResourceAlreadyExists,
        history: List[ProvisioningState]
    ) -> ProvisioningOutcome:
        id_key = RESOURCE_KINDS[kind]
        history.append(ProvisioningState.ALREADY_PROVISIONED)
        self._log(kind, f"WARNING: {kind} already exists ({error.message})")

        address = dict(error.address or {})
        resource_id = address.get(id_key)
        if resource_id:
            self.cache.store(kind, CachedResource(kind=kind, identity=identity, address=address))
            self._log(kind, f"Recovered existing {kind} {resource_id}")
        else:
            self._log(kind, f"WARNING: could not recover the address of the existing {kind}")

        return ProvisioningOutcome(
            kind=kind,
            state=ProvisioningState.ALREADY_PROVISIONED,
            resource_id=resource_id,
            address=address,
            identity=identity,
            history=history,
        )

    def ensure_market(self, base_asset: str, quote_asset: str) -> ProvisioningOutcome:
        identity = {'baseMint': base_asset, 'quoteMint': quote_asset}
        return self.ensure(
            'market', identity,
            lambda: self.creator.create_market(base_asset, quote_asset, self.lot_size, self.tick_size)
        )

    def ensure_pool(self, market_id: str, base_asset: str, quote_asset: str) -> ProvisioningOutcome:
        identity = {'baseMint': base_asset, 'quoteMint': quote_asset, 'marketId': market_id}

        def create() -> PoolCreation:
            base = self.ledger.get_asset_descriptor(base_asset)
            quote = self.ledger.get_asset_descriptor(quote_asset)
            base_amount, quote_amount = initial_pool_amounts(
                base, quote, self.initial_base_amount, self.initial_quote_amount
            )
            self._log('pool', f"Seeding pool with {base_amount} base / {quote_amount} quote units")
            return self.creator.create_pool(
                market_id, base_asset, quote_asset, base_amount, quote_amount, self.start_time
            )

        return self.ensure('pool', identity, create)

    def provision(self, base_asset: str, quote_asset: str) -> Tuple[ProvisioningOutcome, ProvisioningOutcome]:
        """
        Ensure the market, then the pool on that market.

        The pool step needs the market address, so the two never overlap.
        """
        market = self.ensure_market(base_asset, quote_asset)
        if not market.resource_id:
            raise ExternalCallFailure('market', market.identity, 'market exists but its address could not be recovered')
        pool = self.ensure_pool(market.resource_id, base_asset, quote_asset)
        return market, pool
