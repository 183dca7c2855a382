"""
Liquidity harness - provisions a market and pool, then adds and removes liquidity.
WARNING: Outside dry-run mode this sends REAL transactions. Use a test network!
"""

from typing import Optional

from web3 import Web3

import config
from errors import LiquidityError
from liquidity import LiquidityManager
from models import PoolState
from provisioner import ProvisioningWorkflow
from uniswap.ledger import Web3Ledger
from uniswap.uniswap_v2 import UniswapV2Provisioner
from utils.cache_utils import ResourceCache
from utils.conversion_utils import format_amount
from utils.gas_utils import GasManager
from utils.slippage_utils import SlippageTolerance
from utils.token_utils import normalize_address
from utils.transaction_utils import wait_for_confirmation


class LiquidityHarness:
    """Owns every collaborator of a run. Build one per run and close it when done."""

    def __init__(
        self,
        private_key: str = None,
        rpc_url: str = None,
        network: str = None,
        cache_dir: str = None,
        factory_address: str = None,
        router_address: str = None,
        gas_price_gwei: float = None,
        max_gas_price_gwei: float = None,
        dry_run: bool = None,
        verbose: bool = True
    ):
        """
        Initialize the harness.
        Reads configuration from config (environment / .env) where parameters are not provided.

        Args:
            private_key: Private key of the wallet (PRIVATE_KEY if None)
            rpc_url: RPC URL (RPC_URL if None)
            network: Network name used to prefix cache files (NETWORK if None)
            cache_dir: Directory of the resource cache (CACHE_DIR if None)
            factory_address: Pair factory (UNISWAP_V2_FACTORY if None)
            router_address: Router (UNISWAP_V2_ROUTER if None)
            gas_price_gwei: Fixed gas price in Gwei (GAS_PRICE_GWEI if None)
            max_gas_price_gwei: Gas price cap in Gwei (MAX_GAS_PRICE_GWEI if None)
            dry_run: Simulate instead of sending transactions (DRY_RUN if None)
            verbose: Whether components print their decisions
        """
        if private_key is None:
            private_key = config.PRIVATE_KEY
            if not private_key:
                raise ValueError("PRIVATE_KEY not found in .env file and not provided as parameter")
        rpc_url = rpc_url or config.RPC_URL
        network = network if network is not None else config.NETWORK
        cache_dir = cache_dir or config.CACHE_DIR
        factory_address = factory_address or config.UNISWAP_V2_FACTORY
        router_address = router_address or config.UNISWAP_V2_ROUTER
        if gas_price_gwei is None:
            gas_price_gwei = config.GAS_PRICE_GWEI
        if max_gas_price_gwei is None:
            max_gas_price_gwei = config.MAX_GAS_PRICE_GWEI
        self.dry_run = config.DRY_RUN if dry_run is None else dry_run

        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        if not self.w3.is_connected():
            raise ConnectionError(f"Failed to connect to node at {rpc_url}")

        if not private_key.startswith('0x'):
            private_key = '0x' + private_key
        self.account = self.w3.eth.account.from_key(private_key)
        self.address = self.account.address

        self.gas_manager = GasManager(
            w3=self.w3,
            gas_price_gwei=gas_price_gwei,
            max_gas_price_gwei=max_gas_price_gwei,
            verbose=verbose
        )
        self.ledger = Web3Ledger(self.w3)
        self.provisioner = UniswapV2Provisioner(
            w3=self.w3,
            account=self.account,
            address=self.address,
            gas_manager=self.gas_manager,
            factory_address=factory_address,
            router_address=router_address,
            dry_run=self.dry_run
        )
        self.cache = ResourceCache(cache_dir, prefix=config.cache_prefix(network), verbose=verbose)
        self.workflow = ProvisioningWorkflow(
            creator=self.provisioner,
            cache=self.cache,
            ledger=self.ledger,
            verbose=verbose
        )
        self.liquidity = LiquidityManager(
            ledger=self.ledger,
            creator=self.provisioner,
            owner=self.address,
            valid_programs={self.provisioner.factory_address},
            verbose=verbose
        )
        self.closed = False

        balance_wei = self.w3.eth.get_balance(self.address)
        print(f"Network: {network} ({rpc_url})")
        print(f"Wallet Address: {self.address}")
        print(f"Native Balance: {self.w3.from_wei(balance_wei, 'ether'):.6f}")
        if self.dry_run:
            print("DRY RUN: transactions are simulated, nothing is sent or cached")

    def close(self) -> None:
        """Release the connection. The harness cannot be used afterwards."""
        if self.closed:
            return
        provider = self.w3.provider
        if hasattr(provider, 'disconnect'):
            provider.disconnect()
        self.closed = True

    def __enter__(self) -> 'LiquidityHarness':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def settle(self) -> None:
        """Wait for the last transaction's effects to be visible (no-op in dry-run)."""
        if not self.dry_run:
            wait_for_confirmation(config.WAIT_TIME_AFTER_TRANSACTION)


def print_pool(label: str, pool: PoolState) -> None:
    print(f"{label}: pool {pool.pool_id}")
    print(f"  Base reserve:  {format_amount(pool.base_reserve, pool.base.decimals, pool.base.symbol)}")
    print(f"  Quote reserve: {format_amount(pool.quote_reserve, pool.quote.decimals, pool.quote.symbol)}")
    print(f"  LP supply:     {format_amount(pool.share_supply, pool.share.decimals)}")


def run_harness(
    base_token: Optional[str] = None,
    quote_token: Optional[str] = None,
    add_amount: str = '1',
    remove_amount: str = '1',
    slippage_bps: Optional[int] = None,
    remove_slippage_bps: int = 400,
    dry_run: Optional[bool] = None
):
    """
    Provision the market and pool for base/quote, deposit, then withdraw.

    Args:
        base_token: Base token address (BASE_TOKEN_ADDRESS if None)
        quote_token: Quote token address (QUOTE_TOKEN_ADDRESS if None)
        add_amount: Human-readable base amount to deposit
        remove_amount: Human-readable LP amount to withdraw
        slippage_bps: Deposit slippage in basis points (SLIPPAGE_BPS if None)
        remove_slippage_bps: Withdrawal slippage in basis points
        dry_run: Simulate instead of sending transactions (DRY_RUN if None)
    """
    try:
        base = normalize_address(base_token or config.BASE_TOKEN_ADDRESS)
        quote = normalize_address(quote_token or config.QUOTE_TOKEN_ADDRESS)
        harness = LiquidityHarness(dry_run=dry_run)
    except ValueError as e:
        print(f"ERROR: {str(e)}")
        print("   Please ensure your .env file has PRIVATE_KEY, BASE_TOKEN_ADDRESS and QUOTE_TOKEN_ADDRESS set")
        return
    except Exception as e:
        print(f"ERROR: Error initializing harness: {str(e)}")
        return

    deposit_tolerance = SlippageTolerance.from_bps(config.SLIPPAGE_BPS if slippage_bps is None else slippage_bps)
    withdraw_tolerance = SlippageTolerance.from_bps(remove_slippage_bps)

    with harness:
        try:
            market, pool = harness.workflow.provision(base, quote)
            print(f"Market: {market.resource_id} ({market.state.value})")
            print(f"Pool: {pool.resource_id} ({pool.state.value})")
            if not pool.resource_id:
                print("ERROR: Pool address unknown, cannot continue")
                return
            if pool.simulated:
                print("Pool only exists in the dry run, skipping liquidity operations")
                return
            harness.settle()

            print_pool("Before deposit", harness.ledger.get_pool_state(pool.resource_id, base))
            harness.liquidity.add_liquidity(pool.resource_id, add_amount, deposit_tolerance, 'base', base)
            harness.settle()

            print_pool("Before withdrawal", harness.ledger.get_pool_state(pool.resource_id, base))
            harness.liquidity.remove_liquidity(pool.resource_id, remove_amount, withdraw_tolerance, base)
            harness.settle()

            print_pool("After withdrawal", harness.ledger.get_pool_state(pool.resource_id, base))
        except LiquidityError as e:
            print(f"ERROR: {type(e).__name__}: {str(e)}")
            return

    print("\nHarness run complete!")


if __name__ == '__main__':
    run_harness(
        add_amount='1',
        remove_amount='1',
        remove_slippage_bps=400
    )
