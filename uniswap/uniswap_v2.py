"""
Uniswap V2 market/pool creation and liquidity execution.

The market is the pair registered in the factory; the pool is that pair once
seeded with its initial liquidity. Both share the pair address.
"""

from typing import Dict, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError

from errors import ExternalCallFailure, ResourceAlreadyExists
from models import MarketCreation, PoolCreation, PoolState
from uniswap.ledger import get_pair_abi
from utils.balance_utils import check_native_balance
from utils.gas_utils import GasManager
from utils.token_utils import check_and_approve_token, is_zero_address, normalize_address
from utils.transaction_utils import (
    DEFAULT_DEADLINE_SECONDS,
    build_deadline,
    receipt_hash,
    send_transaction,
    simulate_transaction,
)

CREATE_PAIR_GAS_LIMIT = 3000000
LIQUIDITY_GAS_LIMIT = 300000


class UniswapV2Provisioner:
    """ResourceCreator for Uniswap V2 style factories and routers."""

    UNISWAP_V2_FACTORY = '0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f'
    UNISWAP_V2_ROUTER = '0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D'

    def __init__(
        self,
        w3: Web3,
        account,
        address: str,
        gas_manager: GasManager,
        factory_address: Optional[str] = None,
        router_address: Optional[str] = None,
        dry_run: bool = False,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS
    ):
        """
        Initialize the provisioner.

        Args:
            w3: Web3 instance
            account: Account object for signing transactions
            address: Wallet address
            gas_manager: GasManager instance
            factory_address: Pair factory (defaults to the Uniswap V2 mainnet factory)
            router_address: Router (defaults to the Uniswap V2 mainnet router)
            dry_run: Simulate every transaction with eth_call instead of sending it
            deadline_seconds: Validity window of router calls
        """
        self.w3 = w3
        self.account = account
        self.address = address
        self.gas_manager = gas_manager
        self.dry_run = dry_run
        self.deadline_seconds = deadline_seconds

        self.factory_address = normalize_address(factory_address or self.UNISWAP_V2_FACTORY)
        self.router_address = normalize_address(router_address or self.UNISWAP_V2_ROUTER)
        self.factory_contract = self.w3.eth.contract(
            address=self.factory_address,
            abi=self._get_factory_abi()
        )
        self.router_contract = self.w3.eth.contract(
            address=self.router_address,
            abi=self._get_router_abi()
        )

    def _get_factory_abi(self):
        """Get Uniswap V2 factory ABI (getPair, createPair)."""
        return [
            {
                "inputs": [
                    {"internalType": "address", "name": "tokenA", "type": "address"},
                    {"internalType": "address", "name": "tokenB", "type": "address"}
                ],
                "name": "getPair",
                "outputs": [{"internalType": "address", "name": "pair", "type": "address"}],
                "stateMutability": "view",
                "type": "function"
            },
            {
                "inputs": [
                    {"internalType": "address", "name": "tokenA", "type": "address"},
                    {"internalType": "address", "name": "tokenB", "type": "address"}
                ],
                "name": "createPair",
                "outputs": [{"internalType": "address", "name": "pair", "type": "address"}],
                "stateMutability": "nonpayable",
                "type": "function"
            }
        ]

    def _get_router_abi(self):
        """Get Uniswap V2 router ABI (addLiquidity, removeLiquidity)."""
        return [
            {
                "inputs": [
                    {"internalType": "address", "name": "tokenA", "type": "address"},
                    {"internalType": "address", "name": "tokenB", "type": "address"},
                    {"internalType": "uint256", "name": "amountADesired", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountBDesired", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountAMin", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountBMin", "type": "uint256"},
                    {"internalType": "address", "name": "to", "type": "address"},
                    {"internalType": "uint256", "name": "deadline", "type": "uint256"}
                ],
                "name": "addLiquidity",
                "outputs": [
                    {"internalType": "uint256", "name": "amountA", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountB", "type": "uint256"},
                    {"internalType": "uint256", "name": "liquidity", "type": "uint256"}
                ],
                "stateMutability": "nonpayable",
                "type": "function"
            },
            {
                "inputs": [
                    {"internalType": "address", "name": "tokenA", "type": "address"},
                    {"internalType": "address", "name": "tokenB", "type": "address"},
                    {"internalType": "uint256", "name": "liquidity", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountAMin", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountBMin", "type": "uint256"},
                    {"internalType": "address", "name": "to", "type": "address"},
                    {"internalType": "uint256", "name": "deadline", "type": "uint256"}
                ],
                "name": "removeLiquidity",
                "outputs": [
                    {"internalType": "uint256", "name": "amountA", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountB", "type": "uint256"}
                ],
                "stateMutability": "nonpayable",
                "type": "function"
            }
        ]

    def _get_pair(self, base: str, quote: str) -> Optional[str]:
        pair = self.factory_contract.functions.getPair(base, quote).call()
        return None if is_zero_address(pair) else normalize_address(pair)

    def _execute(self, contract_function, gas_limit: int, kind: str, identity: Dict[str, str], label: str) -> Optional[str]:
        """Send `contract_function` and return its hash, or simulate it in dry-run mode."""
        if self.dry_run:
            simulate_transaction(contract_function, self.address, label=label)
            return None

        if not check_native_balance(self.w3, self.address, self.gas_manager, gas_limit):
            raise ExternalCallFailure(kind, identity, 'insufficient native balance for gas')

        transaction = contract_function.build_transaction({
            'from': self.address,
            'gas': gas_limit,
            'gasPrice': self.gas_manager.get_gas_price(),
            'nonce': self.w3.eth.get_transaction_count(self.address)
        })
        receipt = send_transaction(self.w3, self.account, transaction, label=label)
        tx_hash = receipt_hash(receipt)
        if receipt.status != 1:
            raise ExternalCallFailure(kind, identity, f"transaction {tx_hash} failed (status: {receipt.status})")
        return tx_hash

    def _approve(self, token: str, amount: int, kind: str, identity: Dict[str, str]) -> None:
        approved = check_and_approve_token(
            token, self.router_address, amount, self.w3, self.account, self.address,
            self.gas_manager, dry_run=self.dry_run
        )
        if not approved:
            raise ExternalCallFailure(kind, identity, f"could not approve router for {token}")

    def _market_address(self, pair: str, base: str, quote: str) -> Dict[str, str]:
        return {
            'marketId': pair,
            'baseMint': base,
            'quoteMint': quote,
            'programId': self.factory_address,
        }

    def create_market(self, base_asset: str, quote_asset: str, lot_size=None, tick_size=None) -> MarketCreation:
        """
        Register the base/quote pair in the factory.

        V2 pairs have no order book, so `lot_size` and `tick_size` are accepted
        for interface compatibility and ignored.

        Raises:
            ResourceAlreadyExists: the factory already holds a pair for these
                tokens; its address is recovered from `getPair`
        """
        base = normalize_address(base_asset)
        quote = normalize_address(quote_asset)
        identity = {'baseMint': base, 'quoteMint': quote}

        existing = self._get_pair(base, quote)
        if existing:
            raise ResourceAlreadyExists(
                'market', identity,
                address=self._market_address(existing, base, quote),
                message=f"pair already exists at {existing}"
            )

        create_pair = self.factory_contract.functions.createPair(base, quote)
        if self.dry_run:
            pair = normalize_address(simulate_transaction(create_pair, self.address, label='createPair'))
            return MarketCreation(pair, self._market_address(pair, base, quote), [], simulated=True)

        try:
            tx_hash = self._execute(create_pair, CREATE_PAIR_GAS_LIMIT, 'market', identity, 'createPair')
        except ContractLogicError as e:
            # Lost a race with another creator between getPair and createPair
            if 'PAIR_EXISTS' not in str(e):
                raise
            recovered = self._get_pair(base, quote)
            raise ResourceAlreadyExists(
                'market', identity,
                address=self._market_address(recovered, base, quote) if recovered else None,
                message=str(e)
            ) from e

        pair = self._get_pair(base, quote)
        if not pair:
            raise ExternalCallFailure('market', identity, f"createPair {tx_hash} confirmed but getPair returned no pair")
        print(f"[MARKET] Pair created at {pair}")
        return MarketCreation(pair, self._market_address(pair, base, quote), [tx_hash])

    def create_pool(
        self,
        market_id: str,
        base_asset: str,
        quote_asset: str,
        base_amount: int,
        quote_amount: int,
        start_time: int = 0
    ) -> PoolCreation:
        """
        Seed the pair with its initial liquidity at exactly the given amounts.

        V2 pairs trade as soon as they hold reserves; `start_time` is ignored.

        Raises:
            ResourceAlreadyExists: the pair already holds reserves
        """
        pair = normalize_address(market_id)
        base = normalize_address(base_asset)
        quote = normalize_address(quote_asset)
        identity = {'baseMint': base, 'quoteMint': quote, 'marketId': pair}
        address = {
            'ammId': pair,
            'marketId': pair,
            'lpMint': pair,
            'coinMint': base,
            'pcMint': quote,
            'programId': self.factory_address,
        }

        registered = self._get_pair(base, quote)
        if registered != pair:
            raise ExternalCallFailure('pool', identity, f"factory pair for these tokens is {registered}, not {pair}")

        pair_contract = self.w3.eth.contract(address=pair, abi=get_pair_abi())
        reserve0, reserve1, _ = pair_contract.functions.getReserves().call()
        if reserve0 > 0 or reserve1 > 0:
            raise ResourceAlreadyExists('pool', identity, address=address, message=f"pair {pair} already holds liquidity")

        self._approve(base, base_amount, 'pool', identity)
        self._approve(quote, quote_amount, 'pool', identity)
        add_liquidity = self.router_contract.functions.addLiquidity(
            base, quote,
            base_amount, quote_amount,
            base_amount, quote_amount,
            self.address,
            build_deadline(self.deadline_seconds)
        )
        tx_hash = self._execute(add_liquidity, LIQUIDITY_GAS_LIMIT, 'pool', identity, 'addLiquidity')
        if not self.dry_run:
            print(f"[POOL] Pool seeded at {pair}")
        return PoolCreation(pair, address, [tx_hash] if tx_hash else [], simulated=self.dry_run)

    def add_liquidity(
        self,
        pool: PoolState,
        fixed_amount: int,
        other_amount_min: int,
        fixed_side: str,
        other_amount_max: Optional[int] = None
    ) -> Optional[str]:
        """
        Deposit `fixed_amount` of the fixed side exactly and at most
        `other_amount_max` (at least `other_amount_min`) of the other side.
        """
        if other_amount_max is None:
            other_amount_max = other_amount_min
        identity = {'poolId': pool.pool_id}

        if fixed_side == 'base':
            base_desired, base_min = fixed_amount, fixed_amount
            quote_desired, quote_min = other_amount_max, other_amount_min
        else:
            base_desired, base_min = other_amount_max, other_amount_min
            quote_desired, quote_min = fixed_amount, fixed_amount

        self._approve(pool.base.address, base_desired, 'add_liquidity', identity)
        self._approve(pool.quote.address, quote_desired, 'add_liquidity', identity)
        add_liquidity = self.router_contract.functions.addLiquidity(
            pool.base.address, pool.quote.address,
            base_desired, quote_desired,
            base_min, quote_min,
            self.address,
            build_deadline(self.deadline_seconds)
        )
        return self._execute(add_liquidity, LIQUIDITY_GAS_LIMIT, 'add_liquidity', identity, 'addLiquidity')

    def remove_liquidity(
        self,
        pool: PoolState,
        share_amount: int,
        base_amount_min: int,
        quote_amount_min: int
    ) -> Optional[str]:
        """Burn `share_amount` LP tokens for at least the given amounts of each asset."""
        identity = {'poolId': pool.pool_id}
        self._approve(pool.share.address, share_amount, 'remove_liquidity', identity)
        remove_liquidity = self.router_contract.functions.removeLiquidity(
            pool.base.address, pool.quote.address,
            share_amount,
            base_amount_min, quote_amount_min,
            self.address,
            build_deadline(self.deadline_seconds)
        )
        return self._execute(remove_liquidity, LIQUIDITY_GAS_LIMIT, 'remove_liquidity', identity, 'removeLiquidity')
