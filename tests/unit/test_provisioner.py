"""
Unit tests for idempotent market/pool provisioning.

Checks:
1. A cached resource with a matching identity is reused without creation
2. Stale records are discarded and the resource recreated
3. "Already exists" failures are recovered, other failures surface
4. Dry-run creations are never cached
"""

import pytest

from errors import (
    ExternalCallFailure,
    InsufficientLiquidity,
    ResourceAlreadyExists,
    UnsupportedResourceType,
)
from models import CachedResource
from provisioner import ProvisioningState, ProvisioningWorkflow
from tests.fakes import FakeCreator


@pytest.fixture
def workflow(creator, cache, ledger):
    return ProvisioningWorkflow(creator, cache, ledger, verbose=False)


class TestEnsureMarket:

    def test_creates_then_reuses(self, workflow, creator, cache) -> None:
        first = workflow.ensure_market('mintA', 'mintB')
        assert first.state == ProvisioningState.PROVISIONED
        assert first.history == [ProvisioningState.UNCACHED, ProvisioningState.PROVISIONED]
        assert first.tx_handles == ['tx-market-1']

        second = workflow.ensure_market('mintA', 'mintB')
        assert second.state == ProvisioningState.REUSED
        assert second.history == [ProvisioningState.VERIFYING, ProvisioningState.REUSED]
        assert second.resource_id == first.resource_id
        assert second.tx_handles == []
        assert creator.call_names() == ['create_market']

    def test_passes_market_parameters(self, workflow, creator) -> None:
        workflow.ensure_market('mintA', 'mintB')
        _, args = creator.calls[0]
        assert args == ('mintA', 'mintB', workflow.lot_size, workflow.tick_size)

    def test_swapped_identity_is_stale(self, workflow, creator, cache) -> None:
        workflow.ensure_market('mintA', 'mintB')
        outcome = workflow.ensure_market('mintB', 'mintA')

        assert outcome.state == ProvisioningState.PROVISIONED
        assert outcome.history == [
            ProvisioningState.VERIFYING,
            ProvisioningState.STALE,
            ProvisioningState.PROVISIONED,
        ]
        assert creator.call_names() == ['create_market', 'create_market']
        record = cache.lookup('market', {'baseMint': 'mintB', 'quoteMint': 'mintA'})
        assert record.address['marketId'] == outcome.resource_id

    def test_record_without_id_is_stale(self, workflow, creator, cache) -> None:
        identity = {'baseMint': 'mintA', 'quoteMint': 'mintB'}
        cache.store('market', CachedResource('market', identity, {'baseMint': 'mintA'}))

        outcome = workflow.ensure_market('mintA', 'mintB')
        assert ProvisioningState.STALE in outcome.history
        assert creator.call_names() == ['create_market']

    def test_corrupt_cache_recreates(self, workflow, creator, cache) -> None:
        path = cache.path_for('market')
        path.parent.mkdir(parents=True)
        path.write_text('garbage', encoding='utf-8')

        outcome = workflow.ensure_market('mintA', 'mintB')
        assert outcome.state == ProvisioningState.PROVISIONED
        assert ProvisioningState.STALE in outcome.history
        assert cache.lookup('market', outcome.identity) is not None


class TestFailures:

    def test_already_exists_with_address_is_cached(self, workflow, creator, cache) -> None:
        creator.market_error = ResourceAlreadyExists(
            'market', {'baseMint': 'mintA', 'quoteMint': 'mintB'},
            address={'marketId': 'existing-market', 'baseMint': 'mintA', 'quoteMint': 'mintB'},
        )
        outcome = workflow.ensure_market('mintA', 'mintB')

        assert outcome.state == ProvisioningState.ALREADY_PROVISIONED
        assert outcome.resource_id == 'existing-market'
        assert cache.lookup('market', outcome.identity).address['marketId'] == 'existing-market'

    def test_already_exists_without_address(self, workflow, creator, cache) -> None:
        creator.market_error = ResourceAlreadyExists('market')
        outcome = workflow.ensure_market('mintA', 'mintB')

        assert outcome.state == ProvisioningState.ALREADY_PROVISIONED
        assert outcome.resource_id is None
        assert not cache.has('market')

    def test_other_errors_are_wrapped(self, workflow, creator, cache) -> None:
        creator.market_error = RuntimeError('rpc timeout')
        with pytest.raises(ExternalCallFailure) as exc_info:
            workflow.ensure_market('mintA', 'mintB')

        assert exc_info.value.kind == 'market'
        assert exc_info.value.identity == {'baseMint': 'mintA', 'quoteMint': 'mintB'}
        assert 'rpc timeout' in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert not cache.has('market')

    def test_external_failure_propagates_unchanged(self, workflow, creator) -> None:
        error = ExternalCallFailure('market', message='reverted')
        creator.market_error = error
        with pytest.raises(ExternalCallFailure) as exc_info:
            workflow.ensure_market('mintA', 'mintB')
        assert exc_info.value is error

    def test_unsupported_kind(self, workflow, creator) -> None:
        with pytest.raises(UnsupportedResourceType):
            workflow.ensure('orderbook', {}, lambda: None)
        assert creator.calls == []

    def test_failed_creation_retries_next_time(self, workflow, creator) -> None:
        creator.market_error = RuntimeError('boom')
        with pytest.raises(ExternalCallFailure):
            workflow.ensure_market('mintA', 'mintB')
        creator.market_error = None
        assert workflow.ensure_market('mintA', 'mintB').state == ProvisioningState.PROVISIONED


class TestDryRun:

    def test_simulated_creation_is_not_cached(self, workflow, creator, cache) -> None:
        creator.simulated = True
        first = workflow.ensure_market('mintA', 'mintB')
        assert first.simulated
        assert not cache.has('market')

        workflow.ensure_market('mintA', 'mintB')
        assert creator.call_names() == ['create_market', 'create_market']


class TestProvision:

    def test_market_then_pool(self, workflow, creator, cache) -> None:
        market, pool = workflow.provision('mintA', 'mintB')

        assert creator.call_names() == ['create_market', 'create_pool']
        assert pool.identity == {'baseMint': 'mintA', 'quoteMint': 'mintB', 'marketId': market.resource_id}
        _, args = creator.calls[1]
        assert args[0] == market.resource_id
        assert args[3:5] == (100_000_000, 100_000_000)
        assert cache.lookup('pool', pool.identity).address['ammId'] == pool.resource_id

    def test_second_run_creates_nothing(self, workflow, creator) -> None:
        market, pool = workflow.provision('mintA', 'mintB')
        market_again, pool_again = workflow.provision('mintA', 'mintB')

        assert creator.call_names() == ['create_market', 'create_pool']
        assert market_again.state == ProvisioningState.REUSED
        assert pool_again.state == ProvisioningState.REUSED
        assert pool_again.resource_id == pool.resource_id

    def test_new_market_invalidates_pool(self, workflow, creator, cache) -> None:
        workflow.provision('mintA', 'mintB')
        cache.delete('market')
        _, pool = workflow.provision('mintA', 'mintB')

        assert creator.call_names() == ['create_market', 'create_pool', 'create_market', 'create_pool']
        assert ProvisioningState.STALE in pool.history

    def test_unrecoverable_market_stops_before_pool(self, workflow, creator) -> None:
        creator.market_error = ResourceAlreadyExists('market')
        with pytest.raises(ExternalCallFailure):
            workflow.provision('mintA', 'mintB')
        assert creator.call_names() == ['create_market']

    def test_initial_liquidity_too_low(self, cache, ledger) -> None:
        creator = FakeCreator(ledger)
        workflow = ProvisioningWorkflow(
            creator, cache, ledger, initial_base_amount='1', initial_quote_amount='1', verbose=False
        )
        with pytest.raises(InsufficientLiquidity):
            workflow.provision('mintA', 'mintB')
        assert creator.call_names() == ['create_market']
