"""Shared fixtures: in-memory collaborators and a temporary resource cache."""

import pytest

from tests.fakes import FakeCreator, FakeLedger, make_pool
from utils.cache_utils import ResourceCache


@pytest.fixture
def cache(tmp_path):
    return ResourceCache(tmp_path / 'cache', verbose=False)


@pytest.fixture
def ledger():
    ledger = FakeLedger()
    ledger.add_pool(make_pool(100_000_000, 200_000_000, 50_000_000))
    return ledger


@pytest.fixture
def creator(ledger):
    return FakeCreator(ledger)
