"""
Pytest configuration and fixtures for MintGate tests.
"""

import threading
from pathlib import Path

import pytest

from crypto.keys import Identity, ZERO_ADDRESS
from crypto.merkle import MerkleTree
from issuance.accounts import AccountBook
from issuance.controller import MintController
from issuance.ledger import InMemoryOwnershipLedger
from registry.schema import CollectionConfig
from registry.storage import CollectionStorage


MINT_PRICE = 100
WHITELIST_PRICE = 50


def make_identity(n: int) -> Identity:
    """Deterministic identity from a repeated-byte secret."""
    return Identity.from_private_key(bytes([n]) * 32)


@pytest.fixture(scope="session")
def identities():
    """Ten deterministic identities."""
    return [make_identity(i) for i in range(1, 11)]


@pytest.fixture
def owner(identities):
    return identities[0].address


@pytest.fixture
def custody(identities):
    """The collection's own identity."""
    return identities[1].address


@pytest.fixture
def alice(identities):
    return identities[2].address


@pytest.fixture
def bob(identities):
    return identities[3].address


@pytest.fixture
def members(identities):
    """Whitelist members: identities 2..5."""
    return [i.address for i in identities[2:6]]


@pytest.fixture
def outsider(identities):
    return identities[9].address


@pytest.fixture
def zero_address():
    return ZERO_ADDRESS


@pytest.fixture
def whitelist_tree(members):
    return MerkleTree(members)


@pytest.fixture
def collection_config(owner, custody, whitelist_tree):
    """Collection with both channels open and a small whitelist."""
    return CollectionConfig(
        name="Test Collection",
        symbol="TEST",
        base_uri="ipfs://base/",
        mint_price=MINT_PRICE,
        whitelist_price=WHITELIST_PRICE,
        total_supply_cap=20,
        whitelist_supply_cap=5,
        merkle_root="0x" + whitelist_tree.root.hex(),
        allow_general_mint=True,
        allow_whitelist_mint=True,
        royalty_bps=50,
        owner=owner,
        custody_address=custody,
    )


@pytest.fixture
def ledger():
    return InMemoryOwnershipLedger()


@pytest.fixture
def payout():
    return AccountBook()


@pytest.fixture
def controller(collection_config, ledger, payout):
    """Controller wired to the in-memory collaborators."""
    return MintController(collection_config, ledger=ledger, payout=payout)


@pytest.fixture
def state_file(tmp_path) -> Path:
    return tmp_path / "state" / "collection.json"


@pytest.fixture
def collection_storage(state_file):
    return CollectionStorage(state_file, backup_count=3)


class ThreadSafeCounter:
    """Thread-safe counter for testing."""

    def __init__(self, initial_value: int = 0):
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def get_value(self) -> int:
        with self._lock:
            return self._value


@pytest.fixture
def thread_counter():
    """Create thread-safe counter for testing."""
    return ThreadSafeCounter()


# Test markers for different test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as a concurrency test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location and name."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "concurrent" in item.name or "thread" in item.name:
            item.add_marker(pytest.mark.concurrency)

        if "slow" in item.name or "large" in item.name:
            item.add_marker(pytest.mark.slow)
