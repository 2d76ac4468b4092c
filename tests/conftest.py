"""Pytest configuration and shared fixtures for all tests."""

import pytest
from eth_keys import keys

from ethtx.common.types import Transaction
from tests.fixtures.keys import (
    ALICE_PRIVATE_KEY,
    BOB_PRIVATE_KEY,
    EIP155_PRIVATE_KEY,
    get_keypair,
)
from tests.fixtures.vectors import (
    ACCESS_LIST_FIELDS,
    EIP155_FIELDS,
    FEE_MARKET_FIELDS,
    LEGACY_FIELDS,
)


# =============================================================================
# Core Fixtures - Private Keys and Addresses
# =============================================================================

@pytest.fixture
def alice_key():
    """Alice's private key (0x01...01)."""
    return ALICE_PRIVATE_KEY


@pytest.fixture
def alice_public_key():
    """Alice's 64-byte public key, derived with eth-keys."""
    return get_keypair(ALICE_PRIVATE_KEY)[0]


@pytest.fixture
def alice_address():
    """Alice's address derived from her private key."""
    return get_keypair(ALICE_PRIVATE_KEY)[1]


@pytest.fixture
def bob_key():
    """Bob's private key (0x02...02)."""
    return BOB_PRIVATE_KEY


@pytest.fixture
def bob_public_key():
    return get_keypair(BOB_PRIVATE_KEY)[0]


@pytest.fixture
def eip155_key():
    """Private key of the EIP-155 example (0x46...46)."""
    return EIP155_PRIVATE_KEY


@pytest.fixture
def pk():
    """eth-keys private key object, for independent signatures."""
    return keys.PrivateKey(ALICE_PRIVATE_KEY)


# =============================================================================
# Transaction Fixtures
# =============================================================================

@pytest.fixture
def legacy_tx():
    """Unsigned legacy transaction without replay protection."""
    return Transaction.from_field_data(LEGACY_FIELDS)


@pytest.fixture
def eip155_tx():
    """Unsigned legacy transaction from the EIP-155 example."""
    return Transaction.from_field_data(EIP155_FIELDS)


@pytest.fixture
def access_list_tx():
    """Unsigned EIP-2930 transaction with one access list entry."""
    return Transaction.from_field_data(ACCESS_LIST_FIELDS)


@pytest.fixture
def fee_market_tx():
    """Unsigned EIP-1559 transaction."""
    return Transaction.from_field_data(FEE_MARKET_FIELDS)


@pytest.fixture(params=["legacy", "eip155", "access_list", "fee_market"])
def any_tx(request):
    """Each unsigned transaction flavour in turn."""
    return request.getfixturevalue(f"{request.param}_tx")
