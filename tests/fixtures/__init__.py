"""Test fixtures for transaction codec tests."""

from .keys import (
    ALICE_PRIVATE_KEY,
    BOB_PRIVATE_KEY,
    EIP155_PRIVATE_KEY,
    TEST_PRIVATE_KEYS,
    get_keypair,
)

__all__ = [
    # Keys
    "ALICE_PRIVATE_KEY",
    "BOB_PRIVATE_KEY",
    "EIP155_PRIVATE_KEY",
    "TEST_PRIVATE_KEYS",
    "get_keypair",
]
