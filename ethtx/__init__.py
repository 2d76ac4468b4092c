"""Typed Ethereum transaction codec and signer."""

from .common.access_list import AccessListEntry
from .common.config import ChainConfig, MAINNET_CONFIG, SEPOLIA_CONFIG, HOLESKY_CONFIG
from .common.errors import (
    FeeInversion,
    InvalidFormat,
    MalformedFields,
    NotSigned,
    NumericOverflow,
    SignatureMismatch,
    TransactionError,
    WrongTransactionType,
)
from .common.types import Transaction, TxType

__all__ = [
    "AccessListEntry",
    "ChainConfig",
    "MAINNET_CONFIG",
    "SEPOLIA_CONFIG",
    "HOLESKY_CONFIG",
    "FeeInversion",
    "InvalidFormat",
    "MalformedFields",
    "NotSigned",
    "NumericOverflow",
    "SignatureMismatch",
    "TransactionError",
    "WrongTransactionType",
    "Transaction",
    "TxType",
]
