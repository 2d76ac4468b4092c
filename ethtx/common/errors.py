"""
Error taxonomy for transaction construction, parsing and signing.

All errors derive from TransactionError (itself a ValueError), so callers can
catch the whole family at once or pick the specific failure they care about:

    TransactionError
    ├── MalformedFields          structure / arity / field type problems
    │   ├── WrongTransactionType type byte does not match the parser
    │   ├── InvalidFormat        leading zeros, wrong address / key length
    │   ├── NumericOverflow      value above 2^256 - 1, gas * price overflow
    │   └── FeeInversion         maxFeePerGas < maxPriorityFeePerGas
    ├── NotSigned                operation needs a signed transaction
    └── SignatureMismatch        signature invalid or from another key
"""

from __future__ import annotations

from typing import Optional


class TransactionError(ValueError):
    """Base class for all ethtx errors."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class MalformedFields(TransactionError):
    pass


class WrongTransactionType(MalformedFields):
    pass


class InvalidFormat(MalformedFields):
    pass


class NumericOverflow(MalformedFields):
    pass


class FeeInversion(MalformedFields):
    pass


class NotSigned(TransactionError):
    pass


class SignatureMismatch(TransactionError):
    pass
