"""
Canonical integer/byte primitives.

RLP has no fixed-width integers: an unsigned integer is stored as its minimal
big-endian byte string (empty for zero), so a leading zero byte would make an
encoding ambiguous. Everything here either produces that canonical form or
rejects input that is not in it.

The to_* coercion helpers accept the loosely typed values a wallet caller
hands in (ints, 0x-prefixed hex strings, decimal strings, raw bytes).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from eth_utils import decode_hex, is_0x_prefixed, is_hex, remove_0x_prefix

from ethtx.common.errors import InvalidFormat, MalformedFields, NumericOverflow


MAX_INTEGER = 2**256 - 1
ADDRESS_LENGTH = 20
HASH_LENGTH = 32


# ---------------------------------------------------------------------------
# Canonical encoding
# ---------------------------------------------------------------------------

def int_to_min_bytes(value: int) -> bytes:
    """Encode an unsigned integer as minimal big-endian bytes (b'' for 0)."""
    if value < 0:
        raise MalformedFields(f"Cannot encode negative integer {value}")
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def bytes_to_int(data: bytes, field: Optional[str] = None) -> int:
    """Decode canonical big-endian bytes; a leading zero byte is rejected."""
    if len(data) == 0:
        return 0
    if data[0] == 0:
        name = field or "value"
        raise InvalidFormat(
            f"{name} cannot have leading zeroes, received: 0x{bytes(data).hex()}",
            field=field,
        )
    return int.from_bytes(data, "big")


def validate_no_leading_zeroes(fields: Mapping[str, Optional[bytes]]) -> None:
    """Raise InvalidFormat naming the first field with a leading zero byte."""
    for name, value in fields.items():
        if value is None or isinstance(value, list):
            continue
        if len(value) > 0 and value[0] == 0:
            raise InvalidFormat(
                f"{name} cannot have leading zeroes, received: 0x{bytes(value).hex()}",
                field=name,
            )


def validate_max_integer(fields: Mapping[str, Optional[int]], limit: int = MAX_INTEGER) -> None:
    """Raise NumericOverflow naming the first field above the 256-bit ceiling."""
    for name, value in fields.items():
        if value is None:
            continue
        if value > limit:
            raise NumericOverflow(
                f"{name} cannot exceed MAX_INTEGER (2^256-1), given {value}",
                field=name,
            )


# ---------------------------------------------------------------------------
# Coercion of loosely typed input
# ---------------------------------------------------------------------------

def _hex_to_bytes(value: str, field: str) -> bytes:
    if not is_hex(value) and remove_0x_prefix(value) != "":
        raise MalformedFields(f"{field} is not a hex string: {value!r}", field=field)
    digits = remove_0x_prefix(value)
    if len(digits) % 2:
        digits = "0" + digits
    return decode_hex(digits)


def to_int(value: Any, field: str) -> int:
    """Coerce int / hex string / decimal string / canonical bytes to int."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise MalformedFields(f"{field} must be an integer, got bool", field=field)
    if isinstance(value, int):
        if value < 0:
            raise MalformedFields(f"{field} cannot be negative, given {value}", field=field)
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes_to_int(bytes(value), field)
    if isinstance(value, str):
        text = value.strip()
        try:
            if is_0x_prefixed(text):
                digits = remove_0x_prefix(text)
                return int(digits, 16) if digits else 0
            if text == "":
                return 0
            result = int(text, 10)
        except ValueError:
            raise MalformedFields(f"{field} is not a number: {value!r}", field=field) from None
        if result < 0:
            raise MalformedFields(f"{field} cannot be negative, given {value}", field=field)
        return result
    raise MalformedFields(
        f"{field} has unsupported type {type(value).__name__}", field=field
    )


def to_data(value: Any, field: str) -> bytes:
    """Coerce hex string or bytes-like to bytes (None -> b'')."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return _hex_to_bytes(value, field)
    raise MalformedFields(
        f"{field} has unsupported type {type(value).__name__}", field=field
    )


def to_address(value: Any, field: str = "to") -> Optional[bytes]:
    """Coerce to a 20-byte address; empty input means contract creation."""
    raw = to_data(value, field)
    if len(raw) == 0:
        return None
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidFormat(
            f"{field} must be {ADDRESS_LENGTH} bytes, got {len(raw)}", field=field
        )
    return raw
