"""
RLP (Recursive Length Prefix) serialization for transaction payloads.

Only the two RLP shapes are accepted: byte strings and (nested) lists of
them. Integers are converted by the caller with numeric.int_to_min_bytes,
so every value has exactly one encoding. The decoder is strict and rejects
all non-canonical forms:

- a single byte below 0x80 wrapped in a string prefix
- a long-form header for a payload of 55 bytes or less
- a long-form length with leading zero bytes
- a payload running past its enclosing list or the input
- trailing bytes after the top-level item
"""

from __future__ import annotations

from typing import Union

from ethtx.common.errors import InvalidFormat

# RLP item: either raw bytes or a list of RLP items
RLPItem = Union[bytes, list["RLPItem"]]

STRING_OFFSET = 0x80
LIST_OFFSET = 0xc0
SHORT_LIMIT = 55


class RLPDecodingError(InvalidFormat):
    pass


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode(item: RLPItem) -> bytes:
    """Encode a byte string or a nested list/tuple of byte strings."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        data = bytes(item)
        if len(data) == 1 and data[0] < STRING_OFFSET:
            return data
        return _header(len(data), STRING_OFFSET) + data
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(element) for element in item)
        return _header(len(payload), LIST_OFFSET) + payload
    raise TypeError(f"Cannot RLP-encode type {type(item).__name__}")


def _header(length: int, offset: int) -> bytes:
    if length <= SHORT_LIMIT:
        return bytes([offset + length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + SHORT_LIMIT + len(length_bytes)]) + length_bytes


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode(data: bytes | bytearray | memoryview, strict: bool = True) -> RLPItem:
    """Decode RLP bytes into bytes or a nested list of bytes.

    With strict=False, bytes after the first complete item are ignored.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise RLPDecodingError(f"Cannot RLP-decode type {type(data).__name__}")
    data = bytes(data)
    item, end = _decode_at(data, 0, len(data))
    if strict and end != len(data):
        raise RLPDecodingError(f"Trailing bytes: item ends at {end} of {len(data)}")
    return item


def decode_list(data: bytes | bytearray | memoryview, strict: bool = True) -> list[RLPItem]:
    """Decode RLP bytes whose top-level item must be a list."""
    result = decode(data, strict=strict)
    if not isinstance(result, list):
        raise RLPDecodingError("Expected RLP list, got bytes")
    return result


def parse_header(data: bytes, offset: int, limit: int) -> tuple[bool, int, int]:
    """Parse the item header at offset and return (is_list, start, end).

    [start, end) is the payload span; limit is the end of the enclosing
    list or the input, and the payload may not run past it.
    """
    if offset >= limit:
        raise RLPDecodingError("Unexpected end of data")
    prefix = data[offset]

    if prefix < STRING_OFFSET:
        return False, offset, offset + 1

    is_list = prefix >= LIST_OFFSET
    kind = "list" if is_list else "string"
    short = prefix - (LIST_OFFSET if is_list else STRING_OFFSET)

    if short <= SHORT_LIMIT:
        start, length = offset + 1, short
    else:
        length_size = short - SHORT_LIMIT
        start = offset + 1 + length_size
        if start > limit:
            raise RLPDecodingError(f"Truncated {kind} length")
        if data[offset + 1] == 0:
            raise RLPDecodingError(f"Leading zeros in {kind} length")
        length = int.from_bytes(data[offset + 1:start], "big")
        if length <= SHORT_LIMIT:
            raise RLPDecodingError(f"Should have used short {kind} encoding")

    end = start + length
    if end > limit:
        raise RLPDecodingError(f"{kind.capitalize()} payload of {length} bytes exceeds enclosing data")
    if not is_list and length == 1 and data[start] < STRING_OFFSET:
        raise RLPDecodingError("Single byte below 0x80 must not carry a string prefix")
    return is_list, start, end


def _decode_at(data: bytes, offset: int, limit: int) -> tuple[RLPItem, int]:
    is_list, start, end = parse_header(data, offset, limit)
    if not is_list:
        return data[start:end], end
    items: list[RLPItem] = []
    position = start
    while position < end:
        item, position = _decode_at(data, position, end)
        items.append(item)
    return items, end
