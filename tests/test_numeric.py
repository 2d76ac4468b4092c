"""Tests for canonical integer/byte primitives."""

import pytest

from ethtx.common.errors import InvalidFormat, MalformedFields, NumericOverflow
from ethtx.common.numeric import (
    MAX_INTEGER,
    bytes_to_int,
    int_to_min_bytes,
    to_address,
    to_data,
    to_int,
    validate_max_integer,
    validate_no_leading_zeroes,
)


class TestIntToMinBytes:
    def test_zero_is_empty(self):
        assert int_to_min_bytes(0) == b""

    def test_small(self):
        assert int_to_min_bytes(1) == b"\x01"
        assert int_to_min_bytes(255) == b"\xff"

    def test_256(self):
        assert int_to_min_bytes(256) == b"\x01\x00"

    def test_max_integer(self):
        assert int_to_min_bytes(MAX_INTEGER) == b"\xff" * 32

    def test_negative(self):
        with pytest.raises(MalformedFields):
            int_to_min_bytes(-1)


class TestBytesToInt:
    def test_empty_is_zero(self):
        assert bytes_to_int(b"") == 0

    def test_canonical(self):
        assert bytes_to_int(b"\x01\x00") == 256

    def test_leading_zero_rejected(self):
        with pytest.raises(InvalidFormat, match="nonce cannot have leading zeroes") as exc:
            bytes_to_int(b"\x00\x01", "nonce")
        assert exc.value.field == "nonce"

    def test_single_zero_byte_rejected(self):
        # Zero is the empty string, never b"\x00"
        with pytest.raises(InvalidFormat):
            bytes_to_int(b"\x00")


class TestValidation:
    def test_no_leading_zeroes_passes(self):
        validate_no_leading_zeroes({"nonce": b"\x01", "value": b"", "v": None})

    def test_no_leading_zeroes_names_field(self):
        with pytest.raises(InvalidFormat) as exc:
            validate_no_leading_zeroes({"nonce": b"\x01", "gas_limit": b"\x00\x52\x08"})
        assert exc.value.field == "gas_limit"
        assert "gas_limit" in str(exc.value)

    def test_max_integer_passes(self):
        validate_max_integer({"value": MAX_INTEGER, "v": None})

    def test_max_integer_exceeded(self):
        with pytest.raises(NumericOverflow) as exc:
            validate_max_integer({"nonce": 1, "value": MAX_INTEGER + 1})
        assert exc.value.field == "value"


class TestToInt:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 0),
            (0, 0),
            (21000, 21000),
            ("0x5208", 21000),
            ("0x", 0),
            ("0x0", 0),
            ("0xa", 10),
            ("21000", 21000),
            ("", 0),
            (b"\x52\x08", 21000),
            (b"", 0),
        ],
    )
    def test_coercion(self, raw, expected):
        assert to_int(raw, "gas_limit") == expected

    def test_negative(self):
        with pytest.raises(MalformedFields):
            to_int(-5, "value")

    def test_negative_string(self):
        with pytest.raises(MalformedFields):
            to_int("-5", "value")

    def test_garbage(self):
        with pytest.raises(MalformedFields, match="value is not a number"):
            to_int("ten", "value")

    def test_bool_rejected(self):
        with pytest.raises(MalformedFields):
            to_int(True, "value")

    def test_non_canonical_bytes(self):
        with pytest.raises(InvalidFormat):
            to_int(b"\x00\x01", "value")

    def test_unsupported_type(self):
        with pytest.raises(MalformedFields):
            to_int(1.5, "value")


class TestToData:
    def test_hex(self):
        assert to_data("0xdeadbeef", "data") == b"\xde\xad\xbe\xef"

    def test_unprefixed_hex(self):
        assert to_data("deadbeef", "data") == b"\xde\xad\xbe\xef"

    def test_odd_length_padded(self):
        assert to_data("0xabc", "data") == b"\x0a\xbc"

    def test_empty(self):
        assert to_data(None, "data") == b""
        assert to_data("0x", "data") == b""
        assert to_data("", "data") == b""

    def test_bytes_passthrough(self):
        assert to_data(bytearray(b"\x01\x02"), "data") == b"\x01\x02"

    def test_not_hex(self):
        with pytest.raises(MalformedFields):
            to_data("0xzz", "data")


class TestToAddress:
    def test_hex_address(self):
        assert to_address("0x" + "ab" * 20) == b"\xab" * 20

    def test_contract_creation(self):
        assert to_address(None) is None
        assert to_address("0x") is None
        assert to_address(b"") is None

    def test_wrong_length(self):
        with pytest.raises(InvalidFormat) as exc:
            to_address("0x" + "ab" * 19)
        assert exc.value.field == "to"
