"""Tests for EIP-2930 access list (type 1) transactions."""

import pytest

from ethtx.common import rlp
from ethtx.common.access_list import AccessListEntry
from ethtx.common.crypto import keccak256
from ethtx.common.errors import InvalidFormat, MalformedFields, WrongTransactionType
from ethtx.common.types import Transaction, TxType
from tests.fixtures.vectors import ACCESS_LIST_FIELDS, ACCESS_LIST_SIGNING_MESSAGE


class TestAccessListTx:
    def test_type(self, access_list_tx):
        assert access_list_tx.tx_type == TxType.ACCESS_LIST

    def test_inferred_from_access_list(self):
        fields = {k: v for k, v in ACCESS_LIST_FIELDS.items() if k != "type"}
        assert Transaction.from_field_data(fields).tx_type == TxType.ACCESS_LIST

    def test_access_list_entries(self, access_list_tx):
        assert access_list_tx.access_list == (
            AccessListEntry(address=b"\x11" * 20, storage_keys=(b"\x00" * 31 + b"\x01",)),
        )

    def test_signing_message(self, access_list_tx):
        assert access_list_tx.signing_hash(hash_message=False) == ACCESS_LIST_SIGNING_MESSAGE

    def test_signing_hash(self, access_list_tx):
        assert access_list_tx.signing_hash() == keccak256(ACCESS_LIST_SIGNING_MESSAGE)

    def test_chain_id_defaults_to_mainnet(self):
        tx = Transaction.from_field_data({"type": 1, "gasLimit": 21000})
        assert tx.chain_id == 1

    def test_rejects_fee_market_fields(self):
        with pytest.raises(MalformedFields):
            Transaction(tx_type=TxType.ACCESS_LIST, max_priority_fee_per_gas=1)


class TestSerialization:
    def test_type_prefix(self, access_list_tx, alice_key):
        raw = access_list_tx.sign(alice_key).serialize()
        assert raw[0] == 0x01
        assert len(rlp.decode(raw[1:])) == 11

    def test_unsigned_has_empty_signature_slots(self, access_list_tx):
        values = rlp.decode(access_list_tx.serialize()[1:])
        assert len(values) == 11
        assert values[-3:] == [b"", b"", b""]

    def test_roundtrip_signed(self, access_list_tx, alice_key):
        signed = access_list_tx.sign(alice_key)
        decoded = Transaction.from_serialized_bytes(signed.serialize())
        assert decoded == signed
        assert decoded.hash() == signed.hash()

    def test_roundtrip_unsigned(self, access_list_tx):
        decoded = Transaction.from_serialized_bytes(access_list_tx.serialize())
        assert decoded == access_list_tx
        assert not decoded.is_signed()

    def test_rlp_list_of_eight_values(self, access_list_tx):
        values = rlp.decode(access_list_tx.signing_hash(hash_message=False)[1:])
        assert len(values) == 8
        assert Transaction.from_rlp_list(values, TxType.ACCESS_LIST) == access_list_tx

    def test_wrong_arity(self, access_list_tx):
        values = rlp.decode(access_list_tx.serialize()[1:])
        with pytest.raises(MalformedFields, match="Only expecting 8 values"):
            Transaction.from_serialized_bytes(b"\x01" + rlp.encode(values[:-1]))

    def test_access_list_must_be_list(self, access_list_tx):
        values = rlp.decode(access_list_tx.serialize()[1:])
        values[7] = b"\x01"
        with pytest.raises(MalformedFields):
            Transaction.from_serialized_bytes(b"\x01" + rlp.encode(values))

    def test_bad_storage_key(self, access_list_tx):
        values = rlp.decode(access_list_tx.serialize()[1:])
        values[7] = [[b"\x11" * 20, [b"\x01"]]]
        with pytest.raises(InvalidFormat):
            Transaction.from_serialized_bytes(b"\x01" + rlp.encode(values))

    def test_requested_type_mismatch(self, access_list_tx, alice_key):
        raw = access_list_tx.sign(alice_key).serialize()
        with pytest.raises(WrongTransactionType, match="expected: 2, received: 0x01"):
            Transaction.from_serialized_bytes(raw, tx_type=TxType.FEE_MARKET)


class TestSignatures:
    def test_v_is_y_parity(self, access_list_tx, alice_key):
        signed = access_list_tx.sign(alice_key)
        assert signed.v in (0, 1)
        assert signed.v == signed.recovery_id

    def test_matches_eth_keys_signature(self, access_list_tx, alice_key, pk):
        signed = access_list_tx.sign(alice_key)
        reference = pk.sign_msg_hash(access_list_tx.signing_hash())
        assert (signed.v, signed.r, signed.s) == (reference.v, reference.r, reference.s)

    def test_sender(self, access_list_tx, alice_key, alice_address):
        assert access_list_tx.sign(alice_key).sender() == alice_address

    def test_access_list_changes_signing_hash(self, access_list_tx):
        bare = Transaction.from_field_data({**ACCESS_LIST_FIELDS, "accessList": []})
        assert bare.signing_hash() != access_list_tx.signing_hash()

    def test_invalid_y_parity(self, access_list_tx):
        with pytest.raises(InvalidFormat, match="y-parity"):
            access_list_tx.attach_signature(27, 1, 1)


class TestToJson:
    def test_fields(self, access_list_tx):
        result = access_list_tx.to_json()
        assert result["type"] == "0x1"
        assert result["chainId"] == "0x1"
        assert result["gasPrice"] == "0x1"
        assert "maxFeePerGas" not in result
        assert result["accessList"] == ACCESS_LIST_FIELDS["accessList"]

    def test_roundtrip_through_field_data(self, access_list_tx, alice_key):
        signed = access_list_tx.sign(alice_key)
        assert Transaction.from_field_data(signed.to_json()) == signed
