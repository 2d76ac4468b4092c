"""
Typed Ethereum transactions: Legacy, EIP-2930 access list, EIP-1559 fee market.

A single frozen Transaction dataclass, tagged by tx_type, covers all three
formats. Construction validates every field and raises on the first
violation; afterwards the object never changes. Signing returns a new
instance carrying (v, r, s).

Wire formats:

    Legacy      rlp([nonce, gasPrice, gasLimit, to, value, data, v, r, s])
    AccessList  0x01 || rlp([chainId, nonce, gasPrice, gasLimit, to, value,
                             data, accessList, v, r, s])
    FeeMarket   0x02 || rlp([chainId, nonce, maxPriorityFeePerGas,
                             maxFeePerGas, gasLimit, to, value, data,
                             accessList, v, r, s])
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Mapping, Optional, Union

from eth_utils import encode_hex

from ethtx.common import access_list as al
from ethtx.common import rlp
from ethtx.common.access_list import AccessListEntry
from ethtx.common.crypto import (
    decode_v,
    ecdsa_recover,
    ecdsa_sign,
    encode_v,
    keccak256,
    normalize_public_key,
    pubkey_to_address,
    validate_signature_values,
)
from ethtx.common.errors import (
    FeeInversion,
    InvalidFormat,
    MalformedFields,
    NotSigned,
    NumericOverflow,
    SignatureMismatch,
    WrongTransactionType,
)
from ethtx.common.numeric import (
    ADDRESS_LENGTH,
    MAX_INTEGER,
    bytes_to_int,
    int_to_min_bytes,
    to_address,
    to_data,
    to_int,
    validate_max_integer,
    validate_no_leading_zeroes,
)


logger = logging.getLogger(__name__)

DEFAULT_CHAIN_ID = 1


# ---------------------------------------------------------------------------
# Transaction types
# ---------------------------------------------------------------------------

class TxType(IntEnum):
    LEGACY = 0
    ACCESS_LIST = 1   # EIP-2930
    FEE_MARKET = 2    # EIP-1559


# Number of values before the trailing (v, r, s)
UNSIGNED_FIELD_COUNT = {
    TxType.LEGACY: 6,
    TxType.ACCESS_LIST: 8,
    TxType.FEE_MARKET: 9,
}

TX_TYPE_NAMES = {
    TxType.LEGACY: "legacy",
    TxType.ACCESS_LIST: "EIP-2930",
    TxType.FEE_MARKET: "EIP-1559",
}

# Input key -> dataclass field, for JSON-RPC style and snake_case dicts
_FIELD_ALIASES = {
    "type": "tx_type",
    "txType": "tx_type",
    "tx_type": "tx_type",
    "chainId": "chain_id",
    "chain_id": "chain_id",
    "nonce": "nonce",
    "gas": "gas_limit",
    "gasLimit": "gas_limit",
    "gas_limit": "gas_limit",
    "gasPrice": "gas_price",
    "gas_price": "gas_price",
    "maxFeePerGas": "max_fee_per_gas",
    "max_fee_per_gas": "max_fee_per_gas",
    "maxPriorityFeePerGas": "max_priority_fee_per_gas",
    "max_priority_fee_per_gas": "max_priority_fee_per_gas",
    "to": "to",
    "value": "value",
    "data": "data",
    "input": "data",
    "accessList": "access_list",
    "access_list": "access_list",
    "v": "v",
    "yParity": "v",
    "r": "r",
    "s": "s",
}

_NUMERIC_FIELDS = (
    "nonce",
    "gas_limit",
    "gas_price",
    "max_fee_per_gas",
    "max_priority_fee_per_gas",
    "value",
)


def coerce_tx_type(value: Any) -> TxType:
    try:
        return TxType(to_int(value, "type"))
    except ValueError:
        raise WrongTransactionType(f"Unsupported transaction type: {value!r}", field="type") from None


def _is_absent(value: Any) -> bool:
    return value is None or value == "" or value == b""


def _expect_bytes(value: Any, name: str) -> bytes:
    if not isinstance(value, bytes):
        raise MalformedFields(f"Invalid serialized tx input: {name} must be a byte string", field=name)
    return value


@dataclass(frozen=True)
class Transaction:
    """Unified transaction type supporting Legacy, EIP-2930 and EIP-1559."""
    tx_type: TxType = TxType.LEGACY

    # Common fields
    nonce: int = 0
    gas_limit: int = 0
    to: Optional[bytes] = None  # None for contract creation
    value: int = 0
    data: bytes = b""

    # Legacy / EIP-2930
    gas_price: int = 0

    # EIP-1559
    max_fee_per_gas: int = 0
    max_priority_fee_per_gas: int = 0

    # Optional on legacy (EIP-155), defaulted to mainnet on typed txs
    chain_id: Optional[int] = None
    access_list: tuple[AccessListEntry, ...] = field(default_factory=tuple)

    # Signature: wire-encoded v (y-parity on typed txs)
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------

    def __post_init__(self) -> None:
        if not isinstance(self.tx_type, TxType):
            object.__setattr__(self, "tx_type", coerce_tx_type(self.tx_type))
        typed = self.tx_type != TxType.LEGACY
        if typed and self.chain_id is None:
            object.__setattr__(self, "chain_id", DEFAULT_CHAIN_ID)

        self._validate_field_types()
        self._validate_variant_fields()

        validate_max_integer({
            "chain_id": self.chain_id,
            **{name: getattr(self, name) for name in _NUMERIC_FIELDS},
            "v": self.v,
            "r": self.r,
            "s": self.s,
        })

        price_name, price = (
            ("max_fee_per_gas", self.max_fee_per_gas)
            if self.tx_type == TxType.FEE_MARKET
            else ("gas_price", self.gas_price)
        )
        if self.gas_limit * price > MAX_INTEGER:
            raise NumericOverflow(
                self._error_msg(f"gas_limit * {price_name} cannot exceed MAX_INTEGER (2^256-1)"),
                field=price_name,
            )

        if self.tx_type == TxType.FEE_MARKET and self.max_fee_per_gas < self.max_priority_fee_per_gas:
            raise FeeInversion(
                self._error_msg(
                    "max_fee_per_gas cannot be less than max_priority_fee_per_gas "
                    "(The total must be the larger of the two)"
                ),
                field="max_fee_per_gas",
            )

        self._validate_signature_fields()

        # Chain 0 serializes as an empty v slot, which reads back as no chain id
        if not typed and self.chain_id == 0:
            raise MalformedFields(
                self._error_msg("Legacy transactions cannot use chain_id 0"), field="chain_id"
            )

    def _validate_field_types(self) -> None:
        for name in (*_NUMERIC_FIELDS, "chain_id", "v", "r", "s"):
            value = getattr(self, name)
            if value is None and name in ("chain_id", "v", "r", "s"):
                continue
            if not isinstance(value, int) or isinstance(value, bool):
                raise MalformedFields(
                    f"{name} must be an integer, got {type(value).__name__}", field=name
                )
            if value < 0:
                raise MalformedFields(f"{name} cannot be negative, given {value}", field=name)

        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, "data", bytes(self.data))
        if not isinstance(self.data, bytes):
            raise MalformedFields(f"data must be bytes, got {type(self.data).__name__}", field="data")

        if self.to is not None:
            if not isinstance(self.to, (bytes, bytearray)) or len(self.to) != ADDRESS_LENGTH:
                raise InvalidFormat(f"to must be a {ADDRESS_LENGTH}-byte address", field="to")
            object.__setattr__(self, "to", bytes(self.to))

        entries = self.access_list
        if not isinstance(entries, tuple) or not all(isinstance(e, AccessListEntry) for e in entries):
            entries = al.from_buffer(al.normalize(entries)[0])
            object.__setattr__(self, "access_list", entries)
        al.validate([e.to_rlp_list() for e in entries])

    def _validate_variant_fields(self) -> None:
        foreign: tuple[str, ...]
        if self.tx_type == TxType.LEGACY:
            foreign = ("max_fee_per_gas", "max_priority_fee_per_gas")
            if self.access_list:
                raise MalformedFields("Legacy transactions cannot carry an access list", field="access_list")
        elif self.tx_type == TxType.ACCESS_LIST:
            foreign = ("max_fee_per_gas", "max_priority_fee_per_gas")
        else:
            foreign = ("gas_price",)
        for name in foreign:
            if getattr(self, name):
                raise MalformedFields(
                    f"{name} is not a field of {TX_TYPE_NAMES[self.tx_type]} transactions",
                    field=name,
                )

    def _validate_signature_fields(self) -> None:
        present = [c is not None for c in (self.v, self.r, self.s)]
        if any(present) and not all(present):
            raise MalformedFields("Signature requires all of v, r and s", field="v")
        if self.v is None:
            return

        if self.tx_type != TxType.LEGACY:
            decode_v(self.v, typed=True)
            return

        _, v_chain_id = decode_v(self.v)
        if v_chain_id is None:
            if self.chain_id is not None:
                raise MalformedFields(
                    self._error_msg(
                        f"v={self.v} is not replay protected but chain_id={self.chain_id} is set"
                    ),
                    field="v",
                )
        elif self.chain_id is None:
            object.__setattr__(self, "chain_id", v_chain_id)
        elif self.chain_id != v_chain_id:
            raise MalformedFields(
                self._error_msg(
                    f"v={self.v} encodes chain_id {v_chain_id}, expected "
                    f"{self.chain_id * 2 + 35} or {self.chain_id * 2 + 36}"
                ),
                field="v",
            )

    # -----------------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------------

    @classmethod
    def from_field_data(
        cls,
        fields: Mapping[str, Any],
        tx_type: Optional[int] = None,
    ) -> Transaction:
        """Build a transaction from loosely typed field data.

        Keys may be JSON-RPC style (gasLimit, maxFeePerGas, accessList, ...)
        or snake_case. Values may be ints, hex strings, decimal strings or
        bytes. Absent numbers default to zero, an absent `to` means contract
        creation. Without an explicit type the format is inferred from the
        fields present (fee market fields, then access list, else legacy).
        """
        kwargs: dict[str, Any] = {}
        for key, raw in fields.items():
            name = _FIELD_ALIASES.get(key)
            if name is None:
                logger.debug("Ignoring unknown transaction field %r", key)
                continue
            kwargs[name] = raw

        given_type = kwargs.pop("tx_type", None)
        if tx_type is not None and not _is_absent(given_type):
            if coerce_tx_type(given_type) != tx_type:
                raise WrongTransactionType(
                    f"Field data type {given_type!r} does not match requested type {int(tx_type)}",
                    field="type",
                )
        if tx_type is None and not _is_absent(given_type):
            tx_type = coerce_tx_type(given_type)
        if tx_type is None:
            if "max_fee_per_gas" in kwargs or "max_priority_fee_per_gas" in kwargs:
                tx_type = TxType.FEE_MARKET
            elif "access_list" in kwargs:
                tx_type = TxType.ACCESS_LIST
            else:
                tx_type = TxType.LEGACY
        tx_type = coerce_tx_type(tx_type)

        values: dict[str, Any] = {"tx_type": tx_type}
        for name in _NUMERIC_FIELDS:
            if name in kwargs:
                values[name] = to_int(kwargs[name], name)
        values["to"] = to_address(kwargs.get("to"), "to")
        values["data"] = to_data(kwargs.get("data"), "data")
        if not _is_absent(kwargs.get("chain_id")):
            values["chain_id"] = to_int(kwargs["chain_id"], "chain_id")
        if kwargs.get("access_list") is not None:
            values["access_list"] = al.from_buffer(al.normalize(kwargs["access_list"])[0])
        for name in ("v", "r", "s"):
            if not _is_absent(kwargs.get(name)):
                values[name] = to_int(kwargs[name], name)

        # A pre-EIP-155 legacy signature carries no chain id
        if tx_type == TxType.LEGACY and values.get("v") in (27, 28):
            values.pop("chain_id", None)

        return cls(**values)

    @classmethod
    def from_rlp_list(cls, values: list, tx_type: int = TxType.LEGACY) -> Transaction:
        """Build a transaction from the decoded wire value list."""
        tx_type = coerce_tx_type(tx_type)
        unsigned = UNSIGNED_FIELD_COUNT[tx_type]
        if len(values) not in (unsigned, unsigned + 3):
            raise MalformedFields(
                f"Invalid {TX_TYPE_NAMES[tx_type]} transaction. Only expecting {unsigned} values "
                f"(for unsigned tx) or {unsigned + 3} values (for signed tx), got {len(values)}."
            )

        if tx_type == TxType.LEGACY:
            names = ["nonce", "gas_price", "gas_limit", "to", "value", "data"]
        elif tx_type == TxType.ACCESS_LIST:
            names = ["chain_id", "nonce", "gas_price", "gas_limit", "to", "value", "data", "access_list"]
        else:
            names = [
                "chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas",
                "gas_limit", "to", "value", "data", "access_list",
            ]
        if len(values) > unsigned:
            names += ["v", "r", "s"]
        raw = dict(zip(names, values))

        for name, item in raw.items():
            if name == "access_list":
                if not isinstance(item, list):
                    raise MalformedFields(
                        "Invalid serialized tx input: access list must be a list", field=name
                    )
            else:
                _expect_bytes(item, name)

        numeric = [n for n in names if n not in ("to", "data", "access_list")]
        validate_no_leading_zeroes({n: raw[n] for n in numeric})

        kwargs: dict[str, Any] = {"tx_type": tx_type}
        for name in numeric:
            kwargs[name] = bytes_to_int(raw[name], name)
        kwargs["to"] = to_address(raw["to"], "to")
        kwargs["data"] = raw["data"]
        if "access_list" in raw:
            kwargs["access_list"] = al.from_buffer(raw["access_list"])

        if "v" in raw:
            if raw["r"] == b"" and raw["s"] == b"":
                # Unsigned; a legacy v slot may hold the EIP-155 chain id
                v = kwargs.pop("v")
                kwargs.pop("r")
                kwargs.pop("s")
                if tx_type == TxType.LEGACY and raw["v"] != b"":
                    kwargs["chain_id"] = v
                elif raw["v"] != b"":
                    raise MalformedFields(
                        f"Invalid {TX_TYPE_NAMES[tx_type]} transaction: y-parity set without r and s",
                        field="v",
                    )
            else:
                # Empty r or s is an absent component; a y-parity of 0 is empty too
                for name in ("r", "s"):
                    if raw[name] == b"":
                        kwargs[name] = None
                if tx_type == TxType.LEGACY and raw["v"] == b"":
                    kwargs["v"] = None

        return cls(**kwargs)

    @classmethod
    def from_serialized_bytes(
        cls,
        data: Union[bytes, str],
        tx_type: Optional[int] = None,
    ) -> Transaction:
        """Decode a transaction from its wire encoding (bytes or 0x-hex).

        With tx_type given, the input must be of that type; otherwise the
        type is detected from the first byte.
        """
        data = to_data(data, "serialized")
        if len(data) == 0:
            raise MalformedFields("Empty transaction data")

        first = data[0]
        if first >= 0xc0:
            detected = TxType.LEGACY
        elif first in (TxType.ACCESS_LIST, TxType.FEE_MARKET):
            detected = TxType(first)
        elif first <= 0x7f:
            raise WrongTransactionType(f"Unsupported transaction type: 0x{first:02x}", field="type")
        else:
            raise MalformedFields("Invalid serialized tx input: must be array")

        if tx_type is not None and detected != tx_type:
            expected = coerce_tx_type(tx_type)
            raise WrongTransactionType(
                f"Invalid serialized tx input: not an {TX_TYPE_NAMES[expected]} transaction "
                f"(wrong tx type, expected: {int(expected)}, received: 0x{first:02x})",
                field="type",
            )

        payload = data if detected == TxType.LEGACY else data[1:]
        values = rlp.decode(payload)
        if not isinstance(values, list):
            raise MalformedFields("Invalid serialized tx input: must be array")

        logger.debug("Decoded type-%d transaction with %d values", detected, len(values))
        return cls.from_rlp_list(values, detected)

    # -----------------------------------------------------------------------
    # Encoding
    # -----------------------------------------------------------------------

    def _unsigned_values(self) -> list:
        to_bytes = self.to if self.to is not None else b""
        access_list = [e.to_rlp_list() for e in self.access_list]

        if self.tx_type == TxType.LEGACY:
            return [
                int_to_min_bytes(self.nonce),
                int_to_min_bytes(self.gas_price),
                int_to_min_bytes(self.gas_limit),
                to_bytes,
                int_to_min_bytes(self.value),
                self.data,
            ]
        elif self.tx_type == TxType.ACCESS_LIST:
            return [
                int_to_min_bytes(self.chain_id),
                int_to_min_bytes(self.nonce),
                int_to_min_bytes(self.gas_price),
                int_to_min_bytes(self.gas_limit),
                to_bytes,
                int_to_min_bytes(self.value),
                self.data,
                access_list,
            ]
        return [
            int_to_min_bytes(self.chain_id),
            int_to_min_bytes(self.nonce),
            int_to_min_bytes(self.max_priority_fee_per_gas),
            int_to_min_bytes(self.max_fee_per_gas),
            int_to_min_bytes(self.gas_limit),
            to_bytes,
            int_to_min_bytes(self.value),
            self.data,
            access_list,
        ]

    def _eip155_suffix(self) -> list:
        return [int_to_min_bytes(self.chain_id), b"", b""]

    def raw_values(self) -> list:
        """Return the ordered wire values.

        Absent signature components are empty byte strings. An unsigned
        legacy transaction with a chain id carries [chainId, 0, 0] in the
        signature slots, the same layout it is signed with.
        """
        values = self._unsigned_values()
        if self.is_signed():
            return values + [int_to_min_bytes(c) for c in (self.v, self.r, self.s)]
        if self.tx_type == TxType.LEGACY and self.chain_id is not None:
            return values + self._eip155_suffix()
        return values + [b"", b"", b""]

    def serialize(self) -> bytes:
        """Encode transaction to wire bytes (with type prefix for typed txs)."""
        payload = rlp.encode(self.raw_values())
        if self.tx_type == TxType.LEGACY:
            return payload
        return bytes([self.tx_type]) + payload

    def signing_hash(self, hash_message: bool = True) -> bytes:
        """Return the keccak256 hash to be signed, or the raw message.

        Pass hash_message=False to get the pre-hash bytes, e.g. for hardware
        wallets that display the transaction before signing.
        """
        values = self._unsigned_values()
        if self.tx_type == TxType.LEGACY:
            if self.chain_id is not None:
                values += self._eip155_suffix()
            message = rlp.encode(values)
        else:
            message = bytes([self.tx_type]) + rlp.encode(values)
        return keccak256(message) if hash_message else message

    def hash(self) -> bytes:
        """Compute the transaction hash; only signed transactions have one."""
        if not self.is_signed():
            raise NotSigned(self._error_msg("Cannot call hash method if transaction is not signed"))
        return keccak256(self.serialize())

    # -----------------------------------------------------------------------
    # Signatures
    # -----------------------------------------------------------------------

    def is_signed(self) -> bool:
        return self.v is not None and self.r is not None and self.s is not None

    @property
    def recovery_id(self) -> Optional[int]:
        """Raw recovery bit (0/1) behind the wire-encoded v."""
        if self.v is None:
            return None
        return decode_v(self.v, typed=self.tx_type != TxType.LEGACY)[0]

    def attach_signature(self, v: Any, r: Any, s: Any) -> Transaction:
        """Return a copy carrying the given wire-encoded (v, r, s).

        v is the y-parity (0/1) for typed transactions and 27/28 or
        chain_id * 2 + 35/36 for legacy ones. The signature is not checked
        against the signing hash; use verify_signature for that.
        """
        return dataclasses.replace(
            self,
            v=to_int(v, "v"),
            r=to_int(r, "r"),
            s=to_int(s, "s"),
        )

    def attach_recovery_id(self, recovery_id: int, r: Any, s: Any) -> Transaction:
        """Like attach_signature, but takes the raw recovery bit (0/1)."""
        typed = self.tx_type != TxType.LEGACY
        v = encode_v(recovery_id, None if typed else self.chain_id, typed=typed)
        return self.attach_signature(v, r, s)

    def sign_with(self, sign_hash: Callable[[bytes], tuple[int, int, int]]) -> Transaction:
        """Sign through an external signer returning (recovery_id, r, s)."""
        recovery_id, r, s = sign_hash(self.signing_hash())
        return self.attach_recovery_id(recovery_id, r, s)

    def sign(self, private_key: bytes) -> Transaction:
        """Return a signed copy of this transaction."""
        if len(private_key) != 32:
            raise MalformedFields("Private key must be 32 bytes", field="private_key")
        logger.debug("Signing type-%d transaction nonce=%d", self.tx_type, self.nonce)
        return self.sign_with(lambda msg_hash: ecdsa_sign(msg_hash, private_key))

    def verify_signature(self, expected_public_key: Union[bytes, str, None] = None) -> bytes:
        """Check the embedded signature and return the signer's public key.

        Raises SignatureMismatch on a structurally invalid signature (high s,
        r/s out of range) or when it was not produced by expected_public_key.
        """
        if not self.is_signed():
            raise NotSigned(self._error_msg("Cannot verify the signature of an unsigned transaction"))
        recovery_id = self.recovery_id
        if not validate_signature_values(recovery_id, self.r, self.s):
            raise SignatureMismatch(
                self._error_msg(
                    "Invalid Signature: r must be in [1, n) and s-values greater than "
                    "secp256k1n/2 are considered invalid"
                )
            )
        public_key = ecdsa_recover(self.signing_hash(), recovery_id, self.r, self.s)
        if expected_public_key is not None:
            expected = normalize_public_key(to_data(expected_public_key, "public_key"))
            if expected != public_key:
                raise SignatureMismatch(self._error_msg("Signature was not produced by the expected key"))
        return public_key

    def sender_public_key(self) -> bytes:
        return self.verify_signature()

    def sender(self) -> bytes:
        """Recover sender address from signature."""
        return pubkey_to_address(self.verify_signature())

    # -----------------------------------------------------------------------
    # Presentation
    # -----------------------------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        """Hex-string representation, omitting absent fields."""
        result: dict[str, Any] = {"type": hex(self.tx_type)}
        if self.chain_id is not None:
            result["chainId"] = hex(self.chain_id)
        result["nonce"] = hex(self.nonce)
        if self.tx_type == TxType.FEE_MARKET:
            result["maxPriorityFeePerGas"] = hex(self.max_priority_fee_per_gas)
            result["maxFeePerGas"] = hex(self.max_fee_per_gas)
        else:
            result["gasPrice"] = hex(self.gas_price)
        result["gasLimit"] = hex(self.gas_limit)
        if self.to is not None:
            result["to"] = encode_hex(self.to)
        result["value"] = hex(self.value)
        result["data"] = encode_hex(self.data)
        if self.tx_type != TxType.LEGACY:
            result["accessList"] = al.to_json(self.access_list)
        if self.is_signed():
            result["v"] = hex(self.v)
            result["r"] = hex(self.r)
            result["s"] = hex(self.s)
        return result

    def error_str(self) -> str:
        """Compact description appended to error messages."""
        out = (
            f"tx type={int(self.tx_type)} nonce={self.nonce} value={self.value} "
            f"signed={str(self.is_signed()).lower()}"
        )
        if self.tx_type == TxType.FEE_MARKET:
            out += f" maxFeePerGas={self.max_fee_per_gas} maxPriorityFeePerGas={self.max_priority_fee_per_gas}"
        else:
            out += f" gasPrice={self.gas_price}"
        return out

    def _error_msg(self, msg: str) -> str:
        return f"{msg} ({self.error_str()})"
