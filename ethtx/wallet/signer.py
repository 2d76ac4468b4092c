"""
Wallet-level signing helpers.

Turns the loosely typed parameter dicts a wallet front end produces into
signed, serialized transactions, and checks transactions signed elsewhere.
Nothing here talks to a node: broadcasting the returned hex blob is the
transport layer's job.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from eth_utils import (
    encode_hex,
    function_signature_to_4byte_selector,
    is_hex_address,
    to_checksum_address,
)

from ethtx.common.config import MAINNET_CONFIG, ChainConfig
from ethtx.common.crypto import SECP256K1_N, private_key_to_address, pubkey_to_address
from ethtx.common.errors import MalformedFields, NotSigned
from ethtx.common.numeric import to_address, to_data, to_int
from ethtx.common.types import Transaction, TxType, coerce_tx_type


logger = logging.getLogger(__name__)

TRANSFER_SELECTOR = function_signature_to_4byte_selector("transfer(address,uint256)")


# ---------------------------------------------------------------------------
# Keys and addresses
# ---------------------------------------------------------------------------

def check_private_key(private_key: Union[str, bytes]) -> bool:
    """True if the input is a usable 32-byte secp256k1 private key."""
    try:
        key = to_data(private_key, "private_key")
    except MalformedFields:
        return False
    return len(key) == 32 and 0 < int.from_bytes(key, "big") < SECP256K1_N


def private_key_bytes(private_key: Union[str, bytes]) -> bytes:
    """Decode and validate a private key, raising MalformedFields if unusable."""
    if not check_private_key(private_key):
        raise MalformedFields("Invalid private key", field="private_key")
    return to_data(private_key, "private_key")


def get_address_by_private_key(private_key: Union[str, bytes]) -> str:
    """Checksummed address for a private key."""
    return to_checksum_address(private_key_to_address(private_key_bytes(private_key)))


def valid_address(address: str) -> bool:
    return isinstance(address, str) and is_hex_address(address)


# ---------------------------------------------------------------------------
# Building and signing
# ---------------------------------------------------------------------------

def encode_token_transfer(to: Union[str, bytes], amount: Any) -> bytes:
    """ABI-encode an ERC-20 transfer(address,uint256) call."""
    recipient = to_address(to, "to")
    if recipient is None:
        raise MalformedFields("Token transfer requires a recipient", field="to")
    value = to_int(amount, "value")
    if value.bit_length() > 256:
        raise MalformedFields("Token amount does not fit in uint256", field="value")
    return TRANSFER_SELECTOR + recipient.rjust(32, b"\x00") + value.to_bytes(32, "big")


def build_transaction(params: Mapping[str, Any], config: ChainConfig = MAINNET_CONFIG) -> Transaction:
    """Build an unsigned transaction from wallet parameters.

    Recognised keys: to, value, nonce, contractAddress, gasPrice, gasLimit,
    data, chainId, type, maxPriorityFeePerGas, maxFeePerGas. With
    contractAddress set the transaction becomes an ERC-20 transfer of
    `value` tokens to `to`; an explicit `data` still takes precedence over
    the derived transfer call.
    """
    type_param = params.get("type")
    tx_type = coerce_tx_type(type_param) if type_param not in (None, "") else config.default_tx_type
    config.require(tx_type)

    to = params.get("to")
    value = to_int(params.get("value"), "value")
    data = to_data(params.get("data"), "data")
    token = params.get("contractAddress")
    if token:
        if not data:
            data = encode_token_transfer(to, value)
        to = token
        value = 0

    fields: dict[str, Any] = {
        "nonce": params.get("nonce"),
        "gasLimit": params.get("gasLimit"),
        "to": to,
        "value": value,
        "data": data,
    }
    chain_id = params.get("chainId")
    if tx_type != TxType.LEGACY or config.eip155 or chain_id not in (None, ""):
        fields["chainId"] = to_int(chain_id, "chainId") if chain_id not in (None, "") else config.chain_id

    if tx_type == TxType.FEE_MARKET:
        fields["maxPriorityFeePerGas"] = params.get("maxPriorityFeePerGas")
        fields["maxFeePerGas"] = params.get("maxFeePerGas")
    else:
        fields["gasPrice"] = params.get("gasPrice")
    if tx_type != TxType.LEGACY and params.get("accessList") is not None:
        fields["accessList"] = params["accessList"]

    return Transaction.from_field_data(fields, tx_type)


def sign_transaction(
    params: Mapping[str, Any],
    private_key: Union[str, bytes],
    config: ChainConfig = MAINNET_CONFIG,
) -> str:
    """Build and sign a transaction, returning the 0x-hex wire encoding."""
    key = private_key_bytes(private_key)
    tx = build_transaction(params, config).sign(key)
    logger.info(
        "Signed type-%d transaction nonce=%d on %s", tx.tx_type, tx.nonce, config.chain_name
    )
    return encode_hex(tx.serialize())


def sign_raw_transaction(raw_tx: Union[str, bytes], private_key: Union[str, bytes]) -> str:
    """(Re-)sign a serialized transaction, returning the signed 0x-hex."""
    key = private_key_bytes(private_key)
    tx = Transaction.from_serialized_bytes(raw_tx)
    return encode_hex(tx.sign(key).serialize())


def valid_signed_transaction(
    tx: Union[str, bytes],
    chain_id: Optional[int] = None,
    public_key: Union[str, bytes, None] = None,
) -> dict[str, Any]:
    """Decode and verify a signed transaction, returning its JSON view.

    Raises SignatureMismatch if public_key is given and did not sign it.
    """
    signed = Transaction.from_serialized_bytes(tx)
    if not signed.is_signed():
        raise NotSigned(f"Transaction is not signed ({signed.error_str()})")
    if chain_id is not None and signed.chain_id != chain_id:
        raise MalformedFields(
            f"Transaction chain id {signed.chain_id} does not match expected {chain_id}",
            field="chain_id",
        )
    sender_key = signed.verify_signature(public_key)

    result = signed.to_json()
    result["hash"] = encode_hex(signed.hash())
    result["from"] = to_checksum_address(pubkey_to_address(sender_key))
    return result