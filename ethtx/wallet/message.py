"""
Off-chain message signing: eth_sign, personal_sign (EIP-191) and typed
data (EIP-712, v3 and v4).

Signatures are 65 bytes, r || s || v, with v = 27/28. Without a private
key, sign_message returns the hash that would be signed.
"""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any, Mapping, Union

from eth_account.messages import encode_typed_data
from eth_utils import decode_hex, encode_hex, is_0x_prefixed, is_hex, to_checksum_address

from ethtx.common.crypto import (
    LEGACY_V_OFFSET,
    ecdsa_recover,
    ecdsa_sign,
    keccak256,
    pubkey_to_address,
)
from ethtx.common.errors import InvalidFormat, MalformedFields, SignatureMismatch
from ethtx.common.numeric import to_address, to_data
from ethtx.wallet.signer import private_key_bytes

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
HASH_LENGTH = 32

Message = Union[str, bytes, Mapping[str, Any]]


class MessageType(IntEnum):
    ETH_SIGN = 0
    PERSONAL_SIGN = 1
    TYPE_DATA_V1 = 2
    TYPE_DATA_V3 = 3
    TYPE_DATA_V4 = 4


def _message_bytes(message: Union[str, bytes]) -> bytes:
    # 0x-hex strings are signed as the bytes they encode
    if isinstance(message, str):
        if is_0x_prefixed(message) and is_hex(message):
            return decode_hex(message)
        return message.encode("utf-8")
    return bytes(message)


def hash_personal_message(message: Union[str, bytes]) -> bytes:
    data = _message_bytes(message)
    return keccak256(PERSONAL_MESSAGE_PREFIX + str(len(data)).encode() + data)


def _typed_data(message: Message) -> dict:
    if isinstance(message, (str, bytes)):
        try:
            message = json.loads(message)
        except ValueError as e:
            raise MalformedFields(f"Typed data is not valid JSON: {e}", field="message") from None
    if not isinstance(message, Mapping):
        raise MalformedFields("Typed data must be a JSON object", field="message")
    return dict(message)


def hash_typed_data(message: Message, version: MessageType = MessageType.TYPE_DATA_V4) -> bytes:
    """EIP-712 hash: keccak256(0x19 0x01 || domainSeparator || hashStruct(message)).

    v3 is v4 without arrays; array-typed members are rejected under v3.
    """
    data = _typed_data(message)
    if version == MessageType.TYPE_DATA_V3:
        for name, members in data.get("types", {}).items():
            for member in members:
                if member.get("type", "").endswith("]"):
                    raise MalformedFields(
                        f"Arrays are not supported by typed data v3 ({name}.{member.get('name')})",
                        field="message",
                    )
    try:
        signable = encode_typed_data(full_message=data)
    except (ValueError, TypeError, KeyError) as e:
        raise MalformedFields(f"Invalid typed data: {e}", field="message") from e
    return keccak256(b"\x19" + signable.version + signable.header + signable.body)


def hash_message(message: Message, message_type: MessageType = MessageType.PERSONAL_SIGN) -> bytes:
    """Return the 32-byte digest that is signed for the given message type."""
    message_type = MessageType(message_type)
    if message_type == MessageType.ETH_SIGN:
        digest = _message_bytes(message)
        if len(digest) != HASH_LENGTH:
            raise InvalidFormat(
                f"eth_sign expects a {HASH_LENGTH}-byte hash, got {len(digest)} bytes",
                field="message",
            )
        return digest
    if message_type == MessageType.PERSONAL_SIGN:
        return hash_personal_message(message)
    if message_type == MessageType.TYPE_DATA_V1:
        raise MalformedFields("Typed data v1 is not supported; use v3 or v4", field="message_type")
    return hash_typed_data(message, message_type)


def sign_message(
    message: Message,
    private_key: Union[str, bytes, None] = None,
    message_type: MessageType = MessageType.PERSONAL_SIGN,
) -> str:
    """Sign a message; returns 0x(r || s || v) with v = 27/28.

    Without a private key the 0x-hex digest is returned instead.
    """
    digest = hash_message(message, message_type)
    if private_key is None:
        return encode_hex(digest)
    recovery_id, r, s = ecdsa_sign(digest, private_key_bytes(private_key))
    signature = r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([recovery_id + LEGACY_V_OFFSET])
    return encode_hex(signature)


def recover_message_signer(
    message: Message,
    signature: Union[str, bytes],
    message_type: MessageType = MessageType.PERSONAL_SIGN,
) -> str:
    """Checksummed address that produced a message signature."""
    sig = to_data(signature, "signature")
    if len(sig) != 65:
        raise InvalidFormat(f"Signature must be 65 bytes, got {len(sig)}", field="signature")
    r = int.from_bytes(sig[:32], "big")
    s = int.from_bytes(sig[32:64], "big")
    v = sig[64]
    recovery_id = v - LEGACY_V_OFFSET if v >= LEGACY_V_OFFSET else v
    public_key = ecdsa_recover(hash_message(message, message_type), recovery_id, r, s)
    return to_checksum_address(pubkey_to_address(public_key))


def verify_message(
    message: Message,
    signature: Union[str, bytes],
    address: Union[str, bytes],
    message_type: MessageType = MessageType.PERSONAL_SIGN,
) -> bool:
    try:
        signer = recover_message_signer(message, signature, message_type)
    except SignatureMismatch:
        return False
    return to_checksum_address(to_address(address, "address")) == signer
