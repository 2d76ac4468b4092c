"""
Cryptographic utilities for Ethereum transactions.

- keccak256 hashing
- secp256k1 ECDSA signing, verification and public key recovery
- the recovery id <-> wire `v` transform
- Ethereum address derivation
"""

from __future__ import annotations

from typing import Optional

from Crypto.Hash import keccak as _keccak_mod
from coincurve import PrivateKey, PublicKey

from ethtx.common.errors import InvalidFormat, SignatureMismatch


SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

# Wire `v` offsets: pre-EIP-155 legacy and EIP-155 replay protection
LEGACY_V_OFFSET = 27
EIP155_V_OFFSET = 35


def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 hash (NOT SHA3-256)."""
    h = _keccak_mod.new(digest_bits=256)
    h.update(data)
    return h.digest()


# ---------------------------------------------------------------------------
# v encoding
# ---------------------------------------------------------------------------

def encode_v(recovery_id: int, chain_id: Optional[int] = None, typed: bool = False) -> int:
    """Convert a raw recovery id (0/1) to the `v` carried on the wire.

    Typed transactions carry the y-parity itself. Legacy transactions add 27,
    or chain_id * 2 + 35 when EIP-155 replay protection is used.
    """
    if recovery_id not in (0, 1):
        raise InvalidFormat(f"Recovery id must be 0 or 1, got {recovery_id}", field="v")
    if typed:
        return recovery_id
    if chain_id is not None:
        return chain_id * 2 + EIP155_V_OFFSET + recovery_id
    return LEGACY_V_OFFSET + recovery_id


def decode_v(v: int, typed: bool = False) -> tuple[int, Optional[int]]:
    """Inverse of encode_v: return (recovery_id, chain_id).

    chain_id is None for typed transactions (it lives in its own field) and
    for pre-EIP-155 legacy signatures.
    """
    if typed:
        if v not in (0, 1):
            raise InvalidFormat(
                f"The y-parity of the transaction should either be 0 or 1, got {v}",
                field="v",
            )
        return v, None
    if v in (LEGACY_V_OFFSET, LEGACY_V_OFFSET + 1):
        return v - LEGACY_V_OFFSET, None
    if v >= EIP155_V_OFFSET:
        chain_id, recovery_id = divmod(v - EIP155_V_OFFSET, 2)
        return recovery_id, chain_id
    raise InvalidFormat(
        f"Legacy v must be 27, 28 or chain_id * 2 + 35/36, got {v}", field="v"
    )


# ---------------------------------------------------------------------------
# secp256k1
# ---------------------------------------------------------------------------

def validate_signature_values(recovery_id: int, r: int, s: int) -> bool:
    """Check a signature is in canonical, non-malleable (low-s) form."""
    if recovery_id not in (0, 1):
        return False
    if not 0 < r < SECP256K1_N:
        return False
    if not 0 < s <= SECP256K1_HALF_N:
        return False
    return True


def ecdsa_sign(msg_hash: bytes, private_key: bytes) -> tuple[int, int, int]:
    """Sign a 32-byte message hash with a private key.

    Returns (v, r, s) where v is the recovery id (0 or 1). libsecp256k1
    always produces low-s signatures.
    """
    if len(msg_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    pk = PrivateKey(private_key)
    sig = pk.sign_recoverable(msg_hash, hasher=None)
    # coincurve returns 65 bytes: r(32) + s(32) + v(1)
    r = int.from_bytes(sig[:32], "big")
    s = int.from_bytes(sig[32:64], "big")
    v = sig[64]
    return v, r, s


def ecdsa_recover(msg_hash: bytes, v: int, r: int, s: int) -> bytes:
    """Recover the uncompressed public key (65 bytes) from a signature.

    v is the recovery id (0 or 1).
    Returns the 65-byte uncompressed public key (0x04 || x || y).
    """
    if len(msg_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if not validate_signature_values(v, r, s):
        raise SignatureMismatch(
            "Invalid signature values: recovery id must be 0/1, r in [1, n) and s in [1, n/2]"
        )

    sig_bytes = (
        r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v])
    )
    try:
        pub = PublicKey.from_signature_and_message(sig_bytes, msg_hash, hasher=None)
    except ValueError as e:
        raise SignatureMismatch(f"Public key recovery failed: {e}") from e
    return pub.format(compressed=False)


def ecdsa_verify(msg_hash: bytes, signature: tuple[int, int, int], public_key: bytes) -> bool:
    """Verify (recovery_id, r, s) over msg_hash against a public key."""
    v, r, s = signature
    if not validate_signature_values(v, r, s):
        return False
    try:
        recovered = ecdsa_recover(msg_hash, v, r, s)
    except SignatureMismatch:
        return False
    return recovered == normalize_public_key(public_key)


# ---------------------------------------------------------------------------
# Keys and addresses
# ---------------------------------------------------------------------------

def normalize_public_key(pubkey: bytes) -> bytes:
    """Return the 65-byte uncompressed form of a 33, 64 or 65-byte key."""
    if len(pubkey) == 64:
        pubkey = b"\x04" + pubkey
    if len(pubkey) not in (33, 65):
        raise InvalidFormat(
            f"Public key must be 33, 64 or 65 bytes, got {len(pubkey)}",
            field="public_key",
        )
    try:
        return PublicKey(pubkey).format(compressed=False)
    except ValueError as e:
        raise InvalidFormat(f"Invalid public key: {e}", field="public_key") from e


def pubkey_to_address(pubkey: bytes) -> bytes:
    """Derive Ethereum address from uncompressed public key.

    Takes 65-byte uncompressed key (0x04 || x || y) or 64-byte raw (x || y).
    Returns 20-byte address.
    """
    if len(pubkey) == 65:
        pubkey = pubkey[1:]  # strip 0x04 prefix
    if len(pubkey) != 64:
        raise ValueError(f"Expected 64-byte public key, got {len(pubkey)}")
    return keccak256(pubkey)[12:]


def private_key_to_public_key(private_key: bytes) -> bytes:
    """Get 65-byte uncompressed public key from private key."""
    pk = PrivateKey(private_key)
    return pk.public_key.format(compressed=False)


def private_key_to_address(private_key: bytes) -> bytes:
    """Derive Ethereum address from a 32-byte private key."""
    return pubkey_to_address(private_key_to_public_key(private_key))
