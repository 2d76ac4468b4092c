"""
EIP-2930 access lists.

An access list is an ordered sequence of (address, [storage_key, ...]) pairs
carried by typed transactions. Two forms are used:

- buffer form: ``[[address(20 bytes), [key(32 bytes), ...]], ...]``, ready to
  be RLP-encoded;
- JSON form: ``[{"address": "0x..", "storageKeys": ["0x..", ...]}, ...]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from eth_utils import encode_hex

from ethtx.common.errors import InvalidFormat
from ethtx.common.numeric import ADDRESS_LENGTH, HASH_LENGTH, to_data


AccessListBuffer = list[list]
AccessListJSON = list[dict[str, Any]]


@dataclass(frozen=True)
class AccessListEntry:
    address: bytes  # 20 bytes
    storage_keys: tuple[bytes, ...] = field(default_factory=tuple)  # 32-byte keys

    def to_rlp_list(self) -> list:
        return [self.address, list(self.storage_keys)]

    @classmethod
    def from_rlp_list(cls, items: list) -> AccessListEntry:
        return cls(
            address=items[0],
            storage_keys=tuple(items[1]),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "address": encode_hex(self.address),
            "storageKeys": [encode_hex(k) for k in self.storage_keys],
        }


def _storage_key(raw: Any) -> bytes:
    # Integer slots are left-padded to a full word
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw < 0 or raw.bit_length() > 256:
            raise InvalidFormat(f"Storage slot out of range: {raw}", field="accessList")
        return raw.to_bytes(HASH_LENGTH, "big")
    return to_data(raw, "accessList")


def _split_entry(entry: Any) -> tuple[Any, Any]:
    if isinstance(entry, AccessListEntry):
        return entry.address, entry.storage_keys
    if isinstance(entry, Mapping):
        keys = entry.get("storageKeys", entry.get("storage_keys", []))
        return entry.get("address"), keys
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return entry[0], entry[1]
    raise InvalidFormat(
        "Invalid access list entry: expected {address, storageKeys} or (address, keys) pair",
        field="accessList",
    )


def normalize(raw_entries: Iterable[Any] | None) -> tuple[AccessListBuffer, AccessListJSON]:
    """Convert loosely typed entries into (buffer_form, json_form).

    Entries may be JSON-style dicts, (address, keys) pairs, buffered
    [address, [keys]] lists or AccessListEntry objects; hex strings, bytes
    and integer slots are all accepted. The result is validated.
    """
    buffer_form: AccessListBuffer = []
    for entry in raw_entries or []:
        address, keys = _split_entry(entry)
        if not isinstance(keys, (list, tuple)):
            raise InvalidFormat(
                "Invalid access list entry: storage keys must be a list",
                field="accessList",
            )
        buffer_form.append([to_data(address, "accessList"), [_storage_key(k) for k in keys]])

    validate(buffer_form)
    return buffer_form, to_json(from_buffer(buffer_form))


def validate(buffer_form: Any) -> None:
    """Walk a buffer-form access list, raising InvalidFormat on any defect."""
    if not isinstance(buffer_form, (list, tuple)):
        raise InvalidFormat("Access list must be a list", field="accessList")
    for index, entry in enumerate(buffer_form):
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise InvalidFormat(
                f"Access list entry {index} must be an [address, storageKeys] pair",
                field="accessList",
            )
        address, keys = entry
        if not isinstance(address, (bytes, bytearray)) or len(address) != ADDRESS_LENGTH:
            raise InvalidFormat(
                f"Invalid EIP-2930 transaction: address length should be {ADDRESS_LENGTH} bytes",
                field="accessList",
            )
        if not isinstance(keys, (list, tuple)):
            raise InvalidFormat(
                f"Access list entry {index} storage keys must be a list",
                field="accessList",
            )
        for key in keys:
            if not isinstance(key, (bytes, bytearray)) or len(key) != HASH_LENGTH:
                raise InvalidFormat(
                    f"Invalid EIP-2930 transaction: storage slot length should be {HASH_LENGTH} bytes",
                    field="accessList",
                )


def from_buffer(buffer_form: AccessListBuffer) -> tuple[AccessListEntry, ...]:
    """Build entries from a buffer-form list (validated first)."""
    validate(buffer_form)
    return tuple(
        AccessListEntry(address=bytes(address), storage_keys=tuple(bytes(k) for k in keys))
        for address, keys in buffer_form
    )


def to_json(entries: Iterable[AccessListEntry]) -> AccessListJSON:
    return [entry.to_json() for entry in entries]
