"""
ethtx: command-line transaction codec and signer.

Subcommands:
  sign     build and sign a transaction from JSON parameters or field flags
  decode   decode a serialized transaction to JSON
  verify   decode a signed transaction and check its signature
  hash     print the signing hash / message and the transaction hash
  address  print the address of a private key

All output is JSON on stdout. The private key may be passed with
--private-key or the ETHTX_PRIVATE_KEY environment variable.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from eth_utils import encode_hex

from ethtx.common.config import CHAIN_CONFIGS, get_chain_config
from ethtx.common.errors import TransactionError
from ethtx.common.types import Transaction
from ethtx.wallet.signer import (
    get_address_by_private_key,
    sign_transaction,
    valid_signed_transaction,
)


logger = logging.getLogger("ethtx")


# (flag dest, parameter name); flags override --tx / --tx-file values
FIELD_FLAGS = [
    ("type", "type"),
    ("nonce", "nonce"),
    ("to", "to"),
    ("value", "value"),
    ("data", "data"),
    ("gas_limit", "gasLimit"),
    ("gas_price", "gasPrice"),
    ("max_fee_per_gas", "maxFeePerGas"),
    ("max_priority_fee_per_gas", "maxPriorityFeePerGas"),
    ("chain_id", "chainId"),
    ("contract_address", "contractAddress"),
]


def _load_params(args: argparse.Namespace) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if args.tx_file:
        with open(Path(args.tx_file)) as f:
            params = json.load(f)
    elif args.tx:
        params = json.loads(args.tx)
    for dest, name in FIELD_FLAGS:
        value = getattr(args, dest, None)
        if value is not None:
            params[name] = value
    if not params:
        raise TransactionError("Transaction fields are required (--tx, --tx-file or field flags)")
    return params


def _private_key(args: argparse.Namespace) -> str:
    key = args.private_key or os.environ.get("ETHTX_PRIVATE_KEY")
    if not key:
        raise TransactionError("A private key is required (--private-key or ETHTX_PRIVATE_KEY)")
    return key


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_sign(args: argparse.Namespace) -> dict[str, Any]:
    config = get_chain_config(args.network)
    raw = sign_transaction(_load_params(args), _private_key(args), config)
    tx = Transaction.from_serialized_bytes(raw)
    return {"raw": raw, "hash": encode_hex(tx.hash())}


def cmd_decode(args: argparse.Namespace) -> dict[str, Any]:
    tx = Transaction.from_serialized_bytes(args.raw)
    result = tx.to_json()
    result["signed"] = tx.is_signed()
    result["signingHash"] = encode_hex(tx.signing_hash())
    if tx.is_signed():
        result["hash"] = encode_hex(tx.hash())
    return result


def cmd_verify(args: argparse.Namespace) -> dict[str, Any]:
    return valid_signed_transaction(args.raw, chain_id=args.chain_id, public_key=args.public_key)


def cmd_hash(args: argparse.Namespace) -> dict[str, Any]:
    tx = Transaction.from_serialized_bytes(args.raw)
    result = {
        "message": encode_hex(tx.signing_hash(hash_message=False)),
        "signingHash": encode_hex(tx.signing_hash()),
    }
    if tx.is_signed():
        result["hash"] = encode_hex(tx.hash())
    return result


def cmd_address(args: argparse.Namespace) -> dict[str, Any]:
    return {"address": get_address_by_private_key(_private_key(args))}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ethtx",
        description="Ethereum typed transaction codec and signer",
    )
    parser.add_argument(
        "--network",
        default="mainnet",
        help=f"Network name ({', '.join(CHAIN_CONFIGS)}) or numeric chain id (default: mainnet)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_sign = sub.add_parser("sign", help="Build and sign a transaction")
    p_sign.add_argument("--tx", type=str, default=None, help="Transaction parameters as JSON")
    p_sign.add_argument("--tx-file", type=str, default=None, help="Path to a JSON parameters file")
    p_sign.add_argument("--private-key", type=str, default=None, help="Hex-encoded private key")
    for dest, name in FIELD_FLAGS:
        p_sign.add_argument(
            "--" + dest.replace("_", "-"), dest=dest, type=str, default=None, help=f"Transaction {name}"
        )
    p_sign.set_defaults(func=cmd_sign)

    p_decode = sub.add_parser("decode", help="Decode a serialized transaction")
    p_decode.add_argument("raw", help="0x-hex serialized transaction")
    p_decode.set_defaults(func=cmd_decode)

    p_verify = sub.add_parser("verify", help="Verify a signed transaction")
    p_verify.add_argument("raw", help="0x-hex serialized transaction")
    p_verify.add_argument("--public-key", type=str, default=None, help="Expected signer public key")
    p_verify.add_argument("--chain-id", type=int, default=None, help="Expected chain id")
    p_verify.set_defaults(func=cmd_verify)

    p_hash = sub.add_parser("hash", help="Print signing hash and transaction hash")
    p_hash.add_argument("raw", help="0x-hex serialized transaction")
    p_hash.set_defaults(func=cmd_hash)

    p_address = sub.add_parser("address", help="Print the address of a private key")
    p_address.add_argument("--private-key", type=str, default=None, help="Hex-encoded private key")
    p_address.set_defaults(func=cmd_address)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        result = args.func(args)
    except TransactionError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Cannot read transaction parameters: %s", e)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
