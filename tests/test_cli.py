"""Tests for the ethtx command line."""

import json

import pytest
from eth_utils import to_checksum_address

from ethtx.main import main
from tests.fixtures.vectors import EIP155_SIGNED, EIP155_SIGNING_HASH

EIP155_HEX = "0x" + EIP155_SIGNED.hex()
ALICE_HEX = "0x" + "01" * 32

TX_PARAMS = {
    "to": "0x" + "35" * 20,
    "value": 1,
    "nonce": 0,
    "gasPrice": 1,
    "gasLimit": 21000,
}


def run(capsys, *argv):
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out else None


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.delenv("ETHTX_PRIVATE_KEY", raising=False)


class TestCommands:
    def test_address(self, capsys, alice_address):
        code, result = run(capsys, "address", "--private-key", ALICE_HEX)
        assert code == 0
        assert result == {"address": to_checksum_address(alice_address)}

    def test_address_from_env(self, capsys, monkeypatch, alice_address):
        monkeypatch.setenv("ETHTX_PRIVATE_KEY", ALICE_HEX)
        code, result = run(capsys, "address")
        assert code == 0
        assert result["address"] == to_checksum_address(alice_address)

    def test_sign_and_decode(self, capsys):
        code, signed = run(capsys, "sign", "--tx", json.dumps(TX_PARAMS), "--private-key", ALICE_HEX)
        assert code == 0
        assert signed["raw"].startswith("0x")

        code, decoded = run(capsys, "decode", signed["raw"])
        assert code == 0
        assert decoded["signed"] is True
        assert decoded["hash"] == signed["hash"]
        assert decoded["chainId"] == "0x1"

    def test_sign_from_file(self, capsys, tmp_path):
        path = tmp_path / "tx.json"
        path.write_text(json.dumps({**TX_PARAMS, "type": 2, "maxFeePerGas": 2, "maxPriorityFeePerGas": 1}))
        code, signed = run(capsys, "sign", "--tx-file", str(path), "--private-key", ALICE_HEX)
        assert code == 0
        assert signed["raw"].startswith("0x02")

    def test_sign_from_flags(self, capsys):
        code, signed = run(
            capsys, "sign", "--type", "2", "--to", TX_PARAMS["to"], "--value", "1", "--nonce", "3",
            "--gas-limit", "21000", "--max-fee-per-gas", "0x2", "--max-priority-fee-per-gas", "1",
            "--private-key", ALICE_HEX,
        )
        assert code == 0
        _, decoded = run(capsys, "decode", signed["raw"])
        assert decoded["type"] == "0x2"
        assert decoded["nonce"] == "0x3"
        assert decoded["maxFeePerGas"] == "0x2"

    def test_flags_override_json(self, capsys):
        code, signed = run(
            capsys, "sign", "--tx", json.dumps(TX_PARAMS), "--nonce", "7", "--private-key", ALICE_HEX,
        )
        assert code == 0
        _, decoded = run(capsys, "decode", signed["raw"])
        assert decoded["nonce"] == "0x7"
        assert decoded["gasPrice"] == "0x1"

    def test_sign_on_network(self, capsys):
        code, signed = run(
            capsys, "--network", "sepolia", "sign", "--tx", json.dumps(TX_PARAMS), "--private-key", ALICE_HEX,
        )
        assert code == 0
        _, decoded = run(capsys, "decode", signed["raw"])
        assert decoded["chainId"] == hex(11155111)

    def test_verify(self, capsys):
        code, result = run(capsys, "verify", EIP155_HEX, "--chain-id", "1")
        assert code == 0
        assert "from" in result

    def test_hash(self, capsys):
        code, result = run(capsys, "hash", EIP155_HEX)
        assert code == 0
        assert result["signingHash"] == "0x" + EIP155_SIGNING_HASH.hex()


class TestErrors:
    def test_missing_key(self, capsys):
        code, result = run(capsys, "address")
        assert code == 1
        assert result is None

    def test_missing_params(self, capsys):
        code, _ = run(capsys, "sign", "--private-key", ALICE_HEX)
        assert code == 1

    def test_bad_json(self, capsys):
        code, _ = run(capsys, "sign", "--tx", "{not json", "--private-key", ALICE_HEX)
        assert code == 1

    def test_missing_file(self, capsys, tmp_path):
        code, _ = run(capsys, "sign", "--tx-file", str(tmp_path / "nope.json"), "--private-key", ALICE_HEX)
        assert code == 1

    def test_unknown_type(self, capsys):
        code, _ = run(capsys, "decode", "0x03c0")
        assert code == 1

    def test_chain_mismatch(self, capsys):
        code, _ = run(capsys, "verify", EIP155_HEX, "--chain-id", "5")
        assert code == 1

    def test_unknown_network(self, capsys):
        code, _ = run(capsys, "--network", "nowhere", "sign", "--tx", json.dumps(TX_PARAMS), "--private-key", ALICE_HEX)
        assert code == 1
