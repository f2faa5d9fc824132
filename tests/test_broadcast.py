"""Tests for broadcast artifacts and their path conventions."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bearchain.errors import DecodeError, NotFoundError
from bearchain.foundry.broadcast import (
    Broadcast,
    broadcast_path,
    script_name,
    script_path,
)

BEARCOIN_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
TX_HASH = "0x2f1e8c3b7a6d5e4f30c1b2a3948576e6d7c8b9a0f1e2d3c4b5a6978877665544"


def _create(sample, name: str, address: str) -> dict:
    tx = sample("transaction.json")
    tx["contractName"] = name
    tx["contractAddress"] = address
    return tx


class TestPaths:
    def test_script_name(self) -> None:
        assert script_name("HelloWorld") == "HelloWorld.s.sol"

    def test_script_path(self) -> None:
        assert script_path("contracts/scripts", "HelloWorld") == (
            "contracts/scripts/HelloWorld.s.sol:HelloWorldScript"
        )

    def test_broadcast_path(self) -> None:
        path = broadcast_path(Path("contracts/broadcast"), "BearCoin", 31337)
        assert path == Path("contracts/broadcast/BearCoin.s.sol/31337/run-latest.json")


class TestBroadcastDecoding:
    def test_decode_sample(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        assert broadcast.chain == 31337
        assert broadcast.timestamp == 1769012000
        assert broadcast.commit == "4e2f1a9"
        assert len(broadcast.transactions) == 1
        assert len(broadcast.receipts) == 1

    def test_roundtrip(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        assert json.loads(broadcast.to_json()) == json.loads(broadcast_json)

    def test_from_path(self, testdata: Path) -> None:
        broadcast = Broadcast.from_path(testdata / "broadcast.json")
        assert broadcast.chain == 31337

    def test_from_path_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            Broadcast.from_path(tmp_path / "run-latest.json")

    def test_null_collections(self) -> None:
        payload = {"transactions": None, "receipts": None, "timestamp": 0, "chain": 1, "commit": None}
        broadcast = Broadcast.from_dict(payload)
        assert broadcast.transactions == ()
        assert broadcast.receipts == ()
        assert broadcast.commit is None

    def test_timestamp_must_be_integer(self, sample) -> None:
        payload = sample("broadcast.json")
        payload["timestamp"] = "0x69"
        with pytest.raises(DecodeError) as exc_info:
            Broadcast.from_dict(payload)
        assert exc_info.value.record == "broadcast"
        assert exc_info.value.field == "timestamp"

    def test_bad_receipt_reports_field(self, sample) -> None:
        payload = sample("broadcast.json")
        payload["receipts"][0]["logs"][0]["data"] = "0xabc"
        with pytest.raises(DecodeError) as exc_info:
            Broadcast.from_dict(payload)
        assert exc_info.value.field == "receipts"
        assert "receipt: decoding logs" in str(exc_info.value)


class TestContractLookup:
    def test_find_contract_address(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        assert broadcast.find_contract_address("BearCoin") == BEARCOIN_ADDRESS

    def test_find_is_case_sensitive(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        with pytest.raises(NotFoundError) as exc_info:
            broadcast.find_contract_address("bearcoin")
        assert exc_info.value.name == "bearcoin"
        assert "contract not found: bearcoin" in str(exc_info.value)

    def test_find_in_empty_broadcast(self) -> None:
        broadcast = Broadcast(transactions=(), receipts=(), timestamp=0, chain=31337, commit=None)
        with pytest.raises(NotFoundError):
            broadcast.find_contract_address("BearCoin")

    def test_first_match_wins(self, sample) -> None:
        payload = sample("broadcast.json")
        payload["transactions"] = [
            _create(sample, "A", "0x1111111111111111111111111111111111111111"),
            _create(sample, "B", "0x2222222222222222222222222222222222222222"),
            _create(sample, "A", "0x3333333333333333333333333333333333333333"),
        ]
        broadcast = Broadcast.from_dict(payload)
        assert broadcast.find_contract_address("A") == "0x1111111111111111111111111111111111111111"
        assert broadcast.find_contract_address("B") == "0x2222222222222222222222222222222222222222"
        assert broadcast.contract_addresses() == {
            "A": "0x1111111111111111111111111111111111111111",
            "B": "0x2222222222222222222222222222222222222222",
        }

    def test_contract_addresses_skips_calls(self, sample) -> None:
        payload = sample("broadcast.json")
        call = sample("transaction.json")
        call["transactionType"] = "CALL"
        call["contractName"] = None
        call["contractAddress"] = None
        payload["transactions"].append(call)
        broadcast = Broadcast.from_dict(payload)
        assert broadcast.contract_addresses() == {"BearCoin": BEARCOIN_ADDRESS}


class TestReceiptLookup:
    def test_receipt_for_hex(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        receipt = broadcast.receipt_for(TX_HASH)
        assert receipt.contract_address == BEARCOIN_ADDRESS

    def test_receipt_for_bytes(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        assert broadcast.receipt_for(bytes.fromhex(TX_HASH[2:])).succeeded

    def test_receipt_not_found(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        with pytest.raises(NotFoundError, match="receipt not found"):
            broadcast.receipt_for("0x" + "00" * 32)

    def test_receipt_malformed_hash(self, broadcast_json: bytes) -> None:
        broadcast = Broadcast.from_json(broadcast_json)
        with pytest.raises(NotFoundError):
            broadcast.receipt_for("0xabc")
