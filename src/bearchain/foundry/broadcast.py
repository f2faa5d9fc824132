"""
Broadcast artifacts written by `forge script --broadcast`.

forge records every transaction and receipt of a deployment run in
`<broadcast_dir>/<Name>.s.sol/<chain_id>/run-latest.json`. The deployed
contract's address is only known once this file exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Optional, Union

from ..errors import DecodeError, NotFoundError
from ..utils import bytes_to_hex, hex_to_bytes
from .records import (
    JsonRecord,
    Receipt,
    Transaction,
    decode_field,
    expect_object,
    integer,
    optional_text,
    sequence_of,
)

RUN_LATEST = "run-latest.json"


def script_name(contract_name: str) -> str:
    """`HelloWorld` -> `HelloWorld.s.sol`"""
    return f"{contract_name}.s.sol"


def script_path(script_dir: Union[str, Path], contract_name: str) -> str:
    """Script locator for `forge script`: `<script_dir>/<Name>.s.sol:<Name>Script`."""
    return f"{Path(script_dir).as_posix()}/{script_name(contract_name)}:{contract_name}Script"


def broadcast_path(broadcast_dir: Union[str, Path], contract_name: str, chain_id: int) -> Path:
    return Path(broadcast_dir) / script_name(contract_name) / str(chain_id) / RUN_LATEST


def _transaction(value: Any) -> Transaction:
    return Transaction.from_dict(value)


def _receipt(value: Any) -> Receipt:
    return Receipt.from_dict(value)


@dataclass(frozen=True)
class Broadcast(JsonRecord):
    RECORD: ClassVar[str] = "broadcast"

    transactions: tuple[Transaction, ...]
    receipts: tuple[Receipt, ...]
    timestamp: int
    chain: int
    commit: Optional[str]

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Broadcast":
        r = cls.RECORD
        payload = expect_object(payload, r)
        return cls(
            transactions=decode_field(payload, r, "transactions", sequence_of(_transaction), default=None),
            receipts=decode_field(payload, r, "receipts", sequence_of(_receipt), default=None),
            timestamp=decode_field(payload, r, "timestamp", integer),
            chain=decode_field(payload, r, "chain", integer),
            commit=decode_field(payload, r, "commit", optional_text, default=None),
        )

    @classmethod
    def from_path(cls, path: Path) -> "Broadcast":
        """Read and decode an artifact. I/O errors propagate as OSError."""
        return cls.from_json(Path(path).read_bytes())

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [tx.to_dict() for tx in self.transactions],
            "receipts": [receipt.to_dict() for receipt in self.receipts],
            "timestamp": self.timestamp,
            "chain": self.chain,
            "commit": self.commit,
        }

    def find_contract_address(self, name: str) -> Optional[str]:
        """
        Address of the first transaction that created contract `name`.

        Matching is exact and case-sensitive. Receipts carry no contract
        name, so only transactions are searched.

        Raises:
            NotFoundError: If no transaction created `name`
        """
        for tx in self.transactions:
            if tx.contract_name == name:
                return tx.contract_address
        raise NotFoundError(name)

    def contract_addresses(self) -> dict[str, str]:
        """Every contract created in this run, first creation wins."""
        found: dict[str, str] = {}
        for tx in self.transactions:
            if tx.contract_name and tx.contract_address and tx.contract_name not in found:
                found[tx.contract_name] = tx.contract_address
        return found

    def receipt_for(self, tx_hash: Union[bytes, str]) -> Receipt:
        if isinstance(tx_hash, str):
            try:
                tx_hash = hex_to_bytes(tx_hash)
            except DecodeError as exc:
                raise NotFoundError(tx_hash, kind="receipt") from exc
        for receipt in self.receipts:
            if receipt.transaction_hash == tx_hash:
                return receipt
        raise NotFoundError(bytes_to_hex(tx_hash), kind="receipt")
