"""
Record types for forge/anvil JSON documents.

Each record decodes from a wire-shaped dict (integers and byte blobs as
`0x`-hex strings) into native values and encodes back losslessly. Plain
fields such as addresses, names and flags pass through unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Optional, TypeVar, Union

from ..errors import DecodeError, EncodeError
from ..utils import bytes_to_hex, hex_to_bytes, hex_to_uint, is_hex_address, uint_to_hex

T = TypeVar("T")
R = TypeVar("R", bound="JsonRecord")

_MISSING = object()


# ============ Field helpers ============


def load_object(data: Union[bytes, str], record: str) -> dict[str, Any]:
    """Parse a JSON document that must be an object."""
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"{record}: invalid JSON: {exc}", record=record) from exc
    return expect_object(payload, record)


def expect_object(payload: Any, record: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise DecodeError(
            f"{record}: expected JSON object, got {type(payload).__name__}", record=record
        )
    return payload


def decode_field(
    payload: dict[str, Any],
    record: str,
    field: str,
    convert: Callable[[Any], T],
    default: Any = _MISSING,
) -> T:
    value = payload.get(field, default)
    if value is _MISSING:
        raise DecodeError(f"{record}: missing field {field!r}", record=record, field=field)
    try:
        return convert(value)
    except DecodeError as exc:
        raise DecodeError(f"{record}: decoding {field}: {exc}", record=record, field=field) from exc


def encode_field(record: str, field: str, convert: Callable[[Any], str], value: Any) -> str:
    try:
        return convert(value)
    except EncodeError as exc:
        raise EncodeError(f"{record}: encoding {field}: {exc}", record=record, field=field) from exc


def address(value: Any) -> str:
    if not is_hex_address(value):
        raise DecodeError(f"invalid address: {value!r}")
    return value


def optional_address(value: Any) -> Optional[str]:
    return None if value is None else address(value)


def text(value: Any) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"expected string, got {type(value).__name__}")
    return value


def optional_text(value: Any) -> Optional[str]:
    return None if value is None else text(value)


def optional_uint(value: Any) -> Optional[int]:
    return None if value is None else hex_to_uint(value)


def flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise DecodeError(f"expected boolean, got {type(value).__name__}")
    return value


def integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"expected unsigned integer, got {value!r}")
    return value


def sequence_of(convert: Callable[[Any], T]) -> Callable[[Any], tuple[T, ...]]:
    """Decode a JSON array element-wise. `null` is treated as an empty array."""

    def _convert(value: Any) -> tuple[T, ...]:
        if value is None:
            return ()
        if not isinstance(value, list):
            raise DecodeError(f"expected array, got {type(value).__name__}")
        items = []
        for index, item in enumerate(value):
            try:
                items.append(convert(item))
            except DecodeError as exc:
                raise DecodeError(f"[{index}]: {exc}") from exc
        return tuple(items)

    return _convert


class JsonRecord:
    """JSON bytes <-> record, on top of each record's from_dict/to_dict."""

    RECORD: ClassVar[str] = "record"

    @classmethod
    def from_dict(cls: type[R], payload: dict[str, Any]) -> R:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_json(cls: type[R], data: Union[bytes, str]) -> R:
        return cls.from_dict(load_object(data, cls.RECORD))

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")


# ============ Log ============


@dataclass(frozen=True)
class Log(JsonRecord):
    """An event log emitted by a transaction."""

    RECORD: ClassVar[str] = "log"

    address: str
    topics: tuple[str, ...]
    data: bytes
    block_hash: bytes
    block_number: int
    block_timestamp: Optional[int]
    transaction_hash: bytes
    transaction_index: int
    log_index: int
    removed: bool

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Log":
        r = cls.RECORD
        payload = expect_object(payload, r)
        return cls(
            address=decode_field(payload, r, "address", address),
            topics=decode_field(payload, r, "topics", sequence_of(text), default=None),
            data=decode_field(payload, r, "data", hex_to_bytes),
            block_hash=decode_field(payload, r, "blockHash", hex_to_bytes),
            block_number=decode_field(payload, r, "blockNumber", hex_to_uint),
            block_timestamp=decode_field(payload, r, "blockTimestamp", optional_uint, default=None),
            transaction_hash=decode_field(payload, r, "transactionHash", hex_to_bytes),
            transaction_index=decode_field(payload, r, "transactionIndex", hex_to_uint),
            log_index=decode_field(payload, r, "logIndex", hex_to_uint),
            removed=decode_field(payload, r, "removed", flag),
        )

    def to_dict(self) -> dict[str, Any]:
        r = self.RECORD
        payload = {
            "address": self.address,
            "topics": list(self.topics),
            "data": encode_field(r, "data", bytes_to_hex, self.data),
            "blockHash": encode_field(r, "blockHash", bytes_to_hex, self.block_hash),
            "blockNumber": encode_field(r, "blockNumber", uint_to_hex, self.block_number),
            "transactionHash": encode_field(r, "transactionHash", bytes_to_hex, self.transaction_hash),
            "transactionIndex": encode_field(r, "transactionIndex", uint_to_hex, self.transaction_index),
            "logIndex": encode_field(r, "logIndex", uint_to_hex, self.log_index),
            "removed": self.removed,
        }
        # anvil omits blockTimestamp for logs of pending blocks
        if self.block_timestamp is not None:
            payload["blockTimestamp"] = encode_field(r, "blockTimestamp", uint_to_hex, self.block_timestamp)
        return payload


# ============ Transactions ============


@dataclass(frozen=True)
class InnerTransaction(JsonRecord):
    """The signed payload of a broadcast transaction."""

    RECORD: ClassVar[str] = "inner"

    from_: str
    gas: int
    value: int
    input: bytes
    nonce: int
    chain_id: int

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "InnerTransaction":
        r = cls.RECORD
        payload = expect_object(payload, r)
        return cls(
            from_=decode_field(payload, r, "from", address),
            gas=decode_field(payload, r, "gas", hex_to_uint),
            value=decode_field(payload, r, "value", hex_to_uint),
            input=decode_field(payload, r, "input", hex_to_bytes),
            nonce=decode_field(payload, r, "nonce", hex_to_uint),
            chain_id=decode_field(payload, r, "chainId", hex_to_uint),
        )

    def to_dict(self) -> dict[str, Any]:
        r = self.RECORD
        return {
            "from": self.from_,
            "gas": encode_field(r, "gas", uint_to_hex, self.gas),
            "value": encode_field(r, "value", uint_to_hex, self.value),
            "input": encode_field(r, "input", bytes_to_hex, self.input),
            "nonce": encode_field(r, "nonce", uint_to_hex, self.nonce),
            "chainId": encode_field(r, "chainId", uint_to_hex, self.chain_id),
        }


def _inner(value: Any) -> InnerTransaction:
    return InnerTransaction.from_dict(value)


@dataclass(frozen=True)
class Transaction(JsonRecord):
    """A transaction recorded by `forge script --broadcast`.

    `contract_name` and `contract_address` are only set when the
    transaction created a contract.
    """

    RECORD: ClassVar[str] = "transaction"

    hash: bytes
    transaction_type: str
    contract_name: Optional[str]
    contract_address: Optional[str]
    inner: InnerTransaction
    is_fixed_gas_limit: bool

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Transaction":
        r = cls.RECORD
        payload = expect_object(payload, r)
        return cls(
            hash=decode_field(payload, r, "hash", hex_to_bytes),
            transaction_type=decode_field(payload, r, "transactionType", text),
            contract_name=decode_field(payload, r, "contractName", optional_text, default=None),
            contract_address=decode_field(payload, r, "contractAddress", optional_address, default=None),
            inner=decode_field(payload, r, "transaction", _inner),
            is_fixed_gas_limit=decode_field(payload, r, "isFixedGasLimit", flag, default=False),
        )

    def to_dict(self) -> dict[str, Any]:
        try:
            inner = self.inner.to_dict()
        except EncodeError as exc:
            raise EncodeError(
                f"{self.RECORD}: encoding transaction: {exc}", record=self.RECORD, field="transaction"
            ) from exc
        return {
            "hash": encode_field(self.RECORD, "hash", bytes_to_hex, self.hash),
            "transactionType": self.transaction_type,
            "contractName": self.contract_name,
            "contractAddress": self.contract_address,
            "transaction": inner,
            "isFixedGasLimit": self.is_fixed_gas_limit,
        }


# ============ Receipt ============


def _log(value: Any) -> Log:
    return Log.from_dict(value)


@dataclass(frozen=True)
class Receipt(JsonRecord):
    """A transaction receipt as reported by anvil."""

    RECORD: ClassVar[str] = "receipt"

    status: int
    cumulative_gas_used: int
    logs: tuple[Log, ...]
    logs_bloom: bytes
    receipt_type: int
    transaction_hash: bytes
    transaction_index: int
    block_hash: bytes
    block_number: int
    gas_used: int
    effective_gas_price: int
    blob_gas_price: Optional[int]
    from_: Optional[str] = None
    to: Optional[str] = None
    contract_address: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Receipt":
        r = cls.RECORD
        payload = expect_object(payload, r)
        return cls(
            status=decode_field(payload, r, "status", hex_to_uint),
            cumulative_gas_used=decode_field(payload, r, "cumulativeGasUsed", hex_to_uint),
            logs=decode_field(payload, r, "logs", sequence_of(_log), default=None),
            logs_bloom=decode_field(payload, r, "logsBloom", hex_to_bytes),
            receipt_type=decode_field(payload, r, "type", hex_to_uint),
            transaction_hash=decode_field(payload, r, "transactionHash", hex_to_bytes),
            transaction_index=decode_field(payload, r, "transactionIndex", hex_to_uint),
            block_hash=decode_field(payload, r, "blockHash", hex_to_bytes),
            block_number=decode_field(payload, r, "blockNumber", hex_to_uint),
            gas_used=decode_field(payload, r, "gasUsed", hex_to_uint),
            effective_gas_price=decode_field(payload, r, "effectiveGasPrice", hex_to_uint),
            blob_gas_price=decode_field(payload, r, "blobGasPrice", optional_uint, default=None),
            from_=decode_field(payload, r, "from", optional_address, default=None),
            to=decode_field(payload, r, "to", optional_address, default=None),
            contract_address=decode_field(payload, r, "contractAddress", optional_address, default=None),
        )

    def to_dict(self) -> dict[str, Any]:
        r = self.RECORD
        logs = []
        for index, log in enumerate(self.logs):
            try:
                logs.append(log.to_dict())
            except EncodeError as exc:
                raise EncodeError(f"{r}: encoding logs[{index}]: {exc}", record=r, field="logs") from exc
        payload = {
            "status": encode_field(r, "status", uint_to_hex, self.status),
            "cumulativeGasUsed": encode_field(r, "cumulativeGasUsed", uint_to_hex, self.cumulative_gas_used),
            "logs": logs,
            "logsBloom": encode_field(r, "logsBloom", bytes_to_hex, self.logs_bloom),
            "type": encode_field(r, "type", uint_to_hex, self.receipt_type),
            "transactionHash": encode_field(r, "transactionHash", bytes_to_hex, self.transaction_hash),
            "transactionIndex": encode_field(r, "transactionIndex", uint_to_hex, self.transaction_index),
            "blockHash": encode_field(r, "blockHash", bytes_to_hex, self.block_hash),
            "blockNumber": encode_field(r, "blockNumber", uint_to_hex, self.block_number),
            "gasUsed": encode_field(r, "gasUsed", uint_to_hex, self.gas_used),
            "effectiveGasPrice": encode_field(r, "effectiveGasPrice", uint_to_hex, self.effective_gas_price),
            "from": self.from_,
            "to": self.to,
            "contractAddress": self.contract_address,
        }
        if self.blob_gas_price is not None:
            payload["blobGasPrice"] = encode_field(r, "blobGasPrice", uint_to_hex, self.blob_gas_price)
        return payload
