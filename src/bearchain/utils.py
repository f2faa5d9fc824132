"""
Hex codec for anvil/forge wire values.

Every integer and byte blob in the node's JSON documents is a `0x`-prefixed
hex string. All record (de)serialization goes through these helpers so
casing and prefix handling stay consistent.
"""

from __future__ import annotations

import re
from typing import Any

from eth_hash.auto import keccak

from .errors import DecodeError, EncodeError

HEX_PREFIX = "0x"
UINT64_MAX = 2**64 - 1

_HEX_DIGITS = re.compile(r"[0-9a-f]*")
_ADDRESS = re.compile(r"0[xX][0-9a-fA-F]{40}")


def _strip_prefix(value: Any) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"expected hex string, got {type(value).__name__}")
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    digits = value.lower()
    if not _HEX_DIGITS.fullmatch(digits):
        raise DecodeError(f"invalid hex string: {value!r}")
    return digits


def bytes_to_hex(data: bytes) -> str:
    return HEX_PREFIX + bytes(data).hex()


def hex_to_bytes(value: str) -> bytes:
    digits = _strip_prefix(value)
    if len(digits) % 2:
        raise DecodeError(f"odd length hex string: {value!r}")
    return bytes.fromhex(digits)


def uint_to_hex(n: int) -> str:
    if isinstance(n, bool) or not isinstance(n, int):
        raise EncodeError(f"expected unsigned integer, got {type(n).__name__}")
    if n < 0 or n > UINT64_MAX:
        raise EncodeError(f"value out of uint64 range: {n}")
    return f"{HEX_PREFIX}{n:x}"


def hex_to_uint(value: str) -> int:
    digits = _strip_prefix(value)
    if not digits:
        raise DecodeError(f"empty hex number: {value!r}")
    n = int(digits, 16)
    if n > UINT64_MAX:
        raise DecodeError(f"value out of uint64 range: {value!r}")
    return n


def is_hex_address(value: Any) -> bool:
    return isinstance(value, str) and _ADDRESS.fullmatch(value) is not None


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    if not is_hex_address(address):
        raise ValueError(f"invalid address: {address!r}")
    addr = address[2:].lower()
    addr_hash = keccak(addr.encode("utf-8")).hex()
    result = HEX_PREFIX
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result
