"""
ABI helpers - loads contract ABIs from Foundry build output.

forge writes one artifact per contract to `out/<Name>.sol/<Name>.json`.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from eth_abi import decode, encode
from eth_hash.auto import keccak

from ..foundry.records import Log
from ..utils import HEX_PREFIX, hex_to_bytes, to_checksum_address


@lru_cache(maxsize=16)
def _load_artifact(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_abi(contract_name: str, out_dir: Path) -> list[dict[str, Any]]:
    """
    Load ABI for a contract from Foundry output.

    Args:
        contract_name: Contract name (e.g., "BearCoin", "HelloWorld")
        out_dir: forge `out/` directory

    Returns:
        ABI as a list of dicts

    Raises:
        FileNotFoundError: If the artifact is missing
    """
    abi_path = (Path(out_dir) / f"{contract_name}.sol" / f"{contract_name}.json").resolve()
    if not abi_path.exists():
        raise FileNotFoundError(
            f"ABI not found: {abi_path}. Run 'forge build' in the contracts/ directory."
        )
    return _load_artifact(abi_path)["abi"]


def find_entry(abi: list, entry_type: str, name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == entry_type and entry.get("name") == name:
            return entry
    raise ValueError(f"{entry_type.capitalize()} {name} not found in ABI")


def _signature(entry: dict[str, Any]) -> str:
    input_types = [inp["type"] for inp in entry.get("inputs", [])]
    return f"{entry['name']}({','.join(input_types)})"


def encode_call(abi: list, function_name: str, args: list) -> str:
    """ABI-encode a function call to 0x-prefixed hex calldata."""
    func = find_entry(abi, "function", function_name)
    input_types = [inp["type"] for inp in func.get("inputs", [])]

    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    selector = keccak(_signature(func).encode("utf-8"))[:4]
    encoded_args = encode(input_types, args) if args else b""
    return HEX_PREFIX + selector.hex() + encoded_args.hex()


def decode_result(abi: list, function_name: str, data: str) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        None for functions without outputs, the single value for one
        output, otherwise a tuple
    """
    func = find_entry(abi, "function", function_name)
    output_types = [out["type"] for out in func.get("outputs", [])]
    if not output_types:
        return None

    decoded = decode(output_types, hex_to_bytes(data))
    decoded = tuple(_normalize(t, v) for t, v in zip(output_types, decoded))
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def event_topic(abi: list, event_name: str) -> str:
    """topic0 of an event: keccak256 of its canonical signature."""
    event = find_entry(abi, "event", event_name)
    return HEX_PREFIX + keccak(_signature(event).encode("utf-8")).hex()


def decode_event(abi: list, event_name: str, log: Log) -> Optional[dict[str, Any]]:
    """
    Decode the arguments of `event_name` from a log.

    Returns:
        Argument name -> value, or None when the log is a different event
    """
    event = find_entry(abi, "event", event_name)
    if not log.topics or log.topics[0].lower() != event_topic(abi, event_name):
        return None

    indexed = [inp for inp in event["inputs"] if inp.get("indexed")]
    plain = [inp for inp in event["inputs"] if not inp.get("indexed")]

    args: dict[str, Any] = {}
    for inp, topic in zip(indexed, log.topics[1:]):
        (value,) = decode([inp["type"]], hex_to_bytes(topic))
        args[inp["name"]] = _normalize(inp["type"], value)

    values = decode([inp["type"] for inp in plain], log.data) if plain else ()
    for inp, value in zip(plain, values):
        args[inp["name"]] = _normalize(inp["type"], value)
    return args


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    return value
