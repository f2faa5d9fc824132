from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

TESTDATA = Path(__file__).resolve().parent / "testdata"


@pytest.fixture()
def testdata() -> Path:
    return TESTDATA


@pytest.fixture()
def sample() -> Callable[[str], dict[str, Any]]:
    """Load a fresh, mutable copy of a testdata document."""

    def _load(name: str) -> dict[str, Any]:
        return json.loads((TESTDATA / name).read_bytes())

    return _load


@pytest.fixture()
def log_json() -> bytes:
    return (TESTDATA / "log.json").read_bytes()


@pytest.fixture()
def receipt_json() -> bytes:
    return (TESTDATA / "receipt.json").read_bytes()


@pytest.fixture()
def inner_json() -> bytes:
    return (TESTDATA / "inner.json").read_bytes()


@pytest.fixture()
def transaction_json() -> bytes:
    return (TESTDATA / "transaction.json").read_bytes()


@pytest.fixture()
def broadcast_json() -> bytes:
    return (TESTDATA / "broadcast.json").read_bytes()
