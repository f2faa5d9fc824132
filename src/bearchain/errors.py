from __future__ import annotations

from pathlib import Path
from typing import Any, Optional


class BearchainError(RuntimeError):
    exit_code: int = 1


class DecodeError(BearchainError, ValueError):
    """A wire value (hex string, JSON document or record field) could not be decoded."""

    exit_code = 2

    def __init__(self, message: str, record: Optional[str] = None, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.record = record
        self.field = field


class EncodeError(BearchainError, ValueError):
    """An in-memory value cannot be represented on the wire.

    Records are only ever built from decoded artifacts, so this signals a
    broken invariant rather than bad input.
    """

    exit_code = 2

    def __init__(self, message: str, record: Optional[str] = None, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.record = record
        self.field = field


class NotFoundError(BearchainError, LookupError):
    exit_code = 3

    def __init__(self, name: str, kind: str = "contract") -> None:
        super().__init__(f"{kind} not found: {name}")
        self.name = name


class AccountError(BearchainError, ValueError):
    exit_code = 4


class HarnessError(BearchainError):
    """The chain node process could not be started or stopped."""

    exit_code = 5


class ReadinessError(HarnessError):
    exit_code = 6

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class DeployError(HarnessError):
    exit_code = 7


class DeployToolError(DeployError):
    """The deployment tool itself failed (non-zero exit, missing binary, timeout)."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None) -> None:
        super().__init__(f"{message}: {output}" if output else message)
        self.output = output
        self.returncode = returncode


class ArtifactError(DeployError):
    """The deployment tool succeeded but its broadcast artifact is unusable."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class RpcError(BearchainError):
    exit_code = 8

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class TransactionRevertedError(RpcError):
    def __init__(self, message: str, receipt: Any = None) -> None:
        super().__init__(message)
        self.receipt = receipt
