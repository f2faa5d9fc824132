"""
Harness configuration.

Values come from `BEARCHAIN_*` environment variables, optionally loaded
from a `.env` file, falling back to anvil/forge defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

DEFAULT_NODE_COMMAND = "anvil"
DEFAULT_DEPLOY_COMMAND = "forge"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8545
DEFAULT_CONTRACTS_DIR = Path("contracts")
DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_READY_TIMEOUT = 10.0
DEFAULT_DEPLOY_TIMEOUT = 300.0

ENV_PREFIX = "BEARCHAIN_"


@dataclass(frozen=True)
class HarnessConfig:
    node_command: str = DEFAULT_NODE_COMMAND
    deploy_command: str = DEFAULT_DEPLOY_COMMAND
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    contracts_dir: Path = DEFAULT_CONTRACTS_DIR
    broadcast_dir: Optional[Path] = None
    script_dir: Optional[Path] = None
    abi_dir: Optional[Path] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    ready_timeout: float = DEFAULT_READY_TIMEOUT
    deploy_timeout: float = DEFAULT_DEPLOY_TIMEOUT

    def __post_init__(self) -> None:
        contracts = Path(self.contracts_dir)
        object.__setattr__(self, "contracts_dir", contracts)
        object.__setattr__(self, "broadcast_dir", Path(self.broadcast_dir or contracts / "broadcast"))
        object.__setattr__(self, "script_dir", Path(self.script_dir or contracts / "scripts"))
        object.__setattr__(self, "abi_dir", Path(self.abi_dir or contracts / "out"))

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def with_port(self, port: int) -> "HarnessConfig":
        """Copy of this config listening on another port (for parallel nodes)."""
        return replace(self, port=port)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "HarnessConfig":
        """
        Build a config from the environment.

        Args:
            env_path: Optional .env file loaded before reading variables.
                      Variables already set in the environment win.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        if env_path is not None and Path(env_path).exists():
            load_dotenv(env_path, override=False)

        contracts_dir = Path(_env("CONTRACTS_DIR", str, str(DEFAULT_CONTRACTS_DIR)))
        broadcast_dir = _env("BROADCAST_DIR", Path, None)
        script_dir = _env("SCRIPT_DIR", Path, None)
        abi_dir = _env("ABI_DIR", Path, None)

        return cls(
            node_command=_env("ANVIL_COMMAND", str, DEFAULT_NODE_COMMAND),
            deploy_command=_env("FORGE_COMMAND", str, DEFAULT_DEPLOY_COMMAND),
            host=_env("HOST", str, DEFAULT_HOST),
            port=_env("PORT", int, DEFAULT_PORT),
            contracts_dir=contracts_dir,
            broadcast_dir=broadcast_dir,
            script_dir=script_dir,
            abi_dir=abi_dir,
            poll_interval=_env("POLL_INTERVAL", float, DEFAULT_POLL_INTERVAL),
            ready_timeout=_env("READY_TIMEOUT", float, DEFAULT_READY_TIMEOUT),
            deploy_timeout=_env("DEPLOY_TIMEOUT", float, DEFAULT_DEPLOY_TIMEOUT),
        )


def _env(name: str, parse: Callable[[str], T], default: T) -> T:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {ENV_PREFIX}{name}: {raw!r}") from exc
