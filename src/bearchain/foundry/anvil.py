"""
Anvil test harness.

Starts an ephemeral anvil node, deploys contracts with `forge script` and
recovers their addresses from the broadcast artifact forge writes.

Each test should own its harness. Parallel tests must give each harness
its own port (`HarnessConfig.with_port`).
"""

from __future__ import annotations

import enum
import logging
import subprocess
import tempfile
import time
from pathlib import Path
from typing import IO, Optional

from ..chain.client import ChainClient
from ..chain.rpc import get_chain_id
from ..config import DEFAULT_HOST, DEFAULT_PORT, HarnessConfig
from ..errors import (
    ArtifactError,
    DecodeError,
    DeployToolError,
    HarnessError,
    NotFoundError,
    ReadinessError,
    RpcError,
)
from .account import CHAIN_ID, Account, GenesisConfig
from .broadcast import Broadcast, broadcast_path, script_path

logger = logging.getLogger(__name__)

SCRIPT_COMMAND = "script"
BROADCAST_FLAG = "--broadcast"
PRIVATE_KEY_FLAG = "--private-key"
RPC_FLAG = "--rpc-url"

STOP_TIMEOUT = 5.0
MIN_REQUEST_TIMEOUT = 1.0


class AnvilState(enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class Anvil:
    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        genesis: Optional[GenesisConfig] = None,
    ) -> None:
        self._config = config or HarnessConfig()
        self._genesis = genesis or GenesisConfig.anvil_default()
        self._accounts = self._genesis.build_accounts()
        self._process: Optional[subprocess.Popen] = None
        self._log: Optional[IO[bytes]] = None
        self._state = AnvilState.STOPPED
        self._clients: list[ChainClient] = []

    # ============ Accessors ============

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._accounts

    def account(self, index: int) -> Account:
        return self._accounts[index]

    @property
    def base_fee(self) -> int:
        return self._genesis.base_fee

    @property
    def chain_id(self) -> int:
        return self._genesis.chain_id

    @property
    def gas_limit(self) -> int:
        return self._genesis.gas_limit

    @property
    def genesis_timestamp(self) -> int:
        return self._genesis.genesis_timestamp

    @property
    def genesis_number(self) -> int:
        return self._genesis.genesis_number

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def state(self) -> AnvilState:
        return self._state

    def client(self) -> ChainClient:
        """A client bound to this node. It is closed by `stop()`."""
        client = ChainClient(self.url)
        self._clients.append(client)
        return client

    # ============ Lifecycle ============

    def node_args(self) -> list[str]:
        """anvil command line. Flags are only passed when they differ from anvil's defaults."""
        args = [self._config.node_command]
        if self._config.host != DEFAULT_HOST:
            args += ["--host", self._config.host]
        if self._config.port != DEFAULT_PORT:
            args += ["--port", str(self._config.port)]
        if self._genesis.chain_id != CHAIN_ID:
            args += ["--chain-id", str(self._genesis.chain_id)]
        return args

    def start(self, silent: bool = True) -> None:
        """
        Launch anvil and wait until it answers JSON-RPC requests.

        Args:
            silent: Send node output to a private log file instead of the
                    caller's stdout/stderr.

        Raises:
            HarnessError: If already running or the process cannot be spawned
            ReadinessError: If the node is not reachable within `ready_timeout`
        """
        if self._state is not AnvilState.STOPPED:
            raise HarnessError(f"anvil: already {self._state.value}")

        args = self.node_args()
        self._log = tempfile.TemporaryFile() if silent else None
        self._state = AnvilState.STARTING
        logger.info("starting %s on %s", " ".join(args), self.url)
        try:
            self._process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=self._log,
                stderr=subprocess.STDOUT if silent else None,
            )
        except OSError as exc:
            self._cleanup()
            raise HarnessError(f"anvil: starting {args[0]}: {exc}") from exc

        try:
            self._wait_ready()
        except BaseException:
            self.stop()
            raise
        self._state = AnvilState.RUNNING
        logger.info("anvil ready on %s (pid %s)", self.url, self._process.pid)

    def _wait_ready(self) -> None:
        deadline = time.monotonic() + self._config.ready_timeout
        last_error: Optional[Exception] = None
        while True:
            time.sleep(self._config.poll_interval)

            returncode = self._process.poll()
            if returncode is not None:
                raise ReadinessError(
                    f"anvil: exited with code {returncode} before becoming ready", output=self.output()
                )

            try:
                chain_id = get_chain_id(self.url, timeout=self._request_timeout())
            except RpcError as exc:
                last_error = exc
            else:
                if chain_id != self.chain_id:
                    raise ReadinessError(
                        f"anvil: node reports chain id {chain_id}, expected {self.chain_id}",
                        output=self.output(),
                    )
                return

            if time.monotonic() >= deadline:
                raise ReadinessError(
                    f"anvil: not reachable at {self.url} within {self._config.ready_timeout}s: {last_error}",
                    output=self.output(),
                )

    def _request_timeout(self) -> float:
        return max(self._config.poll_interval * 4, MIN_REQUEST_TIMEOUT)

    def output(self) -> str:
        """Everything the node has written so far (silent mode only)."""
        if self._log is None or self._log.closed:
            return ""
        self._log.flush()
        self._log.seek(0)
        return self._log.read().decode("utf-8", errors="replace")

    def stop(self) -> None:
        """Kill the node if running. Safe to call when never started or already stopped."""
        process = self._process
        if process is not None and process.poll() is None:
            logger.info("stopping anvil (pid %s)", process.pid)
            process.kill()
            try:
                process.wait(timeout=STOP_TIMEOUT)
            except subprocess.TimeoutExpired as exc:
                raise HarnessError(f"anvil: pid {process.pid} did not exit after kill") from exc
        self._cleanup()

    def _cleanup(self) -> None:
        for client in self._clients:
            client.close()
        self._clients = []
        if self._log is not None:
            self._log.close()
        self._log = None
        self._process = None
        self._state = AnvilState.STOPPED

    def __enter__(self) -> "Anvil":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ============ Deployment ============

    def deploy_args(self, contract_name: str, owner: Account) -> list[str]:
        return [
            self._config.deploy_command,
            SCRIPT_COMMAND,
            script_path(self._config.script_dir.resolve(), contract_name),
            RPC_FLAG, self.url,
            PRIVATE_KEY_FLAG, owner.private_key_hex,
            BROADCAST_FLAG,
        ]

    def broadcast_path(self, contract_name: str) -> Path:
        return broadcast_path(self._config.broadcast_dir, contract_name, self.chain_id)

    def read_broadcast(self, contract_name: str) -> Broadcast:
        """
        Decode the latest broadcast artifact for a contract's script.

        Raises:
            ArtifactError: If the file is missing, unreadable or malformed
        """
        path = self.broadcast_path(contract_name)
        try:
            return Broadcast.from_path(path)
        except OSError as exc:
            raise ArtifactError(f"anvil: reading broadcast file {path}: {exc}", path=path) from exc
        except DecodeError as exc:
            raise ArtifactError(f"anvil: decoding broadcast file {path}: {exc}", path=path) from exc

    def deploy_contract(self, contract_name: str, owner: Account) -> str:
        """
        Deploy a contract via `forge script` and return its address.

        The command format is:
        forge script <script_path> --rpc-url <rpc_url> --private-key <private_key> --broadcast

        Example:
            forge script contracts/scripts/HelloWorld.s.sol:HelloWorldScript \\
                --rpc-url http://127.0.0.1:8545 \\
                --private-key 0xac09...ff80 \\
                --broadcast

        Raises:
            DeployToolError: If forge is missing, times out or exits non-zero
            ArtifactError: If the broadcast artifact is unusable
        """
        args = self.deploy_args(contract_name, owner)
        logger.info("deploying %s from %s", contract_name, owner.address)
        logger.debug("running %s", " ".join(args[:4]))
        try:
            result = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self._config.deploy_timeout,
                cwd=self._config.contracts_dir if self._config.contracts_dir.is_dir() else None,
            )
        except OSError as exc:
            raise DeployToolError(f"anvil: deploying {contract_name}: {exc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise DeployToolError(
                f"anvil: deploying {contract_name}: timed out after {self._config.deploy_timeout}s",
                output=_decode(exc.output),
            ) from exc

        output = _decode(result.stdout)
        if result.returncode != 0:
            raise DeployToolError(
                f"anvil: deploying {contract_name}: exit status {result.returncode}",
                output=output,
                returncode=result.returncode,
            )

        broadcast = self.read_broadcast(contract_name)
        path = self.broadcast_path(contract_name)
        try:
            address = broadcast.find_contract_address(contract_name)
        except NotFoundError as exc:
            raise ArtifactError(f"anvil: getting contract address from {path}: {exc}", path=path) from exc
        if address is None:
            raise ArtifactError(f"anvil: {contract_name} has no contract address in {path}", path=path)

        logger.info("deployed %s at %s", contract_name, address)
        return address


def _decode(output: Optional[bytes]) -> str:
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    return output.decode("utf-8", errors="replace")
