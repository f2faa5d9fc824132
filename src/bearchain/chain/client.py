"""
Chain client for integration scenarios.

Wraps the node URL handed out by the harness with the operations tests
need: contract calls, signed contract transactions and event
subscriptions. Records returned here are the same `Receipt`/`Log` types
used for forge broadcast artifacts.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

import httpx

from ..errors import DecodeError, RpcError, TransactionRevertedError
from ..foundry.account import Account
from ..foundry.records import Log, Receipt
from ..utils import to_checksum_address
from .abi import decode_event, decode_result, encode_call, event_topic
from .rpc import DEFAULT_TIMEOUT, rpc_call

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.1


def _quantity(value: Union[int, str]) -> str:
    return hex(value) if isinstance(value, int) else value


def _int(result: Any, method: str) -> int:
    try:
        return int(result, 16)
    except (TypeError, ValueError) as exc:
        raise RpcError(f"{method}: expected hex quantity, got {result!r}") from exc


def _receipt(payload: Any) -> Receipt:
    try:
        return Receipt.from_dict(payload)
    except DecodeError as exc:
        raise RpcError(f"eth_getTransactionReceipt: malformed receipt: {exc}") from exc


def _logs(payload: Any, method: str) -> list[Log]:
    if not isinstance(payload, list):
        raise RpcError(f"{method}: expected log array, got {type(payload).__name__}")
    try:
        return [Log.from_dict(item) for item in payload]
    except DecodeError as exc:
        raise RpcError(f"{method}: malformed log: {exc}") from exc


class ChainClient:
    def __init__(
        self,
        url: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "ChainClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def rpc(self, method: str, params: list) -> Any:
        return rpc_call(method, params, self.url, client=self._http, timeout=self.timeout)

    # ============ Chain state ============

    def chain_id(self) -> int:
        return _int(self.rpc("eth_chainId", []), "eth_chainId")

    def block_number(self) -> int:
        return _int(self.rpc("eth_blockNumber", []), "eth_blockNumber")

    def balance(self, address: str) -> int:
        """Balance in wei."""
        return _int(self.rpc("eth_getBalance", [address, "latest"]), "eth_getBalance")

    def nonce(self, address: str) -> int:
        return _int(self.rpc("eth_getTransactionCount", [address, "pending"]), "eth_getTransactionCount")

    def gas_price(self) -> int:
        return _int(self.rpc("eth_gasPrice", []), "eth_gasPrice")

    # ============ Contracts ============

    def call(
        self,
        contract_address: str,
        abi: list,
        function_name: str,
        args: Optional[list] = None,
        sender: Optional[str] = None,
    ) -> Any:
        """
        Read from a contract (eth_call).

        Returns:
            Decoded return value(s)
        """
        request: dict[str, Any] = {
            "to": contract_address,
            "data": encode_call(abi, function_name, args or []),
        }
        if sender is not None:
            request["from"] = sender

        result = self.rpc("eth_call", [request, "latest"])
        if result is None or result == "0x":
            return None
        return decode_result(abi, function_name, result)

    def transact(
        self,
        contract_address: str,
        abi: list,
        function_name: str,
        args: Optional[list],
        signer: Account,
        value: int = 0,
        gas_limit: Optional[int] = None,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ) -> Receipt:
        """
        Build, sign and send a contract transaction, then wait for it.

        Gas is estimated by the node unless `gas_limit` is given, so a call
        that would revert fails at estimation with an RpcError.

        Raises:
            RpcError: If estimation or submission is rejected
            TransactionRevertedError: If the mined receipt reports failure
        """
        to = to_checksum_address(contract_address)
        data = encode_call(abi, function_name, args or [])

        if gas_limit is None:
            estimate = self.rpc(
                "eth_estimateGas",
                [{"from": signer.address, "to": to, "data": data, "value": hex(value)}],
            )
            gas_limit = _int(estimate, "eth_estimateGas")

        tx = {
            "to": to,
            "data": data,
            "value": value,
            "nonce": self.nonce(signer.address),
            "gas": gas_limit,
            "gasPrice": self.gas_price(),
            "chainId": self.chain_id(),
        }
        tx_hash = self.rpc("eth_sendRawTransaction", [signer.sign_transaction(tx)])
        logger.debug("sent %s.%s from %s: %s", contract_address, function_name, signer.address, tx_hash)

        receipt = self.wait_for_receipt(tx_hash, timeout=timeout)
        if not receipt.succeeded:
            raise TransactionRevertedError(
                f"{function_name}: transaction {tx_hash} reverted", receipt=receipt
            )
        return receipt

    def wait_for_receipt(self, tx_hash: str, timeout: float = DEFAULT_RECEIPT_TIMEOUT) -> Receipt:
        """
        Wait for a transaction receipt.

        Raises:
            TimeoutError: If receipt not found within timeout
        """
        deadline = time.monotonic() + timeout
        while True:
            payload = self.rpc("eth_getTransactionReceipt", [tx_hash])
            if payload is not None:
                return _receipt(payload)
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")
            time.sleep(self.poll_interval)

    # ============ Logs ============

    def get_logs(
        self,
        address: Optional[str] = None,
        topics: Optional[list] = None,
        from_block: Union[int, str] = 0,
        to_block: Union[int, str] = "latest",
    ) -> tuple[Log, ...]:
        params: dict[str, Any] = {"fromBlock": _quantity(from_block), "toBlock": _quantity(to_block)}
        if address is not None:
            params["address"] = address
        if topics is not None:
            params["topics"] = topics
        return tuple(_logs(self.rpc("eth_getLogs", [params]), "eth_getLogs"))

    def subscribe(
        self,
        contract_address: str,
        abi: list,
        event_name: str,
        from_block: Union[int, str] = "latest",
    ) -> "LogSubscription":
        return LogSubscription(self, contract_address, abi, event_name, from_block=from_block)


@dataclass(frozen=True)
class Event:
    name: str
    args: dict[str, Any]
    log: Log


class LogSubscription:
    """
    Filter-backed subscription to one contract event.

    The node filter is installed on construction. `events()` lazily yields
    decoded events as they are mined; `unsubscribe()` uninstalls the filter
    and ends iteration. `resubscribe()` installs a fresh filter from the
    start block recorded at construction, so iteration replays from there.
    """

    def __init__(
        self,
        client: ChainClient,
        contract_address: str,
        abi: list,
        event_name: str,
        from_block: Union[int, str] = "latest",
    ) -> None:
        self._client = client
        self._address = contract_address
        self._abi = abi
        self._event_name = event_name
        self._topic = event_topic(abi, event_name)
        if from_block == "latest":
            from_block = client.block_number() + 1
        self._from_block = from_block
        self._filter_id: Optional[str] = None
        self._backlog = True
        self._seen: set[tuple[int, bytes, int]] = set()
        self._last_block = 0
        self._install()

    @property
    def active(self) -> bool:
        return self._filter_id is not None

    def _install(self) -> None:
        params = {
            "address": self._address,
            "topics": [self._topic],
            "fromBlock": _quantity(self._from_block),
        }
        self._filter_id = self._client.rpc("eth_newFilter", [params])
        self._backlog = True
        self._seen = set()
        self._last_block = 0
        logger.debug("installed filter %s for %s", self._filter_id, self._event_name)

    def poll(self) -> list[Event]:
        """Events mined since the previous poll. Empty once unsubscribed."""
        if self._filter_id is None:
            return []
        method = "eth_getFilterLogs" if self._backlog else "eth_getFilterChanges"
        logs = _logs(self._client.rpc(method, [self._filter_id]), method)
        self._backlog = False

        events = []
        for log in logs:
            key = (log.block_number, log.transaction_hash, log.log_index)
            if log.removed or log.block_number < self._last_block or key in self._seen:
                continue
            self._seen.add(key)
            args = decode_event(self._abi, self._event_name, log)
            if args is not None:
                events.append(Event(self._event_name, args, log))

        # only the newest block can still be re-delivered
        if logs:
            self._last_block = max(self._last_block, max(log.block_number for log in logs))
            self._seen = {key for key in self._seen if key[0] >= self._last_block}
        return events

    def events(self, timeout: Optional[float] = None) -> Iterator[Event]:
        """Yield events until unsubscribed or `timeout` seconds pass."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.active:
            yield from self.poll()
            if deadline is not None and time.monotonic() >= deadline:
                return
            time.sleep(self._client.poll_interval)

    def __iter__(self) -> Iterator[Event]:
        return self.events()

    def unsubscribe(self) -> None:
        """Uninstall the node filter. Safe to call more than once."""
        filter_id, self._filter_id = self._filter_id, None
        if filter_id is not None:
            self._client.rpc("eth_uninstallFilter", [filter_id])
            logger.debug("uninstalled filter %s", filter_id)

    def resubscribe(self) -> None:
        self.unsubscribe()
        self._install()

    def __enter__(self) -> "LogSubscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()

