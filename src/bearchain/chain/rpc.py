"""
Minimal JSON-RPC transport for a local node.

Uses httpx for HTTP. Only the handful of calls the harness and integration
scenarios need are wrapped; everything else goes through `rpc_call`.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional

import httpx

from ..errors import RpcError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_ids = itertools.count(1)


def rpc_call(
    method: str,
    params: list,
    rpc_url: str,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """
    Make a JSON-RPC call.

    Args:
        method: RPC method name (e.g., "eth_call")
        params: RPC parameters
        rpc_url: RPC endpoint URL
        client: Reusable httpx client; a short-lived one is used otherwise
        timeout: Request timeout in seconds

    Returns:
        Result field from the RPC response

    Raises:
        RpcError: If the transport fails or the node returns an error object
    """
    payload = {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": next(_ids),
    }
    logger.debug("rpc %s -> %s", method, rpc_url)

    try:
        if client is None:
            with httpx.Client(timeout=timeout) as owned:
                response = owned.post(rpc_url, json=payload)
        else:
            response = client.post(rpc_url, json=payload, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as exc:
        raise RpcError(f"{method}: transport error: {exc}") from exc
    except ValueError as exc:
        raise RpcError(f"{method}: invalid JSON response: {exc}") from exc

    if not isinstance(data, dict):
        raise RpcError(f"{method}: unexpected response: {data!r}")

    error = data.get("error")
    if error is not None:
        if isinstance(error, dict):
            raise RpcError(
                f"{method}: {error.get('message', 'unknown error')}",
                code=error.get("code"),
                data=error.get("data"),
            )
        raise RpcError(f"{method}: {error}")

    return data.get("result")


def get_chain_id(rpc_url: str, client: Optional[httpx.Client] = None, timeout: float = DEFAULT_TIMEOUT) -> int:
    """Return the chain ID reported by the node."""
    result = rpc_call("eth_chainId", [], rpc_url, client=client, timeout=timeout)
    try:
        return int(result, 16)
    except (TypeError, ValueError) as exc:
        raise RpcError(f"eth_chainId: expected hex quantity, got {result!r}") from exc
