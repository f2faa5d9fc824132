"""
End-to-end BearCoin scenarios against a real anvil node.

Requires `anvil` and `forge` on PATH and BEARCHAIN_CONTRACTS_DIR pointing
at a built Foundry project containing BearCoin and its deploy script.
"""

from __future__ import annotations

import os
import shutil
import socket
from typing import Iterator

import pytest

from bearchain.chain.abi import load_abi
from bearchain.chain.client import ChainClient
from bearchain.config import HarnessConfig
from bearchain.errors import DeployToolError, RpcError
from bearchain.foundry.account import Account
from bearchain.foundry.anvil import Anvil

pytestmark = pytest.mark.skipif(
    shutil.which("anvil") is None
    or shutil.which("forge") is None
    or not os.environ.get("BEARCHAIN_CONTRACTS_DIR"),
    reason="anvil/forge not installed or BEARCHAIN_CONTRACTS_DIR not set",
)

CONTRACT_NAME = "BearCoin"
DECIMALS = 18
TOTAL_SUPPLY = 1_000_000 * 10**DECIMALS


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def anvil() -> Iterator[Anvil]:
    config = HarnessConfig.from_env()
    with Anvil(config.with_port(_free_port())) as node:
        yield node


@pytest.fixture()
def client(anvil: Anvil) -> Iterator[ChainClient]:
    with anvil.client() as chain:
        yield chain


@pytest.fixture()
def abi(anvil: Anvil) -> list:
    return load_abi(CONTRACT_NAME, anvil.config.abi_dir)


@pytest.fixture()
def owner(anvil: Anvil) -> Account:
    return anvil.account(0)


@pytest.fixture()
def other(anvil: Anvil) -> Account:
    return anvil.account(1)


@pytest.fixture()
def token(anvil: Anvil, owner: Account) -> str:
    return anvil.deploy_contract(CONTRACT_NAME, owner)


class TestDeployment:
    def test_node_matches_genesis(self, anvil: Anvil, client: ChainClient, owner: Account) -> None:
        assert client.chain_id() == anvil.chain_id
        assert client.balance(owner.address) == owner.balance * 10**18

    def test_metadata(self, client: ChainClient, abi: list, token: str, owner: Account) -> None:
        assert client.call(token, abi, "name") == "BearCoin"
        assert client.call(token, abi, "symbol") == "BCN"
        assert client.call(token, abi, "totalSupply") == TOTAL_SUPPLY
        assert client.call(token, abi, "owner") == owner.address

    def test_broadcast_artifact(self, anvil: Anvil, token: str) -> None:
        broadcast = anvil.read_broadcast(CONTRACT_NAME)
        assert broadcast.chain == anvil.chain_id
        assert broadcast.find_contract_address(CONTRACT_NAME) == token
        assert all(receipt.succeeded for receipt in broadcast.receipts)

    def test_unknown_contract(self, anvil: Anvil, owner: Account) -> None:
        with pytest.raises(DeployToolError):
            anvil.deploy_contract("NoSuchContract", owner)


class TestBalances:
    def test_owner_holds_supply(self, client: ChainClient, abi: list, token: str, owner: Account) -> None:
        assert client.call(token, abi, "balanceOf", [owner.address]) == TOTAL_SUPPLY

    def test_other_holds_nothing(self, client: ChainClient, abi: list, token: str, other: Account) -> None:
        assert client.call(token, abi, "balanceOf", [other.address]) == 0


class TestBurnAndMint:
    def test_owner_burn(self, client: ChainClient, abi: list, token: str, owner: Account) -> None:
        client.transact(token, abi, "burn", [100], owner)
        assert client.call(token, abi, "balanceOf", [owner.address]) == TOTAL_SUPPLY - 100

    def test_burn_more_than_supply(self, client: ChainClient, abi: list, token: str, owner: Account) -> None:
        with pytest.raises(RpcError):
            client.transact(token, abi, "burn", [TOTAL_SUPPLY + 1], owner)

    def test_burn_without_tokens(self, client: ChainClient, abi: list, token: str, other: Account) -> None:
        with pytest.raises(RpcError):
            client.transact(token, abi, "burn", [TOTAL_SUPPLY], other)

    def test_mint_to_other(
        self, client: ChainClient, abi: list, token: str, owner: Account, other: Account
    ) -> None:
        client.transact(token, abi, "burn", [100], owner)
        client.transact(token, abi, "mint", [other.address, 100], owner)
        assert client.call(token, abi, "balanceOf", [other.address]) == 100

        client.transact(token, abi, "burn", [100], other)
        assert client.call(token, abi, "balanceOf", [other.address]) == 0

    def test_only_owner_mints(self, client: ChainClient, abi: list, token: str, other: Account) -> None:
        with pytest.raises(RpcError):
            client.transact(token, abi, "mint", [other.address, 100], other)


class TestOwnership:
    def test_transfer_ownership(
        self, client: ChainClient, abi: list, token: str, owner: Account, other: Account
    ) -> None:
        client.transact(token, abi, "transferOwnership", [other.address], owner)
        assert client.call(token, abi, "owner") == other.address

    def test_other_cannot_take_ownership(
        self, client: ChainClient, abi: list, token: str, other: Account
    ) -> None:
        with pytest.raises(RpcError):
            client.transact(token, abi, "transferOwnership", [other.address], other)


class TestEvents:
    def test_transfer_subscription(
        self, client: ChainClient, abi: list, token: str, owner: Account, other: Account
    ) -> None:
        with client.subscribe(token, abi, "Transfer") as subscription:
            client.transact(token, abi, "transfer", [other.address, 5], owner)
            events = list(subscription.events(timeout=2))

        assert len(events) == 1
        assert events[0].args == {"from": owner.address, "to": other.address, "value": 5}
        assert not subscription.active

    def test_resubscribe_replays(
        self, client: ChainClient, abi: list, token: str, owner: Account, other: Account
    ) -> None:
        subscription = client.subscribe(token, abi, "Transfer")
        client.transact(token, abi, "transfer", [other.address, 1], owner)
        assert len(list(subscription.events(timeout=1))) == 1

        subscription.resubscribe()
        assert len(list(subscription.events(timeout=1))) == 1
        subscription.unsubscribe()
