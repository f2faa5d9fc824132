"""Tests for genesis accounts."""

from __future__ import annotations

import pytest
from eth_account import Account as EthAccount

from bearchain.errors import AccountError
from bearchain.foundry.account import (
    CHAIN_ID,
    DEFAULT_ACCOUNTS,
    STARTING_BALANCE,
    Account,
    GenesisConfig,
)

FIRST_ADDRESS, FIRST_KEY = DEFAULT_ACCOUNTS[0]
SECOND_ADDRESS, SECOND_KEY = DEFAULT_ACCOUNTS[1]


class TestAccount:
    def test_construct(self) -> None:
        account = Account(FIRST_ADDRESS, FIRST_KEY)
        assert account.address == FIRST_ADDRESS
        assert account.private_key_hex == FIRST_KEY
        assert account.balance == STARTING_BALANCE
        assert account.private_key.address == FIRST_ADDRESS

    def test_lowercase_address_is_checksummed(self) -> None:
        account = Account(FIRST_ADDRESS.lower(), FIRST_KEY)
        assert account.address == FIRST_ADDRESS

    def test_key_without_prefix(self) -> None:
        account = Account(FIRST_ADDRESS, FIRST_KEY[2:])
        assert account.private_key_hex == FIRST_KEY

    def test_key_with_uppercase_prefix(self) -> None:
        account = Account(FIRST_ADDRESS, "0X" + FIRST_KEY[2:].upper())
        assert account.private_key_hex == FIRST_KEY
        assert account.address == FIRST_ADDRESS

    def test_mismatched_key(self) -> None:
        with pytest.raises(AccountError, match="does not match"):
            Account(FIRST_ADDRESS, SECOND_KEY)

    def test_short_key(self) -> None:
        with pytest.raises(AccountError, match="32 bytes"):
            Account(FIRST_ADDRESS, "0x1234")

    def test_malformed_key(self) -> None:
        with pytest.raises(AccountError, match="invalid private key"):
            Account(FIRST_ADDRESS, "0x" + "zz" * 32)

    def test_zero_key(self) -> None:
        with pytest.raises(AccountError):
            Account(FIRST_ADDRESS, "0x" + "00" * 32)

    def test_malformed_address(self) -> None:
        with pytest.raises(AccountError, match="invalid address"):
            Account("0x1234", FIRST_KEY)

    def test_read_only(self) -> None:
        account = Account(FIRST_ADDRESS, FIRST_KEY)
        with pytest.raises(AttributeError):
            account.address = SECOND_ADDRESS  # type: ignore[misc]

    def test_equality(self) -> None:
        assert Account(FIRST_ADDRESS, FIRST_KEY) == Account(FIRST_ADDRESS.lower(), FIRST_KEY)
        assert Account(FIRST_ADDRESS, FIRST_KEY) != Account(SECOND_ADDRESS, SECOND_KEY)
        assert len({Account(FIRST_ADDRESS, FIRST_KEY), Account(FIRST_ADDRESS, FIRST_KEY)}) == 1

    def test_sign_transaction(self) -> None:
        account = Account(FIRST_ADDRESS, FIRST_KEY)
        tx = {
            "to": SECOND_ADDRESS,
            "value": 1,
            "gas": 21_000,
            "gasPrice": 1_000_000_000,
            "nonce": 0,
            "chainId": CHAIN_ID,
        }
        raw = account.sign_transaction(tx)
        assert raw.startswith("0x")
        assert EthAccount.recover_transaction(raw) == FIRST_ADDRESS


class TestGenesisConfig:
    def test_anvil_defaults(self) -> None:
        genesis = GenesisConfig.anvil_default()
        assert genesis.base_fee == 1_000_000_000
        assert genesis.chain_id == 31337
        assert genesis.gas_limit == 30_000_000
        assert genesis.genesis_timestamp == 1769011998
        assert genesis.genesis_number == 0

    def test_default_accounts(self) -> None:
        accounts = GenesisConfig.anvil_default().build_accounts()
        assert len(accounts) == 10
        assert [a.address for a in accounts] == [address for address, _ in DEFAULT_ACCOUNTS]
        assert len(set(accounts)) == 10

    def test_custom_accounts(self) -> None:
        genesis = GenesisConfig(starting_balance=5, accounts=(DEFAULT_ACCOUNTS[3],))
        (account,) = genesis.build_accounts()
        assert account.address == DEFAULT_ACCOUNTS[3][0]
        assert account.balance == 5

    def test_invalid_account_reports_index(self) -> None:
        genesis = GenesisConfig(accounts=(DEFAULT_ACCOUNTS[0], (SECOND_ADDRESS, FIRST_KEY)))
        with pytest.raises(AccountError, match="genesis account 1"):
            genesis.build_accounts()
