"""
Funded accounts and genesis parameters of a local anvil chain.

anvil derives ten accounts from its default test mnemonic and funds each of
them at genesis. `GenesisConfig.anvil_default()` mirrors that genesis; tests
needing another account set build their own `GenesisConfig` and hand it to
the harness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from eth_account import Account as EthAccount
from eth_account.signers.local import LocalAccount
from eth_keys.exceptions import ValidationError as KeyValidationError

from ..errors import AccountError, DecodeError
from ..utils import HEX_PREFIX, bytes_to_hex, hex_to_bytes, is_hex_address

DEFAULT_ACCOUNTS: tuple[tuple[str, str], ...] = (
    ("0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266", "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"),
    ("0x70997970C51812dc3A010C7d01b50e0d17dc79C8", "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"),
    ("0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC", "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"),
    ("0x90F79bf6EB2c4f870365E785982E1f101E93b906", "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6"),
    ("0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65", "0x47e179ec197488593b187f80a00eb0da91f1b9d0b13f8733639f19c30a34926a"),
    ("0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc", "0x8b3a350cf5c34c9194ca85829a2df0ec3153be0318b5e2d3348e872092edffba"),
    ("0x976EA74026E726554dB657fA54763abd0C3a0aa9", "0x92db14e403b83dfe3df233f83dfa3a0d7096f21ca9b0d6d6b8d88b2b4ec1564e"),
    ("0x14dC79964da2C08b23698B3D3cc7Ca32193d9955", "0x4bbbf85ce3377467afe5d46f804f221813b2bb87f24d81f60f1fcdbf7cbf4356"),
    ("0x23618e81E3f5cdF7f54C3d65f7FBc0aBf5B21E8f", "0xdbda1821b80551c9d65939329250298aa3472ba22feea921c0cf5d620ea67b97"),
    ("0xa0Ee7A142d267C1f36714E4a8F75612F20a79720", "0x2a871d0798f97d79848a013d4936a73bf4cc922c825d33c1cf7073dff6d409c6"),
)

BASE_FEE = 1_000_000_000
CHAIN_ID = 31337
GAS_LIMIT = 30_000_000
GENESIS_TIMESTAMP = 1769011998
GENESIS_NUMBER = 0
STARTING_BALANCE = 10_000


class Account:
    """
    A funded account usable for signing.

    Attributes are read-only. The private key is validated on construction
    and must derive the declared address.
    """

    __slots__ = ("_address", "_local", "_private_key_hex", "_balance")

    def __init__(self, address: str, private_key_hex: str, balance: int = STARTING_BALANCE) -> None:
        if not is_hex_address(address):
            raise AccountError(f"invalid address: {address!r}")
        try:
            key = hex_to_bytes(private_key_hex)
        except DecodeError as exc:
            raise AccountError(f"invalid private key for {address}: {exc}") from exc
        if len(key) != 32:
            raise AccountError(f"invalid private key for {address}: expected 32 bytes, got {len(key)}")
        try:
            local = EthAccount.from_key(key)
        except (ValueError, KeyValidationError) as exc:
            raise AccountError(f"invalid private key for {address}: {exc}") from exc
        if local.address.lower() != address.lower():
            raise AccountError(f"private key does not match address {address} (derives {local.address})")

        self._address = local.address
        self._local = local
        self._private_key_hex = bytes_to_hex(key)
        self._balance = balance

    @property
    def address(self) -> str:
        """EIP-55 checksummed address."""
        return self._address

    @property
    def private_key(self) -> LocalAccount:
        return self._local

    @property
    def private_key_hex(self) -> str:
        return self._private_key_hex

    @property
    def balance(self) -> int:
        return self._balance

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        """Sign a transaction dict and return the raw 0x-prefixed payload."""
        signed = self._local.sign_transaction(tx)
        return HEX_PREFIX + bytes(signed.raw_transaction).hex()

    def __repr__(self) -> str:
        return f"Account({self._address})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return self._address == other._address and self._private_key_hex == other._private_key_hex

    def __hash__(self) -> int:
        return hash(self._address)


@dataclass(frozen=True)
class GenesisConfig:
    """Deterministic chain parameters known for a local node's genesis."""

    base_fee: int = BASE_FEE
    chain_id: int = CHAIN_ID
    gas_limit: int = GAS_LIMIT
    genesis_timestamp: int = GENESIS_TIMESTAMP
    genesis_number: int = GENESIS_NUMBER
    starting_balance: int = STARTING_BALANCE
    accounts: tuple[tuple[str, str], ...] = field(default=DEFAULT_ACCOUNTS)

    @classmethod
    def anvil_default(cls) -> "GenesisConfig":
        return cls()

    def build_accounts(self) -> tuple[Account, ...]:
        """
        Instantiate every genesis account.

        Raises:
            AccountError: If any address/key pair is invalid
        """
        accounts = []
        for index, (address, private_key) in enumerate(self.accounts):
            try:
                accounts.append(Account(address, private_key, self.starting_balance))
            except AccountError as exc:
                raise AccountError(f"genesis account {index}: {exc}") from exc
        return tuple(accounts)
