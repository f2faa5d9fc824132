__all__ = [
    # Hex codec
    "bytes_to_hex",
    "hex_to_bytes",
    "uint_to_hex",
    "hex_to_uint",
    # Records
    "Log",
    "InnerTransaction",
    "Transaction",
    "Receipt",
    "Broadcast",
    # Harness
    "Account",
    "GenesisConfig",
    "HarnessConfig",
    "Anvil",
    "AnvilState",
    # Chain client
    "ChainClient",
    "Event",
    "LogSubscription",
    # Errors
    "BearchainError",
    "DecodeError",
    "EncodeError",
    "NotFoundError",
    "AccountError",
    "HarnessError",
    "ReadinessError",
    "DeployError",
    "DeployToolError",
    "ArtifactError",
    "RpcError",
    "TransactionRevertedError",
]

from .errors import (
    AccountError,
    ArtifactError,
    BearchainError,
    DecodeError,
    DeployError,
    DeployToolError,
    EncodeError,
    HarnessError,
    NotFoundError,
    ReadinessError,
    RpcError,
    TransactionRevertedError,
)
from .utils import bytes_to_hex, hex_to_bytes, hex_to_uint, uint_to_hex
from .config import HarnessConfig
from .foundry.records import InnerTransaction, Log, Receipt, Transaction
from .foundry.broadcast import Broadcast
from .foundry.account import Account, GenesisConfig
from .foundry.anvil import Anvil, AnvilState
from .chain.client import ChainClient, Event, LogSubscription
