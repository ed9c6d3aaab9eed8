__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Configuration",
    # Amounts
    "Asset",
    "BalanceMap",
    "CryptoAmount",
    "from_atomic",
    "to_atomic",
    # Guards
    "BalanceGuard",
    # Operations
    "ContractInvocation",
    "Operation",
    "OperationKind",
    "OperationState",
    "PayloadSignature",
    "StakingOperation",
    "Trade",
    "Transaction",
    "TransactionStatus",
    "Transfer",
    # Records
    "FaucetTransaction",
    "HistoricalBalance",
    "StakingBalance",
    "StakingReward",
    # Addresses
    "Address",
    "Destination",
    "WalletAddress",
    # Signing
    "DelegatedSigner",
    "LocalKeySigner",
    "signer_for",
    # Platform
    "Page",
    "PaginatedEnumerator",
    "PlatformClient",
    "RemoteBuilder",
    # Errors
    "APIError",
    "AddressCannotSignError",
    "AlreadySignedError",
    "BroadcastError",
    "CrossNetworkTransferError",
    "FaucetLimitReachedError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "InvalidConfigurationError",
    "InvalidContractCallError",
    "InvalidStateTransitionError",
    "KeyAlreadySetError",
    "KeyNotLoadedError",
    "OperationTimeoutError",
    "PactumError",
    "PaginationLoopError",
    "RemoteBuildError",
    "TransactionNotSignedError",
    "UnsupportedAssetError",
]

from .config import Configuration
from .errors import (
    AddressCannotSignError,
    AlreadySignedError,
    APIError,
    BroadcastError,
    CrossNetworkTransferError,
    FaucetLimitReachedError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidConfigurationError,
    InvalidContractCallError,
    InvalidStateTransitionError,
    KeyAlreadySetError,
    KeyNotLoadedError,
    OperationTimeoutError,
    PactumError,
    PaginationLoopError,
    RemoteBuildError,
    TransactionNotSignedError,
    UnsupportedAssetError,
)
from .ledger.amount import Asset, BalanceMap, CryptoAmount, from_atomic, to_atomic
from .ledger.guard import BalanceGuard
from .ledger.transaction import Transaction, TransactionStatus
from .ledger.operation import (
    ContractInvocation,
    Operation,
    OperationKind,
    OperationState,
    PayloadSignature,
    StakingOperation,
    Trade,
    Transfer,
)
from .ledger.records import FaucetTransaction, HistoricalBalance, StakingBalance, StakingReward
from .ledger.address import Address, Destination, WalletAddress
from .sigil.signer import DelegatedSigner, LocalKeySigner, signer_for
from .pneuma.pagination import Page, PaginatedEnumerator
from .pneuma.api import PlatformClient, RemoteBuilder
