"""
Address facades.

:class:`Address` observes any address: balances, history, staking context.
:class:`WalletAddress` belongs to a wallet and can act: it builds operations
remotely, signs them with its own key (or leaves them for the server-signer)
and broadcasts them.

Every spend re-reads the balance from the platform immediately before the
check; there is no balance cache and no locking against concurrent spends.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

from ..config import Configuration
from ..errors import CrossNetworkTransferError, KeyNotLoadedError
from ..pneuma.abi import AbiLike, validate_call
from ..pneuma.api import RemoteBuilder
from ..pneuma.pagination import PaginatedEnumerator
from ..sigil.signer import LocalKeySigner, SigningStrategy, signer_for
from ..utils import normalize_network, pretty_print_object, to_network_id, utc_now
from .amount import BalanceMap, CryptoAmount, Number, primary_denomination, to_decimal
from .guard import BalanceGuard
from .operation import (
    ContractInvocation,
    Operation,
    OperationKind,
    PayloadSignature,
    SmartContract,
    StakingOperation,
    Trade,
    Transfer,
    operation_from_dict,
)
from .records import (
    USD,
    AddressReputation,
    FaucetTransaction,
    HistoricalBalance,
    StakingBalance,
    StakingReward,
)

logger = logging.getLogger(__name__)

DEFAULT_STAKING_MODE = "default"

STAKEABLE = "stakeable_balance"
UNSTAKEABLE = "unstakeable_balance"
CLAIMABLE = "claimable_balance"


@dataclass(frozen=True)
class Destination:
    address_id: str
    network_id: str


DestinationLike = Union["Address", Destination, str]


def resolve_destination(destination: DestinationLike, network_id: str) -> Destination:
    """
    Resolve a transfer destination on ``network_id``.

    Raises:
        CrossNetworkTransferError: If the destination lives on another network
        TypeError: For unsupported destination types
    """
    network_id = to_network_id(network_id)
    if isinstance(destination, str):
        return Destination(address_id=destination, network_id=network_id)
    if isinstance(destination, Address):
        destination = Destination(address_id=destination.address_id, network_id=destination.network_id)
    if not isinstance(destination, Destination):
        raise TypeError(f"Unsupported destination type: {type(destination).__name__}")
    if to_network_id(destination.network_id) != network_id:
        raise CrossNetworkTransferError(network_id, destination.network_id)
    return destination


class Address:
    """Read-only view of an address on one network."""

    def __init__(
        self,
        network_id: str,
        address_id: str,
        api: RemoteBuilder,
        config: Optional[Configuration] = None,
    ) -> None:
        self.network_id = to_network_id(network_id)
        self.address_id = address_id
        self._api = api
        self.config = config or Configuration()

    @property
    def can_sign(self) -> bool:
        return False

    # ============ Balances ============

    def balance(self, asset_id: str) -> Decimal:
        """Current balance in ``asset_id`` units; an absent balance is zero."""
        balance = self._api.get_balance(self.network_id, self.address_id, asset_id)
        if balance is None:
            return Decimal(0)
        return balance.amount

    def balances(self) -> BalanceMap:
        return self._api.list_balances(self.network_id, self.address_id)

    def historical_balances(self, asset_id: str) -> PaginatedEnumerator[HistoricalBalance]:
        return PaginatedEnumerator(
            lambda token: self._api.list_historical_balances(self.network_id, self.address_id, asset_id, token),
            HistoricalBalance.from_dict,
        )

    def faucet(self, asset_id: Optional[str] = None) -> FaucetTransaction:
        """Request testnet funds. Raises FaucetLimitReachedError when rate limited."""
        payload = self._api.request_faucet_funds(self.network_id, self.address_id, asset_id)
        return FaucetTransaction(payload, self._api, self.network_id, self.address_id)

    def reputation(self) -> AddressReputation:
        return AddressReputation.from_dict(self._api.get_address_reputation(self.network_id, self.address_id))

    # ============ Staking ============

    def _staking_options(
        self, amount: Number, asset_id: str, mode: str, options: Optional[dict[str, Any]]
    ) -> dict[str, Any]:
        asset = self._api.get_asset(self.network_id, asset_id)
        return {"amount": str(asset.to_atomic_amount(amount)), "mode": mode, **(options or {})}

    def staking_balances(
        self,
        asset_id: str,
        mode: str = DEFAULT_STAKING_MODE,
        options: Optional[dict[str, Any]] = None,
    ) -> dict[str, Decimal]:
        """
        Stakeable, unstakeable and claimable balances from one platform call.

        Returns:
            ``{"stakeable_balance", "unstakeable_balance", "claimable_balance"}``
            in ``asset_id`` units
        """
        context = self._api.get_staking_context(
            self.network_id, self.address_id, asset_id, {"mode": mode, **(options or {})}
        )
        result = {}
        for bucket in (STAKEABLE, UNSTAKEABLE, CLAIMABLE):
            payload = context.get(bucket)
            result[bucket] = CryptoAmount.from_dict(payload, asset_id=asset_id).amount if payload else Decimal(0)
        return result

    def stakeable_balance(self, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None) -> Decimal:
        return self.staking_balances(asset_id, mode, options)[STAKEABLE]

    def unstakeable_balance(self, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None) -> Decimal:
        return self.staking_balances(asset_id, mode, options)[UNSTAKEABLE]

    def claimable_balance(self, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None) -> Decimal:
        return self.staking_balances(asset_id, mode, options)[CLAIMABLE]

    def _validate_staking_action(
        self,
        amount: Number,
        asset_id: str,
        bucket: str,
        mode: str,
        options: Optional[dict[str, Any]],
    ) -> None:
        available = self.staking_balances(asset_id, mode, options)[bucket]
        BalanceGuard.ensure_sufficient(available, amount, context=bucket)

    def _build_staking(
        self,
        action: str,
        bucket: str,
        amount: Number,
        asset_id: str,
        mode: str,
        options: Optional[dict[str, Any]],
    ) -> StakingOperation:
        self._validate_staking_action(amount, asset_id, bucket, mode, options)
        payload = self._api.build_staking_operation(
            self.network_id,
            self.address_id,
            primary_denomination(asset_id),
            action,
            self._staking_options(amount, asset_id, mode, options),
        )
        return StakingOperation(payload, self._api)

    def build_stake_operation(
        self, amount: Number, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None
    ) -> StakingOperation:
        """Build an unsigned stake operation after checking the stakeable balance."""
        return self._build_staking("stake", STAKEABLE, amount, asset_id, mode, options)

    def build_unstake_operation(
        self, amount: Number, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None
    ) -> StakingOperation:
        return self._build_staking("unstake", UNSTAKEABLE, amount, asset_id, mode, options)

    def build_claim_stake_operation(
        self, amount: Number, asset_id: str, mode: str = DEFAULT_STAKING_MODE, options: Optional[dict] = None
    ) -> StakingOperation:
        return self._build_staking("claim_stake", CLAIMABLE, amount, asset_id, mode, options)

    def staking_rewards(
        self,
        asset_id: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        format: str = USD,
    ) -> PaginatedEnumerator[StakingReward]:
        """Rewards between ``start_time`` (default: a week ago) and ``end_time`` (default: now)."""
        end_time = end_time or utc_now()
        start_time = start_time or end_time - timedelta(weeks=1)
        return PaginatedEnumerator(
            lambda token: self._api.list_staking_rewards(
                self.network_id, asset_id, [self.address_id], start_time, end_time, format, token
            ),
            lambda raw: StakingReward.from_dict(raw, self._api.get_asset(self.network_id, asset_id), format),
        )

    def historical_staking_balances(
        self,
        asset_id: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> PaginatedEnumerator[StakingBalance]:
        end_time = end_time or utc_now()
        start_time = start_time or end_time - timedelta(weeks=1)
        return PaginatedEnumerator(
            lambda token: self._api.list_historical_staking_balances(
                self.network_id, self.address_id, asset_id, start_time, end_time, token
            ),
            StakingBalance.from_dict,
        )

    def __str__(self) -> str:
        return pretty_print_object(type(self).__name__, address_id=self.address_id, network_id=self.network_id)

    def __repr__(self) -> str:
        return str(self)


class WalletAddress(Address):
    """
    An address owned by a wallet, able to build and sign operations.

    The signing strategy is picked once per operation from
    ``config.use_server_signer``. With a server-signer, operations are
    returned still ``created`` and the local key is never used.
    """

    def __init__(
        self,
        network_id: str,
        address_id: str,
        wallet_id: str,
        api: RemoteBuilder,
        config: Optional[Configuration] = None,
        key: Optional[str] = None,
    ) -> None:
        super().__init__(network_id, address_id, api, config)
        self.wallet_id = wallet_id
        self._key_signer = LocalKeySigner(key)

    # ============ Key ============

    def attach_key(self, key: str) -> None:
        """Attach the private key. Raises KeyAlreadySetError if one is already held."""
        self._key_signer.attach_key(key)

    @property
    def can_sign(self) -> bool:
        return self._key_signer.has_key

    def export(self) -> str:
        if not self.can_sign:
            raise KeyNotLoadedError()
        return self._key_signer.export()

    # ============ Helpers ============

    def _signer(self) -> SigningStrategy:
        signer = signer_for(self.config, self._key_signer)
        BalanceGuard(delegated=signer.delegated).ensure_can_sign(self)
        return signer

    def _ensure_sufficient_balance(self, amount: Number, asset_id: str) -> None:
        current = self.balance(asset_id)
        BalanceGuard.ensure_sufficient(current, amount, context=f"{asset_id} balance of {self.address_id}")

    def _build(self, kind: OperationKind, params: dict[str, Any], signer: SigningStrategy) -> Operation:
        payload = self._api.build_operation(kind, self.network_id, self.wallet_id, self.address_id, params)
        operation = operation_from_dict(kind, payload, self._api, delegated=signer.delegated)
        logger.info("Built %s %s for %s", kind.value, operation.id, self.address_id)
        return operation

    @staticmethod
    def _sign_and_broadcast(operation: Operation, signer: SigningStrategy) -> Operation:
        if signer.delegated:
            logger.info("%s %s left for the server-signer", operation.kind.value, operation.id)
            return operation
        signer.sign_operation(operation)
        return operation.broadcast()

    def _list(self, kind: OperationKind) -> PaginatedEnumerator:
        # the strategy each listed operation was built with is not recorded
        return PaginatedEnumerator(
            lambda token: self._api.list_operations(kind, self.wallet_id, self.address_id, token),
            lambda raw: operation_from_dict(kind, raw, self._api, delegated=None),
        )

    # ============ Operations ============

    def transfer(
        self,
        amount: Number,
        asset_id: str,
        destination: DestinationLike,
        gasless: bool = False,
    ) -> Transfer:
        """
        Send ``amount`` of ``asset_id`` to ``destination`` on this network.

        Args:
            amount: Amount in ``asset_id`` units (eth, gwei, wei, usdc, ...)
            asset_id: Asset or denomination of the amount
            destination: Address, Destination or address ID string
            gasless: Ask the platform to sponsor the fee (sponsored send)

        Returns:
            The broadcast transfer, or the created transfer when a
            server-signer is in use

        Raises:
            CrossNetworkTransferError: Destination on another network
            AddressCannotSignError: No key and no server-signer
            InsufficientFundsError: Balance below ``amount``
        """
        target = resolve_destination(destination, self.network_id)
        signer = self._signer()
        self._ensure_sufficient_balance(amount, asset_id)

        asset = self._api.get_asset(self.network_id, asset_id)
        transfer = self._build(
            OperationKind.TRANSFER,
            {
                "amount": str(asset.to_atomic_amount(amount)),
                "network_id": normalize_network(self.network_id),
                "asset_id": asset.primary_denomination,
                "destination": target.address_id,
                "gasless": gasless,
            },
            signer,
        )
        return self._sign_and_broadcast(transfer, signer)

    def trade(self, amount: Number, from_asset_id: str, to_asset_id: str) -> Trade:
        """Trade ``amount`` of ``from_asset_id`` into ``to_asset_id``."""
        signer = self._signer()
        self._ensure_sufficient_balance(amount, from_asset_id)

        from_asset = self._api.get_asset(self.network_id, from_asset_id)
        trade = self._build(
            OperationKind.TRADE,
            {
                "amount": str(from_asset.to_atomic_amount(amount)),
                "from_asset_id": from_asset.primary_denomination,
                "to_asset_id": primary_denomination(to_asset_id),
            },
            signer,
        )
        return self._sign_and_broadcast(trade, signer)

    def invoke_contract(
        self,
        contract_address: str,
        method: str,
        abi: AbiLike,
        args: Optional[dict[str, Any]] = None,
        amount: Optional[Number] = None,
        asset_id: Optional[str] = None,
    ) -> ContractInvocation:
        """
        Invoke ``method`` on a contract, optionally sending native value.

        ``args`` are checked against the ABI before anything is sent.

        Raises:
            InvalidContractCallError: Unknown method or bad arguments
        """
        args = args or {}
        entries = validate_call(abi, method, args)
        signer = self._signer()

        atomic_amount = None
        if amount is not None and asset_id:
            self._ensure_sufficient_balance(amount, asset_id)
            atomic_amount = str(self._api.get_asset(self.network_id, asset_id).to_atomic_amount(amount))

        invocation = self._build(
            OperationKind.CONTRACT_INVOCATION,
            {
                "contract_address": contract_address,
                "method": method,
                "abi": json.dumps(entries),
                "args": json.dumps(args),
                "amount": atomic_amount,
            },
            signer,
        )
        return self._sign_and_broadcast(invocation, signer)

    def deploy_token(self, name: str, symbol: str, total_supply: Number) -> SmartContract:
        """
        Deploy an ERC20 token contract with ``total_supply`` whole tokens.

        Fractional supplies are truncated. No balance is checked; the
        deployment fee is settled on-chain.

        Raises:
            AddressCannotSignError: No key and no server-signer
            InvalidAmountError: ``total_supply`` is negative or not a number
        """
        signer = self._signer()
        supply = int(to_decimal(total_supply))
        contract = self._build(
            OperationKind.SMART_CONTRACT,
            {"type": "erc20", "options": {"name": name, "symbol": symbol, "total_supply": str(supply)}},
            signer,
        )
        return self._sign_and_broadcast(contract, signer)

    def sign_payload(self, unsigned_payload: str) -> PayloadSignature:
        """Sign an arbitrary hash. No balance is checked."""
        signer = self._signer()
        signature = signer.sign_hash(unsigned_payload)
        params = {"unsigned_payload": unsigned_payload}
        if signature is not None:
            params["signature"] = signature
        return self._build(OperationKind.PAYLOAD_SIGNATURE, params, signer)

    def _staking_action(
        self,
        action: str,
        bucket: str,
        amount: Number,
        asset_id: str,
        mode: str,
        options: Optional[dict[str, Any]],
        interval_seconds: float,
        timeout_seconds: float,
    ) -> StakingOperation:
        signer = self._signer()
        self._validate_staking_action(amount, asset_id, bucket, mode, options)
        operation = self._build(
            OperationKind.STAKING,
            {
                "asset_id": primary_denomination(asset_id),
                "action": action,
                "options": self._staking_options(amount, asset_id, mode, options),
            },
            signer,
        )
        if signer.delegated:
            logger.info("Staking operation %s left for the server-signer", operation.id)
            return operation
        return operation.complete(signer, interval_seconds=interval_seconds, timeout_seconds=timeout_seconds)

    def stake(
        self,
        amount: Number,
        asset_id: str,
        mode: str = DEFAULT_STAKING_MODE,
        options: Optional[dict[str, Any]] = None,
        interval_seconds: float = 5,
        timeout_seconds: float = 600,
    ) -> StakingOperation:
        """
        Stake and drive the operation to a terminal state.

        With a server-signer the created operation is returned at once.

        Raises:
            InsufficientFundsError: Stakeable balance below ``amount``
            OperationTimeoutError: Not terminal within ``timeout_seconds``
        """
        return self._staking_action(
            "stake", STAKEABLE, amount, asset_id, mode, options, interval_seconds, timeout_seconds
        )

    def unstake(
        self,
        amount: Number,
        asset_id: str,
        mode: str = DEFAULT_STAKING_MODE,
        options: Optional[dict[str, Any]] = None,
        interval_seconds: float = 5,
        timeout_seconds: float = 600,
    ) -> StakingOperation:
        return self._staking_action(
            "unstake", UNSTAKEABLE, amount, asset_id, mode, options, interval_seconds, timeout_seconds
        )

    def claim_stake(
        self,
        amount: Number,
        asset_id: str,
        mode: str = DEFAULT_STAKING_MODE,
        options: Optional[dict[str, Any]] = None,
        interval_seconds: float = 5,
        timeout_seconds: float = 600,
    ) -> StakingOperation:
        return self._staking_action(
            "claim_stake", CLAIMABLE, amount, asset_id, mode, options, interval_seconds, timeout_seconds
        )

    # ============ History ============

    def transfers(self) -> PaginatedEnumerator[Transfer]:
        return self._list(OperationKind.TRANSFER)

    def trades(self) -> PaginatedEnumerator[Trade]:
        return self._list(OperationKind.TRADE)

    def contract_invocations(self) -> PaginatedEnumerator[ContractInvocation]:
        return self._list(OperationKind.CONTRACT_INVOCATION)

    def payload_signatures(self) -> PaginatedEnumerator[PayloadSignature]:
        return self._list(OperationKind.PAYLOAD_SIGNATURE)

    def staking_operations(self) -> PaginatedEnumerator[StakingOperation]:
        return self._list(OperationKind.STAKING)

    def smart_contracts(self) -> PaginatedEnumerator[SmartContract]:
        return self._list(OperationKind.SMART_CONTRACT)

    def __str__(self) -> str:
        return pretty_print_object(
            "WalletAddress",
            address_id=self.address_id,
            network_id=self.network_id,
            wallet_id=self.wallet_id,
        )
