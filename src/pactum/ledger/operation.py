"""
Operation lifecycle - the state machine shared by every signable on-chain intent.

States::

    created -> signed -> broadcast -> complete
                                  \\-> failed   (from any non-terminal state)

An operation wraps one or more :class:`Transaction` objects built by the
platform. Local actions (sign, broadcast) move the state one strict step;
observations of the platform (reload, wait) advance it forward through any
intermediate states and never move it backward.
"""

from __future__ import annotations

import json
import logging
import time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from ..errors import (
    AddressCannotSignError,
    AlreadySignedError,
    APIError,
    BroadcastError,
    InvalidStateTransitionError,
    OperationTimeoutError,
    TransactionNotSignedError,
)
from ..utils import format_decimal, pretty_print_object, to_network_id
from .amount import Asset, from_atomic
from .transaction import Transaction, TransactionStatus

if TYPE_CHECKING:
    from ..pneuma.api import RemoteBuilder
    from ..sigil.signer import SigningStrategy

logger = logging.getLogger(__name__)

DEFAULT_WAIT_INTERVAL_SECONDS = 0.2
DEFAULT_WAIT_TIMEOUT_SECONDS = 20


class OperationState(str, Enum):
    CREATED = "created"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    COMPLETE = "complete"
    FAILED = "failed"


class OperationKind(str, Enum):
    TRANSFER = "transfer"
    TRADE = "trade"
    STAKING = "staking_operation"
    CONTRACT_INVOCATION = "contract_invocation"
    PAYLOAD_SIGNATURE = "payload_signature"
    SMART_CONTRACT = "smart_contract"


_CHAIN = (OperationState.CREATED, OperationState.SIGNED, OperationState.BROADCAST, OperationState.COMPLETE)

TERMINAL_STATES = {OperationState.COMPLETE, OperationState.FAILED}

# Transaction statuses the client can reach on its own, in order
_LOCAL_PROGRESS = {
    TransactionStatus.PENDING: 0,
    TransactionStatus.UNSPECIFIED: 0,
    TransactionStatus.SIGNED: 1,
    TransactionStatus.BROADCAST: 2,
}


class Operation:
    """
    Base of the closed set of operation variants.

    Subclasses declare their ``kind`` and the payload field holding their ID,
    and say how to extract transactions from a platform payload. Everything
    else (signing, broadcast, polling) lives here.

    Args:
        payload: Operation payload as returned by the platform
        api: RemoteBuilder used to broadcast and reload
        delegated: True when a server-signer signs out of band, False when
                   the local key signs. Fixed at build time; None when the
                   strategy is not known (operations read back from history).

    Raises:
        ValueError: If the payload carries no transactions
    """

    kind: ClassVar[OperationKind]
    id_field: ClassVar[str] = "id"
    chain: ClassVar[tuple[OperationState, ...]] = _CHAIN

    def __init__(self, payload: dict[str, Any], api: "RemoteBuilder", delegated: Optional[bool] = False) -> None:
        self._api = api
        self.delegated = delegated
        self.state = OperationState.CREATED
        self.history: list[OperationState] = [OperationState.CREATED]
        self._model: dict[str, Any] = {}
        self.transactions: list[Transaction] = []
        self._update(payload)
        self._advance_to(self._observed_state())

    # ============ Identity ============

    @property
    def id(self) -> str:
        return self._model[self.id_field]

    @property
    def network_id(self) -> str:
        return to_network_id(self._model.get("network_id") or "")

    @property
    def wallet_id(self) -> Optional[str]:
        return self._model.get("wallet_id")

    @property
    def address_id(self) -> str:
        return self._model.get("address_id") or ""

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def signed(self) -> bool:
        return all(tx.signed for tx in self.transactions)

    # ============ Payload handling ============

    def _transactions_from(self, payload: dict[str, Any]) -> list[Transaction]:
        raw = payload.get("transaction")
        return [Transaction.from_dict(raw)] if raw else []

    def _update(self, payload: dict[str, Any]) -> None:
        transactions = self._transactions_from(payload)
        if not transactions:
            raise ValueError(f"{type(self).__name__} payload has no transactions")
        for index, tx in enumerate(transactions):
            if index < len(self.transactions):
                _keep_local_progress(self.transactions[index], tx)
        self._model = payload
        self.transactions = transactions

    def _observed_state(self) -> OperationState:
        statuses = [tx.status for tx in self.transactions]
        if TransactionStatus.FAILED in statuses:
            return OperationState.FAILED
        if all(status is TransactionStatus.COMPLETE for status in statuses):
            return OperationState.COMPLETE
        if all(tx.broadcast for tx in self.transactions):
            return OperationState.BROADCAST
        if all(tx.signed for tx in self.transactions):
            return OperationState.SIGNED
        return OperationState.CREATED

    # ============ State machine ============

    def _next_states(self) -> set[OperationState]:
        if self.terminal:
            return set()
        return {self.chain[self.chain.index(self.state) + 1], OperationState.FAILED}

    def _transition(self, target: OperationState) -> None:
        if target not in self._next_states():
            raise InvalidStateTransitionError(self._model.get(self.id_field), self.state.value, target.value)
        logger.debug("%s %s: %s -> %s", self.kind.value, self._model.get(self.id_field), self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def _advance_to(self, target: OperationState) -> None:
        if target is self.state or self.terminal:
            return
        if target is OperationState.FAILED:
            self._transition(target)
            return
        current = self.chain.index(self.state)
        goal = self.chain.index(target)
        if goal < current:
            logger.debug(
                "%s %s: ignoring observed state %s behind local state %s",
                self.kind.value, self.id, target.value, self.state.value,
            )
            return
        for state in self.chain[current + 1 : goal + 1]:
            self._transition(state)

    # ============ Lifecycle ============

    def _sign_one(self, signer: "SigningStrategy", tx: Transaction) -> Optional[str]:
        return signer.sign(tx.unsigned_payload)

    def sign(self, signer: "SigningStrategy") -> "Operation":
        """
        Sign every unsigned transaction with ``signer``.

        The operation becomes ``signed`` only once all of its transactions
        are. A delegated signer leaves the operation untouched.

        Raises:
            InvalidStateTransitionError: If ``signer`` is not the strategy the
                                         operation was built for
            AlreadySignedError: If every transaction is already signed
            KeyNotLoadedError: If the local signer holds no key
        """
        if self.delegated is not None and signer.delegated != self.delegated:
            raise InvalidStateTransitionError(
                self.id, self.state.value, OperationState.SIGNED.value, reason=_strategy(self.delegated)
            )
        if signer.delegated:
            logger.debug("%s %s left for the server-signer", self.kind.value, self.id)
            return self

        pending = [tx for tx in self.transactions if not tx.signed]
        if not pending:
            raise AlreadySignedError()
        for tx in pending:
            tx.apply_signature(self._sign_one(signer, tx))

        if self.state is OperationState.CREATED and self.signed:
            self._transition(OperationState.SIGNED)
        return self

    def _submission_groups(self, ready: list[int]) -> list[tuple[list[int], Optional[int]]]:
        """Split ready transaction indices into broadcast calls: (indices, transaction_index)."""
        return [(ready, None)]

    def broadcast(self) -> "Operation":
        """
        Submit every signed, not yet broadcast transaction to the platform.

        Raises:
            TransactionNotSignedError: If the operation is not signed yet
            BroadcastError: If a submission fails. ``broadcast_indices`` lists
                            the transactions the platform accepted; retrying
                            skips them.
        """
        if self.delegated:
            raise InvalidStateTransitionError(
                self.id, self.state.value, OperationState.BROADCAST.value, reason=_strategy(True)
            )
        if self.state is OperationState.CREATED:
            raise TransactionNotSignedError(self.id)
        if self.terminal:
            raise InvalidStateTransitionError(self.id, self.state.value, OperationState.BROADCAST.value)
        if self.wallet_id is None:
            raise AddressCannotSignError(self.address_id)

        ready = [i for i, tx in enumerate(self.transactions) if tx.signed and not tx.broadcast]
        if not ready:
            return self

        accepted = [i for i, tx in enumerate(self.transactions) if tx.broadcast]
        payload: Optional[dict[str, Any]] = None
        for indices, transaction_index in self._submission_groups(ready):
            try:
                payload = self._api.broadcast(
                    self.kind,
                    self.wallet_id,
                    self.address_id,
                    self.id,
                    [self.transactions[i].signed_payload for i in indices],
                    transaction_index=transaction_index,
                )
            except APIError as exc:
                pending = [i for i in range(len(self.transactions)) if i not in accepted]
                raise BroadcastError(
                    "Broadcast failed",
                    http_code=exc.http_code,
                    api_code=exc.api_code,
                    api_message=exc.api_message,
                    operation_id=self.id,
                    broadcast_indices=accepted,
                    pending_indices=pending,
                ) from exc
            for i in indices:
                self.transactions[i].mark_broadcast()
            accepted.extend(indices)

        logger.info("Broadcast %s %s (transactions %s)", self.kind.value, self.id, ready)
        if payload:
            self._update(payload)
        if self.state is OperationState.SIGNED and all(tx.broadcast for tx in self.transactions):
            self._transition(OperationState.BROADCAST)
        self._advance_to(self._observed_state())
        return self

    def reload(self) -> "Operation":
        """Re-read the operation from the platform and advance the local state."""
        payload = self._api.get_operation(self.kind, self.network_id, self.wallet_id, self.address_id, self.id)
        self._update(payload)
        self._advance_to(self._observed_state())
        return self

    def wait(
        self,
        interval_seconds: float = DEFAULT_WAIT_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS,
    ) -> "Operation":
        """
        Poll the platform until the operation is complete or failed.

        Only the status read is retried. Stopping the wait (timeout or an
        exception in the caller's thread) leaves nothing running.

        Raises:
            OperationTimeoutError: If no terminal state is observed in time.
                                   The operation keeps its current state and
                                   can be waited on again.
        """
        deadline = time.monotonic() + timeout_seconds
        while True:
            self.reload()
            if self.terminal:
                return self
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OperationTimeoutError(self.id, self.state.value, timeout_seconds)
            time.sleep(min(interval_seconds, remaining))

    def __str__(self) -> str:
        return pretty_print_object(type(self).__name__, id=self.id, state=self.state.value)

    def __repr__(self) -> str:
        return str(self)


def _strategy(delegated: bool) -> str:
    if delegated:
        return "built for the server-signer"
    return "built for the local key"


def _keep_local_progress(local: Transaction, remote: Transaction) -> None:
    """Carry signatures and broadcast marks the platform has not caught up with."""
    if local.unsigned_payload != remote.unsigned_payload:
        return
    if local.signed_payload and not remote.signed_payload:
        remote.signed_payload = local.signed_payload
    if remote.status in _LOCAL_PROGRESS and _LOCAL_PROGRESS.get(local.status, 0) > _LOCAL_PROGRESS[remote.status]:
        remote.status = local.status


def _asset_amount(atomic: Any, asset_payload: Optional[dict[str, Any]]) -> Decimal:
    if not asset_payload:
        return Decimal(str(atomic or 0))
    return from_atomic(atomic, Asset.from_dict(asset_payload))


# ============ Variants ============


class Transfer(Operation):
    """Moves an amount of an asset from one address to another on the same network.

    Gasless transfers carry a sponsored send: a typed-data hash signed
    directly by the key instead of a full transaction.
    """

    kind = OperationKind.TRANSFER
    id_field = "transfer_id"

    def _transactions_from(self, payload: dict[str, Any]) -> list[Transaction]:
        sponsored = payload.get("sponsored_send")
        if sponsored:
            return [
                Transaction(
                    unsigned_payload=sponsored.get("typed_data_hash") or "",
                    status=TransactionStatus.parse(sponsored.get("status")),
                    signed_payload=sponsored.get("signature") or None,
                    transaction_hash=sponsored.get("transaction_hash"),
                    transaction_link=sponsored.get("transaction_link"),
                    raw_hash=True,
                )
            ]
        return super()._transactions_from(payload)

    def _sign_one(self, signer: "SigningStrategy", tx: Transaction) -> Optional[str]:
        if tx.raw_hash:
            return signer.sign_hash(tx.unsigned_payload)
        return signer.sign(tx.unsigned_payload)

    @property
    def gasless(self) -> bool:
        return bool(self._model.get("sponsored_send"))

    @property
    def destination_address_id(self) -> str:
        return self._model.get("destination") or ""

    @property
    def asset_id(self) -> str:
        return self._model.get("asset_id") or ""

    @property
    def amount(self) -> Decimal:
        return _asset_amount(self._model.get("amount"), self._model.get("asset"))

    @property
    def transaction(self) -> Transaction:
        return self.transactions[0]

    @property
    def transaction_hash(self) -> Optional[str]:
        return self.transaction.transaction_hash

    @property
    def transaction_link(self) -> Optional[str]:
        return self.transaction.transaction_link

    def __str__(self) -> str:
        return pretty_print_object(
            "Transfer",
            transfer_id=self.id,
            network_id=self.network_id,
            from_address_id=self.address_id,
            destination_address_id=self.destination_address_id,
            asset_id=self.asset_id,
            amount=format_decimal(self.amount),
            state=self.state.value,
        )


class Trade(Operation):
    """Exchanges one asset for another; may need an approval transaction first."""

    kind = OperationKind.TRADE
    id_field = "trade_id"

    def _transactions_from(self, payload: dict[str, Any]) -> list[Transaction]:
        transactions = []
        if payload.get("approve_transaction"):
            transactions.append(Transaction.from_dict(payload["approve_transaction"]))
        if payload.get("transaction"):
            transactions.append(Transaction.from_dict(payload["transaction"]))
        return transactions

    def _observed_state(self) -> OperationState:
        # The trade transaction decides the outcome; the approval only gates it.
        status = self.transaction.status
        if status is TransactionStatus.COMPLETE:
            return OperationState.COMPLETE
        if status is TransactionStatus.FAILED:
            return OperationState.FAILED
        return super()._observed_state()

    @property
    def approve_transaction(self) -> Optional[Transaction]:
        return self.transactions[0] if len(self.transactions) > 1 else None

    @property
    def transaction(self) -> Transaction:
        return self.transactions[-1]

    @property
    def from_asset_id(self) -> str:
        return (self._model.get("from_asset") or {}).get("asset_id", "")

    @property
    def to_asset_id(self) -> str:
        return (self._model.get("to_asset") or {}).get("asset_id", "")

    @property
    def from_amount(self) -> Decimal:
        return _asset_amount(self._model.get("from_amount"), self._model.get("from_asset"))

    @property
    def to_amount(self) -> Decimal:
        return _asset_amount(self._model.get("to_amount"), self._model.get("to_asset"))

    def __str__(self) -> str:
        return pretty_print_object(
            "Trade",
            trade_id=self.id,
            network_id=self.network_id,
            address_id=self.address_id,
            from_asset_id=self.from_asset_id,
            to_asset_id=self.to_asset_id,
            from_amount=format_decimal(self.from_amount),
            to_amount=format_decimal(self.to_amount),
            state=self.state.value,
        )


class ContractInvocation(Operation):
    """Calls a method on a smart contract, optionally sending value with it."""

    kind = OperationKind.CONTRACT_INVOCATION
    id_field = "contract_invocation_id"

    @property
    def contract_address(self) -> str:
        return self._model.get("contract_address") or ""

    @property
    def method(self) -> str:
        return self._model.get("method") or ""

    @property
    def abi(self) -> list[dict[str, Any]]:
        return json.loads(self._model.get("abi") or "[]")

    @property
    def args(self) -> dict[str, Any]:
        return json.loads(self._model.get("args") or "{}")

    @property
    def amount(self) -> Decimal:
        """Value sent with the call, in atomic units of the native asset."""
        return Decimal(str(self._model.get("amount") or 0))

    @property
    def transaction(self) -> Transaction:
        return self.transactions[0]

    def __str__(self) -> str:
        return pretty_print_object(
            "ContractInvocation",
            contract_invocation_id=self.id,
            network_id=self.network_id,
            contract_address=self.contract_address,
            method=self.method,
            args=self._model.get("args"),
            state=self.state.value,
        )


class StakingOperation(Operation):
    """
    A stake, unstake or claim_stake action.

    The platform may add transactions to a staking operation over time, so
    :meth:`complete` keeps signing and broadcasting until the operation
    reaches a terminal state.
    """

    kind = OperationKind.STAKING

    def _transactions_from(self, payload: dict[str, Any]) -> list[Transaction]:
        return [Transaction.from_dict(raw) for raw in payload.get("transactions") or []]

    def _submission_groups(self, ready: list[int]) -> list[tuple[list[int], Optional[int]]]:
        return [([index], index) for index in ready]

    def _observed_state(self) -> OperationState:
        status = self._model.get("status")
        if status == "complete":
            return OperationState.COMPLETE
        if status == "failed":
            return OperationState.FAILED
        return super()._observed_state()

    @property
    def status(self) -> str:
        return self._model.get("status") or "unspecified"

    def complete(
        self,
        signer: "SigningStrategy",
        interval_seconds: float = 5,
        timeout_seconds: float = 600,
    ) -> "StakingOperation":
        """
        Sign, broadcast and reload until the operation is terminal.

        Raises:
            OperationTimeoutError: If the operation is not terminal in time
        """
        deadline = time.monotonic() + timeout_seconds
        while not self.terminal:
            if any(not tx.signed for tx in self.transactions):
                self.sign(signer)
            if any(tx.signed and not tx.broadcast for tx in self.transactions):
                self.broadcast()
            if self.terminal:
                break
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise OperationTimeoutError(self.id, self.state.value, timeout_seconds)
            time.sleep(min(interval_seconds, remaining))
            self.reload()
        return self

    def __str__(self) -> str:
        return pretty_print_object(
            "StakingOperation",
            id=self.id,
            network_id=self.network_id,
            address_id=self.address_id,
            status=self.status,
            state=self.state.value,
        )


class PayloadSignature(Operation):
    """
    A signature over an arbitrary hash.

    The hash is carried as the operation's single transaction. Signatures are
    submitted when the operation is created, so there is nothing to
    broadcast: a ``signed`` status on the platform completes the operation
    and the state goes straight from ``signed`` to ``complete``.
    """

    kind = OperationKind.PAYLOAD_SIGNATURE
    id_field = "payload_signature_id"
    chain = (OperationState.CREATED, OperationState.SIGNED, OperationState.COMPLETE)

    _STATUSES = {
        "pending": TransactionStatus.PENDING,
        "signed": TransactionStatus.COMPLETE,
        "failed": TransactionStatus.FAILED,
    }

    def _transactions_from(self, payload: dict[str, Any]) -> list[Transaction]:
        unsigned_payload = payload.get("unsigned_payload")
        if not unsigned_payload:
            return []
        status = self._STATUSES.get(payload.get("status") or "pending", TransactionStatus.UNSPECIFIED)
        return [
            Transaction(
                unsigned_payload=unsigned_payload,
                status=status,
                signed_payload=payload.get("signature") or None,
                raw_hash=True,
            )
        ]

    def _sign_one(self, signer: "SigningStrategy", tx: Transaction) -> Optional[str]:
        return signer.sign_hash(tx.unsigned_payload)

    def broadcast(self) -> "PayloadSignature":
        raise InvalidStateTransitionError(self.id, self.state.value, OperationState.BROADCAST.value)

    @property
    def unsigned_payload(self) -> str:
        return self.transactions[0].unsigned_payload

    @property
    def signature(self) -> Optional[str]:
        return self.transactions[0].signed_payload

    @property
    def status(self) -> str:
        return self._model.get("status") or "pending"

    def __str__(self) -> str:
        return pretty_print_object(
            "PayloadSignature",
            id=self.id,
            wallet_id=self.wallet_id,
            address_id=self.address_id,
            status=self.status,
            unsigned_payload=self.unsigned_payload,
            signature=self.signature,
        )


class SmartContract(Operation):
    """
    Deployment of a token contract built by the platform.

    Broadcasting submits the deployment transaction; ``contract_address`` is
    known from the moment the deployment is built.
    """

    kind = OperationKind.SMART_CONTRACT
    id_field = "smart_contract_id"

    @property
    def address_id(self) -> str:
        return self._model.get("deployer_address") or ""

    @property
    def contract_address(self) -> str:
        return self._model.get("contract_address") or ""

    @property
    def contract_type(self) -> str:
        return self._model.get("type") or ""

    @property
    def options(self) -> dict[str, Any]:
        return self._model.get("options") or {}

    @property
    def transaction(self) -> Transaction:
        return self.transactions[0]

    def __str__(self) -> str:
        return pretty_print_object(
            "SmartContract",
            smart_contract_id=self.id,
            network_id=self.network_id,
            contract_address=self.contract_address,
            deployer_address=self.address_id,
            type=self.contract_type,
            state=self.state.value,
        )


OPERATION_TYPES: dict[OperationKind, type[Operation]] = {
    cls.kind: cls
    for cls in (Transfer, Trade, ContractInvocation, StakingOperation, PayloadSignature, SmartContract)
}


def operation_from_dict(
    kind: OperationKind,
    payload: dict[str, Any],
    api: "RemoteBuilder",
    delegated: Optional[bool] = False,
) -> Operation:
    """Build the operation variant registered for ``kind``."""
    return OPERATION_TYPES[OperationKind(kind)](payload, api, delegated=delegated)
