"""
In-memory platform implementing RemoteBuilder.

FakePlatform builds operations with real EIP-1559 unsigned payloads so the
local signer exercises eth-account end to end, records every call, and lets
tests script failures and settlement.
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Optional, Sequence

from eth_account import Account

from pactum.errors import BroadcastError, FaucetLimitReachedError, NotFoundError
from pactum.ledger.amount import Asset, BalanceMap, CryptoAmount, primary_denomination
from pactum.ledger.operation import OperationKind
from pactum.pneuma.pagination import Page
from pactum.sigil.signer import encode_unsigned_payload
from pactum.utils import normalize_network

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = Account.from_key(PRIVATE_KEY).address
DESTINATION = "0x" + "22" * 20
NETWORK = "base-sepolia"
WALLET_ID = "wallet-1"

ETH = {"network_id": NETWORK, "asset_id": "eth", "decimals": 18}
USDC = {
    "network_id": NETWORK,
    "asset_id": "usdc",
    "decimals": 6,
    "contract_address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
}
DOT = {"network_id": NETWORK, "asset_id": "dot", "decimals": 0}


def make_unsigned_payload(nonce: int = 0, value: int = 10**15) -> str:
    return encode_unsigned_payload(
        {
            "chainId": 84532,
            "nonce": nonce,
            "maxPriorityFeePerGas": 10**9,
            "maxFeePerGas": 2 * 10**9,
            "gas": 21000,
            "to": DESTINATION,
            "value": value,
            "data": "0x",
        }
    )


def page_of(items: list, token: Optional[str], page_size: int) -> Page:
    offset = int(token or 0)
    chunk = items[offset : offset + page_size]
    has_more = offset + page_size < len(items)
    return Page.from_response(
        {"data": chunk, "has_more": has_more, "next_page": str(offset + page_size) if has_more else None}
    )


class FakePlatform:
    """In-memory RemoteBuilder."""

    def __init__(self) -> None:
        self.assets: dict[str, dict[str, Any]] = {"eth": ETH, "usdc": USDC, "dot": DOT}
        self.balances: dict[tuple[str, str], int] = {}
        self.staking_context: dict[str, Any] = {}
        self.operations: dict[str, dict[str, Any]] = {}
        self.history: dict[OperationKind, list[dict[str, Any]]] = {}
        self.rewards: list[dict[str, Any]] = []
        self.historical_balances: list[dict[str, Any]] = []
        self.historical_staking_balances: list[dict[str, Any]] = []
        self.reputation: dict[str, Any] = {"score": 0, "metadata": {}}
        self.closed = False
        self.calls: list[tuple[str, Any]] = []
        self.page_size = 2
        self.auto_settle = True
        self.fail_broadcast_calls: set[int] = set()
        self.faucet_limited = False
        self.staking_transaction_count = 1
        self._broadcast_count = 0
        self._ids = itertools.count(1)

    # ============ Helpers ============

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _tx(self, address_id: str, nonce: int = 0) -> dict[str, Any]:
        return {
            "unsigned_payload": make_unsigned_payload(nonce),
            "status": "pending",
            "network_id": NETWORK,
            "from_address_id": address_id,
        }

    def _store(self, kind: OperationKind, operation_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.operations[operation_id] = payload
        self.history.setdefault(kind, []).append(payload)
        return copy.deepcopy(payload)

    def _transactions(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        txs = []
        for key in ("approve_transaction", "transaction", "sponsored_send"):
            if payload.get(key):
                txs.append(payload[key])
        return txs + list(payload.get("transactions") or [])

    def set_balance(self, address_id: str, asset_id: str, atomic: int) -> None:
        self.balances[(address_id, asset_id)] = atomic

    def set_staking_context(self, asset: dict[str, Any], stakeable: int, unstakeable: int, claimable: int) -> None:
        self.staking_context = {
            "stakeable_balance": {"amount": str(stakeable), "asset": asset},
            "unstakeable_balance": {"amount": str(unstakeable), "asset": asset},
            "claimable_balance": {"amount": str(claimable), "asset": asset},
        }

    def settle(self, operation_id: str, status: str = "complete") -> None:
        payload = self.operations[operation_id]
        for tx in self._transactions(payload):
            tx["status"] = status
        if "transactions" in payload:
            payload["status"] = status

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakePlatform":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ============ RemoteBuilder ============

    def get_asset(self, network_id: str, asset_id: str) -> Asset:
        self.calls.append(("get_asset", asset_id))
        payload = self.assets.get(primary_denomination(asset_id))
        if payload is None:
            raise NotFoundError("API error", http_code=404, api_code="not_found")
        return Asset.from_dict(payload, asset_id=asset_id)

    def get_balance(self, network_id: str, address_id: str, asset_id: str) -> Optional[CryptoAmount]:
        self.calls.append(("get_balance", asset_id))
        primary = primary_denomination(asset_id)
        atomic = self.balances.get((address_id, primary))
        if atomic is None:
            return None
        return CryptoAmount.from_dict({"amount": str(atomic), "asset": self.assets[primary]}, asset_id=asset_id)

    def list_balances(self, network_id: str, address_id: str) -> BalanceMap:
        self.calls.append(("list_balances", address_id))
        return BalanceMap.from_balances(
            [
                {"amount": str(atomic), "asset": self.assets[asset_id]}
                for (owner, asset_id), atomic in self.balances.items()
                if owner == address_id
            ]
        )

    def build_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: str,
        address_id: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append(("build_operation", (kind, params)))
        base = {"network_id": normalize_network(network_id), "wallet_id": wallet_id, "address_id": address_id}

        if kind is OperationKind.TRANSFER:
            operation_id = self._next_id("transfer")
            payload = dict(
                base,
                transfer_id=operation_id,
                destination=params["destination"],
                asset_id=params["asset_id"],
                amount=params["amount"],
                asset=self.assets[params["asset_id"]],
            )
            if params.get("gasless"):
                payload["sponsored_send"] = {"typed_data_hash": "0x" + "ab" * 32, "status": "pending"}
            else:
                payload["transaction"] = self._tx(address_id)
            return self._store(kind, operation_id, payload)

        if kind is OperationKind.TRADE:
            operation_id = self._next_id("trade")
            payload = dict(
                base,
                trade_id=operation_id,
                from_amount=params["amount"],
                from_asset=self.assets[params["from_asset_id"]],
                to_amount="1000000",
                to_asset=self.assets[params["to_asset_id"]],
                approve_transaction=self._tx(address_id, nonce=0),
                transaction=self._tx(address_id, nonce=1),
            )
            return self._store(kind, operation_id, payload)

        if kind is OperationKind.CONTRACT_INVOCATION:
            operation_id = self._next_id("invocation")
            payload = dict(base, contract_invocation_id=operation_id, transaction=self._tx(address_id), **params)
            return self._store(kind, operation_id, payload)

        if kind is OperationKind.SMART_CONTRACT:
            operation_id = self._next_id("contract")
            payload = dict(
                base,
                smart_contract_id=operation_id,
                deployer_address=address_id,
                contract_address="0x" + "cc" * 20,
                type=params["type"],
                options=params["options"],
                transaction=self._tx(address_id),
            )
            return self._store(kind, operation_id, payload)

        if kind is OperationKind.PAYLOAD_SIGNATURE:
            operation_id = self._next_id("signature")
            payload = dict(
                base,
                payload_signature_id=operation_id,
                unsigned_payload=params["unsigned_payload"],
                signature=params.get("signature"),
                status="signed" if params.get("signature") else "pending",
            )
            return self._store(kind, operation_id, payload)

        operation_id = self._next_id("staking")
        payload = dict(
            base,
            id=operation_id,
            status="initialized",
            transactions=[self._tx(address_id, nonce=i) for i in range(self.staking_transaction_count)],
        )
        return self._store(kind, operation_id, payload)

    def broadcast(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        operation_id: str,
        signed_payloads: Sequence[str],
        transaction_index: Optional[int] = None,
    ) -> dict[str, Any]:
        self._broadcast_count += 1
        self.calls.append(("broadcast", (operation_id, list(signed_payloads), transaction_index)))
        if self._broadcast_count in self.fail_broadcast_calls:
            raise BroadcastError("Broadcast failed", http_code=500, api_code="internal", api_message="node unavailable")

        payload = self.operations[operation_id]
        if transaction_index is not None:
            targets = [payload["transactions"][transaction_index]]
        else:
            targets = self._transactions(payload)
        for tx, signed in zip(targets, signed_payloads):
            if "typed_data_hash" in tx:
                tx["signature"] = signed
                tx["status"] = "submitted"
            else:
                tx["signed_payload"] = signed
                tx["status"] = "broadcast"
            tx["transaction_hash"] = "0x" + format(self._broadcast_count, "064x")
            tx["transaction_link"] = f"https://sepolia.basescan.org/tx/{tx['transaction_hash']}"
        return copy.deepcopy(payload)

    def get_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: Optional[str],
        address_id: str,
        operation_id: str,
    ) -> dict[str, Any]:
        self.calls.append(("get_operation", operation_id))
        payload = self.operations[operation_id]
        if self.auto_settle:
            txs = self._transactions(payload)
            for tx in txs:
                if tx.get("status") in ("broadcast", "submitted"):
                    tx["status"] = "complete"
            if "transactions" in payload and txs and all(tx["status"] == "complete" for tx in txs):
                payload["status"] = "complete"
        return copy.deepcopy(payload)

    def list_operations(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        page_token: Optional[str] = None,
    ) -> Page:
        self.calls.append(("list_operations", page_token))
        return page_of([copy.deepcopy(p) for p in self.history.get(kind, [])], page_token, self.page_size)

    def get_staking_context(
        self, network_id: str, address_id: str, asset_id: str, options: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("get_staking_context", options))
        return copy.deepcopy(self.staking_context)

    def build_staking_operation(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        action: str,
        options: dict[str, Any],
    ) -> dict[str, Any]:
        self.calls.append(("build_staking_operation", (action, options)))
        operation_id = self._next_id("staking")
        payload = {
            "id": operation_id,
            "network_id": normalize_network(network_id),
            "address_id": address_id,
            "status": "initialized",
            "transactions": [self._tx(address_id)],
        }
        return self._store(OperationKind.STAKING, operation_id, payload)

    def list_staking_rewards(self, network_id, asset_id, address_ids, start_time, end_time, format, page_token=None) -> Page:
        self.calls.append(("list_staking_rewards", page_token))
        return page_of(self.rewards, page_token, self.page_size)

    def list_historical_staking_balances(
        self, network_id, address_id, asset_id, start_time, end_time, page_token=None
    ) -> Page:
        self.calls.append(("list_historical_staking_balances", page_token))
        return page_of(self.historical_staking_balances, page_token, self.page_size)

    def list_historical_balances(self, network_id, address_id, asset_id, page_token=None) -> Page:
        self.calls.append(("list_historical_balances", page_token))
        return page_of(self.historical_balances, page_token, self.page_size)

    def request_faucet_funds(self, network_id: str, address_id: str, asset_id: Optional[str] = None) -> dict[str, Any]:
        self.calls.append(("request_faucet_funds", asset_id))
        if self.faucet_limited:
            raise FaucetLimitReachedError("API error", http_code=429, api_code="faucet_limit_reached")
        return {
            "transaction": {
                "transaction_hash": "0xfaucet",
                "status": "broadcast",
                "network_id": NETWORK,
                "to_address_id": address_id,
                "unsigned_payload": "",
            }
        }

    def get_faucet_transaction(self, network_id: str, address_id: str, transaction_hash: str) -> dict[str, Any]:
        self.calls.append(("get_faucet_transaction", transaction_hash))
        return {
            "transaction": {
                "transaction_hash": transaction_hash,
                "status": "complete",
                "network_id": NETWORK,
                "to_address_id": address_id,
            }
        }


    def get_address_reputation(self, network_id: str, address_id: str) -> dict[str, Any]:
        self.calls.append(("get_address_reputation", address_id))
        return copy.deepcopy(self.reputation)
