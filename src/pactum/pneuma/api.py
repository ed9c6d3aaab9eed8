"""
Platform API client.

:class:`RemoteBuilder` is the boundary the ledger depends on: it builds
unsigned operations, accepts signed payloads for broadcast and answers status
and balance queries. :class:`PlatformClient` implements it over the REST
platform with httpx.

Authentication is a bearer token; request signing and retries are left to
the deployment in front of the platform.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

import httpx

from ..config import Configuration
from ..errors import APIError, BroadcastError, RemoteBuildError
from ..ledger.amount import Asset, BalanceMap, CryptoAmount, primary_denomination
from ..ledger.operation import OperationKind
from ..utils import normalize_network, to_rfc3339
from .pagination import Page

logger = logging.getLogger(__name__)

COLLECTIONS: dict[OperationKind, str] = {
    OperationKind.TRANSFER: "transfers",
    OperationKind.TRADE: "trades",
    OperationKind.STAKING: "staking_operations",
    OperationKind.CONTRACT_INVOCATION: "contract_invocations",
    OperationKind.PAYLOAD_SIGNATURE: "payload_signatures",
    OperationKind.SMART_CONTRACT: "smart_contracts",
}

# smart contracts are submitted through /deploy rather than /broadcast
SUBMIT_ACTIONS: dict[OperationKind, str] = {OperationKind.SMART_CONTRACT: "deploy"}


class RemoteBuilder(Protocol):
    def get_asset(self, network_id: str, asset_id: str) -> Asset:
        ...

    def get_balance(self, network_id: str, address_id: str, asset_id: str) -> Optional[CryptoAmount]:
        ...

    def list_balances(self, network_id: str, address_id: str) -> BalanceMap:
        ...

    def build_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: str,
        address_id: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        ...

    def broadcast(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        operation_id: str,
        signed_payloads: Sequence[str],
        transaction_index: Optional[int] = None,
    ) -> dict[str, Any]:
        ...

    def get_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: Optional[str],
        address_id: str,
        operation_id: str,
    ) -> dict[str, Any]:
        ...

    def list_operations(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        page_token: Optional[str] = None,
    ) -> Page:
        ...

    def get_staking_context(
        self, network_id: str, address_id: str, asset_id: str, options: dict[str, Any]
    ) -> dict[str, Any]:
        ...

    def build_staking_operation(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        action: str,
        options: dict[str, Any],
    ) -> dict[str, Any]:
        ...

    def list_staking_rewards(
        self,
        network_id: str,
        asset_id: str,
        address_ids: Sequence[str],
        start_time: datetime,
        end_time: datetime,
        format: str,
        page_token: Optional[str] = None,
    ) -> Page:
        ...

    def list_historical_staking_balances(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        start_time: datetime,
        end_time: datetime,
        page_token: Optional[str] = None,
    ) -> Page:
        ...

    def list_historical_balances(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        page_token: Optional[str] = None,
    ) -> Page:
        ...

    def request_faucet_funds(
        self, network_id: str, address_id: str, asset_id: Optional[str] = None
    ) -> dict[str, Any]:
        ...

    def get_faucet_transaction(self, network_id: str, address_id: str, transaction_hash: str) -> dict[str, Any]:
        ...

    def get_address_reputation(self, network_id: str, address_id: str) -> dict[str, Any]:
        ...


def broadcast_body(
    kind: OperationKind,
    signed_payloads: Sequence[str],
    transaction_index: Optional[int] = None,
) -> dict[str, Any]:
    """Request body for a broadcast call. Trades send [approval, trade]."""
    if not signed_payloads:
        raise ValueError("Nothing to broadcast")
    body: dict[str, Any] = {"signed_payload": signed_payloads[-1]}
    if kind is OperationKind.TRADE and len(signed_payloads) > 1:
        body["approve_transaction_signed_payload"] = signed_payloads[0]
    if transaction_index is not None:
        body["transaction_index"] = transaction_index
    return body


class PlatformClient:
    """
    RemoteBuilder over the platform's REST API.

    Args:
        config: Explicit configuration (URL, key, page size, debug logging)
        client: Pre-built httpx client, e.g. one with a MockTransport
    """

    def __init__(self, config: Configuration, client: Optional[httpx.Client] = None) -> None:
        self.config = config
        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = client or httpx.Client(base_url=config.api_url, timeout=config.timeout_seconds)
        self._client.headers.update(headers)
        self._assets: dict[tuple[str, str], dict[str, Any]] = {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PlatformClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ============ Transport ============

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        default_error: Optional[type[APIError]] = None,
        allow_not_found: bool = False,
    ) -> Optional[dict[str, Any]]:
        """
        Send one request and decode the JSON response.

        Raises:
            APIError: Transport failure, or the most specific subclass for
                      an error response (see ``APIError.from_response``)
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        if self.config.debug_api:
            logger.debug("-> %s %s params=%s body=%s", method, path, params, json)

        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            error_class = default_error or APIError
            raise error_class(f"Request to {path} failed: {exc}") from exc

        if self.config.debug_api:
            logger.debug("<- %s %s %s %s", method, path, response.status_code, response.text)

        if allow_not_found and response.status_code == 404:
            return None
        if response.is_error:
            raise APIError.from_response(response, default=default_error)
        if not response.content:
            return {}
        return response.json()

    def _page_params(self, page_token: Optional[str]) -> dict[str, Any]:
        return {"limit": self.config.page_limit, "page": page_token}

    @staticmethod
    def _address_path(network_id: str, address_id: str) -> str:
        return f"/v1/networks/{normalize_network(network_id)}/addresses/{address_id}"

    @staticmethod
    def _operation_path(kind: OperationKind, wallet_id: str, address_id: str) -> str:
        return f"/v1/wallets/{wallet_id}/addresses/{address_id}/{COLLECTIONS[OperationKind(kind)]}"

    # ============ Assets and balances ============

    def get_asset(self, network_id: str, asset_id: str) -> Asset:
        key = (normalize_network(network_id), primary_denomination(asset_id))
        payload = self._assets.get(key)
        if payload is None:
            payload = self._request("GET", f"/v1/networks/{key[0]}/assets/{key[1]}")
            self._assets[key] = payload
        return Asset.from_dict(payload, asset_id=asset_id)

    def get_balance(self, network_id: str, address_id: str, asset_id: str) -> Optional[CryptoAmount]:
        payload = self._request(
            "GET",
            f"{self._address_path(network_id, address_id)}/balances/{primary_denomination(asset_id)}",
            allow_not_found=True,
        )
        if not payload:
            return None
        return CryptoAmount.from_dict(payload, asset_id=asset_id)

    def list_balances(self, network_id: str, address_id: str) -> BalanceMap:
        balances: list[dict[str, Any]] = []
        token: Optional[str] = None
        while True:
            page = Page.from_response(
                self._request(
                    "GET",
                    f"{self._address_path(network_id, address_id)}/balances",
                    params=self._page_params(token),
                )
            )
            balances.extend(page.items)
            if not page.items or not page.next_token:
                return BalanceMap.from_balances(balances)
            token = page.next_token

    def list_historical_balances(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        page_token: Optional[str] = None,
    ) -> Page:
        return Page.from_response(
            self._request(
                "GET",
                f"{self._address_path(network_id, address_id)}/balance_history/{primary_denomination(asset_id)}",
                params=self._page_params(page_token),
            )
        )

    def request_faucet_funds(
        self, network_id: str, address_id: str, asset_id: Optional[str] = None
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"{self._address_path(network_id, address_id)}/faucet",
            params={"asset_id": asset_id},
        )

    def get_faucet_transaction(self, network_id: str, address_id: str, transaction_hash: str) -> dict[str, Any]:
        return self._request("GET", f"{self._address_path(network_id, address_id)}/faucet/{transaction_hash}")

    def get_address_reputation(self, network_id: str, address_id: str) -> dict[str, Any]:
        return self._request("GET", f"{self._address_path(network_id, address_id)}/reputation")

    # ============ Operations ============

    def build_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: str,
        address_id: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        body = dict(params)
        if kind in (OperationKind.TRANSFER, OperationKind.STAKING):
            body.setdefault("network_id", normalize_network(network_id))
        logger.info("Building %s for %s on %s", OperationKind(kind).value, address_id, network_id)
        return self._request(
            "POST",
            self._operation_path(kind, wallet_id, address_id),
            json=body,
            default_error=RemoteBuildError,
        )

    def broadcast(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        operation_id: str,
        signed_payloads: Sequence[str],
        transaction_index: Optional[int] = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"{self._operation_path(kind, wallet_id, address_id)}/{operation_id}/"
            f"{SUBMIT_ACTIONS.get(OperationKind(kind), 'broadcast')}",
            json=broadcast_body(OperationKind(kind), signed_payloads, transaction_index),
            default_error=BroadcastError,
        )

    def get_operation(
        self,
        kind: OperationKind,
        network_id: str,
        wallet_id: Optional[str],
        address_id: str,
        operation_id: str,
    ) -> dict[str, Any]:
        if wallet_id is None:
            # operations built for external addresses are only addressable by network
            path = f"{self._address_path(network_id, address_id)}/{COLLECTIONS[OperationKind(kind)]}/{operation_id}"
        else:
            path = f"{self._operation_path(kind, wallet_id, address_id)}/{operation_id}"
        return self._request("GET", path)

    def list_operations(
        self,
        kind: OperationKind,
        wallet_id: str,
        address_id: str,
        page_token: Optional[str] = None,
    ) -> Page:
        return Page.from_response(
            self._request(
                "GET",
                self._operation_path(kind, wallet_id, address_id),
                params=self._page_params(page_token),
            )
        )

    # ============ Staking ============

    def get_staking_context(
        self, network_id: str, address_id: str, asset_id: str, options: dict[str, Any]
    ) -> dict[str, Any]:
        payload = self._request(
            "POST",
            "/v1/stake/context",
            json={
                "network_id": normalize_network(network_id),
                "address_id": address_id,
                "asset_id": asset_id,
                "options": options,
            },
        )
        return payload.get("context", payload)

    def build_staking_operation(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        action: str,
        options: dict[str, Any],
    ) -> dict[str, Any]:
        logger.info("Building %s staking operation for %s on %s", action, address_id, network_id)
        return self._request(
            "POST",
            "/v1/stake/build",
            json={
                "network_id": normalize_network(network_id),
                "address_id": address_id,
                "asset_id": asset_id,
                "action": action,
                "options": options,
            },
            default_error=RemoteBuildError,
        )

    def list_staking_rewards(
        self,
        network_id: str,
        asset_id: str,
        address_ids: Sequence[str],
        start_time: datetime,
        end_time: datetime,
        format: str,
        page_token: Optional[str] = None,
    ) -> Page:
        return Page.from_response(
            self._request(
                "POST",
                "/v1/stake/rewards/search",
                params=self._page_params(page_token),
                json={
                    "network_id": normalize_network(network_id),
                    "asset_id": asset_id,
                    "address_ids": list(address_ids),
                    "start_time": to_rfc3339(start_time),
                    "end_time": to_rfc3339(end_time),
                    "format": format,
                },
            )
        )

    def list_historical_staking_balances(
        self,
        network_id: str,
        address_id: str,
        asset_id: str,
        start_time: datetime,
        end_time: datetime,
        page_token: Optional[str] = None,
    ) -> Page:
        params = self._page_params(page_token)
        params.update(asset_id=asset_id, start_time=to_rfc3339(start_time), end_time=to_rfc3339(end_time))
        return Page.from_response(
            self._request("GET", f"{self._address_path(network_id, address_id)}/stake/balances", params=params)
        )
