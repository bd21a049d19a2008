# app/adapters/payment_gateway.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

log = logging.getLogger("backoffice.gateway")

SANDBOX_CORE_URL = "https://api.sandbox.midtrans.com"
PRODUCTION_CORE_URL = "https://api.midtrans.com"
SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1"
PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1"

# Midtrans reports an expired transaction as body status 407 on a 200 response;
# that is data, not a failure
_STATUS_AS_DATA = {"407"}


@dataclass(frozen=True)
class GatewayToken:
    token: str
    redirect_url: Optional[str] = None


@dataclass(frozen=True)
class GatewayStatus:
    transaction_status: Optional[str]
    settlement_time: Optional[str] = None
    transaction_time: Optional[str] = None
    status_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class GatewayError(Exception):
    """
    Gateway call failure.

    - status_code: HTTP (or body) status, None for transport failures
    - transaction_status: transaction state embedded in the error body, if any
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        transaction_status: Optional[str] = None,
        api_response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.transaction_status = transaction_status
        self.api_response = api_response or {}


class PaymentGateway(Protocol):
    """Payment gateway port used by order creation and reconciliation."""

    async def create_transaction(self, payload: Dict[str, Any]) -> GatewayToken:
        """Create a payable transaction; payload carries transaction_details, item_details, etc."""
        ...

    async def get_status(self, order_id: str) -> GatewayStatus:
        """Current transaction state for `order_id`; raises GatewayError."""
        ...

    async def aclose(self) -> None:
        ...


def _int_or_none(v: Any) -> Optional[int]:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


class MidtransGateway:
    """
    Midtrans Core API (status) + Snap (token) over httpx.

    Auth is HTTP basic with the server key as user and an empty password.
    """

    def __init__(
        self,
        *,
        server_key: str,
        is_production: bool = False,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._core_url = PRODUCTION_CORE_URL if is_production else SANDBOX_CORE_URL
        self._snap_url = PRODUCTION_SNAP_URL if is_production else SANDBOX_SNAP_URL
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._auth = httpx.BasicAuth(server_key, "")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, *, json: Any = None) -> Dict[str, Any]:
        try:
            resp = await self._client.request(
                method,
                url,
                json=json,
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise GatewayError(f"gateway transport error: {exc!r}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 400:
            raise GatewayError(
                f"gateway HTTP {resp.status_code}",
                status_code=resp.status_code,
                transaction_status=body.get("transaction_status"),
                api_response=body,
            )

        body_status = str(body.get("status_code") or "")
        code = _int_or_none(body_status)
        if code is not None and code >= 400 and body_status not in _STATUS_AS_DATA:
            raise GatewayError(
                str(body.get("status_message") or f"gateway status {body_status}"),
                status_code=code,
                transaction_status=body.get("transaction_status"),
                api_response=body,
            )
        return body

    async def create_transaction(self, payload: Dict[str, Any]) -> GatewayToken:
        body = await self._request("POST", f"{self._snap_url}/transactions", json=payload)
        token = body.get("token")
        if not token:
            raise GatewayError("gateway returned no token", api_response=body)
        return GatewayToken(token=str(token), redirect_url=body.get("redirect_url"))

    async def get_status(self, order_id: str) -> GatewayStatus:
        body = await self._request("GET", f"{self._core_url}/v2/{order_id}/status")
        status_code = body.get("status_code")
        transaction_status = body.get("transaction_status")
        if str(status_code or "") in _STATUS_AS_DATA:
            # 407: transaction expired on the gateway side
            transaction_status = transaction_status or "expire"
            log.info("gateway reports %s for order %s (status %s)", transaction_status, order_id, status_code)
        return GatewayStatus(
            transaction_status=transaction_status,
            settlement_time=body.get("settlement_time"),
            transaction_time=body.get("transaction_time"),
            status_code=str(status_code) if status_code is not None else None,
            raw=body,
        )
