# tests/helpers/fakes.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from app.adapters.auth_client import CurrentUser
from app.adapters.payment_gateway import GatewayError, GatewayStatus, GatewayToken

Scripted = Union[GatewayStatus, GatewayError]


def gw_status(
    transaction_status: Optional[str],
    *,
    settlement_time: Optional[str] = None,
    transaction_time: Optional[str] = None,
    status_code: str = "200",
    transaction_id: Optional[str] = None,
) -> GatewayStatus:
    raw: Dict[str, Any] = {"status_code": status_code, "transaction_status": transaction_status}
    if transaction_id:
        raw["transaction_id"] = transaction_id
    if settlement_time:
        raw["settlement_time"] = settlement_time
    if transaction_time:
        raw["transaction_time"] = transaction_time
    return GatewayStatus(
        transaction_status=transaction_status,
        settlement_time=settlement_time,
        transaction_time=transaction_time,
        status_code=status_code,
        raw=raw,
    )


class FakeGateway:
    """
    In-memory PaymentGateway.

    - statuses[order_id]: GatewayStatus to return or GatewayError to raise
    - unknown orders report `pending`
    - fail_create: create_transaction raises GatewayError
    """

    def __init__(self) -> None:
        self.statuses: Dict[str, Scripted] = {}
        self.fail_create: bool = False
        self.created: List[Dict[str, Any]] = []
        self.status_calls: List[str] = []
        self.closed = False

    def script(self, order_id: str, outcome: Scripted) -> None:
        self.statuses[order_id] = outcome

    async def create_transaction(self, payload: Dict[str, Any]) -> GatewayToken:
        if self.fail_create:
            raise GatewayError("snap unavailable", status_code=503)
        self.created.append(payload)
        order_id = payload["transaction_details"]["order_id"]
        return GatewayToken(token=f"tok-{order_id}", redirect_url=f"https://pay.test/{order_id}")

    async def get_status(self, order_id: str) -> GatewayStatus:
        self.status_calls.append(order_id)
        outcome = self.statuses.get(order_id, gw_status("pending"))
        if isinstance(outcome, GatewayError):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


class RecordingNotifier:
    """Notifier that only remembers what it was asked to send."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self.admin_sent: List[Tuple[str, Dict[str, Any]]] = []

    async def notify(self, user_id: str, type: str, payload: Dict[str, Any]) -> None:
        self.sent.append((user_id, str(type), dict(payload or {})))

    async def notify_all_admins(self, type: str, payload: Dict[str, Any]) -> None:
        self.admin_sent.append((str(type), dict(payload or {})))

    def types_for(self, user_id: str) -> List[str]:
        return [t for uid, t, _ in self.sent if uid == user_id]

    def admin_types(self) -> List[str]:
        return [t for t, _ in self.admin_sent]


class FakeAuth:
    """Cookie `session=<user id>` resolves to a registered CurrentUser."""

    def __init__(self) -> None:
        self.users: Dict[str, CurrentUser] = {}

    def register(self, user: CurrentUser) -> CurrentUser:
        self.users[user.id] = user
        return user

    async def get_session(self, cookie: Optional[str]) -> Optional[CurrentUser]:
        if not cookie:
            return None
        for part in cookie.split(";"):
            name, _, value = part.strip().partition("=")
            if name == "session":
                return self.users.get(value)
        return None

    async def aclose(self) -> None:
        return None


def cookie_for(user_id: str) -> Dict[str, str]:
    return {"cookie": f"session={user_id}"}
