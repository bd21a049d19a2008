# app/services/payment_classify.py
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from app.adapters.payment_gateway import GatewayError

SETTLE_STATES = frozenset({"settlement", "capture"})
CANCEL_STATES = frozenset({"expire", "cancel", "deny"})

# HTTP statuses the gateway uses for "no such transaction" / "expired"
_NOT_FOUND_STATUSES = frozenset({404})
_EXPIRED_STATUSES = frozenset({407, 410})


class Decision(StrEnum):
    SETTLE = "settle"
    CANCEL = "cancel"
    PENDING = "pending"


@dataclass(frozen=True)
class GatewayVerdict:
    """
    Outcome of inspecting a failed gateway call.

    terminal=True: the gateway is authoritative, cancel with `reason`
    terminal=False: transient, leave the payment pending until next tick
    """

    terminal: bool
    reason: Optional[str] = None


TRANSIENT = GatewayVerdict(terminal=False)


def classify_transaction_status(status: Optional[str]) -> Decision:
    s = (status or "").strip().lower()
    if s in SETTLE_STATES:
        return Decision.SETTLE
    if s in CANCEL_STATES:
        return Decision.CANCEL
    return Decision.PENDING


def classify_gateway_error(err: GatewayError) -> GatewayVerdict:
    embedded = (err.transaction_status or err.api_response.get("transaction_status") or "")
    embedded = str(embedded).strip().lower()
    if embedded in CANCEL_STATES:
        return GatewayVerdict(terminal=True, reason=embedded)
    if err.status_code in _NOT_FOUND_STATUSES:
        return GatewayVerdict(terminal=True, reason="not_found")
    if err.status_code in _EXPIRED_STATUSES:
        return GatewayVerdict(terminal=True, reason="expire")
    return TRANSIENT
