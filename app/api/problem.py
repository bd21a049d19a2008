# app/api/problem.py
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Sequence, TypedDict


class ProblemDetail(TypedDict, total=False):
    type: str  # validation | shortage | state | upstream
    path: str  # e.g. items[2]
    reason: str

    variant_id: str
    order_item_id: int
    required_qty: int
    available_qty: int
    short_qty: int
    purchased_qty: int


def new_trace_id() -> str:
    return "t_" + uuid.uuid4().hex[:12]


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Problem JSON body. Empty context/details/trace_id are omitted."""
    body: Dict[str, Any] = {
        "error_code": str(error_code),
        "message": str(message),
        "http_status": int(status_code),
    }
    optional = {"context": context, "details": list(details or []), "trace_id": trace_id}
    body.update({k: v for k, v in optional.items() if v})
    return body
