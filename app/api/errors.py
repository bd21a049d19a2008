# app/api/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class BizError(Exception):
    """
    Domain error carrying a stable code and the HTTP status it maps to.

    `details` are Problem detail entries (see app.api.problem.ProblemDetail).
    """

    code = "BIZ_ERROR"
    status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        *,
        reason: str | None = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        if status:
            self.status = status
        self.message = message
        self.reason = reason
        self.details = list(details or [])
        if reason and not self.details:
            self.details = [{"type": "state", "reason": reason}]


class ValidationError(BizError):
    code = "VALIDATION_ERROR"
    status = 400

    def __init__(self, message: str, *, reason: str | None = None, **kw: Any):
        super().__init__(message, reason=reason, **kw)


class NotFoundError(BizError):
    code = "NOT_FOUND"
    status = 404

    def __init__(self, message: str, **kw: Any):
        super().__init__(message, **kw)


class ConflictError(BizError):
    code = "CONFLICT"
    status = 409


class InsufficientStockError(ConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, variant_id: str, *, requested: int, available: int):
        super().__init__(
            f"insufficient stock for variant {variant_id}",
            details=[
                {
                    "type": "shortage",
                    "variant_id": variant_id,
                    "required_qty": int(requested),
                    "available_qty": int(available),
                    "short_qty": int(requested) - int(available),
                }
            ],
        )
        self.variant_id = variant_id
        self.requested = int(requested)
        self.available = int(available)


class UnauthorizedError(BizError):
    code = "UNAUTHORIZED"
    status = 403


class UnauthenticatedError(UnauthorizedError):
    status = 401


class UpstreamError(BizError):
    code = "UPSTREAM_ERROR"
    status = 502


class InternalError(BizError):
    code = "INTERNAL"
    status = 500
