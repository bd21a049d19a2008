# app/http_problem_handlers.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.api.errors import BizError
from app.api.problem import ProblemDetail, make_problem, new_trace_id

logger = logging.getLogger("backoffice")

_HTTP_CODES = {401: "UNAUTHORIZED", 403: "UNAUTHORIZED", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


def _respond(
    req: Request,
    status: int,
    code: str,
    message: str,
    *,
    details: Optional[Sequence[ProblemDetail]] = None,
    trace_id: Optional[str] = None,
) -> JSONResponse:
    body = make_problem(
        status_code=status,
        error_code=code,
        message=message,
        context={"path": req.url.path, "method": req.method},
        details=details,
        trace_id=trace_id or new_trace_id(),
    )
    return JSONResponse(status_code=status, content=body)


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for i, err in enumerate(exc.errors()):
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        out.append(
            {
                "type": "validation",
                "path": loc or f"request[{i}]",
                "reason": str(err.get("msg") or err.get("type") or "invalid"),
            }
        )
    return out


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as Problem JSON."""

    @app.exception_handler(BizError)
    async def _biz(req: Request, exc: BizError):
        trace_id = new_trace_id()
        if exc.status >= 500:
            logger.error("%s [%s] %s %s: %s", exc.code, trace_id, req.method, req.url.path, exc.message)
        return _respond(req, exc.status, exc.code, exc.message, details=exc.details, trace_id=trace_id)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(req: Request, exc: RequestValidationError):
        return _respond(
            req, 422, "VALIDATION_ERROR", "request validation failed", details=_validation_details(exc)
        )

    @app.exception_handler(HTTPException)
    async def _http(req: Request, exc: HTTPException):
        status = int(exc.status_code)
        return _respond(req, status, _HTTP_CODES.get(status, "HTTP_ERROR"), str(exc.detail or "request rejected"))

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception):
        trace_id = new_trace_id()
        logger.exception("unhandled error [%s] %s %s", trace_id, req.method, req.url.path)
        return _respond(req, 500, "INTERNAL", "internal error, please retry later", trace_id=trace_id)
