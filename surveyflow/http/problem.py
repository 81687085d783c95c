"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses for HTTP errors, request validation
errors, engine errors and unexpected failures.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from surveyflow.logic.errors import SurveyFlowError, status_for

PROBLEM_MEDIA_TYPE = "application/problem+json"

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Invalid Request",
    500: "Internal Server Error",
}

logger = logging.getLogger(__name__)


def problem(status: int, detail: str, code: str | None = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "title": _TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
    }
    if code:
        body["code"] = code
    body.update(extra)
    return body


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = dict(exc.detail)
        detail.setdefault("status", status_code)
    else:
        detail = problem(status_code, str(exc.detail or ""))
    headers = {str(k): str(v) for k, v in (getattr(exc, "headers", None) or {}).items()}
    return JSONResponse(detail, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"loc": [str(p) for p in e.get("loc", ())], "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
        for e in exc.errors()
    ]
    return JSONResponse(
        problem(422, "Request validation failed", "REQUEST_INVALID", errors=errors),
        status_code=422,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def handle_surveyflow_error(request: Request, exc: SurveyFlowError) -> JSONResponse:  # noqa: D401
    status_code = status_for(exc)
    logger.info(
        "surveyflow_error code=%s status=%s path=%s",
        exc.code,
        status_code,
        getattr(request.url, "path", ""),
    )
    extra = {k: v for k, v in exc.context.items() if k not in {"title", "status", "detail", "code"}}
    return JSONResponse(
        problem(status_code, exc.message, exc.code, **extra),
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", getattr(request.url, "path", ""), exc_info=exc)
    return JSONResponse(problem(500, "Unexpected server error"), status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_surveyflow_error",
    "handle_unexpected_error",
]
