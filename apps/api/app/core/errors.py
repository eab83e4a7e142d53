from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.context import get_correlation_id


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(getattr(request.state, "context", None), "request_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def install_exception_handlers(app: FastAPI) -> None:
    """Route HTTP errors raised outside a handler (dependencies, guards) through the envelope."""

    @app.exception_handler(HTTPException)
    def _handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        response = error_response(
            request,
            status_code=exc.status_code,
            code="request_failed",
            message=str(exc.detail),
            details=exc.detail,
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response
