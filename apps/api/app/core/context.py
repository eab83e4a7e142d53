from __future__ import annotations

import uuid
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


@dataclass
class RequestContext:
    request_id: str
    correlation_id: str
    user_id: str | None = None
    tenant_id: uuid.UUID | None = None


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if context is None:
        correlation_id = getattr(request.state, "correlation_id", None) or ""
        context = RequestContext(request_id=correlation_id, correlation_id=correlation_id)
        request.state.context = context
    return context


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        context = get_request_context(request)
        response = await call_next(request)
        response.headers["x-request-id"] = context.request_id
        return response
