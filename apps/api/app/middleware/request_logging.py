from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("app.request")


def _record(method: str, path: str, status_code: int, started: float) -> dict[str, object]:
    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    observe_http_request(method=method, path=path, status=status_code, duration=duration_ms / 1000)
    return {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        method = request.method
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "http.error",
                exc_info=True,
                extra=_record(method, resolve_http_path_label(request), 500, started),
            )
            raise

        # The route is only attached to the scope once routing has run.
        path = resolve_http_path_label(request)
        logger.info("http.request", extra=_record(method, path, response.status_code, started))
        return response
