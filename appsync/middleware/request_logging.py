"""Request logging middleware.

- Adds a unique X-Request-ID header to responses (and uses any incoming header)
- Logs method, path, status, duration, client IP and the GitHub delivery id
- Does not log request/response bodies; webhook payloads stay out of the logs
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("appsync.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        start = time.monotonic()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        context = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "request_id": request_id,
            "github_delivery": request.headers.get("X-GitHub-Delivery"),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled exception during request",
                extra={**context, "duration_ms": int((time.monotonic() - start) * 1000)},
            )
            raise

        logger.info(
            "Request finished",
            extra={
                **context,
                "status": response.status_code,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )

        response.headers.setdefault("X-Request-ID", request_id)
        return response
