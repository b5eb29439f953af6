"""
Request logging middleware.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("revenue_api.request")


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        method = request.method
        path = request.url.path
        request_id = request.headers.get("x-request-id")

        logger.info(
            "request_started method=%s path=%s request_id=%s user_agent=%s",
            method,
            path,
            request_id,
            request.headers.get("user-agent"),
            extra={"attributes": {"http.method": method, "http.route": path, "request.id": request_id}},
        )

        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            logger.info(
                "request_completed method=%s path=%s status=%s duration_ms=%.2f request_id=%s",
                method,
                path,
                status,
                (time.perf_counter() - started) * 1000,
                request_id,
                extra={
                    "attributes": {
                        "http.method": method,
                        "http.route": path,
                        "http.status_code": status,
                        "request.id": request_id,
                    }
                },
            )
