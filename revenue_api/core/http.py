"""
Response envelope and exception handlers.

Success: {"success": true,  "status", "message", "data"}
Error:   {"success": false, "status", "message", "errors": [{code, message, path?}]}
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .errors import AppError, ErrorCode, ErrorDetail

logger = logging.getLogger(__name__)

# Routes that serve HTML or the raw OpenAPI document are never enveloped.
ENVELOPE_EXEMPT_PREFIXES = ("/docs", "/openapi.json")

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def build_success_response(status: int, message: str, data: Any = None) -> dict[str, Any]:
    return {
        "success": True,
        "status": status,
        "message": message,
        "data": data,
    }


def build_error_response(status: int, message: str, errors: list[ErrorDetail] | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "status": status,
        "message": message,
        "errors": list(errors or []),
    }


def error_json(
    status: int,
    message: str,
    errors: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(build_error_response(status, message, errors), status_code=status, headers=headers)


def _has_envelope(payload: Any) -> bool:
    return isinstance(payload, dict) and "success" in payload and "status" in payload


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """
    Wrap plain JSON success payloads into the success envelope.

    Error responses and payloads that already carry `success`/`status` pass
    through untouched.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if request.url.path.startswith(ENVELOPE_EXEMPT_PREFIXES):
            return response
        if response.status_code >= 400:
            return response
        if not (response.headers.get("content-type") or "").startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            logger.warning("envelope_skipped_invalid_json path=%s", request.url.path)
            return _rebuild(response, body)

        if _has_envelope(payload):
            return _rebuild(response, body)

        wrapped = JSONResponse(
            build_success_response(response.status_code, "Sucesso", payload),
            status_code=response.status_code,
        )
        # Keep Set-Cookie and friends; the new body needs its own length/type.
        passthrough = [
            (key, value)
            for key, value in response.raw_headers
            if key not in (b"content-length", b"content-type")
        ]
        wrapped.raw_headers = passthrough + wrapped.raw_headers
        return wrapped


def _rebuild(response: Response, body: bytes) -> Response:
    rebuilt = Response(content=body, status_code=response.status_code)
    rebuilt.raw_headers = [
        (key, value) for key, value in response.raw_headers if key != b"content-length"
    ] + [(b"content-length", str(len(body)).encode("latin-1"))]
    return rebuilt


def _validation_details(exc: RequestValidationError) -> list[ErrorDetail]:
    details: list[ErrorDetail] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        details.append(
            {
                "path": ".".join(loc),
                "message": str(error.get("msg") or "Valor inválido"),
                "code": str(error.get("type") or ErrorCode.VALIDATION_ERROR),
            }
        )
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        logger.warning(
            "request_handled_error method=%s path=%s status=%s code=%s message=%s",
            request.method,
            request.url.path,
            exc.status,
            exc.code,
            exc.message,
        )
        errors = exc.details or [{"code": exc.code, "message": exc.message}]
        return error_json(exc.status, exc.message, errors, exc.headers or None)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return error_json(400, "Dados inválidos", _validation_details(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = "Rota não encontrada"
            return error_json(404, message, [{"code": ErrorCode.NOT_FOUND, "message": message}])

        message = str(exc.detail or "Erro na requisição")
        return error_json(
            exc.status_code,
            message,
            [{"code": ErrorCode.HTTP_ERROR, "message": message}],
            dict(exc.headers or {}) or None,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "request_unhandled_error method=%s path=%s error=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=exc,
        )
        message = "Erro interno do servidor"
        return error_json(500, message, [{"code": ErrorCode.INTERNAL_ERROR, "message": message}])
