"""
Application error type and stable error codes.

`code` values are part of the public contract; user-facing `message` values
may change wording without breaking clients.
"""

from __future__ import annotations

from typing import TypedDict


class ErrorCode:
    APP_ERROR = "app_error"
    USER_ALREADY_EXISTS = "user_already_exists"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    REGISTER_FAILED = "register_failed"
    INVALID_CREDENTIALS = "invalid_credentials"
    LOGIN_FAILED = "login_failed"
    TOKEN_GENERATION_FAILED = "token_generation_failed"
    INVALID_TOKEN = "invalid_token"
    MISSING_TOKEN = "missing_token"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    INVALID_REFRESH_TOKEN = "invalid_refresh_token"
    TOKEN_RENEWAL_FAILED = "token_renewal_failed"
    REVENUE_NOT_FOUND = "revenue_not_found"
    INVALID_REVENUE_RANGE = "invalid_revenue_range"
    REVENUE_CREATE_FAILED = "revenue_create_failed"
    REVENUE_UPDATE_FAILED = "revenue_update_failed"
    REVENUE_DELETE_FAILED = "revenue_delete_failed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    DOCS_UNAUTHORIZED = "docs_unauthorized"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    HTTP_ERROR = "http_error"
    INTERNAL_ERROR = "internal_error"


class ErrorDetail(TypedDict, total=False):
    code: str
    message: str
    path: str


class AppError(Exception):
    def __init__(
        self,
        status: int,
        message: str,
        code: str = ErrorCode.APP_ERROR,
        details: list[ErrorDetail] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.code = code
        self.details = list(details or [])
        self.headers = dict(headers or {})

    def __repr__(self) -> str:
        return f"AppError(status={self.status}, code={self.code!r}, message={self.message!r})"


def bearer_error(status: int, message: str, code: str) -> AppError:
    """
    401-style error carrying a `WWW-Authenticate` challenge for `code`.
    """
    return AppError(
        status,
        message,
        code,
        [{"code": code, "message": message}],
        {"WWW-Authenticate": f'Bearer error="{code}"'},
    )
