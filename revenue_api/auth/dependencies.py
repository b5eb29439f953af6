"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from fastapi import Depends, Header

from revenue_api.core.errors import ErrorCode, bearer_error

from . import schemas, service

MISSING_BEARER_MESSAGE = "Bearer é obrigatório"


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise bearer_error(401, MISSING_BEARER_MESSAGE, ErrorCode.MISSING_TOKEN)

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise bearer_error(401, MISSING_BEARER_MESSAGE, ErrorCode.MISSING_TOKEN)

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise bearer_error(401, MISSING_BEARER_MESSAGE, ErrorCode.MISSING_TOKEN)
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_user(access_token: str = Depends(get_bearer_token)) -> schemas.AuthUser:
    return service.get_auth_user(access_token)
