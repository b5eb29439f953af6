"""
Auth API endpoints: register, login and refresh-token renewal.

The refresh token never appears in a response body; it travels as an
HttpOnly cookie scoped to `/auth`.
"""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Response, status

from revenue_api.core import config

from . import schemas, security, service

REFRESH_COOKIE = "refresh_token"
REFRESH_COOKIE_PATH = "/auth"

router = APIRouter(prefix="/auth")


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=security.refresh_token_ttl_seconds(),
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=config.is_production(),
        samesite="lax",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: schemas.RegisterRequest, response: Response) -> dict:
    result = await service.register(payload)
    _set_refresh_cookie(response, result.refresh_token)
    return result.model_dump()


@router.post("/login")
async def login(payload: schemas.LoginRequest, response: Response) -> dict:
    result = await service.login(payload)
    _set_refresh_cookie(response, result.refresh_token)
    return result.model_dump()


@router.post("/renew")
async def renew(
    response: Response,
    refresh_token: str | None = Cookie(default=None),
) -> dict:
    result = await service.renew(refresh_token)
    _set_refresh_cookie(response, result.refresh_token)
    return result.model_dump()
