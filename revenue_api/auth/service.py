"""
Auth business logic.

Known failures become `AppError`s with stable codes; anything else is logged
and surfaced as a 500 with an operation-specific code.
"""

from __future__ import annotations

import logging

import asyncpg
from starlette.concurrency import run_in_threadpool

from revenue_api.core.errors import AppError, ErrorCode, bearer_error

from . import repository, schemas, security

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Email e ou senha incorretos"
UNAUTHENTICATED_MESSAGE = "Usuário não autenticado"


def _issue_token_pair(
    *,
    user_id: str,
    name: str,
    failure_code: str = ErrorCode.TOKEN_GENERATION_FAILED,
    failure_message: str = "Erro interno ao gerar token",
) -> schemas.TokenPair:
    try:
        return schemas.TokenPair(
            access_token=security.build_access_token(user_id=user_id, name=name),
            refresh_token=security.build_refresh_token(user_id=user_id, name=name),
        )
    except Exception as exc:
        logger.exception("jwt_sign_failed user_id=%s", user_id)
        raise AppError(500, failure_message, failure_code) from exc


async def register(payload: schemas.RegisterRequest) -> schemas.RegisterResult:
    try:
        password_hash = await run_in_threadpool(security.hash_password, payload.password)
        user_row = await repository.create_user(
            name=payload.name,
            email=payload.email,
            password_hash=password_hash,
        )
        if user_row is None:
            raise AppError(
                409,
                "Usuário já existe",
                ErrorCode.USER_ALREADY_EXISTS,
                [{"code": ErrorCode.USER_ALREADY_EXISTS, "message": "Usuário já existe"}],
            )

        user_id, name = str(user_row["id"]), str(user_row["name"])
        tokens = _issue_token_pair(user_id=user_id, name=name)
    except AppError:
        raise
    except asyncpg.UniqueViolationError as exc:
        raise AppError(
            409,
            "Email já cadastrado",
            ErrorCode.EMAIL_ALREADY_EXISTS,
            [{"code": ErrorCode.EMAIL_ALREADY_EXISTS, "message": "Email já cadastrado"}],
        ) from exc
    except Exception as exc:
        logger.exception("auth_register_unexpected_error")
        raise AppError(500, "Erro interno ao criar usuário", ErrorCode.REGISTER_FAILED) from exc

    logger.info("user_registered user_id=%s", user_id)
    return schemas.RegisterResult(
        message="Usuário criado com sucesso",
        user=schemas.RegisteredUser(id=user_id, name=name, token=tokens.access_token),
        refresh_token=tokens.refresh_token,
    )


async def login(payload: schemas.LoginRequest) -> schemas.SessionResult:
    try:
        user_row = await repository.get_user_by_email(payload.email)
        # Same error for unknown email and wrong password.
        if user_row is None:
            raise AppError(401, INVALID_CREDENTIALS_MESSAGE, ErrorCode.INVALID_CREDENTIALS)

        is_valid = await run_in_threadpool(
            security.verify_password,
            payload.password,
            str(user_row.get("password_hash") or ""),
        )
        if not is_valid:
            raise AppError(401, INVALID_CREDENTIALS_MESSAGE, ErrorCode.INVALID_CREDENTIALS)

        user_id, name = str(user_row["id"]), str(user_row["name"])
        tokens = _issue_token_pair(user_id=user_id, name=name)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("auth_login_unexpected_error")
        raise AppError(500, "Erro interno ao autenticar usuário", ErrorCode.LOGIN_FAILED) from exc

    return schemas.SessionResult(
        message="Login realizado com sucesso",
        id=user_id,
        name=name,
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


async def renew(refresh_token: str | None) -> schemas.SessionResult:
    incoming = (refresh_token or "").strip()
    if not incoming:
        raise bearer_error(401, "Refresh token é obrigatório", ErrorCode.MISSING_REFRESH_TOKEN)

    try:
        claims = security.decode_refresh_token(incoming)
    except security.InvalidTokenError as exc:
        logger.warning("auth_refresh_token_rejected reason=%s", exc)
        raise bearer_error(401, "Refresh token inválido", ErrorCode.INVALID_REFRESH_TOKEN) from exc

    tokens = _issue_token_pair(
        user_id=claims.id,
        name=claims.name,
        failure_code=ErrorCode.TOKEN_RENEWAL_FAILED,
        failure_message="Erro interno ao renovar token",
    )

    return schemas.SessionResult(
        message="Token renovado com sucesso",
        id=claims.id,
        name=claims.name,
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


def get_auth_user(access_token: str) -> schemas.AuthUser:
    try:
        claims = security.decode_access_token(access_token)
    except security.InvalidTokenError as exc:
        logger.warning("auth_access_token_rejected reason=%s", exc)
        raise bearer_error(401, UNAUTHENTICATED_MESSAGE, ErrorCode.INVALID_TOKEN) from exc
    return schemas.AuthUser(id=claims.id, name=claims.name)
