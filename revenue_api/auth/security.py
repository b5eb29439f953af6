"""
Auth security helpers: password hashing and the signed-token codec.

Tokens are HS256 JWTs carrying {id, name, sub, type, iat, exp}. Access and
refresh tokens are signed with separate secrets (refresh falls back to the
access secret) and are told apart by `type`, so neither can stand in for
the other.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import bcrypt
import jwt

from revenue_api.core import config

ACCESS = "access"
REFRESH = "refresh"

_REQUIRED_CLAIMS = ["exp", "iat", "sub"]

BCRYPT_MAX_PASSWORD_BYTES = 72

# HS256 keys shorter than 32 bytes trigger PyJWT key-length warnings.
DEFAULT_JWT_SECRET = "dev-change-this-secret-0123456789abcdef"


class AuthSecurityError(RuntimeError):
    pass


class InvalidTokenError(AuthSecurityError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    id: str
    name: str
    type: str
    iat: int
    exp: int


def jwt_secret() -> str:
    # Local default keeps development simple.
    # In production, set JWT_SECRET in environment.
    return config.env_str("JWT_SECRET", DEFAULT_JWT_SECRET)


def refresh_jwt_secret() -> str:
    return config.env_str("REFRESH_JWT_SECRET") or jwt_secret()


def jwt_algorithm() -> str:
    return config.env_str("JWT_ALG", "HS256")


def access_token_ttl_seconds() -> int:
    return config.env_int("ACCESS_TOKEN_TTL_SECONDS", 60 * 60)


def refresh_token_ttl_seconds() -> int:
    return config.env_int("REFRESH_TOKEN_TTL_SECONDS", 30 * 24 * 60 * 60)


def now_epoch_s() -> int:
    return int(time.time())


def hash_password(plain_password: str) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise AuthSecurityError("Password is empty.")
    if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
        raise AuthSecurityError("Password is longer than 72 bytes.")
    return bcrypt.hashpw(password, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def sign_token(*, user_id: str, name: str, token_type: str, secret: str, ttl_seconds: int) -> str:
    issued_at = now_epoch_s()
    payload = {
        "id": user_id,
        "name": name,
        "sub": user_id,
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=jwt_algorithm())


def verify_token(token: str, *, secret: str, expected_type: str) -> TokenClaims:
    raw = (token or "").strip()
    if not raw:
        raise InvalidTokenError("Token is empty.")

    try:
        payload: dict[str, Any] = jwt.decode(
            raw,
            secret,
            algorithms=[jwt_algorithm()],
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("Token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Invalid token.") from exc

    token_type = str(payload.get("type") or "").strip().lower()
    if token_type != expected_type:
        raise InvalidTokenError(f"Token is not an {expected_type} token.")

    user_id = payload.get("id")
    name = payload.get("name")
    if not isinstance(user_id, str) or not user_id or not isinstance(name, str):
        raise InvalidTokenError("Token is missing identity claims.")
    if payload.get("sub") != user_id:
        raise InvalidTokenError("Token subject does not match id.")

    return TokenClaims(
        id=user_id,
        name=name,
        type=token_type,
        iat=int(payload["iat"]),
        exp=int(payload["exp"]),
    )


def build_access_token(*, user_id: str, name: str) -> str:
    return sign_token(
        user_id=user_id,
        name=name,
        token_type=ACCESS,
        secret=jwt_secret(),
        ttl_seconds=access_token_ttl_seconds(),
    )


def build_refresh_token(*, user_id: str, name: str) -> str:
    return sign_token(
        user_id=user_id,
        name=name,
        token_type=REFRESH,
        secret=refresh_jwt_secret(),
        ttl_seconds=refresh_token_ttl_seconds(),
    )


def decode_access_token(token: str) -> TokenClaims:
    return verify_token(token, secret=jwt_secret(), expected_type=ACCESS)


def decode_refresh_token(token: str) -> TokenClaims:
    return verify_token(token, secret=refresh_jwt_secret(), expected_type=REFRESH)
