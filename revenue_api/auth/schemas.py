"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

from .security import BCRYPT_MAX_PASSWORD_BYTES

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: str) -> str:
    value = (value or "").strip().lower()
    if not _EMAIL_RE.match(value):
        raise PydanticCustomError("invalid_email", "Email inválido")
    return value


class RegisterRequest(BaseModel):
    name: str = Field(..., max_length=200)
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        if len(value.strip()) < 2:
            raise PydanticCustomError("too_small", "Nome é obrigatório")
        return value.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        if len(value) < 6:
            raise PydanticCustomError("too_small", "Senha deve ter no mínimo 6 caracteres")
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise PydanticCustomError("too_long", "Senha deve ter no máximo 72 bytes")
        return value


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("too_small", "Senha é obrigatória")
        return value


class AuthUser(BaseModel):
    id: str
    name: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class RegisteredUser(AuthUser):
    token: str


class RegisterResult(BaseModel):
    message: str
    user: RegisteredUser
    refresh_token: str = Field(exclude=True)


class SessionResult(BaseModel):
    """
    Login and renew share this shape.
    """

    message: str
    id: str
    name: str
    token: str
    refresh_token: str = Field(exclude=True)
