"""
Pydantic schemas for revenue endpoints.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

RevenueType = Literal["clt", "pj", "freelance", "donation", "other"]
RevenueCycle = Literal["monthly", "yearly"]

REVENUE_TYPES: tuple[str, ...] = ("clt", "pj", "freelance", "donation", "other")
REVENUE_CYCLES: tuple[str, ...] = ("monthly", "yearly")

# benefits.value is BIGINT.
MAX_BENEFIT_VALUE = 2**63 - 1


class BenefitInput(BaseModel):
    type: str
    value: int

    @field_validator("type")
    @classmethod
    def _type(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("too_small", "O tipo do benefício é obrigatório.")
        return value.strip()

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, value: object) -> object:
        # Benefit values are integer cents.
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise PydanticCustomError("invalid_type", "O valor do benefício deve ser um inteiro em centavos.")
        if value < 0:
            raise PydanticCustomError("too_small", "O valor do benefício deve ser positivo.")
        if value > MAX_BENEFIT_VALUE:
            raise PydanticCustomError("too_large", "O valor do benefício excede o limite permitido.")
        return value


class RevenueInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: str
    type: str
    revenue_as_range: bool = Field(..., alias="revenueAsRange")
    min_revenue: float
    max_revenue: float | None = Field(default=None, validate_default=True)
    cycle: str
    benefits: list[BenefitInput] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("too_small", "O nome é obrigatório.")
        return value.strip()

    @field_validator("type")
    @classmethod
    def _type(cls, value: str) -> str:
        if value not in REVENUE_TYPES:
            raise PydanticCustomError("invalid_enum_value", "Selecione um tipo válido.")
        return value

    @field_validator("cycle")
    @classmethod
    def _cycle(cls, value: str) -> str:
        if value not in REVENUE_CYCLES:
            raise PydanticCustomError("invalid_enum_value", "Selecione um ciclo válido.")
        return value

    @field_validator("min_revenue", "max_revenue", mode="before")
    @classmethod
    def _finite(cls, value: object) -> object:
        # JSON bodies may carry NaN / Infinity literals.
        if isinstance(value, float) and not math.isfinite(value):
            raise PydanticCustomError("finite_number", "A receita deve ser um número finito.")
        return value

    @field_validator("min_revenue")
    @classmethod
    def _min_revenue(cls, value: float) -> float:
        if value < 0:
            raise PydanticCustomError("too_small", "A receita deve ser um número positivo.")
        return value

    @field_validator("max_revenue")
    @classmethod
    def _max_revenue(cls, value: float | None, info: ValidationInfo) -> float | None:
        if value is not None and value < 0:
            raise PydanticCustomError("too_small", "A receita deve ser um número positivo.")
        if value is None and info.data.get("revenue_as_range"):
            raise PydanticCustomError("custom", "O campo de receita máxima é obrigatório.")
        return value


class BenefitItem(BaseModel):
    id: str
    revenue_id: str
    type: str
    value: int


class BenefitListItem(BaseModel):
    type: str
    value: int


class RevenueItem(BaseModel):
    """
    Full record, returned by create and update.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: RevenueType
    revenue_as_range: bool = Field(alias="revenueAsRange")
    min_revenue: float
    max_revenue: float | None
    cycle: RevenueCycle
    benefits: list[BenefitItem]
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class RevenueListItem(BaseModel):
    id: str
    name: str
    type: RevenueType
    min_revenue: float
    max_revenue: float | None
    cycle: RevenueCycle
    benefits: list[BenefitListItem]


class RevenueDetailItem(BaseModel):
    name: str
    type: RevenueType
    min_revenue: float
    max_revenue: float | None
    cycle: RevenueCycle
    benefits: list[BenefitItem]


class RevenueDeleted(BaseModel):
    id: str
