"""
Revenue business logic.

Input normalization:
- `max_revenue` is forced to null when the revenue is not a range;
- a range with `max_revenue < min_revenue` is rejected before any write.
"""

from __future__ import annotations

import logging
from typing import Any

from revenue_api.core.errors import AppError, ErrorCode

from . import repository, schemas

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Renda não encontrada"


def _not_found() -> AppError:
    return AppError(
        404,
        NOT_FOUND_MESSAGE,
        ErrorCode.REVENUE_NOT_FOUND,
        [{"code": ErrorCode.REVENUE_NOT_FOUND, "message": NOT_FOUND_MESSAGE}],
    )


def normalize_input(data: schemas.RevenueInput) -> schemas.RevenueInput:
    if data.revenue_as_range and data.max_revenue is not None and data.max_revenue < data.min_revenue:
        raise AppError(
            400,
            "Faixa de renda inválida",
            ErrorCode.INVALID_REVENUE_RANGE,
            [
                {
                    "code": ErrorCode.INVALID_REVENUE_RANGE,
                    "message": "A receita máxima deve ser maior ou igual à receita mínima.",
                    "path": "max_revenue",
                }
            ],
        )

    max_revenue = data.max_revenue if data.revenue_as_range else None
    return data.model_copy(update={"max_revenue": max_revenue})


async def create(user_id: str, data: schemas.RevenueInput) -> dict[str, Any]:
    normalized = normalize_input(data)
    try:
        return await repository.create_revenue(user_id=user_id, data=normalized)
    except Exception as exc:
        logger.exception("revenue_create_unexpected_error user_id=%s", user_id)
        raise AppError(500, "Erro interno ao criar renda", ErrorCode.REVENUE_CREATE_FAILED) from exc


async def list_for_user(user_id: str) -> list[dict[str, Any]]:
    try:
        return await repository.list_revenues_by_user(user_id)
    except Exception as exc:
        logger.exception("revenue_list_unexpected_error user_id=%s", user_id)
        raise AppError(500, "Erro interno ao listar rendas", ErrorCode.INTERNAL_ERROR) from exc


async def find_by_id(user_id: str, revenue_id: str) -> dict[str, Any]:
    try:
        revenue = await repository.find_revenue_by_id(user_id, revenue_id)
    except Exception as exc:
        logger.exception("revenue_find_unexpected_error user_id=%s revenue_id=%s", user_id, revenue_id)
        raise AppError(500, "Erro interno ao buscar renda", ErrorCode.INTERNAL_ERROR) from exc

    if revenue is None:
        raise _not_found()
    return revenue


async def update(user_id: str, revenue_id: str, data: schemas.RevenueInput) -> dict[str, Any]:
    normalized = normalize_input(data)
    try:
        revenue = await repository.update_revenue(user_id, revenue_id, normalized)
    except Exception as exc:
        logger.exception("revenue_update_unexpected_error user_id=%s revenue_id=%s", user_id, revenue_id)
        raise AppError(500, "Erro interno ao atualizar renda", ErrorCode.REVENUE_UPDATE_FAILED) from exc

    if revenue is None:
        raise _not_found()
    return revenue


async def delete(user_id: str, revenue_id: str) -> dict[str, Any]:
    try:
        deleted = await repository.delete_revenue(user_id, revenue_id)
    except Exception as exc:
        logger.exception("revenue_delete_unexpected_error user_id=%s revenue_id=%s", user_id, revenue_id)
        raise AppError(500, "Erro interno ao remover renda", ErrorCode.REVENUE_DELETE_FAILED) from exc

    if deleted is None:
        raise _not_found()
    return deleted
