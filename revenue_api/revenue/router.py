"""
Revenue CRUD endpoints, scoped to the authenticated user.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from revenue_api.auth import dependencies as auth_dependencies
from revenue_api.auth.schemas import AuthUser
from revenue_api.core.http import build_success_response

from . import schemas, service

router = APIRouter(prefix="/api")


def _to_item(revenue: dict[str, Any]) -> dict[str, Any]:
    return schemas.RevenueItem.model_validate(revenue).model_dump(mode="json", by_alias=True)


def _to_list_item(revenue: dict[str, Any]) -> dict[str, Any]:
    return schemas.RevenueListItem.model_validate(revenue).model_dump(mode="json")


def _to_detail_item(revenue: dict[str, Any]) -> dict[str, Any]:
    return schemas.RevenueDetailItem.model_validate(revenue).model_dump(mode="json")


@router.post("/revenues", status_code=status.HTTP_201_CREATED)
async def create_revenue(
    payload: schemas.RevenueInput,
    current_user: AuthUser = Depends(auth_dependencies.get_current_user),
) -> dict:
    revenue = await service.create(current_user.id, payload)
    return build_success_response(201, "Renda criada com sucesso", _to_item(revenue))


@router.get("/revenues")
async def list_revenues(
    current_user: AuthUser = Depends(auth_dependencies.get_current_user),
) -> dict:
    revenues = await service.list_for_user(current_user.id)
    return build_success_response(
        200,
        "Rendas listadas com sucesso",
        [_to_list_item(revenue) for revenue in revenues],
    )


@router.get("/revenues/{revenue_id}")
async def get_revenue(
    revenue_id: str,
    current_user: AuthUser = Depends(auth_dependencies.get_current_user),
) -> dict:
    revenue = await service.find_by_id(current_user.id, revenue_id)
    return build_success_response(200, "Renda encontrada com sucesso", _to_detail_item(revenue))


@router.put("/revenues/{revenue_id}")
async def update_revenue(
    revenue_id: str,
    payload: schemas.RevenueInput,
    current_user: AuthUser = Depends(auth_dependencies.get_current_user),
) -> dict:
    revenue = await service.update(current_user.id, revenue_id, payload)
    return build_success_response(200, "Renda atualizada com sucesso", _to_item(revenue))


@router.delete("/revenues/{revenue_id}")
async def delete_revenue(
    revenue_id: str,
    current_user: AuthUser = Depends(auth_dependencies.get_current_user),
) -> dict:
    deleted = await service.delete(current_user.id, revenue_id)
    return build_success_response(
        200,
        "Renda removida com sucesso",
        schemas.RevenueDeleted.model_validate(deleted).model_dump(),
    )
