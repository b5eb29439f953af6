"""
Authenticated example routes: `/api/page` and `/api/dashboard`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from revenue_api.auth import dependencies as auth_dependencies
from revenue_api.auth.schemas import AuthUser

router = APIRouter(prefix="/api")


@router.get("/page")
async def page(current_user: AuthUser = Depends(auth_dependencies.get_current_user)) -> dict:
    return {
        "message": "You are authorized",
        "authUser": current_user.model_dump(),
    }


@router.api_route("/dashboard", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def dashboard(_: AuthUser = Depends(auth_dependencies.get_current_user)) -> list:
    # Placeholder payload until dashboard widgets exist.
    return []
