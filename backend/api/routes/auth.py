"""Authentication endpoints: login, refresh, me, menu."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.auth import (
    LoginRequest,
    PrincipalResponse,
    ProfileResponse,
    RefreshRequest,
    TokenResponse,
)
from api.schemas.common import success
from app.dependencies import get_db
from core.access import Principal
from core.constants import OperationAction, OperationModule
from core.exceptions import UnauthorizedError
from core.menu import DASHBOARD_MENU, visible_menu_sections
from core.rbac import get_principal
from services.auth_service import AuthService
from services.operation_log_service import OperationLogService
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


def principal_payload(principal: Principal) -> dict:
    return PrincipalResponse(
        id=principal.id,
        username=principal.username,
        organization_id=principal.organization_id,
        roles=sorted(principal.roles),
        permissions=sorted(principal.permissions),
        is_admin=principal.is_admin,
    ).model_dump()


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with username and password.

    Returns access and refresh tokens plus the caller's effective permissions.
    Wrong credentials and disabled accounts get the same 401.
    """
    result = await AuthService(db).login(body.username, body.password)
    if result is None:
        raise UnauthorizedError("Invalid username or password")

    principal = result.pop("principal")
    await OperationLogService(db).record(
        principal,
        OperationModule.USER,
        OperationAction.LOGIN,
        request=request,
        params={"username": body.username},
    )
    return success(
        {
            **TokenResponse(**result).model_dump(),
            "user": principal_payload(principal),
        }
    )


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new token pair."""
    tokens = await AuthService(db).refresh(body.refresh_token)
    return success(TokenResponse(**tokens).model_dump())


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Current user's profile with roles and effective permissions."""
    user = await UserService(db).get_or_404(principal.id)
    profile = ProfileResponse(
        **principal_payload(principal),
        email=user.email,
        real_name=user.real_name,
        organization_name=user.organization.name if user.organization else None,
        last_login_at=user.last_login_at,
    )
    return success(profile.model_dump(mode="json"))


@router.get("/menu")
async def menu(principal: Principal = Depends(get_principal)):
    """Navigation entries the caller may see, pruned by permission."""
    sections = visible_menu_sections(principal, DASHBOARD_MENU)
    return success([section.to_dict() for section in sections])
