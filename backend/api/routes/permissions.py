"""Permission catalog endpoint."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.schemas.common import success
from core.permissions import PermissionCode, list_permissions, permissions_by_module
from core.rbac import require_any_permission

router = APIRouter(tags=["permissions"])


@router.get(
    "",
    dependencies=[
        Depends(require_any_permission(PermissionCode.ROLE_VIEW, PermissionCode.PERMISSION_ASSIGN))
    ],
)
async def list_all_permissions(
    module: Optional[str] = Query(default=None, description="Only this module"),
    grouped: bool = Query(default=True, description="Group the catalog by module"),
):
    """The permission registry, grouped by module unless ``grouped=false``."""
    if not grouped or module:
        return success([asdict(p) for p in list_permissions(module)])
    return success(
        [
            {"module": name, "permissions": [asdict(p) for p in entries]}
            for name, entries in permissions_by_module().items()
        ]
    )
