"""Organization hierarchy endpoints.

Every handler loads one hierarchy snapshot per request and answers tree,
ancestry and scope questions from it. Non-admin callers only see their own
organization and its descendants.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import dump, success
from api.schemas.organization import (
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from app.dependencies import get_db
from core.access import Principal, scoped_organization_ids
from core.constants import OperationAction, OperationModule
from core.exceptions import ForbiddenError
from core.hierarchy import HierarchyIssue, record_to_dict
from core.permissions import PermissionCode
from core.rbac import ensure_org_scope, require_all_permissions, require_permission
from services.operation_log_service import OperationLogService
from services.organization_service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["organizations"])


@router.get("")
async def list_organizations(
    tree: bool = Query(default=False, description="Return a nested forest instead of a flat list"),
    principal: Principal = Depends(require_permission(PermissionCode.ORG_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Flat list (shallowest first) or nested forest of visible organizations.

    Organizations caught in a parent cycle are never part of the forest; an
    administrator asking for the tree of a malformed hierarchy gets 409.
    """
    hierarchy = await OrganizationService(db).load_hierarchy()
    scope = scoped_organization_ids(principal, hierarchy)

    if tree:
        if scope is None:
            hierarchy.raise_for_cycles()
            return success(hierarchy.to_tree())
        if principal.organization_id not in scope:
            return success([])
        return success(hierarchy.to_tree(root_id=principal.organization_id))

    rows = await OrganizationService(db).list_all()
    visible = [row for row in rows if scope is None or row.id in scope]
    return success(
        [
            {**dump(OrganizationResponse, row), "depth": hierarchy.depth_of(row.id)}
            for row in visible
        ]
    )


@router.get("/diagnostics")
async def hierarchy_diagnostics(
    principal: Principal = Depends(
        require_all_permissions(PermissionCode.ORG_VIEW, PermissionCode.ORG_EDIT)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Admin tooling: dangling parents, cycles, duplicate ids and stale levels."""
    if not principal.is_admin:
        raise ForbiddenError()

    hierarchy = await OrganizationService(db).load_hierarchy()
    return success(
        {
            "total": len(hierarchy),
            "roots": list(hierarchy.roots),
            "is_acyclic": hierarchy.is_acyclic,
            "issues": {
                issue.value: [
                    {"org_id": d.org_id, "detail": d.detail}
                    for d in hierarchy.diagnostics_for(issue)
                ]
                for issue in HierarchyIssue
            },
            "level_mismatches": [m._asdict() for m in hierarchy.level_mismatches()],
        }
    )


@router.get("/{org_id}")
async def get_organization(
    org_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.ORG_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """One organization with its parent and direct children."""
    service = OrganizationService(db)
    hierarchy = await service.load_hierarchy()
    ensure_org_scope(principal, org_id, hierarchy)
    org = await service.get_or_404(org_id)

    parent_id = hierarchy.parent_of(org_id)
    parent = hierarchy.get(parent_id) if parent_id is not None else None
    return success(
        {
            **dump(OrganizationResponse, org),
            "depth": hierarchy.depth_of(org_id),
            "parent": record_to_dict(parent) if parent is not None else None,
            "children": [record_to_dict(hierarchy.get(c)) for c in hierarchy.children_of(org_id)],
        }
    )


@router.get("/{org_id}/ancestors")
async def get_ancestors(
    org_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.ORG_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Parent chain, nearest first. ``cyclic`` flags a malformed chain."""
    service = OrganizationService(db)
    hierarchy = await service.load_hierarchy()
    ensure_org_scope(principal, org_id, hierarchy)
    await service.get_or_404(org_id)

    chain = hierarchy.ancestors_of(org_id)
    return success(
        {
            "ancestors": [record_to_dict(hierarchy.get(a)) for a in chain.ids],
            "cyclic": chain.cyclic,
        }
    )


@router.get("/{org_id}/descendants")
async def get_descendants(
    org_id: str,
    tree: bool = Query(default=False),
    principal: Principal = Depends(require_permission(PermissionCode.ORG_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """All organizations below ``org_id``, breadth first or as a subtree."""
    service = OrganizationService(db)
    hierarchy = await service.load_hierarchy()
    ensure_org_scope(principal, org_id, hierarchy)
    await service.get_or_404(org_id)

    if tree:
        return success(hierarchy.to_tree(root_id=org_id))
    return success([record_to_dict(hierarchy.get(d)) for d in hierarchy.descendants_of(org_id)])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ORG_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create an organization. Non-admins may only create inside their subtree."""
    service = OrganizationService(db)
    if body.parent_id is None:
        if not principal.is_admin:
            raise ForbiddenError()
    else:
        ensure_org_scope(principal, body.parent_id, await service.load_hierarchy())

    org = await service.create_organization(**body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.ORGANIZATION, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(OrganizationResponse, org))


@router.put("/{org_id}")
async def update_organization(
    org_id: str,
    body: OrganizationUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ORG_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    """Update an organization; moving it under itself or a descendant is refused."""
    service = OrganizationService(db)
    hierarchy = await service.load_hierarchy()
    ensure_org_scope(principal, org_id, hierarchy)
    org = await service.get_or_404(org_id)

    data = body.model_dump(exclude_unset=True)
    kwargs = {}
    if "parent_id" in data:
        new_parent = data.pop("parent_id")
        if new_parent is None:
            if not principal.is_admin:
                raise ForbiddenError()
        elif new_parent != org_id:
            ensure_org_scope(principal, new_parent, hierarchy)
        kwargs["parent_id"] = new_parent

    org = await service.update_organization(org, data, **kwargs)
    await OperationLogService(db).record(
        principal, OperationModule.ORGANIZATION, OperationAction.UPDATE,
        request=request, params={"id": org_id, **body.model_dump(exclude_unset=True)},
    )
    return success(dump(OrganizationResponse, org))


@router.delete("/{org_id}")
async def delete_organization(
    org_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ORG_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Delete an organization. Refused with 409 while it has children or users."""
    service = OrganizationService(db)
    ensure_org_scope(principal, org_id, await service.load_hierarchy())
    org = await service.get_or_404(org_id)

    await service.delete_organization(org)
    await OperationLogService(db).record(
        principal, OperationModule.ORGANIZATION, OperationAction.DELETE,
        request=request, params={"id": org_id},
    )
    return success(message="Organization deleted")
