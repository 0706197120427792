"""Price endpoints, scoped by the owning organization.

A caller sees and edits only prices owned by their organization or one of
its descendants; administrators see everything.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, dump, dump_many, paginated, success
from api.schemas.price import PriceCreate, PriceResponse, PriceUpdate
from app.dependencies import get_db
from core.access import Principal, scoped_organization_ids
from core.constants import OperationAction, OperationModule
from core.exceptions import ForbiddenError, NotFoundError
from core.permissions import PermissionCode
from core.rbac import ensure_org_scope, require_all_permissions, require_permission
from core.utils import utc_now
from db.models.price import Price
from services.operation_log_service import OperationLogService
from services.organization_service import OrganizationService
from services.price_service import PriceService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["prices"])


def _timestamp() -> str:
    return utc_now().strftime("%Y%m%d_%H%M%S")


async def _load_price_in_scope(principal: Principal, price_id: str, db: AsyncSession, hierarchy=None) -> Price:
    """Load a price owned inside the caller's subtree.

    Non-admins get 403 for unknown ids as well, so the answer never tells
    them which prices exist outside their scope.
    """
    price = await PriceService(db).get_by_id(price_id)
    if hierarchy is None:
        hierarchy = await OrganizationService(db).load_hierarchy()
    if price is None:
        if principal.is_admin:
            raise NotFoundError("Price not found")
        logger.warning("Price %s outside scope of %s: unknown id", price_id, principal.username)
        raise ForbiddenError()
    ensure_org_scope(principal, price.organization_id, hierarchy)
    return price


@router.get("")
async def list_prices(
    pagination: PaginationParams = Depends(),
    service_id: Optional[str] = Query(default=None),
    organization_id: Optional[str] = Query(default=None),
    effective_from: Optional[datetime] = Query(default=None),
    effective_to: Optional[datetime] = Query(default=None),
    principal: Principal = Depends(require_permission(PermissionCode.PRICE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Prices owned by organizations in the caller's subtree."""
    hierarchy = await OrganizationService(db).load_hierarchy()
    items, total = await PriceService(db).list_prices(
        organization_ids=scoped_organization_ids(principal, hierarchy),
        offset=pagination.offset,
        limit=pagination.per_page,
        service_id=service_id,
        organization_id=organization_id,
        effective_from=effective_from,
        effective_to=effective_to,
    )
    return paginated(dump_many(PriceResponse, items), total, pagination)


@router.get("/export")
async def export_prices(
    request: Request,
    service_id: Optional[str] = Query(default=None),
    organization_id: Optional[str] = Query(default=None),
    effective_from: Optional[datetime] = Query(default=None),
    effective_to: Optional[datetime] = Query(default=None),
    principal: Principal = Depends(
        require_all_permissions(PermissionCode.PRICE_VIEW, PermissionCode.PRICE_EXPORT)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Download the prices the caller can see as CSV."""
    hierarchy = await OrganizationService(db).load_hierarchy()
    rows = await PriceService(db).export_rows(
        organization_ids=scoped_organization_ids(principal, hierarchy),
        service_id=service_id,
        organization_id=organization_id,
        effective_from=effective_from,
        effective_to=effective_to,
    )

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "ID", "Organization", "Service Code", "Service", "Amount", "Currency",
        "Effective Date", "Remark", "Updated At",
    ])
    for r in rows:
        writer.writerow([
            r.id,
            r.organization_name,
            r.service_code,
            r.service_name,
            r.amount,
            r.currency,
            r.effective_date.date().isoformat() if r.effective_date else "",
            r.remark or "",
            r.updated_at.isoformat() if r.updated_at else "",
        ])

    await OperationLogService(db).record(
        principal, OperationModule.PRICE, OperationAction.EXPORT,
        request=request,
        params={
            "service_id": service_id,
            "organization_id": organization_id,
            "rows": len(rows),
        },
    )
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="prices_{_timestamp()}.csv"'},
    )


@router.get("/{price_id}")
async def get_price(
    price_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.PRICE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    price = await _load_price_in_scope(principal, price_id, db)
    return success(dump(PriceResponse, price))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_price(
    body: PriceCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.PRICE_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    ensure_org_scope(principal, body.organization_id, await OrganizationService(db).load_hierarchy())
    price = await PriceService(db).create_price(body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.PRICE, OperationAction.CREATE,
        request=request, params=body.model_dump(mode="json"),
    )
    return success(dump(PriceResponse, price))


@router.put("/{price_id}")
async def update_price(
    price_id: str,
    body: PriceUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.PRICE_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    """Update a price. Moving it to another organization needs scope over both."""
    service = PriceService(db)
    hierarchy = await OrganizationService(db).load_hierarchy()
    price = await _load_price_in_scope(principal, price_id, db, hierarchy)

    data = body.model_dump(exclude_unset=True)
    if data.get("organization_id"):
        ensure_org_scope(principal, data["organization_id"], hierarchy)

    price = await service.update_price(price, data)
    await OperationLogService(db).record(
        principal, OperationModule.PRICE, OperationAction.UPDATE,
        request=request, params={"id": price_id, **body.model_dump(mode="json", exclude_unset=True)},
    )
    return success(dump(PriceResponse, price))


@router.delete("/{price_id}")
async def delete_price(
    price_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.PRICE_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    service = PriceService(db)
    price = await _load_price_in_scope(principal, price_id, db)

    await service.delete_price(price)
    await OperationLogService(db).record(
        principal, OperationModule.PRICE, OperationAction.DELETE,
        request=request, params={"id": price_id},
    )
    return success(message="Price deleted")
