"""Manpower API Endpoints

Worker CRUD and assignment of workers to sites.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import apply_changes, ensure_exists, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.manpower import Manpower, ManpowerAssignment, ManpowerSupplier
from siteledger.models.organisation import Site
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.manpower import (
    ManpowerAssignmentOut,
    ManpowerAssignRequest,
    ManpowerCreate,
    ManpowerOut,
    ManpowerUpdate,
)
from siteledger.services.manpower import ManpowerService

router = APIRouter(prefix="/api/manpower", tags=["manpower"], dependencies=[Depends(guard_api_access)])
assignment_router = APIRouter(prefix="/api/manpower-assignments", tags=["manpower-assignments"])

SORT_FIELDS = {
    "firstName": Manpower.first_name,
    "lastName": Manpower.last_name,
    "category": Manpower.category,
    "wage": Manpower.wage,
    "createdAt": Manpower.created_at,
}
SEARCH_COLUMNS = [
    Manpower.first_name,
    Manpower.middle_name,
    Manpower.last_name,
    Manpower.mobile_number,
    Manpower.aadhar_no,
]


@router.get("", response_model=ListResponse[ManpowerOut])
async def list_manpower(
    params: ListParams = Depends(list_params),
    supplier_id: Optional[int] = Query(None, alias="supplierId"),
    site_id: Optional[int] = Query(None, alias="siteId"),
    is_assigned: Optional[bool] = Query(None, alias="isAssigned"),
    db: AsyncSession = Depends(get_db),
):
    """List workers with pagination and filters"""
    query = select(Manpower)
    if supplier_id:
        query = query.where(Manpower.supplier_id == supplier_id)
    if site_id:
        query = query.where(Manpower.current_site_id == site_id)
    if is_assigned is not None:
        query = query.where(Manpower.is_assigned == is_assigned)

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "createdAt", SEARCH_COLUMNS)
    return ListResponse[ManpowerOut](data=[ManpowerOut.model_validate(m) for m in rows], meta=PageMeta(**meta))


@router.get("/{manpower_id}", response_model=DataResponse[ManpowerOut])
async def get_manpower(manpower_id: int, db: AsyncSession = Depends(get_db)):
    manpower = await get_or_404(db, Manpower, manpower_id, "Manpower")
    return DataResponse[ManpowerOut](data=ManpowerOut.model_validate(manpower))


@router.post("", response_model=DataResponse[ManpowerOut], status_code=201)
async def create_manpower(payload: ManpowerCreate, db: AsyncSession = Depends(get_db)):
    await ensure_exists(db, ManpowerSupplier, payload.supplier_id, "Manpower supplier")
    values = {k: v for k, v in payload.model_dump().items() if v is not None}
    manpower = Manpower(**values)
    db.add(manpower)
    await db.commit()
    await db.refresh(manpower)
    return DataResponse[ManpowerOut](data=ManpowerOut.model_validate(manpower))


@router.patch("/{manpower_id}", response_model=DataResponse[ManpowerOut])
async def update_manpower(
    manpower_id: int, payload: ManpowerUpdate, db: AsyncSession = Depends(get_db)
):
    manpower = await get_or_404(db, Manpower, manpower_id, "Manpower")
    changes = payload.model_dump(exclude_unset=True)
    if "supplier_id" in changes:
        await ensure_exists(db, ManpowerSupplier, changes["supplier_id"], "Manpower supplier")
    apply_changes(manpower, changes)
    await db.commit()
    await db.refresh(manpower)
    return DataResponse[ManpowerOut](data=ManpowerOut.model_validate(manpower))


@router.delete("/{manpower_id}", status_code=204)
async def delete_manpower(manpower_id: int, db: AsyncSession = Depends(get_db)):
    manpower = await get_or_404(db, Manpower, manpower_id, "Manpower")
    if manpower.is_assigned:
        raise HTTPException(status_code=400, detail="Unassign the worker before deleting")
    await db.delete(manpower)
    await db.commit()
    return Response(status_code=204)


@assignment_router.get("", response_model=DataResponse[list[ManpowerAssignmentOut]])
async def list_assignments(
    site_id: int = Query(..., alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Workers currently assigned to a site"""
    await ensure_site_access(db, ctx, site_id)
    result = await db.execute(
        select(ManpowerAssignment)
        .options(selectinload(ManpowerAssignment.manpower))
        .where(ManpowerAssignment.site_id == site_id)
        .order_by(ManpowerAssignment.id)
    )
    return DataResponse[list[ManpowerAssignmentOut]](
        data=[ManpowerAssignmentOut.model_validate(a) for a in result.scalars().all()]
    )


@assignment_router.post("", response_model=DataResponse[list[ManpowerAssignmentOut]], status_code=201)
async def assign_manpower(
    payload: ManpowerAssignRequest,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Assign unassigned workers to a site with their wage terms"""
    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_site_access(db, ctx, payload.site_id)

    manpower_ids = [item.manpower_id for item in payload.items]
    if len(set(manpower_ids)) != len(manpower_ids):
        raise HTTPException(status_code=400, detail="Duplicate manpower in request")

    assigned_at = payload.assigned_at or date.today()
    for item in payload.items:
        manpower = await db.get(Manpower, item.manpower_id)
        if manpower is None:
            raise HTTPException(status_code=400, detail=f"Manpower {item.manpower_id} not found")
        ManpowerService.apply_wage_terms(manpower, item.model_dump())
        await ManpowerService.assign(db, manpower, payload.site_id, assigned_at, ctx.user.id)
    await db.commit()

    result = await db.execute(
        select(ManpowerAssignment)
        .options(selectinload(ManpowerAssignment.manpower))
        .where(ManpowerAssignment.manpower_id.in_(manpower_ids))
        .order_by(ManpowerAssignment.id)
        .execution_options(populate_existing=True)
    )
    return DataResponse[list[ManpowerAssignmentOut]](
        data=[ManpowerAssignmentOut.model_validate(a) for a in result.scalars().all()]
    )


@assignment_router.delete("/{manpower_id}", status_code=204)
async def unassign_manpower(
    manpower_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Release a worker from their current site"""
    manpower = await get_or_404(db, Manpower, manpower_id, "Manpower")
    if manpower.current_site_id is not None:
        await ensure_site_access(db, ctx, manpower.current_site_id)
    await ManpowerService.unassign(db, manpower, ctx.user.id)
    await db.commit()
    return Response(status_code=204)
