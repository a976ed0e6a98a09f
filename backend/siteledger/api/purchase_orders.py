"""Purchase Order API Endpoints

Purchase orders per vendor and site. Every write refreshes the ordered
figures of the matching site budget lines.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_exists, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.boq import Boq
from siteledger.models.masters import Item, Vendor
from siteledger.models.organisation import Site
from siteledger.models.procurement import PurchaseOrder, PurchaseOrderDetail
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.procurement import (
    PurchaseOrderCreate,
    PurchaseOrderDetailIn,
    PurchaseOrderOut,
    PurchaseOrderUpdate,
)
from siteledger.services.calc import line_amount, round2
from siteledger.services.numbering import next_serial
from siteledger.services.site_budget import SiteBudgetService

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])

SORT_FIELDS = {
    "poNo": PurchaseOrder.po_no,
    "poDate": PurchaseOrder.po_date,
    "status": PurchaseOrder.status,
    "totalAmount": PurchaseOrder.total_amount,
    "createdAt": PurchaseOrder.created_at,
}


async def load_po(db: AsyncSession, po_id: int) -> PurchaseOrder:
    return await get_or_404(
        db, PurchaseOrder, po_id, "Purchase order", options=[selectinload(PurchaseOrder.details)]
    )


async def check_items(db: AsyncSession, details: list[PurchaseOrderDetailIn]) -> None:
    for item_id in {d.item_id for d in details}:
        await ensure_exists(db, Item, item_id, "Item")


def refresh_total(po: PurchaseOrder) -> None:
    po.total_amount = round2(sum(d.amount for d in po.details))


@router.get("", response_model=ListResponse[PurchaseOrderOut])
async def list_purchase_orders(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    status: Optional[str] = None,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(PurchaseOrder).options(selectinload(PurchaseOrder.details))
    if site_id:
        query = query.where(PurchaseOrder.site_id == site_id)
    if vendor_id:
        query = query.where(PurchaseOrder.vendor_id == vendor_id)
    if boq_id:
        query = query.where(PurchaseOrder.boq_id == boq_id)
    if status:
        query = query.where(PurchaseOrder.status == status)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(PurchaseOrder.site_id.in_(site_ids))

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "createdAt", [PurchaseOrder.po_no])
    return ListResponse[PurchaseOrderOut](
        data=[PurchaseOrderOut.model_validate(po) for po in rows], meta=PageMeta(**meta)
    )


@router.get("/{po_id}", response_model=DataResponse[PurchaseOrderOut])
async def get_purchase_order(
    po_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    po = await load_po(db, po_id)
    await ensure_site_access(db, ctx, po.site_id)
    return DataResponse[PurchaseOrderOut](data=PurchaseOrderOut.model_validate(po))


@router.post("", response_model=DataResponse[PurchaseOrderOut], status_code=201)
async def create_purchase_order(
    payload: PurchaseOrderCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Vendor, payload.vendor_id, "Vendor")
    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_exists(db, Boq, payload.boq_id, "BOQ")
    await check_items(db, payload.details)
    await ensure_site_access(db, ctx, payload.site_id)
    await SiteBudgetService.validate_po_quantities(
        db, payload.site_id, payload.boq_id, [(d.item_id, d.qty) for d in payload.details]
    )

    po = PurchaseOrder(
        po_no=await next_serial(db, PurchaseOrder.po_no, "PO"),
        created_by_id=ctx.user.id,
        **payload.model_dump(exclude={"details"}),
    )
    po.details = [
        PurchaseOrderDetail(item_id=d.item_id, qty=d.qty, rate=d.rate, amount=line_amount(d.qty, d.rate))
        for d in payload.details
    ]
    refresh_total(po)
    db.add(po)
    await SiteBudgetService.recompute_ordered(db, po.site_id, po.boq_id, [d.item_id for d in po.details])
    await db.commit()

    po = await load_po(db, po.id)
    return DataResponse[PurchaseOrderOut](data=PurchaseOrderOut.model_validate(po))


@router.patch("/{po_id}", response_model=DataResponse[PurchaseOrderOut])
async def update_purchase_order(
    po_id: int,
    payload: PurchaseOrderUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Update a purchase order; details with an id are updated, others added"""
    po = await load_po(db, po_id)
    await ensure_site_access(db, ctx, po.site_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"details"})
    if changes.get("vendor_id"):
        await ensure_exists(db, Vendor, changes["vendor_id"], "Vendor")

    touched_items = {d.item_id for d in po.details}
    if payload.details is not None:
        await check_items(db, payload.details)
        existing = {d.id: d for d in po.details}
        kept_ids = {d.id for d in payload.details if d.id}
        unknown = kept_ids - set(existing)
        if unknown:
            raise HTTPException(status_code=400, detail=f"Purchase order details not found: {sorted(unknown)}")
        for detail_id, detail in existing.items():
            if detail_id not in kept_ids and detail.received_qty > 0:
                raise HTTPException(
                    status_code=400,
                    detail=f"Detail {detail_id} has received quantity and cannot be removed",
                )
        await SiteBudgetService.validate_po_quantities(
            db, po.site_id, po.boq_id, [(d.item_id, d.qty) for d in payload.details], exclude_po_id=po.id
        )

        details = []
        for entry in payload.details:
            if entry.id:
                detail = existing[entry.id]
                if entry.qty < detail.received_qty:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Detail {detail.id} qty cannot be below received qty {detail.received_qty:g}",
                    )
                if detail.received_qty > 0 and entry.item_id != detail.item_id:
                    raise HTTPException(
                        status_code=400, detail=f"Detail {detail.id} item cannot change after receipt"
                    )
            else:
                detail = PurchaseOrderDetail()
            detail.item_id = entry.item_id
            detail.qty = entry.qty
            detail.rate = entry.rate
            detail.amount = line_amount(entry.qty, entry.rate)
            details.append(detail)
        po.details = details
        touched_items |= {d.item_id for d in details}

    for field, value in changes.items():
        if value is not None or field == "remarks":
            setattr(po, field, value)
    refresh_total(po)
    await SiteBudgetService.recompute_ordered(db, po.site_id, po.boq_id, touched_items)
    await db.commit()

    po = await load_po(db, po.id)
    return DataResponse[PurchaseOrderOut](data=PurchaseOrderOut.model_validate(po))


@router.delete("/{po_id}", status_code=204)
async def delete_purchase_order(
    po_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    po = await load_po(db, po_id)
    await ensure_site_access(db, ctx, po.site_id)
    if any(d.received_qty > 0 for d in po.details):
        raise HTTPException(status_code=400, detail="Purchase order has received quantities and cannot be deleted")
    site_id, boq_id, item_ids = po.site_id, po.boq_id, [d.item_id for d in po.details]
    await db.delete(po)
    await SiteBudgetService.recompute_ordered(db, site_id, boq_id, item_ids)
    await db.commit()
    return Response(status_code=204)
