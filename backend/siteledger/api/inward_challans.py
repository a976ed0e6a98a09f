"""Inward Delivery Challan API Endpoints

Goods received from a vendor against a purchase order. Receiving books the
quantity on the PO line, writes stock ledger rows and adds site stock.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.procurement import PO_STATUS_SUSPENDED, PurchaseOrder
from siteledger.models.stock import InwardDeliveryChallan, InwardDeliveryChallanDetail
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.stock import InwardChallanCreate, InwardChallanOut, InwardChallanUpdate
from siteledger.services.calc import round2
from siteledger.services.numbering import next_pair_number
from siteledger.services.stock import StockService

router = APIRouter(prefix="/api/inward-delivery-challans", tags=["inward-delivery-challans"])

SORT_FIELDS = {
    "inwardChallanNo": InwardDeliveryChallan.inward_challan_no,
    "challanDate": InwardDeliveryChallan.challan_date,
    "billAmount": InwardDeliveryChallan.bill_amount,
    "createdAt": InwardDeliveryChallan.created_at,
}


async def load_challan(db: AsyncSession, challan_id: int) -> InwardDeliveryChallan:
    return await get_or_404(
        db, InwardDeliveryChallan, challan_id, "Inward delivery challan",
        options=[selectinload(InwardDeliveryChallan.details)],
    )


@router.get("", response_model=ListResponse[InwardChallanOut])
async def list_inward_challans(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    purchase_order_id: Optional[int] = Query(None, alias="purchaseOrderId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(InwardDeliveryChallan).options(selectinload(InwardDeliveryChallan.details))
    if site_id:
        query = query.where(InwardDeliveryChallan.site_id == site_id)
    if vendor_id:
        query = query.where(InwardDeliveryChallan.vendor_id == vendor_id)
    if purchase_order_id:
        query = query.where(InwardDeliveryChallan.purchase_order_id == purchase_order_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(InwardDeliveryChallan.site_id.in_(site_ids))

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt",
        [InwardDeliveryChallan.inward_challan_no, InwardDeliveryChallan.challan_no, InwardDeliveryChallan.bill_no],
    )
    return ListResponse[InwardChallanOut](
        data=[InwardChallanOut.model_validate(c) for c in rows], meta=PageMeta(**meta)
    )


@router.get("/{challan_id}", response_model=DataResponse[InwardChallanOut])
async def get_inward_challan(
    challan_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    challan = await load_challan(db, challan_id)
    await ensure_site_access(db, ctx, challan.site_id)
    return DataResponse[InwardChallanOut](data=InwardChallanOut.model_validate(challan))


@router.post("", response_model=DataResponse[InwardChallanOut], status_code=201)
async def create_inward_challan(
    payload: InwardChallanCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Receive goods against the open lines of a purchase order"""
    result = await db.execute(
        select(PurchaseOrder)
        .options(selectinload(PurchaseOrder.details))
        .where(PurchaseOrder.id == payload.purchase_order_id)
    )
    po = result.scalar_one_or_none()
    if po is None:
        raise HTTPException(status_code=400, detail="Purchase order not found")
    if po.status == PO_STATUS_SUSPENDED:
        raise HTTPException(status_code=400, detail="Purchase order is suspended")
    await ensure_site_access(db, ctx, po.site_id)

    po_lines = {d.id: d for d in po.details}
    requested: dict[int, float] = {}
    for line in payload.details:
        if line.po_detail_id not in po_lines:
            raise HTTPException(
                status_code=400,
                detail=f"PO detail {line.po_detail_id} does not belong to purchase order {po.po_no}",
            )
        requested[line.po_detail_id] = requested.get(line.po_detail_id, 0.0) + line.receiving_qty

    challan = InwardDeliveryChallan(
        inward_challan_no=await next_pair_number(db, InwardDeliveryChallan.inward_challan_no),
        purchase_order_id=po.id,
        vendor_id=po.vendor_id,
        site_id=po.site_id,
        created_by_id=ctx.user.id,
        **payload.model_dump(exclude={"details", "purchase_order_id"}),
    )
    details = []
    for po_detail_id, qty in requested.items():
        po_line = po_lines[po_detail_id]
        pending = round(po_line.qty - po_line.received_qty, 4)
        if qty > pending + 1e-9:
            raise HTTPException(
                status_code=400,
                detail=f"Receiving qty {qty:g} exceeds pending qty {pending:g} for PO detail {po_detail_id}",
            )
        rate = round(po_line.amount / po_line.qty, 4) if po_line.qty else 0.0
        details.append(InwardDeliveryChallanDetail(
            po_detail_id=po_detail_id,
            item_id=po_line.item_id,
            receiving_qty=qty,
            rate=rate,
            amount=round2(rate * qty),
        ))
        po_line.received_qty = round(po_line.received_qty + qty, 4)
    challan.details = details
    challan.bill_amount = round2(sum(d.amount for d in details))
    db.add(challan)
    await db.flush()

    await StockService.receive_inward(db, challan)
    await db.commit()

    challan = await load_challan(db, challan.id)
    return DataResponse[InwardChallanOut](data=InwardChallanOut.model_validate(challan))


@router.patch("/{challan_id}", response_model=DataResponse[InwardChallanOut])
async def update_inward_challan(
    challan_id: int,
    payload: InwardChallanUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Only document references change after receipt"""
    challan = await load_challan(db, challan_id)
    await ensure_site_access(db, ctx, challan.site_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(challan, field, value)
    await db.commit()

    challan = await load_challan(db, challan.id)
    return DataResponse[InwardChallanOut](data=InwardChallanOut.model_validate(challan))


@router.delete("/{challan_id}", status_code=204)
async def delete_inward_challan(
    challan_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Delete a challan, returning its quantities to the PO and removing its stock.

    Refused once any of the received stock has left the site.
    """
    challan = await load_challan(db, challan_id)
    await ensure_site_access(db, ctx, challan.site_id)
    result = await db.execute(
        select(PurchaseOrder)
        .options(selectinload(PurchaseOrder.details))
        .where(PurchaseOrder.id == challan.purchase_order_id)
    )
    po = result.scalar_one()
    po_lines = {d.id: d for d in po.details}

    for detail in challan.details:
        await StockService.reverse_receipt(db, challan.site_id, detail.item_id, detail.receiving_qty, detail.amount)
        po_line = po_lines.get(detail.po_detail_id)
        if po_line is not None:
            po_line.received_qty = round(max(po_line.received_qty - detail.receiving_qty, 0.0), 4)

    await db.delete(challan)
    await db.commit()
    return Response(status_code=204)
