"""Outward Delivery Challan API Endpoints

Site to site material transfers. A challan is raised at the source site,
approved by someone other than its creator, and accepted at the destination
by someone who neither created nor approved it. Acceptance moves the stock.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_exists, get_or_404
from siteledger.api.deps import (
    AccessContext,
    ensure_site_access,
    guard_api_access,
    require_permission,
    scoped_site_ids,
)
from siteledger.core.errors import BusinessRuleError
from siteledger.core.permissions import (
    ACCEPT_OUTWARD_DELIVERY_CHALLAN,
    APPROVE_OUTWARD_DELIVERY_CHALLAN,
    EDIT_OUTWARD_DELIVERY_CHALLAN,
)
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db, utcnow
from siteledger.models.masters import Item
from siteledger.models.organisation import Site
from siteledger.models.stock import OutwardDeliveryChallan, OutwardDeliveryChallanDetail
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.stock import OutwardChallanCreate, OutwardChallanOut, OutwardChallanPatch
from siteledger.services.calc import round2
from siteledger.services.numbering import next_pair_number
from siteledger.services.stock import StockService

router = APIRouter(prefix="/api/outward-delivery-challans", tags=["outward-delivery-challans"])

SORT_FIELDS = {
    "outwardChallanNo": OutwardDeliveryChallan.outward_challan_no,
    "challanDate": OutwardDeliveryChallan.challan_date,
    "createdAt": OutwardDeliveryChallan.created_at,
}


async def load_challan(db: AsyncSession, challan_id: int) -> OutwardDeliveryChallan:
    return await get_or_404(
        db, OutwardDeliveryChallan, challan_id, "Outward delivery challan",
        options=[selectinload(OutwardDeliveryChallan.details)],
    )


def requested_quantities(challan: OutwardDeliveryChallan, lines, field: str, default) -> dict[int, float]:
    """Quantity per detail id; details not sent fall back to ``default(detail)``"""
    details = {d.id: d for d in challan.details}
    quantities = {d.id: default(d) for d in challan.details}
    for line in lines:
        if line.id not in details:
            raise BusinessRuleError(f"Invalid detail id: {line.id}")
        value = getattr(line, field)
        quantities[line.id] = value if value is not None else 0.0
    return quantities


async def approve(db: AsyncSession, challan: OutwardDeliveryChallan, lines, ctx: AccessContext) -> None:
    if challan.is_approved1:
        raise BusinessRuleError("Already approved")
    if challan.created_by_id == ctx.user.id:
        raise BusinessRuleError("Creator cannot approve")

    quantities = requested_quantities(challan, lines, "approved1_qty", lambda d: d.challan_qty)
    stock = await StockService.closing_stock(db, challan.from_site_id, [d.item_id for d in challan.details])
    for detail in challan.details:
        qty = quantities[detail.id]
        StockService.check_against_stock("Approved qty", detail.id, qty, stock.get(detail.item_id, 0.0))
        detail.approved1_qty = qty
        detail.amount = round2(qty * detail.rate)

    challan.is_approved1 = True
    challan.approved1_by_id = ctx.user.id
    challan.approved1_at = utcnow()


async def accept(db: AsyncSession, challan: OutwardDeliveryChallan, lines, ctx: AccessContext) -> None:
    if not challan.is_approved1:
        raise BusinessRuleError("Challan must be approved before acceptance")
    if challan.is_accepted:
        raise BusinessRuleError("Already accepted")
    if challan.created_by_id == ctx.user.id:
        raise BusinessRuleError("Creator cannot accept")
    if challan.approved1_by_id == ctx.user.id:
        raise BusinessRuleError("Approver cannot accept")

    def approved(detail):
        return detail.approved1_qty if detail.approved1_qty is not None else detail.challan_qty

    quantities = requested_quantities(challan, lines, "received_qty", approved)
    stock = await StockService.closing_stock(db, challan.from_site_id, [d.item_id for d in challan.details])
    for detail in challan.details:
        qty = quantities[detail.id]
        StockService.check_against_stock("Received qty", detail.id, qty, stock.get(detail.item_id, 0.0))
        if qty > approved(detail) + 1e-9:
            raise BusinessRuleError(
                f"Received qty cannot exceed approved qty ({approved(detail):g}) for detail {detail.id}"
            )
        detail.received_qty = qty

    challan.is_accepted = True
    challan.accepted_by_id = ctx.user.id
    challan.accepted_at = utcnow()
    await StockService.transfer_outward(db, challan, date.today())


@router.get("", response_model=ListResponse[OutwardChallanOut])
async def list_outward_challans(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    status: Optional[str] = Query(None, pattern="^(pending|approved|accepted)$"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(OutwardDeliveryChallan).options(selectinload(OutwardDeliveryChallan.details))
    if site_id:
        query = query.where(
            or_(OutwardDeliveryChallan.from_site_id == site_id, OutwardDeliveryChallan.to_site_id == site_id)
        )
    if status == "pending":
        query = query.where(OutwardDeliveryChallan.is_approved1.is_(False))
    elif status == "approved":
        query = query.where(
            OutwardDeliveryChallan.is_approved1.is_(True), OutwardDeliveryChallan.is_accepted.is_(False)
        )
    elif status == "accepted":
        query = query.where(OutwardDeliveryChallan.is_accepted.is_(True))
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(
            or_(
                OutwardDeliveryChallan.from_site_id.in_(site_ids),
                OutwardDeliveryChallan.to_site_id.in_(site_ids),
            )
        )

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt", [OutwardDeliveryChallan.outward_challan_no]
    )
    return ListResponse[OutwardChallanOut](
        data=[OutwardChallanOut.model_validate(c) for c in rows], meta=PageMeta(**meta)
    )


@router.get("/{challan_id}", response_model=DataResponse[OutwardChallanOut])
async def get_outward_challan(
    challan_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    challan = await load_challan(db, challan_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None and not {challan.from_site_id, challan.to_site_id} & set(site_ids):
        raise HTTPException(status_code=403, detail="Site is not assigned to current user")
    return DataResponse[OutwardChallanOut](data=OutwardChallanOut.model_validate(challan))


@router.post("", response_model=DataResponse[OutwardChallanOut], status_code=201)
async def create_outward_challan(
    payload: OutwardChallanCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Raise a challan for stock available at the source site"""
    if payload.from_site_id == payload.to_site_id:
        raise HTTPException(status_code=400, detail="From site and to site must be different")
    await ensure_exists(db, Site, payload.from_site_id, "From site")
    await ensure_exists(db, Site, payload.to_site_id, "To site")
    await ensure_site_access(db, ctx, payload.from_site_id)

    item_ids = [d.item_id for d in payload.details]
    if len(set(item_ids)) != len(item_ids):
        raise HTTPException(status_code=400, detail="Duplicate item in challan")
    for item_id in item_ids:
        await ensure_exists(db, Item, item_id, "Item")

    details = []
    for line in payload.details:
        site_item = await StockService.site_item(db, payload.from_site_id, line.item_id)
        closing = site_item.closing_stock if site_item else 0.0
        if line.challan_qty > closing + 1e-9:
            raise HTTPException(
                status_code=400,
                detail=f"Challan qty cannot exceed closing stock ({closing:g}) for item {line.item_id}",
            )
        rate = site_item.unit_rate if site_item else 0.0
        details.append(OutwardDeliveryChallanDetail(
            item_id=line.item_id,
            challan_qty=line.challan_qty,
            rate=rate,
            amount=round2(line.challan_qty * rate),
        ))

    challan = OutwardDeliveryChallan(
        outward_challan_no=await next_pair_number(db, OutwardDeliveryChallan.outward_challan_no),
        challan_date=payload.challan_date,
        from_site_id=payload.from_site_id,
        to_site_id=payload.to_site_id,
        remarks=payload.remarks,
        created_by_id=ctx.user.id,
    )
    challan.details = details
    db.add(challan)
    await db.commit()

    challan = await load_challan(db, challan.id)
    return DataResponse[OutwardChallanOut](data=OutwardChallanOut.model_validate(challan))


@router.patch("/{challan_id}", response_model=DataResponse[OutwardChallanOut])
async def update_outward_challan(
    challan_id: int,
    payload: OutwardChallanPatch,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Approve or accept a challan (``statusAction``), or edit it before approval"""
    challan = await load_challan(db, challan_id)

    if payload.status_action == "approve":
        require_permission(ctx, APPROVE_OUTWARD_DELIVERY_CHALLAN)
        await ensure_site_access(db, ctx, challan.from_site_id)
        await approve(db, challan, payload.details, ctx)
    elif payload.status_action == "accept":
        require_permission(ctx, ACCEPT_OUTWARD_DELIVERY_CHALLAN)
        await ensure_site_access(db, ctx, challan.to_site_id)
        await accept(db, challan, payload.details, ctx)
    else:
        require_permission(ctx, EDIT_OUTWARD_DELIVERY_CHALLAN)
        await ensure_site_access(db, ctx, challan.from_site_id)
        if challan.is_approved1:
            raise HTTPException(status_code=400, detail="Approved challans cannot be edited")
        if payload.challan_date is not None:
            challan.challan_date = payload.challan_date
        if "remarks" in payload.model_fields_set:
            challan.remarks = payload.remarks
    await db.commit()

    challan = await load_challan(db, challan.id)
    return DataResponse[OutwardChallanOut](data=OutwardChallanOut.model_validate(challan))


@router.delete("/{challan_id}", status_code=204)
async def delete_outward_challan(
    challan_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    challan = await load_challan(db, challan_id)
    await ensure_site_access(db, ctx, challan.from_site_id)
    if challan.is_approved1:
        raise HTTPException(status_code=400, detail="Approved challans cannot be deleted")
    await db.delete(challan)
    await db.commit()
    return Response(status_code=204)
