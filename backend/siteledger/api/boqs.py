"""BOQ API Endpoints

Bills of quantities with their work items, and the work done view showing
ordered, billed and remaining figures per item.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import apply_changes, ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.boq import Boq, BoqItem
from siteledger.models.masters import Unit
from siteledger.models.organisation import Site
from siteledger.schemas.boq import BoqCreate, BoqItemIn, BoqOut, BoqUpdate, WorkDoneRow
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.services.boq_billing import BoqBillingService
from siteledger.services.calc import line_amount, round2

router = APIRouter(prefix="/api/boqs", tags=["boqs"])

SORT_FIELDS = {
    "boqNo": Boq.boq_no,
    "workName": Boq.work_name,
    "totalWorkValue": Boq.total_work_value,
    "startDate": Boq.start_date,
    "createdAt": Boq.created_at,
}

WORK_DONE_SORT_FIELDS = {
    "boqNo": Boq.boq_no,
    "description": BoqItem.description,
    "qty": BoqItem.qty,
    "rate": BoqItem.rate,
    "amount": BoqItem.amount,
    "site": Site.site,
}


async def load_boq(db: AsyncSession, boq_id: int) -> Boq:
    return await get_or_404(db, Boq, boq_id, "BOQ", options=[selectinload(Boq.items)])


async def check_units(db: AsyncSession, items: list[BoqItemIn]) -> None:
    for unit_id in {item.unit_id for item in items if item.unit_id}:
        await ensure_exists(db, Unit, unit_id, "Unit")


def item_values(item: BoqItemIn) -> dict:
    values = item.model_dump(exclude={"id", "amount"})
    values["amount"] = item.amount if item.amount is not None else line_amount(item.qty, item.rate)
    return values


@router.get("/work-done", response_model=ListResponse[WorkDoneRow])
async def work_done(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Ordered vs billed vs remaining quantity per BOQ item"""
    query = (
        select(BoqItem)
        .join(Boq, Boq.id == BoqItem.boq_id)
        .join(Site, Site.id == Boq.site_id)
        .options(selectinload(BoqItem.boq).selectinload(Boq.site), selectinload(BoqItem.unit))
    )
    if site_id:
        query = query.where(Boq.site_id == site_id)
    if boq_id:
        query = query.where(BoqItem.boq_id == boq_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(Boq.site_id.in_(site_ids))

    rows, meta = await paginate(
        db, query, params, WORK_DONE_SORT_FIELDS, "boqNo", [Boq.boq_no, BoqItem.description]
    )
    billed = await BoqBillingService.billed_totals(db, [item.id for item in rows])

    data = []
    for item in rows:
        billed_qty, billed_amount = billed.get(item.id, (0.0, 0.0))
        data.append(WorkDoneRow(
            id=item.id,
            boq_id=item.boq_id,
            boq_no=item.boq.boq_no,
            site_id=item.boq.site_id,
            site=item.boq.site.site if item.boq.site else None,
            activity_id=item.activity_id,
            description=item.description,
            unit=item.unit.unit_name if item.unit else None,
            rate=item.rate,
            ordered_qty=item.qty,
            ordered_amount=item.amount,
            billed_qty=round(billed_qty, 4),
            billed_amount=round2(billed_amount),
            remaining_qty=round((item.qty or 0) - billed_qty, 4),
            remaining_amount=round2((item.amount or 0) - billed_amount),
        ))
    return ListResponse[WorkDoneRow](data=data, meta=PageMeta(**meta))


@router.get("", response_model=ListResponse[BoqOut])
async def list_boqs(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(Boq).options(selectinload(Boq.items))
    if site_id:
        query = query.where(Boq.site_id == site_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(Boq.site_id.in_(site_ids))

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt", [Boq.boq_no, Boq.work_name, Boq.work_order_no]
    )
    return ListResponse[BoqOut](data=[BoqOut.model_validate(b) for b in rows], meta=PageMeta(**meta))


@router.get("/{boq_id}", response_model=DataResponse[BoqOut])
async def get_boq(
    boq_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    boq = await load_boq(db, boq_id)
    await ensure_site_access(db, ctx, boq.site_id)
    return DataResponse[BoqOut](data=BoqOut.model_validate(boq))


@router.post("", response_model=DataResponse[BoqOut], status_code=201)
async def create_boq(
    payload: BoqCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_site_access(db, ctx, payload.site_id)
    await check_units(db, payload.items)
    await ensure_unique(db, Boq, {"boq_no": payload.boq_no}, "BOQ number already exists")

    data = payload.model_dump(exclude={"items", "total_work_value"}, exclude_none=True)
    boq = Boq(**data)
    boq.items = [BoqItem(**item_values(item)) for item in payload.items]
    boq.total_work_value = (
        payload.total_work_value
        if payload.total_work_value is not None
        else round2(sum(item.amount for item in boq.items))
    )
    db.add(boq)
    await db.commit()

    boq = await load_boq(db, boq.id)
    return DataResponse[BoqOut](data=BoqOut.model_validate(boq))


@router.patch("/{boq_id}", response_model=DataResponse[BoqOut])
async def update_boq(
    boq_id: int,
    payload: BoqUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Update a BOQ; when items are sent they replace the item list"""
    boq = await load_boq(db, boq_id)
    await ensure_site_access(db, ctx, boq.site_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"items"})
    if changes.get("boq_no"):
        await ensure_unique(db, Boq, {"boq_no": changes["boq_no"]}, "BOQ number already exists", exclude_id=boq.id)
    if changes.get("site_id"):
        await ensure_exists(db, Site, changes["site_id"], "Site")
        await ensure_site_access(db, ctx, changes["site_id"])
    apply_changes(boq, changes)

    if payload.items is not None:
        await check_units(db, payload.items)
        existing = {item.id: item for item in boq.items}
        billed = await BoqBillingService.billed_totals(db, list(existing))

        kept_ids = {item.id for item in payload.items if item.id}
        unknown = kept_ids - set(existing)
        if unknown:
            raise HTTPException(status_code=400, detail=f"BOQ items not found: {sorted(unknown)}")
        for item_id, item in existing.items():
            if item_id not in kept_ids and item_id in billed:
                raise HTTPException(
                    status_code=400,
                    detail=f"BOQ item {item.activity_id or item_id} is billed and cannot be removed",
                )

        items = []
        for entry in payload.items:
            if entry.id:
                item = existing[entry.id]
                billed_qty = billed.get(entry.id, (0.0, 0.0))[0]
                if entry.qty < billed_qty:
                    raise HTTPException(
                        status_code=400,
                        detail=f"BOQ item {item.activity_id or item.id} qty cannot be below billed qty {billed_qty:g}",
                    )
                for field, value in item_values(entry).items():
                    setattr(item, field, value)
            else:
                item = BoqItem(**item_values(entry))
            items.append(item)
        boq.items = items
        if payload.total_work_value is None:
            boq.total_work_value = round2(sum(item.amount for item in items))

    await db.commit()
    boq = await load_boq(db, boq.id)
    return DataResponse[BoqOut](data=BoqOut.model_validate(boq))


@router.delete("/{boq_id}", status_code=204)
async def delete_boq(
    boq_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    boq = await load_boq(db, boq_id)
    await ensure_site_access(db, ctx, boq.site_id)
    await db.delete(boq)
    await db.commit()
    return Response(status_code=204)
