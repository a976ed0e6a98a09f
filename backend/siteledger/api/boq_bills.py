"""BOQ Bill API Endpoints

Running bills raised against a BOQ. Line amounts come from the BOQ item
rate and the bill total is always the sum of its lines.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.errors import BusinessRuleError
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.boq import Boq, BoqBill, BoqBillDetail
from siteledger.schemas.boq import BoqBillCreate, BoqBillDetailOut, BoqBillOut, BoqBillUpdate
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.services.boq_billing import BoqBillingService

router = APIRouter(prefix="/api/boq-bills", tags=["boq-bills"])

SORT_FIELDS = {
    "billDate": BoqBill.bill_date,
    "billNumber": BoqBill.bill_number,
    "billName": BoqBill.bill_name,
    "totalBillAmount": BoqBill.total_bill_amount,
    "createdAt": BoqBill.created_at,
}

BILL_OPTIONS = [
    selectinload(BoqBill.boq),
    selectinload(BoqBill.details).selectinload(BoqBillDetail.boq_item),
]


async def load_bill(db: AsyncSession, bill_id: int) -> BoqBill:
    return await get_or_404(db, BoqBill, bill_id, "BOQ bill", options=BILL_OPTIONS)


async def ensure_boq_access(db: AsyncSession, ctx: AccessContext, boq_id: int) -> None:
    boq = await db.get(Boq, boq_id)
    if boq is None:
        raise BusinessRuleError("BOQ not found")
    await ensure_site_access(db, ctx, boq.site_id)


def to_bill_out(bill: BoqBill) -> BoqBillOut:
    return BoqBillOut(
        id=bill.id,
        boq_id=bill.boq_id,
        boq_no=bill.boq.boq_no if bill.boq else None,
        bill_number=bill.bill_number,
        bill_name=bill.bill_name,
        bill_date=bill.bill_date,
        remarks=bill.remarks,
        total_bill_amount=bill.total_bill_amount,
        details=[
            BoqBillDetailOut(
                id=d.id,
                boq_item_id=d.boq_item_id,
                qty=d.qty,
                amount=d.amount,
                description=d.boq_item.description if d.boq_item else None,
                activity_id=d.boq_item.activity_id if d.boq_item else None,
                rate=d.boq_item.rate if d.boq_item else None,
            )
            for d in bill.details
        ],
        created_at=bill.created_at,
        updated_at=bill.updated_at,
    )


@router.get("", response_model=ListResponse[BoqBillOut])
async def list_bills(
    params: ListParams = Depends(list_params),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(BoqBill).join(Boq, Boq.id == BoqBill.boq_id).options(*BILL_OPTIONS)
    if boq_id:
        query = query.where(BoqBill.boq_id == boq_id)
    if site_id:
        query = query.where(Boq.site_id == site_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(Boq.site_id.in_(site_ids))

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt",
        [BoqBill.bill_number, BoqBill.bill_name, Boq.boq_no],
    )
    return ListResponse[BoqBillOut](data=[to_bill_out(b) for b in rows], meta=PageMeta(**meta))


@router.get("/{bill_id}", response_model=DataResponse[BoqBillOut])
async def get_bill(
    bill_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    bill = await load_bill(db, bill_id)
    await ensure_site_access(db, ctx, bill.boq.site_id)
    return DataResponse[BoqBillOut](data=to_bill_out(bill))


@router.post("", response_model=DataResponse[BoqBillOut], status_code=201)
async def create_bill(
    payload: BoqBillCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await ensure_boq_access(db, ctx, payload.boq_id)
    await ensure_unique(db, BoqBill, {"bill_number": payload.bill_number}, "Bill number already exists")
    bill = await BoqBillingService.create_bill(
        db, payload.model_dump(exclude={"details"}), payload.details
    )
    await db.commit()

    bill = await load_bill(db, bill.id)
    return DataResponse[BoqBillOut](data=to_bill_out(bill))


@router.patch("/{bill_id}", response_model=DataResponse[BoqBillOut])
async def update_bill(
    bill_id: int,
    payload: BoqBillUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Update bill header fields and upsert its lines"""
    bill = await load_bill(db, bill_id)
    await ensure_site_access(db, ctx, bill.boq.site_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"details"})
    if changes.get("boq_id") and changes["boq_id"] != bill.boq_id:
        await ensure_boq_access(db, ctx, changes["boq_id"])
    if changes.get("bill_number"):
        await ensure_unique(
            db, BoqBill, {"bill_number": changes["bill_number"]},
            "Bill number already exists", exclude_id=bill.id,
        )
    await BoqBillingService.update_bill(db, bill, changes, payload.details)
    await db.commit()

    bill = await load_bill(db, bill.id)
    return DataResponse[BoqBillOut](data=to_bill_out(bill))


@router.delete("/{bill_id}", status_code=204)
async def delete_bill(
    bill_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    bill = await load_bill(db, bill_id)
    await ensure_site_access(db, ctx, bill.boq.site_id)
    await db.delete(bill)
    await db.commit()
    return Response(status_code=204)
