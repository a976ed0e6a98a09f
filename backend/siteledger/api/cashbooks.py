"""Cashbook API Endpoints

Cash vouchers per site and BOQ. Every write recomputes the running
balances of the heads it touched and the received amounts of the month's
cashbook budget.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.boq import Boq
from siteledger.models.cashbook import Cashbook, CashbookDetail
from siteledger.models.masters import CashbookHead
from siteledger.models.organisation import Site
from siteledger.schemas.cashbook import (
    CashbookCreate,
    CashbookDetailIn,
    CashbookDetailOut,
    CashbookOut,
    CashbookUpdate,
    LastBalanceOut,
)
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.services.calc import month_of
from siteledger.services.cashbook import CashbookService
from siteledger.services.numbering import next_serial

router = APIRouter(prefix="/api/cashbooks", tags=["cashbooks"])

SORT_FIELDS = {
    "voucherNo": Cashbook.voucher_no,
    "voucherDate": Cashbook.voucher_date,
    "totalReceived": Cashbook.total_received,
    "totalExpense": Cashbook.total_expense,
    "createdAt": Cashbook.created_at,
}

CASHBOOK_OPTIONS = [selectinload(Cashbook.details).selectinload(CashbookDetail.cashbook_head)]


async def load_cashbook(db: AsyncSession, cashbook_id: int) -> Cashbook:
    return await get_or_404(db, Cashbook, cashbook_id, "Cashbook", options=CASHBOOK_OPTIONS)


def to_cashbook_out(cashbook: Cashbook) -> CashbookOut:
    out = CashbookOut.model_validate(cashbook)
    out.details = [
        CashbookDetailOut.model_validate(d).model_copy(
            update={"cashbook_head_name": d.cashbook_head.cashbook_head_name if d.cashbook_head else None}
        )
        for d in cashbook.details
    ]
    return out


async def check_references(db: AsyncSession, site_id: int, boq_id: int | None, details: list[CashbookDetailIn]) -> None:
    await ensure_exists(db, Site, site_id, "Site")
    if boq_id is not None:
        boq = await db.get(Boq, boq_id)
        if boq is None:
            raise HTTPException(status_code=400, detail="BOQ not found")
        if boq.site_id != site_id:
            raise HTTPException(status_code=400, detail="BOQ does not belong to the selected site")
    for head_id in {d.cashbook_head_id for d in details}:
        await ensure_exists(db, CashbookHead, head_id, "Cashbook head")


async def recompute(db: AsyncSession, contexts: set[tuple], head_ids: set[int], from_date: date) -> None:
    """Balances and budget receipts for each (site, boq, month) touched"""
    for site_id, boq_id in {(s, b) for s, b, _ in contexts}:
        await CashbookService.recompute_balances(db, site_id, boq_id, head_ids, from_date)
    for site_id, boq_id, month in contexts:
        await CashbookService.recompute_budget_received(db, site_id, boq_id, month)


@router.get("/last-balance", response_model=DataResponse[LastBalanceOut])
async def last_balance(
    site_id: int = Query(..., alias="siteId"),
    cashbook_head_id: int = Query(..., alias="cashbookHeadId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    before: Optional[date] = Query(None, alias="date"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Closing balance of a head before the given voucher date"""
    await ensure_site_access(db, ctx, site_id)
    balance = await CashbookService.last_balance(db, site_id, boq_id, cashbook_head_id, before)
    return DataResponse[LastBalanceOut](data=LastBalanceOut(
        site_id=site_id, boq_id=boq_id, cashbook_head_id=cashbook_head_id, closing_balance=balance
    ))


@router.get("", response_model=ListResponse[CashbookOut])
async def list_cashbooks(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(Cashbook).options(*CASHBOOK_OPTIONS)
    if site_id:
        query = query.where(Cashbook.site_id == site_id)
    if boq_id:
        query = query.where(Cashbook.boq_id == boq_id)
    if from_date:
        query = query.where(Cashbook.voucher_date >= from_date)
    if to_date:
        query = query.where(Cashbook.voucher_date <= to_date)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(Cashbook.site_id.in_(site_ids))

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "voucherDate", [Cashbook.voucher_no])
    return ListResponse[CashbookOut](data=[to_cashbook_out(c) for c in rows], meta=PageMeta(**meta))


@router.get("/{cashbook_id}", response_model=DataResponse[CashbookOut])
async def get_cashbook(
    cashbook_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    cashbook = await load_cashbook(db, cashbook_id)
    await ensure_site_access(db, ctx, cashbook.site_id)
    return DataResponse[CashbookOut](data=to_cashbook_out(cashbook))


@router.post("", response_model=DataResponse[CashbookOut], status_code=201)
async def create_cashbook(
    payload: CashbookCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await check_references(db, payload.site_id, payload.boq_id, payload.details)
    await ensure_site_access(db, ctx, payload.site_id)
    if payload.voucher_no:
        await ensure_unique(db, Cashbook, {"voucher_no": payload.voucher_no}, "Voucher number already exists")
        voucher_no = payload.voucher_no
    else:
        voucher_no = await next_serial(db, Cashbook.voucher_no, "CB")

    cashbook = Cashbook(
        voucher_no=voucher_no,
        voucher_date=payload.voucher_date,
        site_id=payload.site_id,
        boq_id=payload.boq_id,
        attach_voucher_copy_url=payload.attach_voucher_copy_url,
        created_by_id=ctx.user.id,
    )
    cashbook.details = [CashbookDetail(**d.model_dump()) for d in payload.details]
    CashbookService.refresh_totals(cashbook)
    db.add(cashbook)
    await db.flush()

    await recompute(
        db,
        {(cashbook.site_id, cashbook.boq_id, month_of(cashbook.voucher_date))},
        {d.cashbook_head_id for d in cashbook.details},
        cashbook.voucher_date,
    )
    await db.commit()

    cashbook = await load_cashbook(db, cashbook.id)
    return DataResponse[CashbookOut](data=to_cashbook_out(cashbook))


@router.patch("/{cashbook_id}", response_model=DataResponse[CashbookOut])
async def update_cashbook(
    cashbook_id: int,
    payload: CashbookUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Update a voucher; details, when sent, replace the existing lines"""
    cashbook = await load_cashbook(db, cashbook_id)
    await ensure_site_access(db, ctx, cashbook.site_id)

    before = (cashbook.site_id, cashbook.boq_id, month_of(cashbook.voucher_date))
    before_date = cashbook.voucher_date
    head_ids = {d.cashbook_head_id for d in cashbook.details}

    changes = payload.model_dump(exclude_unset=True, exclude={"details"})
    site_id = changes.get("site_id") or cashbook.site_id
    boq_id = changes["boq_id"] if "boq_id" in changes else cashbook.boq_id
    details = payload.details if payload.details is not None else []
    await check_references(db, site_id, boq_id, details)
    if site_id != cashbook.site_id:
        await ensure_site_access(db, ctx, site_id)
    if changes.get("voucher_no"):
        await ensure_unique(
            db, Cashbook, {"voucher_no": changes["voucher_no"]},
            "Voucher number already exists", exclude_id=cashbook.id,
        )

    for field in ("voucher_no", "voucher_date", "attach_voucher_copy_url"):
        if changes.get(field) is not None:
            setattr(cashbook, field, changes[field])
    cashbook.site_id = site_id
    cashbook.boq_id = boq_id
    if payload.details is not None:
        cashbook.details = [CashbookDetail(**d.model_dump()) for d in payload.details]
        head_ids |= {d.cashbook_head_id for d in payload.details}
    CashbookService.refresh_totals(cashbook)
    await db.flush()

    after = (cashbook.site_id, cashbook.boq_id, month_of(cashbook.voucher_date))
    await recompute(db, {before, after}, head_ids, min(before_date, cashbook.voucher_date))
    await db.commit()

    cashbook = await load_cashbook(db, cashbook.id)
    return DataResponse[CashbookOut](data=to_cashbook_out(cashbook))


@router.delete("/{cashbook_id}", status_code=204)
async def delete_cashbook(
    cashbook_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    cashbook = await load_cashbook(db, cashbook_id)
    await ensure_site_access(db, ctx, cashbook.site_id)
    context = (cashbook.site_id, cashbook.boq_id, month_of(cashbook.voucher_date))
    head_ids = {d.cashbook_head_id for d in cashbook.details}
    voucher_date = cashbook.voucher_date

    await db.delete(cashbook)
    await db.flush()
    await recompute(db, {context}, head_ids, voucher_date)
    await db.commit()
    return Response(status_code=204)
