"""Site Budget API Endpoints

Budgeted quantity and rate per site, BOQ and item. Ordered figures and the
50/75 percent alerts follow the purchase orders.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.boq import Boq
from siteledger.models.masters import Item
from siteledger.models.organisation import Site
from siteledger.models.procurement import SiteBudget
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.procurement import (
    SiteBudgetCreate,
    SiteBudgetOut,
    SiteBudgetSummary,
    SiteBudgetUpdate,
)
from siteledger.services.calc import line_amount, round2
from siteledger.services.site_budget import SiteBudgetService, apply_alerts

router = APIRouter(
    prefix="/api/site-budgets", tags=["site-budgets"], dependencies=[Depends(guard_api_access)]
)

SORT_FIELDS = {
    "budgetQty": SiteBudget.budget_qty,
    "budgetValue": SiteBudget.budget_value,
    "orderedQty": SiteBudget.ordered_qty,
    "item": Item.item,
    "createdAt": SiteBudget.created_at,
}


async def load_budget(db: AsyncSession, budget_id: int) -> SiteBudget:
    return await get_or_404(db, SiteBudget, budget_id, "Site budget", options=[selectinload(SiteBudget.item)])


def to_out(budget: SiteBudget) -> SiteBudgetOut:
    out = SiteBudgetOut.model_validate(budget)
    out.item_name = budget.item.item if budget.item else None
    return out


@router.get("/summary/{site_id}", response_model=DataResponse[SiteBudgetSummary])
async def site_budget_summary(site_id: int, db: AsyncSession = Depends(get_db)):
    await get_or_404(db, Site, site_id, "Site")
    result = await db.execute(
        select(
            func.count(SiteBudget.id),
            func.coalesce(func.sum(SiteBudget.budget_value), 0),
            func.coalesce(func.avg(SiteBudget.budget_rate), 0),
        ).where(SiteBudget.site_id == site_id)
    )
    count, total_value, avg_rate = result.one()
    return DataResponse[SiteBudgetSummary](data=SiteBudgetSummary(
        site_id=site_id,
        total_items=count,
        total_budget_value=round2(total_value),
        avg_budget_rate=round2(avg_rate),
    ))


@router.get("", response_model=ListResponse[SiteBudgetOut])
async def list_site_budgets(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    item_id: Optional[int] = Query(None, alias="itemId"),
    db: AsyncSession = Depends(get_db),
):
    query = select(SiteBudget).join(Item, Item.id == SiteBudget.item_id).options(selectinload(SiteBudget.item))
    if site_id:
        query = query.where(SiteBudget.site_id == site_id)
    if boq_id:
        query = query.where(SiteBudget.boq_id == boq_id)
    if item_id:
        query = query.where(SiteBudget.item_id == item_id)

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "createdAt", [Item.item, Item.item_code])
    return ListResponse[SiteBudgetOut](data=[to_out(b) for b in rows], meta=PageMeta(**meta))


@router.get("/{budget_id}", response_model=DataResponse[SiteBudgetOut])
async def get_site_budget(budget_id: int, db: AsyncSession = Depends(get_db)):
    budget = await load_budget(db, budget_id)
    return DataResponse[SiteBudgetOut](data=to_out(budget))


@router.post("", response_model=DataResponse[SiteBudgetOut], status_code=201)
async def create_site_budget(payload: SiteBudgetCreate, db: AsyncSession = Depends(get_db)):
    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_exists(db, Boq, payload.boq_id, "BOQ")
    await ensure_exists(db, Item, payload.item_id, "Item")
    await ensure_unique(
        db, SiteBudget,
        {"site_id": payload.site_id, "boq_id": payload.boq_id, "item_id": payload.item_id},
        "Budget for this site, BOQ and item already exists",
    )

    budget = SiteBudget(**payload.model_dump())
    budget.budget_value = line_amount(budget.budget_qty, budget.budget_rate)
    db.add(budget)
    await SiteBudgetService.recompute_ordered(db, budget.site_id, budget.boq_id, [budget.item_id])
    await db.commit()

    budget = await load_budget(db, budget.id)
    return DataResponse[SiteBudgetOut](data=to_out(budget))


@router.patch("/{budget_id}", response_model=DataResponse[SiteBudgetOut])
async def update_site_budget(budget_id: int, payload: SiteBudgetUpdate, db: AsyncSession = Depends(get_db)):
    budget = await load_budget(db, budget_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("budget_qty", "budget_rate"):
        if changes.get(field) is not None:
            setattr(budget, field, changes[field])
    if "purchase_rate" in changes:
        budget.purchase_rate = changes["purchase_rate"]
    budget.budget_value = line_amount(budget.budget_qty, budget.budget_rate)
    apply_alerts(budget)
    await db.commit()

    budget = await load_budget(db, budget.id)
    return DataResponse[SiteBudgetOut](data=to_out(budget))


@router.delete("/{budget_id}", status_code=204)
async def delete_site_budget(budget_id: int, db: AsyncSession = Depends(get_db)):
    budget = await load_budget(db, budget_id)
    await db.delete(budget)
    await db.commit()
    return Response(status_code=204)
