"""Cashbook Budget API Endpoints

Monthly cash budgets per site and BOQ, and the approve_1 / approve /
accept chain. Budgets are frozen once the first approval is recorded.
"""

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
from siteledger.models.cashbook import CashbookBudget, CashbookBudgetItem
from siteledger.models.masters import CashbookHead
from siteledger.models.organisation import Site
from siteledger.schemas.cashbook import (
    BudgetActionRequest,
    BudgetItemIn,
    BudgetItemOut,
    CashbookBudgetCreate,
    CashbookBudgetOut,
    CashbookBudgetUpdate,
)
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.services.budget_workflow import BudgetWorkflow, available_actions, budget_status, is_locked
from siteledger.services.calc import parse_month, round2
from siteledger.services.cashbook import CashbookService

router = APIRouter(prefix="/api/cashbook-budgets", tags=["cashbook-budgets"])

SORT_FIELDS = {
    "name": CashbookBudget.name,
    "month": CashbookBudget.month,
    "totalBudget": CashbookBudget.total_budget,
    "createdAt": CashbookBudget.created_at,
}

DUPLICATE_MESSAGE = "Budget for this month, site, and BOQ combination already exists"

BUDGET_OPTIONS = [
    selectinload(CashbookBudget.items).selectinload(CashbookBudgetItem.cashbook_head),
    selectinload(CashbookBudget.site),
    selectinload(CashbookBudget.boq),
]


async def load_budget(db: AsyncSession, budget_id: int) -> CashbookBudget:
    return await get_or_404(db, CashbookBudget, budget_id, "Cashbook budget", options=BUDGET_OPTIONS)


def to_budget_out(budget: CashbookBudget, ctx: AccessContext) -> CashbookBudgetOut:
    return CashbookBudgetOut(
        id=budget.id,
        name=budget.name,
        month=budget.month,
        site_id=budget.site_id,
        site_name=budget.site.site if budget.site else None,
        boq_id=budget.boq_id,
        boq_no=budget.boq.boq_no if budget.boq else None,
        remarks=budget.remarks,
        total_budget=budget.total_budget,
        approved1_budget_amount=budget.approved1_budget_amount,
        approved_budget_amount=budget.approved_budget_amount,
        total_received_amount=budget.total_received_amount,
        created_by_id=budget.created_by_id,
        approved1_by_id=budget.approved1_by_id,
        approved1_at=budget.approved1_at,
        approved_by_id=budget.approved_by_id,
        approved_at=budget.approved_at,
        accepted_by_id=budget.accepted_by_id,
        accepted_at=budget.accepted_at,
        status=budget_status(budget),
        available_actions=available_actions(budget, ctx.permissions),
        items=[
            BudgetItemOut.model_validate(item).model_copy(
                update={"cashbook_head_name": item.cashbook_head.cashbook_head_name if item.cashbook_head else None}
            )
            for item in budget.items
        ],
        created_at=budget.created_at,
        updated_at=budget.updated_at,
    )


def check_month(month: str) -> None:
    if not parse_month(month):
        raise HTTPException(status_code=400, detail="Invalid month. Expected MM-YYYY")


async def check_references(db: AsyncSession, site_id: int, boq_id: int | None, items: list[BudgetItemIn]) -> None:
    await ensure_exists(db, Site, site_id, "Site")
    await ensure_exists(db, Boq, boq_id, "BOQ")
    for head_id in {item.cashbook_head_id for item in items}:
        await ensure_exists(db, CashbookHead, head_id, "Cashbook head")


def build_items(items: list[BudgetItemIn]) -> list[CashbookBudgetItem]:
    return [
        CashbookBudgetItem(
            cashbook_head_id=item.cashbook_head_id,
            description=item.description,
            amount=round2(item.amount),
        )
        for item in items
    ]


@router.get("", response_model=ListResponse[CashbookBudgetOut])
async def list_budgets(
    params: ListParams = Depends(list_params),
    month: Optional[str] = None,
    site_id: Optional[int] = Query(None, alias="siteId"),
    boq_id: Optional[int] = Query(None, alias="boqId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(CashbookBudget).options(*BUDGET_OPTIONS)
    if month:
        query = query.where(CashbookBudget.month == month)
    if site_id:
        query = query.where(CashbookBudget.site_id == site_id)
    if boq_id:
        query = query.where(CashbookBudget.boq_id == boq_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(CashbookBudget.site_id.in_(site_ids))

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt", [CashbookBudget.name, CashbookBudget.month]
    )
    return ListResponse[CashbookBudgetOut](
        data=[to_budget_out(b, ctx) for b in rows], meta=PageMeta(**meta)
    )


@router.get("/{budget_id}", response_model=DataResponse[CashbookBudgetOut])
async def get_budget(
    budget_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    budget = await load_budget(db, budget_id)
    await ensure_site_access(db, ctx, budget.site_id)
    return DataResponse[CashbookBudgetOut](data=to_budget_out(budget, ctx))


@router.post("", response_model=DataResponse[CashbookBudgetOut], status_code=201)
async def create_budget(
    payload: CashbookBudgetCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    check_month(payload.month)
    await check_references(db, payload.site_id, payload.boq_id, payload.items)
    await ensure_site_access(db, ctx, payload.site_id)
    await ensure_unique(
        db, CashbookBudget,
        {"month": payload.month, "site_id": payload.site_id, "boq_id": payload.boq_id},
        DUPLICATE_MESSAGE,
    )

    budget = CashbookBudget(
        name=payload.name,
        month=payload.month,
        site_id=payload.site_id,
        boq_id=payload.boq_id,
        remarks=payload.remarks,
        created_by_id=ctx.user.id,
    )
    budget.items = build_items(payload.items)
    budget.total_budget = round2(sum(item.amount for item in budget.items))
    db.add(budget)
    await db.flush()
    await CashbookService.recompute_budget_received(db, budget.site_id, budget.boq_id, budget.month)
    await db.commit()

    budget = await load_budget(db, budget.id)
    return DataResponse[CashbookBudgetOut](data=to_budget_out(budget, ctx))


@router.patch("/{budget_id}", response_model=DataResponse[CashbookBudgetOut])
async def update_budget(
    budget_id: int,
    payload: CashbookBudgetUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Update a draft budget; items, when sent, replace the existing ones"""
    budget = await load_budget(db, budget_id)
    await ensure_site_access(db, ctx, budget.site_id)
    if is_locked(budget):
        raise HTTPException(status_code=400, detail="Approved budgets cannot be edited")

    changes = payload.model_dump(exclude_unset=True, exclude={"items"})
    month = changes.get("month") or budget.month
    site_id = changes.get("site_id") or budget.site_id
    boq_id = changes["boq_id"] if "boq_id" in changes else budget.boq_id
    check_month(month)
    await check_references(db, site_id, boq_id, payload.items or [])
    if site_id != budget.site_id:
        await ensure_site_access(db, ctx, site_id)
    await ensure_unique(
        db, CashbookBudget,
        {"month": month, "site_id": site_id, "boq_id": boq_id},
        DUPLICATE_MESSAGE, exclude_id=budget.id,
    )

    if changes.get("name"):
        budget.name = changes["name"]
    if "remarks" in changes:
        budget.remarks = changes["remarks"]
    budget.month, budget.site_id, budget.boq_id = month, site_id, boq_id
    if payload.items is not None:
        budget.items = build_items(payload.items)
        budget.total_budget = round2(sum(item.amount for item in budget.items))
    await db.flush()
    await CashbookService.recompute_budget_received(db, budget.site_id, budget.boq_id, budget.month)
    await db.commit()

    budget = await load_budget(db, budget.id)
    return DataResponse[CashbookBudgetOut](data=to_budget_out(budget, ctx))


@router.post("/{budget_id}/actions", response_model=DataResponse[CashbookBudgetOut])
async def budget_action(
    budget_id: int,
    payload: BudgetActionRequest,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Run the next approval chain action on a budget"""
    budget = await load_budget(db, budget_id)
    await ensure_site_access(db, ctx, budget.site_id)
    BudgetWorkflow.apply(budget, payload.action, payload.budget_items, ctx.user.id, ctx.permissions)
    await db.commit()

    budget = await load_budget(db, budget.id)
    return DataResponse[CashbookBudgetOut](data=to_budget_out(budget, ctx))


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    budget = await load_budget(db, budget_id)
    await ensure_site_access(db, ctx, budget.site_id)
    if is_locked(budget):
        raise HTTPException(status_code=400, detail="Approved budgets cannot be deleted")
    await db.delete(budget)
    await db.commit()
    return Response(status_code=204)
