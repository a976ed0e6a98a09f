"""Report API Endpoints

BOQ billing summary, cashbook budget sheets and the monthly wage sheet, as
JSON or as downloadable xlsx/PDF files.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access
from siteledger.database import get_db
from siteledger.models.boq import Boq
from siteledger.schemas.boq import BilledSummary
from siteledger.schemas.common import DataResponse
from siteledger.schemas.reports import WageSheet
from siteledger.services import reports
from siteledger.services.boq_billing import BoqBillingService
from siteledger.services.calc import parse_month
from siteledger.services.exports import pdf_response, xlsx_response

router = APIRouter(prefix="/api/reports", tags=["reports"])


async def load_boq(db: AsyncSession, boq_id: int, ctx: AccessContext) -> Boq:
    boq = await get_or_404(db, Boq, boq_id, "BOQ")
    await ensure_site_access(db, ctx, boq.site_id)
    return boq


async def load_budget(db: AsyncSession, budget_id: int, ctx: AccessContext):
    budget = await reports.load_budget_for_report(db, budget_id)
    if budget is None:
        raise HTTPException(status_code=404, detail="Cashbook budget not found")
    await ensure_site_access(db, ctx, budget.site_id)
    return budget


def check_period(period: str) -> None:
    if not parse_month(period):
        raise HTTPException(status_code=400, detail="Invalid period. Expected MM-YYYY")


@router.get("/boq-bills", response_model=DataResponse[BilledSummary])
async def boq_bills_report(
    boq_id: int = Query(..., alias="boqId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Quantities and amounts billed per BOQ item and per bill"""
    boq = await load_boq(db, boq_id, ctx)
    summary = await BoqBillingService.billed_summary(db, boq)
    return DataResponse[BilledSummary](data=BilledSummary(**summary))


@router.get("/boq-bills-excel")
async def boq_bills_excel(
    boq_id: int = Query(..., alias="boqId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    boq = await load_boq(db, boq_id, ctx)
    content = await reports.boq_bills_workbook(db, boq)
    return xlsx_response(content, f"boq-bills-{boq.boq_no}.xlsx")


@router.get("/cashbook-budget-excel")
async def cashbook_budget_excel(
    budget_id: int = Query(..., alias="budgetId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    budget = await load_budget(db, budget_id, ctx)
    return xlsx_response(reports.budget_workbook(budget), f"cashbook-budget-{budget.month}-{budget.id}.xlsx")


@router.get("/cashbook-budget-pdf")
async def cashbook_budget_pdf(
    budget_id: int = Query(..., alias="budgetId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    budget = await load_budget(db, budget_id, ctx)
    return pdf_response(reports.budget_pdf(budget), f"cashbook-budget-{budget.month}-{budget.id}.pdf")


@router.get("/wage-sheet", response_model=DataResponse[WageSheet])
async def wage_sheet_report(
    period: str,
    govt: bool = False,
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Pay slip lines of a period, per worker and site"""
    check_period(period)
    if site_id:
        await ensure_site_access(db, ctx, site_id)
    sheet = await reports.wage_sheet(db, period, govt, site_id)
    return DataResponse[WageSheet](data=WageSheet(**sheet))


@router.get("/wage-sheet-excel")
async def wage_sheet_excel(
    period: str,
    govt: bool = False,
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    check_period(period)
    if site_id:
        await ensure_site_access(db, ctx, site_id)
    sheet = await reports.wage_sheet(db, period, govt, site_id)
    mode = "govt" if govt else "company"
    return xlsx_response(reports.wage_sheet_workbook(sheet), f"wage-sheet-{period}-{mode}.xlsx")
