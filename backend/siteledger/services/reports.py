"""Report builders

Collects report rows from the database and renders them through
``siteledger.services.exports``.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.models.boq import Boq
from siteledger.models.cashbook import CashbookBudget, CashbookBudgetItem
from siteledger.models.manpower import Manpower
from siteledger.models.organisation import Site
from siteledger.models.payroll import PaySlip, PaySlipDetail
from siteledger.services.boq_billing import BoqBillingService
from siteledger.services.calc import round2
from siteledger.services.exports import build_pdf, build_workbook

WAGE_TOTAL_FIELDS = (
    "working_days", "ot", "wages", "ot_amount", "hra", "gross_wages",
    "pf", "esic", "pt", "mlwf", "total",
)


async def wage_sheet(db: AsyncSession, period: str, govt: bool, site_id: int | None = None) -> dict:
    """One row per pay slip site line for the period and mode"""
    query = (
        select(PaySlipDetail)
        .join(PaySlip, PaySlip.id == PaySlipDetail.pay_slip_id)
        .options(
            selectinload(PaySlipDetail.pay_slip)
            .selectinload(PaySlip.manpower)
            .selectinload(Manpower.supplier)
        )
        .where(PaySlip.period == period, PaySlip.govt == govt)
        .order_by(PaySlipDetail.site_id, PaySlip.manpower_id, PaySlipDetail.id)
    )
    if site_id:
        query = query.where(PaySlipDetail.site_id == site_id)
    result = await db.execute(query)
    details = list(result.scalars().all())

    site_ids = {d.site_id for d in details}
    sites = {}
    if site_ids:
        result = await db.execute(select(Site).where(Site.id.in_(site_ids)))
        sites = {s.id: s.site for s in result.scalars().all()}

    rows = []
    for d in details:
        manpower = d.pay_slip.manpower
        rows.append({
            "pay_slip_id": d.pay_slip_id,
            "manpower_id": d.pay_slip.manpower_id,
            "manpower_name": manpower.full_name if manpower else None,
            "supplier_name": manpower.supplier.supplier_name if manpower and manpower.supplier else None,
            "site_id": d.site_id,
            "site_name": sites.get(d.site_id),
            "working_days": d.working_days,
            "ot": d.ot,
            "idle": d.idle,
            "wage_rate": d.wage_rate,
            "wages": d.wages,
            "ot_amount": d.ot_amount,
            "hra": d.hra,
            "gross_wages": d.gross_wages,
            "pf": d.pf,
            "esic": d.esic,
            "pt": d.pt,
            "mlwf": d.mlwf,
            "total": d.total,
        })

    totals = {name: round2(sum(row[name] for row in rows)) for name in WAGE_TOTAL_FIELDS}
    return {"period": period, "govt": govt, "site_id": site_id, "rows": rows, "totals": totals}


def wage_sheet_workbook(sheet: dict) -> bytes:
    headers = [
        "Sr", "Name", "Supplier", "Site", "Days", "OT Hrs", "Idle", "Rate", "Wages",
        "OT Amount", "HRA", "Gross", "PF", "ESIC", "PT", "MLWF", "Net",
    ]
    rows = [
        [
            i, r["manpower_name"], r["supplier_name"], r["site_name"], r["working_days"], r["ot"],
            r["idle"], r["wage_rate"], r["wages"], r["ot_amount"], r["hra"], r["gross_wages"],
            r["pf"], r["esic"], r["pt"], r["mlwf"], r["total"],
        ]
        for i, r in enumerate(sheet["rows"], 1)
    ]
    t = sheet["totals"]
    totals = [
        "", "Total", "", "", t["working_days"], t["ot"], "", "", t["wages"], t["ot_amount"],
        t["hra"], t["gross_wages"], t["pf"], t["esic"], t["pt"], t["mlwf"], t["total"],
    ]
    mode = "Govt" if sheet["govt"] else "Company"
    return build_workbook(
        f"Wage Sheet {sheet['period']} ({mode})",
        headers,
        rows,
        widths=[6, 28, 24, 22] + [12] * 13,
        totals=totals,
        sheet_name="Wage Sheet",
        money_columns=range(8, 18),
    )


async def boq_bills_workbook(db: AsyncSession, boq: Boq) -> bytes:
    """Billed quantity and amount per item, one column pair per bill"""
    summary = await BoqBillingService.billed_summary(db, boq)
    bills = summary["bills"]

    headers = ["Activity", "Description", "Unit", "BOQ Qty", "Rate", "BOQ Amount"]
    for bill in bills:
        label = f"{bill['label']} ({bill['bill_date'].isoformat()})"
        headers += [f"{label} Qty", f"{label} Amount"]
    headers += ["Billed Qty", "Billed Amount", "Remaining Qty"]

    rows = []
    for item in summary["items"]:
        row = [item["activity_id"], item["description"], item["unit"], item["qty"], item["rate"], item["amount"]]
        for bill in bills:
            row += [item["bill_qty"].get(bill["id"], 0), item["bill_amount"].get(bill["id"], 0)]
        row += [item["total_billed_qty"], item["total_billed_amount"], item["remaining_qty"]]
        rows.append(row)

    totals = ["", "Total", "", "", "", round2(sum(i["amount"] for i in summary["items"]))]
    for bill in bills:
        totals += ["", bill["total_bill_amount"]]
    totals += ["", summary["total_billed_amount"], ""]

    money_columns = [5, 6] + [7 + 2 * i + 1 for i in range(len(bills))] + [7 + 2 * len(bills) + 1]
    return build_workbook(
        f"BOQ Bills - {boq.boq_no}",
        headers,
        rows,
        widths=[12, 40, 10] + [14] * (len(headers) - 3),
        totals=totals,
        sheet_name="BOQ Bills",
        money_columns=money_columns,
    )


async def load_budget_for_report(db: AsyncSession, budget_id: int) -> CashbookBudget | None:
    result = await db.execute(
        select(CashbookBudget)
        .options(
            selectinload(CashbookBudget.items).selectinload(CashbookBudgetItem.cashbook_head),
            selectinload(CashbookBudget.site),
            selectinload(CashbookBudget.boq),
        )
        .where(CashbookBudget.id == budget_id)
    )
    return result.scalar_one_or_none()


BUDGET_HEADERS = ["Sr", "Cashbook Head", "Description", "Amount", "Approved 1", "Approved", "Received"]


def _budget_rows(budget: CashbookBudget) -> tuple[list, list]:
    rows = [
        [
            i,
            item.cashbook_head.cashbook_head_name if item.cashbook_head else "",
            item.description or "",
            round2(item.amount),
            round2(item.approved1_amount) if item.approved1_amount is not None else "",
            round2(item.approved_amount) if item.approved_amount is not None else "",
            round2(item.received_amount),
        ]
        for i, item in enumerate(budget.items, 1)
    ]
    totals = [
        "", "Total", "",
        round2(budget.total_budget),
        round2(budget.approved1_budget_amount) if budget.approved1_budget_amount is not None else "",
        round2(budget.approved_budget_amount) if budget.approved_budget_amount is not None else "",
        round2(budget.total_received_amount),
    ]
    return rows, totals


def _budget_title(budget: CashbookBudget) -> str:
    site = budget.site.site if budget.site else f"Site {budget.site_id}"
    return f"Cashbook Budget {budget.month} - {site}"


def budget_workbook(budget: CashbookBudget) -> bytes:
    rows, totals = _budget_rows(budget)
    return build_workbook(
        _budget_title(budget),
        BUDGET_HEADERS,
        rows,
        widths=[6, 28, 40, 16, 16, 16, 16],
        totals=totals,
        sheet_name="Budget",
        money_columns=(4, 5, 6, 7),
    )


def budget_pdf(budget: CashbookBudget) -> bytes:
    rows, totals = _budget_rows(budget)
    info = [f"Budget: {budget.name}"]
    if budget.boq:
        info.append(f"BOQ: {budget.boq.boq_no}")
    if budget.remarks:
        info.append(f"Remarks: {budget.remarks}")
    return build_pdf(
        _budget_title(budget),
        info,
        BUDGET_HEADERS,
        rows,
        col_widths=[30, 110, 150, 60, 60, 60, 60],
        totals=totals,
    )
