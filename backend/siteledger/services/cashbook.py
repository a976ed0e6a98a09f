"""Cashbook Services

Running balances are kept per (site, BOQ, cashbook head). A detail's
opening balance is the closing balance of the detail before it, ordered by
voucher date, then cashbook id, then detail id. Any write recomputes the
chain from the earliest voucher date it touched.
"""

import logging
from datetime import date
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.models.cashbook import Cashbook, CashbookBudget, CashbookDetail
from siteledger.services.calc import month_bounds, round2, same_or_null

logger = logging.getLogger(__name__)


class CashbookService:
    """Service for cashbook balances and budget receipts"""

    @staticmethod
    def refresh_totals(cashbook: Cashbook) -> None:
        cashbook.total_received = round2(sum(d.received or 0 for d in cashbook.details))
        cashbook.total_expense = round2(sum(d.expense or 0 for d in cashbook.details))

    @staticmethod
    async def last_balance(
        db: AsyncSession,
        site_id: int,
        boq_id: int | None,
        head_id: int,
        before: date | None = None,
    ) -> float:
        """Closing balance of the last detail before ``before`` (or overall)"""
        query = (
            select(CashbookDetail.closing_balance)
            .join(Cashbook, Cashbook.id == CashbookDetail.cashbook_id)
            .where(
                CashbookDetail.cashbook_head_id == head_id,
                Cashbook.site_id == site_id,
                same_or_null(Cashbook.boq_id, boq_id),
            )
            .order_by(Cashbook.voucher_date.desc(), Cashbook.id.desc(), CashbookDetail.id.desc())
            .limit(1)
        )
        if before is not None:
            query = query.where(Cashbook.voucher_date < before)
        result = await db.execute(query)
        return round2(result.scalar() or 0)

    @staticmethod
    async def recompute_balances(
        db: AsyncSession,
        site_id: int,
        boq_id: int | None,
        head_ids,
        from_date: date,
    ) -> int:
        """Rewrite opening/closing balances from ``from_date`` onwards"""
        await db.flush()
        updated = 0
        for head_id in sorted(set(head_ids)):
            running = await CashbookService.last_balance(db, site_id, boq_id, head_id, before=from_date)
            result = await db.execute(
                select(CashbookDetail)
                .join(Cashbook, Cashbook.id == CashbookDetail.cashbook_id)
                .where(
                    CashbookDetail.cashbook_head_id == head_id,
                    Cashbook.site_id == site_id,
                    same_or_null(Cashbook.boq_id, boq_id),
                    Cashbook.voucher_date >= from_date,
                )
                .order_by(Cashbook.voucher_date, Cashbook.id, CashbookDetail.id)
            )
            for detail in result.scalars().all():
                opening = round2(running)
                closing = round2(opening + (detail.received or 0) - (detail.expense or 0))
                if detail.opening_balance != opening or detail.closing_balance != closing:
                    detail.opening_balance = opening
                    detail.closing_balance = closing
                    updated += 1
                running = closing
        await db.flush()
        if updated:
            logger.debug(f"Recomputed {updated} cashbook balances for site {site_id} from {from_date}")
        return updated

    @staticmethod
    async def recompute_budget_received(
        db: AsyncSession, site_id: int, boq_id: int | None, month: str
    ) -> CashbookBudget | None:
        """Copy the month's received cash per head onto the matching budget"""
        await db.flush()
        result = await db.execute(
            select(CashbookBudget)
            .options(selectinload(CashbookBudget.items))
            .where(
                CashbookBudget.month == month,
                CashbookBudget.site_id == site_id,
                same_or_null(CashbookBudget.boq_id, boq_id),
            )
        )
        budget = result.scalar_one_or_none()
        if budget is None:
            return None

        start, end = month_bounds(month)
        result = await db.execute(
            select(CashbookDetail.cashbook_head_id, func.coalesce(func.sum(CashbookDetail.received), 0))
            .join(Cashbook, Cashbook.id == CashbookDetail.cashbook_id)
            .where(
                Cashbook.site_id == site_id,
                same_or_null(Cashbook.boq_id, boq_id),
                Cashbook.voucher_date >= start,
                Cashbook.voucher_date <= end,
            )
            .group_by(CashbookDetail.cashbook_head_id)
        )
        received = {row[0]: float(row[1]) for row in result.all()}

        for item in budget.items:
            item.received_amount = round2(received.get(item.cashbook_head_id, 0))
        budget.total_received_amount = round2(sum(item.received_amount for item in budget.items))
        await db.flush()
        return budget
