"""Site budget services

Ordered figures on a site budget line are derived from the purchase orders
of the same site, BOQ and item, leaving suspended orders out.
"""

import logging
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.config import settings
from siteledger.core.errors import BusinessRuleError
from siteledger.models.procurement import (
    PO_STATUS_SUSPENDED,
    PurchaseOrder,
    PurchaseOrderDetail,
    SiteBudget,
)
from siteledger.services.calc import round2, same_or_null

logger = logging.getLogger(__name__)


def apply_alerts(budget: SiteBudget) -> None:
    qty_ratio = budget.ordered_qty / budget.budget_qty if budget.budget_qty else 0
    value_ratio = budget.ordered_value / budget.budget_value if budget.budget_value else 0
    budget.qty50_alert = qty_ratio >= 0.5
    budget.qty75_alert = qty_ratio >= 0.75
    budget.value50_alert = value_ratio >= 0.5
    budget.value75_alert = value_ratio >= 0.75


class SiteBudgetService:
    """Service for site budget ordered figures and PO validation"""

    @staticmethod
    async def ordered_totals(
        db: AsyncSession,
        site_id: int,
        boq_id: int | None,
        item_ids,
        exclude_po_id: int | None = None,
    ) -> dict[int, tuple[float, float]]:
        """(qty, value) ordered per item on non-suspended POs"""
        item_ids = list(set(item_ids))
        if not item_ids:
            return {}
        query = (
            select(
                PurchaseOrderDetail.item_id,
                func.coalesce(func.sum(PurchaseOrderDetail.qty), 0),
                func.coalesce(func.sum(PurchaseOrderDetail.amount), 0),
            )
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderDetail.purchase_order_id)
            .where(
                PurchaseOrder.site_id == site_id,
                same_or_null(PurchaseOrder.boq_id, boq_id),
                PurchaseOrder.status != PO_STATUS_SUSPENDED,
                PurchaseOrderDetail.item_id.in_(item_ids),
            )
            .group_by(PurchaseOrderDetail.item_id)
        )
        if exclude_po_id is not None:
            query = query.where(PurchaseOrder.id != exclude_po_id)
        result = await db.execute(query)
        return {row[0]: (float(row[1]), float(row[2])) for row in result.all()}

    @staticmethod
    async def recompute_ordered(db: AsyncSession, site_id: int, boq_id: int | None, item_ids) -> None:
        """Refresh ordered qty/value, average rate and alerts of budget lines"""
        await db.flush()
        item_ids = list(set(item_ids))
        if not item_ids:
            return
        result = await db.execute(
            select(SiteBudget).where(
                SiteBudget.site_id == site_id,
                same_or_null(SiteBudget.boq_id, boq_id),
                SiteBudget.item_id.in_(item_ids),
            )
        )
        budgets = list(result.scalars().all())
        if not budgets:
            return

        ordered = await SiteBudgetService.ordered_totals(db, site_id, boq_id, item_ids)
        for budget in budgets:
            qty, value = ordered.get(budget.item_id, (0.0, 0.0))
            budget.ordered_qty = round(qty, 4)
            budget.ordered_value = round2(value)
            budget.avg_rate = round2(value / qty) if qty else 0.0
            apply_alerts(budget)
        await db.flush()

    @staticmethod
    async def validate_po_quantities(
        db: AsyncSession,
        site_id: int,
        boq_id: int | None,
        lines: list[tuple[int, float]],
        exclude_po_id: int | None = None,
    ) -> None:
        """Requested qty per item must fit within the remaining budget qty"""
        if not settings.SITE_BUDGET_VALIDATION or boq_id is None:
            return
        requested: dict[int, float] = {}
        for item_id, qty in lines:
            requested[item_id] = requested.get(item_id, 0.0) + (qty or 0)

        result = await db.execute(
            select(SiteBudget.item_id, func.coalesce(func.sum(SiteBudget.budget_qty), 0))
            .where(
                SiteBudget.site_id == site_id,
                SiteBudget.boq_id == boq_id,
                SiteBudget.item_id.in_(list(requested)),
            )
            .group_by(SiteBudget.item_id)
        )
        budget_qty = {row[0]: float(row[1]) for row in result.all()}
        ordered = await SiteBudgetService.ordered_totals(
            db, site_id, boq_id, list(requested), exclude_po_id=exclude_po_id
        )

        violations = []
        for item_id, qty in requested.items():
            if qty <= 0:
                continue
            budget = budget_qty.get(item_id, 0.0)
            ordered_qty = ordered.get(item_id, (0.0, 0.0))[0]
            available = round(budget - ordered_qty, 4)
            if budget <= 0 or qty > available + 1e-9:
                violations.append(
                    f"{item_id}: {ordered_qty:.2f}/{budget:.2f}, available:{max(0.0, available):.2f}"
                )
        if violations:
            logger.warning(f"PO for site {site_id} exceeds site budget: {violations}")
            raise BusinessRuleError(f"Item limit exceeded -> {', '.join(violations)}")
