"""BOQ Billing Services

Bill lines are priced from the BOQ item rate, and the quantity billed for
an item across all bills never exceeds the item's BOQ quantity. Callers own
the session and commit.
"""

import logging
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.core.errors import BusinessRuleError
from siteledger.models.boq import Boq, BoqBill, BoqBillDetail, BoqItem
from siteledger.services.calc import line_amount, round2

logger = logging.getLogger(__name__)


def bill_label(bill: BoqBill) -> str:
    return bill.bill_name or bill.bill_number or f"Bill {bill.id}"


class BoqBillingService:
    """Service for BOQ bill pricing and reconciliation"""

    @staticmethod
    async def items_for_boq(db: AsyncSession, boq_id: int, item_ids: list[int]) -> dict[int, BoqItem]:
        """Load the referenced items, all of which must belong to the BOQ"""
        wanted = set(item_ids)
        if not wanted:
            return {}
        result = await db.execute(
            select(BoqItem).where(BoqItem.id.in_(wanted), BoqItem.boq_id == boq_id)
        )
        items = {item.id: item for item in result.scalars().all()}
        if len(items) != len(wanted):
            raise BusinessRuleError("One or more BOQ items are invalid for selected BOQ")
        return items

    @staticmethod
    async def billed_totals(
        db: AsyncSession, item_ids: list[int], exclude_bill_id: int | None = None
    ) -> dict[int, tuple[float, float]]:
        """(qty, amount) billed per BOQ item over all bills"""
        if not item_ids:
            return {}
        query = (
            select(
                BoqBillDetail.boq_item_id,
                func.coalesce(func.sum(BoqBillDetail.qty), 0),
                func.coalesce(func.sum(BoqBillDetail.amount), 0),
            )
            .where(BoqBillDetail.boq_item_id.in_(item_ids))
            .group_by(BoqBillDetail.boq_item_id)
        )
        if exclude_bill_id is not None:
            query = query.where(BoqBillDetail.boq_bill_id != exclude_bill_id)
        result = await db.execute(query)
        return {row[0]: (float(row[1]), float(row[2])) for row in result.all()}

    @staticmethod
    async def check_billed_limits(
        db: AsyncSession,
        items: dict[int, BoqItem],
        bill_qty: dict[int, float],
        bill_id: int | None = None,
    ) -> None:
        """Raise when another bill plus this one would bill more than the BOQ qty"""
        others = await BoqBillingService.billed_totals(db, list(bill_qty), exclude_bill_id=bill_id)
        for item_id, qty in bill_qty.items():
            item = items[item_id]
            billed = round(others.get(item_id, (0.0, 0.0))[0] + qty, 4)
            if billed > round(item.qty or 0, 4):
                raise BusinessRuleError(
                    f"Billed qty {billed:g} exceeds BOQ qty {item.qty:g} for item "
                    f"{item.activity_id or item.id}: {item.description}"
                )

    @staticmethod
    def refresh_total(bill: BoqBill) -> None:
        bill.total_bill_amount = round2(sum(d.amount or 0 for d in bill.details))

    @staticmethod
    async def create_bill(db: AsyncSession, data: dict, details: list) -> BoqBill:
        """Create a bill; zero quantity lines are dropped"""
        if await db.get(Boq, data["boq_id"]) is None:
            raise BusinessRuleError("BOQ not found")

        lines = [d for d in details if (d.qty or 0) != 0]
        items = await BoqBillingService.items_for_boq(
            db, data["boq_id"], [d.boq_item_id for d in lines]
        )

        bill_qty: dict[int, float] = {}
        for d in lines:
            bill_qty[d.boq_item_id] = bill_qty.get(d.boq_item_id, 0.0) + d.qty
        await BoqBillingService.check_billed_limits(db, items, bill_qty)

        bill = BoqBill(**data)
        bill.details = [
            BoqBillDetail(
                boq_item_id=item_id,
                qty=qty,
                amount=line_amount(qty, items[item_id].rate),
            )
            for item_id, qty in bill_qty.items()
        ]
        BoqBillingService.refresh_total(bill)
        db.add(bill)
        await db.flush()
        logger.info(f"Created BOQ bill {bill.bill_number} total {bill.total_bill_amount}")
        return bill

    @staticmethod
    async def update_bill(db: AsyncSession, bill: BoqBill, changes: dict, details: list | None) -> BoqBill:
        """Apply header changes and upsert detail lines, then re-total the bill"""
        next_boq_id = changes.get("boq_id") or bill.boq_id
        if details is not None and next_boq_id != bill.boq_id:
            raise BusinessRuleError("BOQ cannot be changed while updating bill items")
        if next_boq_id != bill.boq_id and bill.details:
            raise BusinessRuleError("BOQ cannot be changed while the bill has items")
        if changes.get("boq_id") and await db.get(Boq, next_boq_id) is None:
            raise BusinessRuleError("BOQ not found")

        for field, value in changes.items():
            if value is None and field != "remarks":
                continue
            setattr(bill, field, value)

        if details is not None:
            items = await BoqBillingService.items_for_boq(
                db, next_boq_id, [d.boq_item_id for d in details]
            )
            by_id = {d.id: d for d in bill.details}
            by_item = {d.boq_item_id: d for d in bill.details}

            for line in details:
                amount = line_amount(line.qty, items[line.boq_item_id].rate)
                if line.id:
                    existing = by_id.get(line.id)
                    if existing is None:
                        raise BusinessRuleError("One or more BOQ bill detail IDs are invalid")
                    if existing.boq_item_id != line.boq_item_id:
                        raise BusinessRuleError("BOQ bill detail id does not match boqItemId")
                elif line.boq_item_id in by_item:
                    existing = by_item[line.boq_item_id]
                elif line.qty != 0:
                    existing = BoqBillDetail(boq_item_id=line.boq_item_id)
                    bill.details.append(existing)
                    by_item[line.boq_item_id] = existing
                else:
                    continue
                existing.qty = line.qty
                existing.amount = amount

            bill_qty = {
                d.boq_item_id: d.qty for d in bill.details if d.boq_item_id in items
            }
            await BoqBillingService.check_billed_limits(db, items, bill_qty, bill_id=bill.id)

        BoqBillingService.refresh_total(bill)
        await db.flush()
        return bill

    @staticmethod
    async def billed_summary(db: AsyncSession, boq: Boq) -> dict:
        """Quantities and amounts billed per item and per bill for one BOQ"""
        result = await db.execute(
            select(BoqBill)
            .options(selectinload(BoqBill.details))
            .where(BoqBill.boq_id == boq.id)
            .order_by(BoqBill.bill_date, BoqBill.id)
        )
        bills = list(result.scalars().all())

        result = await db.execute(
            select(BoqItem)
            .options(selectinload(BoqItem.unit))
            .where(BoqItem.boq_id == boq.id)
            .order_by(BoqItem.id)
        )
        items = list(result.scalars().all())

        lines: dict[int, dict[int, BoqBillDetail]] = {}
        for bill in bills:
            for detail in bill.details:
                lines.setdefault(detail.boq_item_id, {})[bill.id] = detail

        rows = []
        for item in items:
            per_bill = lines.get(item.id, {})
            bill_qty = {bill_id: d.qty for bill_id, d in per_bill.items()}
            bill_amount = {bill_id: d.amount for bill_id, d in per_bill.items()}
            total_qty = round(sum(bill_qty.values()), 4)
            rows.append({
                "boq_item_id": item.id,
                "activity_id": item.activity_id,
                "description": item.description,
                "unit": item.unit.unit_name if item.unit else None,
                "qty": item.qty,
                "rate": item.rate,
                "amount": item.amount,
                "bill_qty": bill_qty,
                "bill_amount": bill_amount,
                "total_billed_qty": total_qty,
                "total_billed_amount": round2(sum(bill_amount.values())),
                "remaining_qty": round((item.qty or 0) - total_qty, 4),
            })

        return {
            "boq_id": boq.id,
            "boq_no": boq.boq_no,
            "bills": [
                {
                    "id": bill.id,
                    "label": bill_label(bill),
                    "bill_number": bill.bill_number,
                    "bill_date": bill.bill_date,
                    "total_bill_amount": bill.total_bill_amount,
                }
                for bill in bills
            ],
            "items": rows,
            "total_billed_amount": round2(sum(b.total_bill_amount or 0 for b in bills)),
        }
