"""Stock Services

Site stock is kept as closing quantity, closing value and a weighted unit
rate per (site, item). Every movement also writes a stock ledger row.
Callers own the session and commit.
"""

import logging
from datetime import date
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.core.errors import BusinessRuleError
from siteledger.database import utcnow
from siteledger.models.stock import (
    LEDGER_INWARD,
    LEDGER_OUTWARD_ISSUE,
    LEDGER_OUTWARD_RECEIVE,
    InwardDeliveryChallan,
    OutwardDeliveryChallan,
    SiteItem,
    StockLedger,
)
from siteledger.services.calc import round2

logger = logging.getLogger(__name__)


class StockService:
    """Service for site stock movements"""

    @staticmethod
    async def site_item(db: AsyncSession, site_id: int, item_id: int, create: bool = False) -> SiteItem | None:
        result = await db.execute(
            select(SiteItem).where(SiteItem.site_id == site_id, SiteItem.item_id == item_id)
        )
        site_item = result.scalar_one_or_none()
        if site_item is None and create:
            site_item = SiteItem(
                site_id=site_id, item_id=item_id, closing_stock=0.0, closing_value=0.0, unit_rate=0.0
            )
            db.add(site_item)
            await db.flush()
        return site_item

    @staticmethod
    async def closing_stock(db: AsyncSession, site_id: int, item_ids) -> dict[int, float]:
        item_ids = list(set(item_ids))
        if not item_ids:
            return {}
        result = await db.execute(
            select(SiteItem.item_id, SiteItem.closing_stock).where(
                SiteItem.site_id == site_id, SiteItem.item_id.in_(item_ids)
            )
        )
        return {row[0]: float(row[1] or 0) for row in result.all()}

    @staticmethod
    async def receive(db: AsyncSession, site_id: int, item_id: int, qty: float, value: float) -> SiteItem:
        """Add stock at its value and re-derive the unit rate"""
        site_item = await StockService.site_item(db, site_id, item_id, create=True)
        site_item.closing_stock = round(site_item.closing_stock + qty, 4)
        site_item.closing_value = round2(site_item.closing_value + value)
        site_item.unit_rate = (
            round(site_item.closing_value / site_item.closing_stock, 4) if site_item.closing_stock else 0.0
        )
        site_item.log_date = utcnow()
        return site_item

    @staticmethod
    async def issue(db: AsyncSession, site_id: int, item_id: int, qty: float) -> float:
        """Take stock out at the current unit rate; stock never goes below zero"""
        site_item = await StockService.site_item(db, site_id, item_id, create=True)
        rate = site_item.unit_rate or 0.0
        site_item.closing_stock = round(max(site_item.closing_stock - qty, 0.0), 4)
        site_item.closing_value = round2(rate * site_item.closing_stock)
        site_item.log_date = utcnow()
        return rate

    @staticmethod
    async def reverse_receipt(db: AsyncSession, site_id: int, item_id: int, qty: float, value: float) -> None:
        """Take a receipt back out of stock; goods already issued cannot be un-received"""
        site_item = await StockService.site_item(db, site_id, item_id)
        closing = site_item.closing_stock if site_item else 0.0
        closing_value = site_item.closing_value if site_item else 0.0
        if qty > closing + 1e-9:
            logger.warning(f"Refused to reverse receipt of item {item_id} at site {site_id}: stock {closing:g}")
            raise BusinessRuleError(
                f"Closing stock ({closing:g}) is below received qty ({qty:g}) for item {item_id}"
            )
        if value > closing_value + 0.005:
            raise BusinessRuleError(
                f"Closing value ({closing_value:g}) is below received value ({value:g}) for item {item_id}"
            )
        site_item.closing_stock = round(site_item.closing_stock - qty, 4)
        site_item.closing_value = round2(max(site_item.closing_value - value, 0.0))
        site_item.unit_rate = (
            round(site_item.closing_value / site_item.closing_stock, 4) if site_item.closing_stock else 0.0
        )
        site_item.log_date = utcnow()

    @staticmethod
    async def receive_inward(db: AsyncSession, challan: InwardDeliveryChallan) -> None:
        for detail in challan.details:
            await StockService.receive(db, challan.site_id, detail.item_id, detail.receiving_qty, detail.amount)
            db.add(StockLedger(
                site_id=challan.site_id,
                item_id=detail.item_id,
                transaction_date=challan.challan_date,
                txn_type=LEDGER_INWARD,
                inward_delivery_challan_id=challan.id,
                received_qty=detail.receiving_qty,
                received_rate=detail.rate,
            ))
        await db.flush()

    @staticmethod
    async def transfer_outward(db: AsyncSession, challan: OutwardDeliveryChallan, on: date) -> None:
        """Issue accepted quantities at the source and receive them at the destination"""
        for detail in challan.details:
            qty = detail.received_qty or 0
            if qty <= 0:
                continue
            rate = await StockService.issue(db, challan.from_site_id, detail.item_id, qty)
            await StockService.receive(db, challan.to_site_id, detail.item_id, qty, round2(rate * qty))
            db.add(StockLedger(
                site_id=challan.from_site_id,
                item_id=detail.item_id,
                transaction_date=on,
                txn_type=LEDGER_OUTWARD_ISSUE,
                outward_delivery_challan_id=challan.id,
                issued_qty=qty,
                issued_rate=rate,
            ))
            db.add(StockLedger(
                site_id=challan.to_site_id,
                item_id=detail.item_id,
                transaction_date=on,
                txn_type=LEDGER_OUTWARD_RECEIVE,
                outward_delivery_challan_id=challan.id,
                received_qty=qty,
                received_rate=rate,
            ))
        await db.flush()
        logger.info(
            f"Outward challan {challan.outward_challan_no} moved stock "
            f"from site {challan.from_site_id} to site {challan.to_site_id}"
        )

    @staticmethod
    def check_against_stock(label: str, detail_id: int, qty: float, closing: float) -> None:
        if qty <= 0:
            raise BusinessRuleError(f"{label} must be greater than 0 for detail {detail_id}")
        if qty > closing + 1e-9:
            raise BusinessRuleError(
                f"{label} cannot exceed closing stock ({closing:g}) for detail {detail_id}"
            )
