"""Procurement Models

Per-site item budgets and the purchase orders raised against them.
"""

from datetime import date
from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin
from siteledger.models.masters import Item, Vendor
from siteledger.models.organisation import Site

PO_STATUS_OPEN = "Open"
PO_STATUS_CLOSED = "Closed"
PO_STATUS_SUSPENDED = "Suspended"


class SiteBudget(TimestampMixin, Base):
    """Budgeted quantity and rate of an item for a site (and BOQ)"""

    __tablename__ = "site_budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    boq_id: Mapped[int | None] = mapped_column(ForeignKey("boqs.id"))
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    budget_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    budget_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    purchase_rate: Mapped[float | None] = mapped_column(Float)
    budget_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    ordered_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    ordered_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    avg_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    qty50_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    value50_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    qty75_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    value75_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    item: Mapped[Item] = relationship()

    __table_args__ = (
        UniqueConstraint("site_id", "boq_id", "item_id", name="uq_site_budget_item"),
    )


class PurchaseOrder(TimestampMixin, Base):
    __tablename__ = "purchase_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    po_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    po_date: Mapped[date] = mapped_column(Date, nullable=False)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    boq_id: Mapped[int | None] = mapped_column(ForeignKey("boqs.id"))
    status: Mapped[str] = mapped_column(String(20), default=PO_STATUS_OPEN, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    vendor: Mapped[Vendor] = relationship()
    site: Mapped[Site] = relationship()
    details: Mapped[list["PurchaseOrderDetail"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderDetail.id",
    )


class PurchaseOrderDetail(Base):
    __tablename__ = "purchase_order_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    purchase_order_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    received_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="details")
    item: Mapped[Item] = relationship()
