"""Stock Models

Site stock positions, the stock ledger, and the inward (from vendor) and
outward (site to site) delivery challans that move stock.
"""

from datetime import date, datetime
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin, utcnow
from siteledger.models.masters import Item

LEDGER_INWARD = "INWARD"
LEDGER_OUTWARD_ISSUE = "OUTWARD_ISSUE"
LEDGER_OUTWARD_RECEIVE = "OUTWARD_RECEIVE"


class SiteItem(Base):
    """Closing stock and value of an item at a site"""

    __tablename__ = "site_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    closing_stock: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    closing_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    unit_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    log_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    item: Mapped[Item] = relationship()

    __table_args__ = (UniqueConstraint("site_id", "item_id", name="uq_site_item"),)


class StockLedger(Base):
    __tablename__ = "stock_ledgers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    txn_type: Mapped[str] = mapped_column(String(20), nullable=False)
    inward_delivery_challan_id: Mapped[int | None] = mapped_column(
        ForeignKey("inward_delivery_challans.id", ondelete="CASCADE")
    )
    outward_delivery_challan_id: Mapped[int | None] = mapped_column(
        ForeignKey("outward_delivery_challans.id", ondelete="CASCADE")
    )
    received_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    received_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    issued_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    issued_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InwardDeliveryChallan(TimestampMixin, Base):
    __tablename__ = "inward_delivery_challans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inward_challan_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    purchase_order_id: Mapped[int] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    challan_no: Mapped[str | None] = mapped_column(String(50))
    challan_date: Mapped[date] = mapped_column(Date, nullable=False)
    lr_no: Mapped[str | None] = mapped_column(String(50))
    e_way_bill_no: Mapped[str | None] = mapped_column(String(50))
    bill_no: Mapped[str | None] = mapped_column(String(50))
    bill_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    details: Mapped[list["InwardDeliveryChallanDetail"]] = relationship(
        back_populates="challan",
        cascade="all, delete-orphan",
        order_by="InwardDeliveryChallanDetail.id",
    )


class InwardDeliveryChallanDetail(Base):
    __tablename__ = "inward_delivery_challan_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_id: Mapped[int] = mapped_column(
        ForeignKey("inward_delivery_challans.id", ondelete="CASCADE"), nullable=False
    )
    po_detail_id: Mapped[int] = mapped_column(ForeignKey("purchase_order_details.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    receiving_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    challan: Mapped[InwardDeliveryChallan] = relationship(back_populates="details")


class OutwardDeliveryChallan(TimestampMixin, Base):
    """Site to site material transfer, approved then accepted"""

    __tablename__ = "outward_delivery_challans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    outward_challan_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    challan_date: Mapped[date] = mapped_column(Date, nullable=False)
    from_site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    to_site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    is_approved1: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved1_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved1_at: Mapped[datetime | None] = mapped_column(DateTime)
    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    accepted_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    details: Mapped[list["OutwardDeliveryChallanDetail"]] = relationship(
        back_populates="challan",
        cascade="all, delete-orphan",
        order_by="OutwardDeliveryChallanDetail.id",
    )


class OutwardDeliveryChallanDetail(Base):
    __tablename__ = "outward_delivery_challan_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_id: Mapped[int] = mapped_column(
        ForeignKey("outward_delivery_challans.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    challan_qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    approved1_qty: Mapped[float | None] = mapped_column(Float)
    received_qty: Mapped[float | None] = mapped_column(Float)
    rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    challan: Mapped[OutwardDeliveryChallan] = relationship(back_populates="details")
    item: Mapped[Item] = relationship()
