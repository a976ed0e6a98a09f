"""BOQ Models

Bill of quantities per site, its work items, and the bills raised against
those items.
"""

from datetime import date
from sqlalchemy import Date, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin
from siteledger.models.organisation import Site
from siteledger.models.masters import Unit


class Boq(TimestampMixin, Base):
    __tablename__ = "boqs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    boq_no: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    work_name: Mapped[str | None] = mapped_column(String(255))
    work_order_no: Mapped[str | None] = mapped_column(String(50))
    work_order_date: Mapped[date | None] = mapped_column(Date)
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    total_work_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    gst_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    agreement_no: Mapped[str | None] = mapped_column(String(50))
    agreement_status: Mapped[str | None] = mapped_column(String(50))
    remarks: Mapped[str | None] = mapped_column(Text)

    site: Mapped[Site] = relationship()
    items: Mapped[list["BoqItem"]] = relationship(
        back_populates="boq", cascade="all, delete-orphan", order_by="BoqItem.id"
    )


class BoqItem(Base):
    __tablename__ = "boq_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    boq_id: Mapped[int] = mapped_column(ForeignKey("boqs.id", ondelete="CASCADE"), nullable=False)
    activity_id: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    unit_id: Mapped[int | None] = mapped_column(ForeignKey("units.id"))
    qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    boq: Mapped[Boq] = relationship(back_populates="items")
    unit: Mapped[Unit | None] = relationship()


class BoqBill(TimestampMixin, Base):
    __tablename__ = "boq_bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    boq_id: Mapped[int] = mapped_column(ForeignKey("boqs.id"), nullable=False)
    bill_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    bill_name: Mapped[str] = mapped_column(String(200), nullable=False)
    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    total_bill_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    boq: Mapped[Boq] = relationship()
    details: Mapped[list["BoqBillDetail"]] = relationship(
        back_populates="bill", cascade="all, delete-orphan", order_by="BoqBillDetail.id"
    )


class BoqBillDetail(Base):
    __tablename__ = "boq_bill_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    boq_bill_id: Mapped[int] = mapped_column(
        ForeignKey("boq_bills.id", ondelete="CASCADE"), nullable=False
    )
    boq_item_id: Mapped[int] = mapped_column(ForeignKey("boq_items.id"), nullable=False)
    qty: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    bill: Mapped[BoqBill] = relationship(back_populates="details")
    boq_item: Mapped[BoqItem] = relationship()

    __table_args__ = (UniqueConstraint("boq_bill_id", "boq_item_id", name="uq_bill_item"),)
