"""Master Data Models"""

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin


class Unit(TimestampMixin, Base):
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unit_name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class RentalCategory(TimestampMixin, Base):
    __tablename__ = "rental_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rental_category: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class CashbookHead(TimestampMixin, Base):
    __tablename__ = "cashbook_heads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cashbook_head_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Item(TimestampMixin, Base):
    """Material item bought, stocked and moved between sites"""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    item: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_id: Mapped[int | None] = mapped_column(ForeignKey("units.id"))
    hsn_code: Mapped[str | None] = mapped_column(String(20))
    gst_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    discontinue: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    unit: Mapped[Unit | None] = relationship()


class Vendor(TimestampMixin, Base):
    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255))
    contact_no: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    gst_no: Mapped[str | None] = mapped_column(String(20))
    pan_no: Mapped[str | None] = mapped_column(String(20))
