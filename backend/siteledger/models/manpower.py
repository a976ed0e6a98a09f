"""Manpower Models

Labour suppliers, workers, their current site assignment, transfers between
sites and daily attendance.
"""

import datetime as dt
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
from siteledger.models.organisation import Site

# Wage terms carried by a worker and by every transfer line
WAGE_TERM_FIELDS = (
    "category",
    "skill_set",
    "wage",
    "min_wage",
    "hours",
    "esic",
    "pf",
    "pt",
    "hra",
    "mlwf",
)


class ManpowerSupplier(TimestampMixin, Base):
    __tablename__ = "manpower_suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(255))
    representative_name: Mapped[str | None] = mapped_column(String(255))
    contact_no: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    state: Mapped[str | None] = mapped_column(String(100))
    permanent_address: Mapped[str | None] = mapped_column(Text)
    gst_no: Mapped[str | None] = mapped_column(String(20))
    pan_no: Mapped[str | None] = mapped_column(String(20))
    tan_no: Mapped[str | None] = mapped_column(String(20))
    cin_no: Mapped[str | None] = mapped_column(String(30))
    bank_name: Mapped[str | None] = mapped_column(String(100))
    account_no: Mapped[str | None] = mapped_column(String(30))
    ifsc_code: Mapped[str | None] = mapped_column(String(20))
    bank_branch: Mapped[str | None] = mapped_column(String(100))


class Manpower(TimestampMixin, Base):
    """A worker supplied by a manpower supplier"""

    __tablename__ = "manpower"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    supplier_id: Mapped[int] = mapped_column(ForeignKey("manpower_suppliers.id"), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    address: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(100))
    mobile_number: Mapped[str | None] = mapped_column(String(20))
    gender: Mapped[str | None] = mapped_column(String(10))
    aadhar_no: Mapped[str | None] = mapped_column(String(20))
    esic_no: Mapped[str | None] = mapped_column(String(30))
    uan: Mapped[str | None] = mapped_column(String(30))
    bank_name: Mapped[str | None] = mapped_column(String(100))
    account_number: Mapped[str | None] = mapped_column(String(30))
    ifsc_code: Mapped[str | None] = mapped_column(String(20))
    category: Mapped[str | None] = mapped_column(String(50))
    skill_set: Mapped[str | None] = mapped_column(String(50))
    wage: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    min_wage: Mapped[float | None] = mapped_column(Float)
    hours: Mapped[float | None] = mapped_column(Float)
    esic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pf: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hra: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mlwf: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_assigned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))

    supplier: Mapped[ManpowerSupplier] = relationship()
    current_site: Mapped[Site | None] = relationship()

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class ManpowerAssignment(Base):
    """Current site of a worker, at most one row per worker"""

    __tablename__ = "manpower_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    manpower_id: Mapped[int] = mapped_column(
        ForeignKey("manpower.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    assigned_at: Mapped[date] = mapped_column(Date, nullable=False)
    assigned_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    manpower: Mapped[Manpower] = relationship()


class ManpowerAssignmentLog(Base):
    """Audit trail of assign / unassign / transfer events"""

    __tablename__ = "manpower_assignment_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    manpower_id: Mapped[int] = mapped_column(
        ForeignKey("manpower.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))
    from_site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))
    transfer_id: Mapped[int | None] = mapped_column(ForeignKey("manpower_transfers.id"))
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    logged_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class ManpowerTransfer(TimestampMixin, Base):
    __tablename__ = "manpower_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    challan_date: Mapped[date] = mapped_column(Date, nullable=False)
    from_site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    to_site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Pending", nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    challan_copy_url: Mapped[str | None] = mapped_column(String(500))
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime)

    items: Mapped[list["ManpowerTransferItem"]] = relationship(
        back_populates="transfer", cascade="all, delete-orphan", order_by="ManpowerTransferItem.id"
    )


class ManpowerTransferItem(Base):
    """A worker moved by a transfer, with the wage terms applied on acceptance"""

    __tablename__ = "manpower_transfer_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transfer_id: Mapped[int] = mapped_column(
        ForeignKey("manpower_transfers.id", ondelete="CASCADE"), nullable=False
    )
    manpower_id: Mapped[int] = mapped_column(ForeignKey("manpower.id"), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50))
    skill_set: Mapped[str | None] = mapped_column(String(50))
    wage: Mapped[float | None] = mapped_column(Float)
    min_wage: Mapped[float | None] = mapped_column(Float)
    hours: Mapped[float | None] = mapped_column(Float)
    esic: Mapped[bool | None] = mapped_column(Boolean)
    pf: Mapped[bool | None] = mapped_column(Boolean)
    pt: Mapped[bool | None] = mapped_column(Boolean)
    hra: Mapped[bool | None] = mapped_column(Boolean)
    mlwf: Mapped[bool | None] = mapped_column(Boolean)

    transfer: Mapped[ManpowerTransfer] = relationship(back_populates="items")

    __table_args__ = (UniqueConstraint("transfer_id", "manpower_id", name="uq_transfer_manpower"),)


class Attendance(TimestampMixin, Base):
    __tablename__ = "attendances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    manpower_id: Mapped[int] = mapped_column(ForeignKey("manpower.id"), nullable=False)
    is_present: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_idle: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ot: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    __table_args__ = (
        UniqueConstraint("date", "site_id", "manpower_id", name="uq_attendance_day"),
    )
