"""Payroll Models

Payroll configuration (single row) and the pay slips generated per worker
and period, with one detail line per site worked.
"""

from datetime import date
from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin
from siteledger.models.manpower import Manpower


class PayrollConfig(TimestampMixin, Base):
    __tablename__ = "payroll_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hours_per_day: Mapped[float] = mapped_column(Float, default=8.0, nullable=False)
    govt_working_day_cap: Mapped[int] = mapped_column(Integer, default=26, nullable=False)
    hra_percent: Mapped[float] = mapped_column(Float, default=5.0, nullable=False)
    pf_percent: Mapped[float] = mapped_column(Float, default=12.0, nullable=False)
    esic_percent: Mapped[float] = mapped_column(Float, default=1.75, nullable=False)
    pt_threshold1: Mapped[float] = mapped_column(Float, default=7500.0, nullable=False)
    pt_amount1: Mapped[float] = mapped_column(Float, default=175.0, nullable=False)
    pt_threshold2: Mapped[float] = mapped_column(Float, default=10000.0, nullable=False)
    pt_amount2: Mapped[float] = mapped_column(Float, default=200.0, nullable=False)
    feb_pt_amount: Mapped[float] = mapped_column(Float, default=300.0, nullable=False)
    mlwf_amount: Mapped[float] = mapped_column(Float, default=12.0, nullable=False)
    mlwf_months: Mapped[str] = mapped_column(String(50), default="02,06", nullable=False)


class PaySlip(TimestampMixin, Base):
    __tablename__ = "pay_slips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    manpower_id: Mapped[int] = mapped_column(
        ForeignKey("manpower.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[int | None] = mapped_column(ForeignKey("manpower_suppliers.id"))
    period: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    govt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pay_slip_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_working_days: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_ot: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_idle: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    gross_wages: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_deductions: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    net_wages: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    amount_in_words: Mapped[str | None] = mapped_column(String(500))

    manpower: Mapped[Manpower] = relationship()
    details: Mapped[list["PaySlipDetail"]] = relationship(
        back_populates="pay_slip", cascade="all, delete-orphan", order_by="PaySlipDetail.id"
    )

    __table_args__ = (
        UniqueConstraint("manpower_id", "period", "govt", name="uq_pay_slip_period"),
    )


class PaySlipDetail(Base):
    __tablename__ = "pay_slip_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pay_slip_id: Mapped[int] = mapped_column(
        ForeignKey("pay_slips.id", ondelete="CASCADE"), nullable=False
    )
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    working_days: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    ot: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    idle: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    wage_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    wages: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    ot_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    hra: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    gross_wages: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    pf: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    esic: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    pt: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    mlwf: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    pay_slip: Mapped[PaySlip] = relationship(back_populates="details")
