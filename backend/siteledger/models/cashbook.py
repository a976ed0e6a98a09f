"""Cashbook Models

Cash vouchers with received/expense lines and running balances per
site/BOQ/head, plus the monthly cashbook budgets and their approval chain.
"""

from datetime import date, datetime
from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin
from siteledger.models.organisation import Site
from siteledger.models.boq import Boq
from siteledger.models.masters import CashbookHead


class Cashbook(TimestampMixin, Base):
    __tablename__ = "cashbooks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    voucher_no: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    voucher_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    boq_id: Mapped[int | None] = mapped_column(ForeignKey("boqs.id"))
    attach_voucher_copy_url: Mapped[str | None] = mapped_column(String(500))
    total_received: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_expense: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    site: Mapped[Site] = relationship()
    boq: Mapped[Boq | None] = relationship()
    details: Mapped[list["CashbookDetail"]] = relationship(
        back_populates="cashbook", cascade="all, delete-orphan", order_by="CashbookDetail.id"
    )


class CashbookDetail(Base):
    __tablename__ = "cashbook_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cashbook_id: Mapped[int] = mapped_column(
        ForeignKey("cashbooks.id", ondelete="CASCADE"), nullable=False
    )
    cashbook_head_id: Mapped[int] = mapped_column(ForeignKey("cashbook_heads.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    received: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    expense: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    opening_balance: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    closing_balance: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    cashbook: Mapped[Cashbook] = relationship(back_populates="details")
    cashbook_head: Mapped[CashbookHead] = relationship()


class CashbookBudget(TimestampMixin, Base):
    """Monthly cash budget of a site (and optionally a BOQ)"""

    __tablename__ = "cashbook_budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False)
    boq_id: Mapped[int | None] = mapped_column(ForeignKey("boqs.id"))
    remarks: Mapped[str | None] = mapped_column(Text)
    total_budget: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    approved1_budget_amount: Mapped[float | None] = mapped_column(Float)
    approved_budget_amount: Mapped[float | None] = mapped_column(Float)
    total_received_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved1_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved1_at: Mapped[datetime | None] = mapped_column(DateTime)
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime)
    accepted_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)

    site: Mapped[Site] = relationship()
    boq: Mapped[Boq | None] = relationship()
    items: Mapped[list["CashbookBudgetItem"]] = relationship(
        back_populates="budget", cascade="all, delete-orphan", order_by="CashbookBudgetItem.id"
    )

    __table_args__ = (
        UniqueConstraint("month", "site_id", "boq_id", name="uq_cashbook_budget_month"),
    )


class CashbookBudgetItem(Base):
    __tablename__ = "cashbook_budget_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[int] = mapped_column(
        ForeignKey("cashbook_budgets.id", ondelete="CASCADE"), nullable=False
    )
    cashbook_head_id: Mapped[int] = mapped_column(ForeignKey("cashbook_heads.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    approved1_amount: Mapped[float | None] = mapped_column(Float)
    approved_amount: Mapped[float | None] = mapped_column(Float)
    received_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    budget: Mapped[CashbookBudget] = relationship(back_populates="items")
    cashbook_head: Mapped[CashbookHead] = relationship()
