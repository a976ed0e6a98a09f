"""Employee Models

Office/site staff, their current site assignments and the assignment log.
"""

from datetime import date, datetime
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin, utcnow
from siteledger.models.organisation import Department, Site


class Employee(TimestampMixin, Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    department_id: Mapped[int | None] = mapped_column(ForeignKey("departments.id"))
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), unique=True)
    designation: Mapped[str | None] = mapped_column(String(100))
    mobile: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(255))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    joining_date: Mapped[date | None] = mapped_column(Date)
    resignation_date: Mapped[date | None] = mapped_column(Date)
    address: Mapped[str | None] = mapped_column(Text)

    department: Mapped[Department | None] = relationship()


class SiteEmployee(Base):
    """Current employee-to-site assignment"""

    __tablename__ = "site_employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    assigned_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    assigned_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    site: Mapped[Site] = relationship()
    employee: Mapped[Employee] = relationship()

    __table_args__ = (UniqueConstraint("site_id", "employee_id", name="uq_site_employee"),)


class SiteEmployeeLog(Base):
    """Assignment history, closed when the employee is unassigned"""

    __tablename__ = "site_employee_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    assigned_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    assigned_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    unassigned_date: Mapped[datetime | None] = mapped_column(DateTime)
    unassigned_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
