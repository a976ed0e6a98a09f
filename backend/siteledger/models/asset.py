"""Asset Models

Asset groups, categories within a group and the assets themselves.
"""

from datetime import date
from sqlalchemy import Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from siteledger.database import Base, TimestampMixin


class AssetGroup(TimestampMixin, Base):
    __tablename__ = "asset_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_group_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class AssetCategory(TimestampMixin, Base):
    __tablename__ = "asset_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_group_id: Mapped[int] = mapped_column(ForeignKey("asset_groups.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)

    asset_group: Mapped[AssetGroup] = relationship()

    __table_args__ = (UniqueConstraint("asset_group_id", "category", name="uq_asset_category"),)


class Asset(TimestampMixin, Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_no: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    asset_group_id: Mapped[int] = mapped_column(ForeignKey("asset_groups.id"), nullable=False)
    asset_category_id: Mapped[int] = mapped_column(ForeignKey("asset_categories.id"), nullable=False)
    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    make: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)
    purchase_date: Mapped[date | None] = mapped_column(Date)
    invoice_no: Mapped[str | None] = mapped_column(String(50))
    supplier: Mapped[str | None] = mapped_column(String(255))
    invoice_copy_url: Mapped[str | None] = mapped_column(String(500))
    next_maintenance_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="Working", nullable=False)
    use_status: Mapped[str] = mapped_column(String(20), default="In Use", nullable=False)
    transfer_status: Mapped[str] = mapped_column(String(20), default="Available", nullable=False)
    current_site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))

    asset_group: Mapped[AssetGroup] = relationship()
    asset_category: Mapped[AssetCategory] = relationship()
