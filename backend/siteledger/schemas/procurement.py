"""Site budget and purchase order schemas"""

from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel

PO_STATUS_PATTERN = "^(Open|Closed|Suspended)$"


class SiteBudgetCreate(ApiModel):
    site_id: int
    boq_id: Optional[int] = None
    item_id: int
    budget_qty: float = Field(..., ge=0)
    budget_rate: float = Field(..., ge=0)
    purchase_rate: Optional[float] = Field(None, ge=0)


class SiteBudgetUpdate(ApiModel):
    budget_qty: Optional[float] = Field(None, ge=0)
    budget_rate: Optional[float] = Field(None, ge=0)
    purchase_rate: Optional[float] = Field(None, ge=0)


class SiteBudgetOut(ApiModel):
    id: int
    site_id: int
    boq_id: Optional[int] = None
    item_id: int
    item_name: Optional[str] = None
    budget_qty: float
    budget_rate: float
    purchase_rate: Optional[float] = None
    budget_value: float
    ordered_qty: float
    ordered_value: float
    avg_rate: float
    qty50_alert: bool
    value50_alert: bool
    qty75_alert: bool
    value75_alert: bool
    created_at: datetime
    updated_at: datetime


class SiteBudgetSummary(ApiModel):
    site_id: int
    total_items: int
    total_budget_value: float
    avg_budget_rate: float


class PurchaseOrderDetailIn(ApiModel):
    id: Optional[int] = None
    item_id: int
    qty: float = Field(..., gt=0)
    rate: float = Field(..., ge=0)


class PurchaseOrderDetailOut(ApiModel):
    id: int
    item_id: int
    qty: float
    rate: float
    amount: float
    received_qty: float


class PurchaseOrderCreate(ApiModel):
    po_date: date
    vendor_id: int
    site_id: int
    boq_id: Optional[int] = None
    remarks: Optional[str] = None
    details: list[PurchaseOrderDetailIn] = Field(..., min_length=1)


class PurchaseOrderUpdate(ApiModel):
    po_date: Optional[date] = None
    vendor_id: Optional[int] = None
    status: Optional[str] = Field(None, pattern=PO_STATUS_PATTERN)
    remarks: Optional[str] = None
    details: Optional[list[PurchaseOrderDetailIn]] = Field(None, min_length=1)


class PurchaseOrderOut(ApiModel):
    id: int
    po_no: str
    po_date: date
    vendor_id: int
    site_id: int
    boq_id: Optional[int] = None
    status: str
    remarks: Optional[str] = None
    total_amount: float
    created_by_id: Optional[int] = None
    details: list[PurchaseOrderDetailOut] = []
    created_at: datetime
    updated_at: datetime
