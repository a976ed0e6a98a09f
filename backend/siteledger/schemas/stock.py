"""Stock and delivery challan schemas"""

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class SiteStockOut(ApiModel):
    id: int
    site_id: int
    item_id: int
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    closing_stock: float
    closing_value: float
    unit_rate: float
    log_date: Optional[datetime] = None


class StockLedgerOut(ApiModel):
    id: int
    site_id: int
    item_id: int
    transaction_date: date
    txn_type: str
    inward_delivery_challan_id: Optional[int] = None
    outward_delivery_challan_id: Optional[int] = None
    received_qty: float
    received_rate: float
    issued_qty: float
    issued_rate: float


class InwardDetailIn(ApiModel):
    po_detail_id: int
    receiving_qty: float = Field(..., gt=0)


class InwardDetailOut(ApiModel):
    id: int
    po_detail_id: int
    item_id: int
    receiving_qty: float
    rate: float
    amount: float


class InwardChallanCreate(ApiModel):
    purchase_order_id: int
    challan_no: Optional[str] = Field(None, max_length=50)
    challan_date: date
    lr_no: Optional[str] = Field(None, max_length=50)
    e_way_bill_no: Optional[str] = Field(None, max_length=50)
    bill_no: Optional[str] = Field(None, max_length=50)
    remarks: Optional[str] = None
    details: list[InwardDetailIn] = Field(..., min_length=1)


class InwardChallanUpdate(ApiModel):
    challan_no: Optional[str] = Field(None, max_length=50)
    lr_no: Optional[str] = Field(None, max_length=50)
    e_way_bill_no: Optional[str] = Field(None, max_length=50)
    bill_no: Optional[str] = Field(None, max_length=50)
    remarks: Optional[str] = None


class InwardChallanOut(ApiModel):
    id: int
    inward_challan_no: str
    purchase_order_id: int
    vendor_id: int
    site_id: int
    challan_no: Optional[str] = None
    challan_date: date
    lr_no: Optional[str] = None
    e_way_bill_no: Optional[str] = None
    bill_no: Optional[str] = None
    bill_amount: float
    remarks: Optional[str] = None
    created_by_id: Optional[int] = None
    details: list[InwardDetailOut] = []
    created_at: datetime
    updated_at: datetime


class OutwardDetailIn(ApiModel):
    item_id: int
    challan_qty: float = Field(..., gt=0)


class OutwardDetailOut(ApiModel):
    id: int
    item_id: int
    challan_qty: float
    approved1_qty: Optional[float] = None
    received_qty: Optional[float] = None
    rate: float
    amount: float


class OutwardChallanCreate(ApiModel):
    challan_date: date
    from_site_id: int
    to_site_id: int
    remarks: Optional[str] = None
    details: list[OutwardDetailIn] = Field(..., min_length=1)


class OutwardStatusLine(ApiModel):
    id: int
    approved1_qty: Optional[float] = Field(None, ge=0)
    received_qty: Optional[float] = Field(None, ge=0)


class OutwardChallanPatch(ApiModel):
    status_action: Optional[Literal["approve", "accept"]] = None
    details: list[OutwardStatusLine] = []
    challan_date: Optional[date] = None
    remarks: Optional[str] = None


class OutwardChallanOut(ApiModel):
    id: int
    outward_challan_no: str
    challan_date: date
    from_site_id: int
    to_site_id: int
    remarks: Optional[str] = None
    is_approved1: bool
    approved1_by_id: Optional[int] = None
    approved1_at: Optional[datetime] = None
    is_accepted: bool
    accepted_by_id: Optional[int] = None
    accepted_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    details: list[OutwardDetailOut] = []
    created_at: datetime
    updated_at: datetime
