"""BOQ and BOQ bill schemas"""

from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class BoqItemIn(ApiModel):
    id: Optional[int] = None
    activity_id: Optional[str] = Field(None, max_length=50)
    description: str = Field(..., min_length=1)
    unit_id: Optional[int] = None
    qty: float = Field(0, ge=0)
    rate: float = Field(0, ge=0)
    amount: Optional[float] = Field(None, ge=0)


class BoqItemOut(ApiModel):
    id: int
    activity_id: Optional[str] = None
    description: str
    unit_id: Optional[int] = None
    qty: float
    rate: float
    amount: float


class BoqBase(ApiModel):
    work_name: Optional[str] = Field(None, max_length=255)
    work_order_no: Optional[str] = Field(None, max_length=50)
    work_order_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    gst_rate: Optional[float] = Field(None, ge=0, le=100)
    agreement_no: Optional[str] = Field(None, max_length=50)
    agreement_status: Optional[str] = Field(None, max_length=50)
    remarks: Optional[str] = None


class BoqCreate(BoqBase):
    boq_no: str = Field(..., min_length=1, max_length=50)
    site_id: int
    total_work_value: Optional[float] = Field(None, ge=0)
    items: list[BoqItemIn] = []


class BoqUpdate(BoqBase):
    boq_no: Optional[str] = Field(None, min_length=1, max_length=50)
    site_id: Optional[int] = None
    total_work_value: Optional[float] = Field(None, ge=0)
    items: Optional[list[BoqItemIn]] = None


class BoqOut(BoqBase):
    id: int
    boq_no: str
    site_id: int
    total_work_value: float
    items: list[BoqItemOut] = []
    created_at: datetime
    updated_at: datetime


class WorkDoneRow(ApiModel):
    id: int
    boq_id: int
    boq_no: str
    site_id: int
    site: Optional[str] = None
    activity_id: Optional[str] = None
    description: str
    unit: Optional[str] = None
    rate: float
    ordered_qty: float
    ordered_amount: float
    billed_qty: float
    billed_amount: float
    remaining_qty: float
    remaining_amount: float


class BillDetailIn(ApiModel):
    id: Optional[int] = None
    boq_item_id: int = Field(..., ge=1)
    qty: float = Field(..., ge=0)


class BoqBillCreate(ApiModel):
    boq_id: int = Field(..., ge=1)
    bill_number: str = Field(..., min_length=1, max_length=100)
    bill_name: str = Field(..., min_length=1, max_length=200)
    bill_date: date
    remarks: Optional[str] = None
    details: list[BillDetailIn] = []


class BoqBillUpdate(ApiModel):
    boq_id: Optional[int] = Field(None, ge=1)
    bill_number: Optional[str] = Field(None, min_length=1, max_length=100)
    bill_name: Optional[str] = Field(None, min_length=1, max_length=200)
    bill_date: Optional[date] = None
    remarks: Optional[str] = None
    details: Optional[list[BillDetailIn]] = None


class BoqBillDetailOut(ApiModel):
    id: int
    boq_item_id: int
    qty: float
    amount: float
    description: Optional[str] = None
    activity_id: Optional[str] = None
    rate: Optional[float] = None


class BoqBillOut(ApiModel):
    id: int
    boq_id: int
    boq_no: Optional[str] = None
    bill_number: str
    bill_name: str
    bill_date: date
    remarks: Optional[str] = None
    total_bill_amount: float
    details: list[BoqBillDetailOut] = []
    created_at: datetime
    updated_at: datetime


class BilledBill(ApiModel):
    id: int
    label: str
    bill_number: str
    bill_date: date
    total_bill_amount: float


class BilledItemRow(ApiModel):
    boq_item_id: int
    activity_id: Optional[str] = None
    description: str
    unit: Optional[str] = None
    qty: float
    rate: float
    amount: float
    bill_qty: dict[int, float]
    bill_amount: dict[int, float]
    total_billed_qty: float
    total_billed_amount: float
    remaining_qty: float


class BilledSummary(ApiModel):
    boq_id: int
    boq_no: str
    bills: list[BilledBill]
    items: list[BilledItemRow]
    total_billed_amount: float
