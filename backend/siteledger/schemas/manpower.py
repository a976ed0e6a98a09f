"""Manpower schemas

Suppliers, workers, site assignments, transfers and attendance.
"""

import datetime as dt
from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class ManpowerSupplierCreate(ApiModel):
    supplier_name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = None
    representative_name: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None
    permanent_address: Optional[str] = None
    gst_no: Optional[str] = Field(None, max_length=20)
    pan_no: Optional[str] = Field(None, max_length=20)
    tan_no: Optional[str] = Field(None, max_length=20)
    cin_no: Optional[str] = Field(None, max_length=30)
    bank_name: Optional[str] = None
    account_no: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_branch: Optional[str] = None


class ManpowerSupplierUpdate(ManpowerSupplierCreate):
    supplier_name: Optional[str] = Field(None, min_length=1, max_length=255)


class ManpowerSupplierOut(ManpowerSupplierCreate):
    id: int
    created_at: datetime


class UploadRowError(ApiModel):
    row: int
    message: str


class UploadResult(ApiModel):
    created: int


class WageTerms(ApiModel):
    category: Optional[str] = None
    skill_set: Optional[str] = None
    wage: Optional[float] = Field(None, ge=0)
    min_wage: Optional[float] = Field(None, ge=0)
    hours: Optional[float] = Field(None, ge=0, le=24)
    esic: Optional[bool] = None
    pf: Optional[bool] = None
    pt: Optional[bool] = None
    hra: Optional[bool] = None
    mlwf: Optional[bool] = None


class ManpowerCreate(WageTerms):
    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1, max_length=100)
    supplier_id: int
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    location: Optional[str] = None
    mobile_number: Optional[str] = Field(None, max_length=20)
    gender: Optional[str] = Field(None, pattern="^(Male|Female|Other)$")
    aadhar_no: Optional[str] = Field(None, max_length=20)
    esic_no: Optional[str] = None
    uan: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None


class ManpowerUpdate(ManpowerCreate):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    supplier_id: Optional[int] = None


class ManpowerOut(ApiModel):
    id: int
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    full_name: str
    supplier_id: int
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    location: Optional[str] = None
    mobile_number: Optional[str] = None
    gender: Optional[str] = None
    aadhar_no: Optional[str] = None
    esic_no: Optional[str] = None
    uan: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    category: Optional[str] = None
    skill_set: Optional[str] = None
    wage: float
    min_wage: Optional[float] = None
    hours: Optional[float] = None
    esic: bool
    pf: bool
    pt: bool
    hra: bool
    mlwf: bool
    is_assigned: bool
    current_site_id: Optional[int] = None
    created_at: datetime


class AssignmentItem(WageTerms):
    manpower_id: int


class ManpowerAssignRequest(ApiModel):
    site_id: int
    assigned_at: Optional[date] = None
    items: list[AssignmentItem] = Field(..., min_length=1)


class ManpowerAssignmentOut(ApiModel):
    id: int
    manpower_id: int
    site_id: int
    assigned_at: date
    manpower: ManpowerOut


class TransferItemIn(WageTerms):
    manpower_id: int


class TransferItemOut(WageTerms):
    id: int
    manpower_id: int


class ManpowerTransferCreate(ApiModel):
    challan_date: date
    from_site_id: int
    to_site_id: int
    remarks: Optional[str] = None
    challan_copy_url: Optional[str] = None
    items: list[TransferItemIn] = Field(..., min_length=1)


class ManpowerTransferStatusUpdate(ApiModel):
    status: str = Field(..., pattern="^(Accepted|Rejected)$")
    remarks: Optional[str] = None


class ManpowerTransferOut(ApiModel):
    id: int
    challan_no: str
    challan_date: date
    from_site_id: int
    to_site_id: int
    status: str
    remarks: Optional[str] = None
    challan_copy_url: Optional[str] = None
    created_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    items: list[TransferItemOut] = []


class AttendanceEntry(ApiModel):
    manpower_id: int
    is_present: bool = False
    is_idle: bool = False
    ot: float = Field(0.0, ge=0, le=24)


class AttendanceSheetIn(ApiModel):
    site_id: int
    date: dt.date
    attendances: list[AttendanceEntry] = Field(..., min_length=1)


class AttendanceRow(ApiModel):
    manpower_id: int
    manpower_name: str
    attendance_id: Optional[int] = None
    is_present: bool = False
    is_idle: bool = False
    ot: float = 0.0


class AttendanceSheetOut(ApiModel):
    site_id: int
    date: dt.date
    rows: list[AttendanceRow]
