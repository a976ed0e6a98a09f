"""Payroll schemas"""

from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class PayrollConfigOut(ApiModel):
    hours_per_day: float
    govt_working_day_cap: int
    hra_percent: float
    pf_percent: float
    esic_percent: float
    pt_threshold1: float
    pt_amount1: float
    pt_threshold2: float
    pt_amount2: float
    feb_pt_amount: float
    mlwf_amount: float
    mlwf_months: str
    updated_at: datetime


class PayrollConfigUpdate(ApiModel):
    hours_per_day: Optional[float] = Field(None, gt=0, le=24)
    govt_working_day_cap: Optional[int] = Field(None, ge=1, le=31)
    hra_percent: Optional[float] = Field(None, ge=0, le=100)
    pf_percent: Optional[float] = Field(None, ge=0, le=100)
    esic_percent: Optional[float] = Field(None, ge=0, le=100)
    pt_threshold1: Optional[float] = Field(None, ge=0)
    pt_amount1: Optional[float] = Field(None, ge=0)
    pt_threshold2: Optional[float] = Field(None, ge=0)
    pt_amount2: Optional[float] = Field(None, ge=0)
    feb_pt_amount: Optional[float] = Field(None, ge=0)
    mlwf_amount: Optional[float] = Field(None, ge=0)
    mlwf_months: Optional[str] = Field(None, pattern=r"^(0[1-9]|1[0-2])(,(0[1-9]|1[0-2]))*$")


class PayrollRunRequest(ApiModel):
    period: str
    pay_slip_date: Optional[date] = None
    modes: Optional[list[str]] = None


class PayrollRunResult(ApiModel):
    period: str
    slips: dict[str, int]


class PaySlipDetailOut(ApiModel):
    id: int
    site_id: int
    working_days: float
    ot: float
    idle: float
    wage_rate: float
    wages: float
    ot_amount: float
    hra: float
    gross_wages: float
    pf: float
    esic: float
    pt: float
    mlwf: float
    total: float


class PaySlipOut(ApiModel):
    id: int
    manpower_id: int
    manpower_name: Optional[str] = None
    supplier_id: Optional[int] = None
    period: str
    govt: bool
    pay_slip_date: date
    total_working_days: float
    total_ot: float
    total_idle: float
    gross_wages: float
    total_deductions: float
    net_wages: float
    amount_in_words: Optional[str] = None
    details: list[PaySlipDetailOut] = []
