"""Report schemas"""

from typing import Optional
from siteledger.schemas.common import ApiModel


class WageSheetRow(ApiModel):
    pay_slip_id: int
    manpower_id: int
    manpower_name: Optional[str] = None
    supplier_name: Optional[str] = None
    site_id: int
    site_name: Optional[str] = None
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


class WageSheetTotals(ApiModel):
    working_days: float
    ot: float
    wages: float
    ot_amount: float
    hra: float
    gross_wages: float
    pf: float
    esic: float
    pt: float
    mlwf: float
    total: float


class WageSheet(ApiModel):
    period: str
    govt: bool
    site_id: Optional[int] = None
    rows: list[WageSheetRow]
    totals: WageSheetTotals
