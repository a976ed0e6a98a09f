"""Employee and site assignment schemas"""

from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class EmployeeCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    department_id: Optional[int] = None
    user_id: Optional[int] = None
    designation: Optional[str] = None
    mobile: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    joining_date: Optional[date] = None
    resignation_date: Optional[date] = None
    address: Optional[str] = None


class EmployeeUpdate(EmployeeCreate):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class EmployeeOut(ApiModel):
    id: int
    name: str
    department_id: Optional[int] = None
    user_id: Optional[int] = None
    designation: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    joining_date: Optional[date] = None
    resignation_date: Optional[date] = None
    address: Optional[str] = None
    created_at: datetime


class EmployeeAssignmentRequest(ApiModel):
    site_id: int
    employee_ids: list[int] = Field(..., min_length=1)


class AssignedEmployeeOut(ApiModel):
    id: int
    name: str
    designation: Optional[str] = None
    department_id: Optional[int] = None
    assigned_date: Optional[datetime] = None


class AssignmentResult(ApiModel):
    site_id: int
    affected: list[int]
    skipped: list[int] = []
