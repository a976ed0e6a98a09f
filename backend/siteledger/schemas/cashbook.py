"""Cashbook and cashbook budget schemas"""

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class CashbookDetailIn(ApiModel):
    cashbook_head_id: int
    description: Optional[str] = None
    received: float = Field(0, ge=0)
    expense: float = Field(0, ge=0)


class CashbookDetailOut(ApiModel):
    id: int
    cashbook_head_id: int
    cashbook_head_name: Optional[str] = None
    description: Optional[str] = None
    received: float
    expense: float
    opening_balance: float
    closing_balance: float


class CashbookCreate(ApiModel):
    voucher_no: Optional[str] = Field(None, max_length=50)
    voucher_date: date
    site_id: int
    boq_id: Optional[int] = None
    attach_voucher_copy_url: Optional[str] = Field(None, max_length=500)
    details: list[CashbookDetailIn] = Field(..., min_length=1)


class CashbookUpdate(ApiModel):
    voucher_no: Optional[str] = Field(None, min_length=1, max_length=50)
    voucher_date: Optional[date] = None
    site_id: Optional[int] = None
    boq_id: Optional[int] = None
    attach_voucher_copy_url: Optional[str] = Field(None, max_length=500)
    details: Optional[list[CashbookDetailIn]] = Field(None, min_length=1)


class CashbookOut(ApiModel):
    id: int
    voucher_no: str
    voucher_date: date
    site_id: int
    boq_id: Optional[int] = None
    attach_voucher_copy_url: Optional[str] = None
    total_received: float
    total_expense: float
    created_by_id: Optional[int] = None
    details: list[CashbookDetailOut] = []
    created_at: datetime
    updated_at: datetime


class LastBalanceOut(ApiModel):
    site_id: int
    boq_id: Optional[int] = None
    cashbook_head_id: int
    closing_balance: float


class BudgetItemIn(ApiModel):
    cashbook_head_id: int
    description: Optional[str] = None
    amount: float = Field(..., ge=0)


class BudgetItemOut(ApiModel):
    id: int
    cashbook_head_id: int
    cashbook_head_name: Optional[str] = None
    description: Optional[str] = None
    amount: float
    approved1_amount: Optional[float] = None
    approved_amount: Optional[float] = None
    received_amount: float


class CashbookBudgetCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    month: str
    site_id: int
    boq_id: Optional[int] = None
    remarks: Optional[str] = None
    items: list[BudgetItemIn] = Field(..., min_length=1)


class CashbookBudgetUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    month: Optional[str] = None
    site_id: Optional[int] = None
    boq_id: Optional[int] = None
    remarks: Optional[str] = None
    items: Optional[list[BudgetItemIn]] = Field(None, min_length=1)


class CashbookBudgetOut(ApiModel):
    id: int
    name: str
    month: str
    site_id: int
    site_name: Optional[str] = None
    boq_id: Optional[int] = None
    boq_no: Optional[str] = None
    remarks: Optional[str] = None
    total_budget: float
    approved1_budget_amount: Optional[float] = None
    approved_budget_amount: Optional[float] = None
    total_received_amount: float
    created_by_id: Optional[int] = None
    approved1_by_id: Optional[int] = None
    approved1_at: Optional[datetime] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    accepted_by_id: Optional[int] = None
    accepted_at: Optional[datetime] = None
    status: str
    available_actions: list[str] = []
    items: list[BudgetItemOut] = []
    created_at: datetime
    updated_at: datetime


class BudgetActionItem(ApiModel):
    id: int
    approved1_amount: Optional[float] = Field(None, ge=0)
    approved_amount: Optional[float] = Field(None, ge=0)


class BudgetActionRequest(ApiModel):
    action: Literal["approve_1", "approve", "accept"]
    budget_items: list[BudgetActionItem] = []
