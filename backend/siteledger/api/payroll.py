"""Payroll API Endpoints

Payroll configuration and pay slip generation per period.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import apply_changes
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.payroll import PaySlip
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.payroll import (
    PayrollConfigOut,
    PayrollConfigUpdate,
    PayrollRunRequest,
    PayrollRunResult,
    PaySlipOut,
)
from siteledger.services.calc import parse_month
from siteledger.services.payroll import PAYROLL_MODES, PayrollService

config_router = APIRouter(
    prefix="/api/payroll-config", tags=["payroll"], dependencies=[Depends(guard_api_access)]
)
router = APIRouter(prefix="/api/payslips", tags=["payroll"], dependencies=[Depends(guard_api_access)])

SORT_FIELDS = {
    "period": PaySlip.period,
    "netWages": PaySlip.net_wages,
    "manpowerId": PaySlip.manpower_id,
    "createdAt": PaySlip.created_at,
}


def to_slip_out(slip: PaySlip) -> PaySlipOut:
    out = PaySlipOut.model_validate(slip)
    out.manpower_name = slip.manpower.full_name if slip.manpower else None
    return out


@config_router.get("", response_model=DataResponse[PayrollConfigOut])
async def get_payroll_config(db: AsyncSession = Depends(get_db)):
    config = await PayrollService.get_config(db)
    await db.commit()
    return DataResponse[PayrollConfigOut](data=PayrollConfigOut.model_validate(config))


@config_router.patch("", response_model=DataResponse[PayrollConfigOut])
async def update_payroll_config(payload: PayrollConfigUpdate, db: AsyncSession = Depends(get_db)):
    config = await PayrollService.get_config(db)
    changes = payload.model_dump(exclude_unset=True)
    threshold1 = changes.get("pt_threshold1", config.pt_threshold1)
    threshold2 = changes.get("pt_threshold2", config.pt_threshold2)
    if threshold1 is not None and threshold2 is not None and threshold2 < threshold1:
        raise HTTPException(status_code=400, detail="ptThreshold2 must not be below ptThreshold1")
    apply_changes(config, changes)
    await db.commit()
    await db.refresh(config)
    return DataResponse[PayrollConfigOut](data=PayrollConfigOut.model_validate(config))


@router.get("", response_model=ListResponse[PaySlipOut])
async def list_payslips(
    params: ListParams = Depends(list_params),
    period: Optional[str] = None,
    govt: Optional[bool] = None,
    manpower_id: Optional[int] = Query(None, alias="manpowerId"),
    db: AsyncSession = Depends(get_db),
):
    query = select(PaySlip).options(selectinload(PaySlip.details), selectinload(PaySlip.manpower))
    if period:
        query = query.where(PaySlip.period == period)
    if govt is not None:
        query = query.where(PaySlip.govt == govt)
    if manpower_id:
        query = query.where(PaySlip.manpower_id == manpower_id)

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "period")
    return ListResponse[PaySlipOut](data=[to_slip_out(s) for s in rows], meta=PageMeta(**meta))


@router.post("", response_model=DataResponse[PayrollRunResult])
async def generate_payslips(payload: PayrollRunRequest, db: AsyncSession = Depends(get_db)):
    """Generate pay slips for a period (MM-YYYY), replacing earlier runs"""
    if not parse_month(payload.period):
        raise HTTPException(status_code=400, detail="Invalid period. Expected MM-YYYY")
    modes = payload.modes or list(PAYROLL_MODES)
    unknown = [m for m in modes if m not in PAYROLL_MODES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown payroll modes: {unknown}")

    summary = await PayrollService.generate(
        db, payload.period, payload.pay_slip_date or date.today(), modes
    )
    return DataResponse[PayrollRunResult](data=PayrollRunResult(period=payload.period, slips=summary))


@router.get("/{slip_id}", response_model=DataResponse[PaySlipOut])
async def get_payslip(slip_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(PaySlip)
        .options(selectinload(PaySlip.details), selectinload(PaySlip.manpower))
        .where(PaySlip.id == slip_id)
    )
    slip = result.scalar_one_or_none()
    if not slip:
        raise HTTPException(status_code=404, detail="Pay slip not found")
    return DataResponse[PaySlipOut](data=to_slip_out(slip))
