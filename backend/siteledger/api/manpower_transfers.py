"""Manpower Transfer API Endpoints

Transfer challans moving workers between sites. A transfer is created as
Pending and is then either Accepted, which moves the workers, or Rejected.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.common import ensure_exists, get_or_404
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.manpower import ManpowerTransfer, ManpowerTransferItem
from siteledger.models.organisation import Site
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.manpower import (
    ManpowerTransferCreate,
    ManpowerTransferOut,
    ManpowerTransferStatusUpdate,
)
from siteledger.services.manpower import TRANSFER_ACCEPTED, ManpowerService
from siteledger.services.numbering import next_serial

router = APIRouter(prefix="/api/manpower-transfers", tags=["manpower-transfers"])

SORT_FIELDS = {
    "challanNo": ManpowerTransfer.challan_no,
    "challanDate": ManpowerTransfer.challan_date,
    "status": ManpowerTransfer.status,
    "createdAt": ManpowerTransfer.created_at,
}


async def load_transfer(db: AsyncSession, transfer_id: int) -> ManpowerTransfer:
    return await get_or_404(
        db, ManpowerTransfer, transfer_id, "Transfer",
        options=[selectinload(ManpowerTransfer.items)],
    )


@router.get("", response_model=ListResponse[ManpowerTransferOut])
async def list_transfers(
    params: ListParams = Depends(list_params),
    status: Optional[str] = Query(None, pattern="^(Pending|Accepted|Rejected)$"),
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    query = select(ManpowerTransfer).options(selectinload(ManpowerTransfer.items))
    if status:
        query = query.where(ManpowerTransfer.status == status)
    if site_id:
        query = query.where(
            or_(ManpowerTransfer.from_site_id == site_id, ManpowerTransfer.to_site_id == site_id)
        )
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(
            or_(ManpowerTransfer.from_site_id.in_(site_ids), ManpowerTransfer.to_site_id.in_(site_ids))
        )

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt", [ManpowerTransfer.challan_no]
    )
    return ListResponse[ManpowerTransferOut](
        data=[ManpowerTransferOut.model_validate(t) for t in rows], meta=PageMeta(**meta)
    )


@router.get("/{transfer_id}", response_model=DataResponse[ManpowerTransferOut])
async def get_transfer(
    transfer_id: int,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    transfer = await load_transfer(db, transfer_id)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None and not {transfer.from_site_id, transfer.to_site_id} & set(site_ids):
        raise HTTPException(status_code=403, detail="Site is not assigned to current user")
    return DataResponse[ManpowerTransferOut](data=ManpowerTransferOut.model_validate(transfer))


@router.post("", response_model=DataResponse[ManpowerTransferOut], status_code=201)
async def create_transfer(
    payload: ManpowerTransferCreate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Raise a transfer challan for workers currently at the source site"""
    if payload.from_site_id == payload.to_site_id:
        raise HTTPException(status_code=400, detail="From site and to site must be different")
    await ensure_exists(db, Site, payload.from_site_id, "From site")
    await ensure_exists(db, Site, payload.to_site_id, "To site")
    await ensure_site_access(db, ctx, payload.from_site_id)

    manpower_ids = [item.manpower_id for item in payload.items]
    if len(set(manpower_ids)) != len(manpower_ids):
        raise HTTPException(status_code=400, detail="Duplicate manpower in transfer")

    for manpower_id in manpower_ids:
        current = await ManpowerService.current_assignment(db, manpower_id)
        if current is None or current.site_id != payload.from_site_id:
            raise HTTPException(
                status_code=400,
                detail=f"Manpower {manpower_id} is not assigned to the from site",
            )

    pending = await ManpowerService.pending_transfer_ids(db, manpower_ids)
    if pending:
        raise HTTPException(
            status_code=400,
            detail=f"Manpower already in a pending transfer: {sorted(pending)}",
        )

    transfer = ManpowerTransfer(
        challan_no=await next_serial(db, ManpowerTransfer.challan_no, "MPT"),
        challan_date=payload.challan_date,
        from_site_id=payload.from_site_id,
        to_site_id=payload.to_site_id,
        remarks=payload.remarks,
        challan_copy_url=payload.challan_copy_url,
        created_by_id=ctx.user.id,
    )
    db.add(transfer)
    await db.flush()
    for item in payload.items:
        db.add(ManpowerTransferItem(transfer_id=transfer.id, **item.model_dump()))
    await db.commit()

    transfer = await load_transfer(db, transfer.id)
    return DataResponse[ManpowerTransferOut](data=ManpowerTransferOut.model_validate(transfer))


@router.patch("/{transfer_id}", response_model=DataResponse[ManpowerTransferOut])
async def update_transfer_status(
    transfer_id: int,
    payload: ManpowerTransferStatusUpdate,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Accept or reject a pending transfer"""
    transfer = await load_transfer(db, transfer_id)
    await ensure_site_access(db, ctx, transfer.to_site_id)

    if payload.remarks is not None:
        transfer.remarks = payload.remarks
    if payload.status == TRANSFER_ACCEPTED:
        await ManpowerService.accept_transfer(db, transfer, ctx.user.id)
    else:
        ManpowerService.reject_transfer(transfer, ctx.user.id)
    await db.commit()

    transfer = await load_transfer(db, transfer.id)
    return DataResponse[ManpowerTransferOut](data=ManpowerTransferOut.model_validate(transfer))
