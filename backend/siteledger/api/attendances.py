"""Attendance API Endpoints

Daily attendance sheet per site. Saving a sheet upserts one row per
(date, site, worker); only workers assigned to the site can be marked.
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import ensure_exists
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access
from siteledger.database import get_db
from siteledger.models.manpower import Attendance, Manpower, ManpowerAssignment
from siteledger.models.organisation import Site
from siteledger.schemas.common import DataResponse
from siteledger.schemas.manpower import AttendanceRow, AttendanceSheetIn, AttendanceSheetOut

router = APIRouter(prefix="/api/attendances", tags=["attendances"])


async def build_sheet(db: AsyncSession, site_id: int, day: date) -> AttendanceSheetOut:
    """Assigned workers merged with the attendance already saved for the day"""
    workers = await db.execute(
        select(Manpower)
        .join(ManpowerAssignment, ManpowerAssignment.manpower_id == Manpower.id)
        .where(ManpowerAssignment.site_id == site_id)
        .order_by(Manpower.first_name, Manpower.last_name)
    )
    saved = await db.execute(
        select(Attendance).where(Attendance.site_id == site_id, Attendance.date == day)
    )
    by_worker = {a.manpower_id: a for a in saved.scalars().all()}

    rows = []
    for worker in workers.scalars().all():
        record = by_worker.pop(worker.id, None)
        rows.append(AttendanceRow(
            manpower_id=worker.id,
            manpower_name=worker.full_name,
            attendance_id=record.id if record else None,
            is_present=record.is_present if record else False,
            is_idle=record.is_idle if record else False,
            ot=record.ot if record else 0.0,
        ))

    # Workers transferred away keep their saved rows on the sheet
    for record in by_worker.values():
        worker = await db.get(Manpower, record.manpower_id)
        rows.append(AttendanceRow(
            manpower_id=record.manpower_id,
            manpower_name=worker.full_name if worker else str(record.manpower_id),
            attendance_id=record.id,
            is_present=record.is_present,
            is_idle=record.is_idle,
            ot=record.ot,
        ))
    return AttendanceSheetOut(site_id=site_id, date=day, rows=rows)


@router.get("", response_model=DataResponse[AttendanceSheetOut])
async def get_attendance_sheet(
    site_id: int = Query(..., alias="siteId"),
    day: date = Query(..., alias="date"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await ensure_exists(db, Site, site_id, "Site")
    await ensure_site_access(db, ctx, site_id)
    return DataResponse[AttendanceSheetOut](data=await build_sheet(db, site_id, day))


@router.post("", response_model=DataResponse[AttendanceSheetOut])
async def save_attendance_sheet(
    payload: AttendanceSheetIn,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Upsert the attendance of assigned workers for one site and day"""
    await ensure_exists(db, Site, payload.site_id, "Site")
    await ensure_site_access(db, ctx, payload.site_id)

    manpower_ids = [entry.manpower_id for entry in payload.attendances]
    if len(set(manpower_ids)) != len(manpower_ids):
        raise HTTPException(status_code=400, detail="Duplicate manpower in attendance")

    result = await db.execute(
        select(ManpowerAssignment.manpower_id).where(
            ManpowerAssignment.site_id == payload.site_id,
            ManpowerAssignment.manpower_id.in_(manpower_ids),
        )
    )
    assigned = {row[0] for row in result.all()}
    not_assigned = [i for i in manpower_ids if i not in assigned]
    if not_assigned:
        raise HTTPException(
            status_code=400,
            detail=f"Manpower not assigned to this site: {not_assigned}",
        )

    saved = await db.execute(
        select(Attendance).where(
            Attendance.site_id == payload.site_id,
            Attendance.date == payload.date,
            Attendance.manpower_id.in_(manpower_ids),
        )
    )
    existing = {a.manpower_id: a for a in saved.scalars().all()}

    for entry in payload.attendances:
        # Idle days count as present days on the muster
        is_present = entry.is_present or entry.is_idle
        record = existing.get(entry.manpower_id)
        if record is None:
            db.add(Attendance(
                date=payload.date,
                site_id=payload.site_id,
                manpower_id=entry.manpower_id,
                is_present=is_present,
                is_idle=entry.is_idle,
                ot=entry.ot,
            ))
        else:
            record.is_present = is_present
            record.is_idle = entry.is_idle
            record.ot = entry.ot
    await db.commit()

    return DataResponse[AttendanceSheetOut](data=await build_sheet(db, payload.site_id, payload.date))
