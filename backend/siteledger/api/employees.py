"""Employee API Endpoints

Employee CRUD and assignment of employees to sites. Every assignment is
mirrored into the site employee log, which is closed on unassignment.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import apply_changes, ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db, utcnow
from siteledger.models.access import User
from siteledger.models.employee import Employee, SiteEmployee, SiteEmployeeLog
from siteledger.models.organisation import Department, Site
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.employee import (
    AssignedEmployeeOut,
    AssignmentResult,
    EmployeeAssignmentRequest,
    EmployeeCreate,
    EmployeeOut,
    EmployeeUpdate,
)

router = APIRouter(prefix="/api/employees", tags=["employees"], dependencies=[Depends(guard_api_access)])
assignment_router = APIRouter(prefix="/api/employee-assignments", tags=["employee-assignments"])

SORT_FIELDS = {
    "name": Employee.name,
    "designation": Employee.designation,
    "joiningDate": Employee.joining_date,
    "createdAt": Employee.created_at,
}


async def check_references(db: AsyncSession, employee: Employee | None, values: dict) -> None:
    await ensure_exists(db, Department, values.get("department_id"), "Department")
    if values.get("user_id") is not None:
        await ensure_exists(db, User, values["user_id"], "User")
        await ensure_unique(
            db,
            Employee,
            {"user_id": values["user_id"]},
            "User is already linked to another employee",
            employee.id if employee else None,
        )


@router.get("", response_model=ListResponse[EmployeeOut])
async def list_employees(
    params: ListParams = Depends(list_params),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    db: AsyncSession = Depends(get_db),
):
    query = select(Employee)
    if department_id:
        query = query.where(Employee.department_id == department_id)
    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt",
        [Employee.name, Employee.designation, Employee.mobile, Employee.email],
    )
    return ListResponse[EmployeeOut](
        data=[EmployeeOut.model_validate(e) for e in rows], meta=PageMeta(**meta)
    )


@router.get("/{employee_id}", response_model=DataResponse[EmployeeOut])
async def get_employee(employee_id: int, db: AsyncSession = Depends(get_db)):
    employee = await get_or_404(db, Employee, employee_id, "Employee")
    return DataResponse[EmployeeOut](data=EmployeeOut.model_validate(employee))


@router.post("", response_model=DataResponse[EmployeeOut], status_code=201)
async def create_employee(payload: EmployeeCreate, db: AsyncSession = Depends(get_db)):
    values = payload.model_dump()
    await check_references(db, None, values)
    employee = Employee(**values)
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    return DataResponse[EmployeeOut](data=EmployeeOut.model_validate(employee))


@router.patch("/{employee_id}", response_model=DataResponse[EmployeeOut])
async def update_employee(
    employee_id: int, payload: EmployeeUpdate, db: AsyncSession = Depends(get_db)
):
    employee = await get_or_404(db, Employee, employee_id, "Employee")
    changes = payload.model_dump(exclude_unset=True)
    await check_references(db, employee, changes)
    apply_changes(employee, changes)
    await db.commit()
    await db.refresh(employee)
    return DataResponse[EmployeeOut](data=EmployeeOut.model_validate(employee))


@router.delete("/{employee_id}", status_code=204)
async def delete_employee(employee_id: int, db: AsyncSession = Depends(get_db)):
    employee = await get_or_404(db, Employee, employee_id, "Employee")
    await db.delete(employee)
    await db.commit()
    return Response(status_code=204)


@assignment_router.get("", response_model=DataResponse[list[AssignedEmployeeOut]])
async def list_site_employees(
    site_id: int = Query(..., alias="siteId"),
    mode: str = Query("assigned", pattern="^(assigned|available)$"),
    _: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Employees assigned to a site, or those still available for it"""
    await ensure_exists(db, Site, site_id, "Site")

    if mode == "assigned":
        result = await db.execute(
            select(Employee, SiteEmployee.assigned_date)
            .join(SiteEmployee, SiteEmployee.employee_id == Employee.id)
            .where(SiteEmployee.site_id == site_id)
            .order_by(Employee.name)
        )
        data = [
            AssignedEmployeeOut(
                id=e.id,
                name=e.name,
                designation=e.designation,
                department_id=e.department_id,
                assigned_date=assigned_date,
            )
            for e, assigned_date in result.all()
        ]
    else:
        assigned = select(SiteEmployee.employee_id).where(SiteEmployee.site_id == site_id)
        result = await db.execute(
            select(Employee).where(Employee.id.not_in(assigned)).order_by(Employee.name)
        )
        data = [AssignedEmployeeOut.model_validate(e) for e in result.scalars().all()]

    return DataResponse[list[AssignedEmployeeOut]](data=data)


@assignment_router.post("", response_model=DataResponse[AssignmentResult])
async def assign_employees(
    payload: EmployeeAssignmentRequest,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Assign employees to a site; already assigned employees are skipped"""
    await ensure_exists(db, Site, payload.site_id, "Site")
    employee_ids = sorted(set(payload.employee_ids))

    result = await db.execute(select(Employee.id).where(Employee.id.in_(employee_ids)))
    found = {row[0] for row in result.all()}
    missing = [i for i in employee_ids if i not in found]
    if missing:
        raise HTTPException(status_code=400, detail=f"Employees not found: {missing}")

    result = await db.execute(
        select(SiteEmployee.employee_id).where(
            SiteEmployee.site_id == payload.site_id,
            SiteEmployee.employee_id.in_(employee_ids),
        )
    )
    already = {row[0] for row in result.all()}

    now = utcnow()
    affected = []
    for employee_id in employee_ids:
        if employee_id in already:
            continue
        db.add(SiteEmployee(
            site_id=payload.site_id, employee_id=employee_id,
            assigned_date=now, assigned_by_id=ctx.user.id,
        ))
        db.add(SiteEmployeeLog(
            site_id=payload.site_id, employee_id=employee_id,
            assigned_date=now, assigned_by_id=ctx.user.id,
        ))
        affected.append(employee_id)
    await db.commit()

    return DataResponse[AssignmentResult](
        data=AssignmentResult(site_id=payload.site_id, affected=affected, skipped=sorted(already))
    )


@assignment_router.delete("", response_model=DataResponse[AssignmentResult])
async def unassign_employees(
    payload: EmployeeAssignmentRequest,
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Remove employees from a site and close their open log rows"""
    employee_ids = sorted(set(payload.employee_ids))
    result = await db.execute(
        select(SiteEmployee).where(
            SiteEmployee.site_id == payload.site_id,
            SiteEmployee.employee_id.in_(employee_ids),
        )
    )
    assignments = result.scalars().all()
    affected = sorted(a.employee_id for a in assignments)
    for assignment in assignments:
        await db.delete(assignment)

    now = utcnow()
    log_result = await db.execute(
        select(SiteEmployeeLog).where(
            SiteEmployeeLog.site_id == payload.site_id,
            SiteEmployeeLog.employee_id.in_(affected),
            SiteEmployeeLog.unassigned_date.is_(None),
        )
    )
    for log in log_result.scalars().all():
        log.unassigned_date = now
        log.unassigned_by_id = ctx.user.id
    await db.commit()

    skipped = [i for i in employee_ids if i not in affected]
    return DataResponse[AssignmentResult](
        data=AssignmentResult(site_id=payload.site_id, affected=affected, skipped=skipped)
    )
