"""Manpower Supplier API Endpoints

CRUD operations for labour suppliers, an Excel upload template and bulk
import from that template.
"""

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import apply_changes, ensure_unique, get_or_404
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.manpower import ManpowerSupplier
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.manpower import (
    ManpowerSupplierCreate,
    ManpowerSupplierOut,
    ManpowerSupplierUpdate,
    UploadResult,
    UploadRowError,
)
from siteledger.services.exports import build_template, read_workbook_rows, xlsx_response
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/manpower-suppliers",
    tags=["manpower-suppliers"],
    dependencies=[Depends(guard_api_access)],
)

SORT_FIELDS = {
    "supplierName": ManpowerSupplier.supplier_name,
    "state": ManpowerSupplier.state,
    "createdAt": ManpowerSupplier.created_at,
}

# Upload template column -> model field
TEMPLATE_COLUMNS = {
    "Supplier Name": "supplier_name",
    "Contact Person": "contact_person",
    "Representative Name": "representative_name",
    "Contact No": "contact_no",
    "Email": "email",
    "Address": "address",
    "State": "state",
    "Permanent Address": "permanent_address",
    "GST No": "gst_no",
    "PAN No": "pan_no",
    "TAN No": "tan_no",
    "CIN No": "cin_no",
    "Bank Name": "bank_name",
    "Account No": "account_no",
    "IFSC Code": "ifsc_code",
    "Bank Branch": "bank_branch",
}


@router.get("", response_model=ListResponse[ManpowerSupplierOut])
async def list_suppliers(params: ListParams = Depends(list_params), db: AsyncSession = Depends(get_db)):
    rows, meta = await paginate(
        db,
        select(ManpowerSupplier),
        params,
        SORT_FIELDS,
        "createdAt",
        [ManpowerSupplier.supplier_name, ManpowerSupplier.contact_person, ManpowerSupplier.gst_no],
    )
    return ListResponse[ManpowerSupplierOut](
        data=[ManpowerSupplierOut.model_validate(s) for s in rows], meta=PageMeta(**meta)
    )


@router.get("/template")
async def download_template():
    """Excel template for bulk supplier upload"""
    content = build_template(
        list(TEMPLATE_COLUMNS),
        ["ABC Labour Contractors", "Ravi Kumar", "", "9876543210", "abc@example.com"],
    )
    return xlsx_response(content, "manpower-suppliers-template.xlsx")


@router.post("/upload", response_model=DataResponse[UploadResult])
async def upload_suppliers(file: UploadFile = File(...), db: AsyncSession = Depends(get_db)):
    """Import suppliers from the template; nothing is saved when any row fails"""
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Upload an .xlsx file")

    content = await file.read()
    try:
        records = read_workbook_rows(content)
    except Exception as exc:
        logger.warning(f"Unreadable supplier upload {file.filename}: {exc}")
        raise HTTPException(status_code=400, detail="File is not a valid Excel workbook")

    if not records:
        raise HTTPException(status_code=400, detail="No rows found in file")

    result = await db.execute(select(ManpowerSupplier.supplier_name))
    existing = {name.lower() for (name,) in result.all()}

    errors: list[UploadRowError] = []
    suppliers = []
    seen: set[str] = set()
    for index, record in enumerate(records, start=2):
        values = {
            field: (str(record[column]).strip() if record.get(column) is not None else None)
            for column, field in TEMPLATE_COLUMNS.items()
        }
        name = values.get("supplier_name")
        if not name:
            errors.append(UploadRowError(row=index, message="Supplier Name is required"))
            continue
        if name.lower() in existing or name.lower() in seen:
            errors.append(UploadRowError(row=index, message=f"Supplier '{name}' already exists"))
            continue
        seen.add(name.lower())
        suppliers.append(ManpowerSupplier(**values))

    if errors:
        raise HTTPException(status_code=400, detail=[e.model_dump() for e in errors])

    db.add_all(suppliers)
    await db.commit()
    logger.info(f"Imported {len(suppliers)} manpower suppliers")
    return DataResponse[UploadResult](data=UploadResult(created=len(suppliers)))


@router.get("/{supplier_id}", response_model=DataResponse[ManpowerSupplierOut])
async def get_supplier(supplier_id: int, db: AsyncSession = Depends(get_db)):
    supplier = await get_or_404(db, ManpowerSupplier, supplier_id, "Manpower supplier")
    return DataResponse[ManpowerSupplierOut](data=ManpowerSupplierOut.model_validate(supplier))


@router.post("", response_model=DataResponse[ManpowerSupplierOut], status_code=201)
async def create_supplier(payload: ManpowerSupplierCreate, db: AsyncSession = Depends(get_db)):
    await ensure_unique(
        db, ManpowerSupplier, {"supplier_name": payload.supplier_name}, "Supplier already exists"
    )
    supplier = ManpowerSupplier(**payload.model_dump())
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    return DataResponse[ManpowerSupplierOut](data=ManpowerSupplierOut.model_validate(supplier))


@router.patch("/{supplier_id}", response_model=DataResponse[ManpowerSupplierOut])
async def update_supplier(
    supplier_id: int, payload: ManpowerSupplierUpdate, db: AsyncSession = Depends(get_db)
):
    supplier = await get_or_404(db, ManpowerSupplier, supplier_id, "Manpower supplier")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("supplier_name"):
        await ensure_unique(
            db, ManpowerSupplier, {"supplier_name": changes["supplier_name"]},
            "Supplier already exists", supplier.id,
        )
    apply_changes(supplier, changes)
    await db.commit()
    await db.refresh(supplier)
    return DataResponse[ManpowerSupplierOut](data=ManpowerSupplierOut.model_validate(supplier))


@router.delete("/{supplier_id}", status_code=204)
async def delete_supplier(supplier_id: int, db: AsyncSession = Depends(get_db)):
    supplier = await get_or_404(db, ManpowerSupplier, supplier_id, "Manpower supplier")
    await db.delete(supplier)
    await db.commit()
    return Response(status_code=204)
