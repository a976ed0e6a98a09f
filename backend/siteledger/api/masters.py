"""Master Data API Endpoints

CRUD routers for the simple master tables. Each router supports the common
list parameters, a uniqueness check and foreign key validation.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import apply_changes, ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.asset import AssetCategory, AssetGroup
from siteledger.models.masters import CashbookHead, Item, RentalCategory, Unit, Vendor
from siteledger.models.organisation import Company, Department, Zone
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas import masters as schemas


@dataclass
class MasterResource:
    """How a master table is exposed over the API"""

    prefix: str
    tag: str
    label: str
    model: Any
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    out_schema: type[BaseModel]
    unique_fields: tuple[str, ...]
    search_fields: tuple[str, ...]
    sort_fields: tuple[str, ...]
    default_sort: str = "created_at"
    # field -> (model, label) of rows that must exist
    foreign_keys: dict[str, tuple[Any, str]] = field(default_factory=dict)
    # optional equality filter exposed as a camelCase query parameter
    filter_field: Optional[str] = None


def build_master_router(resource: MasterResource) -> APIRouter:
    router = APIRouter(
        prefix=resource.prefix,
        tags=[resource.tag],
        dependencies=[Depends(guard_api_access)],
    )
    model = resource.model
    out_schema = resource.out_schema
    sort_columns = {}
    for name in resource.sort_fields + ("created_at",):
        sort_columns[name] = sort_columns[to_camel(name)] = getattr(model, name)
    search_columns = [getattr(model, name) for name in resource.search_fields]
    duplicate_message = f"{resource.label} already exists"

    async def check_references(db: AsyncSession, values: dict) -> None:
        for fk_field, (fk_model, fk_label) in resource.foreign_keys.items():
            if fk_field in values:
                await ensure_exists(db, fk_model, values[fk_field], fk_label)

    async def check_unique(db: AsyncSession, obj, values: dict) -> None:
        merged = {
            name: values.get(name, getattr(obj, name, None) if obj is not None else None)
            for name in resource.unique_fields
        }
        await ensure_unique(
            db, model, merged, duplicate_message, exclude_id=obj.id if obj is not None else None
        )

    @router.get("", response_model=ListResponse[out_schema])
    async def list_records(
        params: ListParams = Depends(list_params),
        filter_id: Optional[int] = Query(None, alias=to_camel(resource.filter_field or "filter_id")),
        db: AsyncSession = Depends(get_db),
    ):
        query = select(model)
        if filter_id is not None and resource.filter_field:
            query = query.where(getattr(model, resource.filter_field) == filter_id)
        rows, meta = await paginate(
            db, query, params, sort_columns, resource.default_sort, search_columns
        )
        return ListResponse[out_schema](
            data=[out_schema.model_validate(r) for r in rows], meta=PageMeta(**meta)
        )

    @router.get("/{record_id}", response_model=DataResponse[out_schema])
    async def get_record(record_id: int, db: AsyncSession = Depends(get_db)):
        obj = await get_or_404(db, model, record_id, resource.label)
        return DataResponse[out_schema](data=out_schema.model_validate(obj))

    @router.post("", response_model=DataResponse[out_schema], status_code=201)
    async def create_record(
        payload: resource.create_schema,  # type: ignore[valid-type]
        db: AsyncSession = Depends(get_db),
    ):
        values = payload.model_dump()
        await check_references(db, values)
        await check_unique(db, None, values)
        obj = model(**values)
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return DataResponse[out_schema](data=out_schema.model_validate(obj))

    @router.patch("/{record_id}", response_model=DataResponse[out_schema])
    async def update_record(
        record_id: int,
        payload: resource.update_schema,  # type: ignore[valid-type]
        db: AsyncSession = Depends(get_db),
    ):
        obj = await get_or_404(db, model, record_id, resource.label)
        changes = payload.model_dump(exclude_unset=True)
        await check_references(db, changes)
        await check_unique(db, obj, changes)
        apply_changes(obj, changes)
        await db.commit()
        await db.refresh(obj)
        return DataResponse[out_schema](data=out_schema.model_validate(obj))

    @router.delete("/{record_id}", status_code=204)
    async def delete_record(record_id: int, db: AsyncSession = Depends(get_db)):
        obj = await get_or_404(db, model, record_id, resource.label)
        await db.delete(obj)
        await db.commit()
        return Response(status_code=204)

    list_records.__doc__ = f"List {resource.tag} with pagination, search and sort"
    get_record.__doc__ = f"Get a {resource.label.lower()} by ID"
    create_record.__doc__ = f"Create a {resource.label.lower()}"
    update_record.__doc__ = f"Update a {resource.label.lower()}"
    delete_record.__doc__ = f"Delete a {resource.label.lower()}"
    return router


MASTER_RESOURCES = [
    MasterResource(
        prefix="/api/companies",
        tag="companies",
        label="Company",
        model=Company,
        create_schema=schemas.CompanyCreate,
        update_schema=schemas.CompanyUpdate,
        out_schema=schemas.CompanyOut,
        unique_fields=("company_name",),
        search_fields=("company_name", "short_name", "contact_person"),
        sort_fields=("company_name",),
    ),
    MasterResource(
        prefix="/api/zones",
        tag="zones",
        label="Zone",
        model=Zone,
        create_schema=schemas.ZoneCreate,
        update_schema=schemas.ZoneUpdate,
        out_schema=schemas.ZoneOut,
        unique_fields=("zone_name",),
        search_fields=("zone_name",),
        sort_fields=("zone_name",),
    ),
    MasterResource(
        prefix="/api/departments",
        tag="departments",
        label="Department",
        model=Department,
        create_schema=schemas.DepartmentCreate,
        update_schema=schemas.DepartmentUpdate,
        out_schema=schemas.DepartmentOut,
        unique_fields=("department",),
        search_fields=("department",),
        sort_fields=("department",),
    ),
    MasterResource(
        prefix="/api/units",
        tag="units",
        label="Unit",
        model=Unit,
        create_schema=schemas.UnitCreate,
        update_schema=schemas.UnitUpdate,
        out_schema=schemas.UnitOut,
        unique_fields=("unit_name",),
        search_fields=("unit_name",),
        sort_fields=("unit_name",),
    ),
    MasterResource(
        prefix="/api/rental-categories",
        tag="rental-categories",
        label="Rental category",
        model=RentalCategory,
        create_schema=schemas.RentalCategoryCreate,
        update_schema=schemas.RentalCategoryUpdate,
        out_schema=schemas.RentalCategoryOut,
        unique_fields=("rental_category",),
        search_fields=("rental_category",),
        sort_fields=("rental_category",),
    ),
    MasterResource(
        prefix="/api/cashbook-heads",
        tag="cashbook-heads",
        label="Cashbook head",
        model=CashbookHead,
        create_schema=schemas.CashbookHeadCreate,
        update_schema=schemas.CashbookHeadUpdate,
        out_schema=schemas.CashbookHeadOut,
        unique_fields=("cashbook_head_name",),
        search_fields=("cashbook_head_name",),
        sort_fields=("cashbook_head_name",),
    ),
    MasterResource(
        prefix="/api/items",
        tag="items",
        label="Item",
        model=Item,
        create_schema=schemas.ItemCreate,
        update_schema=schemas.ItemUpdate,
        out_schema=schemas.ItemOut,
        unique_fields=("item_code",),
        search_fields=("item_code", "item"),
        sort_fields=("item_code", "item"),
        foreign_keys={"unit_id": (Unit, "Unit")},
        filter_field="unit_id",
    ),
    MasterResource(
        prefix="/api/vendors",
        tag="vendors",
        label="Vendor",
        model=Vendor,
        create_schema=schemas.VendorCreate,
        update_schema=schemas.VendorUpdate,
        out_schema=schemas.VendorOut,
        unique_fields=("vendor_name",),
        search_fields=("vendor_name", "contact_person", "gst_no"),
        sort_fields=("vendor_name",),
    ),
    MasterResource(
        prefix="/api/asset-groups",
        tag="asset-groups",
        label="Asset group",
        model=AssetGroup,
        create_schema=schemas.AssetGroupCreate,
        update_schema=schemas.AssetGroupUpdate,
        out_schema=schemas.AssetGroupOut,
        unique_fields=("asset_group_name",),
        search_fields=("asset_group_name",),
        sort_fields=("asset_group_name",),
    ),
    MasterResource(
        prefix="/api/asset-categories",
        tag="asset-categories",
        label="Asset category",
        model=AssetCategory,
        create_schema=schemas.AssetCategoryCreate,
        update_schema=schemas.AssetCategoryUpdate,
        out_schema=schemas.AssetCategoryOut,
        unique_fields=("asset_group_id", "category"),
        search_fields=("category",),
        sort_fields=("category",),
        foreign_keys={"asset_group_id": (AssetGroup, "Asset group")},
        filter_field="asset_group_id",
    ),
]

routers = [build_master_router(resource) for resource in MASTER_RESOURCES]
