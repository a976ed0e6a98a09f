"""Asset API Endpoints

CRUD operations for assets and the asset register export.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import apply_changes, ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import guard_api_access
from siteledger.core.pagination import ListParams, apply_search, list_params, paginate
from siteledger.database import get_db
from siteledger.models.asset import Asset, AssetCategory, AssetGroup
from siteledger.models.organisation import Site
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.masters import AssetCreate, AssetOut, AssetUpdate
from siteledger.services.exports import build_workbook, xlsx_response
from siteledger.services.numbering import next_serial

router = APIRouter(prefix="/api/assets", tags=["assets"], dependencies=[Depends(guard_api_access)])

SORT_FIELDS = {
    "assetNo": Asset.asset_no,
    "assetName": Asset.asset_name,
    "status": Asset.status,
    "purchaseDate": Asset.purchase_date,
    "createdAt": Asset.created_at,
}
SEARCH_COLUMNS = [Asset.asset_no, Asset.asset_name, Asset.make]


def filtered_query(
    asset_group_id: Optional[int],
    asset_category_id: Optional[int],
    status: Optional[str],
    site_id: Optional[int],
):
    query = select(Asset)
    if asset_group_id:
        query = query.where(Asset.asset_group_id == asset_group_id)
    if asset_category_id:
        query = query.where(Asset.asset_category_id == asset_category_id)
    if status:
        query = query.where(Asset.status == status)
    if site_id:
        query = query.where(Asset.current_site_id == site_id)
    return query


async def check_references(db: AsyncSession, asset: Asset | None, values: dict) -> None:
    """Group, category and site must exist and the category must belong to the group"""
    await ensure_exists(db, AssetGroup, values.get("asset_group_id"), "Asset group")
    await ensure_exists(db, Site, values.get("current_site_id"), "Site")

    group_id = values.get("asset_group_id", asset.asset_group_id if asset else None)
    category_id = values.get("asset_category_id", asset.asset_category_id if asset else None)
    if category_id is None:
        return
    category = await db.get(AssetCategory, category_id)
    if category is None:
        raise HTTPException(status_code=400, detail="Asset category not found")
    if category.asset_group_id != group_id:
        raise HTTPException(status_code=400, detail="Asset category does not belong to asset group")


@router.get("", response_model=ListResponse[AssetOut])
async def list_assets(
    params: ListParams = Depends(list_params),
    asset_group_id: Optional[int] = Query(None, alias="assetGroupId"),
    asset_category_id: Optional[int] = Query(None, alias="assetCategoryId"),
    status: Optional[str] = None,
    site_id: Optional[int] = Query(None, alias="siteId"),
    db: AsyncSession = Depends(get_db),
):
    """List assets with pagination and filters"""
    query = filtered_query(asset_group_id, asset_category_id, status, site_id)
    rows, meta = await paginate(db, query, params, SORT_FIELDS, "createdAt", SEARCH_COLUMNS)
    return ListResponse[AssetOut](data=[AssetOut.model_validate(a) for a in rows], meta=PageMeta(**meta))


@router.get("/export")
async def export_assets(
    search: Optional[str] = None,
    asset_group_id: Optional[int] = Query(None, alias="assetGroupId"),
    asset_category_id: Optional[int] = Query(None, alias="assetCategoryId"),
    status: Optional[str] = None,
    site_id: Optional[int] = Query(None, alias="siteId"),
    db: AsyncSession = Depends(get_db),
):
    """Asset register as an Excel workbook"""
    query = filtered_query(asset_group_id, asset_category_id, status, site_id)
    query = apply_search(query, search, SEARCH_COLUMNS)

    result = await db.execute(query.order_by(Asset.asset_no))
    assets = result.scalars().all()

    groups = {g.id: g.asset_group_name for g in (await db.execute(select(AssetGroup))).scalars()}
    categories = {c.id: c.category for c in (await db.execute(select(AssetCategory))).scalars()}
    sites = {s.id: s.site for s in (await db.execute(select(Site))).scalars()}

    rows = [
        [
            a.asset_no,
            groups.get(a.asset_group_id, ""),
            categories.get(a.asset_category_id, ""),
            a.asset_name,
            a.make or "",
            a.purchase_date,
            a.status,
            a.use_status,
            a.transfer_status,
            sites.get(a.current_site_id, ""),
            a.next_maintenance_date,
        ]
        for a in assets
    ]
    content = build_workbook(
        "Asset Register",
        [
            "Asset No", "Group", "Category", "Name", "Make", "Purchase Date",
            "Status", "Use Status", "Transfer Status", "Current Site", "Next Maintenance",
        ],
        rows,
        widths=[14, 18, 18, 30, 16, 14, 12, 12, 16, 24, 16],
        sheet_name="Assets",
    )
    return xlsx_response(content, "assets.xlsx")


@router.get("/{asset_id}", response_model=DataResponse[AssetOut])
async def get_asset(asset_id: int, db: AsyncSession = Depends(get_db)):
    asset = await get_or_404(db, Asset, asset_id, "Asset")
    return DataResponse[AssetOut](data=AssetOut.model_validate(asset))


@router.post("", response_model=DataResponse[AssetOut], status_code=201)
async def create_asset(payload: AssetCreate, db: AsyncSession = Depends(get_db)):
    """Create an asset; a blank asset number is generated as AST-00001"""
    values = payload.model_dump()
    await check_references(db, None, values)

    if values.get("asset_no"):
        await ensure_unique(db, Asset, {"asset_no": values["asset_no"]}, "Asset number already exists")
    else:
        values["asset_no"] = await next_serial(db, Asset.asset_no, "AST")

    asset = Asset(**values)
    db.add(asset)
    await db.commit()
    await db.refresh(asset)
    return DataResponse[AssetOut](data=AssetOut.model_validate(asset))


@router.patch("/{asset_id}", response_model=DataResponse[AssetOut])
async def update_asset(asset_id: int, payload: AssetUpdate, db: AsyncSession = Depends(get_db)):
    asset = await get_or_404(db, Asset, asset_id, "Asset")
    changes = payload.model_dump(exclude_unset=True)
    await check_references(db, asset, changes)
    if changes.get("asset_no"):
        await ensure_unique(
            db, Asset, {"asset_no": changes["asset_no"]}, "Asset number already exists", asset.id
        )

    apply_changes(asset, changes)
    await db.commit()
    await db.refresh(asset)
    return DataResponse[AssetOut](data=AssetOut.model_validate(asset))


@router.delete("/{asset_id}", status_code=204)
async def delete_asset(asset_id: int, db: AsyncSession = Depends(get_db)):
    asset = await get_or_404(db, Asset, asset_id, "Asset")
    await db.delete(asset)
    await db.commit()
    return Response(status_code=204)
