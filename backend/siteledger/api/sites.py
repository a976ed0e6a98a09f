"""Site API Endpoints

CRUD operations for construction sites, plus the site picker options.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.api.common import apply_changes, ensure_exists, ensure_unique, get_or_404
from siteledger.api.deps import AccessContext, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.organisation import Company, Site, Zone
from siteledger.schemas.common import DataResponse, ListResponse, PageMeta
from siteledger.schemas.masters import SiteCreate, SiteOption, SiteOut, SiteUpdate

router = APIRouter(prefix="/api/sites", tags=["sites"])

SORT_FIELDS = {
    "site": Site.site,
    "shortName": Site.short_name,
    "siteStatus": Site.site_status,
    "startDate": Site.start_date,
    "createdAt": Site.created_at,
}


async def check_references(db: AsyncSession, values: dict) -> None:
    if "company_id" in values:
        await ensure_exists(db, Company, values["company_id"], "Company")
    if "zone_id" in values:
        await ensure_exists(db, Zone, values["zone_id"], "Zone")


@router.get("/options", response_model=DataResponse[list[SiteOption]])
async def site_options(
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Sites the caller may work on (all sites for admins)"""
    query = select(Site).order_by(Site.site)
    site_ids = await scoped_site_ids(db, ctx)
    if site_ids is not None:
        query = query.where(Site.id.in_(site_ids))
    result = await db.execute(query)
    return DataResponse[list[SiteOption]](
        data=[SiteOption.model_validate(s) for s in result.scalars().all()]
    )


@router.get("", response_model=ListResponse[SiteOut], dependencies=[Depends(guard_api_access)])
async def list_sites(
    params: ListParams = Depends(list_params),
    company_id: Optional[int] = Query(None, alias="companyId"),
    zone_id: Optional[int] = Query(None, alias="zoneId"),
    site_status: Optional[str] = Query(None, alias="siteStatus"),
    db: AsyncSession = Depends(get_db),
):
    """List sites with pagination and filters"""
    query = select(Site)
    if company_id:
        query = query.where(Site.company_id == company_id)
    if zone_id:
        query = query.where(Site.zone_id == zone_id)
    if site_status:
        query = query.where(Site.site_status == site_status)

    rows, meta = await paginate(
        db, query, params, SORT_FIELDS, "createdAt", [Site.site, Site.short_name, Site.uin_no]
    )
    return ListResponse[SiteOut](data=[SiteOut.model_validate(s) for s in rows], meta=PageMeta(**meta))


@router.get("/{site_id}", response_model=DataResponse[SiteOut], dependencies=[Depends(guard_api_access)])
async def get_site(site_id: int, db: AsyncSession = Depends(get_db)):
    site = await get_or_404(db, Site, site_id, "Site")
    return DataResponse[SiteOut](data=SiteOut.model_validate(site))


@router.post(
    "", response_model=DataResponse[SiteOut], status_code=201, dependencies=[Depends(guard_api_access)]
)
async def create_site(payload: SiteCreate, db: AsyncSession = Depends(get_db)):
    values = payload.model_dump()
    await check_references(db, values)
    await ensure_unique(db, Site, {"site": payload.site}, "Site already exists")

    site = Site(**values)
    db.add(site)
    await db.commit()
    await db.refresh(site)
    return DataResponse[SiteOut](data=SiteOut.model_validate(site))


@router.patch("/{site_id}", response_model=DataResponse[SiteOut], dependencies=[Depends(guard_api_access)])
async def update_site(site_id: int, payload: SiteUpdate, db: AsyncSession = Depends(get_db)):
    site = await get_or_404(db, Site, site_id, "Site")
    changes = payload.model_dump(exclude_unset=True)
    await check_references(db, changes)
    if changes.get("site"):
        await ensure_unique(db, Site, {"site": changes["site"]}, "Site already exists", site.id)

    apply_changes(site, changes)
    await db.commit()
    await db.refresh(site)
    return DataResponse[SiteOut](data=SiteOut.model_validate(site))


@router.delete("/{site_id}", status_code=204, dependencies=[Depends(guard_api_access)])
async def delete_site(site_id: int, db: AsyncSession = Depends(get_db)):
    site = await get_or_404(db, Site, site_id, "Site")
    await db.delete(site)
    await db.commit()
    return Response(status_code=204)
