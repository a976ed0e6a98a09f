"""Stock API Endpoints

Closing stock per site and item, and the stock ledger behind it.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from siteledger.api.deps import AccessContext, ensure_site_access, guard_api_access, scoped_site_ids
from siteledger.core.pagination import ListParams, list_params, paginate
from siteledger.database import get_db
from siteledger.models.masters import Item
from siteledger.models.stock import SiteItem, StockLedger
from siteledger.schemas.common import ListResponse, PageMeta
from siteledger.schemas.stock import SiteStockOut, StockLedgerOut

router = APIRouter(prefix="/api/stocks", tags=["stocks"])

SORT_FIELDS = {
    "item": Item.item,
    "itemCode": Item.item_code,
    "closingStock": SiteItem.closing_stock,
    "closingValue": SiteItem.closing_value,
    "logDate": SiteItem.log_date,
}

LEDGER_SORT_FIELDS = {
    "transactionDate": StockLedger.transaction_date,
    "createdAt": StockLedger.created_at,
}


def to_stock_out(site_item: SiteItem) -> SiteStockOut:
    out = SiteStockOut.model_validate(site_item)
    if site_item.item:
        out.item_code = site_item.item.item_code
        out.item_name = site_item.item.item
    return out


@router.get("", response_model=ListResponse[SiteStockOut])
async def list_stock(
    params: ListParams = Depends(list_params),
    site_id: Optional[int] = Query(None, alias="siteId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    """Closing stock, value and unit rate of items at a site"""
    query = select(SiteItem).join(Item, Item.id == SiteItem.item_id).options(selectinload(SiteItem.item))
    if site_id:
        await ensure_site_access(db, ctx, site_id)
        query = query.where(SiteItem.site_id == site_id)
    else:
        site_ids = await scoped_site_ids(db, ctx)
        if site_ids is not None:
            query = query.where(SiteItem.site_id.in_(site_ids))

    rows, meta = await paginate(db, query, params, SORT_FIELDS, "item", [Item.item, Item.item_code])
    return ListResponse[SiteStockOut](data=[to_stock_out(s) for s in rows], meta=PageMeta(**meta))


@router.get("/ledger", response_model=ListResponse[StockLedgerOut])
async def list_ledger(
    params: ListParams = Depends(list_params),
    site_id: int = Query(..., alias="siteId"),
    item_id: Optional[int] = Query(None, alias="itemId"),
    ctx: AccessContext = Depends(guard_api_access),
    db: AsyncSession = Depends(get_db),
):
    await ensure_site_access(db, ctx, site_id)
    query = select(StockLedger).where(StockLedger.site_id == site_id)
    if item_id:
        query = query.where(StockLedger.item_id == item_id)

    rows, meta = await paginate(db, query, params, LEDGER_SORT_FIELDS, "transactionDate")
    return ListResponse[StockLedgerOut](
        data=[StockLedgerOut.model_validate(r) for r in rows], meta=PageMeta(**meta)
    )
