"""List query helpers

``page``/``perPage`` are clamped instead of rejected, ``sort`` falls back to
the resource default when it is not whitelisted, and ``search`` is a
case-insensitive substring match over the resource's search columns.
"""

from dataclasses import dataclass
from typing import Any, Optional
from fastapi import Query
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.config import settings


@dataclass
class ListParams:
    page: int
    per_page: int
    search: Optional[str]
    sort: Optional[str]
    order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def list_params(
    page: int = Query(1, description="Page number (1-indexed)"),
    per_page: int = Query(settings.DEFAULT_PAGE_SIZE, alias="perPage"),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
) -> ListParams:
    """Dependency parsing the common list query parameters"""
    return ListParams(
        page=max(page, 1),
        per_page=min(max(per_page, 1), settings.MAX_PAGE_SIZE),
        search=search.strip() if search and search.strip() else None,
        sort=sort,
        order="asc" if (order or "").lower() == "asc" else "desc",
    )


def page_meta(page: int, per_page: int, total: int) -> dict:
    total_pages = (total + per_page - 1) // per_page if total > 0 else 0
    return {"page": page, "per_page": per_page, "total": total, "total_pages": total_pages}


def apply_search(query: Select, search: Optional[str], columns: list[Any]) -> Select:
    if not search or not columns:
        return query
    pattern = f"%{search}%"
    return query.where(or_(*[column.ilike(pattern) for column in columns]))


async def paginate(
    db: AsyncSession,
    query: Select,
    params: ListParams,
    sort_fields: dict[str, Any],
    default_sort: str,
    search_columns: Optional[list[Any]] = None,
) -> tuple[list, dict]:
    """Run a filtered, sorted, paged list query and return rows plus meta"""

    query = apply_search(query, params.search, search_columns or [])

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    column = sort_fields.get(params.sort or "", sort_fields[default_sort])
    ordering = column.asc() if params.order == "asc" else column.desc()
    query = query.order_by(ordering).offset(params.offset).limit(params.per_page)

    result = await db.execute(query)
    rows = list(result.scalars().unique().all())
    return rows, page_meta(params.page, params.per_page, total)
