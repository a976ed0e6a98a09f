"""Helpers shared by the resource routers"""

from typing import Any
from fastapi import HTTPException
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_or_404(db: AsyncSession, model, obj_id: int, label: str, options: list | None = None):
    query = select(model).where(model.id == obj_id)
    if options:
        query = query.options(*options).execution_options(populate_existing=True)
    result = await db.execute(query)
    obj = result.scalar_one_or_none()
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


async def ensure_exists(db: AsyncSession, model, obj_id: int | None, label: str) -> None:
    """Referenced rows must exist before insert/update"""
    if obj_id is None:
        return
    if await db.get(model, obj_id) is None:
        raise HTTPException(status_code=400, detail=f"{label} not found")


async def ensure_unique(
    db: AsyncSession,
    model,
    values: dict[str, Any],
    message: str,
    exclude_id: int | None = None,
) -> None:
    conditions = []
    for field, value in values.items():
        column = getattr(model, field)
        conditions.append(column.is_(None) if value is None else column == value)
    query = select(model.id).where(and_(*conditions))
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail=message)


def apply_changes(obj, changes: dict[str, Any]) -> None:
    """setattr each change, ignoring nulls sent for NOT NULL columns"""
    columns = obj.__table__.c
    for field, value in changes.items():
        if value is None and field in columns and not columns[field].nullable:
            continue
        setattr(obj, field, value)
