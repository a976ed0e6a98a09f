"""Document number generation

Serial numbers such as ``MPT-00012`` and paired challan numbers such as
``0001-0042`` whose right part rolls over into the left after 9999.
"""

import re
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

PAIR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


async def next_serial(db: AsyncSession, column, prefix: str, width: int = 5) -> str:
    """Next ``PREFIX-00001`` style number for a unique column"""
    result = await db.execute(select(func.max(column)).where(column.like(f"{prefix}-%")))
    last = result.scalar()
    number = 0
    if last:
        suffix = last[len(prefix) + 1:]
        number = int(suffix) if suffix.isdigit() else 0
    return f"{prefix}-{number + 1:0{width}d}"


def increment_pair_number(last: str | None) -> str:
    if not last:
        return "0001-0001"
    match = PAIR_PATTERN.match(last)
    if not match:
        return "0001-0001"
    left, right = int(match.group(1)), int(match.group(2))
    right += 1
    if right > 9999:
        left += 1
        right = 1
    return f"{left:04d}-{right:04d}"


async def next_pair_number(db: AsyncSession, column) -> str:
    result = await db.execute(select(func.max(column)).where(column.like("____-____")))
    return increment_pair_number(result.scalar())
