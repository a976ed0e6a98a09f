"""Small arithmetic and period helpers shared by the services"""

import calendar
import re
from datetime import date

MONTH_PATTERN = re.compile(r"^(0[1-9]|1[0-2])-(\d{4})$")


def round2(value: float | None) -> float:
    # adding 0.0 turns -0.0 into 0.0
    return round(float(value or 0) + 0.0, 2)


def line_amount(qty: float | None, rate: float | None) -> float:
    return round2((qty or 0) * (rate or 0))


def parse_month(value: str) -> tuple[int, int] | None:
    """``MM-YYYY`` -> (month, year), or None when malformed"""
    match = MONTH_PATTERN.match(value or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def month_bounds(value: str) -> tuple[date, date]:
    month, year = parse_month(value)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_of(day: date) -> str:
    return f"{day.month:02d}-{day.year}"


def same_or_null(column, value):
    """Equality filter that also matches NULL against None"""
    return column.is_(None) if value is None else column == value
