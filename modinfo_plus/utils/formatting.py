"""
Helper functions for formatting data into human-readable strings.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence, TypeVar

T = TypeVar("T")

_ONE_PLACE = Decimal("0.1")


def _one_decimal(value: Decimal) -> Decimal:
    return value.quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


def format_number(num: int) -> str:
    """
    Abbreviates a count: 999 -> '999', 1500 -> '1.5K', 2000000 -> '2.0M'.

    Rounds half up to one decimal. A thousands value that rounds up to 1000.0K
    is shown as '1.0M' instead.
    """
    if num < 0:
        return "-" + format_number(-num)
    if num < 1000:
        return str(num)

    thousands = _one_decimal(Decimal(num) / 1000)
    if thousands < 1000:
        return f"{thousands}K"
    return f"{_one_decimal(Decimal(num) / 1_000_000)}M"


def format_date(date_string: str | None) -> str:
    """Shows the date part of an ISO 8601 timestamp, e.g. '2024-03-01'."""
    if not date_string:
        return "N/A"
    return date_string[:10]


def format_timestamp(epoch_seconds: float) -> str:
    """Formats a stored epoch timestamp in local time."""
    if epoch_seconds <= 0:
        return "never"
    return datetime.fromtimestamp(epoch_seconds).strftime("%Y-%m-%d %H:%M")


def format_cooldown(seconds_remaining: int) -> str:
    """The hint shown when a refresh is rejected, e.g. 'Wait 45s'."""
    return f"Wait {seconds_remaining}s"


def total_pages(total_items: int, per_page: int) -> int:
    """Number of pages needed; an empty list still has one (empty) page."""
    return max(1, math.ceil(total_items / per_page))


def paginate(items: Sequence[T], page: int, per_page: int) -> list[T]:
    """Returns one page of items; out-of-range pages are clamped."""
    page = min(max(page, 0), total_pages(len(items), per_page) - 1)
    start = page * per_page
    return list(items[start : start + per_page])
