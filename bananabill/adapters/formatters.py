"""
Display formatters shared by the CLI tables and bill previews.

Amounts are shown in rupees with Indian digit grouping (lakh/crore:
1,25,000), weights in kilograms, dates as DD/MM/YYYY.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime, str]


def _group_indian(digits: str) -> str:
    """"1234567" -> "12,34,567"."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(value: float, decimals: int = 0) -> str:
    text = f"{abs(float(value)):.{decimals}f}"
    int_part, _, frac = text.partition(".")
    out = _group_indian(int_part)
    if frac:
        out = f"{out}.{frac}"
    if float(value) < 0 and float(text) != 0.0:
        out = f"-{out}"
    return out


def format_currency(amount: float, decimals: int = 0) -> str:
    """Indian rupees, e.g. ``format_currency(125000)`` → ``"₹1,25,000"``."""
    text = format_number(amount, decimals)
    if text.startswith("-"):
        return f"-₹{text[1:]}"
    return f"₹{text}"


def format_weight(weight: float) -> str:
    """Kilograms; two decimals only when the weight is fractional."""
    decimals = 0 if float(weight) == int(weight) else 2
    return f"{format_number(weight, decimals)} kg"


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_date(value: DateLike) -> str:
    return _as_datetime(value).strftime("%d/%m/%Y")


def format_datetime(value: DateLike) -> str:
    return _as_datetime(value).strftime("%d %b %Y, %I:%M %p")


def format_phone_number(phone: str) -> str:
    """10-digit numbers become ``+91 XXXXX XXXXX``; anything else is returned as is."""
    cleaned = re.sub(r"\D", "", phone or "")
    if len(cleaned) == 10:
        return f"+91 {cleaned[:5]} {cleaned[5:]}"
    return phone
