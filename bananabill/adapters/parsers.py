"""
Parsing helpers for values typed by the trader.

Weights and amounts are usually typed with Indian digit grouping
("1,25,000.50") and mobile numbers with or without the +91 prefix.
These helpers turn such text into clean values and never raise on
blank input.
"""

from __future__ import annotations

import re
from typing import Optional

_NUM_RE = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
_MOBILE_RE = re.compile(r"^(?:\+?91)?[6-9]\d{9}$")


def parse_number(txt: Optional[str]) -> Optional[float]:
    """Interprets a typed number.

    Commas and spaces used as digit grouping are dropped; the dot is
    the decimal separator.

    Examples:
        "1,25,000.50" → 125000.5
        " 42 "        → 42.0
        ""            → None

    Raises:
        ValueError: when the text is not blank and is not a number.
    """
    if txt is None:
        return None
    s = str(txt).strip().replace(",", "").replace(" ", "")
    if not s:
        return None
    if not _NUM_RE.match(s):
        raise ValueError(f"Not a number: {txt!r}")
    return float(s)


def normalize_mobile(mobile: Optional[str]) -> Optional[str]:
    """Keeps only digits and drops the 91 country code of 12-digit numbers."""
    if mobile is None:
        return None
    cleaned = re.sub(r"\D", "", mobile)
    if cleaned.startswith("91") and len(cleaned) == 12:
        cleaned = cleaned[2:]
    return cleaned


def is_valid_mobile(mobile: Optional[str]) -> bool:
    """Indian mobile number: 10 digits starting 6-9, optional +91."""
    if not mobile or not mobile.strip():
        return False
    cleaned = re.sub(r"[\s\-]", "", mobile)
    return bool(_MOBILE_RE.match(cleaned))


def mask_mobile(mobile: Optional[str]) -> str:
    if not mobile or len(mobile) < 4:
        return "****"
    return "******" + mobile[-4:]
