# bananabill/usecases/history.py
"""
UC: Bill history (client-side filtering and totals).

The bill list is fetched once and then narrowed locally by payment
status, farmer mobile and date range. Totals and the per-farmer ranking
are computed from the narrowed list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from bananabill.domain.models import Bill, PaymentStatus
from bananabill.domain.policies import outstanding_amount


@dataclass
class BillFilters:
    payment_status: str = "all"        # all | paid | unpaid | partial
    mobile: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _bill_date(bill: Bill) -> Optional[date]:
    if not bill.created_at:
        return None
    text = bill.created_at.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _status_matches(bill: Bill, wanted: str) -> bool:
    wanted = (wanted or "all").strip().lower()
    if wanted == "all":
        return True
    if wanted == "unpaid":
        # the history screen groups partial payments with the unpaid ones
        return bill.payment_status in (PaymentStatus.UNPAID, PaymentStatus.PARTIAL)
    return bill.payment_status.value.lower() == wanted


def filter_bills(bills: Iterable[Bill], filters: BillFilters) -> List[Bill]:
    out = []
    for bill in bills:
        if not _status_matches(bill, filters.payment_status):
            continue
        if filters.mobile and filters.mobile not in bill.farmer.mobile_number:
            continue
        if filters.start_date or filters.end_date:
            d = _bill_date(bill)
            if d is None:
                continue
            if filters.start_date and d < filters.start_date:
                continue
            if filters.end_date and d > filters.end_date:
                continue
        out.append(bill)
    return out


def summarize(bills: Iterable[Bill]) -> Dict[str, Any]:
    """Count, total payable, total chargeable weight and outstanding amount."""
    bills = list(bills)
    return {
        "count": len(bills),
        "total_amount": sum(b.net_amount for b in bills),
        "total_weight": sum(b.final_net_weight for b in bills),
        "unpaid_amount": sum(outstanding_amount(b.net_amount, b.paid_amount) for b in bills),
    }


def farmer_totals(bills: Iterable[Bill]) -> List[Dict[str, Any]]:
    """Per-farmer bill count, amount and weight, highest amount first."""
    rows = [
        {
            "name": b.farmer.name,
            "mobile": b.farmer.mobile_number,
            "amount": b.net_amount,
            "weight": b.final_net_weight,
        }
        for b in bills
    ]
    if not rows:
        return []
    df = pd.DataFrame(rows)
    grouped = (
        df.groupby(["mobile", "name"], as_index=False)
        .agg(bill_count=("amount", "size"), total_amount=("amount", "sum"), total_weight=("weight", "sum"))
        .sort_values(["total_amount", "mobile"], ascending=[False, True])
    )
    return [
        {
            "name": r["name"],
            "mobile": r["mobile"],
            "bill_count": int(r["bill_count"]),
            "total_amount": float(r["total_amount"]),
            "total_weight": float(r["total_weight"]),
        }
        for r in grouped.to_dict(orient="records")
    ]
