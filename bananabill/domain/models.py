# bananabill/domain/models.py
"""
Domain models (dataclasses).

Note:
- The REST API speaks camelCase JSON; the dataclasses use snake_case and
  provide small helpers to move between the two where it is needed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"

    @classmethod
    def parse(cls, value: Any) -> "PaymentStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except (ValueError, AttributeError):
            return cls.UNPAID


def _num(data: Mapping[str, Any], *keys: str) -> float:
    for key in keys:
        val = data.get(key)
        if val is not None:
            return float(val)
    return 0.0


@dataclass(frozen=True)
class BillInput:
    """Raw intake measurements and price entered by the trader."""
    gross_weight: float = 0.0
    patti_weight: float = 0.0
    box_count: float = 0.0     # subtracted as a weight, see domain.formulas
    tut_wastage: float = 0.0
    rate_per_kg: float = 0.0
    majuri: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BillInput":
        """Builds an input from a form/API payload (camelCase or snake_case)."""
        return cls(
            gross_weight=_num(data, "grossWeight", "gross_weight"),
            patti_weight=_num(data, "pattiWeight", "patti_weight"),
            box_count=_num(data, "boxCount", "box_count"),
            tut_wastage=_num(data, "tutWastage", "tut_wastage"),
            rate_per_kg=_num(data, "ratePerKg", "rate_per_kg"),
            majuri=_num(data, "majuri"),
        )

    def as_payload(self) -> Dict[str, float]:
        return {
            "grossWeight": self.gross_weight,
            "pattiWeight": self.patti_weight,
            "boxCount": self.box_count,
            "tutWastage": self.tut_wastage,
            "ratePerKg": self.rate_per_kg,
            "majuri": self.majuri,
        }


@dataclass(frozen=True)
class BillDerived:
    """Weight and payment fields fully determined by a BillInput."""
    net_weight: float
    danda_weight: float
    final_net_weight: float
    total_amount: float
    net_amount: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "netWeight": self.net_weight,
            "dandaWeight": self.danda_weight,
            "finalNetWeight": self.final_net_weight,
            "totalAmount": self.total_amount,
            "netAmount": self.net_amount,
        }


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class UserProfile:
    """Minimal profile cached next to the tokens."""
    id: Optional[str]
    name: str
    mobile_number: str
    email: str = ""

    def to_json(self) -> str:
        return json.dumps({
            "id": self.id,
            "name": self.name,
            "mobileNumber": self.mobile_number,
            "email": self.email,
        })

    @classmethod
    def from_json(cls, raw: str) -> "UserProfile":
        data = json.loads(raw)
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            mobile_number=data.get("mobileNumber") or "",
            email=data.get("email") or "",
        )


@dataclass
class Farmer:
    id: str
    name: str
    mobile_number: str
    address: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Farmer":
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            mobile_number=data.get("mobileNumber") or data.get("mobile") or "",
            address=data.get("address") or data.get("village"),
        )


@dataclass
class Bill:
    """Flattened bill record as the client works with it."""
    id: str
    bill_number: str
    farmer_id: str = ""
    farmer: Farmer = field(default_factory=lambda: Farmer(id="", name="", mobile_number=""))
    vehicle_number: Optional[str] = None
    gross_weight: float = 0.0
    patti_weight: float = 0.0
    box_count: float = 0.0
    net_weight: float = 0.0
    danda_weight: float = 0.0
    tut_wastage: float = 0.0
    final_net_weight: float = 0.0
    rate_per_kg: float = 0.0
    total_amount: float = 0.0
    majuri: float = 0.0
    net_amount: float = 0.0
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    paid_amount: float = 0.0
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
