# bananabill/usecases/bills.py
"""
UC: Bills, farmers, payments and reports over the REST API.

The services are thin: they build the request, go through the
authenticated gateway and unwrap the ``{"data": ...}`` envelope. Bills
are converted to the flat `Bill` model whether the server sent the
nested shape (``weight`` / ``payment`` sub-objects) or the flat one.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from bananabill.domain.formulas import derive
from bananabill.domain.models import Bill, BillDerived, BillInput, Farmer, PaymentStatus
from bananabill.infra.errors import status_of
from bananabill.infra.gateway import AuthGateway, unwrap_data
from bananabill.infra.logger import log_bill_event, log_system_event


def _num(data: Mapping[str, Any], key: str) -> float:
    val = data.get(key)
    return float(val) if val is not None else 0.0


def transform_bill(payload: Mapping[str, Any]) -> Bill:
    """Builds a flat `Bill` from either server shape, defaulting missing numbers to 0."""
    nested = bool(payload.get("weight")) and bool(payload.get("payment"))
    weight = (payload.get("weight") or {}) if nested else payload
    payment = (payload.get("payment") or {}) if nested else payload
    farmer = payload.get("farmer") or {}
    status = payload.get("paymentStatus") or payment.get("paymentStatus") or payment.get("status")

    return Bill(
        id=str(payload.get("id") or ""),
        bill_number=payload.get("billNumber") or "",
        farmer_id=str(farmer.get("id") or payload.get("farmerId") or ""),
        farmer=Farmer.from_mapping(farmer),
        vehicle_number=payload.get("vehicleNumber"),
        gross_weight=_num(weight, "grossWeight"),
        patti_weight=_num(weight, "pattiWeight"),
        box_count=_num(weight, "boxCount"),
        net_weight=_num(weight, "netWeight"),
        danda_weight=_num(weight, "dandaWeight"),
        tut_wastage=_num(weight, "tutWastage"),
        final_net_weight=_num(weight, "finalNetWeight"),
        rate_per_kg=_num(payment, "ratePerKg"),
        total_amount=_num(payment, "totalAmount"),
        majuri=_num(payment, "majuri"),
        net_amount=_num(payment, "netAmount"),
        payment_status=PaymentStatus.parse(status) if status else PaymentStatus.UNPAID,
        paid_amount=_num(payment, "paidAmount"),
        due_date=payload.get("dueDate"),
        created_at=payload.get("createdAt"),
        updated_at=payload.get("updatedAt") or payload.get("createdAt"),
    )


def preview_bill(bill: BillInput) -> BillDerived:
    """Derived fields shown to the trader before the bill is submitted."""
    return derive(bill)


def _data(response: httpx.Response) -> Any:
    return unwrap_data(response.json())


def _is_not_found(error: httpx.HTTPStatusError) -> bool:
    return status_of(error) == 404


# -----------------------
# farmers
# -----------------------

class FarmerService:
    def __init__(self, gateway: AuthGateway):
        self.gateway = gateway

    async def find_by_mobile(self, mobile: str) -> Optional[Farmer]:
        try:
            response = await self.gateway.get(f"/farmers/mobile/{mobile}")
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                return None
            raise
        return Farmer.from_mapping(_data(response))

    async def upsert(self, mobile_number: str, name: str, address: Optional[str] = None) -> Farmer:
        payload = {"mobileNumber": mobile_number, "name": name}
        if address:
            payload["address"] = address
        response = await self.gateway.post("/farmers", json=payload)
        return Farmer.from_mapping(_data(response))

    async def get_all(self) -> List[Farmer]:
        response = await self.gateway.get("/farmers")
        return [Farmer.from_mapping(f) for f in _data(response)]


# -----------------------
# bills
# -----------------------

class BillService:
    def __init__(self, gateway: AuthGateway):
        self.gateway = gateway

    async def create(self, farmer_id: str, bill: BillInput, vehicle_number: Optional[str] = None) -> Bill:
        payload: Dict[str, Any] = {"farmerId": farmer_id, "vehicleNumber": vehicle_number}
        payload.update(bill.as_payload())
        response = await self.gateway.post("/bills", json=payload)
        created = transform_bill(_data(response))
        log_bill_event("create", created.id, bill_number=created.bill_number)
        return created

    async def update(self, bill_id: str, farmer_id: str, bill: BillInput, vehicle_number: Optional[str] = None) -> Bill:
        payload: Dict[str, Any] = {"farmerId": farmer_id, "vehicleNumber": vehicle_number}
        payload.update(bill.as_payload())
        response = await self.gateway.put(f"/bills/{bill_id}", json=payload)
        log_bill_event("update", bill_id)
        return transform_bill(_data(response))

    async def delete(self, bill_id: str) -> None:
        await self.gateway.delete(f"/bills/{bill_id}")
        log_bill_event("delete", bill_id)

    async def get_by_id(self, bill_id: str) -> Optional[Bill]:
        try:
            response = await self.gateway.get(f"/bills/{bill_id}")
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                return None
            raise
        return transform_bill(_data(response))

    async def get_by_number(self, bill_number: str) -> Optional[Bill]:
        try:
            response = await self.gateway.get(f"/bills/number/{bill_number}")
        except httpx.HTTPStatusError as e:
            if _is_not_found(e):
                return None
            raise
        return transform_bill(_data(response))

    async def get_by_farmer_mobile(self, mobile: str) -> List[Bill]:
        """Bills of one farmer; an unknown farmer or a failed lookup gives an empty list."""
        try:
            response = await self.gateway.get(f"/bills/farmer/{mobile}")
        except httpx.HTTPError as e:
            log_system_event("farmer_bills_lookup_failed", {"error": str(e)}, level="warning")
            return []
        return [transform_bill(b) for b in _data(response)]

    async def get_recent(self, limit: int = 10) -> List[Bill]:
        response = await self.gateway.get("/bills/recent", params={"limit": limit})
        return [transform_bill(b) for b in _data(response)]

    async def get_today_count(self) -> int:
        response = await self.gateway.get("/bills/stats/today")
        return int(_data(response).get("count", 0))

    async def get_total_count(self) -> int:
        response = await self.gateway.get("/bills/stats/total")
        return int(_data(response).get("count", 0))

    async def search_with_filters(
        self,
        mobile: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> List[Bill]:
        params = {
            "mobileNumber": mobile,
            "startDate": start_date,
            "endDate": end_date,
            "paymentStatus": payment_status,
        }
        params = {k: v for k, v in params.items() if v}
        response = await self.gateway.get("/bills/search-with-filters", params=params or None)
        data = _data(response)
        # the server answers {"bills": [...], "count": N, ...}
        if isinstance(data, dict) and isinstance(data.get("bills"), list):
            return [transform_bill(b) for b in data["bills"]]
        if isinstance(data, list):
            return [transform_bill(b) for b in data]
        return []

    async def send_to_whatsapp(self, bill_id: str, image_url: str) -> Dict[str, Any]:
        response = await self.gateway.post(f"/bills/{bill_id}/send-whatsapp", json={"imageUrl": image_url})
        log_bill_event("send_whatsapp", bill_id)
        return _data(response)


# -----------------------
# payments
# -----------------------

class PaymentService:
    def __init__(self, gateway: AuthGateway):
        self.gateway = gateway

    async def mark_as_paid(self, bill_id: str) -> Bill:
        response = await self.gateway.post(f"/bills/{bill_id}/mark-paid")
        log_bill_event("mark_paid", bill_id)
        return transform_bill(_data(response))

    async def record_payment(self, bill_id: str, amount: float) -> Bill:
        response = await self.gateway.post(f"/bills/{bill_id}/record-payment", params={"amount": amount})
        log_bill_event("record_payment", bill_id, amount=amount)
        return transform_bill(_data(response))

    async def get_unpaid(self) -> List[Bill]:
        response = await self.gateway.get("/bills/unpaid")
        return [transform_bill(b) for b in _data(response)]

    async def get_overdue(self) -> List[Bill]:
        response = await self.gateway.get("/bills/overdue")
        return [transform_bill(b) for b in _data(response)]

    async def get_unpaid_stats(self) -> Dict[str, Any]:
        response = await self.gateway.get("/bills/stats/unpaid")
        return _data(response)

    async def set_due_date(self, bill_id: str, due_date: str) -> Bill:
        response = await self.gateway.post(f"/bills/{bill_id}/set-due-date", params={"dueDate": due_date})
        return transform_bill(_data(response))

    async def send_confirmation(self, bill_id: str) -> Dict[str, Any]:
        response = await self.gateway.post(f"/bills/{bill_id}/send-confirmation")
        return _data(response)


# -----------------------
# reports
# -----------------------

class ReportService:
    def __init__(self, gateway: AuthGateway):
        self.gateway = gateway

    async def monthly(self, year: int, month: int) -> Dict[str, Any]:
        response = await self.gateway.get("/reports/monthly", params={"year": year, "month": month})
        data = _data(response)
        data["bills"] = [transform_bill(b) for b in data.get("bills") or []]
        return data

    async def available_months(self) -> List[Dict[str, Any]]:
        response = await self.gateway.get("/reports/available-months")
        return _data(response)

    async def date_range(self, start_date: str, end_date: str) -> Dict[str, Any]:
        response = await self.gateway.get("/reports/date-range", params={"startDate": start_date, "endDate": end_date})
        data = _data(response)
        data["bills"] = [transform_bill(b) for b in data.get("bills") or []]
        return data

    async def farmer_report(
        self,
        farmer_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"startDate": start_date, "endDate": end_date, "paymentStatus": payment_status}
        params = {k: v for k, v in params.items() if v}
        response = await self.gateway.get(f"/bills/farmer-report/{farmer_id}", params=params or None)
        data = _data(response)
        data["bills"] = [transform_bill(b) for b in data.get("bills") or []]
        return data

    async def send_statement_to_whatsapp(
        self,
        mobile_number: str,
        farmer_name: str,
        bill_count: int,
        total_amount: float,
        image_url: str,
    ) -> Dict[str, Any]:
        response = await self.gateway.post(
            "/reports/send-statement-whatsapp",
            params={
                "mobileNumber": mobile_number,
                "farmerName": farmer_name,
                "billCount": bill_count,
                "totalAmount": total_amount,
                "imageUrl": image_url,
            },
        )
        return _data(response)
