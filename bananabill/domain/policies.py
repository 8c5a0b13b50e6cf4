"""
Payment policies for bills.

This module holds the rules that classify a bill's payment state and
split a payment into outstanding balance and advance. They mirror the
server's own determination so the client can show the outcome of a
payment before recording it.
"""

from __future__ import annotations

from typing import Optional

from bananabill.domain.models import PaymentStatus


def payment_status(net_amount: Optional[float], paid_amount: Optional[float]) -> PaymentStatus:
    """Classifies the payment status of a bill.

    Rules:
        - ``paid >= net`` → ``PAID`` (overpayment included)
        - ``0 < paid < net`` → ``PARTIAL``
        - otherwise → ``UNPAID``

    ``None`` is read as zero for both arguments, so a bill with nothing
    paid and nothing owed is ``PAID``.
    """
    net = float(net_amount or 0.0)
    paid = float(paid_amount or 0.0)
    if paid >= net:
        return PaymentStatus.PAID
    if paid > 0.0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def outstanding_amount(net_amount: Optional[float], paid_amount: Optional[float]) -> float:
    """Balance still owed to the farmer, never negative."""
    rest = float(net_amount or 0.0) - float(paid_amount or 0.0)
    return rest if rest > 0.0 else 0.0


def advance_amount(net_amount: Optional[float], paid_amount: Optional[float]) -> float:
    """Excess paid over the net amount, tracked as an advance."""
    excess = float(paid_amount or 0.0) - float(net_amount or 0.0)
    return excess if excess > 0.0 else 0.0
