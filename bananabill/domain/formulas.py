"""
Bill arithmetic for banana intake.

These functions turn the raw measurements taken at the weighbridge
(gross weight, patti, boxes, tut wastage) and the agreed rate into
the weight and payment fields printed on a bill. The chain is:

    net        = max(0, gross - patti - boxes)
    danda      = net * 0.07
    final net  = net + danda + tut
    total      = final net * rate
    net amount = max(0, total - majuri)

All functions are pure: they depend solely on their inputs and do
not modify any external state. No rounding is applied here; display
rounding belongs to the formatters.
"""

from typing import Union

from bananabill.domain.models import BillDerived, BillInput

Number = Union[int, float]

# Fixed allowance added back on top of the net weight
DANDA_RATE = 0.07


def net_weight(gross_weight: Number, patti_weight: Number, box_count: Number) -> float:
    """Compute the net weight, clamped at zero.

    ``box_count`` is subtracted directly as kilograms, one kilogram per
    box. Validation of the inputs (e.g. gross larger than patti) is left
    to the caller.
    """
    result = float(gross_weight) - float(patti_weight) - float(box_count)
    return result if result > 0.0 else 0.0


def danda_weight(net: Number) -> float:
    """Compute the danda allowance (7% of the net weight)."""
    return float(net) * DANDA_RATE


def final_net_weight(net: Number, danda: Number, tut_wastage: Number) -> float:
    """Chargeable weight: danda and tut are added, not subtracted."""
    return float(net) + float(danda) + float(tut_wastage)


def total_amount(final_net: Number, rate_per_kg: Number) -> float:
    return float(final_net) * float(rate_per_kg)


def net_amount(total: Number, majuri: Number) -> float:
    """Amount payable to the farmer after the labour charge, clamped at zero."""
    result = float(total) - float(majuri)
    return result if result > 0.0 else 0.0


def derive(bill: BillInput) -> BillDerived:
    """Compute every derived weight and payment field of a bill.

    Parameters
    ----------
    bill: BillInput
        Measurements and price as entered. Negative values are accepted;
        only the two subtractions are clamped.

    Returns
    -------
    BillDerived
        Net, danda and final weights plus total and net amounts.
    """
    net = net_weight(bill.gross_weight, bill.patti_weight, bill.box_count)
    danda = danda_weight(net)
    final = final_net_weight(net, danda, bill.tut_wastage)
    total = total_amount(final, bill.rate_per_kg)
    return BillDerived(
        net_weight=net,
        danda_weight=danda,
        final_net_weight=final,
        total_amount=total,
        net_amount=net_amount(total, bill.majuri),
    )
