"""
Line value calculations
GST-exclusive, GST and GST-inclusive values for a transaction line
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional

from stockledger.core.config import settings
from stockledger.core.exceptions import ValidationError

HUNDRED = Decimal("100")


class LineValues(NamedTuple):
    excl_gst: Decimal
    gst_amount: Decimal
    incl_gst: Decimal


def _money(value: Decimal) -> Decimal:
    quantum = Decimal(1).scaleb(-settings.CURRENCY_DECIMAL_PLACES)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def compute_line_values(
    quantity: int,
    unit_price: Decimal,
    gst_percentage: Decimal,
    supplied_excl: Optional[Decimal] = None,
    supplied_gst: Optional[Decimal] = None,
    supplied_incl: Optional[Decimal] = None,
    line: Optional[int] = None,
) -> LineValues:
    """
    Compute line values from quantity, unit price and GST rate.

    Values supplied by the caller must agree with the computed ones
    within settings.VALUE_TOLERANCE, otherwise ValidationError is raised.
    """
    label = f"Item {line}: " if line is not None else ""
    unit_price = Decimal(unit_price)
    gst_percentage = Decimal(gst_percentage)

    if unit_price < 0:
        raise ValidationError(f"{label}Unit price cannot be negative", line=line)
    if gst_percentage < 0 or gst_percentage > HUNDRED:
        raise ValidationError(f"{label}GST percentage must be between 0 and 100", line=line)

    excl = _money(Decimal(quantity) * unit_price)
    gst = _money(excl * gst_percentage / HUNDRED)
    incl = excl + gst

    for name, supplied, computed in (
        ("Value excluding GST", supplied_excl, excl),
        ("GST amount", supplied_gst, gst),
        ("Value including GST", supplied_incl, incl),
    ):
        if supplied is not None and abs(Decimal(supplied) - computed) > settings.VALUE_TOLERANCE:
            raise ValidationError(
                f"{label}{name} {supplied} does not match computed {computed}",
                line=line,
            )

    return LineValues(excl_gst=excl, gst_amount=gst, incl_gst=incl)
