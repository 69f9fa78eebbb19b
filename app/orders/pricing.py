"""
Order total calculation for a zero-decimal currency (VND).

Unit prices and modifier adjustments are rounded individually *before* being
multiplied by quantity, so per-line results never depend on how fractional
dong would have accumulated across a quantity.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, Optional, Sequence, Union

from app.config import settings

Number = Union[int, float, Decimal, str]

_HALF = Decimal("0.5")
_ONE = Decimal("1")


def round_vnd(value: Number) -> int:
    """Round half toward +infinity to a whole dong (2.5 -> 3, -2.5 -> -2)"""
    if isinstance(value, int):
        return value
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return int((amount + _HALF).quantize(_ONE, rounding=ROUND_FLOOR))


@dataclass(frozen=True)
class LineTotal:
    """Priced order item line"""
    unit_price: int
    quantity: int
    adjustments: tuple
    subtotal: int


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    tax: int
    total: int


def price_line(unit_price: Number, quantity: int, adjustments: Sequence[Number] = ()) -> LineTotal:
    """round(price) x qty + sum(round(adjustment) x qty)"""
    if quantity < 1:
        raise ValueError(f"quantity must be a positive integer, got {quantity}")

    rounded_price = round_vnd(unit_price)
    rounded_adjustments = tuple(round_vnd(adj) for adj in adjustments)

    subtotal = rounded_price * quantity
    for adjustment in rounded_adjustments:
        subtotal += adjustment * quantity

    return LineTotal(
        unit_price=rounded_price,
        quantity=quantity,
        adjustments=rounded_adjustments,
        subtotal=subtotal,
    )


def compute_tax(subtotal: int, tax_rate: Optional[Number] = None) -> int:
    rate = Decimal(str(settings.tax_rate if tax_rate is None else tax_rate))
    return round_vnd(Decimal(subtotal) * rate)


def compute_totals(lines: Iterable[LineTotal], tax_rate: Optional[Number] = None) -> OrderTotals:
    """Sum line subtotals, then derive tax and total"""
    subtotal = sum(line.subtotal for line in lines)
    tax = compute_tax(subtotal, tax_rate)
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def recompute_with_additional(
    previous_subtotal: int,
    lines: Iterable[LineTotal],
    tax_rate: Optional[Number] = None,
) -> OrderTotals:
    """
    Totals after appending lines to an existing order.
    The persisted subtotal is taken as-is; tax is recomputed on the new sum.
    """
    subtotal = int(previous_subtotal) + sum(line.subtotal for line in lines)
    tax = compute_tax(subtotal, tax_rate)
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)
