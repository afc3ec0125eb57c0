"""
Tax and total calculation.

Amounts are Decimal with half-up rounding to cents, so the figure shown at
quote time and the figure charged at checkout are computed identically.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from app.schemas.quote import Totals

QC_TAX_RATE = Decimal("0.14975")
QC_TAX_NOTE = "QC (GST+QST)"
ON_TAX_RATE = Decimal("0.13")
ON_TAX_NOTE = "ON (HST)"

CENTS = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_whole(value: float) -> int:
    """Nearest integer, halves rounded up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(amount: Decimal) -> int:
    return int(round_money(amount) * 100)


def tax_for_region(region: Optional[str]) -> tuple[Decimal, str]:
    """Quebec regions pay GST+QST, everything else Ontario HST."""
    r = (region or "").lower()
    if "montreal" in r or "quebec" in r:
        return QC_TAX_RATE, QC_TAX_NOTE
    return ON_TAX_RATE, ON_TAX_NOTE


def _clamp_subtotal(subtotal: Any) -> Decimal:
    if isinstance(subtotal, bool):
        return Decimal("0")
    try:
        value = Decimal(str(subtotal))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not value.is_finite() or value < 0:
        return Decimal("0")
    return value


def compute_totals(subtotal: Any, region: Optional[str], currency: str = "CAD") -> Totals:
    """
    Derive tax and grand total from a pre-tax subtotal.

    Negative, non-finite and non-numeric subtotals are clamped to zero.
    """
    amount = _clamp_subtotal(subtotal)
    rate, note = tax_for_region(region)
    tax = round_money(amount * rate)
    total = round_money(amount + tax)
    return Totals(
        currency=currency,
        subtotal=amount,
        tax_rate=rate,
        tax=tax,
        total=total,
        tax_note=note,
    )
