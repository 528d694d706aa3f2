# Overview: Pure document totals calculator (HT, discount, VAT, TTC, deposit, net to pay).

"""
Document totals.

All money is integer cents; quantities are Decimals; VAT is basis points.
Amounts are rounded half-up to the cent. The subtotal is rounded once,
after summing; each line keeps its own rounded amount for display:

    line        = round(quantity × unit price)
    subtotal    = round(Σ quantity × unit price)
    discount    = PERCENT: round(subtotal × pct / 100), pct capped at 100
                  AMOUNT:  min(amount, subtotal)
    net (HT)    = subtotal - discount
    tax         = round(net × rate)
    total (TTC) = net + tax
    deposit     = min(deposit, total)
    net to pay  = total - deposit

Nothing here touches the database; services call compute_document_totals()
right before persisting a document.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence


DISCOUNT_TYPES = ("PERCENT", "AMOUNT")
HUNDRED = Decimal(100)
BPS_DIVISOR = Decimal(10_000)


class TotalsError(ValueError):
    """Raised for inputs the calculator cannot price (negative amounts, unknown discount type)."""


def round_cents(value: Decimal) -> int:
    """Round a Decimal amount of cents half-up to an integer number of cents."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tax_on(amount_cents: int, vat_rate_bps: int) -> int:
    return round_cents(Decimal(amount_cents) * Decimal(vat_rate_bps) / BPS_DIVISOR)


@dataclass(frozen=True)
class LineInput:
    quantity: Decimal
    unit_price_cents: int
    vat_rate_bps: int


@dataclass(frozen=True)
class LineAmounts:
    subtotal_cents: int
    tax_cents: int
    total_cents: int


@dataclass(frozen=True)
class DocumentTotals:
    subtotal_cents: int
    discount_cents: int
    net_cents: int
    tax_total_cents: int
    total_cents: int
    deposit_cents: int
    net_to_pay_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def compute_line(line: LineInput) -> LineAmounts:
    if line.quantity < 0:
        raise TotalsError("quantity must be >= 0")
    if line.unit_price_cents < 0:
        raise TotalsError("unit_price_cents must be >= 0")
    subtotal = round_cents(Decimal(line.quantity) * Decimal(line.unit_price_cents))
    tax = tax_on(subtotal, line.vat_rate_bps)
    return LineAmounts(subtotal_cents=subtotal, tax_cents=tax, total_cents=subtotal + tax)


def compute_discount(
    subtotal_cents: int,
    discount_type: str | None,
    discount_percent: Decimal | None = None,
    discount_amount_cents: int | None = None,
) -> int:
    if not discount_type:
        return 0
    if discount_type == "PERCENT":
        pct = Decimal(discount_percent or 0)
        if pct < 0:
            raise TotalsError("discount percent must be >= 0")
        pct = min(pct, HUNDRED)
        return round_cents(Decimal(subtotal_cents) * pct / HUNDRED)
    if discount_type == "AMOUNT":
        amount = int(discount_amount_cents or 0)
        if amount < 0:
            raise TotalsError("discount amount must be >= 0")
        return min(amount, subtotal_cents)
    raise TotalsError(f"Unknown discount type: {discount_type}")


def compute_document_totals(
    lines: Sequence[LineInput] | Iterable[LineInput],
    vat_rate_bps: int,
    *,
    discount_type: str | None = None,
    discount_percent: Decimal | None = None,
    discount_amount_cents: int | None = None,
    deposit_cents: int = 0,
) -> DocumentTotals:
    """
    Compute document totals from its lines.

    The document VAT rate is applied to the discounted net amount, not
    summed from line taxes, so a discount lowers the VAT base.
    """
    lines = list(lines)
    for line in lines:
        compute_line(line)
    subtotal = round_cents(sum(
        (Decimal(line.quantity) * Decimal(line.unit_price_cents) for line in lines),
        Decimal(0),
    ))
    discount = compute_discount(subtotal, discount_type, discount_percent, discount_amount_cents)
    net = subtotal - discount
    tax = tax_on(net, vat_rate_bps)
    total = net + tax

    if deposit_cents < 0:
        raise TotalsError("deposit must be >= 0")
    deposit = min(int(deposit_cents), total)

    return DocumentTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        net_cents=net,
        tax_total_cents=tax,
        total_cents=total,
        deposit_cents=deposit,
        net_to_pay_cents=total - deposit,
    )


def format_eur(cents: int) -> str:
    """French currency formatting: 123456 -> "1\u00a0234,56 €"."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    # U+00A0: Helvetica (WinAnsi) has no glyph for the narrow no-break space
    grouped = f"{whole:,}".replace(",", "\u00a0")
    return f"{sign}{grouped},{frac:02d} €"


def format_rate(vat_rate_bps: int) -> str:
    """2000 -> '20', 550 -> '5,5'."""
    rate = Decimal(vat_rate_bps) / HUNDRED
    text = format(rate.normalize(), "f")
    return text.replace(".", ",")
