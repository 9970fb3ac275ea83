"""
Derived invoice totals.

Every money value is rounded to the cent with ROUND_HALF_UP (half away from
zero) before it is compared or stored. ``recalculate`` is the only place that
writes derived fields back onto a form; it is a fixed point: a second call
with unchanged inputs writes nothing.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List

from invoicing.models.invoice import InvoiceForm, InvoiceTotals

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def round2(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO.quantize(CENT)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _differs(new: Decimal, old: Any) -> bool:
    # Sub-cent noise in stored values is ignored.
    return abs(new - round2(old)) >= CENT


def line_total(quantity: Any, unit_price: Any) -> Decimal:
    return round2(Decimal(str(quantity or 0)) * Decimal(str(unit_price or 0)))


def discount_amount(subtotal: Decimal, discount_type: str, discount_value: Any) -> Decimal:
    value = Decimal(str(discount_value or 0))
    if discount_type == "percentage":
        value = min(max(value, ZERO), HUNDRED)
        return round2(subtotal * value / HUNDRED)
    if discount_type == "amount":
        return round2(value)
    return round2(ZERO)


def compute_totals(form: InvoiceForm) -> InvoiceTotals:
    subtotal = round2(sum((line_total(it.quantity, it.unit_price) for it in form.items), ZERO))
    discount = discount_amount(subtotal, form.discount_type, form.discount_value)
    taxable = subtotal - discount
    tax = round2(taxable * Decimal(str(form.tax_rate or 0)) / HUNDRED)
    vat = round2(taxable * Decimal(str(form.vat_rate or 0)) / HUNDRED)
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        taxable_amount=taxable,
        tax_amount=tax,
        vat_amount=vat,
        grand_total=round2(taxable + tax + vat),
    )


def recalculate(form: InvoiceForm) -> List[str]:
    """Bring the derived fields of ``form`` up to date, in place.

    Returns the paths of the fields that were written (``items.0.total``,
    ``subtotal``, ...). An empty list means the form was already consistent.
    """
    written: List[str] = []

    for idx, it in enumerate(form.items):
        lt = line_total(it.quantity, it.unit_price)
        if _differs(lt, it.total):
            it.total = lt
            written.append(f"items.{idx}.total")

    totals = compute_totals(form)
    for field in ("subtotal", "discount_amount", "tax_amount", "vat_amount", "grand_total"):
        new = getattr(totals, field)
        if _differs(new, getattr(form, field)):
            setattr(form, field, new)
            written.append(field)

    # payment coupling; "partial" leaves amount_paid to the user
    if form.payment_status == "paid":
        if _differs(form.grand_total, form.amount_paid):
            form.amount_paid = form.grand_total
            written.append("amount_paid")
    elif form.payment_status == "unpaid":
        if form.amount_paid != 0:
            form.amount_paid = round2(ZERO)
            written.append("amount_paid")

    return written


def balance_due(form: InvoiceForm) -> Decimal:
    return round2(form.grand_total) - round2(form.amount_paid)
