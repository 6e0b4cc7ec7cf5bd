# invoicer/services/calculations.py
import math
import re
from typing import Iterable, NamedTuple

from invoicer.models.invoice import InvoiceItem

_NON_LETTERS = re.compile(r"[^A-Z]")


class InvoiceTotals(NamedTuple):
    subtotal: float
    tax_amount: float
    discount_amount: float
    final_total: float


def derive_invoice_id(owner_id: str, company_name: str, sequence: int) -> str:
    """
    INV-{owner}-{company}-{sequence}.
    Only the first 4 raw characters of the company name are considered, so
    "123-ABC" gives an empty company segment.
    """
    owner_prefix = owner_id[:3].upper()
    company_prefix = _NON_LETTERS.sub("", company_name[:4].upper())
    return f"INV-{owner_prefix}-{company_prefix}-{sequence:04d}"


def line_total(item: InvoiceItem) -> float:
    subtotal = item.qty * item.unit
    return subtotal + subtotal * (item.tax / 100)


def items_total(items: Iterable[InvoiceItem]) -> float:
    return sum((line_total(item) for item in items), 0)


def invoice_total(subtotal: float, tax_rate: float = 0, discount_rate: float = 0) -> InvoiceTotals:
    tax_amount = subtotal * (tax_rate / 100)
    discount_amount = subtotal * (discount_rate / 100)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        final_total=subtotal + tax_amount - discount_amount,
    )


def round_total(value: float) -> float:
    # Half away from zero at the cent boundary
    cents = math.floor(abs(value) * 100 + 0.5)
    return math.copysign(cents, value) / 100
