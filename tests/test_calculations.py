import itertools

import pytest

from invoicer.models.invoice import InvoiceItem
from invoicer.services.calculations import (
    derive_invoice_id,
    invoice_total,
    items_total,
    line_total,
    round_total,
)


def item(qty, unit, tax=0.0, description="Work"):
    return InvoiceItem(description=description, qty=qty, unit=unit, tax=tax)


@pytest.mark.parametrize("owner, company, sequence, expected", [
    ("john_doe", "ACME Corporation", 1, "INV-JOH-ACME-0001"),
    ("alice_smith", "Beta-Tech Inc.", 42, "INV-ALI-BETA-0042"),
    ("x", "Y", 9999, "INV-X-Y-9999"),
    ("user", "Test & Associates, LLC", 1, "INV-USE-TEST-0001"),
    ("user", "123-ABC-XYZ", 1, "INV-USE--0001"),
    ("user", "!@#$%^&*()", 1, "INV-USE--0001"),
    ("user", "acme", 12345, "INV-USE-ACME-12345"),
    ("", "", 7, "INV---0007"),
])
def test_derive_invoice_id(owner, company, sequence, expected):
    assert derive_invoice_id(owner, company, sequence) == expected


def test_line_total_adds_line_tax():
    """(2 * 100) + (200 * 0.1)."""
    assert line_total(item(2, 100.0, 10.0)) == 220.0


def test_line_total_matches_closed_form():
    for qty, unit, tax in itertools.product([0.5, 1, 3], [0, 19.99, 100], [0, 7.5, 20, 100]):
        assert line_total(item(qty, unit, tax)) == pytest.approx(qty * unit * (1 + tax / 100))


def test_line_total_is_monotonic():
    base = line_total(item(2, 50, 10))
    assert line_total(item(3, 50, 10)) >= base
    assert line_total(item(2, 60, 10)) >= base
    assert line_total(item(2, 50, 20)) >= base


def test_items_total():
    items = [item(1, 100.0), item(2, 50.0, 10.0)]
    assert items_total(items) == 210.0
    assert items_total([]) == 0


def test_items_total_ignores_order():
    items = [item(3, 33.33, 20), item(1, 0.1), item(7, 12.5, 8.25)]
    totals = {round(items_total(p), 9) for p in itertools.permutations(items)}
    assert len(totals) == 1


def test_invoice_total_applies_tax_and_discount():
    totals = invoice_total(1000, 20, 15)
    assert totals.tax_amount == 200
    assert totals.discount_amount == 150
    assert totals.final_total == 1050


def test_invoice_total_without_rates_is_subtotal():
    assert invoice_total(1000, 0, 0).final_total == 1000


def test_persisted_total_is_rounded_but_intermediate_is_not():
    total = items_total([item(3, 33.33, 20)])
    assert total != round_total(total)
    assert total == pytest.approx(119.988)
    assert round_total(total) == 119.99


@pytest.mark.parametrize("value, expected", [
    (0.125, 0.13),
    (0.124, 0.12),
    (1750.0, 1750.0),
    (0, 0),
    (-0.125, -0.13),
])
def test_round_total_half_away_from_zero(value, expected):
    assert round_total(value) == expected
