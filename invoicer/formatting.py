# invoicer/formatting.py
"""Display formatting for amounts, quantities and rates."""

from typing import Any

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "BRL": "R$",
    "MXN": "MX$",
    "KRW": "₩",
    "ILS": "₪",
    "VND": "₫",
    "CNY": "CN¥",
}


def fmt_amount(amount: float, currency: str) -> str:
    """Amount as printed on invoices: 'USD 1234.50'."""
    return f"{currency} {amount:.2f}"


def format_currency(amount: float, currency: str = "USD") -> str:
    """Amount for humans: '$1,234.50', 'CHF 1,234.50'."""
    currency = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def fmt_qty(qty: Any) -> str:
    try:
        quantity = float(qty)
        if quantity.is_integer():
            return str(int(quantity))
        return str(quantity)
    except (TypeError, ValueError):
        return str(qty)


fmt_rate = fmt_qty
