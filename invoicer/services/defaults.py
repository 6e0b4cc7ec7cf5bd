# invoicer/services/defaults.py
from datetime import date, timedelta
from typing import Optional

from pydantic import ValidationError

from invoicer.errors import ValidationFailedError, describe_validation_errors
from invoicer.models.account import Folder, User
from invoicer.models.invoice import CreateInvoiceRequest, InvoiceRequest

DEFAULT_CURRENCY = "USD"
DEFAULT_PAYMENT_TERM_DAYS = 15


def default_due_date(issue_date: date, days: int = DEFAULT_PAYMENT_TERM_DAYS) -> date:
    return issue_date + timedelta(days=days)


def resolve_invoice_request(
    payload: CreateInvoiceRequest,
    user: User,
    folder: Folder,
    today: Optional[date] = None,
) -> InvoiceRequest:
    """
    Fill what the request left out: seller from the user, buyer from the
    folder, currency from folder then user, issue date today, due date NET15.
    """
    seller = payload.seller or user.defaults.seller
    buyer = payload.buyer or folder.defaults.buyer
    currency = payload.currency or folder.defaults.currency or user.defaults.currency or DEFAULT_CURRENCY
    issue_date = payload.issue_date or today or date.today()
    due_date = payload.due_date or default_due_date(issue_date)

    if seller is None:
        raise ValidationFailedError("Seller is required and not found in user defaults")
    if buyer is None:
        raise ValidationFailedError("Buyer is required and not found in folder defaults")

    try:
        return InvoiceRequest(
            seller=seller,
            buyer=buyer,
            items=payload.items,
            currency=currency,
            issue_date=issue_date,
            due_date=due_date,
            tax_rate=payload.tax_rate,
            discount_rate=payload.discount_rate,
            status=payload.status,
            notes=payload.notes if payload.notes is not None else folder.defaults.notes or user.defaults.notes,
        )
    except ValidationError as exc:
        raise ValidationFailedError("Validation failed", describe_validation_errors(exc.errors())) from exc
