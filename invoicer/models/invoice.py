# invoicer/models/invoice.py
import re
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BeforeValidator, EmailStr, Field, model_validator

from invoicer.models.base import CamelModel

InvoiceStatus = Literal["due", "paid"]

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def check_iso_date(value):
    """Calendar dates only, as date objects or YYYY-MM-DD strings."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and ISO_DATE.match(value):
        return value
    raise ValueError("Date must be in YYYY-MM-DD format")


IsoDate = Annotated[date, BeforeValidator(check_iso_date)]


class Contact(CamelModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None


class InvoiceItem(CamelModel):
    description: str = Field(min_length=1)
    qty: float = Field(gt=0, allow_inf_nan=False)
    unit: float = Field(ge=0, allow_inf_nan=False)
    tax: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)


class CreateInvoiceRequest(CamelModel):
    """Body of POST /invoices/folders/{folderId}; omitted fields fall back to defaults."""

    seller: Optional[Contact] = None
    buyer: Optional[Contact] = None
    items: List[InvoiceItem] = Field(min_length=1)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    issue_date: Optional[IsoDate] = None
    due_date: Optional[IsoDate] = None
    tax_rate: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)
    discount_rate: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)
    status: InvoiceStatus = "due"
    notes: Optional[str] = None


class InvoiceRequest(CamelModel):
    seller: Contact
    buyer: Contact
    items: List[InvoiceItem] = Field(min_length=1)
    currency: str = Field(min_length=3, max_length=3)
    issue_date: IsoDate
    due_date: IsoDate
    tax_rate: float = Field(default=0, ge=0, le=100)
    discount_rate: float = Field(default=0, ge=0, le=100)
    status: InvoiceStatus = "due"
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.due_date < self.issue_date:
            raise ValueError("Due date cannot be before issue date")
        return self


class InvoiceMetadata(CamelModel):
    id: str
    user_id: str
    folder_id: str
    number: int
    buyer: str
    seller: str
    total: float
    currency: str
    issue_date: date
    due_date: date
    status: InvoiceStatus = "due"
    created_at: str


class InvoiceStorageData(CamelModel):
    metadata: InvoiceMetadata
    request: InvoiceRequest


class InvoiceListResponse(CamelModel):
    invoices: List[InvoiceMetadata]
    next_cursor: Optional[str] = None


class StatusUpdate(CamelModel):
    status: InvoiceStatus
