# invoicer/models/stats.py
from typing import Dict, List

from invoicer.models.base import CamelModel
from invoicer.models.invoice import InvoiceMetadata


class StatsResponse(CamelModel):
    total_invoices: int
    total_paid_invoices: int
    total_revenue: float
    currency_breakdown: Dict[str, float]
    last_updated: str


class SearchResponse(CamelModel):
    invoices: List[InvoiceMetadata]
    query: str
    count: int
