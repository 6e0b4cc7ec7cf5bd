# invoicer/api/metadata.py
from collections import defaultdict

from fastapi import APIRouter, Depends, Query

from invoicer.api.deps import get_store, require_auth
from invoicer.errors import ValidationFailedError
from invoicer.models.stats import SearchResponse, StatsResponse
from invoicer.services.auth import AuthContext
from invoicer.services.calculations import round_total
from invoicer.services.kv import KeyValueStore
from invoicer.services.storage import InvoiceStorage, utc_now_iso

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.get("/stats", response_model=StatsResponse)
def stats(
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> StatsResponse:
    """
    Counts every invoice of the caller; revenue and the per-currency
    breakdown only count paid ones.
    """
    total_invoices = 0
    paid_invoices = 0
    breakdown = defaultdict(float)

    for invoice in InvoiceStorage(store).iter_invoices_by_user(auth.user_id):
        total_invoices += 1
        if invoice.status == "paid":
            paid_invoices += 1
            breakdown[invoice.currency] += invoice.total

    return StatsResponse(
        total_invoices=total_invoices,
        total_paid_invoices=paid_invoices,
        total_revenue=round_total(sum(breakdown.values())),
        currency_breakdown={cur: round_total(amount) for cur, amount in breakdown.items()},
        last_updated=utc_now_iso(),
    )


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = Query(default=""),
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> SearchResponse:
    query = q.strip()
    if len(query) < 2:
        raise ValidationFailedError("Search query must be at least 2 characters")

    invoices = InvoiceStorage(store).search_invoices(auth.user_id, query)
    return SearchResponse(invoices=invoices, query=query, count=len(invoices))
