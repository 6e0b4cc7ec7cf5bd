# invoicer/api/invoices.py
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from invoicer.api.deps import get_store, owned_folder, owned_invoice, require_auth
from invoicer.errors import NotFoundError
from invoicer.models.invoice import CreateInvoiceRequest, InvoiceListResponse, InvoiceMetadata, StatusUpdate
from invoicer.services.auth import AuthContext
from invoicer.services.defaults import resolve_invoice_request
from invoicer.services.kv import KeyValueStore
from invoicer.services.pdf_generator import generate_pdf
from invoicer.services.storage import FolderStorage, InvoiceStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _pdf_response(pdf_bytes: bytes, invoice_id: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{invoice_id}.pdf"',
            "Cache-Control": "no-cache",
            "X-Invoice-Id": invoice_id,
        },
    )


@router.post("/folders/{folder_id}")
def create_invoice(
    folder_id: str,
    body: CreateInvoiceRequest,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
):
    start = time.time()
    folder = owned_folder(folder_id, auth, store)
    request = resolve_invoice_request(body, auth.user, folder)

    folders = FolderStorage(store)
    invoices = InvoiceStorage(store)
    invoice_number = folders.increment_invoice_counter(folder_id)
    # ids only keep 4 letters of the company, another folder may already hold this one
    while invoices.invoice_exists(invoices.generate_invoice_id(auth.user_id, folder.company, invoice_number)):
        invoice_number = folders.increment_invoice_counter(folder_id)
    metadata = invoices.save_invoice(
        auth.user_id, folder_id, request, invoice_number, folder.company
    )
    pdf_bytes = generate_pdf(request, metadata.id)

    duration = round((time.time() - start) * 1000)
    logger.info("Invoice created", extra={"extra": {
        "invoice_id": metadata.id,
        "folder_id": folder_id,
        "buyer": metadata.buyer,
        "total": metadata.total,
        "currency": metadata.currency,
        "duration_ms": duration,
    }})
    return _pdf_response(pdf_bytes, metadata.id)


@router.get("", response_model=InvoiceListResponse, response_model_exclude_none=True)
def list_invoices(
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = Query(default=None),
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> InvoiceListResponse:
    return InvoiceStorage(store).list_invoices_by_user(auth.user_id, limit, cursor)


@router.get("/{invoice_id}", response_model=InvoiceMetadata)
def get_invoice(
    invoice_id: str,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> InvoiceMetadata:
    return owned_invoice(invoice_id, auth, store)


@router.get("/{invoice_id}/pdf")
def download_invoice(
    invoice_id: str,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
):
    owned_invoice(invoice_id, auth, store)
    data = InvoiceStorage(store).get_invoice_data(invoice_id)
    if data is None:
        raise NotFoundError("Invoice not found")
    return _pdf_response(generate_pdf(data.request, invoice_id), invoice_id)


@router.patch("/{invoice_id}/status", response_model=InvoiceMetadata)
def update_invoice_status(
    invoice_id: str,
    body: StatusUpdate,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> InvoiceMetadata:
    owned_invoice(invoice_id, auth, store)
    updated = InvoiceStorage(store).update_invoice_status(invoice_id, body.status)
    if updated is None:
        raise NotFoundError("Invoice not found")
    logger.info("Invoice status updated", extra={"extra": {"invoice_id": invoice_id, "status": body.status}})
    return updated
