# invoicer/services/storage.py
import logging
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from invoicer.errors import ConflictError, NotFoundError
from invoicer.models.account import Folder, FolderDefaults, User, UserDefaults
from invoicer.models.invoice import (
    InvoiceListResponse,
    InvoiceMetadata,
    InvoiceRequest,
    InvoiceStatus,
    InvoiceStorageData,
)
from invoicer.services.calculations import derive_invoice_id, items_total, round_total
from invoicer.services.kv import KeyValueStore

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _newest_first(records):
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class UserStorage:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def create_user(self, user_id: str, name: str, email: str, defaults: UserDefaults) -> User:
        user = User(id=user_id, name=name, email=email, created_at=utc_now_iso(), defaults=defaults)
        self.kv.put(f"user:{user_id}", user.to_json())
        self.kv.put(f"user:email:{email}", user_id)
        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        data = self.kv.get(f"user:{user_id}")
        return User.model_validate_json(data) if data else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self.kv.get(f"user:email:{email}")
        if not user_id:
            return None
        return self.get_user_by_id(user_id)

    def update_user(self, user_id: str, **updates) -> Optional[User]:
        user = self.get_user_by_id(user_id)
        if user is None:
            return None

        updates = {k: v for k, v in updates.items() if v is not None}
        updated = user.model_copy(update=updates)
        self.kv.put(f"user:{user_id}", updated.to_json())

        if updated.email != user.email:
            self.kv.delete(f"user:email:{user.email}")
            self.kv.put(f"user:email:{updated.email}", user_id)
        return updated


class FolderStorage:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def create_folder(
        self, folder_id: str, user_id: str, name: str, company: str, defaults: FolderDefaults
    ) -> Folder:
        folder = Folder(
            id=folder_id,
            user_id=user_id,
            name=name,
            company=company,
            created_at=utc_now_iso(),
            defaults=defaults,
            invoice_counter=0,
        )
        self.kv.put(f"folder:{folder_id}", folder.to_json())
        self.kv.put(f"folder:user:{user_id}:{folder_id}", "1")
        return folder

    def get_folder_by_id(self, folder_id: str) -> Optional[Folder]:
        data = self.kv.get(f"folder:{folder_id}")
        return Folder.model_validate_json(data) if data else None

    def get_folders_by_user_id(self, user_id: str) -> List[Folder]:
        folders = []
        for key in self._all_keys(f"folder:user:{user_id}:"):
            folder = self.get_folder_by_id(key.rsplit(":", 1)[-1])
            if folder is not None:
                folders.append(folder)
        return _newest_first(folders)

    def update_folder(self, folder_id: str, **updates) -> Optional[Folder]:
        folder = self.get_folder_by_id(folder_id)
        if folder is None:
            return None

        updates = {k: v for k, v in updates.items() if v is not None}
        updated = folder.model_copy(update=updates)
        self.kv.put(f"folder:{folder_id}", updated.to_json())
        return updated

    def increment_invoice_counter(self, folder_id: str) -> int:
        folder = self.get_folder_by_id(folder_id)
        if folder is None:
            raise NotFoundError("Folder not found")

        counter = folder.invoice_counter + 1
        self.update_folder(folder_id, invoice_counter=counter)
        return counter

    def _all_keys(self, prefix: str) -> Iterator[str]:
        cursor = None
        while True:
            result = self.kv.list(prefix=prefix, cursor=cursor)
            yield from result.keys
            if result.list_complete:
                return
            cursor = result.cursor


class InvoiceStorage:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def generate_invoice_id(self, user_id: str, folder_company: str, invoice_number: int) -> str:
        return derive_invoice_id(user_id, folder_company, invoice_number)

    def invoice_exists(self, invoice_id: str) -> bool:
        return self.kv.get(f"invoice:{invoice_id}") is not None

    def save_invoice(
        self,
        user_id: str,
        folder_id: str,
        request: InvoiceRequest,
        invoice_number: int,
        folder_company: str,
    ) -> InvoiceMetadata:
        invoice_id = self.generate_invoice_id(user_id, folder_company, invoice_number)
        if self.invoice_exists(invoice_id):
            raise ConflictError(f"Invoice {invoice_id} already exists")

        # Line items only; invoice-level tax and discount appear on the PDF
        metadata = InvoiceMetadata(
            id=invoice_id,
            user_id=user_id,
            folder_id=folder_id,
            number=invoice_number,
            buyer=request.buyer.name,
            seller=request.seller.name,
            total=round_total(items_total(request.items)),
            currency=request.currency,
            issue_date=request.issue_date,
            due_date=request.due_date,
            status=request.status,
            created_at=utc_now_iso(),
        )
        storage_data = InvoiceStorageData(metadata=metadata, request=request)

        self.kv.put(f"invoice:{invoice_id}", storage_data.to_json())
        self.kv.put(f"invoice:meta:{invoice_id}", metadata.to_json())
        self.kv.put(f"invoice:user:{user_id}:{invoice_id}", "1")
        self.kv.put(f"invoice:folder:{folder_id}:{invoice_id}", "1")

        logger.info("Invoice saved", extra={"extra": {"invoice_id": invoice_id, "folder_id": folder_id, "total": metadata.total}})
        return metadata

    def get_invoice_metadata(self, invoice_id: str) -> Optional[InvoiceMetadata]:
        data = self.kv.get(f"invoice:meta:{invoice_id}")
        return InvoiceMetadata.model_validate_json(data) if data else None

    def get_invoice_data(self, invoice_id: str) -> Optional[InvoiceStorageData]:
        data = self.kv.get(f"invoice:{invoice_id}")
        return InvoiceStorageData.model_validate_json(data) if data else None

    def list_invoices_by_user(self, user_id: str, limit: int = 20, cursor: Optional[str] = None) -> InvoiceListResponse:
        return self._list_page(f"invoice:user:{user_id}:", limit, cursor)

    def list_invoices_by_folder(self, folder_id: str, limit: int = 20, cursor: Optional[str] = None) -> InvoiceListResponse:
        return self._list_page(f"invoice:folder:{folder_id}:", limit, cursor)

    def iter_invoices_by_user(self, user_id: str) -> Iterator[InvoiceMetadata]:
        cursor = None
        while True:
            page = self.list_invoices_by_user(user_id, limit=KeyValueStore.MAX_LIST_LIMIT, cursor=cursor)
            yield from page.invoices
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    def search_invoices(self, user_id: str, query: str) -> List[InvoiceMetadata]:
        needle = query.lower()
        matches = [
            invoice
            for invoice in self.iter_invoices_by_user(user_id)
            if needle in invoice.buyer.lower()
            or needle in invoice.seller.lower()
            or needle in invoice.id.lower()
        ]
        return _newest_first(matches)

    def update_invoice_status(self, invoice_id: str, status: InvoiceStatus) -> Optional[InvoiceMetadata]:
        data = self.get_invoice_data(invoice_id)
        if data is None:
            return None

        metadata = data.metadata.model_copy(update={"status": status})
        updated = data.model_copy(update={"metadata": metadata})

        self.kv.put(f"invoice:{invoice_id}", updated.to_json())
        self.kv.put(f"invoice:meta:{invoice_id}", metadata.to_json())
        return metadata

    def _list_page(self, prefix: str, limit: int, cursor: Optional[str]) -> InvoiceListResponse:
        result = self.kv.list(prefix=prefix, limit=limit, cursor=cursor)
        invoices = []
        for key in result.keys:
            metadata = self.get_invoice_metadata(key.rsplit(":", 1)[-1])
            if metadata is not None:
                invoices.append(metadata)

        return InvoiceListResponse(
            invoices=_newest_first(invoices),
            next_cursor=None if result.list_complete else result.cursor,
        )
