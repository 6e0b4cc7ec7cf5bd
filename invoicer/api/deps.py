# invoicer/api/deps.py
import threading
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader

from invoicer.config import DATABASE_URL
from invoicer.errors import ForbiddenError, NotFoundError, UnauthorizedError
from invoicer.models.account import Folder
from invoicer.models.invoice import InvoiceMetadata
from invoicer.services.auth import AuthContext, AuthService
from invoicer.services.kv import KeyValueStore
from invoicer.services.storage import FolderStorage, InvoiceStorage

_store: Optional[KeyValueStore] = None
_store_lock = threading.Lock()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def get_store() -> KeyValueStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = KeyValueStore.from_url(DATABASE_URL)
        return _store


def require_auth(
    authorization: Optional[str] = Security(authorization_header),
    store: KeyValueStore = Depends(get_store),
) -> AuthContext:
    auth = AuthService(store).authenticate(authorization)
    if auth is None:
        raise UnauthorizedError("Unauthorized")
    return auth


def owned_folder(folder_id: str, auth: AuthContext, store: KeyValueStore) -> Folder:
    folder = FolderStorage(store).get_folder_by_id(folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    if folder.user_id != auth.user_id:
        raise ForbiddenError("Access denied")
    return folder


def owned_invoice(invoice_id: str, auth: AuthContext, store: KeyValueStore) -> InvoiceMetadata:
    metadata = InvoiceStorage(store).get_invoice_metadata(invoice_id)
    if metadata is None:
        raise NotFoundError("Invoice not found")
    if metadata.user_id != auth.user_id:
        raise ForbiddenError("Access denied")
    return metadata
