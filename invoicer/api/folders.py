# invoicer/api/folders.py
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from invoicer.api.deps import get_store, owned_folder, require_auth
from invoicer.models.account import CreateFolderRequest, Folder, FolderListResponse, UpdateFolderRequest
from invoicer.models.invoice import InvoiceListResponse
from invoicer.services.auth import AuthContext
from invoicer.services.kv import KeyValueStore
from invoicer.services.storage import FolderStorage, InvoiceStorage

router = APIRouter(prefix="/folders", tags=["folders"])


@router.post("", response_model=Folder, status_code=201)
def create_folder(
    body: CreateFolderRequest,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> Folder:
    return FolderStorage(store).create_folder(
        str(uuid.uuid4()), auth.user_id, body.name, body.company, body.defaults
    )


@router.get("", response_model=FolderListResponse)
def list_folders(
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> FolderListResponse:
    return FolderListResponse(folders=FolderStorage(store).get_folders_by_user_id(auth.user_id))


@router.get("/{folder_id}", response_model=Folder)
def get_folder(
    folder_id: str,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> Folder:
    return owned_folder(folder_id, auth, store)


@router.put("/{folder_id}", response_model=Folder)
def update_folder(
    folder_id: str,
    body: UpdateFolderRequest,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> Folder:
    owned_folder(folder_id, auth, store)
    return FolderStorage(store).update_folder(
        folder_id, name=body.name, company=body.company, defaults=body.defaults
    )


@router.get("/{folder_id}/invoices", response_model=InvoiceListResponse, response_model_exclude_none=True)
def list_folder_invoices(
    folder_id: str,
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = Query(default=None),
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> InvoiceListResponse:
    owned_folder(folder_id, auth, store)
    return InvoiceStorage(store).list_invoices_by_folder(folder_id, limit, cursor)
