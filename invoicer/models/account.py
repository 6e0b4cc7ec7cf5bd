# invoicer/models/account.py
from typing import List, Optional

from pydantic import EmailStr, Field

from invoicer.models.base import CamelModel
from invoicer.models.invoice import Contact


class UserDefaults(CamelModel):
    seller: Contact
    currency: str = Field(min_length=3, max_length=3)
    notes: Optional[str] = None


class CreateUserRequest(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    defaults: UserDefaults


class UpdateUserRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    defaults: Optional[UserDefaults] = None


class User(CamelModel):
    id: str
    name: str
    email: str
    created_at: str
    defaults: UserDefaults


class UserCreated(CamelModel):
    user: User
    api_key: str


class ApiKeyCreated(CamelModel):
    api_key: str
    created_at: str


class FolderDefaults(CamelModel):
    buyer: Contact
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None


class CreateFolderRequest(CamelModel):
    name: str = Field(min_length=1)
    company: str = Field(min_length=1)
    defaults: FolderDefaults


class UpdateFolderRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    company: Optional[str] = Field(default=None, min_length=1)
    defaults: Optional[FolderDefaults] = None


class Folder(CamelModel):
    id: str
    user_id: str
    name: str
    company: str
    created_at: str
    defaults: FolderDefaults
    invoice_counter: int = 0


class FolderListResponse(CamelModel):
    folders: List[Folder]
