# invoicer/api/users.py
import logging
import uuid

from fastapi import APIRouter, Depends

from invoicer.api.deps import get_store, require_auth
from invoicer.errors import ConflictError, ForbiddenError, NotFoundError
from invoicer.models.account import (
    ApiKeyCreated,
    CreateUserRequest,
    UpdateUserRequest,
    User,
    UserCreated,
)
from invoicer.services.auth import AuthContext, AuthService
from invoicer.services.kv import KeyValueStore
from invoicer.services.storage import UserStorage, utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserCreated, status_code=201)
def create_user(body: CreateUserRequest, store: KeyValueStore = Depends(get_store)) -> UserCreated:
    users = UserStorage(store)
    if users.get_user_by_email(body.email) is not None:
        raise ConflictError("User with this email already exists")

    user = users.create_user(str(uuid.uuid4()), body.name, body.email, body.defaults)
    api_key = AuthService(store).create_api_key(user.id)
    logger.info("User created", extra={"extra": {"user_id": user.id}})
    return UserCreated(user=user, api_key=api_key)


@router.get("/me", response_model=User)
def get_me(auth: AuthContext = Depends(require_auth)) -> User:
    return auth.user


@router.put("/me", response_model=User)
def update_me(
    body: UpdateUserRequest,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> User:
    updated = UserStorage(store).update_user(auth.user_id, name=body.name, defaults=body.defaults)
    if updated is None:
        raise NotFoundError("User not found")
    return updated


@router.post("/api-keys", response_model=ApiKeyCreated, status_code=201)
def create_api_key(
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
) -> ApiKeyCreated:
    api_key = AuthService(store).create_api_key(auth.user_id)
    return ApiKeyCreated(api_key=api_key, created_at=utc_now_iso())


@router.delete("/api-keys/{api_key}")
def revoke_api_key(
    api_key: str,
    auth: AuthContext = Depends(require_auth),
    store: KeyValueStore = Depends(get_store),
):
    auth_service = AuthService(store)
    owner = auth_service.validate_api_key(api_key)
    if owner is None:
        raise NotFoundError("API key not found")
    if owner != auth.user_id:
        raise ForbiddenError("Access denied")

    auth_service.revoke_api_key(api_key)
    return {"message": "API key revoked successfully"}
