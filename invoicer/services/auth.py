# invoicer/services/auth.py
import re
import uuid
from typing import NamedTuple, Optional

from invoicer.models.account import User
from invoicer.services.kv import KeyValueStore

BEARER_PATTERN = re.compile(r"^Bearer (.+)$")


class AuthContext(NamedTuple):
    user_id: str
    user: User


class AuthService:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def create_api_key(self, user_id: str) -> str:
        api_key = f"ak_{user_id}_{uuid.uuid4().hex}"
        self.kv.put(f"auth:{api_key}", user_id)
        return api_key

    def validate_api_key(self, api_key: str) -> Optional[str]:
        if not api_key:
            return None
        return self.kv.get(f"auth:{api_key}")

    def revoke_api_key(self, api_key: str) -> None:
        self.kv.delete(f"auth:{api_key}")

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        data = self.kv.get(f"user:{user_id}")
        return User.model_validate_json(data) if data else None

    def extract_api_key_from_header(self, authorization: str) -> Optional[str]:
        match = BEARER_PATTERN.match(authorization)
        return match.group(1) if match else None

    def authenticate(self, authorization: Optional[str]) -> Optional[AuthContext]:
        if not authorization:
            return None
        api_key = self.extract_api_key_from_header(authorization)
        if not api_key:
            return None
        user_id = self.validate_api_key(api_key)
        if not user_id:
            return None
        user = self.get_user_by_id(user_id)
        if user is None:
            return None
        return AuthContext(user_id=user_id, user=user)
