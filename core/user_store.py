"""
User Store
User records (with their storage accounts) kept in the key-value store
"""
from typing import List, Optional

from core.errors import NotFound
from core.kv_store import KeyValueStore, decode_record, encode_record
from core.models import Account, User
from core.security import SecurityManager

USER_KIND = "user"
USER_PREFIX = "user:"


def user_key(email: str) -> str:
    return f"{USER_PREFIX}{email}"


class UserStore:
    """
    Reads and writes ``user:{email}`` records.

    Account API tokens are encrypted before they reach the store and
    decrypted on load, so callers only ever see plaintext credentials.
    Store failures propagate: a user record is the source of truth, not a cache.
    """

    def __init__(self, store: KeyValueStore, security: SecurityManager):
        self.store = store
        self.security = security

    def _to_record(self, user: User) -> dict:
        accounts = []
        for account in user.accounts:
            data = account.to_dict()
            data["apiToken"] = self.security.encrypt(account.api_token)
            accounts.append(data)
        return {
            "id": user.id,
            "email": user.email,
            "passwordHash": user.password_hash,
            "createdAt": user.created_at,
            "accounts": accounts,
        }

    def _from_record(self, data: dict) -> User:
        accounts = []
        for raw in data.get("accounts") or []:
            if not isinstance(raw, dict) or "id" not in raw:
                continue
            account = Account.from_dict(raw)
            account.api_token = self.security.decrypt(account.api_token)
            accounts.append(account)
        return User(
            id=str(data.get("id", "")),
            email=str(data["email"]),
            password_hash=str(data.get("passwordHash", "")),
            created_at=str(data.get("createdAt", "")),
            accounts=accounts,
        )

    def load(self, key: str) -> Optional[User]:
        """Load a user by raw store key"""
        data = decode_record(self.store.get(key), USER_KIND)
        if data is None or "email" not in data:
            return None
        return self._from_record(data)

    def get_user(self, email: str) -> Optional[User]:
        return self.load(user_key(email))

    def require_user(self, email: str) -> User:
        user = self.get_user(email)
        if user is None:
            raise NotFound(f"User {email} not found")
        return user

    def save_user(self, user: User) -> None:
        self.store.put(user_key(user.email), encode_record(USER_KIND, self._to_record(user)))

    def exists(self, email: str) -> bool:
        return self.store.get(user_key(email)) is not None

    def list_user_keys(self) -> List[str]:
        return self.store.list(USER_PREFIX)
