from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import JWTError, jwt
from passlib.context import CryptContext

from core.errors import Unauthorized
from core.models import User
from core.user_store import UserStore


class AuthManager:
    # Hash context
    pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

    # Token settings
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

    def __init__(self, user_store: UserStore, secret_key: str):
        self.user_store = user_store
        self.secret_key = secret_key

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.ALGORITHM)

    def decode_token(self, token: str) -> Optional[Dict]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.ALGORITHM])
        except JWTError:
            return None

    def register(self, email: str, password: str) -> User:
        """Create a user with no accounts; ValueError if the email is taken"""
        if not email or not password:
            raise ValueError("Email and password required")
        if self.user_store.exists(email):
            raise ValueError("User already exists")

        user = User(
            id=f"user_{int(datetime.now(timezone.utc).timestamp() * 1000)}",
            email=email,
            password_hash=self.get_password_hash(password),
        )
        self.user_store.save_user(user)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.user_store.get_user(email)
        if user is None or not user.password_hash:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    def resolve_user(self, token: str) -> User:
        """User behind a bearer token; Unauthorized when anything is off"""
        payload = self.decode_token(token)
        if payload is None:
            raise Unauthorized("Could not validate credentials")

        email = payload.get("sub")
        if not email:
            raise Unauthorized("Could not validate credentials")

        user = self.user_store.get_user(email)
        if user is None:
            raise Unauthorized("Could not validate credentials")
        return user
