import os
from pathlib import Path
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken

# Fernet tokens always start with this prefix
TOKEN_PREFIX = "gAAAA"


class SecurityManager:
    """
    Encrypts secrets at rest (account API tokens, config secrets) with Fernet.
    The key comes from R2DASH_MASTER_KEY or a key file next to the config.
    """

    def __init__(self, key_path: Optional[Path] = None):
        self._fernet: Optional[Fernet] = None
        self._key_path = key_path or Path.home() / ".r2dash" / ".secret.key"
        self._init_key()

    def _init_key(self):
        """Initialize encryption key"""
        # 1. Environment variable wins
        env_key = os.getenv("R2DASH_MASTER_KEY")
        if env_key:
            self._fernet = Fernet(env_key.encode())
            return

        # 2. Existing key file
        if self._key_path.exists():
            key = self._key_path.read_bytes().strip()
            if key:
                try:
                    self._fernet = Fernet(key)
                    return
                except ValueError:
                    pass  # Corrupt key file, regenerate below

        # 3. Fresh key, readable by owner only
        key = Fernet.generate_key()
        self._key_path.parent.mkdir(parents=True, exist_ok=True)
        self._key_path.write_bytes(key)
        try:
            os.chmod(self._key_path, 0o600)
        except OSError:
            pass  # Not supported on every filesystem

        self._fernet = Fernet(key)

    def is_encrypted(self, data: str) -> bool:
        if not data or not data.startswith(TOKEN_PREFIX):
            return False
        try:
            self._fernet.decrypt(data.encode())
            return True
        except InvalidToken:
            return False

    def encrypt(self, data: str) -> str:
        """Encrypt string data, leaving already-encrypted values untouched"""
        if not data or self.is_encrypted(data):
            return data
        return self._fernet.encrypt(data.encode()).decode()

    def decrypt(self, data: str) -> str:
        """Decrypt string data; plaintext from older records is returned as is"""
        if not data:
            return data
        try:
            return self._fernet.decrypt(data.encode()).decode()
        except InvalidToken:
            return data
