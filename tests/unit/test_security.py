from cryptography.fernet import Fernet

from core.security import SecurityManager


def test_key_generation(data_dir):
    """Test that a master key is generated if not present"""
    key_path = data_dir / ".secret.key"
    assert not key_path.exists()

    SecurityManager(key_path)
    assert key_path.exists()
    assert key_path.stat().st_mode & 0o777 == 0o600


def test_key_is_reused(data_dir):
    key_path = data_dir / ".secret.key"
    encrypted = SecurityManager(key_path).encrypt("value")

    assert SecurityManager(key_path).decrypt(encrypted) == "value"


def test_encryption_decryption(security):
    """Test roundtrip encryption/decryption"""
    original = "api-token-123"
    encrypted = security.encrypt(original)

    assert encrypted != original
    assert encrypted.startswith("gAAAA")
    assert security.is_encrypted(encrypted)
    assert security.decrypt(encrypted) == original


def test_encrypt_is_idempotent(security):
    encrypted = security.encrypt("value")
    assert security.encrypt(encrypted) == encrypted


def test_decrypt_plaintext(security):
    """Plaintext from older records is returned as is"""
    assert security.decrypt("not_encrypted") == "not_encrypted"
    assert security.decrypt("") == ""


def test_env_var_key(data_dir, monkeypatch):
    key = Fernet.generate_key().decode()
    monkeypatch.setenv("R2DASH_MASTER_KEY", key)

    sec = SecurityManager(data_dir / ".secret.key")
    encrypted = sec.encrypt("test")

    assert Fernet(key.encode()).decrypt(encrypted.encode()).decode() == "test"
    assert not (data_dir / ".secret.key").exists()
