from cryptography.fernet import Fernet, InvalidToken
from sparkle.config import get_settings

__all__ = ["InvalidToken", "get_fernet", "encrypt_token", "decrypt_token"]


def get_fernet(key: str | None = None) -> Fernet:
    key = key if key is not None else get_settings().CREDENTIAL_FERNET_KEY
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_token(token: str, key: str | None = None) -> str:
    """Encrypt a session token for storage in the cookie jar."""
    return get_fernet(key).encrypt(token.encode("utf-8")).decode("ascii")


def decrypt_token(value: str, key: str | None = None) -> str:
    """Decrypt a stored token. Raises ``InvalidToken`` on tampering or key change."""
    return get_fernet(key).decrypt(value.encode("ascii")).decode("utf-8")
