import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from .config import secret_key


def _get_fernet() -> Fernet:
    # derive a 32-byte key from SECRETS_KEY or SECRET_KEY env var
    h = hashlib.sha256(secret_key().encode('utf-8')).digest()
    return Fernet(base64.urlsafe_b64encode(h))


def encrypt_value(plaintext: str) -> str:
    """Encrypt a plaintext string into a Fernet token."""
    return _get_fernet().encrypt(plaintext.encode('utf-8')).decode('utf-8')


def decrypt_value(token: str) -> str:
    """Decrypt a token produced by encrypt_value.

    Raises ValueError when the token is malformed or was produced with a
    different key.
    """
    try:
        return _get_fernet().decrypt(token.encode('utf-8')).decode('utf-8')
    except InvalidToken:
        raise ValueError('Invalid token') from None
