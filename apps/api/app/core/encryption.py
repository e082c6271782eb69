"""Encryption utilities for webhook secrets at rest."""

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings


_fernet: Fernet | None = None


def get_fernet() -> Fernet:
    """Get or create Fernet instance for encryption/decryption."""
    global _fernet
    if _fernet is None:
        if not settings.INTEGRATION_ENCRYPTION_KEY:
            raise RuntimeError(
                "INTEGRATION_ENCRYPTION_KEY not configured. "
                'Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
            )
        _fernet = Fernet(settings.INTEGRATION_ENCRYPTION_KEY.encode())
    return _fernet


def encrypt_secret(secret: str) -> str:
    """Encrypt a webhook secret for storage."""
    if not secret:
        return ""
    return get_fernet().encrypt(secret.encode()).decode()


def decrypt_secret(encrypted: str) -> str:
    """Decrypt a stored webhook secret."""
    if not encrypted:
        return ""
    try:
        return get_fernet().decrypt(encrypted.encode()).decode()
    except InvalidToken:
        raise ValueError("Invalid or corrupted encrypted secret")


def is_encryption_configured() -> bool:
    """Check if encryption is properly configured."""
    return bool(settings.INTEGRATION_ENCRYPTION_KEY)
