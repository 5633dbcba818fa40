"""
Treasury secret encryption.

Secrets are Fernet tokens at rest. ``decrypt_secret`` returns None instead of
raising when no key is configured or the token does not match the key, so the
engine can record ``treasury_secret_unavailable`` and move on.
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class SecretResolver:
    """Encrypts and decrypts treasury wallet secrets with a Fernet key."""

    def __init__(self, key: str = ""):
        self._fernet: Optional[Fernet] = None
        if key:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def encrypt(self, plaintext: str) -> str:
        if self._fernet is None:
            raise RuntimeError("treasury_encryption_key is not configured")
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, encrypted_secret: str) -> Optional[str]:
        if self._fernet is None:
            logger.warning("Cannot decrypt treasury secret: no encryption key configured")
            return None
        try:
            return self._fernet.decrypt(encrypted_secret.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError):
            logger.warning("Cannot decrypt treasury secret: key mismatch or corrupted token")
            return None


def generate_key() -> str:
    """Generate a new Fernet key for ``TREASURY_ENCRYPTION_KEY``."""
    return Fernet.generate_key().decode("ascii")
