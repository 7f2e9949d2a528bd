import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from social_scheduler.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_fernet() -> Fernet:
    key = get_settings().ENCRYPTION_KEY
    if not key:
        # Tokens encrypted with a temporary key are unreadable after a restart
        key = Fernet.generate_key().decode()
        logger.warning("ENCRYPTION_KEY not set; using a temporary key for this process")
    return Fernet(key.encode())


def encrypt_token(token: Optional[str]) -> Optional[str]:
    """Encrypt a token string"""
    if not token:
        return None
    return get_fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: Optional[str]) -> Optional[str]:
    """Decrypt an encrypted token string, None if it cannot be read"""
    if not encrypted_token:
        return None
    try:
        return get_fernet().decrypt(encrypted_token.encode()).decode()
    except (InvalidToken, ValueError) as e:
        logger.error(f"Error decrypting token: {type(e).__name__}")
        return None
