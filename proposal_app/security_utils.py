"""
Security utilities: encryption of stored OAuth tokens and session JWT handling
"""

import base64
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from jose import JWTError
from jose import jwt as jose_jwt

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def _derive_fernet_key(secret: str) -> bytes:
    """Fernet needs 32 url-safe base64 bytes; derive them from the app secret"""
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())


# Encryption for tokens
cipher_suite = Fernet(_derive_fernet_key(SECRET_KEY))


def encrypt_token(token: str) -> str:
    """Encrypt a token for storage"""
    return cipher_suite.encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored token"""
    return cipher_suite.decrypt(encrypted_token.encode()).decode()


def decrypt_optional_token(encrypted_token: Optional[str]) -> Optional[str]:
    """Decrypt a nullable stored token, treating unreadable ciphertext as absent"""
    if not encrypted_token:
        return None
    try:
        return decrypt_token(encrypted_token)
    except InvalidToken:
        logger.warning("⚠️ Stored token could not be decrypted (SECRET_KEY rotated?)")
        return None


# ============================================================================
# SESSION TOKENS
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time (default 15 minutes)
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None
