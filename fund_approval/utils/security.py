"""
Security Utilities
JWT helpers for caller identity
"""

from datetime import timedelta
from typing import Optional, Dict, Any
from jose import jwt, JWTError

from fund_approval.config.settings import settings
from fund_approval.utils.helpers import utc_now


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token

    Args:
        data: Claims to encode (``sub`` carries the user id)
        expires_delta: Optional lifetime override

    Returns:
        str: Encoded JWT
    """
    to_encode = data.copy()
    expire = utc_now() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT

    Args:
        token: Encoded token

    Returns:
        dict: Claims, or None when the token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
