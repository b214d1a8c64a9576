import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from app.config import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7


def _secret() -> str:
    # Same fallback the web frontend uses in dev mode
    return settings.SESSION_SECRET or "dev-secret-key-for-testing"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, _secret(), algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode a bearer token issued by the login service.
    Returns None for expired or tampered tokens.
    """
    try:
        return jwt.decode(token, _secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Token verification failed: {e}")
        return None
