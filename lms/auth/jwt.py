# auth/jwt.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from jwt import encode, decode, ExpiredSignatureError, InvalidTokenError
from uuid import uuid4
from config import settings
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"

def _create_token(data: Dict[str, Any], expires_delta: timedelta, token_type: str) -> str:
    try:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + expires_delta
        to_encode.update({"exp": expire, "jti": str(uuid4()), "type": token_type})
        return encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)
    except Exception as e:
        logger.error(f"Failed to create {token_type} token: {str(e)}")
        raise ValueError(f"Token creation failed: {str(e)}")

def create_access_token(uid: str, email: str) -> str:
    """`sub` is the auth subject id; the user profile is keyed by it."""
    return _create_token({"sub": uid, "email": email},
                         timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES), ACCESS)

def create_refresh_token(uid: str, email: str) -> str:
    return _create_token({"sub": uid, "email": email},
                         timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), REFRESH)

def decode_token(token: str) -> dict:
    try:
        return decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.warning("Attempt to use expired token")
        raise ValueError("Token expired")
    except InvalidTokenError:
        logger.warning("Attempt to use invalid token")
        raise ValueError("Invalid token")

def seconds_until_expiry(payload: dict) -> int:
    remaining = int(payload["exp"]) - int(datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)
