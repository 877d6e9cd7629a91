import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt

from minisocial import config
from minisocial.errors import AuthError

logger = logging.getLogger(__name__)

# Missing headers are reported by get_current_user as AuthError (401),
# so the bearer scheme itself never raises.
security = HTTPBearer(auto_error=False)


# ===========================
# ✅ CREATE ACCESS TOKEN
# ===========================
def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT token with expiration time.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def issue_token(user_id: str, username: str) -> str:
    return create_access_token({"sub": user_id, "username": username})


# ===========================
# ✅ DECODE TOKEN
# ===========================
def decode_access_token(token: str) -> dict:
    """
    Verify a bearer token and return the identity it carries.

    Raises AuthError for expired, badly signed or malformed tokens.
    """
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Token expired. Please log in again.")
    except JWTError:
        raise AuthError("Invalid or corrupted token.")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token: missing user id")

    return {"user_id": user_id, "username": payload.get("username")}


# ===========================
# ✅ VERIFY CURRENT USER
# ===========================
def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    """
    Decode JWT from HTTP Bearer token and return user info.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")
    return decode_access_token(credentials.credentials)


def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Optional[dict]:
    """Identity for public routes; a missing or invalid token means anonymous."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthError as e:
        logger.debug("Ignoring invalid optional token: %s", e.message)
        return None
