import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .errors import ApiError, ApiErrorCode
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

STAFF_ROLES = ("admin", "groomer")


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed JWT whose subject is the user id"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a bearer token.

    Raises:
        ApiError: SESSION_EXPIRED for an expired token, UNAUTHORIZED otherwise
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        logger.warning("⚠️ Expired access token presented")
        raise ApiError(ApiErrorCode.SESSION_EXPIRED) from e
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise ApiError(ApiErrorCode.UNAUTHORIZED) from e


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise ApiError(ApiErrorCode.UNAUTHORIZED)

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise ApiError(ApiErrorCode.UNAUTHORIZED)

    # Role comes from the database, never from the token claim
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Token for unknown or inactive user {user_id}")
        raise ApiError(ApiErrorCode.UNAUTHORIZED)

    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Public endpoints (guest booking) accept but do not require a token"""
    if credentials is None or not credentials.credentials:
        return None
    return get_current_user(credentials, db)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in STAFF_ROLES:
        logger.warning(f"🚫 User {current_user.id} ({current_user.role}) attempted admin access")
        raise ApiError(ApiErrorCode.FORBIDDEN)
    return current_user
