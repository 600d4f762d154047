"""
security.py

Password hashing (bcrypt) and JWT bearer tokens, plus the FastAPI
dependencies that resolve the current user from the Authorization header.
"""
import logging
import re
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cinechronic.core.config import settings
from cinechronic.core.database import get_db
from cinechronic.models import User
from cinechronic.utils.timezone import utc_now

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

_DURATION = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def parse_expires_in(value: str) -> timedelta:
    """'7d', '12h', '30m', '45s' or plain seconds; anything else means 7 days."""
    match = _DURATION.match(value or "")
    if not match:
        logger.warning(f"Invalid JWT_EXPIRES_IN '{value}', using 7d")
        return timedelta(days=7)
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit.lower()])


def create_access_token(user_id: int, expires_in: Optional[str] = None) -> str:
    now = utc_now()
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + parse_expires_in(expires_in or settings.jwt_expires_in),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[int]:
    """User id carried by a valid token, None when invalid or expired."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None
    user_id = payload.get("userId")
    return user_id if isinstance(user_id, int) else None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Required auth: 401 without a token, 403 for a bad token or unknown user."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=403, detail="User not found")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id).first()
