"""
Password hashing and token issuance.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
import structlog

from config import get_settings
from schemas import ProfileType

logger = structlog.get_logger(__name__)

# bcrypt only reads the first 72 bytes; newer releases raise instead of truncating.
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password with bcrypt using the configured cost factor."""
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError as e:
        # malformed stored hash
        logger.error("password_verification_failed", error=str(e))
        return False


def create_token(user_id: Any, profile_type: ProfileType) -> str:
    """Signed token carrying the profile id and the collection it resolved to."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "userType": profile_type.value,
        "iat": now,
        "exp": now + timedelta(days=settings.TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
