"""
Security utilities for password hashing and identity token management.
"""
from datetime import timedelta
import uuid

from quizdesk.core.datetime_utils import utc_now
from typing import Optional, Dict, Any
import bcrypt
from jose import JWTError, jwt
from quizdesk.core.config import settings

IDENTITY_TOKEN_TYPE = "identity"


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: bcrypt cost factor

    Returns:
        Hashed password string
    """
    return bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Malformed hashes never match.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to verify against

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def create_identity_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create the signed token stored in the identity cookie.

    Args:
        user_id: Credential table entry that authenticated
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    now = utc_now()
    expire = now + (
        expires_delta or timedelta(hours=settings.IDENTITY_TOKEN_EXPIRE_HOURS)
    )
    to_encode = {
        "sub": user_id,
        "type": IDENTITY_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def user_id_from_token(token: Optional[str]) -> Optional[str]:
    """
    Extract the user id from an identity token.

    Returns:
        The `sub` claim, or None if the token is missing, invalid or not an
        identity token
    """
    if not token:
        return None
    payload = decode_token(token)
    if payload is None or payload.get("type") != IDENTITY_TOKEN_TYPE:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None
