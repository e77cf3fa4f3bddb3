"""
Security utilities for JWT session tokens and password hashing.
"""
import base64
import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from conduit.config import settings

AUTH_SCHEME = "Token"


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash with SHA-256 so passwords longer than bcrypt's 72-byte limit
    still contribute every byte.  The digest is base64-encoded because
    bcrypt rejects inputs containing NUL bytes.
    """
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_pre_hash_password(password), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check *plain_password* against a stored hash using bcrypt's comparator."""
    try:
        return bcrypt.checkpw(_pre_hash_password(plain_password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a signed JWT whose subject is the user id as a decimal string."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else settings.JWT_EXPIRY)
    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[int]:
    """
    Verify *token* and return the user id from its subject claim.

    Returns None for a bad signature, an expired or missing ``exp`` claim,
    or a subject that is not a decimal user id.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError:
        return None
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        return None
    return int(subject)


def parse_authorization_header(value: Optional[str]) -> Optional[str]:
    """Return the JWT from a ``Token <jwt>`` header value, or None."""
    if not value:
        return None
    scheme, _, token = value.partition(" ")
    if scheme != AUTH_SCHEME or not token.strip():
        return None
    return token.strip()
