"""
Password hashing (bcrypt) and JWT access tokens (python-jose).
Tokens carry the user id, email, role and plan; all quiz and upload APIs scope by user_id.
"""
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from quizflow.config import settings

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return (password or "").encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    if password is None:
        raise ValueError("password is required")
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(user_id: UUID, email: str, role: str, plan: str, expires_hours: int | None = None) -> str:
    hours = expires_hours if expires_hours is not None else settings.jwt_expire_hours
    expire = datetime.now(timezone.utc) + timedelta(hours=hours)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "plan": plan,
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Claims of a valid, unexpired token; None otherwise."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
