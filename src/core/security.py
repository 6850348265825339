"""Password hashing and JWT helpers."""

import unicodedata
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from src.config.settings import get_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TWO_FACTOR_STAGE = "2fa"


def hash_secret(plain: str) -> str:
    """Hash a password or one-time code with bcrypt."""
    return pwd_context.hash(plain)


def verify_secret(plain: str, hashed: str | None) -> bool:
    """Check ``plain`` against a stored hash.

    A missing or malformed hash is a mismatch, never an exception.
    """
    if not plain or not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError) as e:
        logger.warning("secret_verify_error", error=str(e))
        return False


def normalize_email(email: str) -> str:
    return unicodedata.normalize("NFKC", email.strip().lower())


def _secret_key() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise RuntimeError("JWT_SECRET não configurado")
    return secret


def create_token(claims: dict[str, Any], expires_delta: timedelta) -> str:
    """Sign a JWT carrying ``claims`` plus ``iat``/``exp``.

    Args:
        claims: Payload (must include ``sub``).
        expires_delta: Lifetime of the token.

    Returns:
        Encoded JWT.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = {**claims, "iat": now, "exp": now + expires_delta}
    return jwt.encode(to_encode, _secret_key(), algorithm=settings.jwt_algorithm)


def create_session_token(user: dict[str, Any]) -> str:
    """Long-lived session token stored in the auth cookie."""
    settings = get_settings()
    return create_token(
        {
            "sub": str(user["id"]),
            "email": user.get("email"),
            "user_type": user.get("user_type"),
        },
        timedelta(days=settings.session_days),
    )


def create_two_factor_token(user_id: str) -> str:
    """Short-lived token that only proves the password step succeeded."""
    settings = get_settings()
    return create_token(
        {"sub": str(user_id), "stage": TWO_FACTOR_STAGE},
        timedelta(minutes=settings.two_factor_token_minutes),
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT; returns None when invalid or expired."""
    settings = get_settings()
    try:
        return jwt.decode(token, _secret_key(), algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
