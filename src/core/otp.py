"""One-time numeric codes delivered out-of-band.

Codes are only ever persisted as bcrypt hashes. ``verify_code`` does not
look at expiry or attempts; callers check ``PendingCode`` first.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from src.core.security import hash_secret, verify_secret

_WHITESPACE = re.compile(r"\s+")


def issue_code(length: int = 6) -> str:
    """Draw a code uniformly from ``[10^(length-1), 10^length - 1]``.

    Args:
        length: Number of digits (>= 1).

    Returns:
        Decimal string of exactly ``length`` digits.
    """
    if length < 1:
        raise ValueError("length must be at least 1")
    low = 10 ** (length - 1)
    high = 10**length - 1
    return str(low + secrets.randbelow(high - low + 1))


def hash_code(code: str) -> str:
    return hash_secret(code)


def verify_code(code: str, code_hash: str | None) -> bool:
    """True iff ``code`` hashes to ``code_hash``."""
    return verify_secret(clean_code(code), code_hash)


def clean_code(code: str) -> str:
    """Strip whitespace users type or paste inside codes."""
    return _WHITESPACE.sub("", code or "")


@dataclass
class PendingCode:
    """Code awaiting verification, as stored on the user row."""

    code_hash: str
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def attempts_exhausted(self, max_attempts: int) -> bool:
        return self.attempts >= max_attempts


def start_code(
    length: int, ttl_minutes: int, now: datetime | None = None
) -> tuple[str, PendingCode]:
    """Issue a fresh code and the record that replaces any previous one.

    Returns:
        Tuple of (plaintext code to deliver, pending record to persist).
    """
    now = now or datetime.now(timezone.utc)
    code = issue_code(length)
    pending = PendingCode(
        code_hash=hash_code(code),
        expires_at=now + timedelta(minutes=ttl_minutes),
        attempts=0,
    )
    return code, pending
