import hmac
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt

from app.core.config import settings


def utcnow() -> datetime:
    # stored naive, in UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hash_password(password: str) -> str:
    """Hash password using bcrypt with salt."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_otp_code(length: int = settings.OTP_LENGTH) -> str:
    """Random numeric code, zero padded to ``length`` digits."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def otp_matches(expected: str, supplied: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), supplied.strip().encode("utf-8"))


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def session_expiry() -> datetime:
    return utcnow() + timedelta(hours=settings.SESSION_TTL_HOURS)
