import hashlib
import hmac
import secrets
import uuid
from typing import Optional
from datetime import datetime, UTC

PASSWORD_SCHEME = "pbkdf2_sha256"


def make_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid.uuid4()}"


def utc_now() -> datetime:
    """Return the current aware UTC datetime."""
    return datetime.now(UTC)


def time_now() -> str:
    """Return the current time in ISO format (UTC, no microseconds)."""
    return to_iso(utc_now())


def to_iso(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp written by ``to_iso``; naive values are read as UTC."""
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def generate_token() -> str:
    """Return a 256-bit random session token as hex."""
    return secrets.token_hex(32)


def hash_password(password: str, iterations: int = 200_000, salt: Optional[str] = None) -> str:
    """
    Hash a password with salted PBKDF2-HMAC-SHA256.

    The result is self-describing so it can be verified later without
    knowing the settings used at signup time:

        pbkdf2_sha256$<iterations>$<salt>$<hex digest>
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{PASSWORD_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, hashed: str) -> bool:
    """Check a plain password against a digest produced by ``hash_password``."""
    try:
        scheme, iterations, salt, _ = hashed.split("$", 3)
        rounds = int(iterations)
    except (AttributeError, ValueError):
        return False
    if scheme != PASSWORD_SCHEME:
        return False
    candidate = hash_password(password, iterations=rounds, salt=salt)
    return hmac.compare_digest(candidate, hashed)


def normalize_email(email: str) -> str:
    return email.strip().lower()
