# File: app/core/security.py
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional
from werkzeug.security import check_password_hash, generate_password_hash
from app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from drivers that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_password_hash(password: str) -> str:
    return generate_password_hash(password, method=f"pbkdf2:sha256:{settings.PASSWORD_HASH_ITERATIONS}")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # unknown hash method
        return False


def generate_session_id() -> str:
    # 32 random bytes, 256 bits of entropy
    return secrets.token_urlsafe(32)


def session_reference(session_id: str) -> str:
    """Stable public handle for a session; safe to print inside a QR code."""
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()


def device_fingerprint(user_agent: Optional[str], ip_address: Optional[str] = None) -> str:
    material = f"{user_agent or ''}|{ip_address or ''}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:32]
