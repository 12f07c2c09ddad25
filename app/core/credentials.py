# File: app/core/credentials.py
"""Short-lived QR credentials signed with a key derived from the session id.

Nothing is persisted: a credential is valid only while the session that
issued it is alive and its ``issued_at`` lies inside the ttl window, so
revoking a session invalidates every QR code it ever produced.
"""
import base64
import binascii
import hashlib
import hmac
import json
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ExpiredCredential, InvalidCredential
from app.core.session_store import InMemorySessionStore, SessionRecord

SIGNED_FIELDS = ("user_id", "issued_at", "device_fingerprint")
PAYLOAD_FIELDS = SIGNED_FIELDS + ("session_ref",)


def canonical_payload(payload_fields: Mapping[str, Any]) -> bytes:
    signed = {name: payload_fields[name] for name in SIGNED_FIELDS}
    return json.dumps(signed, sort_keys=True, separators=(",", ":")).encode("utf-8")


def derive_signing_key(session_id: str) -> bytes:
    return hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        session_id.encode("utf-8"),
        hashlib.sha256,
    ).digest()


def sign(payload_fields: Mapping[str, Any], secret: bytes) -> str:
    return hmac.new(secret, canonical_payload(payload_fields), hashlib.sha256).hexdigest()


def verify(payload_fields: Mapping[str, Any], signature: Any, secret: bytes) -> bool:
    try:
        if not isinstance(signature, str):
            return False
        expected = sign(payload_fields, secret)
        return hmac.compare_digest(expected, signature)
    except (KeyError, TypeError, ValueError):
        return False


def encode_payload(payload_fields: Mapping[str, Any]) -> str:
    raw = json.dumps(
        {name: payload_fields[name] for name in PAYLOAD_FIELDS},
        sort_keys=True,
        separators=(",", ":"),
    ).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_payload(qr_payload: Any) -> Optional[Dict[str, Any]]:
    """Parse a QR payload; any malformed input yields None."""
    if not isinstance(qr_payload, str) or not qr_payload or len(qr_payload) > 2048:
        return None
    try:
        padded = qr_payload + "=" * (-len(qr_payload) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None

    if not isinstance(data, dict) or set(data) != set(PAYLOAD_FIELDS):
        return None
    if not isinstance(data["user_id"], int) or isinstance(data["user_id"], bool):
        return None
    if not isinstance(data["issued_at"], int) or isinstance(data["issued_at"], bool):
        return None
    if not isinstance(data["session_ref"], str) or not isinstance(data["device_fingerprint"], str):
        return None
    return data


def issue_credential(session: SessionRecord, device_fingerprint: str, now: datetime) -> Dict[str, Any]:
    fields = {
        "user_id": session.user_id,
        "issued_at": int(now.timestamp()),
        "device_fingerprint": device_fingerprint,
        "session_ref": session.credential_ref,
    }
    signature = sign(fields, derive_signing_key(session.session_id))
    issued_at = datetime.fromtimestamp(fields["issued_at"], tz=now.tzinfo)
    return {
        "qr_payload": encode_payload(fields),
        "signature": signature,
        "issued_at": issued_at,
        "expires_at": issued_at + timedelta(seconds=settings.QR_CREDENTIAL_TTL_SECONDS),
    }


def verify_credential(
    store: InMemorySessionStore,
    qr_payload: Any,
    signature: Any,
    now: datetime,
    ttl: Optional[timedelta] = None,
) -> Dict[str, Any]:
    """Re-resolve the issuing session, then check signature, then the ttl window.

    Raises ``InvalidCredential`` or ``ExpiredCredential``; both surface with the
    same public message.
    """
    ttl = ttl or timedelta(seconds=settings.QR_CREDENTIAL_TTL_SECONDS)

    fields = decode_payload(qr_payload)
    if fields is None:
        raise InvalidCredential("malformed payload")

    try:
        session = store.get_by_credential_ref(fields["session_ref"])
    except AuthenticationError:
        raise InvalidCredential("issuing session is gone")

    if session.user_id != fields["user_id"]:
        raise InvalidCredential("session does not belong to credential user")

    if not verify(fields, signature, derive_signing_key(session.session_id)):
        raise InvalidCredential("bad signature")

    age = now.timestamp() - fields["issued_at"]
    if age > ttl.total_seconds():
        raise ExpiredCredential("credential older than ttl")
    if age < -settings.QR_CLOCK_SKEW_SECONDS:
        raise InvalidCredential("credential issued in the future")

    return fields
