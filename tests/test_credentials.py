import base64
import json
from datetime import timedelta

import pytest

from app.core.credentials import (
    decode_payload,
    derive_signing_key,
    encode_payload,
    issue_credential,
    sign,
    verify,
    verify_credential,
)
from app.core.exceptions import CredentialError, ExpiredCredential, InvalidCredential

FIELDS = {"user_id": 42, "issued_at": 1760000000, "device_fingerprint": "abc123"}


def test_sign_is_deterministic_and_key_dependent():
    key = derive_signing_key("session-one")

    assert sign(FIELDS, key) == sign(dict(reversed(list(FIELDS.items()))), key)
    assert sign(FIELDS, key) != sign(FIELDS, derive_signing_key("session-two"))
    assert len(sign(FIELDS, key)) == 64


def test_verify_accepts_matching_signature_only():
    key = derive_signing_key("session-one")
    signature = sign(FIELDS, key)

    assert verify(FIELDS, signature, key) is True
    assert verify({**FIELDS, "user_id": 43}, signature, key) is False
    assert verify(FIELDS, signature, derive_signing_key("session-two")) is False


@pytest.mark.parametrize("signature", [None, 123, "", "zz", "0" * 64, b"bytes", ["list"]])
def test_verify_never_raises_on_malformed_signature(signature):
    assert verify(FIELDS, signature, derive_signing_key("s")) is False


def test_verify_never_raises_on_malformed_fields():
    key = derive_signing_key("s")
    assert verify({"user_id": 1}, "0" * 64, key) is False
    assert verify({**FIELDS, "issued_at": object()}, "0" * 64, key) is False


@pytest.mark.parametrize("payload", [
    None,
    "",
    "not base64 !!",
    base64.urlsafe_b64encode(b"[1, 2]").decode(),
    base64.urlsafe_b64encode(json.dumps({"user_id": 1}).encode()).decode(),
    base64.urlsafe_b64encode(json.dumps({
        "user_id": "1", "issued_at": 1, "device_fingerprint": "x", "session_ref": "y",
    }).encode()).decode(),
    "A" * 5000,
])
def test_decode_payload_rejects_malformed_input(payload):
    assert decode_payload(payload) is None


def test_encode_decode_keeps_fields():
    fields = {**FIELDS, "session_ref": "ref"}
    assert decode_payload(encode_payload(fields)) == fields


def test_issued_credential_verifies(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    issued = issue_credential(session, "fp", clock.now)

    fields = verify_credential(store, issued["qr_payload"], issued["signature"], clock.now + timedelta(seconds=30))

    assert fields["user_id"] == 42
    assert fields["session_ref"] == session.credential_ref
    assert session.session_id not in issued["qr_payload"]
    assert issued["expires_at"] - issued["issued_at"] == timedelta(seconds=180)


def test_revoking_session_invalidates_outstanding_credentials(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    issued = issue_credential(session, "fp", clock.now)

    store.revoke(session.session_id)

    with pytest.raises(InvalidCredential):
        verify_credential(store, issued["qr_payload"], issued["signature"], clock.now)


def test_expired_session_invalidates_credentials(store, clock):
    session = store.create(42, None, timedelta(minutes=2))
    issued = issue_credential(session, "fp", clock.now)
    clock.advance(minutes=2, seconds=1)

    with pytest.raises(InvalidCredential):
        verify_credential(store, issued["qr_payload"], issued["signature"], clock.now - timedelta(seconds=10))


def test_credential_older_than_ttl_is_expired(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    issued = issue_credential(session, "fp", clock.now - timedelta(minutes=4))

    with pytest.raises(ExpiredCredential):
        verify_credential(store, issued["qr_payload"], issued["signature"], clock.now, ttl=timedelta(minutes=3))


def test_credential_from_the_future_is_rejected(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    issued = issue_credential(session, "fp", clock.now + timedelta(minutes=5))

    with pytest.raises(InvalidCredential):
        verify_credential(store, issued["qr_payload"], issued["signature"], clock.now)


def test_small_clock_skew_is_tolerated(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    issued = issue_credential(session, "fp", clock.now + timedelta(seconds=10))

    assert verify_credential(store, issued["qr_payload"], issued["signature"], clock.now)["user_id"] == 42


def test_tampered_user_id_is_rejected(store, clock):
    victim = store.create(42, None, timedelta(minutes=30))
    attacker = store.create(7, None, timedelta(minutes=30))
    issued = issue_credential(attacker, "fp", clock.now)

    fields = decode_payload(issued["qr_payload"])
    forged = encode_payload({**fields, "user_id": 42, "session_ref": victim.credential_ref})

    with pytest.raises(InvalidCredential):
        verify_credential(store, forged, issued["signature"], clock.now)

    # Pointing at the attacker's own session with someone else's user id also fails
    forged = encode_payload({**fields, "user_id": 42})
    with pytest.raises(InvalidCredential):
        verify_credential(store, forged, issued["signature"], clock.now)


def test_credential_failures_share_public_message(store, clock):
    session = store.create(42, None, timedelta(minutes=30))
    old = issue_credential(session, "fp", clock.now - timedelta(minutes=10))

    with pytest.raises(CredentialError) as expired:
        verify_credential(store, old["qr_payload"], old["signature"], clock.now)
    with pytest.raises(CredentialError) as bad_signature:
        verify_credential(store, old["qr_payload"], "0" * 64, clock.now)

    assert expired.value.message == bad_signature.value.message
    assert expired.value.data is None
