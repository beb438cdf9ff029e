"""
test/test_auth.py — Tests for tip_core.auth (bearer tokens)

Run:  python test/test_auth.py
"""

import hashlib
import json
import os
import sys
import traceback

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from tip_core.auth import (
    TOKEN_VALIDITY_SECONDS,
    decode_token,
    request_digest,
    sign_authentication_token,
    sign_authentication_token_without_body,
    sign_oauth_access_token,
    verify_token,
)
from tip_core.credentials import SafeUser
from tip_core.errors import (
    InputError,
    InvalidKeyEncodingError,
    InvalidKeyLengthError,
)
from tip_core.keys import b64url_decode, public_key_bytes


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SEED_HEX = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
_PUB_HEX = public_key_bytes(
    Ed25519PrivateKey.from_private_bytes(bytes.fromhex(_SEED_HEX))
).hex()

_PASS = 0
_FAIL = 0


def _user(**overrides) -> SafeUser:
    fields = {
        "user_id": "user-id",
        "session_id": "session-id",
        "session_private_key": _SEED_HEX,
        "server_public_key": "",
        "spend_private_key": "",
    }
    fields.update(overrides)
    return SafeUser(**fields)


def _segment(token: str, i: int) -> dict:
    return json.loads(b64url_decode(token.split(".")[i]))


def _ok(name: str) -> None:
    global _PASS
    _PASS += 1
    print(f"  PASS: {name}")


def _fail(name: str, err: Exception) -> None:
    global _FAIL
    _FAIL += 1
    print(f"  FAIL: {name} — {err}")
    traceback.print_exc()


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_request_digest():
    expected = hashlib.sha256(b'POST/test{"hello":"world"}').hexdigest()
    assert request_digest("POST", "/test", '{"hello":"world"}') == expected
    assert request_digest("POST", "/test", b'{"hello":"world"}') == expected
    assert request_digest("GET", "/me", b"") == hashlib.sha256(b"GET/me").hexdigest()
    assert request_digest("GET", "/me", None) == request_digest("GET", "/me", "")
    _ok("test_request_digest")


def test_token_claims():
    method, uri, body = "POST", "/test", '{"hello":"world"}'
    token = sign_authentication_token(method, uri, body, _user(), request_id="req-123")

    assert token.count(".") == 2
    claims = _segment(token, 1)
    assert claims["uid"] == "user-id"
    assert claims["sid"] == "session-id"
    assert claims["jti"] == "req-123"
    assert claims["sig"] == hashlib.sha256((method + uri + body).encode()).hexdigest()
    assert claims["scp"] == "FULL"
    assert claims["exp"] - claims["iat"] == TOKEN_VALIDITY_SECONDS == 7_776_000
    assert "iss" not in claims and "aid" not in claims
    _ok("test_token_claims")


def test_token_header_and_claim_order():
    token = sign_authentication_token("GET", "/me", "", _user(), request_id="r", now=100)
    assert _segment(token, 0) == {"alg": "EdDSA"}
    raw = b64url_decode(token.split(".")[1]).decode()
    assert list(json.loads(raw)) == ["uid", "sid", "iat", "exp", "jti", "sig", "scp"]
    assert " " not in raw
    _ok("test_token_header_and_claim_order")


def test_token_signature_verifies():
    token = sign_authentication_token("GET", "/me?limit=10", b"", _user())
    assert verify_token(token, _PUB_HEX)

    other_pub = public_key_bytes(Ed25519PrivateKey.from_private_bytes(bytes([9] * 32))).hex()
    assert not verify_token(token, other_pub)

    header, claims, sig = token.split(".")
    tampered = ".".join([header, claims[:-2] + ("AA" if claims[-2:] != "AA" else "BB"), sig])
    assert not verify_token(tampered, _PUB_HEX)
    _ok("test_token_signature_verifies")


def test_fresh_request_id_per_call():
    a = sign_authentication_token("GET", "/me", "", _user())
    b = sign_authentication_token("GET", "/me", "", _user())
    ja, jb = _segment(a, 1)["jti"], _segment(b, 1)["jti"]
    assert ja != jb
    assert len(ja) == 36
    _ok("test_fresh_request_id_per_call")


def test_deterministic_with_fixed_inputs():
    kwargs = dict(request_id="fixed", now=1_700_000_000)
    a = sign_authentication_token("POST", "/x", "{}", _user(), **kwargs)
    b = sign_authentication_token("POST", "/x", "{}", _user(), **kwargs)
    assert a == b
    _ok("test_deterministic_with_fixed_inputs")


def test_64_byte_session_key_matches_seed():
    kwargs = dict(request_id="fixed", now=1_700_000_000)
    a = sign_authentication_token("GET", "/me", "", _user(), **kwargs)
    b = sign_authentication_token(
        "GET", "/me", "", _user(session_private_key=_SEED_HEX + _PUB_HEX), **kwargs
    )
    assert a == b
    _ok("test_64_byte_session_key_matches_seed")


def test_without_body():
    token = sign_authentication_token_without_body("GET", "/me", _user(), request_id="r")
    assert _segment(token, 1)["sig"] == hashlib.sha256(b"GET/me").hexdigest()
    _ok("test_without_body")


def test_oauth_token():
    token = sign_oauth_access_token(
        app_id="app-id",
        authorization_id="auth-id",
        private_key=_SEED_HEX,
        method="GET",
        uri="/safe/me",
        body="",
        scope="PROFILE:READ ASSETS:READ",
        request_id="req-1",
        now=50,
    )
    header, claims, _ = decode_token(token)
    assert header == {"alg": "EdDSA"}
    assert claims.iss == "app-id"
    assert claims.aid == "auth-id"
    assert claims.uid is None and claims.sid is None
    assert claims.scp == "PROFILE:READ ASSETS:READ"
    assert claims.iat == 50
    raw = _segment(token, 1)
    assert "uid" not in raw and "sid" not in raw
    assert verify_token(token, _PUB_HEX)
    _ok("test_oauth_token")


def test_bad_session_keys():
    for n in (31, 33):
        try:
            sign_authentication_token("GET", "/me", "", _user(session_private_key="22" * n))
            assert False, f"Should reject {n}-byte session key"
        except InvalidKeyLengthError as e:
            assert e.field == "session_private_key"
            assert e.length == n
    try:
        sign_authentication_token("GET", "/me", "", _user(session_private_key="nothex"))
        assert False
    except InvalidKeyEncodingError:
        pass
    _ok("test_bad_session_keys")


def test_input_errors():
    try:
        sign_authentication_token("GET", "/me", "", _user(session_id=""))
        assert False, "Should require session id"
    except InputError as e:
        assert e.field == "session_id"
    try:
        decode_token("only.two")
        assert False
    except InputError:
        pass
    _ok("test_input_errors")


def test_empty_request_id():
    """A caller-supplied jti must not be empty, for user and app tokens."""
    try:
        sign_authentication_token("GET", "/me", "", _user(), request_id="")
        assert False, "Should reject empty request id"
    except InputError as e:
        assert e.field == "request_id"
    try:
        sign_oauth_access_token(
            "app", "auth", _SEED_HEX, "GET", "/me", "", "PROFILE:READ", request_id=""
        )
        assert False, "Should reject empty request id"
    except InputError as e:
        assert e.field == "request_id"
    _ok("test_empty_request_id")


def test_verify_rejects_non_ascii_token():
    token = sign_authentication_token("GET", "/me", b"", _user())
    header, claims, sig = token.split(".")
    for bad in (f"{header}é.{claims}.{sig}", f"{header}.{claims}.{sig}é"):
        try:
            verify_token(bad, _PUB_HEX)
            assert False, "Should reject non-ASCII token"
        except InputError as e:
            assert e.field == "token"
    _ok("test_verify_rejects_non_ascii_token")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    print("=" * 60)
    print("TIP Bearer Token Tests")
    print("=" * 60)

    tests = [
        test_request_digest,
        test_token_claims,
        test_token_header_and_claim_order,
        test_token_signature_verifies,
        test_fresh_request_id_per_call,
        test_deterministic_with_fixed_inputs,
        test_64_byte_session_key_matches_seed,
        test_without_body,
        test_oauth_token,
        test_bad_session_keys,
        test_input_errors,
        test_empty_request_id,
        test_verify_rejects_non_ascii_token,
    ]

    for t in tests:
        try:
            t()
        except Exception as e:
            _fail(t.__name__, e)

    print("=" * 60)
    if _FAIL == 0:
        print(f"ALL {_PASS} TESTS PASSED")
    else:
        print(f"{_PASS} passed, {_FAIL} FAILED")
        sys.exit(1)
    print("=" * 60)
