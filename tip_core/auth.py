"""
tip_core/auth.py — Bearer tokens for API calls.

Token layout (JWT compact form, EdDSA):

    b64url(header) . b64url(claims) . b64url(Ed25519(session_key, "h.c"))

The claims bind the token to one HTTP request through ``sig``, the hex
SHA-256 of method ‖ uri ‖ body, and to one attempt through ``jti``.
A token is built fresh for every call.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from typing import Any, Dict, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from pydantic import BaseModel, Field, ValidationError

from .credentials import SafeUser
from .errors import InputError, SerializationError
from .keys import (
    b64url_decode,
    b64url_encode,
    public_key_from_hex,
    signing_key_from_hex,
)
from .pin import unix_seconds

logger = logging.getLogger(__name__)

# Three 30-day months.
TOKEN_VALIDITY_SECONDS = 24 * 30 * 3 * 3600

SCOPE_FULL = "FULL"
TOKEN_ALGORITHM = "EdDSA"

Body = Union[str, bytes]


class AuthClaims(BaseModel):
    """Claim set of a bearer token, declared in wire order.

    User-session tokens carry uid/sid; app (OAuth) tokens carry iss/aid.
    Unset optional claims are omitted from the JSON.
    """

    uid: Optional[str] = Field(default=None, description="User id.")
    sid: Optional[str] = Field(default=None, description="Session id.")
    iss: Optional[str] = Field(default=None, description="App id (OAuth tokens).")
    aid: Optional[str] = Field(default=None, description="Authorization id (OAuth tokens).")
    iat: int = Field(..., ge=0, description="Issued at, unix seconds.")
    exp: int = Field(..., ge=0, description="Expiry, unix seconds.")
    jti: str = Field(..., min_length=1, description="Request id.")
    sig: str = Field(..., pattern=r"^[0-9a-f]{64}$", description="hex SHA-256(method ‖ uri ‖ body).")
    scp: str = Field(..., description="Scope.")


# ---------------------------------------------------------------------------
# Digest
# ---------------------------------------------------------------------------

def _body_bytes(body: Optional[Body]) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def request_digest(method: str, uri: str, body: Optional[Body] = b"") -> str:
    """Hex SHA-256 of method ‖ uri ‖ body, with no separators.

    `uri` must be the path exactly as sent, query string included.
    """
    h = hashlib.sha256()
    h.update(method.encode("utf-8"))
    h.update(uri.encode("utf-8"))
    h.update(_body_bytes(body))
    return h.hexdigest()


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def _encode_token(claims: AuthClaims, private_key: str, field: str) -> str:
    key = signing_key_from_hex(private_key, field)
    try:
        header_json = json.dumps({"alg": TOKEN_ALGORITHM}, separators=(",", ":"))
        claims_json = claims.model_dump_json(exclude_none=True)
    except (TypeError, ValueError) as exc:
        raise SerializationError("cannot serialize token") from exc

    message = (
        b64url_encode(header_json.encode("utf-8"))
        + "."
        + b64url_encode(claims_json.encode("utf-8"))
    )
    signature = key.sign(message.encode("ascii"))
    return f"{message}.{b64url_encode(signature)}"


def _build_claims(now: Optional[int], request_id: Optional[str], **fields: Any) -> AuthClaims:
    if now is None:
        now = unix_seconds()
    if request_id is None:
        request_id = str(uuid.uuid4())
    elif not request_id:
        raise InputError("request id must not be empty", field="request_id")
    try:
        return AuthClaims(
            iat=now,
            exp=now + TOKEN_VALIDITY_SECONDS,
            jti=request_id,
            **fields,
        )
    except ValidationError as exc:
        raise SerializationError(
            f"invalid token claims: {exc.errors()[0]['loc'][0]}"
        ) from exc


def sign_authentication_token(
    method: str,
    uri: str,
    body: Optional[Body],
    user: SafeUser,
    request_id: Optional[str] = None,
    now: Optional[int] = None,
) -> str:
    """Sign a user-session bearer token (scope FULL).

    Args:
        method:     HTTP method, e.g. "POST".
        uri:        Path and query string exactly as sent.
        body:       Request body exactly as sent ("" or b"" if none).
        user:       Credentials; uses user_id, session_id and
                    session_private_key.
        request_id: Value for jti. A random UUID4 when omitted.
        now:        Issued-at override, unix seconds.
    """
    if not user.session_id:
        raise InputError("missing session id", field="session_id")
    claims = _build_claims(
        now,
        request_id,
        uid=user.user_id,
        sid=user.session_id,
        sig=request_digest(method, uri, body),
        scp=SCOPE_FULL,
    )
    token = _encode_token(claims, user.session_private_key, "session_private_key")
    logger.debug("Signed %s %s token for user %s (jti=%s)", method, uri, user.user_id, claims.jti)
    return token


def sign_authentication_token_without_body(
    method: str, uri: str, user: SafeUser, request_id: Optional[str] = None
) -> str:
    """Token for a bodyless request (GET, DELETE)."""
    return sign_authentication_token(method, uri, b"", user, request_id=request_id)


def sign_oauth_access_token(
    app_id: str,
    authorization_id: str,
    private_key: str,
    method: str,
    uri: str,
    body: Optional[Body],
    scope: str,
    request_id: Optional[str] = None,
    now: Optional[int] = None,
) -> str:
    """Sign an app token issued under an OAuth authorization.

    Carries iss (app id) and aid (authorization id) instead of uid/sid,
    and the scope granted to the authorization.
    """
    if not scope:
        raise InputError("missing scope", field="scope")
    claims = _build_claims(
        now,
        request_id,
        iss=app_id,
        aid=authorization_id,
        sig=request_digest(method, uri, body),
        scp=scope,
    )
    return _encode_token(claims, private_key, "private_key")


# ---------------------------------------------------------------------------
# Decoding and verification
# ---------------------------------------------------------------------------

def decode_token(token: str) -> Tuple[Dict[str, Any], AuthClaims, bytes]:
    """Split a token into header, claims and raw signature. Does not verify."""
    parts = token.split(".")
    if len(parts) != 3:
        raise InputError("token must have three segments", field="token")
    try:
        header = json.loads(b64url_decode(parts[0]))
        claims = AuthClaims.model_validate_json(b64url_decode(parts[1]))
        signature = b64url_decode(parts[2])
    except (ValueError, ValidationError) as exc:
        raise InputError("token is malformed", field="token") from exc
    return header, claims, signature


def verify_token(token: str, public_key_hex: str) -> bool:
    """Check a token's signature against a hex Ed25519 public key.

    Only the signature segment is decoded; a tampered header or claims
    segment simply fails verification.
    """
    message, _, encoded_signature = token.rpartition(".")
    if message.count(".") != 1:
        raise InputError("token must have three segments", field="token")
    try:
        signed = message.encode("ascii")
    except UnicodeEncodeError as exc:
        raise InputError("token is not ASCII", field="token") from exc
    try:
        signature = b64url_decode(encoded_signature)
    except ValueError as exc:
        raise InputError("token signature is malformed", field="token") from exc
    public_key = Ed25519PublicKey.from_public_bytes(
        public_key_from_hex(public_key_hex, "public_key")
    )
    try:
        public_key.verify(signature, signed)
        return True
    except InvalidSignature:
        return False
