"""
tip_core/keys.py — Key decoding and encoding helpers.

Uses Python `cryptography` for Ed25519. All key material arrives as hex
strings; this module is the single place where those strings become
bytes or key objects, so length and encoding checks happen once.

Seed rule (spend and session keys):
    32 bytes  → Ed25519 seed
    64 bytes  → seed ‖ public key; only the seed is used, the public
                half is ignored and always re-derived
    otherwise → InvalidKeyLengthError
"""

from __future__ import annotations

import base64
import re

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .errors import InvalidKeyEncodingError, InvalidKeyLengthError

SEED_SIZE = 32
EXPANDED_KEY_SIZE = 64
PUBLIC_KEY_SIZE = 32

_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def b64url_encode(data: bytes) -> str:
    """Base64url without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode base64url, tolerating missing padding."""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


# ---------------------------------------------------------------------------
# Key decoding
# ---------------------------------------------------------------------------

def decode_hex(value: str, field: str) -> bytes:
    """Decode a strict hex string, naming the field on failure.

    Only an even-length run of [0-9a-fA-F] is accepted; whitespace and
    separators that bytes.fromhex would skip are rejected.
    """
    if not isinstance(value, str) or not _HEX_RE.fullmatch(value):
        raise InvalidKeyEncodingError("key is not valid hex", field=field)
    return bytes.fromhex(value)


def seed_from_hex(value: str, field: str) -> bytes:
    """Return the 32-byte Ed25519 seed encoded in `value`."""
    raw = decode_hex(value, field)
    if len(raw) == SEED_SIZE:
        return raw
    if len(raw) == EXPANDED_KEY_SIZE:
        return raw[:SEED_SIZE]
    raise InvalidKeyLengthError(
        "expected a 32 or 64 byte private key", field=field, length=len(raw)
    )


def public_key_from_hex(value: str, field: str) -> bytes:
    """Return a raw 32-byte public key encoded in `value`."""
    raw = decode_hex(value, field)
    if len(raw) != PUBLIC_KEY_SIZE:
        raise InvalidKeyLengthError(
            "expected a 32 byte public key", field=field, length=len(raw)
        )
    return raw


def signing_key_from_seed(seed: bytes) -> Ed25519PrivateKey:
    """Build an Ed25519 signing key from a raw 32-byte seed."""
    if len(seed) != SEED_SIZE:
        raise InvalidKeyLengthError(
            "expected a 32 byte seed", field="seed", length=len(seed)
        )
    return Ed25519PrivateKey.from_private_bytes(seed)


def signing_key_from_hex(value: str, field: str) -> Ed25519PrivateKey:
    """Decode a hex private key (32 or 64 bytes) into a signing key."""
    return signing_key_from_seed(seed_from_hex(value, field))


def public_key_bytes(private_key: Ed25519PrivateKey) -> bytes:
    """Extract the raw 32-byte public key of a signing key."""
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
