"""
tip_core/pin.py — PIN proof encryption.

Pipeline for one protected call:
    TIP signature (hex) ‖ u64le(unix seconds) ‖ u64le(iterator)
        → AES-256-CBC / PKCS7 under the X25519 shared key, random IV
        → base64url(IV ‖ ciphertext), no padding

The shared key is the raw X25519 output between the session key and
the server key, both given as Ed25519 keys and converted to Curve25519
first.  No KDF is applied.

X25519 and AES come from `cryptography`.  The Edwards → Montgomery
conversion of both keys goes through libsodium (PyNaCl bindings), which
also rejects points outside the prime-order subgroup.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional

import nacl.bindings
import nacl.exceptions
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .credentials import SafeUser
from .errors import (
    ClockError,
    InputError,
    InvalidKeyEncodingError,
    InvalidKeyLengthError,
    InvalidPointError,
)
from .keys import (
    PUBLIC_KEY_SIZE,
    SEED_SIZE,
    b64url_decode,
    b64url_encode,
    decode_hex,
    public_key_from_hex,
    seed_from_hex,
)

logger = logging.getLogger(__name__)

IV_SIZE = 16
U64_MAX = 2**64 - 1

# Field prime of Curve25519; an encoded y at or above it is non-canonical.
_FIELD_PRIME = 2**255 - 19


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

def unix_seconds() -> int:
    """Current unix time in whole seconds."""
    return unix_nanos() // 1_000_000_000


def unix_nanos() -> int:
    """Current unix time in nanoseconds."""
    try:
        now = time.time_ns()
    except (OSError, OverflowError) as exc:
        raise ClockError("system clock unavailable") from exc
    if now < 0:
        raise ClockError("system clock is before the unix epoch")
    return now


# ---------------------------------------------------------------------------
# Ed25519 → X25519 conversion
# ---------------------------------------------------------------------------

def private_key_to_curve25519(seed: bytes) -> bytes:
    """Convert an Ed25519 seed to a clamped Curve25519 scalar.

    The scalar is the low half of SHA-512(seed), the same value Ed25519
    uses as its secret scalar.
    """
    if len(seed) != SEED_SIZE:
        raise InvalidKeyLengthError(
            "expected a 32 byte seed", field="seed", length=len(seed)
        )
    _, secret_key = nacl.bindings.crypto_sign_seed_keypair(seed)
    return nacl.bindings.crypto_sign_ed25519_sk_to_curve25519(secret_key)


def public_key_to_curve25519(public_key: bytes) -> bytes:
    """Convert a compressed Ed25519 public key to its X25519 u-coordinate.

    Raises:
        InvalidKeyLengthError: public_key is not 32 bytes.
        InvalidKeyEncodingError: y is not reduced mod p.
        InvalidPointError: libsodium rejects the point (not on the curve,
            small order, or outside the prime-order subgroup).
    """
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise InvalidKeyLengthError(
            "expected a 32 byte public key",
            field="public_key",
            length=len(public_key),
        )
    y = int.from_bytes(public_key, "little") & ((1 << 255) - 1)
    if y >= _FIELD_PRIME:
        raise InvalidKeyEncodingError(
            "non-canonical point encoding", field="public_key"
        )
    try:
        return nacl.bindings.crypto_sign_ed25519_pk_to_curve25519(public_key)
    except (nacl.exceptions.RuntimeError, nacl.exceptions.ValueError) as exc:
        raise InvalidPointError(
            "public key is not a usable curve point", field="public_key"
        ) from exc


def shared_key(private_seed: bytes, public_key: bytes) -> bytes:
    """X25519 shared secret between an Ed25519 seed and an Ed25519 public key.

    Symmetric: shared_key(a_seed, B_pub) == shared_key(b_seed, A_pub).

    Raises:
        InvalidPointError: public key has small order (all-zero secret).
    """
    scalar = private_key_to_curve25519(private_seed)
    u = public_key_to_curve25519(public_key)
    private = X25519PrivateKey.from_private_bytes(scalar)
    peer = X25519PublicKey.from_public_bytes(u)
    try:
        return private.exchange(peer)
    except ValueError as exc:
        raise InvalidPointError(
            "key exchange produced an all-zero secret", field="public_key"
        ) from exc


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def _check_u64(value: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(f"{field} must be an integer", field=field)
    if value < 0 or value > U64_MAX:
        raise InputError(f"{field} must fit in an unsigned 64-bit integer", field=field)
    return value


def encrypt_ed25519_pin(
    pin_hex: str,
    iterator: int,
    user: SafeUser,
    now: Optional[int] = None,
) -> str:
    """Encrypt a TIP signature into a replay-bound PIN proof.

    Args:
        pin_hex:  Hex TIP signature from sign_tip_body(). Empty means the
                  action needs no proof, and "" is returned.
        iterator: Anti-replay counter, unique per server key.
        user:     Credentials providing session and server keys.
        now:      Unix seconds to embed. Defaults to the current time.

    Returns:
        base64url(IV ‖ AES-256-CBC(signature ‖ u64le(now) ‖ u64le(iterator))).
    """
    signature = decode_hex(pin_hex or "", "pin")
    if not signature:
        return ""

    private = seed_from_hex(user.session_private_key, "session_private_key")
    if not user.server_public_key:
        raise InputError("missing server public key", field="server_public_key")
    public = public_key_from_hex(user.server_public_key, "server_public_key")
    key = shared_key(private, public)

    _check_u64(iterator, "iterator")
    if now is None:
        now = unix_seconds()
    _check_u64(now, "timestamp")

    pin = bytearray(signature)
    pin += now.to_bytes(8, "little")
    pin += iterator.to_bytes(8, "little")

    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(bytes(pin)) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    logger.debug(
        "Encrypted PIN proof for user %s (%d byte payload)",
        user.user_id, len(pin),
    )
    return b64url_encode(iv + ciphertext)


# ---------------------------------------------------------------------------
# Decryption (server side, diagnostics)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PinPayload:
    """Decrypted contents of a PIN proof."""
    signature: bytes
    timestamp: int
    iterator: int


def decrypt_ed25519_pin(
    pin_base64: str, private_seed: bytes, public_key: bytes
) -> PinPayload:
    """Decrypt a PIN proof with the counterpart key pair.

    The server calls this with its own seed and the session public key.
    """
    key = shared_key(private_seed, public_key)
    try:
        payload = b64url_decode(pin_base64)
    except ValueError as exc:
        raise InputError("PIN proof is not base64url", field="pin_base64") from exc
    if len(payload) < 2 * IV_SIZE or (len(payload) - IV_SIZE) % IV_SIZE:
        raise InputError(
            "PIN proof has an invalid length",
            field="pin_base64",
            length=len(payload),
        )

    iv, ciphertext = payload[:IV_SIZE], payload[IV_SIZE:]
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plain = unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise InputError("PIN proof failed to decrypt", field="pin_base64") from exc
    if len(plain) < 16:
        raise InputError(
            "PIN proof plaintext is too short", field="pin_base64", length=len(plain)
        )

    return PinPayload(
        signature=plain[:-16],
        timestamp=int.from_bytes(plain[-16:-8], "little"),
        iterator=int.from_bytes(plain[-8:], "little"),
    )
