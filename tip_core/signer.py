"""
tip_core/signer.py — Spend-key signatures over TIP bodies.

Standard RFC 8032 Ed25519 via `cryptography`.  The body is signed as
given; it is already a SHA-256 digest, so there is no pre-hash.
Signatures are deterministic for a given seed and body.
"""

from __future__ import annotations

import hashlib
import logging

from .credentials import SafeUser
from .keys import b64url_encode, signing_key_from_hex

logger = logging.getLogger(__name__)


def sign_tip_body(
    body: bytes,
    spend_private_key: str,
    is_spend_private_sum: bool = False,
) -> str:
    """Sign a TIP body with the spend key. Returns the hex signature.

    Args:
        body: TIP body from tip_core.tip (32-byte digest).
        spend_private_key: Hex seed, 32 bytes or 64 bytes (seed ‖ public
                           key). Only the seed is used.
        is_spend_private_sum: Accepted for aggregate spend keys; does not
                              change the algorithm.

    Raises:
        InvalidKeyEncodingError: spend_private_key is not hex.
        InvalidKeyLengthError: spend_private_key is not 32 or 64 bytes.
    """
    key = signing_key_from_hex(spend_private_key, "spend_private_key")
    if is_spend_private_sum:
        logger.debug("Signing TIP body with an aggregate spend key")
    signature = key.sign(bytes(body))
    logger.debug("Signed TIP body (%d bytes)", len(body))
    return signature.hex()


def sign_user_id_base64(user: SafeUser) -> str:
    """Spend-key signature over SHA-256(user_id), base64url without padding.

    Proves ownership of the spend key when registering with the sequencer.
    """
    key = signing_key_from_hex(user.spend_private_key, "spend_private_key")
    digest = hashlib.sha256(user.user_id.encode("utf-8")).digest()
    return b64url_encode(key.sign(digest))
