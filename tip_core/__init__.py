"""
TIP Core — PIN proofs and bearer tokens for a custodial-wallet API.

Pipeline for a protected call:
    build_tip_body() → sign_tip_body() → encrypt_ed25519_pin()   (pin_base64)
    request_digest() → sign_authentication_token()               (Authorization)

Every function is a pure function of its arguments plus the wall clock
and the OS random source; nothing here holds state between calls.
"""

__version__ = "0.1.0"

from .errors import (
    ErrorKind,
    TipError,
    InvalidKeyLengthError,
    InvalidKeyEncodingError,
    InvalidPointError,
    InputError,
    ClockError,
    SerializationError,
)
from .keys import (
    b64url_encode,
    b64url_decode,
    seed_from_hex,
    signing_key_from_hex,
    public_key_bytes,
)
from .credentials import SafeUser
from .tip import (
    TipAction,
    tip_body,
    build_tip_body,
    tip_body_for_verify,
    tip_body_for_sequencer_register,
    tip_body_for_address_add,
    tip_body_for_address_remove,
    tip_body_for_transfer,
    tip_body_for_withdrawal,
    tip_body_for_raw_transaction,
)
from .signer import sign_tip_body, sign_user_id_base64
from .pin import (
    PinPayload,
    private_key_to_curve25519,
    public_key_to_curve25519,
    shared_key,
    encrypt_ed25519_pin,
    decrypt_ed25519_pin,
    unix_seconds,
    unix_nanos,
)
from .auth import (
    AuthClaims,
    TOKEN_VALIDITY_SECONDS,
    request_digest,
    sign_authentication_token,
    sign_authentication_token_without_body,
    sign_oauth_access_token,
    decode_token,
    verify_token,
)
