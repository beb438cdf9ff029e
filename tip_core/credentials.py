"""
tip_core/credentials.py — The SafeUser credential bundle.

Keystore files use the field name ``app_id`` for the user id; both names
are accepted on input.  Key fields are hex strings and are validated
lazily by the operation that uses them, so a keystore with only a
session key can still sign bearer tokens.

Key material is excluded from repr() so a SafeUser can be logged or
printed in a traceback without leaking secrets.
"""

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InputError
from .keys import public_key_bytes, signing_key_from_hex

logger = logging.getLogger(__name__)

DEFAULT_KEYSTORE_ENV = "TEST_KEYSTORE_PATH"


class SafeUser(BaseModel):
    """Credentials for one custodial-wallet user session.

    Fields:
        user_id:             User (or app) id. JSON alias ``app_id``.
        session_id:          Session id bound to session_private_key.
        session_private_key: Hex Ed25519 seed (32 bytes, or 64 with the
                             public half appended).
        server_public_key:   Hex Ed25519 public key of the server (32 bytes).
        spend_private_key:   Hex Ed25519 seed used for TIP signatures.
        is_spend_private_sum: Carried through to the signer unchanged.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="app_id", min_length=1)
    session_id: str = Field(default="")
    session_private_key: str = Field(default="", repr=False)
    server_public_key: str = Field(default="", repr=False)
    spend_private_key: str = Field(default="", repr=False)
    is_spend_private_sum: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_json(cls, data: str) -> "SafeUser":
        """Parse a keystore JSON document."""
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            raise InputError(f"invalid keystore: {exc.error_count()} error(s)") from exc

    @classmethod
    def from_file(cls, path: str) -> "SafeUser":
        """Load a keystore JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = f.read()
        except OSError as exc:
            raise InputError(f"cannot read keystore: {exc.strerror}", field="path") from exc
        user = cls.from_json(data)
        logger.debug("Loaded keystore for user %s from %s", user.user_id, path)
        return user

    @classmethod
    def from_env(cls, var: Optional[str] = None) -> "SafeUser":
        """Load the keystore whose path is stored in environment variable `var`."""
        var = var or DEFAULT_KEYSTORE_ENV
        path = os.environ.get(var)
        if not path:
            raise InputError("keystore path variable is not set", field=var)
        return cls.from_file(path)

    def to_json(self) -> str:
        """Serialize back to keystore format (``app_id`` naming)."""
        d = self.model_dump(by_alias=True, exclude={"is_spend_private_sum"})
        return json.dumps(d, indent=2)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def spend_public_key_hex(self) -> str:
        """Hex public key re-derived from the spend seed."""
        key = signing_key_from_hex(self.spend_private_key, "spend_private_key")
        return public_key_bytes(key).hex()

    def session_public_key_hex(self) -> str:
        """Hex public key re-derived from the session seed."""
        key = signing_key_from_hex(self.session_private_key, "session_private_key")
        return public_key_bytes(key).hex()
