"""
tip_client — Signed request assembly for protected API calls.

Builds everything a transport needs to send one authorized request:

    payload dict ─┬─ TIP body → spend signature → PIN proof (pin_base64)
                  └─ compact JSON bytes → bearer token (Authorization)

Nothing is sent from here.  A SignedRequest carries the method, path,
exact body bytes and headers; any HTTP client can put it on the wire.
The body bytes are serialized once and the token signs those same
bytes, so the two can never drift apart.

Configuration is an explicit ClientConfig handed to the RequestSigner,
never module-level state.  Every call regenerates the whole proof
(iterator, IV, request id, timestamps); nothing is cached or retried.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tip_core.auth import sign_authentication_token
from tip_core.credentials import SafeUser
from tip_core.errors import InputError, SerializationError
from tip_core.pin import encrypt_ed25519_pin, unix_nanos
from tip_core.signer import sign_tip_body, sign_user_id_base64
from tip_core.tip import (
    tip_body_for_address_add,
    tip_body_for_address_remove,
    tip_body_for_sequencer_register,
    tip_body_for_verify,
    tip_body_for_withdrawal,
)

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "https://api.mixin.one"
DEFAULT_USER_AGENT = "safe-tip-python"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ClientConfig(BaseSettings):
    """Transport settings. Read from SAFE_TIP_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="SAFE_TIP_", frozen=True)

    base_url: str = DEFAULT_API_HOST
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 30.0

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL; strip the trailing slash."""
        v = (v or "").strip().rstrip("/")
        p = urlparse(v)
        if p.scheme not in ("http", "https"):
            raise ValueError("base_url must start with http:// or https://")
        if not p.hostname:
            raise ValueError("base_url must include a hostname")
        return v

    @field_validator("user_agent")
    @classmethod
    def user_agent_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("user_agent cannot be empty")
        return v


# ---------------------------------------------------------------------------
# Signed request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignedRequest:
    """One outbound request, ready for a transport."""
    method: str
    path: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    base_url: str = DEFAULT_API_HOST

    @property
    def url(self) -> str:
        return self.base_url + self.path

    @property
    def request_id(self) -> str:
        return self.headers["X-Request-Id"]

    def json(self) -> Dict[str, Any]:
        """Decoded body, or {} for bodyless requests."""
        if not self.body:
            return {}
        return json.loads(self.body)


def encode_body(payload: Optional[Dict[str, Any]]) -> bytes:
    """Compact JSON body bytes; empty for None."""
    if payload is None:
        return b""
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"cannot serialize request body: {exc}") from exc


# ---------------------------------------------------------------------------
# Request signer
# ---------------------------------------------------------------------------

class RequestSigner:
    """Assembles signed requests for one SafeUser.

    Args:
        user:            Credentials for the session and spend keys.
        config:          Transport settings. Defaults to ClientConfig().
        iterator_source: Returns the anti-replay iterator for each PIN
                         proof. Must not repeat for the same server key.
                         Defaults to the current unix time in nanoseconds.
    """

    def __init__(
        self,
        user: SafeUser,
        config: Optional[ClientConfig] = None,
        iterator_source: Optional[Callable[[], int]] = None,
    ) -> None:
        self.user = user
        self.config = config or ClientConfig()
        self.iterator_source = iterator_source or unix_nanos

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def sign(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> SignedRequest:
        """Serialize `payload` once and sign a bearer token over it."""
        method = method.upper()
        if not path.startswith("/"):
            raise InputError("path must start with '/'", field="path")
        body = encode_body(payload)
        request_id = request_id or str(uuid.uuid4())
        token = sign_authentication_token(
            method, path, body, self.user, request_id=request_id
        )
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
            "X-Request-Id": request_id,
        }
        return SignedRequest(
            method=method,
            path=path,
            body=body,
            headers=headers,
            base_url=self.config.base_url,
        )

    def pin_base64(self, tip_body: bytes, iterator: Optional[int] = None) -> str:
        """Sign `tip_body` with the spend key and encrypt it into a PIN proof."""
        signature = sign_tip_body(
            tip_body,
            self.user.spend_private_key,
            self.user.is_spend_private_sum,
        )
        if iterator is None:
            iterator = self.iterator_source()
        return encrypt_ed25519_pin(signature, iterator, self.user)

    def read(self, path: str) -> SignedRequest:
        """Bodyless GET."""
        return self.sign("GET", path)

    # ------------------------------------------------------------------
    # Protected actions
    # ------------------------------------------------------------------

    def verify_tip(self) -> SignedRequest:
        """POST /pin/verify. The same nanosecond timestamp is used for the
        TIP body, the iterator and the request field."""
        timestamp = unix_nanos()
        pin = self.pin_base64(tip_body_for_verify(timestamp), iterator=timestamp)
        return self.sign("POST", "/pin/verify", {
            "pin_base64": pin,
            "timestamp": timestamp,
        })

    def register_safe_user(self) -> SignedRequest:
        """POST /safe/users: register the spend public key with the sequencer."""
        public_key = self.user.spend_public_key_hex()
        signature = sign_user_id_base64(self.user)
        pin = self.pin_base64(
            tip_body_for_sequencer_register(self.user.user_id, public_key)
        )
        logger.info("Prepared sequencer registration for user %s", self.user.user_id)
        return self.sign("POST", "/safe/users", {
            "public_key": public_key,
            "signature": signature,
            "pin_base64": pin,
        })

    def create_address(
        self, asset_id: str, destination: str, tag: str = "", label: str = ""
    ) -> SignedRequest:
        """POST /addresses."""
        pin = self.pin_base64(
            tip_body_for_address_add(asset_id, destination, tag, label)
        )
        return self.sign("POST", "/addresses", {
            "asset_id": asset_id,
            "label": label,
            "destination": destination,
            "tag": tag,
            "pin_base64": pin,
        })

    def delete_address(self, address_id: str) -> SignedRequest:
        """POST /addresses/{id}/delete."""
        if not address_id:
            raise InputError("missing address id", field="address_id")
        pin = self.pin_base64(tip_body_for_address_remove(address_id))
        return self.sign("POST", f"/addresses/{address_id}/delete", {
            "pin_base64": pin,
        })

    def create_withdrawal(
        self,
        address_id: str,
        amount: str,
        fee: str,
        trace_id: str,
        memo: Optional[str] = None,
    ) -> SignedRequest:
        """POST /withdrawals. A missing memo signs as the empty string."""
        pin = self.pin_base64(
            tip_body_for_withdrawal(address_id, amount, fee, trace_id, memo or "")
        )
        payload = {
            "address_id": address_id,
            "amount": amount,
            "trace_id": trace_id,
            "memo": memo,
            "pin_base64": pin,
        }
        return self.sign("POST", "/withdrawals", payload)
