#!/usr/bin/env python3
"""
TIP Withdrawal Demo

Walks one protected call through the whole pipeline with throwaway keys,
then plays the server and opens the proof again.

Flow:
  1. Generate a session key, a spend key and a "server" key
  2. Build the withdrawal TIP body and sign it with the spend key
  3. Encrypt the signature into pin_base64 (X25519 + AES-256-CBC)
  4. Assemble the request and its bearer token
  5. Server side: verify the token, decrypt the PIN, verify the TIP signature

Run:
    python examples/demo_withdrawal.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from tip_client import ClientConfig, RequestSigner
from tip_core.auth import decode_token, verify_token
from tip_core.credentials import SafeUser
from tip_core.keys import public_key_bytes
from tip_core.pin import decrypt_ed25519_pin
from tip_core.tip import tip_body_for_withdrawal


def main() -> None:
    session_seed = os.urandom(32)
    spend_seed = os.urandom(32)
    server_seed = os.urandom(32)
    session_pub = public_key_bytes(Ed25519PrivateKey.from_private_bytes(session_seed))
    server_pub = public_key_bytes(Ed25519PrivateKey.from_private_bytes(server_seed))

    user = SafeUser(
        user_id="6c0e3b1c-3c4e-4f8b-9a3e-0b5c1d2e3f40",
        session_id="1f2e3d4c-5b6a-4798-8a7b-6c5d4e3f2a1b",
        session_private_key=session_seed.hex(),
        server_public_key=server_pub.hex(),
        spend_private_key=spend_seed.hex(),
    )
    signer = RequestSigner(user, ClientConfig(base_url="https://api.example.com"))

    print(f"\n{'━' * 72}")
    print("  CLIENT")
    print(f"{'━' * 72}")
    req = signer.create_withdrawal(
        address_id="0f1e2d3c-4b5a-4969-8877-665544332211",
        amount="0.5",
        fee="0.0001",
        trace_id="9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d",
        memo="demo",
    )
    print(f"  {req.method} {req.url}")
    print(f"  X-Request-Id: {req.request_id}")
    print(f"  Body:         {req.body.decode()[:68]}...")

    print(f"\n{'━' * 72}")
    print("  SERVER")
    print(f"{'━' * 72}")
    token = req.headers["Authorization"].removeprefix("Bearer ")
    _, claims, _ = decode_token(token)
    print(f"  Token signature valid: {verify_token(token, session_pub.hex())}")
    print(f"  Token bound to uid:    {claims.uid}")

    data = req.json()
    payload = decrypt_ed25519_pin(data["pin_base64"], server_seed, session_pub)
    print(f"  PIN timestamp:         {payload.timestamp}")
    print(f"  PIN iterator:          {payload.iterator}")

    body = tip_body_for_withdrawal(
        data["address_id"], data["amount"], "0.0001", data["trace_id"], data["memo"]
    )
    spend_pub = Ed25519PrivateKey.from_private_bytes(spend_seed).public_key()
    spend_pub.verify(payload.signature, body)
    print("  TIP signature valid:   True")
    print(f"{'━' * 72}\n")


if __name__ == "__main__":
    main()
