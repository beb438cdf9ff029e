#!/usr/bin/env python3
"""
TIP CLI — Produce bearer tokens, TIP bodies and PIN proofs from a keystore.

Usage:
    python -m tools.tip_cli token GET /me
    python -m tools.tip_cli token POST /addresses --body '{"asset_id":"..."}'
    python -m tools.tip_cli tip SEQUENCER_REGISTER <user-id> <public-key>
    python -m tools.tip_cli pin ADDRESS_REMOVE <address-id> --iterator 7
    python -m tools.tip_cli pubkey

Commands:
    token   — Sign an Authorization bearer token for one request
    tip     — Print the hex TIP body for an action and its fields
    pin     — Sign a TIP body with the spend key and encrypt it (pin_base64)
    pubkey  — Print the spend and session public keys

The keystore is read from --keystore, or from the file named by
$TEST_KEYSTORE_PATH.  Output is written to stdout; nothing is sent.
"""

import argparse
import logging
import os
import sys

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tip_core.auth import sign_authentication_token
from tip_core.credentials import SafeUser
from tip_core.errors import TipError
from tip_core.pin import encrypt_ed25519_pin, unix_nanos
from tip_core.signer import sign_tip_body
from tip_core.tip import TipAction, build_tip_body


# ============================================================
# Helpers
# ============================================================

def parse_action(name: str) -> TipAction:
    """Accept either the enum name (ADDRESS_ADD) or the raw tag."""
    try:
        return TipAction[name.upper()]
    except KeyError:
        pass
    try:
        return TipAction(name)
    except ValueError:
        choices = ", ".join(a.name for a in TipAction)
        raise argparse.ArgumentTypeError(
            f"unknown action {name!r} (choose from {choices})"
        )


def load_user(path: str | None) -> SafeUser:
    if path:
        return SafeUser.from_file(path)
    return SafeUser.from_env()


# ============================================================
# Commands
# ============================================================

def cmd_token(args: argparse.Namespace) -> None:
    user = load_user(args.keystore)
    token = sign_authentication_token(
        args.method.upper(),
        args.path,
        args.body,
        user,
        request_id=args.request_id,
    )
    print(f"Bearer {token}" if args.header else token)


def cmd_tip(args: argparse.Namespace) -> None:
    print(build_tip_body(args.action, *args.fields).hex())


def cmd_pin(args: argparse.Namespace) -> None:
    user = load_user(args.keystore)
    body = build_tip_body(args.action, *args.fields)
    signature = sign_tip_body(body, user.spend_private_key, user.is_spend_private_sum)
    iterator = args.iterator if args.iterator is not None else unix_nanos()
    print(encrypt_ed25519_pin(signature, iterator, user))


def cmd_pubkey(args: argparse.Namespace) -> None:
    user = load_user(args.keystore)
    print(f"user:    {user.user_id}")
    if user.spend_private_key:
        print(f"spend:   {user.spend_public_key_hex()}")
    if user.session_private_key:
        print(f"session: {user.session_public_key_hex()}")


# ============================================================
# Main
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TIP CLI — bearer tokens and PIN proofs",
        prog="python -m tools.tip_cli",
    )
    parser.add_argument(
        "--keystore", "-k",
        help="Path to keystore JSON (default: $TEST_KEYSTORE_PATH)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log signing steps to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("token", help="Sign a bearer token")
    p.add_argument("method", help="HTTP method")
    p.add_argument("path", help="Path including query string, exactly as sent")
    p.add_argument("--body", default="", help="Request body, exactly as sent")
    p.add_argument("--request-id", help="jti claim (default: random UUID)")
    p.add_argument("--header", action="store_true", help="Prefix with 'Bearer '")
    p.set_defaults(func=cmd_token)

    p = sub.add_parser("tip", help="Print a TIP body as hex")
    p.add_argument("action", type=parse_action, help="Action name or tag")
    p.add_argument("fields", nargs="*", help="Fields in protocol order")
    p.set_defaults(func=cmd_tip)

    p = sub.add_parser("pin", help="Build an encrypted PIN proof")
    p.add_argument("action", type=parse_action, help="Action name or tag")
    p.add_argument("fields", nargs="*", help="Fields in protocol order")
    p.add_argument("--iterator", type=int, help="Anti-replay iterator (default: now in ns)")
    p.set_defaults(func=cmd_pin)

    p = sub.add_parser("pubkey", help="Print public keys")
    p.set_defaults(func=cmd_pubkey)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        args.func(args)
    except TipError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
