"""
tip_core/tip.py — TIP body (domain message) construction.

A TIP body is SHA-256(tag ‖ field₁ ‖ … ‖ fieldₙ) over UTF-8 bytes.
Fields are concatenated with no delimiter.  The tag strings, including
their trailing colons, and the per-action field order are part of the
wire protocol and must match the server byte for byte.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Iterable


# ---------------------------------------------------------------------------
# Domain tags
# ---------------------------------------------------------------------------

TIP_VERIFY = "TIP:VERIFY:"
TIP_ADDRESS_ADD = "TIP:ADDRESS:ADD:"
TIP_ADDRESS_REMOVE = "TIP:ADDRESS:REMOVE:"
TIP_USER_DEACTIVATE = "TIP:USER:DEACTIVATE:"
TIP_EMERGENCY_CONTACT_CREATE = "TIP:EMERGENCY:CONTACT:CREATE:"
TIP_EMERGENCY_CONTACT_READ = "TIP:EMERGENCY:CONTACT:READ:"
TIP_EMERGENCY_CONTACT_REMOVE = "TIP:EMERGENCY:CONTACT:REMOVE:"
TIP_PHONE_NUMBER_UPDATE = "TIP:PHONE:NUMBER:UPDATE:"
TIP_MULTISIG_REQUEST_SIGN = "TIP:MULTISIG:REQUEST:SIGN:"
TIP_MULTISIG_REQUEST_UNLOCK = "TIP:MULTISIG:REQUEST:UNLOCK:"
TIP_COLLECTIBLE_REQUEST_SIGN = "TIP:COLLECTIBLE:REQUEST:SIGN:"
TIP_COLLECTIBLE_REQUEST_UNLOCK = "TIP:COLLECTIBLE:REQUEST:UNLOCK:"
TIP_TRANSFER_CREATE = "TIP:TRANSFER:CREATE:"
TIP_WITHDRAWAL_CREATE = "TIP:WITHDRAWAL:CREATE:"
TIP_RAW_TRANSACTION_CREATE = "TIP:TRANSACTION:CREATE:"
TIP_OAUTH_APPROVE = "TIP:OAUTH:APPROVE:"
TIP_PROVISIONING_UPDATE = "TIP:PROVISIONING:UPDATE:"
TIP_OWNERSHIP_TRANSFER = "TIP:APP:OWNERSHIP:TRANSFER:"
TIP_SEQUENCER_REGISTER = "SEQUENCER:REGISTER:"


class TipAction(str, Enum):
    """Every authorizable action, valued by its domain tag."""
    VERIFY = TIP_VERIFY
    ADDRESS_ADD = TIP_ADDRESS_ADD
    ADDRESS_REMOVE = TIP_ADDRESS_REMOVE
    USER_DEACTIVATE = TIP_USER_DEACTIVATE
    EMERGENCY_CONTACT_CREATE = TIP_EMERGENCY_CONTACT_CREATE
    EMERGENCY_CONTACT_READ = TIP_EMERGENCY_CONTACT_READ
    EMERGENCY_CONTACT_REMOVE = TIP_EMERGENCY_CONTACT_REMOVE
    PHONE_NUMBER_UPDATE = TIP_PHONE_NUMBER_UPDATE
    MULTISIG_REQUEST_SIGN = TIP_MULTISIG_REQUEST_SIGN
    MULTISIG_REQUEST_UNLOCK = TIP_MULTISIG_REQUEST_UNLOCK
    COLLECTIBLE_REQUEST_SIGN = TIP_COLLECTIBLE_REQUEST_SIGN
    COLLECTIBLE_REQUEST_UNLOCK = TIP_COLLECTIBLE_REQUEST_UNLOCK
    TRANSFER_CREATE = TIP_TRANSFER_CREATE
    WITHDRAWAL_CREATE = TIP_WITHDRAWAL_CREATE
    RAW_TRANSACTION_CREATE = TIP_RAW_TRANSACTION_CREATE
    OAUTH_APPROVE = TIP_OAUTH_APPROVE
    PROVISIONING_UPDATE = TIP_PROVISIONING_UPDATE
    OWNERSHIP_TRANSFER = TIP_OWNERSHIP_TRANSFER
    SEQUENCER_REGISTER = TIP_SEQUENCER_REGISTER


# ---------------------------------------------------------------------------
# Generic builder
# ---------------------------------------------------------------------------

def tip_body(message: str) -> bytes:
    """SHA-256 of an already-assembled message string."""
    return hashlib.sha256(message.encode("utf-8")).digest()


def build_tip_body(tag: str, *fields: str) -> bytes:
    """Hash `tag` followed by `fields`, concatenated without delimiters.

    Raises:
        TypeError: If a field is not a str. Callers format numbers
                   themselves, since the decimal form is protocol.
    """
    if isinstance(tag, TipAction):
        tag = tag.value
    h = hashlib.sha256(tag.encode("utf-8"))
    for i, field in enumerate(fields):
        if not isinstance(field, str):
            raise TypeError(
                f"TIP body field {i} must be str, got {type(field).__name__}"
            )
        h.update(field.encode("utf-8"))
    return h.digest()


# ---------------------------------------------------------------------------
# Per-action builders (field order is protocol)
# ---------------------------------------------------------------------------

def tip_body_for_verify(timestamp_nano: int) -> bytes:
    """Verify body: timestamp in decimal, zero-padded to 32 digits."""
    return build_tip_body(TIP_VERIFY, f"{timestamp_nano:032d}")


def tip_body_for_sequencer_register(user_id: str, public_key: str) -> bytes:
    return build_tip_body(TIP_SEQUENCER_REGISTER, user_id, public_key)


def tip_body_for_address_add(
    asset_id: str, destination: str, tag: str, label: str
) -> bytes:
    return build_tip_body(TIP_ADDRESS_ADD, asset_id, destination, tag, label)


def tip_body_for_address_remove(address_id: str) -> bytes:
    return build_tip_body(TIP_ADDRESS_REMOVE, address_id)


def tip_body_for_transfer(
    asset_id: str, opponent_id: str, amount: str, trace_id: str, memo: str
) -> bytes:
    return build_tip_body(
        TIP_TRANSFER_CREATE, asset_id, opponent_id, amount, trace_id, memo
    )


def tip_body_for_withdrawal(
    address_id: str, amount: str, fee: str, trace_id: str, memo: str
) -> bytes:
    return build_tip_body(
        TIP_WITHDRAWAL_CREATE, address_id, amount, fee, trace_id, memo
    )


def tip_body_for_raw_transaction(
    asset_id: str,
    opponent_key: str,
    opponent_receivers: Iterable[str],
    opponent_threshold: int,
    amount: str,
    trace_id: str,
    memo: str,
) -> bytes:
    """Raw transaction body.

    Receivers are concatenated in the given order, followed by the
    threshold in decimal.
    """
    return build_tip_body(
        TIP_RAW_TRANSACTION_CREATE,
        asset_id,
        opponent_key,
        *opponent_receivers,
        str(int(opponent_threshold)),
        amount,
        trace_id,
        memo,
    )
