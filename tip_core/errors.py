"""
tip_core/errors.py — Error taxonomy for the PIN/token pipeline.

Every failure raised by tip_core is one TipError subclass tagged with an
ErrorKind.  Errors coming from `cryptography`, `binascii` or `pydantic`
are translated at the boundary (``raise ... from exc``), so callers only
ever match on this flat set.

None of these are retried inside the library.  A caller that retries a
request must rebuild the whole proof (new iterator, new IV, new token).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of failure a public operation can report."""
    INVALID_KEY_LENGTH = "invalid_key_length"
    INVALID_KEY_ENCODING = "invalid_key_encoding"
    INVALID_POINT = "invalid_point"
    INPUT = "input"
    CLOCK = "clock"
    SERIALIZATION = "serialization"


class TipError(Exception):
    """Base class for all tip_core errors.

    Args:
        message: Human-readable description. Never contains key material.
        field:   Name of the offending input (e.g. "spend_private_key").
        length:  Observed decoded length, for key length errors.
    """

    kind: ErrorKind = ErrorKind.INPUT

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        length: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.length = length

    def __str__(self) -> str:
        context = []
        if self.field is not None:
            context.append(f"field={self.field}")
        if self.length is not None:
            context.append(f"length={self.length}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class InvalidKeyLengthError(TipError):
    kind = ErrorKind.INVALID_KEY_LENGTH


class InvalidKeyEncodingError(TipError):
    kind = ErrorKind.INVALID_KEY_ENCODING


class InvalidPointError(TipError):
    kind = ErrorKind.INVALID_POINT


class InputError(TipError):
    kind = ErrorKind.INPUT


class ClockError(TipError):
    """System time unavailable. Environment-fatal."""
    kind = ErrorKind.CLOCK


class SerializationError(TipError):
    kind = ErrorKind.SERIALIZATION
