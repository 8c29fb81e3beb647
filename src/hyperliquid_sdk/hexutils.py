"""
hexutils.py – Hex/bytes conversion and signature splitting.

The signing core moves values between three representations: 0x-prefixed
hex strings (what users and the exchange see), raw bytes (what gets
hashed) and integers (uint/int fields, nonces).  The helpers here are the
only place where hex is parsed, so malformed input is reported uniformly as
InvalidFormatError.
"""

from __future__ import annotations

import re

from .errors import InvalidFormatError
from .types import Signature

_HEX_DIGITS_RE = re.compile(r"[0-9a-fA-F]*")

# r (32) + s (32) + v (1) bytes
_SIGNATURE_HEX_LEN = 130


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: str) -> bytes:
    """
    Decode a hex string (with or without ``0x``) into bytes.

    Raises InvalidFormatError on an odd number of digits or any non-hex
    character.  ``bytes.fromhex`` alone is not enough: it tolerates
    whitespace between byte pairs.
    """
    if not isinstance(value, str):
        raise InvalidFormatError(f"expected a hex string, got {type(value).__name__}")
    digits = strip_hex_prefix(value)
    if len(digits) % 2:
        raise InvalidFormatError(f"hex string has an odd number of digits: {value!r}")
    if not _HEX_DIGITS_RE.fullmatch(digits):
        raise InvalidFormatError(f"invalid hex string: {value!r}")
    return bytes.fromhex(digits)


def bytes_to_hex(data: bytes) -> str:
    """Lowercase, 0x-prefixed hex of ``data``."""
    return "0x" + bytes(data).hex()


def int_to_bytes(value: int, length: int) -> bytes:
    """Fixed-width big-endian encoding of a non-negative integer."""
    return value.to_bytes(length, "big")


def split_signature(signature: str) -> Signature:
    """
    Split a 65-byte hex signature into ``Signature(r, s, v)``.

    v is the raw trailing byte.  Callers that need a recoverable signature
    must check that it is 27 or 28 themselves.
    """
    digits = strip_hex_prefix(signature) if isinstance(signature, str) else ""
    if len(digits) != _SIGNATURE_HEX_LEN:
        raise InvalidFormatError(
            f"signature must be {_SIGNATURE_HEX_LEN} hex digits (65 bytes), got {len(digits)}"
        )
    hex_to_bytes(digits)   # validates the characters
    return Signature(
        r="0x" + digits[0:64],
        s="0x" + digits[64:128],
        v=int(digits[128:130], 16),
    )


def join_signature(signature: Signature) -> str:
    """Inverse of split_signature: ``0x`` + r + s + v as 130 hex digits."""
    return "0x" + signature.r[2:] + signature.s[2:] + f"{signature.v:02x}"
