"""
errors.py – Exception hierarchy for the typed-data signing core.

Everything raised by this package derives from HyperliquidError, so
callers can catch one base class.  The encoding errors also derive from
ValueError and the wallet error from TypeError, which keeps them catchable
by code that only knows the builtin categories.

Transport and API errors live next to the code that raises them:

    rest.py      → HttpRequestError
    ws.py        → WebSocketRequestError
    exchange.py  → ApiRequestError

Errors raised *by a wallet* while signing are never wrapped; the caller
sees the wallet's own exception.
"""

from __future__ import annotations


class HyperliquidError(Exception):
    """Base class for every error raised by hyperliquid_sdk."""


class EncodingError(HyperliquidError, ValueError):
    """A value does not conform to the EIP-712 type it is encoded against."""


class InvalidFormatError(EncodingError):
    """Malformed hex input: odd digit count, bad characters or wrong length."""


class UnsupportedTypeError(EncodingError):
    """A type name is neither a known primitive nor a struct in the type dictionary."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Unsupported EIP-712 type: {type_name!r}")


class UnsupportedWalletError(HyperliquidError, TypeError):
    """The wallet object matches none of the known typed-data signing conventions."""


class TransportError(HyperliquidError):
    """Base class for failures of the HTTP / WebSocket transports."""
