"""
wallet.py – Typed-data signing across wallet conventions.

The signing functions never touch a private key directly; they hand a
typed-data payload to a *wallet* and get a 65-byte signature back.  Three
wallet shapes are recognised, checked in this order:

  SINGLE_ARG         sign_typed_data(typed_data)
                     One payload holding domain, types (EIP712Domain
                     included), primaryType and message.  ``address`` or
                     ``get_addresses()`` give the account.
  TRIPLE_ARG         sign_typed_data(domain, types, message)
                     EIP712Domain is *not* part of ``types``.
                     ``get_address()`` gives the account.
  TRIPLE_ARG_LEGACY  _sign_typed_data(domain, types, message)
                     Same payload under the older method name.

Methods may be plain functions or coroutines.  Signatures may come back as
hex ``str`` or raw ``bytes``.  Exceptions raised by the wallet itself are
propagated unchanged.

PrivateKeySigner is the built-in SINGLE_ARG wallet: it hashes the payload
with typed_data.hash_typed_data and signs the digest with eth_account.

An eth_account ``LocalAccount`` (``Account.from_key(...)``) is *not* a
wallet in this sense: its ``sign_typed_data(domain_data=None,
message_types=None, message_data=None, full_message=None)`` has no required
positional parameters, so it matches none of the shapes above.  Wrap the key
in PrivateKeySigner instead.
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum, unique
from typing import Any, Mapping, Optional, Union

from eth_account import Account

from .errors import UnsupportedWalletError
from .hexutils import bytes_to_hex, split_signature
from .typed_data import DOMAIN_TYPE, build_domain_fields, hash_typed_data
from .types import Signature, TypedDataDomain

logger = logging.getLogger(__name__)

_DEFAULT_CHAIN_ID = "0x1"


@unique
class WalletKind(Enum):
    SINGLE_ARG        = "single_arg"
    TRIPLE_ARG        = "triple_arg"
    TRIPLE_ARG_LEGACY = "triple_arg_legacy"


# ---------------------------------------------------------------------------
# Capability detection
# ---------------------------------------------------------------------------

def _required_positional(fn: Any) -> Optional[int]:
    """Number of required positional parameters of ``fn`` (None if not introspectable)."""
    if not callable(fn):
        return None
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return None
    return sum(
        1
        for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        and p.default is p.empty
    )


def detect_wallet(wallet: Any) -> Optional[WalletKind]:
    """Classify ``wallet``; None when it matches no supported shape."""
    if wallet is None:
        return None
    arity = _required_positional(getattr(wallet, "sign_typed_data", None))
    if arity == 1:
        return WalletKind.SINGLE_ARG
    if arity == 3:
        return WalletKind.TRIPLE_ARG
    if _required_positional(getattr(wallet, "_sign_typed_data", None)) == 3:
        return WalletKind.TRIPLE_ARG_LEGACY
    return None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _signature_to_hex(raw: Union[str, bytes, bytearray]) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes_to_hex(raw)
    return raw


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

async def sign_typed_data(
    wallet: Any,
    domain: Union[TypedDataDomain, Mapping[str, Any]],
    types: Mapping[str, Any],
    primary_type: str,
    message: Mapping[str, Any],
) -> Signature:
    """
    Have ``wallet`` sign the typed-data payload and split the result.

    ``types`` must not contain EIP712Domain; for SINGLE_ARG wallets it is
    prepended from the domain's present fields.

    Raises
    ------
    UnsupportedWalletError  if ``wallet`` matches no known shape
    InvalidFormatError      if the wallet returns a malformed signature
    """
    kind = detect_wallet(wallet)
    if kind is None:
        raise UnsupportedWalletError(
            f"Cannot sign typed data with {type(wallet).__name__}: "
            "no sign_typed_data(typed_data), sign_typed_data(domain, types, message) "
            "or _sign_typed_data(domain, types, message) method; "
            "wrap a raw private key in PrivateKeySigner"
        )

    domain_dict = domain.to_dict() if isinstance(domain, TypedDataDomain) else dict(domain)
    logger.debug("Signing %s with %s wallet", primary_type, kind.value)

    if kind is WalletKind.SINGLE_ARG:
        raw = await _maybe_await(wallet.sign_typed_data({
            "domain":      domain_dict,
            "types":       {DOMAIN_TYPE: build_domain_fields(domain_dict), **types},
            "primaryType": primary_type,
            "message":     dict(message),
        }))
    elif kind is WalletKind.TRIPLE_ARG:
        raw = await _maybe_await(wallet.sign_typed_data(domain_dict, dict(types), dict(message)))
    else:
        raw = await _maybe_await(wallet._sign_typed_data(domain_dict, dict(types), dict(message)))

    return split_signature(_signature_to_hex(raw))


# ---------------------------------------------------------------------------
# Wallet helpers
# ---------------------------------------------------------------------------

async def get_wallet_address(wallet: Any) -> str:
    """Lower-case account address of ``wallet``."""
    kind = detect_wallet(wallet)
    if kind is WalletKind.SINGLE_ARG:
        address = getattr(wallet, "address", None)
        if isinstance(address, str):
            return address.lower()
        if callable(getattr(wallet, "get_addresses", None)):
            addresses = await _maybe_await(wallet.get_addresses())
            return addresses[0].lower()
    elif kind is not None and callable(getattr(wallet, "get_address", None)):
        address = await _maybe_await(wallet.get_address())
        return address.lower()
    raise UnsupportedWalletError(f"Cannot determine the address of {type(wallet).__name__}")


async def get_wallet_chain_id(wallet: Any) -> str:
    """
    Chain id the wallet is connected to, as 0x-hex.

    Falls back to ``0x1`` for wallets that are not bound to a chain
    (local accounts, signers without a provider).
    """
    kind = detect_wallet(wallet)
    if kind is WalletKind.SINGLE_ARG and callable(getattr(wallet, "get_chain_id", None)):
        chain_id = await _maybe_await(wallet.get_chain_id())
        return hex(int(chain_id))
    if kind in (WalletKind.TRIPLE_ARG, WalletKind.TRIPLE_ARG_LEGACY):
        provider = getattr(wallet, "provider", None)
        if provider is not None:
            network = await _maybe_await(provider.get_network())
            return hex(int(network.chain_id))
    return _DEFAULT_CHAIN_ID


# ---------------------------------------------------------------------------
# Private-key wallet
# ---------------------------------------------------------------------------

class PrivateKeySigner:
    """
    Local SINGLE_ARG wallet backed by a raw secp256k1 private key.

    Usage::

        signer = PrivateKeySigner("0x...")
        sig = await sign_l1_action(signer, action, nonce)

    Signing is deterministic (RFC 6979), so the same payload always yields
    the same signature.
    """

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        """Checksummed address of the key."""
        return self._account.address

    def sign_typed_data(self, typed_data: Mapping[str, Any]) -> str:
        """Sign a full typed-data payload; returns the 65-byte signature as hex."""
        digest = hash_typed_data(typed_data)
        signed = self._account.unsafe_sign_hash(digest)
        return bytes_to_hex(bytes(signed.signature))

    def __repr__(self) -> str:
        return f"PrivateKeySigner(address={self.address!r})"
