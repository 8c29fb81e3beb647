"""
exchange.py – Signed actions against the /exchange endpoint.

ExchangeClient ties the pieces together:

  wallet ──► signing.sign_l1_action / sign_user_signed_action
         ──► transport.request("exchange", {action, signature, nonce, ...})
         ──► assert_success_response()

Nonces
------
The exchange rejects a nonce it has already seen for the signer and
expects them to be recent millisecond timestamps.  NonceManager hands out
``max(now_ms, last + 1)`` per (address, network) key, and ExchangeClient
holds an asyncio.Lock per key from nonce allocation until the response
arrives, so requests reach the server in nonce order.

Errors
------
A 200 response can still carry an error: ``{"status": "err", ...}`` or
per-order ``{"error": "..."}`` entries.  assert_success_response() turns
all of those into ApiRequestError.

Usage
-----
    async with AsyncHttpTransport(HyperliquidEnv.TESTNET) as transport:
        exchange = ExchangeClient(PrivateKeySigner("0x..."), transport)
        await exchange.order([OrderRequest(asset=0, is_buy=True, price="30000", size="0.1")])
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Callable, Sequence
from typing import Any, Optional, Union

from .errors import HyperliquidError
from .info import AsyncTransport
from .signing import (
    USER_SIGNED_ACTION_TYPES,
    NonceProvider,
    sign_l1_action,
    sign_user_signed_action,
)
from .types import Grouping, OrderRequest, format_decimal
from .wallet import get_wallet_address, get_wallet_chain_id

logger = logging.getLogger(__name__)

ExpiresAfter = Union[int, Callable[[], int]]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ApiRequestError(HyperliquidError):
    """Raised when the exchange accepts a request but reports an error in the body."""

    def __init__(self, message: str, response: Any) -> None:
        self.response = response
        super().__init__(message)


def _has_error(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("error"), str)


def _response_data(response: Any) -> dict[str, Any]:
    inner = response.get("response") if isinstance(response, dict) else None
    data  = inner.get("data") if isinstance(inner, dict) else None
    return data if isinstance(data, dict) else {}


def assert_success_response(response: Any) -> None:
    """
    Raise ApiRequestError if ``response`` reports a failure.

    Recognised shapes:

    - ``{"status": "err", "response": "<message>"}``
    - ``{"response": {"data": {"statuses": [..., {"error": "..."}, ...]}}}``
    - ``{"response": {"data": {"status": {"error": "..."}}}}``
    """
    if isinstance(response, dict) and response.get("status") == "err":
        raise ApiRequestError(str(response.get("response", "unknown error")), response)

    data = _response_data(response)
    statuses = data.get("statuses")
    if isinstance(statuses, list):
        errors = [f"Order {i}: {s['error']}" for i, s in enumerate(statuses) if _has_error(s)]
        if errors:
            raise ApiRequestError(", ".join(errors), response)

    status = data.get("status")
    if _has_error(status):
        raise ApiRequestError(status["error"], response)


# ---------------------------------------------------------------------------
# Nonces
# ---------------------------------------------------------------------------

class NonceManager:
    """
    Millisecond-timestamp nonces, strictly increasing per key.

    The key is usually ``"<address>:<network>"``.  lock(key) returns the
    asyncio.Lock that serialises requests for that key on the running event
    loop.  Nonces are shared across loops; each loop gets its own locks,
    because an asyncio.Lock is bound to the loop it is first used on.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last:  dict[str, int]          = {}
        self._locks: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, dict[str, asyncio.Lock]
        ] = weakref.WeakKeyDictionary()

    def get_nonce(self, key: str) -> int:
        nonce = int(self._clock() * 1000)
        last  = self._last.get(key, 0)
        if nonce <= last:
            nonce = last + 1
        self._last[key] = nonce
        return nonce

    def lock(self, key: str) -> asyncio.Lock:
        """Must be called from a running event loop."""
        locks = self._locks.setdefault(asyncio.get_running_loop(), {})
        if key not in locks:
            locks[key] = asyncio.Lock()
        return locks[key]


# Shared by every ExchangeClient that is not given its own manager, so two
# clients for the same wallet never collide.
default_nonce_manager = NonceManager()


def _nonce_field(types: dict[str, Any]) -> str:
    """``nonce`` or ``time``, whichever the primary type declares."""
    primary = next(iter(types))
    for field in types[primary]:
        if field["name"] in ("nonce", "time"):
            return field["name"]
    return "nonce"


# ---------------------------------------------------------------------------
# Exchange client
# ---------------------------------------------------------------------------

class ExchangeClient:
    """
    Async client for signed exchange actions.

    Parameters
    ----------
    wallet                : Any supported wallet (see wallet.py)
    transport             : AsyncHttpTransport or WebSocketTransport
    signature_chain_id    : Chain id for user-signed actions (0x-hex);
                            defaults to the wallet's chain id
    default_vault_address : Vault / sub-account used when an L1 call gives none
    default_expires_after : Expiry (ms timestamp, or a callable returning one)
                            used when an L1 call gives none
    nonce_provider        : Replaces the nonce manager's timestamps
    nonce_manager         : Defaults to the process-wide manager
    """

    def __init__(
        self,
        wallet:                Any,
        transport:             AsyncTransport,
        *,
        signature_chain_id:    Optional[str] = None,
        default_vault_address: Optional[str] = None,
        default_expires_after: Optional[ExpiresAfter] = None,
        nonce_provider:        Optional[NonceProvider] = None,
        nonce_manager:         Optional[NonceManager] = None,
    ) -> None:
        self.wallet                 = wallet
        self.transport              = transport
        self._signature_chain_id    = signature_chain_id
        self._default_vault_address = default_vault_address
        self._default_expires_after = default_expires_after
        self._nonce_provider        = nonce_provider
        self._nonces                = nonce_manager or default_nonce_manager

    # ------------------------------------------------------------------
    # Core flows
    # ------------------------------------------------------------------

    async def _nonce_key(self) -> str:
        address = await get_wallet_address(self.wallet)
        return f"{address}:{self.transport.env.value}"

    def _next_nonce(self, key: str) -> int:
        if self._nonce_provider is not None:
            return self._nonce_provider()
        return self._nonces.get_nonce(key)

    def _resolve_expires_after(self, expires_after: Optional[int]) -> Optional[int]:
        if expires_after is not None:
            return expires_after
        default = self._default_expires_after
        return default() if callable(default) else default

    async def execute_l1_action(
        self,
        action: dict[str, Any],
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        """Sign ``action`` as an L1 action, submit it and validate the response."""
        vault_address = vault_address or self._default_vault_address
        if vault_address is not None:
            vault_address = vault_address.lower()
        expires_after = self._resolve_expires_after(expires_after)

        key = await self._nonce_key()
        async with self._nonces.lock(key):
            nonce = self._next_nonce(key)
            signature = await sign_l1_action(
                self.wallet,
                action,
                nonce,
                is_testnet=self.transport.is_testnet,
                vault_address=vault_address,
                expires_after=expires_after,
            )
            payload: dict[str, Any] = {
                "action":    action,
                "signature": signature.to_dict(),
                "nonce":     nonce,
            }
            if vault_address is not None:
                payload["vaultAddress"] = vault_address
            if expires_after is not None:
                payload["expiresAfter"] = expires_after

            logger.debug("Submitting %s (nonce=%d)", action.get("type"), nonce)
            response = await self.transport.request("exchange", payload)
        assert_success_response(response)
        return response

    async def execute_user_signed_action(
        self,
        action: dict[str, Any],
        types: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Complete, sign and submit a user-signed action.

        ``action`` needs only its ``type`` and business fields; the
        signature chain id, ``hyperliquidChain`` and the nonce / time field
        are filled in here.  ``types`` defaults to the known definition for
        the action's type.
        """
        types = types or USER_SIGNED_ACTION_TYPES[action["type"]]
        signature_chain_id = self._signature_chain_id or await get_wallet_chain_id(self.wallet)

        key = await self._nonce_key()
        async with self._nonces.lock(key):
            nonce = self._next_nonce(key)
            rest = {k: v for k, v in action.items() if k != "type" and v is not None}
            full_action = {
                "type":             action["type"],
                "signatureChainId": signature_chain_id,
                "hyperliquidChain": self.transport.env.chain_label,
                **rest,
                _nonce_field(types): nonce,
            }
            signature = await sign_user_signed_action(self.wallet, full_action, types)

            logger.debug("Submitting %s (nonce=%d)", action["type"], nonce)
            response = await self.transport.request("exchange", {
                "action":    full_action,
                "signature": signature.to_dict(),
                "nonce":     nonce,
            })
        assert_success_response(response)
        return response

    # ------------------------------------------------------------------
    # L1 actions
    # ------------------------------------------------------------------

    async def order(
        self,
        orders: Sequence[OrderRequest],
        grouping: Grouping = Grouping.NA,
        builder: Optional[tuple[str, int]] = None,
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        """
        Place one or more orders.

        builder : optional (builder address, fee in tenths of a basis point)
        """
        action: dict[str, Any] = {
            "type":     "order",
            "orders":   [o.to_wire() for o in orders],
            "grouping": grouping.value,
        }
        if builder is not None:
            address, fee = builder
            action["builder"] = {"b": address.lower(), "f": fee}
        return await self.execute_l1_action(action, vault_address, expires_after)

    async def cancel(
        self,
        cancels: Sequence[tuple[int, int]],
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        """Cancel orders by (asset, exchange order id)."""
        action = {
            "type":    "cancel",
            "cancels": [{"a": asset, "o": oid} for asset, oid in cancels],
        }
        return await self.execute_l1_action(action, vault_address, expires_after)

    async def cancel_by_cloid(
        self,
        cancels: Sequence[tuple[int, str]],
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        """Cancel orders by (asset, client order id)."""
        action = {
            "type":    "cancelByCloid",
            "cancels": [{"asset": asset, "cloid": cloid.lower()} for asset, cloid in cancels],
        }
        return await self.execute_l1_action(action, vault_address, expires_after)

    async def update_leverage(
        self,
        asset: int,
        leverage: int,
        is_cross: bool = True,
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        action = {
            "type":     "updateLeverage",
            "asset":    asset,
            "isCross":  is_cross,
            "leverage": leverage,
        }
        return await self.execute_l1_action(action, vault_address, expires_after)

    async def schedule_cancel(
        self,
        time: Optional[int] = None,
        vault_address: Optional[str] = None,
        expires_after: Optional[int] = None,
    ) -> Any:
        """Cancel all open orders at ``time`` (ms); None clears the schedule."""
        action: dict[str, Any] = {"type": "scheduleCancel"}
        if time is not None:
            action["time"] = time
        return await self.execute_l1_action(action, vault_address, expires_after)

    # ------------------------------------------------------------------
    # User-signed actions
    # ------------------------------------------------------------------

    async def usd_send(self, destination: str, amount: str) -> Any:
        return await self.execute_user_signed_action({
            "type":        "usdSend",
            "destination": destination.lower(),
            "amount":      format_decimal(amount),
        })

    async def spot_send(self, destination: str, token: str, amount: str) -> Any:
        """token is "<name>:<token id>", e.g. "PURR:0xc4bf3f870c0e9465323c0b6ed28096c2"."""
        return await self.execute_user_signed_action({
            "type":        "spotSend",
            "destination": destination.lower(),
            "token":       token,
            "amount":      format_decimal(amount),
        })

    async def withdraw3(self, destination: str, amount: str) -> Any:
        """Withdraw USDC to ``destination`` on the bridge chain."""
        return await self.execute_user_signed_action({
            "type":        "withdraw3",
            "destination": destination.lower(),
            "amount":      format_decimal(amount),
        })

    async def approve_agent(self, agent_address: str, agent_name: Optional[str] = None) -> Any:
        return await self.execute_user_signed_action({
            "type":         "approveAgent",
            "agentAddress": agent_address.lower(),
            "agentName":    agent_name,
        })

    async def approve_builder_fee(self, builder: str, max_fee_rate: str) -> Any:
        """max_fee_rate is a percentage string, e.g. "0.01%"."""
        return await self.execute_user_signed_action({
            "type":       "approveBuilderFee",
            "maxFeeRate": max_fee_rate,
            "builder":    builder.lower(),
        })

    async def usd_class_transfer(self, amount: str, to_perp: bool) -> Any:
        """Move USDC between the spot and perp balances."""
        return await self.execute_user_signed_action({
            "type":   "usdClassTransfer",
            "amount": format_decimal(amount),
            "toPerp": to_perp,
        })
