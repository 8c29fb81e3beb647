"""
info.py – Read-only queries against the /info endpoint.

Every query is a single ``{"type": ..., ...}`` payload; responses are
returned as decoded JSON.  InfoClient drives a sync transport,
AsyncInfoClient any async one (AsyncHttpTransport or WebSocketTransport).

Usage
-----
    info = InfoClient(HttpTransport(HyperliquidEnv.TESTNET))
    book = info.l2_book("ETH")

    async with AsyncHttpTransport() as transport:
        mids = await AsyncInfoClient(transport).all_mids()
"""

from __future__ import annotations

from typing import Any, Optional, Union

from .rest import AsyncHttpTransport, HttpTransport
from .ws import WebSocketTransport

AsyncTransport = Union[AsyncHttpTransport, WebSocketTransport]


def _user_query(kind: str, user: str, **extra: Any) -> dict[str, Any]:
    return {"type": kind, "user": user.lower(), **extra}


def _order_status_query(user: str, oid: Union[int, str]) -> dict[str, Any]:
    # Integer oids are exchange order ids; 0x strings are client order ids.
    return _user_query("orderStatus", user, oid=oid.lower() if isinstance(oid, str) else oid)


def _l2_book_query(coin: str, n_sig_figs: Optional[int]) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": "l2Book", "coin": coin}
    if n_sig_figs is not None:
        payload["nSigFigs"] = n_sig_figs
    return payload


class InfoClient:
    """Synchronous info queries over an HttpTransport."""

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport

    def _post(self, payload: dict[str, Any]) -> Any:
        return self._transport.request("info", payload)

    def meta(self) -> Any:
        """Perpetuals universe: asset names, size decimals, max leverage."""
        return self._post({"type": "meta"})

    def spot_meta(self) -> Any:
        return self._post({"type": "spotMeta"})

    def all_mids(self) -> dict[str, str]:
        """Mid price of every coin, keyed by coin name."""
        return self._post({"type": "allMids"})

    def l2_book(self, coin: str, n_sig_figs: Optional[int] = None) -> Any:
        return self._post(_l2_book_query(coin, n_sig_figs))

    def clearinghouse_state(self, user: str) -> Any:
        """Margin summary and open positions of ``user``."""
        return self._post(_user_query("clearinghouseState", user))

    def open_orders(self, user: str) -> list[Any]:
        return self._post(_user_query("openOrders", user))

    def order_status(self, user: str, oid: Union[int, str]) -> Any:
        """Status of one order by exchange id (int) or client id (0x hex)."""
        return self._post(_order_status_query(user, oid))

    def user_fees(self, user: str) -> Any:
        return self._post(_user_query("userFees", user))


class AsyncInfoClient:
    """Async info queries over AsyncHttpTransport or WebSocketTransport."""

    def __init__(self, transport: AsyncTransport) -> None:
        self._transport = transport

    async def _post(self, payload: dict[str, Any]) -> Any:
        return await self._transport.request("info", payload)

    async def meta(self) -> Any:
        return await self._post({"type": "meta"})

    async def spot_meta(self) -> Any:
        return await self._post({"type": "spotMeta"})

    async def all_mids(self) -> dict[str, str]:
        return await self._post({"type": "allMids"})

    async def l2_book(self, coin: str, n_sig_figs: Optional[int] = None) -> Any:
        return await self._post(_l2_book_query(coin, n_sig_figs))

    async def clearinghouse_state(self, user: str) -> Any:
        return await self._post(_user_query("clearinghouseState", user))

    async def open_orders(self, user: str) -> list[Any]:
        return await self._post(_user_query("openOrders", user))

    async def order_status(self, user: str, oid: Union[int, str]) -> Any:
        return await self._post(_order_status_query(user, oid))

    async def user_fees(self, user: str) -> Any:
        return await self._post(_user_query("userFees", user))
