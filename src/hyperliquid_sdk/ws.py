"""
ws.py – Async WebSocket transport for the Hyperliquid API.

One connection carries both request/response traffic and subscriptions.

Outbound frames
  {"method": "post", "id": 7, "request": {"type": "info" | "action", "payload": {...}}}
  {"method": "subscribe",   "subscription": {"type": "l2Book", "coin": "ETH"}}
  {"method": "unsubscribe", "subscription": {...}}

Inbound frames
  {"channel": "post",  "data": {"id": 7, "response": {"type": "info", "payload": {"type": "...", "data": ...}}}}
  {"channel": "error", "data": "Error parsing ... {original request json}"}
  {"channel": "l2Book", "data": {...}}

This transport:
1. Correlates ``post`` responses with their request id and resolves the
   waiting future; ``info`` responses are unwrapped to their ``data``.
2. Fails a pending request when the server echoes it back on the
   ``error`` channel, and fails every pending request when the
   connection drops.
3. Dispatches subscription frames to registered async handlers, with
   optional per-subscription typed deserialization.

There is no reconnect: once the connection is gone, requests raise
WebSocketRequestError until connect() is called again.

Usage
-----
    from hyperliquid_sdk import WebSocketTransport, HyperliquidEnv

    async def on_book(msg: dict) -> None:
        print(msg["data"]["levels"][0][:3])

    async with WebSocketTransport(HyperliquidEnv.TESTNET) as ws:
        await ws.subscribe({"type": "l2Book", "coin": "ETH"}, on_book)
        mids = await ws.request("info", {"type": "allMids"})
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import re
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from .errors import TransportError
from .types import HyperliquidEnv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

# Handler: receives the full decoded frame, or a deserialized instance
Handler = Callable[[Any], Coroutine[Any, Any, None]]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_PING_INTERVAL_S = 20
_PONG_TIMEOUT_S  = 10
_DEFAULT_TIMEOUT_S = 10.0

# Endpoint name → post request type.  Explorer has no WebSocket route.
_POST_TYPES = {"info": "info", "exchange": "action"}

# Subscription types whose data arrives on a differently named channel
_CHANNEL_ALIASES = {"userEvents": "user"}

_CONTROL_CHANNELS = {"subscriptionResponse", "pong"}

_EMBEDDED_JSON_RE = re.compile(r"\{.*\}")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class WebSocketRequestError(TransportError):
    """A WebSocket request failed: server error, timeout or closed connection."""


# ---------------------------------------------------------------------------
# Subscription registry
# ---------------------------------------------------------------------------

@dataclass
class _Subscription:
    subscription: dict[str, Any]
    handler:      Handler
    msg_type:     Optional[type[Any]]    # if set, frame["data"] is deserialized to this type

    @property
    def channel(self) -> str:
        kind = self.subscription.get("type", "")
        return _CHANNEL_ALIASES.get(kind, kind)

    def matches(self, channel: str, data: Any) -> bool:
        if channel != self.channel:
            return False
        coin = self.subscription.get("coin")
        if coin is not None and isinstance(data, dict) and "coin" in data:
            return data["coin"] == coin
        return True


def _deserialize(msg: dict[str, Any], msg_type: Optional[type[Any]]) -> Any:
    """
    Attempt to deserialize msg["data"] into msg_type.

    Falls back to the raw data if validation fails, or returns the full
    frame when msg_type is None.
    """
    if msg_type is None:
        return msg

    data = msg.get("data", msg)
    try:
        if hasattr(msg_type, "model_validate"):
            return msg_type.model_validate(data)
        return msg_type(data)
    except (TypeError, ValueError):
        logger.debug("Failed to deserialize %s into %s – passing raw data", data, msg_type)
        return data


# ---------------------------------------------------------------------------
# WebSocket transport
# ---------------------------------------------------------------------------

class WebSocketTransport:
    """
    Async WebSocket transport.

    Parameters
    ----------
    env     : Target environment (selects the WebSocket URL)
    timeout : Seconds to wait for a post response
    url     : Override for the WebSocket URL
    """

    def __init__(
        self,
        env:     HyperliquidEnv = HyperliquidEnv.MAINNET,
        timeout: float = _DEFAULT_TIMEOUT_S,
        url:     Optional[str] = None,
    ) -> None:
        self.env            = env
        self._timeout       = timeout
        self._url           = url or env.ws_url
        self._ids           = itertools.count(1)
        self._pending:       dict[int, asyncio.Future[Any]] = {}
        self._subscriptions: list[_Subscription]           = []
        self._ws:            Optional[Any]                  = None
        self._recv_task:     Optional[asyncio.Task[None]]   = None

    @property
    def is_testnet(self) -> bool:
        return self.env.is_testnet

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._recv_task is not None and not self._recv_task.done()

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "WebSocketTransport":
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection and start the receive loop."""
        if self.connected:
            return
        logger.info("Connecting to Hyperliquid WebSocket at %s", self._url)
        self._ws = await websockets.connect(
            self._url,
            ping_interval=_PING_INTERVAL_S,
            ping_timeout=_PONG_TIMEOUT_S,
        )
        self._recv_task = asyncio.create_task(self._recv_loop(self._ws))
        logger.info("WebSocket connected")

    async def close(self) -> None:
        """Close the connection and fail any request still waiting."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        if self._recv_task is not None:
            self._recv_task.cancel()
            try:
                await self._recv_task
            except asyncio.CancelledError:
                pass
            self._recv_task = None
        self._fail_pending("connection is closed")

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(self, endpoint: str, payload: Any) -> Any:
        """
        Send a post request and wait for its response.

        ``info`` responses are unwrapped to ``payload["data"]``; ``exchange``
        responses are returned as the exchange's response payload.
        """
        post_type = _POST_TYPES.get(endpoint)
        if post_type is None:
            raise WebSocketRequestError(f"Endpoint {endpoint!r} is not available over WebSocket")
        if self._ws is None:
            raise WebSocketRequestError("Cannot complete WebSocket request: not connected")

        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        frame = {
            "method":  "post",
            "id":      request_id,
            "request": {"type": post_type, "payload": payload},
        }
        logger.debug("WS post id=%d type=%s", request_id, post_type)
        try:
            await self._ws.send(json.dumps(frame))
            return await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise WebSocketRequestError(
                f"Timed out after {self._timeout:.1f} s waiting for post id={request_id}"
            ) from exc
        except ConnectionClosed as exc:
            raise WebSocketRequestError("Cannot complete WebSocket request: connection is closed") from exc
        finally:
            self._pending.pop(request_id, None)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        subscription: dict[str, Any],
        handler:      Handler,
        msg_type:     Optional[type[Any]] = None,
    ) -> None:
        """
        Subscribe to a feed.

        Parameters
        ----------
        subscription : Subscription object, e.g. {"type": "trades", "coin": "ETH"}
        handler      : Async callback.
                       - If msg_type is None: receives the full decoded frame.
                       - If msg_type is set:  receives an instance of msg_type
                         built from frame["data"], falling back to the raw
                         data if validation fails.
        msg_type     : Optional pydantic model to deserialize each frame into
        """
        self._subscriptions.append(_Subscription(subscription, handler, msg_type))
        if self._ws is not None:
            await self._ws.send(json.dumps({"method": "subscribe", "subscription": subscription}))

    async def unsubscribe(self, subscription: dict[str, Any]) -> None:
        """Remove every handler for ``subscription`` and notify the server."""
        self._subscriptions = [s for s in self._subscriptions if s.subscription != subscription]
        if self._ws is not None:
            await self._ws.send(json.dumps({"method": "unsubscribe", "subscription": subscription}))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _recv_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Received non-JSON WebSocket message: %r", raw)
                    continue
                if isinstance(msg, dict):
                    await self._handle_message(msg)
        except ConnectionClosed as exc:
            logger.info("WebSocket closed: %s", exc)
        finally:
            self._fail_pending("connection is closed")

    async def _handle_message(self, msg: dict[str, Any]) -> None:
        channel = msg.get("channel", "")
        data    = msg.get("data")

        if channel == "post":
            self._resolve_post(data)
        elif channel == "error":
            self._reject_from_error(data)
        elif channel in _CONTROL_CHANNELS:
            return
        else:
            await self._dispatch(channel, msg)

    def _resolve_post(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning("Malformed post response: %r", data)
            return
        future = self._pending.get(data.get("id"))
        if future is None or future.done():
            return

        response = data.get("response") or {}
        kind     = response.get("type")
        payload  = response.get("payload")
        if kind == "error":
            future.set_exception(WebSocketRequestError(f"Cannot complete WebSocket request: {payload}"))
        elif kind == "info" and isinstance(payload, dict):
            future.set_result(payload.get("data"))
        else:
            future.set_result(payload)

    def _reject_from_error(self, data: Any) -> None:
        """The error channel carries no id; recover it from the echoed request."""
        text  = str(data)
        match = _EMBEDDED_JSON_RE.search(text)
        if match is None:
            logger.warning("WebSocket error: %s", text)
            return
        try:
            request = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.warning("WebSocket error: %s", text)
            return

        future = self._pending.get(request.get("id")) if isinstance(request, dict) else None
        if future is not None and not future.done():
            future.set_exception(WebSocketRequestError(f"Cannot complete WebSocket request: {text}"))
        else:
            logger.warning("WebSocket error: %s", text)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(WebSocketRequestError(f"Cannot complete WebSocket request: {reason}"))
        self._pending.clear()

    async def _dispatch(self, channel: str, msg: dict[str, Any]) -> None:
        """Find and call the handler(s) for the given channel."""
        data = msg.get("data")
        for sub in self._subscriptions:
            if not sub.matches(channel, data):
                continue
            try:
                await sub.handler(_deserialize(msg, sub.msg_type))
            except Exception:
                logger.exception("Unhandled exception in WebSocket handler for %s", channel)
