"""
rest.py – HTTP transports (sync and async) for the Hyperliquid API.

Every Hyperliquid HTTP call is a JSON POST to one of three endpoints:

  /info      read-only queries           (API host)
  /exchange  signed actions              (API host)
  /explorer  block / transaction lookups (RPC host)

The transports only move JSON; signing and response validation happen in
exchange.py.  Both raise HttpRequestError on non-2xx responses, on bodies
that are not JSON, and on ``{"type": "error", ...}`` bodies.  Nothing is
retried: a nonce-bearing action must never be replayed blindly.

Usage – sync
------------
    from hyperliquid_sdk import HttpTransport, HyperliquidEnv

    transport = HttpTransport(HyperliquidEnv.TESTNET)
    mids = transport.request("info", {"type": "allMids"})

Usage – async
-------------
    async with AsyncHttpTransport(HyperliquidEnv.TESTNET) as transport:
        mids = await transport.request("info", {"type": "allMids"})
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import requests

from .errors import TransportError
from .types import HyperliquidEnv

logger = logging.getLogger(__name__)

ENDPOINTS = ("info", "exchange", "explorer")

_DEFAULT_TIMEOUT_S = 10.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class HttpRequestError(TransportError):
    """Raised when a Hyperliquid HTTP endpoint returns an error response."""

    def __init__(self, status_code: int, body: str, endpoint: str = "") -> None:
        self.status_code = status_code
        self.body        = body
        self.endpoint    = endpoint
        location = f" /{endpoint}" if endpoint else ""
        super().__init__(f"Hyperliquid HTTP error [{status_code}]{location}: {body}")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _endpoint_url(env: HyperliquidEnv, endpoint: str, api_url: Optional[str]) -> str:
    if endpoint not in ENDPOINTS:
        raise ValueError(f"Unknown endpoint {endpoint!r}; expected one of {ENDPOINTS}")
    if endpoint == "explorer":
        return f"{env.rpc_url}/{endpoint}"
    return f"{api_url or env.api_url}/{endpoint}"


def _parse_body(status: int, text: str, endpoint: str) -> Any:
    """Decode a response body; raises HttpRequestError for error responses."""
    if status < 200 or status >= 300:
        raise HttpRequestError(status, text, endpoint)
    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise HttpRequestError(status, text, endpoint) from exc
    if isinstance(body, dict) and body.get("type") == "error":
        raise HttpRequestError(status, text, endpoint)
    return body


# ---------------------------------------------------------------------------
# Synchronous transport
# ---------------------------------------------------------------------------

class HttpTransport:
    """
    Synchronous HTTP transport (requests-based).

    Parameters
    ----------
    env     : Target environment (selects API and RPC hosts)
    timeout : HTTP timeout in seconds
    api_url : Override for the API host, e.g. a local proxy
    session : Optional pre-configured requests.Session
    """

    def __init__(
        self,
        env: HyperliquidEnv = HyperliquidEnv.MAINNET,
        timeout: float = _DEFAULT_TIMEOUT_S,
        api_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.env      = env
        self._timeout = timeout
        self._api_url = api_url
        self._session = session or requests.Session()

    @property
    def is_testnet(self) -> bool:
        return self.env.is_testnet

    def request(self, endpoint: str, payload: Any) -> Any:
        """POST ``payload`` to ``endpoint`` and return the decoded JSON body."""
        url = _endpoint_url(self.env, endpoint, self._api_url)
        logger.debug("POST %s  type=%s", url, _payload_type(payload))
        resp = self._session.post(url, json=payload, timeout=self._timeout)
        return _parse_body(resp.status_code, resp.text, endpoint)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncHttpTransport:
    """
    Async HTTP transport (aiohttp-based).

    The aiohttp session is created on first use and closed by close() /
    the async context manager.
    """

    def __init__(
        self,
        env: HyperliquidEnv = HyperliquidEnv.MAINNET,
        timeout: float = _DEFAULT_TIMEOUT_S,
        api_url: Optional[str] = None,
    ) -> None:
        self.env      = env
        self._timeout = timeout
        self._api_url = api_url
        self._session: Any = None   # aiohttp.ClientSession, created on first use

    @property
    def is_testnet(self) -> bool:
        return self.env.is_testnet

    async def __aenter__(self) -> "AsyncHttpTransport":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def request(self, endpoint: str, payload: Any) -> Any:
        import aiohttp

        url = _endpoint_url(self.env, endpoint, self._api_url)
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        logger.debug("POST %s  type=%s", url, _payload_type(payload))
        async with self._session.post(
            url,
            json=payload,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as resp:
            text = await resp.text()
            return _parse_body(resp.status, text, endpoint)


def _payload_type(payload: Any) -> Any:
    """Best-effort label for debug logs (never logs signatures)."""
    if not isinstance(payload, dict):
        return None
    action = payload.get("action")
    if isinstance(action, dict):
        return action.get("type")
    return payload.get("type")
