"""
client.py – Unified HyperliquidClient façade.

Single entry point that owns one async transport and exposes the info and
exchange clients built on it, so the connection is opened and closed once.

Usage
-----
    import asyncio
    from hyperliquid_sdk import HyperliquidClient, HyperliquidEnv, OrderRequest, PrivateKeySigner

    async def main() -> None:
        signer = PrivateKeySigner("0x...")
        async with HyperliquidClient(signer, env=HyperliquidEnv.TESTNET) as client:
            mids = await client.info.all_mids()
            await client.exchange.order([
                OrderRequest(asset=0, is_buy=True, price="30000", size="0.001"),
            ])

    asyncio.run(main())
"""

from __future__ import annotations

from typing import Any, Optional

from .exchange import ExchangeClient
from .info import AsyncInfoClient, AsyncTransport
from .rest import AsyncHttpTransport
from .types import HyperliquidEnv


class HyperliquidClient:
    """
    Unified façade for the Hyperliquid SDK.

    Parameters
    ----------
    wallet    : Wallet used for signed actions.  Without one only ``info``
                is available.
    env       : HyperliquidEnv.MAINNET / HyperliquidEnv.TESTNET
    transport : Async transport to use instead of a new AsyncHttpTransport
                (e.g. a WebSocketTransport); closed together with the client
    timeout   : HTTP timeout in seconds for the default transport
    **exchange_options : Forwarded to ExchangeClient (signature_chain_id,
                default_vault_address, ...)
    """

    def __init__(
        self,
        wallet: Any = None,
        env: HyperliquidEnv = HyperliquidEnv.MAINNET,
        *,
        transport: Optional[AsyncTransport] = None,
        timeout: float = 10.0,
        **exchange_options: Any,
    ) -> None:
        self.transport = transport or AsyncHttpTransport(env, timeout=timeout)
        self.info      = AsyncInfoClient(self.transport)
        self._exchange = (
            ExchangeClient(wallet, self.transport, **exchange_options)
            if wallet is not None else None
        )

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "HyperliquidClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.transport.close()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def exchange(self) -> ExchangeClient:
        if self._exchange is None:
            raise RuntimeError("HyperliquidClient was created without a wallet; exchange actions are unavailable")
        return self._exchange

    @property
    def env(self) -> HyperliquidEnv:
        return self.transport.env
