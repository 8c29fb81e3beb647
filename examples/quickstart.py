"""
examples/quickstart.py – End-to-end demo of the Hyperliquid SDK.

Walks through the full order pipeline:
  1. Fetch live market data over HTTP (mids, orderbook)
  2. Build a limit order
  3. Sign it as an L1 action (EIP-712 over the msgpack action hash)
  4. Submit it, then cancel it
  5. Stream live book updates over WebSocket

HOW TO RUN
----------
    export HL_PRIVATE_KEY="0x..."        # agent or main wallet key
    python examples/quickstart.py

    Everything targets TESTNET by default.  Set HL_ENV=mainnet to go live.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from hyperliquid_sdk import (
    ApiRequestError,
    HttpTransport,
    HyperliquidClient,
    HyperliquidEnv,
    InfoClient,
    LimitOrderType,
    OrderRequest,
    PrivateKeySigner,
    TimeInForce,
    WebSocketTransport,
    create_l1_action_hash,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s – %(message)s",
)
logger = logging.getLogger("quickstart")

# ---------------------------------------------------------------------------
# Config – read from environment variables
# ---------------------------------------------------------------------------

PRIVATE_KEY = os.environ.get("HL_PRIVATE_KEY", "0x" + "aa" * 32)
ENV         = HyperliquidEnv(os.environ.get("HL_ENV", "testnet"))   # or "mainnet"

# Coin to trade and its perp asset index
COIN  = "BTC"
ASSET = 0


# ---------------------------------------------------------------------------
# Part 1 – Sync HTTP: market data
# ---------------------------------------------------------------------------

def info_demo() -> str:
    logger.info("=== Info demo ===")

    with HttpTransport(ENV) as transport:
        info = InfoClient(transport)

        mids = info.all_mids()
        logger.info("%s mid: %s", COIN, mids.get(COIN, "–"))

        bids, asks = info.l2_book(COIN)["levels"]
        logger.info(
            "Best bid: %s @ %s  |  Best ask: %s @ %s",
            bids[0]["sz"] if bids else "–", bids[0]["px"] if bids else "–",
            asks[0]["sz"] if asks else "–", asks[0]["px"] if asks else "–",
        )
    return mids[COIN]


# ---------------------------------------------------------------------------
# Part 2 – Async: sign, submit and cancel an order
# ---------------------------------------------------------------------------

async def exchange_demo(mid: str) -> None:
    logger.info("=== Exchange demo ===")

    signer = PrivateKeySigner(PRIVATE_KEY)
    logger.info("Signer: %s", signer.address)

    # Limit buy 0.001 BTC at half the mid, post-only: rests, never fills
    order = OrderRequest(
        asset=ASSET,
        is_buy=True,
        price=str(int(float(mid) * 0.5)),
        size="0.001",
        order_type=LimitOrderType(tif=TimeInForce.ADD_LIQUIDITY_ONLY),
    )
    action = {"type": "order", "orders": [order.to_wire()], "grouping": "na"}
    logger.info("Action hash at nonce 0: %s", create_l1_action_hash(action, 0))

    async with HyperliquidClient(signer, env=ENV) as client:
        try:
            response = await client.exchange.order([order])
        except ApiRequestError as exc:
            logger.warning("order rejected (expected if the key is a placeholder): %s", exc)
            return

        status: dict[str, Any] = response["response"]["data"]["statuses"][0]
        logger.info("Order submitted – %s", status)

        if "resting" in status:
            oid = status["resting"]["oid"]
            await client.exchange.cancel([(ASSET, oid)])
            logger.info("Order %d cancelled", oid)


# ---------------------------------------------------------------------------
# Part 3 – WebSocket: live book updates
# ---------------------------------------------------------------------------

async def ws_demo() -> None:
    logger.info("=== WebSocket demo (runs for 15 s) ===")

    async def on_book(msg: dict[str, Any]) -> None:
        bids, asks = msg["data"]["levels"]
        if bids and asks:
            logger.info("[book ]  bid=%s  ask=%s", bids[0]["px"], asks[0]["px"])

    async def on_trades(msg: dict[str, Any]) -> None:
        for trade in msg["data"]:
            logger.info("[trade]  %s  px=%s  sz=%s", trade["coin"], trade["px"], trade["sz"])

    async with WebSocketTransport(ENV) as ws:
        await ws.subscribe({"type": "l2Book", "coin": COIN}, on_book)
        await ws.subscribe({"type": "trades", "coin": COIN}, on_trades)

        # Requests share the connection with the subscriptions
        meta = await ws.request("info", {"type": "meta"})
        logger.info("Universe size: %d", len(meta["universe"]))

        await asyncio.sleep(15)
    logger.info("WebSocket demo complete")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    mid = info_demo()
    asyncio.run(exchange_demo(mid))
    asyncio.run(ws_demo())


if __name__ == "__main__":
    main()
