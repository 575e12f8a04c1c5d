"""
examples/quickstart.py – End-to-end demo of the CLOB SDK.

Walks through the full pipeline:
  1. Escalate from L1 (wallet key) to L2 (API credentials)
  2. Look up which exchange settles the token (neg-risk or standard)
  3. Build and EIP-712 sign a limit order
  4. Submit it via REST, then cancel it
  5. Stream live market data and private order updates over WebSocket

HOW TO RUN
----------
    export CLOB_PRIVATE_KEY="0x..."        # wallet that owns the funds
    export CLOB_TOKEN_ID="7132104567..."   # outcome token to trade
    export CLOB_MARKET_ID="0x..."          # condition id for the user stream
    python examples/quickstart.py

    Stored credentials can be supplied via CLOB_API_KEY / CLOB_API_SECRET /
    CLOB_API_PASSPHRASE; otherwise they are created or derived.
    Everything targets Polygon (137) by default; set CLOB_CHAIN_ID=80002
    for Amoy.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from clob_sdk import (
    ApiCredential,
    BookEvent,
    ClobAPIError,
    ClobClient,
    ClobEnv,
    OrderArgs,
    OrderEvent,
    Side,
    StreamEvent,
    TradeEvent,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s – %(message)s",
)
logger = logging.getLogger("quickstart")

# ---------------------------------------------------------------------------
# Config – read from environment variables
# ---------------------------------------------------------------------------

PRIVATE_KEY = os.environ.get("CLOB_PRIVATE_KEY", "0x" + "aa" * 32)
CHAIN_ID    = int(os.environ.get("CLOB_CHAIN_ID", str(ClobEnv.POLYGON.chain_id)))
TOKEN_ID    = os.environ.get("CLOB_TOKEN_ID",  "1234")
MARKET_ID   = os.environ.get("CLOB_MARKET_ID", "")

ENV = ClobEnv(CHAIN_ID)


def _stored_creds() -> Optional[ApiCredential]:
    key = os.environ.get("CLOB_API_KEY")
    if not key:
        return None
    return ApiCredential(
        api_key=key,
        api_secret=os.environ.get("CLOB_API_SECRET", ""),
        api_passphrase=os.environ.get("CLOB_API_PASSPHRASE", ""),
    )


# ---------------------------------------------------------------------------
# Part 1 – REST: credentials + order management
# ---------------------------------------------------------------------------

def rest_demo(client: ClobClient) -> None:
    logger.info("=== REST demo ===")

    # 1. Escalate to L2
    if client.auth.creds is None:
        client.set_api_creds(client.rest.create_or_derive_api_key())
    logger.info("Wallet %s at tier %s", client.address, client.tier.name)

    # 2. Which exchange settles this token?
    neg_risk = client.rest.get_neg_risk(TOKEN_ID)
    logger.info("Token %s neg_risk=%s", TOKEN_ID, neg_risk)

    # 3. Build and sign a limit buy far from the market
    order = client.create_order(OrderArgs(token_id=TOKEN_ID, price="0.01", size="5", side=Side.BUY))
    logger.info(
        "Signed – maker=%s taker=%s sig prefix: %s…",
        order.maker_amount, order.taker_amount, order.signature[:20],
    )

    # 4. Submit, then cancel
    try:
        response = client.create_and_post_order(
            OrderArgs(token_id=TOKEN_ID, price="0.01", size="5", side=Side.BUY)
        )
        logger.info("Order submitted – %s", response)
        if response and response.get("orderID"):
            client.rest.cancel(response["orderID"])
            logger.info("Order cancelled")
    except ClobAPIError as exc:
        logger.warning("post_order failed (expected with placeholder keys): %s", exc)


# ---------------------------------------------------------------------------
# Part 2 – WebSocket: live market data + private order stream
# ---------------------------------------------------------------------------

async def ws_demo(client: ClobClient) -> None:
    logger.info("=== WebSocket demo (runs for 15 s) ===")

    async def on_market(event: StreamEvent) -> None:
        if isinstance(event, BookEvent):
            bid, ask = event.best_bid, event.best_ask
            logger.info(
                "[book ]  bid=%s  ask=%s",
                bid.price if bid else "–",
                ask.price if ask else "–",
            )
        elif isinstance(event, TradeEvent):
            logger.info("[trade]  price=%s  size=%s", event.price, event.size)

    def on_user(event: StreamEvent) -> None:
        if isinstance(event, OrderEvent):
            logger.info("[order]  id=%s  type=%s  remaining=%s", event.id, event.type, event.remaining_size)

    streams = [client.market_stream([TOKEN_ID])]
    streams[0].register_listener(on_market)
    if MARKET_ID and client.auth.creds is not None:
        user = client.user_stream([MARKET_ID])
        user.register_listener(on_user)
        streams.append(user)

    async def run_for(stream) -> None:
        try:
            await asyncio.wait_for(stream.run(), timeout=15)
        except asyncio.TimeoutError:
            pass
        finally:
            await stream.close()

    await asyncio.gather(*(run_for(s) for s in streams))
    logger.info("WebSocket demo complete")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    client = ClobClient(ENV.rest_url, CHAIN_ID, PRIVATE_KEY, _stored_creds())
    try:
        rest_demo(client)
        asyncio.run(ws_demo(client))
    finally:
        client.close()


if __name__ == "__main__":
    main()
