"""
CLOB SDK – Python client for a central-limit-order-book prediction exchange.

Provides:
  - Unified façade                     (client.py        → ClobClient)
  - Wallet key holder                  (signer.py        → Signer)
  - Tiered L0 / L1 / L2 authentication (auth.py          → ClobAuth)
  - EIP-712 typed-data signing         (signing.py)
  - Order construction and signing     (order_builder.py → OrderBuilder)
  - Contract address table             (config.py        → get_contract_config)
  - Typed Pydantic v2 models           (types.py)
  - Synchronous REST client            (rest.py          → ClobRestClient)
  - Resilient async WebSocket client   (ws.py            → ClobWebSocketClient)

Quickstart
----------
    import asyncio
    from clob_sdk import ClobClient, ClobEnv, OrderArgs, Side

    client = ClobClient(ClobEnv.POLYGON.rest_url, 137, private_key="0x...")
    client.set_api_creds(client.rest.create_or_derive_api_key())
    client.create_and_post_order(
        OrderArgs(token_id="1234", price="0.37", size="10", side=Side.BUY)
    )

    async def main() -> None:
        async with client.market_stream(["1234"]) as stream:
            stream.register_listener(print)
            await stream.run()

    asyncio.run(main())
"""

from .types import (
    # Environment
    ClobEnv,
    ZERO_ADDRESS,
    # Enums
    TrustTier,
    Side,
    OrderType,
    SignatureType,
    Channel,
    EventType,
    # Credentials & requests
    ApiCredential,
    RequestArgs,
    ContractConfig,
    # Orders
    OrderArgs,
    MarketOrderArgs,
    CreateOrderOptions,
    SignedOrder,
    # Query filters
    OpenOrderParams,
    TradeParams,
    # Stream events
    OrderBookEntry,
    BookEvent,
    PriceChangeEntry,
    PriceChangeEvent,
    LastTradePriceEvent,
    BestBidAskEvent,
    MakerOrder,
    TradeEvent,
    OrderEvent,
    FillEvent,
    UnknownEvent,
    StreamEvent,
)
from .exceptions import (
    ClobError,
    AuthUnavailable,
    InvalidChainConfig,
    SigningFailure,
    OrderValidationError,
    ProtocolDecodeFailure,
    TransportFailure,
    ReconnectExhausted,
)
from .config import get_contract_config
from .signer import Signer
from .signing import (
    build_eip712_domain,
    sign_clob_auth_message,
    sign_order_struct,
    recover_signer,
    recover_clob_auth_signer,
)
from .auth import (
    ClobAuth,
    build_hmac_signature,
    create_level1_headers,
    create_level2_headers,
    enrich_headers,
)
from .order_builder import OrderBuilder, check_tick_size, compute_amounts, generate_salt
from .rest import ClobRestClient, ClobAPIError
from .ws import ClobWebSocketClient, StreamState, decode_event, make_ws_client
from .client import ClobClient

__all__ = [
    # Environment
    "ClobEnv",
    "ZERO_ADDRESS",
    # Enums
    "TrustTier",
    "Side",
    "OrderType",
    "SignatureType",
    "Channel",
    "EventType",
    # Credentials & requests
    "ApiCredential",
    "RequestArgs",
    "ContractConfig",
    # Orders
    "OrderArgs",
    "MarketOrderArgs",
    "CreateOrderOptions",
    "SignedOrder",
    # Query filters
    "OpenOrderParams",
    "TradeParams",
    # Stream events
    "OrderBookEntry",
    "BookEvent",
    "PriceChangeEntry",
    "PriceChangeEvent",
    "LastTradePriceEvent",
    "BestBidAskEvent",
    "MakerOrder",
    "TradeEvent",
    "OrderEvent",
    "FillEvent",
    "UnknownEvent",
    "StreamEvent",
    # Errors
    "ClobError",
    "AuthUnavailable",
    "InvalidChainConfig",
    "SigningFailure",
    "OrderValidationError",
    "ProtocolDecodeFailure",
    "TransportFailure",
    "ReconnectExhausted",
    "ClobAPIError",
    # Config
    "get_contract_config",
    # Signing
    "Signer",
    "build_eip712_domain",
    "sign_clob_auth_message",
    "sign_order_struct",
    "recover_signer",
    "recover_clob_auth_signer",
    # Auth
    "ClobAuth",
    "build_hmac_signature",
    "create_level1_headers",
    "create_level2_headers",
    "enrich_headers",
    # Orders
    "OrderBuilder",
    "check_tick_size",
    "compute_amounts",
    "generate_salt",
    # REST
    "ClobRestClient",
    # WebSocket
    "ClobWebSocketClient",
    "StreamState",
    "decode_event",
    "make_ws_client",
    # Unified façade
    "ClobClient",
]

__version__ = "0.1.0"
