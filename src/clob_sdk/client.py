"""
client.py – Unified ClobClient façade.

Single entry point that owns the Signer, the ClobAuth tier manager, the
OrderBuilder and the REST client, and hands out stream clients bound to
the same credentials.  The trust tier follows from what was supplied:

    ClobClient(host)                               → L0 (public data)
    ClobClient(host, private_key=pk)               → L1 (create / derive keys)
    ClobClient(host, private_key=pk, creds=creds)  → L2 (trading)

Usage
-----
    from clob_sdk import ClobClient, OrderArgs, Side

    client = ClobClient("https://clob.polymarket.com", 137, private_key=pk)
    client.set_api_creds(client.rest.create_or_derive_api_key())

    resp = client.create_and_post_order(
        OrderArgs(token_id="1234", price="0.37", size="10", side=Side.BUY)
    )

    async with client.market_stream(["1234"]) as stream:
        stream.register_listener(print)
        await stream.run()
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from .auth import ClobAuth
from .exceptions import AuthUnavailable
from .order_builder import OrderBuilder
from .rest import ClobRestClient
from .signer import Signer
from .types import (
    ApiCredential,
    Channel,
    ClobEnv,
    CreateOrderOptions,
    MarketOrderArgs,
    OrderArgs,
    OrderType,
    SignatureType,
    SignedOrder,
    TrustTier,
)
from .ws import ClobWebSocketClient


class ClobClient:
    """
    Unified façade for the CLOB SDK.

    Parameters
    ----------
    host           : REST base URL
    chain_id       : 137 (Polygon) or 80002 (Amoy)
    private_key    : wallet key; enables L1
    creds          : API credentials; together with the key enables L2
    signature_type : EOA, POLY_PROXY or POLY_GNOSIS_SAFE
    funder         : address holding the funds when it is not the signer
    timeout        : HTTP timeout in seconds for REST requests
    """

    def __init__(
        self,
        host: str,
        chain_id: int = ClobEnv.POLYGON.chain_id,
        private_key: Optional[str] = None,
        creds: Optional[ApiCredential] = None,
        *,
        signature_type: SignatureType = SignatureType.EOA,
        funder: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self._chain_id = int(chain_id)
        self._signer   = Signer(private_key, self._chain_id) if private_key else None
        self._auth     = ClobAuth(signer=self._signer, creds=creds)
        self._builder  = (
            OrderBuilder(self._signer, signature_type, funder)
            if self._signer is not None else None
        )
        self.rest = ClobRestClient(host, self._auth, timeout=timeout)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def auth(self) -> ClobAuth:
        return self._auth

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def tier(self) -> TrustTier:
        return self._auth.tier

    @property
    def address(self) -> Optional[str]:
        return self._auth.address

    def set_api_creds(self, creds: ApiCredential) -> None:
        """Attach API credentials; the REST client and new streams use them."""
        self._auth.set_credentials(creds)

    def close(self) -> None:
        self.rest.close()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def _require_builder(self) -> OrderBuilder:
        if self._builder is None:
            raise AuthUnavailable(TrustTier.L1)
        return self._builder

    def create_order(
        self,
        order_args: OrderArgs,
        options: Optional[CreateOrderOptions] = None,
    ) -> SignedOrder:
        """Sign a limit order locally (L1); nothing is sent."""
        return self._require_builder().create_order(order_args, options)

    def create_market_order(
        self,
        order_args: MarketOrderArgs,
        options: Optional[CreateOrderOptions] = None,
    ) -> SignedOrder:
        """Sign a market order locally (L1); nothing is sent."""
        return self._require_builder().create_market_order(order_args, options)

    def create_and_post_order(
        self,
        order_args: OrderArgs,
        options: Optional[CreateOrderOptions] = None,
        order_type: OrderType = OrderType.GTC,
    ) -> Any:
        """
        Sign and submit a limit order (L2).

        When ``options`` is omitted the neg-risk flag and tick size are looked
        up for the token, so the order is signed against the right exchange
        and its price is checked against the market's tick grid.
        """
        self._auth.assert_level2()
        if options is None:
            options = CreateOrderOptions(
                tick_size=self.rest.get_tick_size(order_args.token_id),
                neg_risk=self.rest.get_neg_risk(order_args.token_id),
            )
        order = self.create_order(order_args, options)
        return self.rest.post_order(order, order_type)

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def _default_ws_url(self) -> str:
        try:
            return ClobEnv(self._chain_id).ws_url
        except ValueError:
            raise ValueError(f"No default stream URL for chain {self._chain_id}; pass ws_url") from None

    def market_stream(
        self,
        asset_ids: Iterable[str],
        ws_url: Optional[str] = None,
        **kwargs: Any,
    ) -> ClobWebSocketClient:
        """Public market-channel stream for the given asset (token) ids."""
        return ClobWebSocketClient(
            Channel.MARKET, ws_url or self._default_ws_url(), asset_ids, **kwargs,
        )

    def user_stream(
        self,
        markets: Iterable[str],
        ws_url: Optional[str] = None,
        **kwargs: Any,
    ) -> ClobWebSocketClient:
        """Private user-channel stream; needs API credentials."""
        if self._auth.creds is None:
            raise AuthUnavailable(TrustTier.L2)
        return ClobWebSocketClient(
            Channel.USER, ws_url or self._default_ws_url(), markets, self._auth.creds, **kwargs,
        )
