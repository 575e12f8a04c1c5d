"""
order_builder.py – Turns order intents into signed exchange orders.

Pipeline for every order
------------------------
1. Draw a 256-bit salt from the OS CSPRNG so identical intents still hash
   (and sign) differently.
2. Resolve the exchange contract for (chain id, neg_risk); an unknown
   chain is a configuration error.
3. Compute maker / taker amounts with Decimal, 6 decimals, ROUND_HALF_UP:
       BUY   maker = price × size   taker = size          (pay collateral, get tokens)
       SELL  maker = size           taker = price × size  (pay tokens, get collateral)
   An amount that rounds to zero, or a price off the market's tick grid,
   is rejected with OrderValidationError before anything is signed.
4. Assemble the 12-field Order struct and EIP-712 sign it.

Usage
-----
    builder = OrderBuilder(Signer(pk, 137))
    order   = builder.create_order(
        OrderArgs(token_id="1234", price="0.37", size="10", side=Side.BUY),
        CreateOrderOptions(neg_risk=False),
    )
    order.maker_amount   # "3.700000"
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .config import get_contract_config
from .exceptions import OrderValidationError
from .signer import Signer
from .signing import AMOUNT_DECIMALS, sign_order_struct, to_base_units
from .types import (
    CreateOrderOptions,
    MarketOrderArgs,
    OrderArgs,
    Side,
    SignatureType,
    SignedOrder,
)

logger = logging.getLogger(__name__)

_QUANTUM     = Decimal(1).scaleb(-AMOUNT_DECIMALS)   # Decimal("0.000001")
_MAX_UINT256 = 2 ** 256 - 1


def generate_salt() -> str:
    """Cryptographically random 256-bit non-negative integer, as a decimal string."""
    return str(secrets.randbits(256))


def _round_amount(value: Decimal) -> str:
    return format(value.quantize(_QUANTUM, rounding=ROUND_HALF_UP), "f")


def compute_amounts(side: Side, price: Decimal, size: Decimal) -> tuple[str, str]:
    """
    Return (maker_amount, taker_amount) as 6-decimal strings.

    Raises
    ------
    OrderValidationError : an amount rounds to zero, or does not fit the
                           Decimal context or a uint256 in base units
    """
    details = {"side": side.value, "price": str(price), "size": str(size)}
    try:
        notional = _round_amount(price * size)
        shares   = _round_amount(size)
    except InvalidOperation as exc:
        raise OrderValidationError(
            f"size {size} @ {price} exceeds the supported amount precision", details,
        ) from exc

    for amount in (notional, shares):
        if Decimal(amount) == 0:
            raise OrderValidationError(f"size {size} @ {price} rounds to a zero amount", details)
        if to_base_units(amount) > _MAX_UINT256:
            raise OrderValidationError(f"amount {amount} does not fit in uint256", details)

    if side is Side.BUY:
        return notional, shares
    return shares, notional


def check_tick_size(price: Decimal, tick_size: str) -> None:
    """Reject a price that is off the tick grid or outside [tick, 1 - tick]."""
    try:
        tick = Decimal(tick_size)
    except InvalidOperation as exc:
        raise OrderValidationError(f"invalid tick size '{tick_size}'", {"tick_size": tick_size}) from exc
    if not tick.is_finite() or not (0 < tick < 1):
        raise OrderValidationError(f"invalid tick size '{tick_size}'", {"tick_size": tick_size})

    if price < tick or price > 1 - tick or price % tick != 0:
        raise OrderValidationError(
            f"price {price} is not valid for tick size {tick_size}",
            {"price": str(price), "tick_size": tick_size},
        )


class OrderBuilder:
    """
    Builds and signs orders for one wallet.

    Parameters
    ----------
    signer         : Signer used for the EIP-712 signature (borrowed)
    signature_type : EOA, POLY_PROXY or POLY_GNOSIS_SAFE
    funder         : address that holds the funds (the ``maker``);
                     defaults to the signer address
    clock          : returns the current Unix time in seconds; used to
                     reject already-expired orders
    """

    def __init__(
        self,
        signer: Signer,
        signature_type: SignatureType = SignatureType.EOA,
        funder: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer         = signer
        self._signature_type = SignatureType(signature_type)
        self._funder         = funder or signer.address
        self._clock          = clock

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def funder(self) -> str:
        return self._funder

    @property
    def signature_type(self) -> SignatureType:
        return self._signature_type

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_order(
        self,
        order_args: OrderArgs,
        options: Optional[CreateOrderOptions] = None,
    ) -> SignedOrder:
        """
        Create and sign a limit order.

        Raises
        ------
        OrderValidationError : expiration is set and already in the past, the
                               price is off the ``options.tick_size`` grid, or
                               an amount rounds to zero or overflows
        InvalidChainConfig   : no exchange deployed for the signer's chain
        SigningFailure       : the signature could not be produced
        """
        options = options or CreateOrderOptions()

        if order_args.expiration and order_args.expiration <= int(self._clock()):
            raise OrderValidationError(
                f"expiration {order_args.expiration} is in the past",
                {"expiration": order_args.expiration},
            )
        if options.tick_size is not None:
            check_tick_size(order_args.price, options.tick_size)

        contract = get_contract_config(self._signer.chain_id, options.neg_risk)
        maker_amount, taker_amount = compute_amounts(
            order_args.side, order_args.price, order_args.size,
        )

        fields: dict[str, Any] = {
            "salt":           generate_salt(),
            "maker":          self._funder,
            "signer":         self._signer.address,
            "taker":          order_args.taker,
            "token_id":       order_args.token_id,
            "maker_amount":   maker_amount,
            "taker_amount":   taker_amount,
            "expiration":     str(order_args.expiration),
            "nonce":          str(order_args.nonce),
            "fee_rate_bps":   str(order_args.fee_rate_bps),
            "side":           order_args.side,
            "signature_type": self._signature_type,
        }
        signature = sign_order_struct(self._signer, fields, contract.exchange)

        logger.info(
            "Built order: %s %s @ %s (token=%s, neg_risk=%s)",
            order_args.side.value, order_args.size, order_args.price,
            order_args.token_id, options.neg_risk,
        )
        return SignedOrder(**fields, signature=signature)

    def create_market_order(
        self,
        order_args: MarketOrderArgs,
        options: Optional[CreateOrderOptions] = None,
    ) -> SignedOrder:
        """
        Create and sign a market order.

        The market intent becomes a limit order at ``price`` with no
        expiration; it is meant to be posted as FOK (the default
        ``order_args.order_type``).  A SELL sells ``amount`` shares; a BUY
        spends ``amount`` collateral, i.e. buys amount / price shares rounded
        half-up to 6 decimals.
        """
        size = order_args.amount
        if order_args.side is Side.BUY:
            try:
                size = (order_args.amount / order_args.price).quantize(_QUANTUM, rounding=ROUND_HALF_UP)
            except InvalidOperation as exc:
                raise OrderValidationError(
                    f"amount {order_args.amount} exceeds the supported amount precision",
                    {"amount": str(order_args.amount), "price": str(order_args.price)},
                ) from exc
            if size == 0:
                raise OrderValidationError(
                    f"amount {order_args.amount} @ {order_args.price} buys zero shares",
                    {"amount": str(order_args.amount), "price": str(order_args.price)},
                )

        standard = OrderArgs(
            token_id=order_args.token_id,
            price=order_args.price,
            size=size,
            side=order_args.side,
            fee_rate_bps=order_args.fee_rate_bps,
            nonce=order_args.nonce,
            expiration=0,
            taker=order_args.taker,
        )
        return self.create_order(standard, options)
