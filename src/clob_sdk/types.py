"""
types.py – Pydantic v2 models for the CLOB exchange schema.

Monetary values (price, size, amounts) are kept as decimal strings on the
wire, exactly as the exchange sends them; order inputs are parsed into
Decimal so no float ever reaches the amount arithmetic
(float(0.1) * 3 == 0.30000000000000004).

Validation
----------
Order inputs are validated on construction.  Invalid data raises
pydantic.ValidationError with field-level detail rather than silently
passing bad values through to EIP-712 signing.

Stream events are the opposite: they are lenient (unknown fields are kept,
every field is optional) because the exchange adds fields without notice.

Deserialisation
---------------
    creds = ApiCredential.from_api(response_json)
    book  = BookEvent.model_validate(raw_frame)
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum, unique
from typing import Any, Optional, Union

from eth_utils import is_address
from pydantic import BaseModel, SecretStr, field_validator

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Message logged once when a brand new API key is issued by the exchange
CREDENTIAL_CREATION_WARNING = (
    "Your credentials CANNOT be recovered after they've been created. "
    "Be sure to store them safely!"
)


# ---------------------------------------------------------------------------
# Environment  (plain IntEnum – not a Pydantic model)
# ---------------------------------------------------------------------------

_ENDPOINTS: dict[str, dict[str, str]] = {
    "polygon": {
        "rest": "https://clob.polymarket.com",
        "ws":   "wss://ws-subscriptions-clob.polymarket.com",
    },
    "amoy": {
        "rest": "https://clob-staging.polymarket.com",
        "ws":   "wss://ws-subscriptions-clob-staging.polymarket.com",
    },
}


@unique
class ClobEnv(IntEnum):
    """Deployment environment, keyed by EVM chain id."""
    POLYGON = 137
    AMOY    = 80002

    @property
    def chain_id(self) -> int:
        return int(self)

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def rest_url(self) -> str:
        return _ENDPOINTS[self.label]["rest"]

    @property
    def ws_url(self) -> str:
        return _ENDPOINTS[self.label]["ws"]


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

@unique
class TrustTier(IntEnum):
    """
    Escalating proof-of-identity levels.

    L0 : no authentication (public endpoints)
    L1 : wallet signature (private key present)
    L2 : API-key HMAC (private key and API credentials present)
    """
    L0 = 0
    L1 = 1
    L2 = 2

    @classmethod
    def derive(cls, has_signer: bool, has_credentials: bool) -> "TrustTier":
        if has_signer and has_credentials:
            return cls.L2
        if has_signer:
            return cls.L1
        return cls.L0


@unique
class Side(str, Enum):
    BUY  = "BUY"
    SELL = "SELL"

    @property
    def as_uint8(self) -> int:
        """On-chain encoding used in the Order struct."""
        return 0 if self is Side.BUY else 1


@unique
class OrderType(str, Enum):
    GTC = "GTC"   # good 'til cancelled
    FOK = "FOK"   # fill or kill
    GTD = "GTD"   # good 'til date
    FAK = "FAK"   # fill and kill (IOC)


@unique
class SignatureType(IntEnum):
    EOA              = 0
    POLY_PROXY       = 1
    POLY_GNOSIS_SAFE = 2


@unique
class Channel(str, Enum):
    """Real-time feed channels."""
    MARKET = "market"   # public order book / trade data, keyed by asset id
    USER   = "user"     # private order / fill data, keyed by market id


@unique
class EventType(str, Enum):
    BOOK             = "book"
    PRICE_CHANGE     = "price_change"
    LAST_TRADE_PRICE = "last_trade_price"
    BEST_BID_ASK     = "best_bid_ask"
    TRADE            = "trade"
    ORDER            = "order"
    FILL             = "fill"
    UNKNOWN          = "unknown"

    @classmethod
    def from_value(cls, value: Any) -> "EventType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


# ---------------------------------------------------------------------------
# Shared validator helpers
# ---------------------------------------------------------------------------

def _coerce_decimal(v: Any) -> Any:
    """Route floats through str() so 0.37 becomes Decimal('0.37'), not its binary expansion."""
    if isinstance(v, float):
        return Decimal(str(v))
    return v


def _validate_address(v: str, field: str = "address") -> str:
    if not is_address(v):
        raise ValueError(f"{field} '{v}' is not a valid address")
    return v


def _to_decimal(v: Optional[str]) -> Optional[Decimal]:
    if v is None or v == "":
        return None
    try:
        return Decimal(v)
    except InvalidOperation:
        return None


def serialize_body(body: Any) -> str:
    """Compact, order-preserving JSON – the exact bytes that get signed and sent."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Credentials & request descriptors
# ---------------------------------------------------------------------------

class ApiCredential(BaseModel):
    """
    API credentials issued by the exchange.

    api_key        : key identifier (UUID)
    api_secret     : URL-safe base64 HMAC secret
    api_passphrase : passphrase echoed in L2 headers

    Issuance is one-time: a lost secret cannot be recovered.  Secrets are
    held as SecretStr so they never show up in reprs or logs.
    """
    api_key:        str
    api_secret:     SecretStr
    api_passphrase: SecretStr

    model_config = {"frozen": True}

    @field_validator("api_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("api_key must be non-empty")
        return v

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "ApiCredential":
        """Parse the ``{apiKey, secret, passphrase}`` payload returned by the auth endpoints."""
        return cls(
            api_key=raw.get("apiKey", ""),
            api_secret=raw.get("secret", ""),
            api_passphrase=raw.get("passphrase", ""),
        )

    def to_ws_auth(self) -> dict[str, str]:
        """The ``auth`` object expected in a user-channel subscribe frame."""
        return {
            "apiKey":     self.api_key,
            "secret":     self.api_secret.get_secret_value(),
            "passphrase": self.api_passphrase.get_secret_value(),
        }


class RequestArgs(BaseModel):
    """
    Describes an outbound request for L2 signing; never sent as-is.

    Prefer ``serialized_body``: it is signed byte-for-byte, so the transport
    must send that same string.
    """
    method:          str
    request_path:    str
    body:            Any           = None
    serialized_body: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("method")
    @classmethod
    def normalise_method(cls, v: str) -> str:
        return v.upper()

    @property
    def signing_body(self) -> Optional[str]:
        if self.serialized_body is not None:
            return self.serialized_body
        if self.body is not None:
            return serialize_body(self.body)
        return None


class ContractConfig(BaseModel):
    """On-chain addresses for one (chain id, neg-risk) pair."""
    exchange:           str
    collateral:         str
    conditional_tokens: str

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Order inputs
# ---------------------------------------------------------------------------

class _OrderInput(BaseModel):
    """Fields and checks shared by limit and market order arguments."""
    token_id:     str
    side:         Side
    price:        Decimal
    fee_rate_bps: int = 0
    nonce:        int = 0
    taker:        str = ZERO_ADDRESS

    model_config = {"frozen": True}

    @field_validator("token_id", mode="before")
    @classmethod
    def validate_token_id(cls, v: Any) -> str:
        v = str(v)
        if not (v.isascii() and v.isdigit()):
            raise ValueError(f"token_id '{v}' must be a decimal uint256 string")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if not (Decimal(0) < v < Decimal(1)):
            raise ValueError(f"price must be strictly between 0 and 1, got '{v}'")
        return v

    @field_validator("fee_rate_bps", "nonce")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"value must be non-negative, got {v}")
        return v

    @field_validator("taker")
    @classmethod
    def validate_taker(cls, v: str) -> str:
        return _validate_address(v, "taker")


class OrderArgs(_OrderInput):
    """
    A limit order intent.

    token_id     : conditional token id (decimal uint256 string)
    price        : price per share, strictly between 0 and 1
    size         : number of conditional tokens
    side         : BUY or SELL
    fee_rate_bps : maker fee, in basis points, charged on proceeds
    nonce        : exchange nonce used for on-chain cancellation
    expiration   : Unix seconds after which the order expires (0 = never)
    taker        : counterparty; the zero address makes the order public
    """
    size:       Decimal
    expiration: int = 0

    @field_validator("size", mode="before")
    @classmethod
    def coerce_size(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"size must be positive, got '{v}'")
        return v

    @field_validator("expiration")
    @classmethod
    def validate_expiration(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"expiration must be non-negative, got {v}")
        return v


class MarketOrderArgs(_OrderInput):
    """
    A market order intent.

    amount : BUY → collateral to spend, SELL → shares to sell
    price  : worst acceptable price (required; the order is signed at it)

    A BUY is signed for amount / price shares, rounded half-up to 6 decimals.
    """
    amount:     Decimal
    order_type: OrderType = OrderType.FOK

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"amount must be positive, got '{v}'")
        return v


class CreateOrderOptions(BaseModel):
    """
    tick_size : minimum price increment of the market ("0.01"); when set, the
                price must be a multiple of it within [tick, 1 - tick]
    neg_risk  : sign against the neg-risk exchange
    """
    tick_size: Optional[str] = None
    neg_risk:  bool          = False

    model_config = {"frozen": True}


class SignedOrder(BaseModel):
    """
    A fully signed order, immutable once built.  Re-signing requires a new
    salt, i.e. a fresh call to OrderBuilder.create_order().
    """
    salt:           str
    maker:          str
    signer:         str
    taker:          str
    token_id:       str
    maker_amount:   str
    taker_amount:   str
    expiration:     str
    nonce:          str
    fee_rate_bps:   str
    side:           Side
    signature_type: SignatureType
    signature:      str

    model_config = {"frozen": True}

    def to_api(self) -> dict[str, Any]:
        """Serialise to the camelCase body expected by POST /order."""
        return {
            "salt":          int(self.salt),
            "maker":         self.maker,
            "signer":        self.signer,
            "taker":         self.taker,
            "tokenId":       self.token_id,
            "makerAmount":   self.maker_amount,
            "takerAmount":   self.taker_amount,
            "expiration":    self.expiration,
            "nonce":         self.nonce,
            "feeRateBps":    self.fee_rate_bps,
            "side":          self.side.value,
            "signatureType": int(self.signature_type),
            "signature":     self.signature,
        }


# ---------------------------------------------------------------------------
# Query filters
# ---------------------------------------------------------------------------

class _QueryParams(BaseModel):
    model_config = {"frozen": True}

    def to_query(self) -> dict[str, Any]:
        """Only the filters that were set, in declaration order."""
        return self.model_dump(exclude_none=True)


class OpenOrderParams(_QueryParams):
    """Filters for GET /data/orders."""
    id:       Optional[str] = None
    market:   Optional[str] = None
    asset_id: Optional[str] = None


class TradeParams(_QueryParams):
    """
    Filters for GET /data/trades.

    before / after : Unix seconds bounding the match time
    """
    id:            Optional[str] = None
    maker_address: Optional[str] = None
    market:        Optional[str] = None
    asset_id:      Optional[str] = None
    before:        Optional[int] = None
    after:         Optional[int] = None


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

class _StreamModel(BaseModel):
    model_config = {"extra": "allow", "frozen": True, "coerce_numbers_to_str": True}


class _TimestampedEvent(_StreamModel):
    timestamp: Optional[str] = None

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp) if self.timestamp else 0


class OrderBookEntry(_StreamModel):
    price: str
    size:  str


class BookEvent(_TimestampedEvent):
    """Full order-book snapshot for one asset (market channel)."""
    event_type: EventType = EventType.BOOK
    asset_id:   Optional[str] = None
    market:     Optional[str] = None
    bids:       list[OrderBookEntry] = []
    asks:       list[OrderBookEntry] = []
    hash:       Optional[str] = None

    @property
    def best_bid(self) -> Optional[OrderBookEntry]:
        return max(self.bids, key=lambda lvl: Decimal(lvl.price), default=None)

    @property
    def best_ask(self) -> Optional[OrderBookEntry]:
        return min(self.asks, key=lambda lvl: Decimal(lvl.price), default=None)


class PriceChangeEntry(_StreamModel):
    asset_id: Optional[str] = None
    price:    Optional[str] = None
    size:     Optional[str] = None
    side:     Optional[str] = None
    hash:     Optional[str] = None
    best_bid: Optional[str] = None
    best_ask: Optional[str] = None


class PriceChangeEvent(_TimestampedEvent):
    event_type:    EventType = EventType.PRICE_CHANGE
    market:        Optional[str] = None
    price_changes: list[PriceChangeEntry] = []


class LastTradePriceEvent(_TimestampedEvent):
    event_type:   EventType = EventType.LAST_TRADE_PRICE
    asset_id:     Optional[str] = None
    market:       Optional[str] = None
    price:        Optional[str] = None
    side:         Optional[str] = None
    size:         Optional[str] = None
    fee_rate_bps: Optional[str] = None


class BestBidAskEvent(_TimestampedEvent):
    event_type: EventType = EventType.BEST_BID_ASK
    market:     Optional[str] = None
    asset_id:   Optional[str] = None
    best_bid:   Optional[str] = None
    best_ask:   Optional[str] = None
    spread:     Optional[str] = None

    @property
    def mid_price(self) -> Optional[Decimal]:
        bid, ask = _to_decimal(self.best_bid), _to_decimal(self.best_ask)
        if bid is None or ask is None:
            return None
        return (bid + ask) / 2


class MakerOrder(_StreamModel):
    asset_id:       Optional[str] = None
    matched_amount: Optional[str] = None
    order_id:       Optional[str] = None
    outcome:        Optional[str] = None
    owner:          Optional[str] = None
    price:          Optional[str] = None


class TradeEvent(_TimestampedEvent):
    """A trade involving one of the user's orders (user channel)."""
    event_type:     EventType = EventType.TRADE
    asset_id:       Optional[str] = None
    market:         Optional[str] = None
    id:             Optional[str] = None
    price:          Optional[str] = None
    side:           Optional[str] = None
    size:           Optional[str] = None
    outcome:        Optional[str] = None
    owner:          Optional[str] = None
    trade_owner:    Optional[str] = None
    taker_order_id: Optional[str] = None
    maker_orders:   list[MakerOrder] = []
    status:         Optional[str] = None
    type:           Optional[str] = None
    matchtime:      Optional[str] = None
    last_update:    Optional[str] = None

    @property
    def is_buy(self) -> bool:
        return (self.side or "").upper() == Side.BUY.value

    @property
    def is_sell(self) -> bool:
        return (self.side or "").upper() == Side.SELL.value

    @property
    def trade_value(self) -> Decimal:
        return (_to_decimal(self.price) or Decimal(0)) * (_to_decimal(self.size) or Decimal(0))


class OrderEvent(_TimestampedEvent):
    """Order lifecycle update: PLACEMENT, UPDATE (match) or CANCELLATION."""
    event_type:       EventType = EventType.ORDER
    asset_id:         Optional[str] = None
    market:           Optional[str] = None
    id:               Optional[str] = None
    price:            Optional[str] = None
    side:             Optional[str] = None
    original_size:    Optional[str] = None
    size_matched:     Optional[str] = None
    outcome:          Optional[str] = None
    owner:            Optional[str] = None
    order_owner:      Optional[str] = None
    type:             Optional[str] = None
    associate_trades: list[str] = []

    @property
    def remaining_size(self) -> Decimal:
        original = _to_decimal(self.original_size) or Decimal(0)
        matched  = _to_decimal(self.size_matched) or Decimal(0)
        return original - matched

    @property
    def is_placement(self) -> bool:
        return (self.type or "").upper() == "PLACEMENT"

    @property
    def is_cancel(self) -> bool:
        return (self.type or "").upper() in ("CANCEL", "CANCELLATION")

    @property
    def is_match(self) -> bool:
        return (self.type or "").upper() in ("MATCH", "UPDATE")

    @property
    def is_fully_matched(self) -> bool:
        return self.remaining_size <= 0


class FillEvent(_TimestampedEvent):
    """A fill against one of the user's orders; extra fields are preserved."""
    event_type: EventType = EventType.FILL
    asset_id:   Optional[str] = None
    market:     Optional[str] = None
    order_id:   Optional[str] = None
    price:      Optional[str] = None
    size:       Optional[str] = None
    side:       Optional[str] = None


class UnknownEvent(_StreamModel):
    """
    Anything that could not be mapped to a typed event.

    event_type : the discriminator as received (None if absent / unparseable)
    raw        : the original decoded fields, or the raw text when the frame
                 was not valid JSON
    """
    event_type: Optional[str] = None
    raw:        Any = None


StreamEvent = Union[
    BookEvent,
    PriceChangeEvent,
    LastTradePriceEvent,
    BestBidAskEvent,
    TradeEvent,
    OrderEvent,
    FillEvent,
    UnknownEvent,
]

EVENT_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.BOOK:             BookEvent,
    EventType.PRICE_CHANGE:     PriceChangeEvent,
    EventType.LAST_TRADE_PRICE: LastTradePriceEvent,
    EventType.BEST_BID_ASK:     BestBidAskEvent,
    EventType.TRADE:            TradeEvent,
    EventType.ORDER:            OrderEvent,
    EventType.FILL:             FillEvent,
}
