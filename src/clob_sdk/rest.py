"""
rest.py – Synchronous REST client for the CLOB exchange.

Covers the endpoints that need the auth tiers and the order pipeline:

  L1      API-key creation and derivation
  L2      API-key listing / deletion, read-only keys, closed-only status,
          order posting, cancellation and order / trade queries
  public  read-only key validation and the per-token market metadata
          (neg-risk flag, tick size, fee rate) used when building orders

Every authenticated call checks its tier before touching the network, and
every body is serialised exactly once: the same string is HMAC-signed and
transmitted.

Usage
-----
    from clob_sdk import ClobAuth, ClobRestClient, Signer

    auth   = ClobAuth(signer=Signer(private_key, 137))
    client = ClobRestClient("https://clob.polymarket.com", auth)

    creds = client.create_or_derive_api_key()
    auth.set_credentials(creds)
    client.cancel("0xabc...")
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import requests

from .auth import ClobAuth
from .exceptions import ClobError
from .types import (
    CREDENTIAL_CREATION_WARNING,
    ApiCredential,
    OpenOrderParams,
    OrderType,
    RequestArgs,
    SignedOrder,
    TradeParams,
    serialize_body,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

CREATE_API_KEY            = "/auth/api-key"
DERIVE_API_KEY            = "/auth/derive-api-key"
GET_API_KEYS              = "/auth/api-keys"
DELETE_API_KEY            = "/auth/api-key"
CLOSED_ONLY               = "/auth/ban-status/closed-only"
CREATE_READONLY_API_KEY   = "/auth/readonly-api-key"
GET_READONLY_API_KEYS     = "/auth/readonly-api-keys"
DELETE_READONLY_API_KEY   = "/auth/readonly-api-key"
VALIDATE_READONLY_API_KEY = "/auth/validate-readonly-api-key"
POST_ORDER                = "/order"
CANCEL                    = "/order"
CANCEL_ALL                = "/cancel-all"
ORDERS                    = "/data/orders"
GET_ORDER                 = "/data/order/"
TRADES                    = "/data/trades"
GET_NEG_RISK              = "/neg-risk"
GET_TICK_SIZE             = "/tick-size"
GET_FEE_RATE              = "/fee-rate"

# Pagination cursors: the first page, and the marker returned after the last one
INITIAL_CURSOR = "MA=="
END_CURSOR     = "LTE="

# ---------------------------------------------------------------------------
# Retry configuration
# ---------------------------------------------------------------------------

_RETRY_STATUSES = {429, 500, 502, 503, 504}
_MAX_RETRIES    = 3
_RETRY_BASE_S   = 0.5
_RETRY_EXP      = 2.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ClobAPIError(ClobError):
    """Raised when the exchange REST API returns an error response."""

    def __init__(self, status_code: int, body: str, method: str = "", path: str = "") -> None:
        self.status_code = status_code
        self.body        = body
        self.method      = method.upper()
        self.path        = path
        location = f" {self.method} {self.path}" if path else ""
        super().__init__(
            f"CLOB API error [{status_code}]{location}: {body}",
            {"status_code": status_code, "method": self.method, "path": path},
        )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class ClobRestClient:
    """
    Synchronous REST client.

    Parameters
    ----------
    host    : REST base URL, e.g. "https://clob.polymarket.com"
    auth    : ClobAuth holding the optional signer and credentials (borrowed;
              credentials set on it later are picked up automatically)
    timeout : Default HTTP timeout in seconds
    session : Optional requests.Session to reuse (a new one by default)

    The neg-risk, tick-size and fee-rate caches are per instance and never
    evicted; the key space is the set of tokens this client touches.
    """

    def __init__(
        self,
        host: str,
        auth: Optional[ClobAuth] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._host     = host.rstrip("/")
        self._auth     = auth or ClobAuth()
        self._timeout  = timeout
        self._session  = session or requests.Session()
        self._neg_risk:  dict[str, bool] = {}
        self._tick_size: dict[str, str]  = {}
        self._fee_rate:  dict[str, int]  = {}

    @property
    def host(self) -> str:
        return self._host

    @property
    def auth(self) -> ClobAuth:
        return self._auth

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internal request helper
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[dict[str, str]] = None,
        body: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request with automatic retry on retryable status codes.

        Parameters
        ----------
        method  : HTTP method ("GET", "POST", etc.)
        path    : Path relative to the host
        headers : Auth headers computed for exactly this method / path / body
        body    : Pre-serialised JSON body, sent byte-for-byte
        params  : Query string parameters
        """
        url          = self._host + path
        send_headers = {"Accept": "application/json", **(headers or {})}
        data: Optional[bytes] = None
        if body is not None:
            send_headers["Content-Type"] = "application/json"
            data = body.encode("utf-8")

        backoff = _RETRY_BASE_S
        for attempt in range(_MAX_RETRIES + 1):
            logger.debug("%s %s  attempt=%d", method.upper(), url, attempt)
            resp = self._session.request(
                method,
                url,
                headers=send_headers,
                data=data,
                params=params,
                timeout=self._timeout,
            )

            if resp.status_code not in _RETRY_STATUSES or attempt == _MAX_RETRIES:
                break

            logger.warning(
                "Retryable response %d from %s %s – retrying in %.1f s",
                resp.status_code, method.upper(), path, backoff,
            )
            time.sleep(backoff)
            backoff *= _RETRY_EXP

        if resp.status_code >= 400:
            raise ClobAPIError(resp.status_code, resp.text, method=method, path=path)

        if not resp.content:
            return None
        return resp.json()

    def _l2_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Serialise ``body`` once, sign that string, and send that string.

        The signature covers the path only; ``params`` go on the query string.
        """
        serialized = serialize_body(body) if body is not None else None
        headers = self._auth.level2_headers(
            RequestArgs(method=method, request_path=path, body=body, serialized_body=serialized)
        )
        return self._request(method, path, headers=headers, body=serialized, params=params)

    # ------------------------------------------------------------------
    # API keys (L1 to create / derive, L2 for everything else)
    # ------------------------------------------------------------------

    def create_api_key(self, nonce: int = 0) -> ApiCredential:
        """Ask the exchange to issue a new API key for the signer's wallet."""
        headers = self._auth.level1_headers(nonce)
        raw     = self._request("POST", CREATE_API_KEY, headers=headers)
        creds   = ApiCredential.from_api(raw)
        logger.info("Created API key %s", creds.api_key)
        logger.warning(CREDENTIAL_CREATION_WARNING)
        return creds

    def derive_api_key(self, nonce: int = 0) -> ApiCredential:
        """Fetch the API key previously issued for (wallet, nonce)."""
        headers = self._auth.level1_headers(nonce)
        raw     = self._request("GET", DERIVE_API_KEY, headers=headers)
        return ApiCredential.from_api(raw)

    def create_or_derive_api_key(self, nonce: int = 0) -> ApiCredential:
        """Create a key, or derive the existing one when creation is refused."""
        try:
            return self.create_api_key(nonce)
        except ClobAPIError as exc:
            logger.info("API key creation refused (%d) – deriving instead", exc.status_code)
            return self.derive_api_key(nonce)

    def get_api_keys(self) -> Any:
        return self._l2_request("GET", GET_API_KEYS)

    def delete_api_key(self) -> Any:
        return self._l2_request("DELETE", DELETE_API_KEY)

    def get_closed_only_mode(self) -> Any:
        """Whether the account is restricted to closing its positions."""
        return self._l2_request("GET", CLOSED_ONLY)

    def create_readonly_api_key(self) -> str:
        """Issue a read-only API key for the current account; returns the key."""
        raw = self._l2_request("POST", CREATE_READONLY_API_KEY)
        key = raw["apiKey"]
        logger.info("Created read-only API key %s", key)
        return key

    def get_readonly_api_keys(self) -> Any:
        return self._l2_request("GET", GET_READONLY_API_KEYS)

    def delete_readonly_api_key(self, key: str) -> Any:
        return self._l2_request("DELETE", DELETE_READONLY_API_KEY, {"key": key})

    def validate_readonly_api_key(self, address: str, key: str) -> Any:
        """Public check that ``key`` is a read-only key issued to ``address``."""
        return self._request(
            "GET", VALIDATE_READONLY_API_KEY, params={"address": address, "key": key},
        )

    # ------------------------------------------------------------------
    # Orders (L2)
    # ------------------------------------------------------------------

    def post_order(self, order: SignedOrder, order_type: OrderType = OrderType.GTC) -> Any:
        """Submit a signed order under the current API key."""
        self._auth.assert_level2()
        assert self._auth.creds is not None
        body = {
            "order":     order.to_api(),
            "owner":     self._auth.creds.api_key,
            "orderType": OrderType(order_type).value,
        }
        return self._l2_request("POST", POST_ORDER, body)

    def cancel(self, order_id: str) -> Any:
        """Cancel one open order by id."""
        return self._l2_request("DELETE", CANCEL, {"orderID": order_id})

    def cancel_all(self) -> Any:
        """Cancel every open order of the API key's owner."""
        return self._l2_request("DELETE", CANCEL_ALL)

    def get_orders(
        self,
        params: Optional[OpenOrderParams] = None,
        next_cursor: str = INITIAL_CURSOR,
    ) -> Any:
        """One page of the owner's open orders, optionally filtered."""
        query = {**(params.to_query() if params else {}), "next_cursor": next_cursor}
        return self._l2_request("GET", ORDERS, params=query)

    def get_order(self, order_id: str) -> Any:
        return self._l2_request("GET", GET_ORDER + order_id)

    def get_trades(
        self,
        params: Optional[TradeParams] = None,
        next_cursor: str = INITIAL_CURSOR,
    ) -> Any:
        """One page of the owner's trades, optionally filtered."""
        query = {**(params.to_query() if params else {}), "next_cursor": next_cursor}
        return self._l2_request("GET", TRADES, params=query)

    # ------------------------------------------------------------------
    # Market metadata (public)
    # ------------------------------------------------------------------

    def get_neg_risk(self, token_id: str) -> bool:
        """Whether ``token_id`` settles on the neg-risk exchange (memoised)."""
        cached = self._neg_risk.get(token_id)
        if cached is not None:
            return cached

        raw    = self._request("GET", GET_NEG_RISK, params={"token_id": token_id})
        result = bool(raw.get("neg_risk", False))
        self._neg_risk[token_id] = result
        return result

    def get_tick_size(self, token_id: str) -> str:
        """Minimum price increment of ``token_id``'s market (memoised)."""
        cached = self._tick_size.get(token_id)
        if cached is not None:
            return cached

        raw    = self._request("GET", GET_TICK_SIZE, params={"token_id": token_id})
        result = str(raw["minimum_tick_size"])
        self._tick_size[token_id] = result
        return result

    def get_fee_rate_bps(self, token_id: str) -> int:
        """Base fee of ``token_id``'s market in basis points, 0 if unset (memoised)."""
        cached = self._fee_rate.get(token_id)
        if cached is not None:
            return cached

        raw    = self._request("GET", GET_FEE_RATE, params={"token_id": token_id})
        result = int(raw.get("base_fee") or 0)
        self._fee_rate[token_id] = result
        return result
