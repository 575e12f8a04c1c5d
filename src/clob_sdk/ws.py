"""
ws.py – Resilient async WebSocket stream client for the CLOB exchange.

One client serves one channel:

  market  public book / price / trade data for a set of asset (token) ids
  user    private order / trade data for a set of market ids (needs L2 creds)

On every (re)connect the client sends a single subscription frame:
  {"type": "market", "assets_ids": [...]}
  {"type": "user",   "markets": [...], "auth": {"apiKey", "secret", "passphrase"}}

The server sends back either a JSON object or a JSON array of objects, each
carrying an ``event_type`` discriminator, plus the literal text frames
"PING" / "PONG" used for application-level keepalive.

This client:
1. Sends a "PING" text frame every ping_interval seconds while open.
2. Decodes each frame into typed events; anything it cannot map is
   delivered as an UnknownEvent instead of being dropped.
3. Fans each event out to every registered listener in registration order;
   one failing listener never prevents delivery to the others.
4. On an abnormal close or transport error it waits
   reconnect_delay × attempt seconds and reconnects, up to
   max_reconnect_attempts times in a row, then raises ReconnectExhausted.
5. A caller-initiated close() never triggers a reconnect.

Usage
-----
    from clob_sdk import Channel, ClobWebSocketClient, BookEvent

    async def on_event(event) -> None:
        if isinstance(event, BookEvent):
            print(event.best_bid)

    async with ClobWebSocketClient(
        Channel.MARKET,
        "wss://ws-subscriptions-clob.polymarket.com",
        ["71321045679252212594626385532706912750332728571942532289631379312455583992563"],
    ) as ws:
        ws.register_listener(on_event)
        await ws.run()
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum, unique
from typing import Any, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from .exceptions import (
    AuthUnavailable,
    ProtocolDecodeFailure,
    ReconnectExhausted,
    TransportFailure,
)
from .types import (
    EVENT_MODELS,
    ApiCredential,
    Channel,
    EventType,
    StreamEvent,
    TrustTier,
    UnknownEvent,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

# Listener: plain function or coroutine function receiving one decoded event
Listener = Callable[[StreamEvent], Union[None, Awaitable[None]]]

# Injectable transport hooks (websockets.connect / asyncio.sleep by default)
Connect = Callable[[str], Any]
Sleep   = Callable[[float], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_PING_INTERVAL_S   = 10.0
_RECONNECT_DELAY_S = 3.0
_MAX_RECONNECTS    = 5

_NORMAL_CLOSURE    = 1000
_ABNORMAL_CLOSURE  = 1006

_PING = "PING"
_PONG = "PONG"


@unique
class StreamState(str, Enum):
    IDLE         = "idle"
    CONNECTING   = "connecting"
    OPEN         = "open"
    RECONNECTING = "reconnecting"
    CLOSING      = "closing"
    CLOSED       = "closed"


# ---------------------------------------------------------------------------
# Frame decoding
# ---------------------------------------------------------------------------

def _validate(model: type[Any], obj: dict[str, Any]) -> StreamEvent:
    try:
        event: StreamEvent = model.model_validate(obj)
    except ValidationError as exc:
        raise ProtocolDecodeFailure(
            f"{model.__name__}: {exc.error_count()} invalid field(s)", raw=obj,
        ) from exc
    return event


def decode_event(obj: Any) -> StreamEvent:
    """
    Map one decoded JSON value to a typed event.

    Unknown discriminators and payloads that fail validation come back as
    UnknownEvent carrying the original fields.
    """
    if not isinstance(obj, dict):
        return UnknownEvent(raw=obj)

    raw_type   = obj.get("event_type")
    label      = None if raw_type is None else str(raw_type)
    model      = EVENT_MODELS.get(EventType.from_value(raw_type))
    if model is None:
        return UnknownEvent(event_type=label, raw=obj)

    try:
        return _validate(model, obj)
    except ProtocolDecodeFailure as exc:
        logger.warning("Could not decode %s event: %s", label, exc)
        return UnknownEvent(event_type=label, raw=obj)


def parse_frame(text: str) -> list[StreamEvent]:
    """
    Decode a text frame holding a JSON object or an array of objects.

    Invalid JSON yields a single UnknownEvent whose ``raw`` is the text.
    """
    try:
        payload = json.loads(text)
    except ValueError:
        logger.warning("Received non-JSON WebSocket message: %r", text[:200])
        return [UnknownEvent(raw=text)]

    if isinstance(payload, list):
        return [decode_event(item) for item in payload]
    if isinstance(payload, dict):
        return [decode_event(payload)]
    return [UnknownEvent(raw=text)]


# ---------------------------------------------------------------------------
# WebSocket client
# ---------------------------------------------------------------------------

class ClobWebSocketClient:
    """
    Async stream client for one channel.

    Parameters
    ----------
    channel                : Channel.MARKET or Channel.USER
    base_url               : WebSocket base, e.g. "wss://ws-subscriptions-clob.polymarket.com";
                             the client connects to ``{base_url}/ws/{channel}``
    topics                 : asset ids (market channel) or market ids (user channel)
    auth                   : API credentials; required for the user channel
    ping_interval          : seconds between "PING" keepalive frames
    reconnect_delay        : base delay; attempt n waits reconnect_delay × n seconds
    max_reconnect_attempts : consecutive reconnects allowed before giving up
    connect                : async context manager factory, defaults to websockets.connect
    sleep                  : awaitable delay function, defaults to asyncio.sleep
    """

    def __init__(
        self,
        channel:  Union[Channel, str],
        base_url: str,
        topics:   Iterable[str],
        auth:     Optional[ApiCredential] = None,
        *,
        ping_interval:          float = _PING_INTERVAL_S,
        reconnect_delay:        float = _RECONNECT_DELAY_S,
        max_reconnect_attempts: int   = _MAX_RECONNECTS,
        connect:  Optional[Connect] = None,
        sleep:    Optional[Sleep]   = None,
    ) -> None:
        self._channel = Channel(channel)
        if self._channel is Channel.USER and auth is None:
            raise AuthUnavailable(TrustTier.L2)

        self._url             = f"{base_url.rstrip('/')}/ws/{self._channel.value}"
        self._topics          = list(dict.fromkeys(topics))
        self._auth            = auth
        self._ping_interval   = ping_interval
        self._reconnect_delay = reconnect_delay
        self._max_reconnects  = max_reconnect_attempts
        self._connect         = connect or websockets.connect
        self._sleep           = sleep or asyncio.sleep

        self._listeners:      list[Listener]                   = []
        self._state           = StreamState.IDLE
        self._ws:             Optional[Any]                    = None
        self._keepalive_task: Optional[asyncio.Task[None]]     = None
        self._reconnect_task: Optional[asyncio.Future[Any]]    = None
        self._last_failure:   Optional[TransportFailure]       = None
        self._attempts        = 0
        self._exhausted       = False
        self._closed_by_user  = False
        self._reconnecting    = False
        self._running         = False

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "ClobWebSocketClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def topics(self) -> tuple[str, ...]:
        return tuple(self._topics)

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        """Consecutive reconnects since the last successful open."""
        return self._attempts

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def last_failure(self) -> Optional[TransportFailure]:
        return self._last_failure

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def register_listener(self, listener: Listener) -> None:
        """Add a listener; it receives every event decoded after this call."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Remove a listener; unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscription_message(self) -> dict[str, Any]:
        """The frame sent right after every successful open."""
        if self._channel is Channel.USER:
            assert self._auth is not None
            return {
                "type":    Channel.USER.value,
                "markets": list(self._topics),
                "auth":    self._auth.to_ws_auth(),
            }
        return {"type": Channel.MARKET.value, "assets_ids": list(self._topics)}

    async def run(self) -> None:
        """
        Connect and process frames until close() is called, the server
        closes normally (code 1000), or reconnects are exhausted.

        A close() issued while no run is active makes the next run() return
        without connecting; once a run has ended, run() may be called again.

        Raises
        ------
        ReconnectExhausted : max_reconnect_attempts consecutive reconnects
                             failed; chained to the last TransportFailure
        """
        if self._running:
            raise RuntimeError(f"stream {self._url} is already running")
        if self._closed_by_user:
            logger.info("WebSocket %s was closed before run() started", self._url)
            self._state = StreamState.CLOSED
            return

        self._running   = True
        self._exhausted = False
        self._attempts  = 0

        try:
            while not self._closed_by_user:
                failure = await self._connect_and_run()
                if self._closed_by_user:
                    break
                if failure is None:
                    logger.info("WebSocket %s closed normally", self._url)
                    break
                await self._reconnect(failure)
        finally:
            self._running        = False
            self._closed_by_user = False
            self._cancel_keepalive()
            self._ws    = None
            self._state = StreamState.CLOSED

    async def close(self) -> None:
        """
        Close the stream and suppress any further reconnects.

        Idempotent; pending keepalive and reconnect timers are cancelled
        even when closing the socket itself fails.
        """
        self._closed_by_user = True
        if self._state is not StreamState.CLOSED:
            self._state = StreamState.CLOSING

        ws, self._ws = self._ws, None
        try:
            self._cancel_keepalive()
            reconnect, self._reconnect_task = self._reconnect_task, None
            if reconnect is not None and not reconnect.done():
                reconnect.cancel()
            if ws is not None:
                await ws.close(code=_NORMAL_CLOSURE, reason="Client closing")
                logger.info("WebSocket %s closed by client", self._url)
        finally:
            if not self._running:
                self._state = StreamState.CLOSED

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fail(self, failure: TransportFailure) -> TransportFailure:
        self._last_failure = failure
        return failure

    async def _connect_and_run(self) -> Optional[TransportFailure]:
        """One connection lifetime; returns None on a normal close."""
        self._state = StreamState.CONNECTING
        logger.info("Connecting to WebSocket at %s", self._url)

        try:
            async with self._connect(self._url) as ws:
                if self._closed_by_user:
                    return None
                self._ws = ws
                await self._on_open(ws)
                try:
                    async for frame in ws:
                        await self._on_frame(ws, frame)
                finally:
                    self._cancel_keepalive()
                code = getattr(ws, "close_code", None)
        except ConnectionClosed as exc:
            code = exc.rcvd.code if exc.rcvd is not None else _ABNORMAL_CLOSURE
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            logger.error("WebSocket error on %s: %s", self._url, exc)
            return self._fail(TransportFailure(f"{type(exc).__name__}: {exc}"))
        finally:
            self._ws = None

        if code is None:
            code = _NORMAL_CLOSURE
        logger.info("WebSocket %s closed: code=%s", self._url, code)
        if code == _NORMAL_CLOSURE:
            return None
        return self._fail(TransportFailure(f"connection closed with code {code}", close_code=code))

    async def _on_open(self, ws: Any) -> None:
        self._state    = StreamState.OPEN
        self._attempts = 0
        await ws.send(json.dumps(self.subscription_message()))
        logger.info(
            "WebSocket connected to %s, subscribed to %d topic(s)",
            self._url, len(self._topics),
        )
        self._start_keepalive(ws)

    async def _on_frame(self, ws: Any, frame: Union[str, bytes]) -> None:
        text = frame.decode("utf-8", errors="replace") if isinstance(frame, (bytes, bytearray)) else frame
        if text == _PONG:
            return
        if text == _PING:
            await ws.send(_PONG)
            return
        for event in parse_frame(text):
            await self._dispatch(event)

    async def _dispatch(self, event: StreamEvent) -> None:
        """Deliver to a snapshot of the listeners, isolating their failures."""
        for listener in tuple(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Unhandled exception in listener for %s event",
                    getattr(event, "event_type", None),
                )

    async def _reconnect(self, failure: TransportFailure) -> None:
        if self._reconnecting or self._closed_by_user:
            return

        if self._attempts >= self._max_reconnects:
            self._exhausted = True
            logger.error(
                "Max reconnection attempts (%d) reached for %s – giving up",
                self._max_reconnects, self._url,
            )
            raise ReconnectExhausted(self._url, self._max_reconnects) from failure

        self._reconnecting = True
        self._state        = StreamState.RECONNECTING
        self._attempts    += 1
        delay = self._reconnect_delay * self._attempts
        logger.warning(
            "Reconnecting to %s (attempt %d/%d) in %.1f s: %s",
            self._url, self._attempts, self._max_reconnects, delay, failure,
        )

        self._reconnect_task = asyncio.ensure_future(self._sleep(delay))
        try:
            await self._reconnect_task
        except asyncio.CancelledError:
            if not self._closed_by_user:
                raise
        finally:
            self._reconnect_task = None
            self._reconnecting   = False

    def _start_keepalive(self, ws: Any) -> None:
        self._cancel_keepalive()
        self._keepalive_task = asyncio.ensure_future(self._keepalive(ws))

    def _cancel_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _keepalive(self, ws: Any) -> None:
        """Send "PING" every ping_interval seconds until closed."""
        try:
            while not self._closed_by_user:
                await self._sleep(self._ping_interval)
                if self._closed_by_user:
                    return
                await ws.send(_PING)
        except (ConnectionClosed, OSError) as exc:
            logger.debug("Keepalive stopped for %s: %s", self._url, exc)
        except Exception:
            logger.exception("Keepalive failed for %s", self._url)


# ---------------------------------------------------------------------------
# Convenience factory
# ---------------------------------------------------------------------------

def make_ws_client(
    channel:  Union[Channel, str],
    base_url: str,
    topics:   Iterable[str],
    auth:     Optional[ApiCredential] = None,
    **kwargs: Any,
) -> ClobWebSocketClient:
    """Factory function to create a ClobWebSocketClient."""
    return ClobWebSocketClient(channel, base_url, topics, auth, **kwargs)
