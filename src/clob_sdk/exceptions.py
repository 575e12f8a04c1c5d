"""
exceptions.py – Error taxonomy for the CLOB SDK.

Every error raised by the SDK derives from ClobError so callers can catch
the whole family in one place.  Messages never include key material,
API secrets or passphrases.

    ClobError
    ├── AuthUnavailable        required key / credential missing (non-retryable)
    ├── InvalidChainConfig     unknown chain id in contract resolution (fatal)
    ├── SigningFailure         ECDSA / typed-data encoding failed (fatal per call)
    ├── OrderValidationError   order rejected locally before signing
    ├── ProtocolDecodeFailure  stream frame could not be mapped (recovered locally)
    ├── TransportFailure       connection-level I/O error (drives reconnects)
    ├── ReconnectExhausted     reconnect cap reached (terminal)
    └── ClobAPIError           non-2xx REST response (defined in rest.py)
"""

from __future__ import annotations

from typing import Any, Optional

from .types import TrustTier

_TIER_MESSAGES: dict[TrustTier, str] = {
    TrustTier.L1: "A private key is needed to interact with this endpoint!",
    TrustTier.L2: "API Credentials are needed to interact with this endpoint!",
}


class ClobError(Exception):
    """Base exception for all CLOB SDK errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthUnavailable(ClobError):
    """Raised before any network activity when a tier's key or credential is missing."""

    def __init__(self, tier: TrustTier) -> None:
        self.tier = TrustTier(tier)
        message = _TIER_MESSAGES.get(self.tier, f"Trust tier {self.tier.name} is unavailable")
        super().__init__(message, {"tier": self.tier.name})


class InvalidChainConfig(ClobError):
    """Raised when no contract configuration exists for a chain id."""

    def __init__(self, chain_id: int, neg_risk: bool = False) -> None:
        self.chain_id = chain_id
        self.neg_risk = neg_risk
        super().__init__(
            f"Invalid chainID: {chain_id}",
            {"chain_id": chain_id, "neg_risk": neg_risk},
        )


class SigningFailure(ClobError):
    """The underlying cryptographic operation failed."""


class OrderValidationError(ClobError, ValueError):
    """An order was rejected locally before it was signed."""


class ProtocolDecodeFailure(ClobError):
    """A stream message could not be parsed or mapped to a typed event."""

    def __init__(self, message: str, raw: Any = None) -> None:
        self.raw = raw
        super().__init__(message)


class TransportFailure(ClobError):
    """Connection-level failure of the streaming transport."""

    def __init__(self, message: str, close_code: Optional[int] = None) -> None:
        self.close_code = close_code
        super().__init__(message, {"close_code": close_code})


class ReconnectExhausted(ClobError):
    """The stream gave up after reaching its reconnect attempt cap."""

    def __init__(self, url: str, attempts: int) -> None:
        self.url = url
        self.attempts = attempts
        super().__init__(
            f"Max reconnection attempts ({attempts}) reached for {url}",
            {"url": url, "attempts": attempts},
        )
