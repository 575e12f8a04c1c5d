"""
auth.py – Tiered request authentication for the CLOB exchange.

The exchange recognises three trust tiers:

L0  no headers                                   public endpoints
L1  EIP-712 ClobAuth signature of the wallet     API-key creation / derivation
L2  HMAC-SHA256 over the request with API secret  trading and account endpoints

Neither tier ever sends the private key or the API secret: L1 sends a
signature over a fixed attestation, L2 sends an HMAC of
``timestamp ‖ METHOD ‖ path ‖ body``.

Usage
-----
    from clob_sdk import ApiCredential, ClobAuth, RequestArgs, Signer

    auth = ClobAuth(signer=Signer(private_key, 137), creds=creds)

    # L1 – used once to create or derive API credentials
    headers = auth.level1_headers(nonce=0)

    # L2 – sign exactly the body string that will be transmitted
    body    = '{"orderID":"0xabc"}'
    headers = auth.level2_headers(
        RequestArgs(method="DELETE", request_path="/order", serialized_body=body)
    )
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from .exceptions import AuthUnavailable
from .signer import Signer
from .signing import sign_clob_auth_message
from .types import ApiCredential, RequestArgs, TrustTier

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Header names
# ---------------------------------------------------------------------------

POLY_ADDRESS    = "POLY_ADDRESS"
POLY_SIGNATURE  = "POLY_SIGNATURE"
POLY_TIMESTAMP  = "POLY_TIMESTAMP"
POLY_NONCE      = "POLY_NONCE"
POLY_API_KEY    = "POLY_API_KEY"
POLY_PASSPHRASE = "POLY_PASSPHRASE"


def _now() -> int:
    return int(time.time())


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

def build_hmac_signature(
    secret: str,
    timestamp: int,
    method: str,
    request_path: str,
    body: Optional[str] = None,
) -> str:
    """
    HMAC-SHA256 of ``timestamp ‖ method ‖ request_path ‖ body``.

    The secret is URL-safe base64; the result is URL-safe base64 as well.
    ``body`` must be the exact string that goes on the wire and is left
    out entirely when empty.
    """
    message = f"{timestamp}{method}{request_path}"
    if body:
        message += body

    key    = base64.urlsafe_b64decode(secret)
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8")


# ---------------------------------------------------------------------------
# Header builders
# ---------------------------------------------------------------------------

def create_level1_headers(
    signer: Optional[Signer],
    nonce: int = 0,
    timestamp: Optional[int] = None,
) -> dict[str, str]:
    """
    Wallet (L1) headers: address, ClobAuth signature, timestamp, nonce.

    ``timestamp`` defaults to the current Unix second, so two calls a second
    apart produce different signatures; pass it explicitly for determinism.
    """
    if signer is None:
        raise AuthUnavailable(TrustTier.L1)

    ts = _now() if timestamp is None else timestamp
    signature = sign_clob_auth_message(signer, ts, nonce)

    logger.debug("Created L1 headers for %s (nonce=%d)", signer.address, nonce)
    return {
        POLY_ADDRESS:   signer.address,
        POLY_SIGNATURE: signature,
        POLY_TIMESTAMP: str(ts),
        POLY_NONCE:     str(nonce),
    }


def create_level2_headers(
    signer: Optional[Signer],
    creds: Optional[ApiCredential],
    request_args: RequestArgs,
    timestamp: Optional[int] = None,
) -> dict[str, str]:
    """API-key (L2) headers: address, HMAC signature, timestamp, key, passphrase."""
    if signer is None:
        raise AuthUnavailable(TrustTier.L1)
    if creds is None:
        raise AuthUnavailable(TrustTier.L2)

    ts = _now() if timestamp is None else timestamp
    signature = build_hmac_signature(
        creds.api_secret.get_secret_value(),
        ts,
        request_args.method,
        request_args.request_path,
        request_args.signing_body,
    )

    logger.debug("Created L2 headers for %s %s", request_args.method, request_args.request_path)
    return {
        POLY_ADDRESS:    signer.address,
        POLY_SIGNATURE:  signature,
        POLY_TIMESTAMP:  str(ts),
        POLY_API_KEY:    creds.api_key,
        POLY_PASSPHRASE: creds.api_passphrase.get_secret_value(),
    }


def enrich_headers(headers: Mapping[str, str], extra: Mapping[str, str]) -> dict[str, str]:
    """Return a new dict with ``extra`` layered over ``headers`` (extra wins on collision)."""
    return {**headers, **extra}


# ---------------------------------------------------------------------------
# Auth manager
# ---------------------------------------------------------------------------

@dataclass
class ClobAuth:
    """
    Bundles the optional signer and optional API credentials of a session
    and gates each header builder on the trust tier it needs.

    Parameters
    ----------
    signer : Signer holding the wallet key (None → L0)
    creds  : API credentials (None → at most L1)

    Both are borrowed read-only; header computation holds no mutable state
    and is safe to call from several threads.
    """

    signer: Optional[Signer]        = None
    creds:  Optional[ApiCredential] = None

    @property
    def tier(self) -> TrustTier:
        return TrustTier.derive(self.signer is not None, self.creds is not None)

    @property
    def address(self) -> Optional[str]:
        return self.signer.address if self.signer is not None else None

    def set_credentials(self, creds: ApiCredential) -> None:
        """Attach credentials (e.g. right after creating them), escalating to L2."""
        self.creds = creds
        logger.info("API credentials set – trust tier is now %s", self.tier.name)

    def assert_level1(self) -> None:
        if self.tier < TrustTier.L1:
            raise AuthUnavailable(TrustTier.L1)

    def assert_level2(self) -> None:
        if self.tier < TrustTier.L2:
            raise AuthUnavailable(TrustTier.L2)

    def level1_headers(self, nonce: int = 0, timestamp: Optional[int] = None) -> dict[str, str]:
        self.assert_level1()
        return create_level1_headers(self.signer, nonce, timestamp)

    def level2_headers(
        self,
        request_args: RequestArgs,
        timestamp: Optional[int] = None,
    ) -> dict[str, str]:
        self.assert_level2()
        return create_level2_headers(self.signer, self.creds, request_args, timestamp)
