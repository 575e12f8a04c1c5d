"""
signing.py – EIP-712 typed-data hashing and signing for the CLOB exchange.

Two structs are signed by the client:

ClobAuth  (L1 wallet authentication)
    domain  {name: "ClobAuthDomain", version: "1", chainId}
    fields  address, timestamp (string), nonce (uint256), message (string)

Order     (every order posted to the exchange)
    domain  {name: "Polymarket CTF Exchange", version: "1", chainId,
             verifyingContract: <exchange for (chain, neg_risk)>}
    fields  salt, maker, signer, taker, tokenId, makerAmount, takerAmount,
            expiration, nonce, feeRateBps, side (uint8), signatureType (uint8)

How it works
------------
1. eth_account encodes the domain separator and the struct hash according
   to the declared field types.
2. The digest is keccak256(0x19 ‖ 0x01 ‖ domainSeparator ‖ structHash).
3. The Signer signs the raw digest, producing an r, s, v signature the
   exchange contract can ecrecover.

Amounts
-------
Order amounts are carried as 6-decimal strings ("3.700000") in SignedOrder;
the signed struct holds the matching on-chain base-unit integers
(3.700000 → 3700000), which is what a uint256 field can represent.

References
----------
- EIP-712 spec : https://eips.ethereum.org/EIPS/eip-712
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak

from .exceptions import SigningFailure
from .signer import Signer
from .types import Side, SignedOrder

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

CLOB_AUTH_DOMAIN_NAME = "ClobAuthDomain"
CLOB_AUTH_VERSION     = "1"
CLOB_AUTH_MESSAGE     = "This message attests that I control the given wallet"

EXCHANGE_DOMAIN_NAME = "Polymarket CTF Exchange"
EXCHANGE_VERSION     = "1"

# Collateral and conditional tokens both use 6 decimals on-chain
AMOUNT_DECIMALS = 6
_AMOUNT_SCALE   = 10 ** AMOUNT_DECIMALS


# ---------------------------------------------------------------------------
# EIP-712 type definitions
# ---------------------------------------------------------------------------

_CLOB_AUTH_TYPES: dict[str, Any] = {
    "ClobAuth": [
        {"name": "address",   "type": "address"},
        {"name": "timestamp", "type": "string"},
        {"name": "nonce",     "type": "uint256"},
        {"name": "message",   "type": "string"},
    ],
}

# Field order mirrors the exchange contract's Order struct and must not change.
_ORDER_TYPES: dict[str, Any] = {
    "Order": [
        {"name": "salt",          "type": "uint256"},
        {"name": "maker",         "type": "address"},
        {"name": "signer",        "type": "address"},
        {"name": "taker",         "type": "address"},
        {"name": "tokenId",       "type": "uint256"},
        {"name": "makerAmount",   "type": "uint256"},
        {"name": "takerAmount",   "type": "uint256"},
        {"name": "expiration",    "type": "uint256"},
        {"name": "nonce",         "type": "uint256"},
        {"name": "feeRateBps",    "type": "uint256"},
        {"name": "side",          "type": "uint8"},
        {"name": "signatureType", "type": "uint8"},
    ],
}


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def build_eip712_domain(
    chain_id: int,
    verifying_contract: Optional[str] = None,
    name: str = EXCHANGE_DOMAIN_NAME,
    version: str = EXCHANGE_VERSION,
) -> dict[str, Any]:
    """
    Construct an EIP-712 domain dict.

    ``verifyingContract`` is omitted when None, which is how the ClobAuth
    domain is declared.
    """
    domain: dict[str, Any] = {
        "name":    name,
        "version": version,
        "chainId": chain_id,
    }
    if verifying_contract is not None:
        domain["verifyingContract"] = verifying_contract
    return domain


def typed_data_digest(signable: SignableMessage) -> bytes:
    """keccak256(0x19 ‖ version ‖ domainSeparator ‖ structHash) – the 32 bytes that get signed."""
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def to_base_units(amount: str) -> int:
    """Convert a 6-decimal amount string into its on-chain integer ("3.700000" → 3700000)."""
    return int(Decimal(amount) * _AMOUNT_SCALE)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _encode(domain: dict[str, Any], types: dict[str, Any], message: dict[str, Any]) -> SignableMessage:
    try:
        return encode_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
    except Exception as exc:
        raise SigningFailure(f"EIP-712 encoding failed: {exc}") from exc


def _build_clob_auth_message(address: str, timestamp: int, nonce: int) -> dict[str, Any]:
    return {
        "address":   address,
        "timestamp": str(timestamp),
        "nonce":     nonce,
        "message":   CLOB_AUTH_MESSAGE,
    }


def _clob_auth_signable(address: str, chain_id: int, timestamp: int, nonce: int) -> SignableMessage:
    domain = build_eip712_domain(chain_id, name=CLOB_AUTH_DOMAIN_NAME, version=CLOB_AUTH_VERSION)
    return _encode(domain, _CLOB_AUTH_TYPES, _build_clob_auth_message(address, timestamp, nonce))


def build_order_message(order: Mapping[str, Any]) -> dict[str, Any]:
    """
    Build the EIP-712 Order message from SignedOrder-shaped fields.

    Shared by sign_order_struct() and recover_signer() so signing and
    verification always produce identical encodings.
    """
    return {
        "salt":          int(order["salt"]),
        "maker":         order["maker"],
        "signer":        order["signer"],
        "taker":         order["taker"],
        "tokenId":       int(order["token_id"]),
        "makerAmount":   to_base_units(order["maker_amount"]),
        "takerAmount":   to_base_units(order["taker_amount"]),
        "expiration":    int(order["expiration"]),
        "nonce":         int(order["nonce"]),
        "feeRateBps":    int(order["fee_rate_bps"]),
        "side":          Side(order["side"]).as_uint8,
        "signatureType": int(order["signature_type"]),
    }


def _order_signable(order: Mapping[str, Any], chain_id: int, verifying_contract: str) -> SignableMessage:
    domain = build_eip712_domain(chain_id, verifying_contract)
    return _encode(domain, _ORDER_TYPES, build_order_message(order))


def _signature_bytes(signature: str) -> bytes:
    return bytes.fromhex(signature.removeprefix("0x"))


# ---------------------------------------------------------------------------
# Public signing API
# ---------------------------------------------------------------------------

def sign_clob_auth_message(signer: Signer, timestamp: int, nonce: int) -> str:
    """
    Sign the L1 ClobAuth attestation for ``signer.address``.

    Deterministic for a fixed (key, chain id, timestamp, nonce).
    """
    signable = _clob_auth_signable(signer.address, signer.chain_id, timestamp, nonce)
    return signer.sign(typed_data_digest(signable))


def sign_order_struct(signer: Signer, order: Mapping[str, Any], verifying_contract: str) -> str:
    """
    EIP-712 sign an order and return the ``0x`` hex signature.

    Parameters
    ----------
    signer             : key holder; its chain id goes into the domain
    order              : SignedOrder-shaped fields (everything but signature)
    verifying_contract : exchange address for the order's (chain, neg_risk)
    """
    signable = _order_signable(order, signer.chain_id, verifying_contract)
    return signer.sign(typed_data_digest(signable))


def recover_signer(order: SignedOrder, chain_id: int, verifying_contract: str) -> str:
    """
    Recover the address that produced ``order.signature``.

    Useful for verification / testing without submitting to the exchange.
    """
    if not order.signature:
        raise ValueError("order.signature is not set")

    signable = _order_signable(order.model_dump(), chain_id, verifying_contract)
    address: str = Account.recover_message(signable, signature=_signature_bytes(order.signature))
    return address


def recover_clob_auth_signer(
    address: str,
    chain_id: int,
    timestamp: int,
    nonce: int,
    signature: str,
) -> str:
    """Recover the address behind an L1 ClobAuth signature."""
    signable = _clob_auth_signable(address, chain_id, timestamp, nonce)
    recovered: str = Account.recover_message(signable, signature=_signature_bytes(signature))
    return recovered
