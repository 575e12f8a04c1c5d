"""
tests/test_signing.py – Unit tests for the Signer and EIP-712 helpers.

These tests run entirely offline (no network calls).
They verify that:
  1. The Signer derives the expected address and never leaks its key.
  2. sign() returns a 65-byte r‖s‖v signature and rejects bad digests.
  3. ClobAuth signatures are deterministic and recover to the signer.
  4. Order signatures recover to the signer and bind the verifying contract.
  5. Amount strings are converted to base units exactly.
"""

from __future__ import annotations

import pytest
from eth_account import Account

from clob_sdk.exceptions import SigningFailure
from clob_sdk.signer import Signer
from clob_sdk.signing import (
    CLOB_AUTH_DOMAIN_NAME,
    build_eip712_domain,
    build_order_message,
    recover_clob_auth_signer,
    recover_signer,
    sign_clob_auth_message,
    sign_order_struct,
    to_base_units,
)
from clob_sdk.types import Side, SignatureType, SignedOrder, ZERO_ADDRESS


# ---------------------------------------------------------------------------
# Test fixtures
# ---------------------------------------------------------------------------

# Deterministic test private key (DO NOT use with real funds)
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS     = Account.from_key(TEST_PRIVATE_KEY).address

CHAIN_ID = 137
EXCHANGE = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
OTHER    = "0xC5d563A36AE78145C45a50134d48A1215220f80a"


def _signer() -> Signer:
    return Signer(TEST_PRIVATE_KEY, CHAIN_ID)


def _order_fields(signer: Signer) -> dict:
    return {
        "salt":           "123456789",
        "maker":          signer.address,
        "signer":         signer.address,
        "taker":          ZERO_ADDRESS,
        "token_id":       "1234",
        "maker_amount":   "3.700000",
        "taker_amount":   "10.000000",
        "expiration":     "0",
        "nonce":          "0",
        "fee_rate_bps":   "0",
        "side":           Side.BUY,
        "signature_type": SignatureType.EOA,
    }


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------

class TestSigner:
    def test_address_matches_key(self) -> None:
        assert _signer().address == TEST_ADDRESS

    def test_key_without_prefix_accepted(self) -> None:
        signer = Signer(TEST_PRIVATE_KEY[2:], CHAIN_ID)
        assert signer.address == TEST_ADDRESS

    @pytest.mark.parametrize("key,chain", [("", 137), (TEST_PRIVATE_KEY, 0), (TEST_PRIVATE_KEY, -1)])
    def test_rejects_missing_key_or_chain(self, key: str, chain: int) -> None:
        with pytest.raises(ValueError):
            Signer(key, chain)

    def test_invalid_key_does_not_echo_key(self) -> None:
        with pytest.raises(ValueError) as exc_info:
            Signer("0xnothex", CHAIN_ID)
        assert "nothex" not in str(exc_info.value)

    def test_repr_hides_key(self) -> None:
        text = repr(_signer())
        assert TEST_PRIVATE_KEY[2:] not in text
        assert TEST_ADDRESS in text

    def test_signature_is_65_bytes(self) -> None:
        sig = _signer().sign(b"\x01" * 32)
        assert sig.startswith("0x")
        assert len(sig) == 2 + 130
        assert int(sig[-2:], 16) in (27, 28)

    @pytest.mark.parametrize("length", [0, 31, 33])
    def test_wrong_digest_length_raises(self, length: int) -> None:
        with pytest.raises(SigningFailure):
            _signer().sign(b"\x00" * length)


# ---------------------------------------------------------------------------
# Domain / helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_exchange_domain_has_verifying_contract(self) -> None:
        domain = build_eip712_domain(CHAIN_ID, EXCHANGE)
        assert domain == {
            "name":              "Polymarket CTF Exchange",
            "version":           "1",
            "chainId":           CHAIN_ID,
            "verifyingContract": EXCHANGE,
        }

    def test_auth_domain_omits_verifying_contract(self) -> None:
        domain = build_eip712_domain(CHAIN_ID, name=CLOB_AUTH_DOMAIN_NAME)
        assert "verifyingContract" not in domain
        assert domain["name"] == "ClobAuthDomain"

    @pytest.mark.parametrize("amount,expected", [
        ("3.700000", 3_700_000),
        ("10.000000", 10_000_000),
        ("0.000001", 1),
        ("0", 0),
    ])
    def test_to_base_units(self, amount: str, expected: int) -> None:
        assert to_base_units(amount) == expected

    def test_order_message_encodes_side_and_amounts(self) -> None:
        fields = _order_fields(_signer())
        fields["side"] = Side.SELL
        msg = build_order_message(fields)
        assert msg["side"] == 1
        assert msg["makerAmount"] == 3_700_000
        assert msg["tokenId"] == 1234
        assert msg["signatureType"] == 0


# ---------------------------------------------------------------------------
# ClobAuth (L1) signatures
# ---------------------------------------------------------------------------

class TestClobAuthSignature:
    def test_deterministic(self) -> None:
        signer = _signer()
        assert sign_clob_auth_message(signer, 1_700_000_000, 0) == \
            sign_clob_auth_message(signer, 1_700_000_000, 0)

    def test_differs_by_timestamp_and_nonce(self) -> None:
        signer = _signer()
        base = sign_clob_auth_message(signer, 1_700_000_000, 0)
        assert sign_clob_auth_message(signer, 1_700_000_001, 0) != base
        assert sign_clob_auth_message(signer, 1_700_000_000, 1) != base

    def test_recovers_signer(self) -> None:
        signer = _signer()
        sig = sign_clob_auth_message(signer, 1_700_000_000, 7)
        assert recover_clob_auth_signer(signer.address, CHAIN_ID, 1_700_000_000, 7, sig) == TEST_ADDRESS

    def test_chain_id_is_bound(self) -> None:
        sig = sign_clob_auth_message(_signer(), 1_700_000_000, 0)
        assert recover_clob_auth_signer(TEST_ADDRESS, 80002, 1_700_000_000, 0, sig) != TEST_ADDRESS


# ---------------------------------------------------------------------------
# Order signatures
# ---------------------------------------------------------------------------

class TestOrderSignature:
    def test_recovers_signer(self) -> None:
        signer = _signer()
        fields = _order_fields(signer)
        order  = SignedOrder(**fields, signature=sign_order_struct(signer, fields, EXCHANGE))
        assert recover_signer(order, CHAIN_ID, EXCHANGE) == TEST_ADDRESS

    def test_verifying_contract_is_bound(self) -> None:
        signer = _signer()
        fields = _order_fields(signer)
        order  = SignedOrder(**fields, signature=sign_order_struct(signer, fields, EXCHANGE))
        assert recover_signer(order, CHAIN_ID, OTHER) != TEST_ADDRESS

    def test_salt_changes_signature(self) -> None:
        signer = _signer()
        a = _order_fields(signer)
        b = {**a, "salt": "987654321"}
        assert sign_order_struct(signer, a, EXCHANGE) != sign_order_struct(signer, b, EXCHANGE)

    def test_tampered_amount_recovers_other_address(self) -> None:
        signer = _signer()
        fields = _order_fields(signer)
        sig    = sign_order_struct(signer, fields, EXCHANGE)
        forged = SignedOrder(**{**fields, "maker_amount": "4.000000"}, signature=sig)
        assert recover_signer(forged, CHAIN_ID, EXCHANGE) != TEST_ADDRESS

    def test_recover_requires_signature(self) -> None:
        signer = _signer()
        order  = SignedOrder(**_order_fields(signer), signature="")
        with pytest.raises(ValueError):
            recover_signer(order, CHAIN_ID, EXCHANGE)
