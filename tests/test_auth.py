"""
tests/test_auth.py – Unit tests for tiered authentication.

All tests run offline.  They verify:
  1. Tier derivation from (signer, credentials).
  2. L1 header shape and that the signature recovers to the wallet.
  3. L2 HMAC against an independent computation, including body handling.
  4. Tier gating raises AuthUnavailable before any work is done.
  5. Header enrichment lets caller-supplied values win.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

import pytest

from clob_sdk.auth import (
    POLY_ADDRESS,
    POLY_API_KEY,
    POLY_NONCE,
    POLY_PASSPHRASE,
    POLY_SIGNATURE,
    POLY_TIMESTAMP,
    ClobAuth,
    build_hmac_signature,
    create_level1_headers,
    create_level2_headers,
    enrich_headers,
)
from clob_sdk.exceptions import AuthUnavailable
from clob_sdk.signer import Signer
from clob_sdk.signing import recover_clob_auth_signer
from clob_sdk.types import ApiCredential, RequestArgs, TrustTier

TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SECRET           = base64.urlsafe_b64encode(b"super-secret-hmac-key-32-bytes!!").decode()
TS               = 1_700_000_000


def _signer() -> Signer:
    return Signer(TEST_PRIVATE_KEY, 137)


def _creds() -> ApiCredential:
    return ApiCredential(api_key="key-123", api_secret=SECRET, api_passphrase="pass-456")


def _expected_hmac(message: str) -> str:
    key = base64.urlsafe_b64decode(SECRET)
    return base64.urlsafe_b64encode(hmac.new(key, message.encode(), hashlib.sha256).digest()).decode()


# ---------------------------------------------------------------------------
# Tier derivation
# ---------------------------------------------------------------------------

class TestTier:
    def test_no_signer_is_l0(self) -> None:
        assert ClobAuth().tier is TrustTier.L0

    def test_creds_without_signer_is_l0(self) -> None:
        assert ClobAuth(creds=_creds()).tier is TrustTier.L0

    def test_signer_only_is_l1(self) -> None:
        assert ClobAuth(signer=_signer()).tier is TrustTier.L1

    def test_signer_and_creds_is_l2(self) -> None:
        assert ClobAuth(signer=_signer(), creds=_creds()).tier is TrustTier.L2

    def test_set_credentials_escalates(self) -> None:
        auth = ClobAuth(signer=_signer())
        auth.set_credentials(_creds())
        assert auth.tier is TrustTier.L2


# ---------------------------------------------------------------------------
# L1 headers
# ---------------------------------------------------------------------------

class TestLevel1Headers:
    def test_header_keys_and_values(self) -> None:
        signer  = _signer()
        headers = create_level1_headers(signer, nonce=3, timestamp=TS)
        assert set(headers) == {POLY_ADDRESS, POLY_SIGNATURE, POLY_TIMESTAMP, POLY_NONCE}
        assert headers[POLY_ADDRESS] == signer.address
        assert headers[POLY_TIMESTAMP] == str(TS)
        assert headers[POLY_NONCE] == "3"

    def test_signature_recovers_wallet(self) -> None:
        signer  = _signer()
        headers = create_level1_headers(signer, nonce=0, timestamp=TS)
        recovered = recover_clob_auth_signer(signer.address, 137, TS, 0, headers[POLY_SIGNATURE])
        assert recovered == signer.address

    def test_deterministic_for_fixed_timestamp(self) -> None:
        signer = _signer()
        assert create_level1_headers(signer, 0, TS) == create_level1_headers(signer, 0, TS)

    def test_missing_signer_raises_l1(self) -> None:
        with pytest.raises(AuthUnavailable) as exc_info:
            create_level1_headers(None)
        assert exc_info.value.tier is TrustTier.L1
        assert "private key" in str(exc_info.value)


# ---------------------------------------------------------------------------
# L2 headers / HMAC
# ---------------------------------------------------------------------------

class TestHmac:
    def test_matches_independent_computation(self) -> None:
        body = '{"orderID":"0xabc"}'
        sig  = build_hmac_signature(SECRET, TS, "DELETE", "/order", body)
        assert sig == _expected_hmac(f"{TS}DELETE/order{body}")

    def test_empty_body_is_omitted(self) -> None:
        assert build_hmac_signature(SECRET, TS, "GET", "/auth/api-keys", "") == \
            build_hmac_signature(SECRET, TS, "GET", "/auth/api-keys")

    def test_output_is_urlsafe(self) -> None:
        sig = build_hmac_signature(SECRET, TS, "POST", "/order", '{"a":1}')
        assert "+" not in sig and "/" not in sig


class TestLevel2Headers:
    def test_header_keys_and_values(self) -> None:
        signer  = _signer()
        args    = RequestArgs(method="get", request_path="/auth/api-keys")
        headers = create_level2_headers(signer, _creds(), args, timestamp=TS)
        assert set(headers) == {POLY_ADDRESS, POLY_SIGNATURE, POLY_TIMESTAMP, POLY_API_KEY, POLY_PASSPHRASE}
        assert headers[POLY_API_KEY] == "key-123"
        assert headers[POLY_PASSPHRASE] == "pass-456"
        assert headers[POLY_SIGNATURE] == _expected_hmac(f"{TS}GET/auth/api-keys")

    def test_serialized_body_is_signed_verbatim(self) -> None:
        body    = '{"orderID": "0xabc"}'   # deliberately non-compact
        args    = RequestArgs(method="DELETE", request_path="/order", body={"x": 1}, serialized_body=body)
        headers = create_level2_headers(_signer(), _creds(), args, timestamp=TS)
        assert headers[POLY_SIGNATURE] == _expected_hmac(f"{TS}DELETE/order{body}")

    def test_body_is_serialised_compactly(self) -> None:
        args    = RequestArgs(method="DELETE", request_path="/order", body={"orderID": "0xabc"})
        headers = create_level2_headers(_signer(), _creds(), args, timestamp=TS)
        assert headers[POLY_SIGNATURE] == _expected_hmac(f'{TS}DELETE/order{{"orderID":"0xabc"}}')

    def test_missing_signer_raises_l1(self) -> None:
        args = RequestArgs(method="GET", request_path="/x")
        with pytest.raises(AuthUnavailable) as exc_info:
            create_level2_headers(None, _creds(), args)
        assert exc_info.value.tier is TrustTier.L1

    def test_missing_creds_raises_l2(self) -> None:
        args = RequestArgs(method="GET", request_path="/x")
        with pytest.raises(AuthUnavailable) as exc_info:
            create_level2_headers(_signer(), None, args)
        assert exc_info.value.tier is TrustTier.L2
        assert "API Credentials" in str(exc_info.value)

    def test_auth_manager_gates_level2(self) -> None:
        with pytest.raises(AuthUnavailable):
            ClobAuth(signer=_signer()).level2_headers(RequestArgs(method="GET", request_path="/x"))

    def test_secrets_not_in_repr(self) -> None:
        text = repr(ClobAuth(signer=_signer(), creds=_creds()))
        assert SECRET not in text
        assert "pass-456" not in text


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------

class TestEnrichHeaders:
    def test_extra_wins_on_collision(self) -> None:
        merged = enrich_headers({"A": "1", "B": "2"}, {"B": "3", "C": "4"})
        assert merged == {"A": "1", "B": "3", "C": "4"}

    def test_inputs_not_mutated(self) -> None:
        base = {"A": "1"}
        enrich_headers(base, {"A": "2"})
        assert base == {"A": "1"}
