# =============================================================================
# POLYMARKET APPROVALS - TOKEN CODEC UNIT TESTS
# =============================================================================
#
# Test categories:
# 1. Round trip and determinism
# 2. Tamper and secret sensitivity
# 3. Verification order (format -> signature -> payload)
#
# =============================================================================

import base64
import hashlib
import hmac
import json

import pytest

from shared.enums import OrderSide
from approvals import token_codec
from approvals.exceptions import (
    InvalidPayloadError,
    InvalidSignatureError,
    MalformedTokenError,
)
from approvals.models import MarketSnapshot, PendingOrder
from tests.fakes import NOW_MS, OTHER_SECRET, TEST_SECRET


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _forge(payload: dict, secret: str = TEST_SECRET) -> str:
    """Build a correctly signed token around an arbitrary payload."""
    body = _b64(json.dumps(payload).encode("utf-8"))
    key = hashlib.sha256(secret.encode("utf-8")).digest()
    sig = _b64(hmac.new(key, body.encode("ascii"), hashlib.sha256).digest())
    return f"{body}.{sig}"


@pytest.fixture
def order():
    return PendingOrder(
        action="place_order",
        created_at_ms=NOW_MS,
        expires_at_ms=NOW_MS + 300_000,
        session_key="session-1",
        market=MarketSnapshot(id="12345", slug="will-it-rain-in-berlin", question="Rain?"),
        token_id="tok-yes",
        side=OrderSide.BUY,
        outcome="Yes",
        price=0.62,
        size=10.0,
        approx_notional_usd=6.2,
    )


# =============================================================================
# ROUND TRIP
# =============================================================================


class TestRoundTrip:
    """encode/decode preserve the descriptor exactly."""

    def test_decode_returns_equal_descriptor(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        assert token_codec.decode(token, TEST_SECRET) == order

    def test_optional_fields_absent(self, order):
        bare = PendingOrder(
            action="place_order",
            created_at_ms=NOW_MS,
            expires_at_ms=NOW_MS + 1,
            market=MarketSnapshot(),
            token_id="tok-no",
            side=OrderSide.SELL,
            price=0.01,
            size=0.5,
            approx_notional_usd=0.005,
        )
        decoded = token_codec.decode(token_codec.encode(bare, TEST_SECRET), TEST_SECRET)
        assert decoded == bare
        assert decoded.session_key is None
        assert decoded.outcome is None

    def test_encoding_is_deterministic(self, order):
        assert token_codec.encode(order, TEST_SECRET) == token_codec.encode(order, TEST_SECRET)

    def test_token_shape(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        body, sig = token.split(".")
        assert "=" not in token
        assert "+" not in token and "/" not in token
        # HMAC-SHA256 digest, unpadded base64url
        assert len(sig) == 43

    def test_payload_uses_camel_case_keys(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        body = token.split(".")[0]
        payload = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
        assert payload["tokenId"] == "tok-yes"
        assert payload["approxNotionalUsd"] == 6.2
        assert payload["sessionKey"] == "session-1"
        assert payload["side"] == "buy"

    def test_key_is_sha256_of_secret(self, order):
        assert token_codec.derive_token_key(TEST_SECRET) == hashlib.sha256(
            TEST_SECRET.encode("utf-8")
        ).digest()


# =============================================================================
# TAMPER / SECRET SENSITIVITY
# =============================================================================


class TestTamperSensitivity:
    """Any alteration of the token is detected."""

    def test_every_single_character_substitution_fails(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        for i, ch in enumerate(token):
            for replacement in ("A" if ch != "A" else "B", "!", "."):
                if replacement == ch:
                    continue
                tampered = token[:i] + replacement + token[i + 1:]
                with pytest.raises((InvalidSignatureError, MalformedTokenError)):
                    token_codec.decode(tampered, TEST_SECRET)

    def test_modified_payload_with_original_signature(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        sig = token.split(".")[1]
        payload = order.to_dict()
        payload["size"] = 10000.0
        body = _b64(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8"))
        with pytest.raises(InvalidSignatureError):
            token_codec.decode(f"{body}.{sig}", TEST_SECRET)

    def test_other_secret_fails_with_invalid_signature(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        with pytest.raises(InvalidSignatureError):
            token_codec.decode(token, OTHER_SECRET)

    def test_truncated_signature_fails(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        with pytest.raises(InvalidSignatureError):
            token_codec.decode(token[:-2], TEST_SECRET)

    def test_padding_is_rejected(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        with pytest.raises(MalformedTokenError):
            token_codec.decode(token + "=", TEST_SECRET)


# =============================================================================
# VERIFICATION ORDER
# =============================================================================


class TestVerificationOrder:
    """Format is checked first, then signature, then payload."""

    @pytest.mark.parametrize("token", [
        "",
        "no-separator",
        "a.b.c",
        ".sig",
        "body.",
        "bo dy.sig",
        "body.si+g",
    ])
    def test_malformed(self, token):
        with pytest.raises(MalformedTokenError):
            token_codec.decode(token, TEST_SECRET)

    def test_non_string_is_malformed(self):
        with pytest.raises(MalformedTokenError):
            token_codec.decode(None, TEST_SECRET)

    def test_bad_payload_with_bad_signature_reports_signature(self):
        # Payload is garbage, but the signature check must come first
        with pytest.raises(InvalidSignatureError):
            token_codec.decode("Zm9v.c2lnbmF0dXJl", TEST_SECRET)

    def test_signed_non_object_payload(self):
        with pytest.raises(InvalidPayloadError):
            token_codec.decode(_forge(["not", "an", "object"]), TEST_SECRET)

    def test_signed_payload_missing_fields(self):
        with pytest.raises(InvalidPayloadError):
            token_codec.decode(_forge({"action": "place_order"}), TEST_SECRET)

    def test_signed_payload_price_out_of_range(self, order):
        payload = order.to_dict()
        payload["price"] = 1.5
        with pytest.raises(InvalidPayloadError):
            token_codec.decode(_forge(payload), TEST_SECRET)

    def test_signed_payload_invalid_side(self, order):
        payload = order.to_dict()
        payload["side"] = "hold"
        with pytest.raises(InvalidPayloadError):
            token_codec.decode(_forge(payload), TEST_SECRET)

    def test_signed_payload_is_not_json(self):
        body = _b64(b"\xff\xfe not json")
        key = hashlib.sha256(TEST_SECRET.encode("utf-8")).digest()
        sig = _b64(hmac.new(key, body.encode("ascii"), hashlib.sha256).digest())
        with pytest.raises(InvalidPayloadError):
            token_codec.decode(f"{body}.{sig}", TEST_SECRET)


class TestFingerprint:

    def test_fingerprint_is_stable_hex(self, order):
        token = token_codec.encode(order, TEST_SECRET)
        fp = token_codec.token_fingerprint(token)
        assert fp == token_codec.token_fingerprint(token)
        assert len(fp) == 32
        assert all(c in "0123456789abcdef" for c in fp)
        assert fp not in token
