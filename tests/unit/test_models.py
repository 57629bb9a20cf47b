# =============================================================================
# POLYMARKET APPROVALS - DATA MODEL UNIT TESTS
# =============================================================================

import dataclasses

import pytest

from shared.enums import ApprovalState, OrderSide
from approvals.exceptions import InvalidPayloadError
from approvals.models import (
    MarketInfo,
    MarketSnapshot,
    PendingOrder,
    ProposalResult,
    ResumeResult,
)
from tests.fakes import NOW_MS


def _order(**overrides) -> PendingOrder:
    fields = dict(
        action="place_order",
        created_at_ms=NOW_MS,
        expires_at_ms=NOW_MS + 300_000,
        session_key=None,
        market=MarketSnapshot(id="12345", slug="will-it-rain-in-berlin", question="Rain?"),
        token_id="tok-yes",
        side=OrderSide.BUY,
        outcome="Yes",
        price=0.62,
        size=10.0,
        approx_notional_usd=6.2,
    )
    fields.update(overrides)
    return PendingOrder(**fields)


class TestPendingOrder:

    def test_is_frozen(self):
        order = _order()
        with pytest.raises(dataclasses.FrozenInstanceError):
            order.price = 0.5

    def test_expiry_boundary(self):
        order = _order()
        assert not order.is_expired(order.expires_at_ms)
        assert order.is_expired(order.expires_at_ms + 1)

    def test_from_dict_round_trip(self):
        order = _order(session_key="s-1")
        assert PendingOrder.from_dict(order.to_dict()) == order

    @pytest.mark.parametrize("field,value", [
        ("price", True),
        ("price", "0.5"),
        ("price", 0),
        ("price", 1),
        ("size", 0),
        ("size", -3),
        ("expiresAtMs", None),
        ("tokenId", ""),
        ("tokenId", 42),
        ("action", None),
        ("side", ["buy"]),
        ("side", "BUY"),
        ("sessionKey", 7),
        ("market", "will-it-rain"),
    ])
    def test_from_dict_rejects_bad_fields(self, field, value):
        payload = _order().to_dict()
        payload[field] = value
        with pytest.raises(InvalidPayloadError):
            PendingOrder.from_dict(payload)

    def test_from_dict_rejects_non_dict(self):
        with pytest.raises(InvalidPayloadError):
            PendingOrder.from_dict("place_order")

    def test_missing_market_is_empty_snapshot(self):
        payload = _order().to_dict()
        del payload["market"]
        assert PendingOrder.from_dict(payload).market == MarketSnapshot()

    def test_prompt_lists_order_details(self):
        prompt = _order().format_prompt()
        assert prompt.startswith("You are about to place a Polymarket order.")
        assert "Market: Rain?" in prompt
        assert "Slug: will-it-rain-in-berlin" in prompt
        assert "Token ID: tok-yes" in prompt
        assert "Outcome: Yes" in prompt
        assert "Side: BUY" in prompt
        assert "Approx notional (USD): 6.20" in prompt
        assert prompt.endswith("Reply with approval to continue, or reject to cancel.")

    def test_prompt_omits_missing_lines(self):
        prompt = _order(market=MarketSnapshot(), outcome=None).format_prompt()
        assert "Market: (unknown)" in prompt
        assert "Slug:" not in prompt
        assert "Outcome:" not in prompt


class TestMarketInfo:

    def test_parallel_tokens(self):
        assert MarketInfo("1", "s", "q", ["Yes", "No"], ["a", "b"]).has_parallel_tokens()
        assert not MarketInfo("1", "s", "q", ["Yes", "No"], ["a"]).has_parallel_tokens()
        assert not MarketInfo("1", "s", "q", [], []).has_parallel_tokens()

    def test_to_dict_adds_parsed_fields(self):
        market = MarketInfo("1", "s", "q", ["Yes", "No"], ["a", "b"], ["0.6", "0.4"], raw={"id": "1"})
        data = market.to_dict()
        assert data["id"] == "1"
        assert data["outcomesParsed"] == ["Yes", "No"]
        assert data["clobTokenIdsParsed"] == ["a", "b"]
        assert data["outcomePricesParsed"] == ["0.6", "0.4"]


class TestResponses:

    def test_proposal_response_shape(self):
        order = _order()
        response = ProposalResult(order=order, token="t.s", prompt="p").to_response()
        assert response["ok"] is True
        assert response["status"] == "needs_approval"
        assert response["output"] == []
        approval = response["requiresApproval"]
        assert approval["type"] == "approval_request"
        assert approval["resumeToken"] == "t.s"
        assert approval["items"] == [order.to_dict()]

    def test_submitted_response(self):
        result = ResumeResult(ApprovalState.SUBMITTED, order_id="0xabc", order_status="live")
        assert result.to_response() == {
            "ok": True,
            "status": "ok",
            "output": [{"orderID": "0xabc", "status": "live"}],
            "requiresApproval": None,
        }

    def test_rejected_response(self):
        response = ResumeResult(ApprovalState.REJECTED).to_response()
        assert response["ok"] is True
        assert response["status"] == "cancelled"

    @pytest.mark.parametrize("state,error_type", [
        (ApprovalState.EXPIRED, "expired"),
        (ApprovalState.SESSION_MISMATCH, "session_mismatch"),
        (ApprovalState.SUBMISSION_FAILED, "submission_failed"),
    ])
    def test_terminal_error_responses(self, state, error_type):
        response = ResumeResult(state, reason="why").to_response()
        assert response == {"ok": False, "error": {"type": error_type, "message": "why"}}

    def test_submission_failure_carries_code(self):
        response = ResumeResult(
            ApprovalState.SUBMISSION_FAILED, reason="not enough balance", error_code="API_ERROR"
        ).to_response()
        assert response["error"]["code"] == "API_ERROR"
