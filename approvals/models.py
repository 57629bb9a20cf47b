# =============================================================================
# POLYMARKET APPROVALS - DATA MODELS
# =============================================================================
#
# GOVERNANCE INTENT:
# The PendingOrder is the ONLY staged state in the system.
# It is frozen, fully embedded in the approval token, and never stored
# server-side. Any change to it invalidates the token signature.
#
# SCHEMA:
# PendingOrder.from_dict() is a strict parse. A payload that is not a
# well-formed descriptor is rejected, even if its signature verified.
#
# =============================================================================

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shared.enums import ApprovalState, OrderSide
from approvals.exceptions import InvalidPayloadError


PLACE_ORDER_ACTION = "place_order"


def _optional_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidPayloadError(f"Invalid token payload: {name} must be a string")
    return value


def _required_number(value: Any, name: str) -> float:
    # bool is an int subclass; a flipped flag must not pass as a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError(f"Invalid token payload: {name} must be a number")
    if not math.isfinite(value):
        raise InvalidPayloadError(f"Invalid token payload: {name} must be finite")
    return value


# =============================================================================
# MARKET SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Market identifiers captured at staging time.

    Not re-fetched at resume. Only tick size and neg-risk are re-fetched.
    """
    id: Optional[str] = None
    slug: Optional[str] = None
    question: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "slug": self.slug, "question": self.question}

    @classmethod
    def from_dict(cls, data: Any) -> "MarketSnapshot":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise InvalidPayloadError("Invalid token payload: market must be an object")
        return cls(
            id=_optional_str(data.get("id"), "market.id"),
            slug=_optional_str(data.get("slug"), "market.slug"),
            question=_optional_str(data.get("question"), "market.question"),
        )

    @property
    def label(self) -> str:
        """Human-readable label for prompts."""
        return self.question or self.slug or self.id or "(unknown)"


# =============================================================================
# PENDING ORDER DESCRIPTOR
# =============================================================================


@dataclass(frozen=True)
class PendingOrder:
    """
    A proposed limit order awaiting human approval.

    INVARIANTS:
    - 0 < price < 1
    - size > 0
    - approx_notional_usd == price * size at creation time
    - immutable after creation
    """
    action: str
    created_at_ms: int
    expires_at_ms: int
    market: MarketSnapshot
    token_id: str
    side: OrderSide
    price: float
    size: float
    approx_notional_usd: float
    session_key: Optional[str] = None
    outcome: Optional[str] = None

    def is_expired(self, now_ms: int) -> bool:
        """Valid only while now <= expires_at."""
        return now_ms > self.expires_at_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON-serializable payload embedded in the token."""
        return {
            "action": self.action,
            "createdAtMs": self.created_at_ms,
            "expiresAtMs": self.expires_at_ms,
            "sessionKey": self.session_key,
            "market": self.market.to_dict(),
            "tokenId": self.token_id,
            "side": self.side.value,
            "outcome": self.outcome,
            "price": self.price,
            "size": self.size,
            "approxNotionalUsd": self.approx_notional_usd,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PendingOrder":
        """
        Strictly rebuild a descriptor from a decoded payload.

        Raises:
            InvalidPayloadError: If any field is missing, mistyped, or
                violates the price/size invariants.
        """
        if not isinstance(data, dict):
            raise InvalidPayloadError()

        action = data.get("action")
        if not isinstance(action, str) or not action:
            raise InvalidPayloadError("Invalid token payload: action missing")

        token_id = data.get("tokenId")
        if not isinstance(token_id, str) or not token_id:
            raise InvalidPayloadError("Invalid token payload: tokenId missing")

        try:
            side = OrderSide(data.get("side"))
        except (ValueError, TypeError):
            raise InvalidPayloadError("Invalid token payload: side must be buy or sell")

        created_at_ms = _required_number(data.get("createdAtMs"), "createdAtMs")
        expires_at_ms = _required_number(data.get("expiresAtMs"), "expiresAtMs")
        price = _required_number(data.get("price"), "price")
        size = _required_number(data.get("size"), "size")
        notional = _required_number(data.get("approxNotionalUsd"), "approxNotionalUsd")

        if not (0.0 < price < 1.0):
            raise InvalidPayloadError("Invalid token payload: price out of range")
        if size <= 0:
            raise InvalidPayloadError("Invalid token payload: size must be positive")

        return cls(
            action=action,
            created_at_ms=int(created_at_ms),
            expires_at_ms=int(expires_at_ms),
            market=MarketSnapshot.from_dict(data.get("market")),
            token_id=token_id,
            side=side,
            price=price,
            size=size,
            approx_notional_usd=notional,
            session_key=_optional_str(data.get("sessionKey"), "sessionKey"),
            outcome=_optional_str(data.get("outcome"), "outcome"),
        )

    def format_prompt(self) -> str:
        """Format the human-readable approval prompt."""
        lines = [
            "You are about to place a Polymarket order.",
            "",
            f"Market: {self.market.label}",
            f"Slug: {self.market.slug}" if self.market.slug else None,
            f"Token ID: {self.token_id}",
            f"Outcome: {self.outcome}" if self.outcome else None,
            f"Side: {self.side.value.upper()}",
            f"Price: {self.price}",
            f"Size: {self.size}",
            f"Approx notional (USD): {self.approx_notional_usd:.2f}",
            "",
            "Reply with approval to continue, or reject to cancel.",
        ]
        return "\n".join(line for line in lines if line is not None)


# =============================================================================
# MARKET INFO (from the market data provider)
# =============================================================================


@dataclass
class MarketInfo:
    """Read-only market facts fetched at propose time."""
    id: Optional[str]
    slug: Optional[str]
    question: Optional[str]
    outcomes: List[str] = field(default_factory=list)
    token_ids: List[str] = field(default_factory=list)
    outcome_prices: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(id=self.id, slug=self.slug, question=self.question)

    def has_parallel_tokens(self) -> bool:
        """Outcomes and token ids are both present and line up."""
        return (
            len(self.outcomes) > 0
            and len(self.token_ids) > 0
            and len(self.outcomes) == len(self.token_ids)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.raw,
            "outcomesParsed": list(self.outcomes),
            "outcomePricesParsed": list(self.outcome_prices),
            "clobTokenIdsParsed": list(self.token_ids),
        }


# =============================================================================
# REQUESTS / CONTEXT
# =============================================================================


@dataclass(frozen=True)
class ToolContext:
    """Per-call context supplied by the host (not by the caller's params)."""
    sandboxed: bool = False
    session_key: Optional[str] = None


@dataclass(frozen=True)
class ProposeRequest:
    """A typed place_order request. Built by strict parsing at the boundary."""
    side: OrderSide
    price: float
    size: float
    token_id: Optional[str] = None
    market_id: Optional[str] = None
    market_slug: Optional[str] = None
    outcome: Optional[str] = None

    @property
    def has_market(self) -> bool:
        return bool(self.market_id or self.market_slug)


@dataclass(frozen=True)
class ResumeRequest:
    """A typed resume request."""
    token: str
    approve: bool


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class ProposalResult:
    """Terminal output of the staging half: a signed token plus a prompt."""
    order: PendingOrder
    token: str
    prompt: str
    state: ApprovalState = ApprovalState.PENDING_APPROVAL

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "status": "needs_approval",
            "output": [],
            "requiresApproval": {
                "type": "approval_request",
                "prompt": self.prompt,
                "items": [self.order.to_dict()],
                "resumeToken": self.token,
            },
        }


@dataclass(frozen=True)
class ResumeResult:
    """
    Terminal outcome of a resume request.

    EXPIRED, SESSION_MISMATCH and REJECTED are outcomes, not exceptions.
    """
    state: ApprovalState
    order: Optional[PendingOrder] = None
    order_id: Optional[str] = None
    order_status: Optional[str] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None

    _ERROR_TYPES = {
        ApprovalState.EXPIRED: "expired",
        ApprovalState.SESSION_MISMATCH: "session_mismatch",
        ApprovalState.SUBMISSION_FAILED: "submission_failed",
    }

    def to_response(self) -> Dict[str, Any]:
        if self.state == ApprovalState.SUBMITTED:
            return {
                "ok": True,
                "status": "ok",
                "output": [{"orderID": self.order_id, "status": self.order_status}],
                "requiresApproval": None,
            }
        if self.state == ApprovalState.REJECTED:
            return {"ok": True, "status": "cancelled", "output": [], "requiresApproval": None}
        error = {
            "type": self._ERROR_TYPES.get(self.state, "error"),
            "message": self.reason or self.state.value,
        }
        if self.error_code:
            error["code"] = self.error_code
        return {"ok": False, "error": error}
