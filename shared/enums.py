# =============================================================================
# POLYMARKET APPROVALS - SHARED ENUMS
# =============================================================================
#
# GOVERNANCE:
# These enums define the shared vocabulary across the system.
# Every lifecycle state and every error kind is EXPLICIT and NAMED.
# Callers react to the enum value, never to message text.
#
# =============================================================================

from enum import Enum


class OrderSide(Enum):
    """Side of a limit order, as carried inside an approval token."""
    BUY = "buy"
    SELL = "sell"


class ToolAction(Enum):
    """
    Actions a caller can request from the agent tool.

    Read-only actions are always permitted.
    Mutating actions are subject to the sandbox restriction.
    """
    STATUS = "status"
    BALANCES = "balances"
    POSITIONS = "positions"
    OPEN_ORDERS = "open_orders"
    TRADES = "trades"
    ORDER = "order"
    CANCEL_ORDER = "cancel_order"
    CANCEL_ALL = "cancel_all"
    SEARCH = "search"
    MARKET = "market"
    ORDERBOOK = "orderbook"
    PLACE_ORDER = "place_order"
    RESUME = "resume"

    # Internal refinement of RESUME: only approving moves funds
    RESUME_APPROVE = "resume_approve"

    @property
    def is_mutating(self) -> bool:
        return self in MUTATING_ACTIONS


MUTATING_ACTIONS = frozenset({
    ToolAction.PLACE_ORDER,
    ToolAction.CANCEL_ORDER,
    ToolAction.CANCEL_ALL,
    ToolAction.RESUME_APPROVE,
})


class ApprovalState(Enum):
    """
    Lifecycle of a staged order.

    DRAFT: in-memory only, during a propose request.
    PENDING_APPROVAL: embodied ONLY by an emitted token.
    EXPIRED / SESSION_MISMATCH / REJECTED: terminal, no side effects.
    APPROVED: transient, re-validation in progress.
    SUBMITTED / SUBMISSION_FAILED: terminal, venue was contacted.

    AUDIT NOTE: There is no server-side record of any state.
    The token is the only persistence.
    """
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    EXPIRED = "EXPIRED"
    SESSION_MISMATCH = "SESSION_MISMATCH"
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"
    SUBMITTED = "SUBMITTED"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self not in (
            ApprovalState.DRAFT,
            ApprovalState.PENDING_APPROVAL,
            ApprovalState.APPROVED,
        )


class ErrorKind(Enum):
    """
    Error kinds reported to the caller.

    The value is the wire-level "type" in error responses.

    TOKEN INTEGRITY (terminal, never retried):
    - MALFORMED_TOKEN, INVALID_SIGNATURE, INVALID_PAYLOAD

    LIFECYCLE (reported as outcomes, not exceptions):
    - EXPIRED, SESSION_MISMATCH

    CALLER INPUT / POLICY (terminal for this request):
    - everything else except the transient kinds below

    TRANSIENT:
    - CANCELLED, MARKET_DATA
    """
    MALFORMED_TOKEN = "malformed_token"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_PAYLOAD = "invalid_payload"

    EXPIRED = "expired"
    SESSION_MISMATCH = "session_mismatch"

    CREDENTIAL_UNAVAILABLE = "missing_private_key"
    TRADING_DISABLED = "trading_disabled"
    SANDBOXED = "sandboxed"
    MARKET_NOT_ALLOWED = "market_not_allowed"
    MARKET_REQUIRED = "market_required"
    NOTIONAL_LIMIT_EXCEEDED = "notional_limit"
    INVALID_PRICE_OR_SIZE = "invalid_price_or_size"
    TICK_MISALIGNED = "invalid_tick"
    OUTCOME_UNRESOLVABLE = "outcome_unresolvable"
    NO_TRADABLE_INSTRUMENTS = "no_tradable_instruments"
    UNKNOWN_OUTCOME = "unknown_outcome"
    MISSING_TOKENS = "missing_tokens"
    UNSUPPORTED = "unsupported"
    UNKNOWN_ACTION = "unknown_action"
    INVALID_REQUEST = "invalid_request"
    CONFIRMATION_REQUIRED = "confirmation_required"
    TOKEN_ALREADY_USED = "token_already_used"

    SUBMISSION_FAILED = "submission_failed"

    CANCELLED = "cancelled"
    MARKET_DATA = "market_data"

    # Outermost boundary only
    INTERNAL = "error"


TRANSIENT_ERROR_KINDS = frozenset({
    ErrorKind.CANCELLED,
    ErrorKind.MARKET_DATA,
})
