# =============================================================================
# POLYMARKET APPROVALS - ORDER STAGING STATE MACHINE
# =============================================================================
#
# GOVERNANCE INTENT:
# A proposed order is NEVER sent to the venue on the request that
# proposed it. It is staged into a signed token and only executed when a
# human resumes that token with approve=True.
#
# LIFECYCLE:
#
#   DRAFT --propose--> PENDING_APPROVAL (exists only as the token)
#
#   PENDING_APPROVAL --resume--> EXPIRED            (terminal)
#                              | SESSION_MISMATCH   (terminal)
#                              | REJECTED           (terminal, approve=False)
#                              | APPROVED --> SUBMITTED | SUBMISSION_FAILED
#
# RE-VALIDATION:
# Everything that can change between propose and resume is checked AGAIN
# at resume time: trading switch, allowlist, tick size, neg-risk flag.
#
# STATELESS:
# No registry of pending orders. Any process holding the same credential
# can resume any token. The optional ReplayGuard is the only exception.
#
# =============================================================================

import logging
import threading
import time
from typing import Any, Callable, Optional

from shared.config import ToolConfig
from shared.enums import ApprovalState, ToolAction
from shared.logging_config import AuditLogger
from approvals import safety_gate, token_codec
from approvals.exceptions import (
    CredentialUnavailableError,
    MarketNotAllowedError,
    MarketRequiredError,
    OperationCancelledError,
    OutcomeUnresolvableError,
    SubmissionFailedError,
    TradingDisabledError,
    UnsupportedActionError,
)
from approvals.models import (
    PLACE_ORDER_ACTION,
    MarketSnapshot,
    PendingOrder,
    ProposalResult,
    ProposeRequest,
    ResumeRequest,
    ResumeResult,
    ToolContext,
)
from approvals.outcome_resolver import resolve_outcome_token
from approvals.replay_guard import ReplayGuard

logger = logging.getLogger(__name__)


EXPIRED_MESSAGE = "Approval token expired; re-run place_order."
SESSION_MISMATCH_MESSAGE = "Approval token is bound to a different session."


def _now_ms() -> int:
    return int(time.time() * 1000)


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise OperationCancelledError if the caller's signal has fired."""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError()


class OrderStaging:
    """
    Drives a staged order from proposal to a terminal state.

    Collaborators are injected:
    - credentials:  object with resolve() -> Optional[str]
    - market_data:  object with fetch_market(market_id, market_slug, cancel_event)
    - clob_factory: callable(config, private_key) returning a client with
                    get_tick_size, get_neg_risk and submit_order
    """

    def __init__(
        self,
        config: ToolConfig,
        credentials,
        market_data,
        clob_factory: Callable[[ToolConfig, str], Any],
        audit: Optional[AuditLogger] = None,
        replay_guard: Optional[ReplayGuard] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.config = config
        self._credentials = credentials
        self._market_data = market_data
        self._clob_factory = clob_factory
        self._audit = audit or AuditLogger()
        self._replay_guard = replay_guard or ReplayGuard(config.replay_guard_dir)
        self._clock = clock

    def _require_credential(self) -> str:
        private_key = self._credentials.resolve()
        if not private_key:
            raise CredentialUnavailableError(self.config.private_key_env_var)
        return private_key

    # -------------------------------------------------------------------------
    # DRAFT -> PENDING_APPROVAL
    # -------------------------------------------------------------------------

    def propose(
        self,
        request: ProposeRequest,
        context: ToolContext,
        now_ms: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProposalResult:
        """
        Stage an order and return a signed approval token.

        Never contacts the order-matching venue.

        Raises:
            TradingDisabledError, SandboxedError, CredentialUnavailableError,
            MarketRequiredError, MarketNotAllowedError,
            OutcomeResolutionError subclasses, InvalidPriceOrSizeError,
            NotionalLimitExceededError, MarketDataError, OperationCancelledError
        """
        config = self.config
        if not config.trade_enabled:
            raise TradingDisabledError()
        safety_gate.require_sandbox_permits(ToolAction.PLACE_ORDER, context.sandboxed)
        private_key = self._require_credential()

        # With an allowlist, a bare tokenId would bypass the market check.
        market = None
        if request.has_market:
            check_cancelled(cancel_event)
            market = self._market_data.fetch_market(
                market_id=request.market_id,
                market_slug=request.market_slug,
                cancel_event=cancel_event,
            )
            check_cancelled(cancel_event)
        elif config.has_allowlist:
            raise MarketRequiredError()

        if market is not None:
            safety_gate.require_market_allowed(market.slug, config.allowed_market_slugs)

        resolved_outcome = None
        if request.token_id:
            token_id = request.token_id
            # Under an allowlist an explicit token must belong to the checked market
            if (
                market is not None
                and config.has_allowlist
                and token_id not in market.token_ids
            ):
                raise MarketNotAllowedError(market.slug, token_id=token_id)
        elif market is not None:
            token_id, resolved_outcome = resolve_outcome_token(
                market.outcomes, market.token_ids, request.outcome
            )
        else:
            raise OutcomeUnresolvableError()

        safety_gate.require_price_and_size(request.price, request.size)
        safety_gate.require_notional_within_limit(
            request.price, request.size, config.max_notional_usd
        )

        now = self._clock() if now_ms is None else now_ms
        if market is not None:
            snapshot = MarketSnapshot(
                id=market.id,
                slug=market.slug or request.market_slug,
                question=market.question,
            )
        else:
            snapshot = MarketSnapshot(slug=request.market_slug)

        order = PendingOrder(
            action=PLACE_ORDER_ACTION,
            created_at_ms=now,
            expires_at_ms=now + config.approval_ttl_ms,
            session_key=context.session_key,
            market=snapshot,
            token_id=token_id,
            side=request.side,
            outcome=resolved_outcome or request.outcome,
            price=request.price,
            size=request.size,
            approx_notional_usd=safety_gate.approx_notional(request.price, request.size),
        )
        token = token_codec.encode(order, private_key)
        fingerprint = token_codec.token_fingerprint(token)

        logger.info(
            f"Order staged | {order.side.value.upper()} {order.size}@{order.price} | "
            f"token_id={order.token_id} | market={snapshot.slug} | fingerprint={fingerprint[:12]}"
        )
        self._audit.log_event("PROPOSE", {
            "state": ApprovalState.PENDING_APPROVAL.value,
            "fingerprint": fingerprint,
            "market_slug": snapshot.slug,
            "token_id": order.token_id,
            "side": order.side.value,
            "price": order.price,
            "size": order.size,
            "approx_notional_usd": order.approx_notional_usd,
            "expires_at_ms": order.expires_at_ms,
            "session_bound": order.session_key is not None,
        })

        return ProposalResult(order=order, token=token, prompt=order.format_prompt())

    # -------------------------------------------------------------------------
    # PENDING_APPROVAL -> terminal
    # -------------------------------------------------------------------------

    def resume(
        self,
        request: ResumeRequest,
        context: ToolContext,
        now_ms: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResumeResult:
        """
        Resume a staged order with a human decision.

        Lifecycle terminals (EXPIRED, SESSION_MISMATCH, REJECTED,
        SUBMISSION_FAILED) are returned. Integrity, policy and transient
        failures are raised.

        Raises:
            SandboxedError, CredentialUnavailableError, TokenIntegrityError
            subclasses, TradingDisabledError, UnsupportedActionError,
            MarketNotAllowedError, TickMisalignedError,
            TokenAlreadyUsedError, MarketDataError, OperationCancelledError
        """
        config = self.config
        private_key = self._require_credential()
        order = token_codec.decode(request.token, private_key)
        fingerprint = token_codec.token_fingerprint(request.token)
        now = self._clock() if now_ms is None else now_ms

        if order.is_expired(now):
            return self._finish(ApprovalState.EXPIRED, order, fingerprint, reason=EXPIRED_MESSAGE)

        if order.session_key is not None and order.session_key != context.session_key:
            return self._finish(
                ApprovalState.SESSION_MISMATCH, None, fingerprint, reason=SESSION_MISMATCH_MESSAGE
            )

        if not request.approve:
            return self._finish(ApprovalState.REJECTED, order, fingerprint)

        # APPROVED: re-validate everything that may have changed since staging
        safety_gate.require_sandbox_permits(ToolAction.RESUME_APPROVE, context.sandboxed)
        if not config.trade_enabled:
            raise TradingDisabledError("Trading disabled in config.")
        if order.action != PLACE_ORDER_ACTION:
            raise UnsupportedActionError()
        if config.has_allowlist:
            safety_gate.require_market_allowed(order.market.slug, config.allowed_market_slugs)

        check_cancelled(cancel_event)
        client = self._clob_factory(config, private_key)

        tick_size = client.get_tick_size(order.token_id, cancel_event=cancel_event)
        check_cancelled(cancel_event)
        safety_gate.require_tick_aligned(order.price, tick_size)

        neg_risk = client.get_neg_risk(order.token_id, cancel_event=cancel_event)
        check_cancelled(cancel_event)

        self._replay_guard.claim(fingerprint, order.expires_at_ms)
        try:
            submitted = client.submit_order(
                token_id=order.token_id,
                price=order.price,
                size=order.size,
                side=order.side,
                tick_size=tick_size,
                neg_risk=neg_risk,
                cancel_event=cancel_event,
            )
        except OperationCancelledError:
            # Never posted: the token stays usable until it expires
            self._replay_guard.release(fingerprint)
            logger.info(f"Submission cancelled before posting | fingerprint={fingerprint[:12]}")
            raise
        except SubmissionFailedError as e:
            logger.error(f"Submission failed | fingerprint={fingerprint[:12]} | {e.message}")
            return self._finish(
                ApprovalState.SUBMISSION_FAILED,
                order,
                fingerprint,
                reason=e.message,
                error_code=e.error_code,
            )

        return self._finish(
            ApprovalState.SUBMITTED,
            order,
            fingerprint,
            order_id=submitted.order_id,
            order_status=submitted.status,
        )

    def _finish(
        self,
        state: ApprovalState,
        order: Optional[PendingOrder],
        fingerprint: str,
        reason: Optional[str] = None,
        order_id: Optional[str] = None,
        order_status: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> ResumeResult:
        logger.info(f"Resume finished | state={state.value} | fingerprint={fingerprint[:12]}")
        self._audit.log_event("RESUME", {
            "state": state.value,
            "fingerprint": fingerprint,
            "order_id": order_id,
            "order_status": order_status,
            "reason": reason,
        })
        return ResumeResult(
            state=state,
            order=order,
            order_id=order_id,
            order_status=order_status,
            reason=reason,
            error_code=error_code,
        )
