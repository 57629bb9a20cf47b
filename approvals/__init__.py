# =============================================================================
# POLYMARKET APPROVALS - APPROVAL CORE
# =============================================================================
#
# GOVERNANCE INTENT:
# Stateless, resumable human approval for Polymarket orders.
# A proposed order is staged into a signed token. Nothing is stored.
#
# CONTENTS:
# - token_codec:      sign / verify approval tokens
# - outcome_resolver: outcome label -> CLOB token id
# - safety_gate:      pure policy checks
# - state_machine:    propose / resume lifecycle
# - replay_guard:     optional single-use marker store
#
# =============================================================================

"""
Approval Core

Usage:
    from approvals import OrderStaging, ProposeRequest, ResumeRequest, ToolContext

    staging = OrderStaging(config, credentials, gamma, ClobTradingClient)
    proposal = staging.propose(request, ToolContext(session_key="chat-1"))

    # ... human approves proposal.prompt ...
    result = staging.resume(ResumeRequest(proposal.token, True), ToolContext(session_key="chat-1"))
"""

from approvals.exceptions import (
    ApprovalError,
    TokenIntegrityError,
    PolicyError,
    OutcomeResolutionError,
)
from approvals.models import (
    MarketInfo,
    MarketSnapshot,
    PendingOrder,
    ProposalResult,
    ProposeRequest,
    ResumeRequest,
    ResumeResult,
    ToolContext,
)
from approvals.replay_guard import ReplayGuard
from approvals.state_machine import OrderStaging

__all__ = [
    "ApprovalError",
    "TokenIntegrityError",
    "PolicyError",
    "OutcomeResolutionError",
    "MarketInfo",
    "MarketSnapshot",
    "PendingOrder",
    "ProposalResult",
    "ProposeRequest",
    "ResumeRequest",
    "ResumeResult",
    "ToolContext",
    "ReplayGuard",
    "OrderStaging",
]
