# =============================================================================
# POLYMARKET APPROVALS - AGENT TOOL
# =============================================================================
#
# Caller-facing entry point. One call = one action = one JSON-ready dict.
#
# ACTIONS:
#   Read-only:   status, balances, positions, open_orders, trades, order,
#                search, market, orderbook
#   Mutating:    cancel_order, cancel_all           (blocked when sandboxed)
#   Approvals:   place_order -> needs_approval + resumeToken
#                resume      -> submitted / cancelled / expired / ...
#
# RESPONSE SHAPES:
#   {"ok": true,  "status": "ok", ...}
#   {"ok": true,  "status": "needs_approval", "requiresApproval": {...}}
#   {"ok": true,  "status": "cancelled", ...}
#   {"ok": false, "error": {"type": <kind>, "message": ...}}
#
# OUTERMOST BOUNDARY:
# execute() never raises. Known errors keep their kind; anything else is
# reported as type "error" and logged.
#
# =============================================================================

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from shared.config import EnvCredentialSource, ToolConfig
from shared.enums import ErrorKind, ToolAction
from shared.logging_config import AuditLogger
from approvals import safety_gate
from approvals.exceptions import (
    ApprovalError,
    ConfirmationRequiredError,
    CredentialUnavailableError,
    InvalidRequestError,
    MissingTokensError,
)
from approvals.models import MarketInfo, ToolContext
from approvals.outcome_resolver import normalize_outcome_label, resolve_outcome_token
from approvals.replay_guard import ReplayGuard
from approvals.state_machine import OrderStaging, check_cancelled
from trading.clob_client import ClobTradingClient
from trading.gamma_client import GammaClient, normalize_limit
from polymarket_tool.params import (
    parse_propose_request,
    parse_resume_request,
    read_bool_param,
    read_string_param,
)

logger = logging.getLogger(__name__)


class PolymarketTool:
    """
    Polymarket agent tool.

    Holds configuration and collaborators only. No per-order state:
    every place_order / resume round trip is carried by the token.
    """

    name = "polymarket"
    description = (
        "Read Polymarket markets and orderbooks (Gamma + CLOB). Can place CLOB orders "
        "with resumable approvals when trading is enabled."
    )

    def __init__(
        self,
        config: ToolConfig,
        context: Optional[ToolContext] = None,
        credentials=None,
        gamma=None,
        clob_factory: Optional[Callable[[ToolConfig, str], Any]] = None,
        audit: Optional[AuditLogger] = None,
        replay_guard: Optional[ReplayGuard] = None,
    ):
        self.config = config
        self.context = context or ToolContext()
        self.credentials = credentials or EnvCredentialSource(config)
        self.gamma = gamma or GammaClient.from_config(config)
        self.clob_factory = clob_factory or ClobTradingClient
        self.audit = audit or AuditLogger()
        self.staging = OrderStaging(
            config,
            self.credentials,
            self.gamma,
            self.clob_factory,
            audit=self.audit,
            replay_guard=replay_guard,
        )

        self._handlers = {
            ToolAction.STATUS: self._status,
            ToolAction.BALANCES: self._balances,
            ToolAction.POSITIONS: self._positions,
            ToolAction.OPEN_ORDERS: self._open_orders,
            ToolAction.TRADES: self._trades,
            ToolAction.ORDER: self._order,
            ToolAction.CANCEL_ORDER: self._cancel_order,
            ToolAction.CANCEL_ALL: self._cancel_all,
            ToolAction.SEARCH: self._search,
            ToolAction.MARKET: self._market,
            ToolAction.ORDERBOOK: self._orderbook,
            ToolAction.PLACE_ORDER: self._place_order,
            ToolAction.RESUME: self._resume,
        }

    # -------------------------------------------------------------------------
    # DISPATCH
    # -------------------------------------------------------------------------

    def execute(
        self,
        raw_params: Mapping[str, Any],
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Run one action.

        Args:
            raw_params: Decoded JSON parameters, including "action"
            cancel_event: Optional cancellation signal

        Returns:
            JSON-serializable response dict
        """
        try:
            if not isinstance(raw_params, Mapping):
                raise InvalidRequestError("params must be an object")
            raw_action = raw_params.get("action")
            if raw_action is None or (isinstance(raw_action, str) and not raw_action.strip()):
                raise InvalidRequestError("action required")
            action_name = raw_action.strip() if isinstance(raw_action, str) else None

            handler = None
            if action_name is not None:
                try:
                    handler = self._handlers.get(ToolAction(action_name))
                except ValueError:
                    pass
            if handler is None:
                return {
                    "ok": False,
                    "error": {
                        "type": ErrorKind.UNKNOWN_ACTION.value,
                        "message": f"Unknown action: {raw_params.get('action')}",
                    },
                }

            logger.debug(f"Executing action {action_name}")
            return handler(raw_params, cancel_event)

        except ApprovalError as e:
            if e.is_terminal:
                logger.warning(f"Tool refused | {e.kind.value} | {e.message}")
            else:
                logger.info(f"Tool interrupted | {e.kind.value} | {e.message}")
            return {"ok": False, "error": e.to_dict()}

        except Exception as e:
            logger.warning(f"Tool error: {e}")
            return {"ok": False, "error": {"type": ErrorKind.INTERNAL.value, "message": str(e)}}

    # -------------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------------

    def _client(self, cancel_event: Optional[threading.Event] = None):
        private_key = self.credentials.resolve()
        if not private_key:
            raise CredentialUnavailableError(self.config.private_key_env_var)
        check_cancelled(cancel_event)
        return self.clob_factory(self.config, private_key)

    def _fetch_market(
        self,
        params: Mapping[str, Any],
        cancel_event: Optional[threading.Event],
    ) -> MarketInfo:
        market_slug = read_string_param(params, "marketSlug")
        market_id = read_string_param(params, "marketId")
        if not market_slug and not market_id:
            raise InvalidRequestError("marketSlug or marketId required")
        return self.gamma.fetch_market(
            market_id=market_id, market_slug=market_slug, cancel_event=cancel_event
        )

    def _fetch_tradable_market(
        self,
        params: Mapping[str, Any],
        cancel_event: Optional[threading.Event],
    ) -> MarketInfo:
        market = self._fetch_market(params, cancel_event)
        if not market.has_parallel_tokens():
            raise MissingTokensError()
        return market

    def _market_targets(
        self,
        market: MarketInfo,
        outcome: Optional[str],
    ) -> List[Tuple[str, Optional[str]]]:
        """(token_id, outcome) pairs for every outcome, or the one requested."""
        if outcome:
            return [resolve_outcome_token(market.outcomes, market.token_ids, outcome)]
        return [
            (token_id, label)
            for label, token_id in zip(market.outcomes, market.token_ids)
            if token_id
        ]

    # -------------------------------------------------------------------------
    # READ-ONLY ACTIONS
    # -------------------------------------------------------------------------

    def _status(self, params, cancel_event) -> Dict[str, Any]:
        present = bool(self.credentials.resolve())
        return {"ok": True, "status": "ok", "config": self.config.to_public_dict(present)}

    def _balances(self, params, cancel_event) -> Dict[str, Any]:
        client = self._client(cancel_event)
        return {"ok": True, "status": "ok", "collateral": client.get_collateral_balance()}

    def _positions(self, params, cancel_event) -> Dict[str, Any]:
        market = self._fetch_tradable_market(params, cancel_event)
        client = self._client(cancel_event)

        outcome = read_string_param(params, "outcome")
        wanted = normalize_outcome_label(outcome) if outcome else None

        positions = []
        for label, token_id in zip(market.outcomes, market.token_ids):
            if not label or not token_id:
                continue
            if wanted and normalize_outcome_label(label) != wanted:
                continue
            check_cancelled(cancel_event)
            balance = client.get_conditional_balance(token_id)
            positions.append({"outcome": label, "tokenId": token_id, **balance})

        return {
            "ok": True,
            "status": "ok",
            "market": market.snapshot().to_dict(),
            "positions": positions,
        }

    def _open_orders(self, params, cancel_event) -> Dict[str, Any]:
        client = self._client(cancel_event)
        token_id = read_string_param(params, "tokenId")
        if token_id:
            return {"ok": True, "status": "ok", "tokenId": token_id,
                    "orders": client.get_open_orders(token_id)}

        if read_string_param(params, "marketSlug") or read_string_param(params, "marketId"):
            market = self._fetch_tradable_market(params, cancel_event)
            results = []
            for target_token, label in self._market_targets(market, read_string_param(params, "outcome")):
                check_cancelled(cancel_event)
                results.append({
                    "tokenId": target_token,
                    "outcome": label,
                    "orders": client.get_open_orders(target_token),
                })
            return {"ok": True, "status": "ok",
                    "market": market.snapshot().to_dict(), "results": results}

        return {"ok": True, "status": "ok", "orders": client.get_open_orders()}

    def _trades(self, params, cancel_event) -> Dict[str, Any]:
        client = self._client(cancel_event)
        limit = normalize_limit(params.get("limit"))
        token_id = read_string_param(params, "tokenId")
        if token_id:
            trades = list(client.get_trades(token_id) or [])
            return {"ok": True, "status": "ok", "tokenId": token_id, "trades": trades[:limit]}

        if read_string_param(params, "marketSlug") or read_string_param(params, "marketId"):
            market = self._fetch_tradable_market(params, cancel_event)
            results = []
            for target_token, label in self._market_targets(market, read_string_param(params, "outcome")):
                check_cancelled(cancel_event)
                trades = list(client.get_trades(target_token) or [])
                results.append({"tokenId": target_token, "outcome": label, "trades": trades[:limit]})
            return {"ok": True, "status": "ok",
                    "market": market.snapshot().to_dict(), "results": results}

        trades = list(client.get_trades() or [])
        return {"ok": True, "status": "ok", "trades": trades[:limit]}

    def _order(self, params, cancel_event) -> Dict[str, Any]:
        order_id = read_string_param(params, "orderId", required=True)
        client = self._client(cancel_event)
        return {"ok": True, "status": "ok", "orderId": order_id, "order": client.get_order(order_id)}

    def _search(self, params, cancel_event) -> Dict[str, Any]:
        query = read_string_param(params, "query", required=True)
        results = self.gamma.search(query, normalize_limit(params.get("limit")), cancel_event=cancel_event)
        return {"ok": True, "status": "ok", "query": query, "results": results}

    def _market(self, params, cancel_event) -> Dict[str, Any]:
        market = self._fetch_market(params, cancel_event)
        return {"ok": True, "status": "ok", "market": market.to_dict()}

    def _orderbook(self, params, cancel_event) -> Dict[str, Any]:
        token_id = read_string_param(params, "tokenId", required=True)
        book = self.gamma.fetch_orderbook(token_id, cancel_event=cancel_event)
        return {"ok": True, "status": "ok", "tokenId": token_id, "book": book}

    # -------------------------------------------------------------------------
    # MUTATING ACTIONS
    # -------------------------------------------------------------------------

    def _cancel_order(self, params, cancel_event) -> Dict[str, Any]:
        safety_gate.require_sandbox_permits(ToolAction.CANCEL_ORDER, self.context.sandboxed)
        order_id = read_string_param(params, "orderId", required=True)
        client = self._client(cancel_event)
        result = client.cancel_order(order_id)
        self.audit.log_event("CANCEL", {"scope": "order", "order_id": order_id})
        return {"ok": True, "status": "ok", "orderId": order_id, "result": result}

    def _cancel_all(self, params, cancel_event) -> Dict[str, Any]:
        safety_gate.require_sandbox_permits(ToolAction.CANCEL_ALL, self.context.sandboxed)
        if read_bool_param(params, "confirm") is not True:
            raise ConfirmationRequiredError('cancel_all requires {"confirm": true}.')
        client = self._client(cancel_event)
        result = client.cancel_all()
        self.audit.log_event("CANCEL", {"scope": "all"})
        return {"ok": True, "status": "ok", "result": result}

    # -------------------------------------------------------------------------
    # APPROVAL FLOW
    # -------------------------------------------------------------------------

    def _place_order(self, params, cancel_event) -> Dict[str, Any]:
        request = parse_propose_request(params)
        proposal = self.staging.propose(request, self.context, cancel_event=cancel_event)
        return proposal.to_response()

    def _resume(self, params, cancel_event) -> Dict[str, Any]:
        request = parse_resume_request(params)
        result = self.staging.resume(request, self.context, cancel_event=cancel_event)
        return result.to_response()
