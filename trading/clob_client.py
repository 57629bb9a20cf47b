# =============================================================================
# POLYMARKET APPROVALS - CLOB TRADING CLIENT
# =============================================================================
#
# CRITICAL SAFETY COMPONENT
#
# This client interfaces with the Polymarket CLOB (Central Limit Order Book)
# through py-clob-client. It is considered HOSTILE by default - network
# failures and malformed responses are EXPECTED failure modes.
#
# FAIL-CLOSED PRINCIPLE:
# Any uncertainty, any unexpected response, any exception -> the order is
# reported as failed. There are NO retries and NO silent fallbacks.
#
# INITIALIZATION (lazy, on first call):
#   1. L1 client from the private key
#   2. create_or_derive_api_creds()
#   3. L2 client with creds, signature type and funder
#
# The approval flow only calls get_tick_size, get_neg_risk and
# submit_order, and only AFTER a human approved the order.
#
# =============================================================================

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import (
    AssetType,
    BalanceAllowanceParams,
    OpenOrderParams,
    OrderArgs,
    OrderType,
    PartialCreateOrderOptions,
    TradeParams,
)
from py_clob_client.order_builder.constants import BUY, SELL

from shared.config import SIGNATURE_TYPE_EOA, ToolConfig
from shared.enums import OrderSide
from approvals.exceptions import (
    MarketDataError,
    OperationCancelledError,
    SubmissionFailedError,
)

logger = logging.getLogger(__name__)


# USDC and conditional tokens both use 6 decimals on Polygon
COLLATERAL_TOKEN_DECIMALS: int = 6
CONDITIONAL_TOKEN_DECIMALS: int = 6


def format_units(raw: str, decimals: int) -> str:
    """
    Format an integer base-unit amount as a decimal string.

    Non-integer input is returned unchanged (trimmed).

    Example:
        format_units("1500000", 6) -> "1.5"
    """
    trimmed = str(raw).strip()
    if not trimmed.isdigit() or decimals <= 0:
        return trimmed
    padded = trimmed.rjust(decimals + 1, "0")
    whole = padded[:-decimals]
    frac = padded[-decimals:].rstrip("0")
    return f"{whole}.{frac}" if frac else whole


# =============================================================================
# RESPONSE TYPES
# =============================================================================


@dataclass
class SubmittedOrder:
    """Venue acknowledgement of a posted order."""
    order_id: str
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)
    request_duration_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"orderID": self.order_id, "status": self.status}


def parse_order_response(response: Any, duration_ms: Optional[float] = None) -> SubmittedOrder:
    """
    Parse an order submission response.

    STRICT VALIDATION:
    - Response must be a dict (or a bare order id string)
    - An error field or success=False is a rejection
    - A missing order id is a rejection

    Raises:
        SubmissionFailedError: On any deviation
    """
    if response is None:
        raise SubmissionFailedError("Empty response from API", error_code="EMPTY_RESPONSE")

    if isinstance(response, str):
        if not response.strip():
            raise SubmissionFailedError("Empty response from API", error_code="EMPTY_RESPONSE")
        return SubmittedOrder(order_id=response, status="SUBMITTED", request_duration_ms=duration_ms)

    if not isinstance(response, dict):
        raise SubmissionFailedError(
            f"Unexpected response type: {type(response).__name__}",
            error_code="UNEXPECTED_TYPE",
        )

    error_msg = response.get("error") or response.get("errorMsg")
    if error_msg or response.get("success") is False:
        raise SubmissionFailedError(
            str(error_msg or "Order rejected by venue"),
            error_code=str(response.get("errorCode") or "API_ERROR"),
        )

    order_id = response.get("orderID") or response.get("order_id") or response.get("id")
    if not order_id:
        raise SubmissionFailedError("Response missing order_id", error_code="MISSING_ORDER_ID")

    return SubmittedOrder(
        order_id=str(order_id),
        status=str(response.get("status") or "SUBMITTED"),
        raw=response,
        request_duration_ms=duration_ms,
    )


# =============================================================================
# CLOB TRADING CLIENT
# =============================================================================


class ClobTradingClient:
    """
    Authenticated Polymarket CLOB client.

    INSTANTIATION:
    Created per request from the resolved private key. Holds no order
    state between requests.
    """

    def __init__(self, config: ToolConfig, private_key: str):
        """
        Args:
            config: Tool configuration (hosts, chain, signature type, funder)
            private_key: Resolved trading key (0x-prefixed)
        """
        if not private_key:
            raise ValueError("private_key required")
        self._config = config
        self._private_key = private_key
        self._client: Optional[ClobClient] = None
        self.funder_address: Optional[str] = None

    def _check_cancel(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError()

    def _initialize_client(self) -> ClobClient:
        """
        Initialize the authenticated CLOB client (lazy, once).

        Raises:
            ValueError: Funder address missing for a proxy signature type
        """
        if self._client is not None:
            return self._client

        config = self._config
        l1_client = ClobClient(config.clob_host, chain_id=config.chain_id, key=self._private_key)
        api_creds = l1_client.create_or_derive_api_creds()
        logger.info("API credentials derived successfully")

        funder = config.funder_address
        if not funder and config.signature_type == SIGNATURE_TYPE_EOA:
            funder = l1_client.get_address()
        if not funder:
            raise ValueError(
                "Missing funder_address for signature_type 1/2. Set funder_address in the config."
            )

        self._client = ClobClient(
            config.clob_host,
            chain_id=config.chain_id,
            key=self._private_key,
            creds=api_creds,
            signature_type=config.signature_type,
            funder=funder,
        )
        self.funder_address = funder
        logger.info(
            f"CLOB client initialized | host={config.clob_host} | "
            f"chain_id={config.chain_id} | signature_type={config.signature_type}"
        )
        return self._client

    # -------------------------------------------------------------------------
    # MARKET MECHANICS (re-fetched at resume time)
    # -------------------------------------------------------------------------

    def get_tick_size(self, token_id: str, cancel_event: Optional[threading.Event] = None) -> str:
        """
        Current minimum price increment for a token, as a decimal string.

        Raises:
            MarketDataError: Lookup failed
        """
        self._check_cancel(cancel_event)
        try:
            tick_size = self._initialize_client().get_tick_size(token_id)
        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Tick size lookup failed for {token_id}: {e}")
            raise MarketDataError(f"Tick size lookup failed: {e}")
        self._check_cancel(cancel_event)
        return str(tick_size)

    def get_neg_risk(self, token_id: str, cancel_event: Optional[threading.Event] = None) -> bool:
        """
        Whether the token belongs to a negative-risk market.

        Raises:
            MarketDataError: Lookup failed
        """
        self._check_cancel(cancel_event)
        try:
            neg_risk = self._initialize_client().get_neg_risk(token_id)
        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Neg-risk lookup failed for {token_id}: {e}")
            raise MarketDataError(f"Neg-risk lookup failed: {e}")
        self._check_cancel(cancel_event)
        return bool(neg_risk)

    # -------------------------------------------------------------------------
    # ORDER SUBMISSION
    # -------------------------------------------------------------------------

    def submit_order(
        self,
        token_id: str,
        price: float,
        size: float,
        side: OrderSide,
        tick_size: str,
        neg_risk: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> SubmittedOrder:
        """
        Sign and post a GTC limit order.

        FAIL-CLOSED: Any exception or unexpected response -> SubmissionFailedError.
        NO RETRIES: If it fails, it fails. Period.

        Raises:
            SubmissionFailedError: Venue rejected or errored
            OperationCancelledError: Cancelled before the order was posted
        """
        self._check_cancel(cancel_event)
        start_time = datetime.utcnow()

        logger.info(
            f"Submitting order | token_id={token_id} | "
            f"{side.value.upper()} {size}@{price} | tick={tick_size} | neg_risk={neg_risk}"
        )

        try:
            client = self._initialize_client()
            signed_order = client.create_order(
                OrderArgs(
                    token_id=token_id,
                    price=price,
                    size=size,
                    side=BUY if side == OrderSide.BUY else SELL,
                ),
                PartialCreateOrderOptions(tick_size=tick_size, neg_risk=neg_risk),
            )
            # Last point at which cancellation can still prevent the order
            self._check_cancel(cancel_event)
            response = client.post_order(signed_order, OrderType.GTC)
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.error(f"Order failed: {e}")
            raise SubmissionFailedError(
                f"Order submission failed: {e}",
                error_code=type(e).__name__,
            )

        duration = (datetime.utcnow() - start_time).total_seconds() * 1000
        result = parse_order_response(response, duration)
        logger.info(
            f"LIVE ORDER: {side.value.upper()} {size} @ {price} | "
            f"ID: {result.order_id} | Status: {result.status}"
        )
        return result

    # -------------------------------------------------------------------------
    # ACCOUNT QUERIES (read-only)
    # -------------------------------------------------------------------------

    def get_collateral_balance(self) -> Dict[str, Any]:
        """USDC balance and allowances, raw and formatted."""
        data = self._initialize_client().get_balance_allowance(
            BalanceAllowanceParams(asset_type=AssetType.COLLATERAL)
        ) or {}
        raw = str(data.get("balance") or "0")
        return {
            "balanceRaw": raw,
            "balance": format_units(raw, COLLATERAL_TOKEN_DECIMALS),
            "allowances": data.get("allowances") or {},
        }

    def get_conditional_balance(self, token_id: str) -> Dict[str, Any]:
        """Share balance of one outcome token, raw and formatted."""
        data = self._initialize_client().get_balance_allowance(
            BalanceAllowanceParams(asset_type=AssetType.CONDITIONAL, token_id=token_id)
        ) or {}
        raw = str(data.get("balance") or "0")
        return {
            "balanceRaw": raw,
            "balance": format_units(raw, CONDITIONAL_TOKEN_DECIMALS),
        }

    def get_open_orders(self, token_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = OpenOrderParams(asset_id=token_id) if token_id else None
        return self._initialize_client().get_orders(params)

    def get_trades(self, token_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = TradeParams(asset_id=token_id) if token_id else None
        return self._initialize_client().get_trades(params)

    def get_order(self, order_id: str) -> Any:
        return self._initialize_client().get_order(order_id)

    # -------------------------------------------------------------------------
    # CANCELLATION (mutating)
    # -------------------------------------------------------------------------

    def cancel_order(self, order_id: str) -> Any:
        logger.info(f"Cancelling order | order_id={order_id}")
        return self._initialize_client().cancel(order_id)

    def cancel_all(self) -> Any:
        logger.warning("Cancelling ALL open orders")
        return self._initialize_client().cancel_all()
