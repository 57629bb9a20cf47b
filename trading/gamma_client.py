# =============================================================================
# POLYMARKET APPROVALS - GAMMA MARKET DATA CLIENT
# =============================================================================
#
# Read-only market facts from the public Polymarket APIs.
# No API key needed.
#
# API:
#   Gamma: /markets/slug/{slug}, /markets/{id}, /public-search
#   CLOB:  /book?token_id=...
#
# FAILURE MODE:
# Unlike discovery code, a failed lookup here is NOT swallowed: the
# caller is staging an order and must know the market could not be read.
# All failures raise MarketDataError.
#
# =============================================================================

import logging
import threading
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from shared.config import DEFAULT_CLOB_HOST, DEFAULT_GAMMA_HOST, DEFAULT_REQUEST_TIMEOUT_SECONDS
from approvals.exceptions import MarketDataError, OperationCancelledError
from approvals.models import MarketInfo
from approvals.outcome_resolver import parse_json_string_array

logger = logging.getLogger(__name__)

USER_AGENT = "PolymarketApprovals/1.0"

DEFAULT_SEARCH_LIMIT = 5
MAX_SEARCH_LIMIT = 25


def normalize_limit(value: Any) -> int:
    """Clamp a caller-supplied result limit to 1..25 (default 5)."""
    if isinstance(value, bool):
        return DEFAULT_SEARCH_LIMIT
    if isinstance(value, (int, float)):
        num = value
    elif isinstance(value, str) and value.strip():
        try:
            num = int(value.strip())
        except ValueError:
            return DEFAULT_SEARCH_LIMIT
    else:
        return DEFAULT_SEARCH_LIMIT
    if num != num:  # NaN
        return DEFAULT_SEARCH_LIMIT
    return int(max(1, min(MAX_SEARCH_LIMIT, num)))


def market_from_gamma(data: Dict[str, Any]) -> MarketInfo:
    """Convert a raw Gamma market into MarketInfo."""
    market_id = data.get("id")
    return MarketInfo(
        id=str(market_id) if market_id is not None else None,
        slug=data.get("slug") or None,
        question=data.get("question") or None,
        outcomes=parse_json_string_array(data.get("outcomes")) or [],
        token_ids=parse_json_string_array(data.get("clobTokenIds")) or [],
        outcome_prices=parse_json_string_array(data.get("outcomePrices")) or [],
        raw=dict(data),
    )


class GammaClient:
    """
    HTTP client for Gamma market metadata and CLOB order books.

    Every call accepts an optional cancellation event which is checked
    before the request is sent and again after it returns.
    """

    def __init__(
        self,
        gamma_host: str = DEFAULT_GAMMA_HOST,
        clob_host: str = DEFAULT_CLOB_HOST,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.gamma_host = gamma_host.rstrip("/")
        self.clob_host = clob_host.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "GammaClient":
        return cls(
            gamma_host=config.gamma_host,
            clob_host=config.clob_host,
            timeout=config.request_timeout_seconds,
        )

    def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError()

        try:
            resp = self._session.get(
                url,
                params=params,
                timeout=self.timeout,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Market data timeout after {self.timeout}s | {url}")
            raise MarketDataError(f"Request timeout after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Market data request failed | {url} | {e}")
            raise MarketDataError(f"Request failed: {e}")

        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError()

        if not resp.ok:
            text = resp.text or resp.reason or ""
            raise MarketDataError(f"HTTP {resp.status_code}: {text}")

        try:
            return resp.json()
        except ValueError:
            raise MarketDataError(f"Invalid JSON from {url}")

    # -------------------------------------------------------------------------
    # PUBLIC API METHODS
    # -------------------------------------------------------------------------

    def fetch_market(
        self,
        market_id: Optional[str] = None,
        market_slug: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> MarketInfo:
        """
        Fetch one market by slug (preferred) or id.

        Raises:
            ValueError: Neither identifier given
            MarketDataError: Lookup failed
        """
        if market_slug:
            url = f"{self.gamma_host}/markets/slug/{quote(market_slug, safe='')}"
        elif market_id:
            url = f"{self.gamma_host}/markets/{quote(market_id, safe='')}"
        else:
            raise ValueError("marketSlug or marketId required")

        data = self._get_json(url, cancel_event=cancel_event)
        if not isinstance(data, dict):
            raise MarketDataError(f"Unexpected market response type: {type(data).__name__}")

        market = market_from_gamma(data)
        logger.info(
            f"Market fetched | id={market.id} | slug={market.slug} | "
            f"outcomes={len(market.outcomes)} | tokens={len(market.token_ids)}"
        )
        return market

    def search(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """Gamma public search (events and markets)."""
        params = {
            "q": query,
            "limit_per_type": str(normalize_limit(limit)),
            "search_profiles": "false",
            "search_tags": "false",
        }
        return self._get_json(
            f"{self.gamma_host}/public-search", params=params, cancel_event=cancel_event
        )

    def fetch_orderbook(
        self,
        token_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """CLOB order book for one token."""
        return self._get_json(
            f"{self.clob_host}/book", params={"token_id": token_id}, cancel_event=cancel_event
        )
