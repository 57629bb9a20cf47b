# =============================================================================
# POLYMARKET APPROVALS - SAFETY GATE
# =============================================================================
#
# GOVERNANCE INTENT:
# Pure validation functions. No I/O, no state, no configuration lookups.
# Every check is independently callable and composable.
#
# Each predicate has an enforcing counterpart (require_*) that raises the
# ONE exception type mapped to that check, so the caller can react
# specifically (e.g. prompt for a smaller size vs. hard deny).
#
# CHECKS:
# - within_notional_limit   -> NotionalLimitExceededError
# - market_allowed          -> MarketNotAllowedError
# - sandbox_permits         -> SandboxedError
# - price_within_range      -> InvalidPriceOrSizeError
# - size_positive           -> InvalidPriceOrSizeError
# - tick_aligned            -> TickMisalignedError
#
# =============================================================================

import math
from typing import Optional, Sequence, Union

from shared.enums import ToolAction
from approvals.exceptions import (
    InvalidPriceOrSizeError,
    MarketNotAllowedError,
    NotionalLimitExceededError,
    SandboxedError,
    TickMisalignedError,
)


# Tolerance for "price is a whole multiple of tick size"
TICK_TOLERANCE: float = 1e-9

_SANDBOX_MESSAGES = {
    ToolAction.PLACE_ORDER: "Order placement is blocked in sandboxed environments.",
    ToolAction.CANCEL_ORDER: "Cancel is blocked in sandboxed environments.",
    ToolAction.CANCEL_ALL: "Cancel is blocked in sandboxed environments.",
    ToolAction.RESUME_APPROVE: "Resume is blocked in sandboxed environments.",
}


# =============================================================================
# PREDICATES
# =============================================================================


def approx_notional(price: float, size: float) -> float:
    """Approximate USD exposure: price ($/share) * size (shares), fees excluded."""
    return price * size


def within_notional_limit(price: float, size: float, limit: float) -> bool:
    """True if the limit is disabled (<= 0) or price * size <= limit."""
    if limit <= 0:
        return True
    return approx_notional(price, size) <= limit


def market_allowed(market_slug: Optional[str], allowlist: Optional[Sequence[str]]) -> bool:
    """
    True if no allowlist is configured, else only on an exact match.

    A missing market identifier never matches a configured allowlist.
    """
    if not allowlist:
        return True
    slug = (market_slug or "").strip()
    if not slug:
        return False
    return any(entry.strip() == slug for entry in allowlist)


def sandbox_permits(action: ToolAction, sandboxed: bool) -> bool:
    """Mutating actions are denied in sandboxed contexts."""
    return not (sandboxed and action.is_mutating)


def price_within_range(price: float) -> bool:
    """Prices are normalized probabilities, exclusive of 0 and 1."""
    return math.isfinite(price) and 0.0 < price < 1.0


def size_positive(size: float) -> bool:
    return math.isfinite(size) and size > 0


def _parse_tick(tick_size: Union[str, float, None]) -> float:
    if tick_size is None:
        return math.nan
    try:
        return float(tick_size)
    except (TypeError, ValueError):
        return math.nan


def tick_aligned(price: float, tick_size: Union[str, float, None]) -> bool:
    """
    True iff price is a whole multiple of tick_size (within 1e-9).

    A tick size that is not a finite positive number means "no constraint".
    """
    tick = _parse_tick(tick_size)
    if not math.isfinite(tick) or tick <= 0:
        return True
    scaled = price / tick
    return abs(round(scaled) - scaled) < TICK_TOLERANCE


# =============================================================================
# ENFORCEMENT
# =============================================================================


def require_price_and_size(price: float, size: float) -> None:
    if not price_within_range(price):
        raise InvalidPriceOrSizeError("price must be between 0 and 1 (exclusive)")
    if not size_positive(size):
        raise InvalidPriceOrSizeError("size must be > 0")


def require_notional_within_limit(price: float, size: float, limit: float) -> None:
    if not within_notional_limit(price, size, limit):
        raise NotionalLimitExceededError(approx_notional(price, size), limit)


def require_market_allowed(market_slug: Optional[str], allowlist: Optional[Sequence[str]]) -> None:
    if not market_allowed(market_slug, allowlist):
        raise MarketNotAllowedError(market_slug)


def require_sandbox_permits(action: ToolAction, sandboxed: bool) -> None:
    if not sandbox_permits(action, sandboxed):
        raise SandboxedError(
            _SANDBOX_MESSAGES.get(action, "Action is blocked in sandboxed environments.")
        )


def require_tick_aligned(price: float, tick_size: Union[str, float, None]) -> None:
    if not tick_aligned(price, tick_size):
        raise TickMisalignedError(price, str(tick_size))
