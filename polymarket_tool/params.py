# =============================================================================
# POLYMARKET APPROVALS - REQUEST PARAMETER PARSING
# =============================================================================
#
# Caller parameters arrive as an untyped mapping (decoded JSON).
# They are converted into typed requests HERE and nowhere else.
#
# STRICTNESS:
# - A required parameter that is missing, empty or mistyped is an
#   InvalidRequestError naming the parameter.
# - Booleans must be real booleans. "true" is not True.
# - Range checks (price, size) belong to the safety gate, not here.
#
# =============================================================================

import math
from typing import Any, Mapping, Optional

from shared.enums import OrderSide
from approvals.exceptions import InvalidRequestError
from approvals.models import ProposeRequest, ResumeRequest


def read_string_param(
    params: Mapping[str, Any],
    key: str,
    required: bool = False,
) -> Optional[str]:
    """
    Read a trimmed string parameter.

    Returns:
        The trimmed value, or None when absent/empty and not required
    """
    raw = params.get(key)
    value = raw.strip() if isinstance(raw, str) else ""
    if not value:
        if required:
            raise InvalidRequestError(f"{key} required")
        return None
    return value


def read_number_param(
    params: Mapping[str, Any],
    key: str,
    required: bool = False,
) -> Optional[float]:
    """
    Read a finite number. Numeric strings are accepted.

    Returns:
        The value as float, or None when absent and not required
    """
    raw = params.get(key)
    value = None
    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str) and raw.strip():
        try:
            value = float(raw.strip())
        except ValueError:
            value = None

    if value is None or not math.isfinite(value):
        if required:
            raise InvalidRequestError(f"{key} required")
        return None
    return value


def read_bool_param(
    params: Mapping[str, Any],
    key: str,
    required: bool = False,
) -> Optional[bool]:
    raw = params.get(key)
    if isinstance(raw, bool):
        return raw
    if required:
        raise InvalidRequestError(f"{key} required (boolean)")
    return None


def parse_propose_request(params: Mapping[str, Any]) -> ProposeRequest:
    """
    Build a ProposeRequest from place_order parameters.

    Raises:
        InvalidRequestError: side/price/size missing or side not buy/sell
    """
    side_raw = read_string_param(params, "side", required=True).lower()
    try:
        side = OrderSide(side_raw)
    except ValueError:
        raise InvalidRequestError("side must be buy or sell")

    return ProposeRequest(
        side=side,
        price=read_number_param(params, "price", required=True),
        size=read_number_param(params, "size", required=True),
        token_id=read_string_param(params, "tokenId"),
        market_id=read_string_param(params, "marketId"),
        market_slug=read_string_param(params, "marketSlug"),
        outcome=read_string_param(params, "outcome"),
    )


def parse_resume_request(params: Mapping[str, Any]) -> ResumeRequest:
    """
    Build a ResumeRequest from resume parameters.

    The token is taken verbatim; any alteration is the codec's business.
    """
    token = params.get("token")
    if not isinstance(token, str) or not token:
        raise InvalidRequestError("token required")
    return ResumeRequest(token=token, approve=read_bool_param(params, "approve", required=True))
