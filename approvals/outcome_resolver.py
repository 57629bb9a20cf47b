# =============================================================================
# POLYMARKET APPROVALS - OUTCOME RESOLVER
# =============================================================================
#
# Maps a human outcome label ("Yes", " no ") to a concrete CLOB token id.
#
# TIE-BREAK ORDER (first match wins):
#   1. No token ids at all          -> NoTradableInstrumentsError
#   2. Explicit label match         (case-insensitive, trimmed)
#      - only when outcomes and token ids line up
#      - unmatched label            -> UnknownOutcomeError
#   3. Binary heuristic             "yes" -> index 0, "no" -> index 1
#   4. No label                     -> first token id
#   5. Anything else                -> OutcomeUnresolvableError
#
# An explicit tokenId from the caller bypasses this module entirely.
#
# =============================================================================

import json
from typing import Any, List, Optional, Sequence, Tuple

from approvals.exceptions import (
    NoTradableInstrumentsError,
    OutcomeUnresolvableError,
    UnknownOutcomeError,
)


def parse_json_string_array(value: Any) -> Optional[List[str]]:
    """
    Parse a JSON-encoded string array as shipped by the Gamma API.

    Gamma returns fields like outcomes as '["Yes","No"]' (a string).
    Non-string entries and empty strings are dropped.

    Returns:
        List of strings, or None if the value is absent/invalid/empty
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    try:
        parsed = json.loads(trimmed)
    except ValueError:
        return None
    if not isinstance(parsed, list):
        return None
    items = [entry for entry in parsed if isinstance(entry, str) and entry]
    return items or None


def normalize_outcome_label(value: str) -> str:
    return value.strip().lower()


def resolve_outcome_token(
    outcomes: Sequence[str],
    token_ids: Sequence[str],
    outcome: Optional[str] = None,
) -> Tuple[str, Optional[str]]:
    """
    Resolve an outcome label to (token_id, canonical_label).

    Args:
        outcomes: Market outcome labels (parallel to token_ids)
        token_ids: CLOB token ids
        outcome: Optional caller-supplied label

    Returns:
        Tuple of (token_id, label). label may be None when the market
        ships no outcome labels.

    Raises:
        NoTradableInstrumentsError: token_ids is empty
        UnknownOutcomeError: label given but not among the outcomes
        OutcomeUnresolvableError: nothing safe to map to
    """
    tokens = [t for t in token_ids if t]
    if not tokens:
        raise NoTradableInstrumentsError()

    normalized = normalize_outcome_label(outcome) if outcome else None

    if normalized and len(outcomes) == len(token_ids) and len(outcomes) > 0:
        for label, token_id in zip(outcomes, token_ids):
            if normalize_outcome_label(label) == normalized and token_id:
                return token_id, label
        raise UnknownOutcomeError(outcome)

    # Fallback heuristic for binary Yes/No markets.
    if normalized == "yes" and len(token_ids) > 0 and token_ids[0]:
        return token_ids[0], "Yes"
    if normalized == "no" and len(token_ids) > 1 and token_ids[1]:
        return token_ids[1], "No"

    if not normalized:
        return tokens[0], (outcomes[0] if outcomes else None)

    # If we can't map the outcome safely, force an explicit tokenId.
    raise OutcomeUnresolvableError()
