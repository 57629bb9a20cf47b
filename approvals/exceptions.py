# =============================================================================
# POLYMARKET APPROVALS - APPROVAL EXCEPTIONS
# =============================================================================
#
# GOVERNANCE INTENT:
# These exceptions encode every refusal at the type level.
# Each exception type maps to exactly ONE ErrorKind so the caller can
# react specifically (re-propose, change size, stop).
#
# EXCEPTION HIERARCHY:
#
# ApprovalError (base)
# ├── TokenIntegrityError          - token cannot be trusted (terminal)
# │   ├── MalformedTokenError
# │   ├── InvalidSignatureError
# │   └── InvalidPayloadError
# ├── PolicyError                  - configuration / safety gate refusal
# │   ├── CredentialUnavailableError
# │   ├── TradingDisabledError
# │   ├── SandboxedError
# │   ├── MarketNotAllowedError
# │   ├── MarketRequiredError
# │   ├── NotionalLimitExceededError
# │   ├── InvalidPriceOrSizeError
# │   ├── TickMisalignedError
# │   ├── UnsupportedActionError
# │   ├── ConfirmationRequiredError
# │   └── TokenAlreadyUsedError
# ├── OutcomeResolutionError       - label cannot be mapped to a token id
# │   ├── NoTradableInstrumentsError
# │   ├── UnknownOutcomeError
# │   ├── OutcomeUnresolvableError
# │   └── MissingTokensError
# ├── InvalidRequestError          - request failed strict parsing
# ├── SubmissionFailedError        - venue rejected or errored
# ├── MarketDataError              - market data provider failed (transient)
# └── OperationCancelledError      - cancellation signal fired (transient)
#
# NO AUTOMATIC RETRIES:
# Nothing here is retried by the core. Recovery is always caller-driven.
#
# =============================================================================

from typing import Optional

from shared.enums import ErrorKind, TRANSIENT_ERROR_KINDS


class ApprovalError(Exception):
    """
    Base class for all approval-related errors.

    All errors carry an ErrorKind. The kind is what the caller sees as
    the error "type" in a response.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)

    @property
    def is_terminal(self) -> bool:
        """
        Whether the same request can never succeed by simply retrying.

        Returns:
            False only for transient kinds (cancellation, market data)
        """
        return self.kind not in TRANSIENT_ERROR_KINDS

    def to_dict(self) -> dict:
        """Convert to the wire-level error object."""
        return {"type": self.kind.value, "message": self.message}


# =============================================================================
# TOKEN INTEGRITY
# =============================================================================


class TokenIntegrityError(ApprovalError):
    """Token failed format, signature or payload checks."""


class MalformedTokenError(TokenIntegrityError):
    kind = ErrorKind.MALFORMED_TOKEN

    def __init__(self, message: str = "Invalid token format"):
        super().__init__(message)


class InvalidSignatureError(TokenIntegrityError):
    """
    Signature does not match the payload.

    GOVERNANCE:
    The message never says HOW the signature differed.
    """

    kind = ErrorKind.INVALID_SIGNATURE

    def __init__(self, message: str = "Invalid token signature"):
        super().__init__(message)


class InvalidPayloadError(TokenIntegrityError):
    kind = ErrorKind.INVALID_PAYLOAD

    def __init__(self, message: str = "Invalid token payload"):
        super().__init__(message)


# =============================================================================
# POLICY / SAFETY GATE
# =============================================================================


class PolicyError(ApprovalError):
    """Refused by configuration or by a safety gate check."""


class CredentialUnavailableError(PolicyError):
    kind = ErrorKind.CREDENTIAL_UNAVAILABLE

    def __init__(self, env_var: str):
        super().__init__(
            f"Missing Polymarket private key. Set {env_var} "
            "(or POLYMARKET_PRIVATE_KEY / PRIVATE_KEY) in the gateway environment."
        )
        self.env_var = env_var


class TradingDisabledError(PolicyError):
    kind = ErrorKind.TRADING_DISABLED

    def __init__(
        self,
        message: str = "Trading is disabled. Set trade_enabled: true to enable order placement.",
    ):
        super().__init__(message)


class SandboxedError(PolicyError):
    kind = ErrorKind.SANDBOXED


class MarketNotAllowedError(PolicyError):
    kind = ErrorKind.MARKET_NOT_ALLOWED

    def __init__(self, market_slug: Optional[str], token_id: Optional[str] = None):
        if token_id is not None:
            message = f"Token {token_id} is not an instrument of allowed market {market_slug or '(missing)'}"
        else:
            message = f"Market not allowed by allowed_market_slugs: {market_slug or '(missing)'}"
        super().__init__(message)
        self.market_slug = market_slug
        self.token_id = token_id


class MarketRequiredError(PolicyError):
    kind = ErrorKind.MARKET_REQUIRED

    def __init__(self):
        super().__init__("marketSlug or marketId required when allowed_market_slugs is set.")


class NotionalLimitExceededError(PolicyError):
    kind = ErrorKind.NOTIONAL_LIMIT_EXCEEDED

    def __init__(self, notional: float, limit: float):
        super().__init__(
            f"Order notional {notional:.2f} exceeds max_notional_usd {limit:g}."
        )
        self.notional = notional
        self.limit = limit


class InvalidPriceOrSizeError(PolicyError):
    kind = ErrorKind.INVALID_PRICE_OR_SIZE


class TickMisalignedError(PolicyError):
    kind = ErrorKind.TICK_MISALIGNED

    def __init__(self, price: float, tick_size: str):
        super().__init__(f"price {price} is not aligned to tickSize {tick_size}")
        self.price = price
        self.tick_size = tick_size


class UnsupportedActionError(PolicyError):
    kind = ErrorKind.UNSUPPORTED

    def __init__(self, message: str = "Unsupported token action."):
        super().__init__(message)


class ConfirmationRequiredError(PolicyError):
    kind = ErrorKind.CONFIRMATION_REQUIRED


class TokenAlreadyUsedError(PolicyError):
    """
    The approval token was already claimed for submission.

    Only raised when the single-use replay guard is configured.
    """

    kind = ErrorKind.TOKEN_ALREADY_USED

    def __init__(self, fingerprint: str):
        super().__init__(f"Approval token already used (fingerprint {fingerprint[:12]})")
        self.fingerprint = fingerprint


# =============================================================================
# OUTCOME RESOLUTION
# =============================================================================


class OutcomeResolutionError(ApprovalError):
    """Outcome label could not be mapped to a tradable token id."""


class NoTradableInstrumentsError(OutcomeResolutionError):
    kind = ErrorKind.NO_TRADABLE_INSTRUMENTS

    def __init__(self):
        super().__init__("Market is missing clobTokenIds; cannot trade via CLOB")


class UnknownOutcomeError(OutcomeResolutionError):
    kind = ErrorKind.UNKNOWN_OUTCOME

    def __init__(self, outcome: str):
        super().__init__(f"Unknown outcome: {outcome}")
        self.outcome = outcome


class OutcomeUnresolvableError(OutcomeResolutionError):
    kind = ErrorKind.OUTCOME_UNRESOLVABLE

    def __init__(self):
        super().__init__("Provide tokenId (or a resolvable outcome) to place an order")


class MissingTokensError(OutcomeResolutionError):
    kind = ErrorKind.MISSING_TOKENS

    def __init__(self):
        super().__init__("Market is missing outcomes/clobTokenIds.")


# =============================================================================
# REQUEST / EXTERNAL DEPENDENCIES
# =============================================================================


class InvalidRequestError(ApprovalError):
    kind = ErrorKind.INVALID_REQUEST


class SubmissionFailedError(ApprovalError):
    """
    The order-matching venue rejected the order or errored.

    The venue message is reported verbatim so the caller can decide
    whether a FRESH proposal is worth trying.
    """

    kind = ErrorKind.SUBMISSION_FAILED

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.error_code:
            data["code"] = self.error_code
        return data


class MarketDataError(ApprovalError):
    kind = ErrorKind.MARKET_DATA


class OperationCancelledError(ApprovalError):
    """
    Cancellation signal fired while an external call was pending.

    Transient: the approval token stays valid until it expires.
    """

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Operation cancelled; the approval token is still valid"):
        super().__init__(message)
