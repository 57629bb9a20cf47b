# =============================================================================
# POLYMARKET APPROVALS - APPROVAL TOKEN CODEC
# =============================================================================
#
# GOVERNANCE INTENT:
# A staged order lives ONLY inside a signed bearer token.
# There is no server-side session store.
#
# WIRE FORMAT:
#   base64url(payload_json) + "." + base64url(hmac_sha256(key, encoded_payload))
#   - padding stripped
#   - exactly ONE "." separator
#
# KEY DERIVATION:
#   key = sha256(trading_private_key)
#   The raw secret is NEVER used as the MAC key directly.
#   Rotating the trading key invalidates every outstanding token.
#
# VERIFICATION ORDER (fail closed at each step):
#   1. format         -> MalformedTokenError
#   2. signature      -> InvalidSignatureError   (constant-time compare)
#   3. payload parse  -> InvalidPayloadError     (only after 2 passed)
#
# =============================================================================

import base64
import binascii
import hashlib
import hmac
import json
import re

from approvals.exceptions import (
    InvalidPayloadError,
    InvalidSignatureError,
    MalformedTokenError,
)
from approvals.models import PendingOrder


TOKEN_SEPARATOR = "."

_B64URL_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(segment: str) -> bytes:
    # urlsafe_b64decode requires proper padding.
    pad = "=" * ((4 - (len(segment) % 4)) % 4)
    return base64.urlsafe_b64decode((segment + pad).encode("ascii"))


def derive_token_key(secret: str) -> bytes:
    """
    Derive the HMAC key from the trading credential.

    Args:
        secret: The trading private key (as resolved from configuration)

    Returns:
        32-byte SHA-256 digest used as the MAC key
    """
    return hashlib.sha256(secret.encode("utf-8")).digest()


def _sign(encoded_payload: str, key: bytes) -> str:
    digest = hmac.new(key, encoded_payload.encode("ascii"), hashlib.sha256).digest()
    return _b64url_encode(digest)


def serialize_payload(order: PendingOrder) -> bytes:
    """Deterministic JSON serialization of a descriptor."""
    return json.dumps(
        order.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def token_fingerprint(token: str) -> str:
    """
    Short stable identifier for a token, safe to log.

    The token itself is a bearer credential and is never logged.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]


def encode(order: PendingOrder, secret: str) -> str:
    """
    Serialize and sign a pending order.

    Args:
        order: The descriptor to embed
        secret: The trading credential the signing key is derived from

    Returns:
        Opaque token string "<payload>.<signature>"
    """
    body = _b64url_encode(serialize_payload(order))
    signature = _sign(body, derive_token_key(secret))
    return f"{body}{TOKEN_SEPARATOR}{signature}"


def decode(token: str, secret: str) -> PendingOrder:
    """
    Verify and deserialize a token.

    Args:
        token: Token string previously returned by encode()
        secret: The trading credential

    Returns:
        The embedded PendingOrder

    Raises:
        MalformedTokenError: Not exactly two base64url segments
        InvalidSignatureError: Signature mismatch (or length mismatch)
        InvalidPayloadError: Signed payload is not a well-formed descriptor
    """
    if not isinstance(token, str):
        raise MalformedTokenError()

    parts = token.split(TOKEN_SEPARATOR)
    if len(parts) != 2:
        raise MalformedTokenError()

    body, signature = parts
    if not _B64URL_SEGMENT_RE.match(body) or not _B64URL_SEGMENT_RE.match(signature):
        raise MalformedTokenError()

    expected = _sign(body, derive_token_key(secret)).encode("ascii")
    supplied = signature.encode("ascii")
    if len(expected) != len(supplied) or not hmac.compare_digest(expected, supplied):
        raise InvalidSignatureError()

    try:
        payload = json.loads(_b64url_decode(body).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise InvalidPayloadError()

    return PendingOrder.from_dict(payload)
