"""
Inbound request signature verification.

Security contract:
- Verification is opt-in: with no shared secret configured every request passes
- With a secret, HMAC-SHA256 is computed over the exact raw body bytes as
  received. The body is never parsed and re-serialized before hashing.
- The header may carry a bare hex digest or the `sha256=<hex>` form
- A missing signature while a secret is configured is a failure
- All comparisons use hmac.compare_digest() (constant-time)
"""

import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import Optional

logger = logging.getLogger("order_dispatch.auth")

# Headers that may carry the signature, checked in order
SIGNATURE_HEADERS = ("x-retell-signature", "x-hub-signature-256", "x-hub-signature")

_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw body."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def signature_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    """
    Pick the signature out of the request headers.

    Args:
        headers: Request headers. Starlette headers are case-insensitive;
                 plain dicts are expected to use lowercase keys.

    Returns:
        The first non-empty signature header value, or None
    """
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def verify_signature(
    raw_body: bytes,
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Verify an inbound request signature.

    Args:
        raw_body: Request body bytes exactly as received
        signature: Signature header value, if any
        secret: Shared signing secret, if configured

    Returns:
        True if the request may be processed
    """
    if not secret:
        return True
    if not signature:
        logger.warning("Rejecting request: signature header missing")
        return False

    provided = signature.strip()
    if provided.lower().startswith(_PREFIX):
        provided = provided[len(_PREFIX):]

    expected = compute_signature(raw_body, secret)
    if hmac.compare_digest(expected.encode("ascii"), provided.lower().encode("utf-8")):
        return True

    logger.warning("Rejecting request: signature mismatch")
    return False
