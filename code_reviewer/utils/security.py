"""Webhook signature helpers."""

from __future__ import annotations

import hashlib
import hmac

from code_reviewer.logger import get_logger

logger = get_logger()

SIGNATURE_PREFIX = "sha256="


def build_signature(secret: str, payload: bytes) -> str:
    """Return the GitHub-style ``sha256=<hex>`` HMAC signature for the given payload."""

    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(payload: bytes, signature_header: str | None, secret: str | None) -> bool:
    """Verify a webhook signature over the raw request bytes.

    The comparison is constant-time. A missing secret, a missing header or a
    header of the wrong length never verifies.
    """

    if not secret:
        logger.warning("Webhook secret is not configured; rejecting delivery")
        return False
    if not signature_header:
        return False

    provided = signature_header
    if provided.startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX):]
    try:
        provided_bytes = provided.encode("ascii")
    except UnicodeEncodeError:
        return False

    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest().encode("ascii")
    if len(provided_bytes) != len(expected):
        return False
    return hmac.compare_digest(expected, provided_bytes)
