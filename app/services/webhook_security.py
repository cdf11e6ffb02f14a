"""HMAC verification for inbound booking webhooks."""

import hashlib
import hmac
import logging
from typing import Optional

from app.core.config import settings
from app.core.exceptions import WebhookSignatureError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Sesami-Signature"


def compute_signature(body: bytes, secret: str) -> str:
    """``sha256=<hex>`` HMAC of the raw request body."""
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(body: bytes, signature_header: Optional[str], secret: Optional[str] = None) -> None:
    """Raise WebhookSignatureError unless the header matches the body.

    With no secret configured verification is skipped; production refuses to
    start in that state (see app.core.config).
    """
    secret = settings.SESAMI_WEBHOOK_SECRET if secret is None else secret
    if not secret:
        logger.warning("SESAMI_WEBHOOK_SECRET not set; accepting unsigned booking webhook")
        return

    if not signature_header:
        raise WebhookSignatureError(f"missing {SIGNATURE_HEADER} header")

    if not hmac.compare_digest(compute_signature(body, secret), signature_header.strip()):
        raise WebhookSignatureError("signature mismatch")
