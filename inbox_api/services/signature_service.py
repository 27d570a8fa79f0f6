import hashlib
import hmac
from typing import Optional

from inbox_api.config import settings
from inbox_api.logging_config import get_logger

logger = get_logger("signature_service")

SIGNATURE_PREFIX = "sha256="


class SignatureError(Exception):
    """Inbound webhook body could not be attributed to Meta."""


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check an `x-hub-signature-256` header value against the body."""
    if not signature or not secret:
        return False
    expected = compute_signature(raw_body, secret).encode("ascii")
    # Headers arrive latin-1 decoded; compare_digest rejects non-ASCII str.
    received = signature.strip().encode("utf-8", "surrogateescape")
    return hmac.compare_digest(expected, received)


def is_signature_enforced() -> bool:
    if settings.is_production:
        return True
    return not settings.skip_signature_verification


def ensure_valid_signature(raw_body: bytes, signature: Optional[str]) -> None:
    """Raise SignatureError unless the body is signed with META_APP_SECRET.

    Outside production, SKIP_SIGNATURE_VERIFICATION=true disables the check.
    In production a missing secret fails closed.
    """
    if not is_signature_enforced():
        logger.debug("Signature verification skipped (non-production)")
        return

    secret = settings.meta_app_secret
    if not secret:
        logger.error("META_APP_SECRET is not configured; rejecting webhook")
        raise SignatureError("missing_app_secret")

    if not signature:
        raise SignatureError("missing_signature")

    if not verify_signature(raw_body, signature, secret):
        raise SignatureError("signature_mismatch")
