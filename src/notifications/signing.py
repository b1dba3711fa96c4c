"""HMAC-SHA256 request signing for webhook bodies.

Receivers recompute the digest over the raw request body with their copy
of the secret and compare it to the ``X-Webhook-Signature`` header, whose
value has the form ``sha256=<hex>``.
"""

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def sign_payload(secret: str, body: bytes) -> str:
    """Return the signature header value for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, header_value: str | None) -> bool:
    """Constant-time check of a received signature header."""
    if not header_value or not header_value.startswith(SIGNATURE_PREFIX):
        return False
    return hmac.compare_digest(sign_payload(secret, body), header_value)
