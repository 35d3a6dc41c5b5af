"""Webhook signature verification.

Deliveries are signed with HMAC-SHA256 over the exact request body bytes,
hex encoded. Verification must run on the raw bytes as received: parsing
and re-serializing the JSON can change key order or whitespace and break a
valid signature.
"""

import hashlib
import hmac


class WebhookSigner:
    """Signing capability bound to one shared secret.

    The secret comes from settings and is never logged or stored elsewhere.
    """

    def __init__(self, secret: str | bytes):
        if not secret:
            msg = "Webhook secret must not be empty"
            raise ValueError(msg)
        self._key = secret.encode() if isinstance(secret, str) else secret

    def sign(self, raw_body: bytes) -> str:
        """Hex HMAC-SHA256 of ``raw_body``."""
        return hmac.new(self._key, raw_body, hashlib.sha256).hexdigest()

    def verify(self, raw_body: bytes, signature: str | None) -> bool:
        """Constant-time comparison against the expected signature."""
        if not signature:
            return False
        return hmac.compare_digest(self.sign(raw_body), signature.strip().lower())

    def __repr__(self) -> str:
        return "<WebhookSigner secret=***>"
