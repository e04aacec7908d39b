"""EventSub webhook signature verification.

Twitch signs every delivery with HMAC-SHA256 over
``message_id + timestamp + raw_body`` using the secret supplied when the
subscription was created, and sends the digest as ``sha256=<hex>``.

The body must be hashed exactly as received. Parsing and re-serializing it
first changes whitespace/key order and breaks verification.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from giveaway.schemas.eventsub import EventSubMessage, parse_message

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


class Verdict(str, Enum):
    ADMIT = "admit"
    MISSING_HEADERS = "missing_headers"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass
class VerificationResult:
    verdict: Verdict
    message: EventSubMessage | None = None
    detail: str = ""

    @property
    def admitted(self) -> bool:
        return self.verdict is Verdict.ADMIT


class SignatureVerifier:
    """Validates inbound EventSub deliveries against the shared webhook secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("Webhook secret is required")
        self._secret = secret.encode("utf-8")

    def sign(self, message_id: str, timestamp: str, body: bytes) -> str:
        """Return the ``sha256=<hex>`` signature for a delivery."""
        digest = hmac.new(
            self._secret,
            message_id.encode("utf-8") + timestamp.encode("utf-8") + body,
            hashlib.sha256,
        ).hexdigest()
        return f"{SIGNATURE_PREFIX}{digest}"

    def is_valid_signature(
        self, message_id: str, timestamp: str, body: bytes, signature: str
    ) -> bool:
        expected = self.sign(message_id, timestamp, body)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    def verify(
        self,
        *,
        body: bytes,
        message_id: str | None,
        timestamp: str | None,
        signature: str | None,
        message_type: str | None,
    ) -> VerificationResult:
        """Check headers, signature and envelope. Never raises."""
        if not message_id or not timestamp or not signature or not message_type:
            return VerificationResult(Verdict.MISSING_HEADERS, detail="Missing required headers")

        if not self.is_valid_signature(message_id, timestamp, body, signature):
            logger.warning(f"Invalid webhook signature for message {message_id}")
            return VerificationResult(Verdict.BAD_SIGNATURE, detail="Invalid signature")

        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError):
            return VerificationResult(Verdict.MALFORMED_PAYLOAD, detail="Invalid JSON")

        try:
            message = parse_message(message_type, payload)
        except (ValidationError, ValueError, RecursionError) as e:
            logger.warning(f"Malformed {message_type} payload for message {message_id}: {e}")
            return VerificationResult(Verdict.MALFORMED_PAYLOAD, detail="Malformed payload")

        return VerificationResult(Verdict.ADMIT, message=message)
