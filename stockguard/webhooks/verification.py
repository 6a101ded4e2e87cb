"""Webhook signature verification: constant-time HMAC-SHA256.

Shopify sends ``X-Shopify-Hmac-Sha256``: base64 of HMAC-SHA256(raw body),
keyed with the app secret.

Security contract:
- Comparisons use hmac.compare_digest() on raw digest bytes (constant-time)
- Missing secret or empty header -> reject without computing anything
- The secret may be configured as an ASCII passphrase, hex or base64.
  Decodings are tried in the configured order (default raw, hex, base64);
  the first match wins and only its name is logged.
- Never logs the secret, the header value or any computed digest
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"

DEFAULT_KEY_ENCODINGS = ("raw", "hex", "base64")


def _raw_key(secret: str) -> bytes | None:
    return secret.encode("utf-8")


def _hex_key(secret: str) -> bytes | None:
    try:
        return bytes.fromhex(secret)
    except ValueError:
        return None


def _base64_key(secret: str) -> bytes | None:
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        return None


KEY_DECODERS: dict[str, Callable[[str], bytes | None]] = {
    "raw": _raw_key,
    "hex": _hex_key,
    "base64": _base64_key,
}


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification. ``encoding`` names the key form that matched."""

    valid: bool
    encoding: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def _decode_header(signature_header: str) -> bytes | None:
    try:
        return base64.b64decode(signature_header.strip(), validate=True)
    except (binascii.Error, ValueError):
        return None


def digests_match(expected: bytes, received: bytes) -> bool:
    """Length check, then constant-time byte comparison."""
    if len(expected) != len(received):
        return False
    return hmac.compare_digest(expected, received)


class SignatureVerifier:
    """Verifies raw webhook bodies against a shared secret."""

    def __init__(self, secret: str | None, encodings: list[str] | tuple[str, ...] = DEFAULT_KEY_ENCODINGS):
        unknown = [e for e in encodings if e not in KEY_DECODERS]
        if unknown:
            raise ValueError(f"unknown webhook key encodings: {unknown}")
        self._secret = secret or ""
        self.encodings = tuple(encodings)

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, body: bytes, signature_header: str | None) -> VerificationResult:
        """Check ``signature_header`` against HMAC-SHA256 of the unmodified ``body``."""
        if not self._secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set, rejecting webhook")
            return VerificationResult(False)
        if not signature_header:
            return VerificationResult(False)

        received = _decode_header(signature_header)
        if received is None:
            logger.info("Webhook signature header is not valid base64")
            return VerificationResult(False)

        for encoding in self.encodings:
            key = KEY_DECODERS[encoding](self._secret)
            if not key:
                continue
            expected = hmac.new(key, body, hashlib.sha256).digest()
            if digests_match(expected, received):
                logger.debug("Webhook signature matched (key encoding=%s)", encoding)
                return VerificationResult(True, encoding)

        logger.info("Webhook signature mismatch (tried %s)", ",".join(self.encodings))
        return VerificationResult(False)
