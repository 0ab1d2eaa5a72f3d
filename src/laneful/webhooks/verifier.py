"""Laneful Webhook Signature Verification.

Laneful signs every webhook delivery with HMAC-SHA256 over the exact raw
request body, using the webhook secret configured for the account. The hex
digest is sent in the ``x-webhook-signature`` header, optionally prefixed
with ``sha256=``.

Security Features:
- HMAC-SHA256 signature generation and verification
- Constant-time comparison to prevent timing attacks
- Misuse (empty secret or body) is reported separately from a bad signature

Usage:
    from laneful.webhooks import extract_signature, verify_signature

    signature = extract_signature(request.headers)
    if not verify_signature(secret, request_body, signature):
        return 401
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

import structlog

from laneful.exceptions import ConfigurationError
from laneful.webhooks.payload import WebhookPayload, parse_webhook_payload

logger = structlog.get_logger()

SIGNATURE_PREFIX = "sha256="
SIGNATURE_HEADER = "x-webhook-signature"


class VerificationStatus(Enum):
    """Status of webhook signature verification."""

    VALID = "valid"
    INVALID_SIGNATURE = "invalid_signature"
    MISSING_SIGNATURE = "missing_signature"


@dataclass(frozen=True)
class VerificationResult:
    """Result of webhook signature verification."""

    valid: bool
    """Whether the signature is valid."""

    status: VerificationStatus
    """Detailed verification status."""

    error: str | None = None
    """Error message if verification failed."""

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid


def _to_bytes(body: bytes | str) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


def _require_secret(secret: str | None) -> str:
    if secret is None or not secret.strip():
        raise ConfigurationError("Secret cannot be empty")
    return secret


def generate_signature(
    secret: str,
    body: bytes | str,
    include_prefix: bool = False,
) -> str:
    """Compute the HMAC-SHA256 signature for a webhook body.

    Args:
        secret: The webhook secret.
        body: The raw body. Strings are encoded as UTF-8.
        include_prefix: Prepend ``sha256=`` as sent on the wire.

    Returns:
        Lowercase hexadecimal digest, optionally prefixed.

    Raises:
        ConfigurationError: If the secret is empty or the body is None.
    """
    _require_secret(secret)
    if body is None:
        raise ConfigurationError("Payload cannot be None")

    signature = hmac.new(
        secret.encode("utf-8"),
        _to_bytes(body),
        hashlib.sha256,
    ).hexdigest()
    return SIGNATURE_PREFIX + signature if include_prefix else signature


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two strings in constant time.

    A length mismatch returns early since lengths are not secret. Equal-length
    inputs are compared over every byte before deciding.
    """
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_signature(
    secret: str,
    body: bytes | str,
    signature: str | None,
) -> bool:
    """Verify a webhook signature.

    Args:
        secret: The webhook secret.
        body: The raw request body exactly as received.
        signature: The header value, with or without the ``sha256=`` prefix.

    Returns:
        True if the signature matches, False otherwise (including a missing
        or empty signature).

    Raises:
        ConfigurationError: If the secret or the body is empty.
    """
    _require_secret(secret)
    if body is None or not _to_bytes(body).strip():
        raise ConfigurationError("Payload cannot be empty")
    if signature is None or not signature.strip():
        return False

    candidate = parse_signature_header(signature)
    expected = generate_signature(secret, body)
    return constant_time_equals(expected, candidate)


def parse_signature_header(header_value: str, prefix: str = SIGNATURE_PREFIX) -> str:
    """Strip a leading signature prefix (case-sensitive) from a header value."""
    if header_value.startswith(prefix):
        return header_value[len(prefix) :]
    return header_value


def extract_signature(headers: Mapping[str, str] | None) -> str | None:
    """Extract the webhook signature from HTTP headers.

    Tries the documented header name, then the upper-snake form some
    frameworks normalise to (``X_WEBHOOK_SIGNATURE``), then the CGI/WSGI
    form (``HTTP_X_WEBHOOK_SIGNATURE``). Falls back to a case-insensitive
    match on the same names.

    Args:
        headers: Request headers or a WSGI environ-like mapping.

    Returns:
        The raw header value, or None if not found.
    """
    if not headers:
        return None

    upper = SIGNATURE_HEADER.upper().replace("-", "_")
    candidates = (SIGNATURE_HEADER, upper, f"HTTP_{upper}")

    for name in candidates:
        value = headers.get(name)
        if value is not None:
            return value

    wanted = {name.lower() for name in candidates}
    for key, value in headers.items():
        if key.lower() in wanted:
            return value

    return None


@dataclass
class WebhookVerifier:
    """Webhook verifier bound to one account secret.

    Wraps the module-level functions for callers that keep the secret around,
    e.g. in a web framework dependency.

    Usage:
        verifier = WebhookVerifier(secret=config.webhook_secret)
        result = verifier.verify_request(body, dict(request.headers))
        if result:
            payload = verifier.parse(body)
    """

    secret: str = field(repr=False)
    """Shared secret for HMAC computation."""

    def __post_init__(self) -> None:
        _require_secret(self.secret)

    def sign(self, body: bytes | str, include_prefix: bool = True) -> str:
        """Sign a body the way Laneful does (useful for tests and fixtures)."""
        return generate_signature(self.secret, body, include_prefix)

    def verify(self, body: bytes | str, signature: str | None) -> VerificationResult:
        """Verify a signature value against a body.

        Args:
            body: The raw request body bytes.
            signature: The signature to verify.

        Returns:
            VerificationResult with status and details.
        """
        if signature is None or not signature.strip():
            logger.debug("Webhook signature missing")
            return VerificationResult(
                valid=False,
                status=VerificationStatus.MISSING_SIGNATURE,
                error="No signature provided",
            )

        if verify_signature(self.secret, body, signature):
            return VerificationResult(valid=True, status=VerificationStatus.VALID)

        logger.info("Webhook signature mismatch")
        return VerificationResult(
            valid=False,
            status=VerificationStatus.INVALID_SIGNATURE,
            error="Signature mismatch",
        )

    def verify_request(
        self,
        body: bytes | str,
        headers: Mapping[str, str] | None,
    ) -> VerificationResult:
        """Verify an incoming request from its body and headers."""
        signature = extract_signature(headers)
        if signature is None:
            return VerificationResult(
                valid=False,
                status=VerificationStatus.MISSING_SIGNATURE,
                error=f"Missing {SIGNATURE_HEADER} header",
            )
        return self.verify(body, signature)

    def parse(self, body: bytes | str) -> WebhookPayload:
        """Parse and validate a (verified) webhook body."""
        return parse_webhook_payload(body)
