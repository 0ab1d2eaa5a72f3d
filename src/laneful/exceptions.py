"""Laneful SDK exceptions.

Every error raised by the SDK derives from LanefulError so callers can catch
the whole family at once. Input problems additionally derive from ValueError.

Signature mismatches are NOT exceptions: verify_signature() returns False and
WebhookVerifier returns a VerificationResult. Only misuse (empty secret or
body) raises ConfigurationError.
"""

from __future__ import annotations


class LanefulError(Exception):
    """Base class for all Laneful SDK errors."""


class ConfigurationError(LanefulError, ValueError):
    """Raised when the SDK is called with missing or empty configuration.

    Examples are an empty webhook secret, a missing request body passed to the
    signature functions, or a client created without a base URL or token.
    """


class PayloadStructureError(LanefulError, ValueError):
    """Raised when a webhook payload does not match the documented schema."""


class ValidationError(LanefulError, ValueError):
    """Raised when an outbound email request fails validation."""


class HttpError(LanefulError):
    """Raised when HTTP communication with the API fails.

    status_code is 0 when no response was received at all.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiError(LanefulError):
    """Raised when the API answers with an error response."""

    def __init__(self, message: str, status_code: int, error_message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_message = error_message

    def __str__(self) -> str:
        return f"{self.args[0]} ({self.status_code}): {self.error_message}"
