"""Laneful - Python SDK for the Laneful email API.

Send email through the API and verify and parse the webhooks Laneful sends
back about deliveries, opens, clicks, bounces and the like.
"""

__version__ = "1.0.0"

from laneful.client import LanefulClient  # noqa: E402
from laneful.exceptions import (  # noqa: E402
    ApiError,
    ConfigurationError,
    HttpError,
    LanefulError,
    PayloadStructureError,
    ValidationError,
)
from laneful.models import Address, Attachment, Email, TrackingSettings  # noqa: E402
from laneful.webhooks import (  # noqa: E402
    EventType,
    WebhookDispatcher,
    WebhookPayload,
    WebhookVerifier,
    extract_signature,
    generate_signature,
    parse_webhook_payload,
    verify_signature,
)

__all__ = [
    "__version__",
    "LanefulClient",
    "Address",
    "Attachment",
    "Email",
    "TrackingSettings",
    "LanefulError",
    "ConfigurationError",
    "PayloadStructureError",
    "ValidationError",
    "HttpError",
    "ApiError",
    "EventType",
    "WebhookDispatcher",
    "WebhookPayload",
    "WebhookVerifier",
    "extract_signature",
    "generate_signature",
    "parse_webhook_payload",
    "verify_signature",
]
