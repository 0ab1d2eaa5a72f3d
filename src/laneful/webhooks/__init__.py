"""Laneful Webhook Verification Module.

Verifies webhook signatures (HMAC-SHA256, constant-time comparison) and
parses webhook bodies into validated events.

Usage:
    from laneful.webhooks import WebhookVerifier

    verifier = WebhookVerifier(secret="your-webhook-secret")

    result = verifier.verify_request(
        body=request.body,
        headers=dict(request.headers),
    )

    if result.valid:
        payload = verifier.parse(request.body)
        for event in payload:
            print(event["event"], event["email"])
    else:
        print(f"Verification failed: {result.error}")
"""

from laneful.webhooks.dispatcher import WebhookDispatcher
from laneful.webhooks.payload import (
    REQUIRED_FIELDS,
    VALID_EVENT_TYPES,
    EventType,
    WebhookEvent,
    WebhookPayload,
    parse_webhook_payload,
    validate_event,
)
from laneful.webhooks.verifier import (
    SIGNATURE_HEADER,
    SIGNATURE_PREFIX,
    VerificationResult,
    VerificationStatus,
    WebhookVerifier,
    constant_time_equals,
    extract_signature,
    generate_signature,
    parse_signature_header,
    verify_signature,
)

__all__ = [
    # Signatures
    "generate_signature",
    "verify_signature",
    "constant_time_equals",
    "extract_signature",
    "parse_signature_header",
    "SIGNATURE_HEADER",
    "SIGNATURE_PREFIX",
    "WebhookVerifier",
    "VerificationResult",
    "VerificationStatus",
    # Payloads
    "parse_webhook_payload",
    "validate_event",
    "EventType",
    "WebhookEvent",
    "WebhookPayload",
    "REQUIRED_FIELDS",
    "VALID_EVENT_TYPES",
    # Dispatch
    "WebhookDispatcher",
]
