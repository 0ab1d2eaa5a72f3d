"""Laneful webhook payload parsing.

A webhook body is either a single JSON object (one event) or a JSON array of
objects (batch mode). Every event is validated against the documented schema
before anything is returned; one bad event rejects the whole delivery.

Usage:
    from laneful.webhooks import EventType, parse_webhook_payload

    payload = parse_webhook_payload(request_body)
    for event in payload:
        if event["event"] == EventType.BOUNCE:
            mark_bounced(event["email"], hard=event.get("is_hard", False))
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from laneful.exceptions import PayloadStructureError

logger = structlog.get_logger()

WebhookEvent = dict[str, Any]


class EventType(str, Enum):
    """Webhook notification kinds sent by Laneful."""

    DELIVERY = "delivery"
    OPEN = "open"
    CLICK = "click"
    DROP = "drop"
    SPAM_COMPLAINT = "spam_complaint"
    UNSUBSCRIBE = "unsubscribe"
    BOUNCE = "bounce"


VALID_EVENT_TYPES = frozenset(t.value for t in EventType)

REQUIRED_FIELDS = ("event", "email", "lane_id", "message_id", "timestamp")

OPTIONAL_STRING_FIELDS = (
    "tag",
    "url",
    "text",
    "reason",
    "unsubscribe_group_id",
    "client_device",
    "client_os",
    "client_ip",
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# Characters of the raw body quoted in JSON error messages.
_EXCERPT_LENGTH = 100


@dataclass(frozen=True)
class WebhookPayload:
    """Parsed webhook delivery."""

    is_batch: bool
    """True when the body was a JSON array of events."""

    events: tuple[WebhookEvent, ...]
    """Validated events in source order."""

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[WebhookEvent]:
        return iter(self.events)


def _excerpt(text: str) -> str:
    if len(text) <= _EXCERPT_LENGTH:
        return text
    return text[:_EXCERPT_LENGTH] + "..."


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name}, not valid JSON")


def _as_text(field: str, value: Any) -> str:
    """Textual form of a JSON scalar, as it appears on the wire."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and not math.isfinite(value):
        raise PayloadStructureError(f"Invalid {field}: number out of range")
    if isinstance(value, (int, float)):
        return json.dumps(value)
    raise PayloadStructureError(
        f"Invalid {field}: expected a string or number, got {type(value).__name__}"
    )


def is_valid_email(email: str) -> bool:
    """Loose email check: an '@' and a '.' somewhere in the string."""
    return "@" in email and "." in email


def is_valid_timestamp(timestamp: str) -> bool:
    """Whether the text is a signed 64-bit integer."""
    if not _INTEGER_PATTERN.fullmatch(timestamp):
        return False
    if len(timestamp.lstrip("+-").lstrip("0")) > 19:
        return False
    return _INT64_MIN <= int(timestamp) <= _INT64_MAX


def is_valid_lane_id(lane_id: str) -> bool:
    return UUID_PATTERN.fullmatch(lane_id) is not None


def validate_event(data: Any) -> WebhookEvent:
    """Validate one event record and return the normalised mapping.

    Required fields are stored as text; optional fields are copied only when
    present.

    Raises:
        PayloadStructureError: If the record does not match the schema.
    """
    if not isinstance(data, dict):
        raise PayloadStructureError("Event must be an object")

    event: WebhookEvent = {}

    for name in REQUIRED_FIELDS:
        if data.get(name) is None:
            raise PayloadStructureError(f"Missing required field: {name}")
        event[name] = _as_text(name, data[name])

    if event["event"] not in VALID_EVENT_TYPES:
        raise PayloadStructureError(f"Invalid event type: {event['event']}")

    if not is_valid_email(event["email"]):
        raise PayloadStructureError(f"Invalid email format: {event['email']}")

    if not is_valid_timestamp(event["timestamp"]):
        raise PayloadStructureError(f"Invalid timestamp format: {event['timestamp']}")

    if not is_valid_lane_id(event["lane_id"]):
        raise PayloadStructureError(f"Invalid lane_id format: {event['lane_id']}")

    metadata = data.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            raise PayloadStructureError("Invalid metadata: expected an object")
        event["metadata"] = dict(metadata)

    is_hard = data.get("is_hard")
    if is_hard is not None:
        if not isinstance(is_hard, bool):
            raise PayloadStructureError("Invalid is_hard: expected a boolean")
        event["is_hard"] = is_hard

    for name in OPTIONAL_STRING_FIELDS:
        value = data.get(name)
        if value is not None:
            event[name] = _as_text(name, value)

    return event


def parse_webhook_payload(body: str | bytes | None) -> WebhookPayload:
    """Parse and validate a webhook body.

    Args:
        body: The raw request body.

    Returns:
        WebhookPayload with the batch flag and validated events.

    Raises:
        PayloadStructureError: If the body is empty, not JSON, has the wrong
            top-level shape, or any event fails validation.
    """
    if body is None:
        raise PayloadStructureError("Payload cannot be empty")

    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadStructureError(f"Payload is not valid UTF-8: {e}") from e

    if not body.strip():
        raise PayloadStructureError("Payload cannot be empty")

    try:
        data = json.loads(body, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise PayloadStructureError(
            f"Invalid JSON payload: {e.msg} at line {e.lineno} column {e.colno}"
            f" (body: {_excerpt(body)!r})"
        ) from e
    except (ValueError, RecursionError) as e:
        # NaN/Infinity, oversized integers and nesting past the recursion limit.
        raise PayloadStructureError(
            f"Invalid JSON payload: {e} (body: {_excerpt(body)!r})"
        ) from e

    if isinstance(data, list):
        events = []
        for index, item in enumerate(data):
            try:
                events.append(validate_event(item))
            except PayloadStructureError as e:
                raise PayloadStructureError(f"Event {index}: {e}") from e
        payload = WebhookPayload(is_batch=True, events=tuple(events))
    elif isinstance(data, dict):
        payload = WebhookPayload(is_batch=False, events=(validate_event(data),))
    else:
        raise PayloadStructureError("Invalid webhook payload structure")

    logger.debug("Webhook payload parsed", batch=payload.is_batch, events=len(payload))
    return payload
