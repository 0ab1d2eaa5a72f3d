"""Tests for webhook payload parsing and validation."""

from __future__ import annotations

import json

import pytest

from laneful.exceptions import PayloadStructureError
from laneful.webhooks import EventType, WebhookPayload, parse_webhook_payload


def parse_one(event: dict):
    """Parse a single-event body and return the validated event."""
    return parse_webhook_payload(json.dumps(event)).events[0]


class TestPayloadShape:
    """Single vs batch detection."""

    def test_single_event(self, make_event):
        body = json.dumps(make_event(metadata={"campaign_id": "test"}, tag="newsletter"))
        result = parse_webhook_payload(body)

        assert result.is_batch is False
        assert len(result.events) == 1
        assert result.events[0]["event"] == "delivery"
        assert result.events[0]["email"] == "user@example.com"
        assert result.events[0]["metadata"] == {"campaign_id": "test"}
        assert result.events[0]["tag"] == "newsletter"

    def test_batch_preserves_order(self, make_event):
        body = json.dumps([
            make_event(message_id="first"),
            make_event(event="open", message_id="second", client_device="mobile"),
        ])
        result = parse_webhook_payload(body)

        assert result.is_batch is True
        assert len(result) == 2
        assert [e["message_id"] for e in result] == ["first", "second"]
        assert result.events[1]["client_device"] == "mobile"

    def test_empty_batch(self):
        result = parse_webhook_payload("[]")
        assert result == WebhookPayload(is_batch=True, events=())

    def test_bytes_body(self, make_event, lane_id):
        body = json.dumps(make_event()).encode("utf-8")
        assert parse_webhook_payload(body).events[0]["lane_id"] == lane_id

    def test_all_event_types_accepted(self, make_event):
        body = json.dumps([make_event(event=t.value) for t in EventType])
        result = parse_webhook_payload(body)
        assert [e["event"] for e in result] == [t.value for t in EventType]

    @pytest.mark.parametrize("body", ['"string"', "42", "true", "null"])
    def test_scalar_top_level_rejected(self, body):
        with pytest.raises(PayloadStructureError, match="Invalid webhook payload structure"):
            parse_webhook_payload(body)

    @pytest.mark.parametrize("body", ["", "   \n", None])
    def test_empty_payload(self, body):
        with pytest.raises(PayloadStructureError, match="Payload cannot be empty"):
            parse_webhook_payload(body)

    def test_invalid_json(self):
        with pytest.raises(PayloadStructureError, match="Invalid JSON payload") as exc_info:
            parse_webhook_payload("{not json")
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_invalid_json_excerpt_truncated(self):
        body = "{" + "x" * 500
        with pytest.raises(PayloadStructureError) as exc_info:
            parse_webhook_payload(body)
        assert "..." in str(exc_info.value)
        assert len(str(exc_info.value)) < 300

    def test_invalid_utf8(self):
        with pytest.raises(PayloadStructureError, match="UTF-8"):
            parse_webhook_payload(b"\xff\xfe{}")

    def test_deep_nesting_rejected(self):
        """Nesting past the recursion limit is a structural error, not a crash."""
        body = "[" * 100_000 + "]" * 100_000
        with pytest.raises(PayloadStructureError, match="Invalid JSON payload"):
            parse_webhook_payload(body)

    def test_oversized_integer_rejected(self, make_event):
        body = json.dumps(make_event()).replace("1753502407", "9" * 5000)
        with pytest.raises(PayloadStructureError, match="Invalid JSON payload"):
            parse_webhook_payload(body)

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
    def test_non_standard_constants_rejected(self, make_event, token):
        body = json.dumps(make_event()).replace(
            '"H-1-019844e340027d728a7cfda632e14d0a"', token
        )
        with pytest.raises(PayloadStructureError, match=f"Unexpected token {token}"):
            parse_webhook_payload(body)

    def test_idempotent(self, make_event):
        body = json.dumps([make_event(), make_event(event="click", url="https://example.com")])
        assert parse_webhook_payload(body) == parse_webhook_payload(body)


class TestRequiredFields:
    """Required field presence and format."""

    def test_missing_fields(self):
        with pytest.raises(PayloadStructureError, match="Missing required field"):
            parse_webhook_payload('{"event":"delivery"}')

    def test_first_missing_field_reported(self):
        with pytest.raises(PayloadStructureError, match="Missing required field: email"):
            parse_webhook_payload('{"event":"delivery"}')

    @pytest.mark.parametrize("field", ["event", "email", "lane_id", "message_id", "timestamp"])
    def test_each_field_required(self, make_event, field):
        event = make_event()
        del event[field]
        with pytest.raises(PayloadStructureError, match=f"Missing required field: {field}"):
            parse_one(event)

    def test_null_counts_as_missing(self, make_event):
        with pytest.raises(PayloadStructureError, match="Missing required field: message_id"):
            parse_one(make_event(message_id=None))

    def test_required_fields_stored_as_text(self, make_event):
        event = parse_one(make_event(message_id=12345))
        assert event["timestamp"] == "1753502407"
        assert event["message_id"] == "12345"

    def test_invalid_event_type(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid event type: not_a_real_type"):
            parse_one(make_event(event="not_a_real_type"))

    def test_event_type_case_sensitive(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid event type"):
            parse_one(make_event(event="DELIVERY"))

    @pytest.mark.parametrize("email", ["invalid-email", "user@localhost", "user.example.com"])
    def test_invalid_email(self, make_event, email):
        with pytest.raises(PayloadStructureError, match="Invalid email format"):
            parse_one(make_event(email=email))

    def test_email_check_is_permissive(self, make_event):
        assert parse_one(make_event(email="a@b."))["email"] == "a@b."

    @pytest.mark.parametrize(
        "timestamp",
        ["not-a-timestamp", "12.5", 1.5, "", " 12", "12\n", str(2**63), "9" * 5000],
    )
    def test_invalid_timestamp(self, make_event, timestamp):
        with pytest.raises(PayloadStructureError, match="Invalid timestamp format"):
            parse_one(make_event(timestamp=timestamp))

    @pytest.mark.parametrize("timestamp", [-1, 0, "1753502407", 2**63 - 1, "+42", "-" + str(2**63)])
    def test_timestamp_content_not_plausibility(self, make_event, timestamp):
        assert parse_one(make_event(timestamp=timestamp))["timestamp"] == str(timestamp)

    def test_timestamp_leading_zeros(self, make_event):
        timestamp = "0" * 30 + "42"
        assert parse_one(make_event(timestamp=timestamp))["timestamp"] == timestamp

    def test_invalid_lane_id(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid lane_id format: not-a-uuid"):
            parse_one(make_event(lane_id="not-a-uuid"))

    def test_lane_id_case_insensitive(self, make_event, lane_id):
        assert parse_one(make_event(lane_id=lane_id.upper()))["lane_id"] == lane_id.upper()

    def test_lane_id_without_dashes_rejected(self, make_event, lane_id):
        with pytest.raises(PayloadStructureError, match="Invalid lane_id format"):
            parse_one(make_event(lane_id=lane_id.replace("-", "")))

    @pytest.mark.parametrize("suffix", ["\n", " ", "\r\n", "0"])
    def test_lane_id_trailing_characters_rejected(self, make_event, lane_id, suffix):
        with pytest.raises(PayloadStructureError, match="Invalid lane_id format"):
            parse_one(make_event(lane_id=lane_id + suffix))

    def test_object_valued_required_field_rejected(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid message_id"):
            parse_one(make_event(message_id={"id": 1}))

    def test_overflowing_float_rejected(self, make_event):
        body = json.dumps(make_event()).replace(
            '"H-1-019844e340027d728a7cfda632e14d0a"', "1e400"
        )
        with pytest.raises(PayloadStructureError, match="Invalid message_id: number out of range"):
            parse_webhook_payload(body)


class TestOptionalFields:
    """Optional field pass-through."""

    def test_absent_optional_fields_omitted(self, make_event):
        event = parse_one(make_event())
        assert set(event) == {"event", "email", "lane_id", "message_id", "timestamp"}

    def test_bounce_fields(self, make_event):
        event = parse_one(make_event(event="bounce", is_hard=True, text="550 mailbox full", reason="hard"))
        assert event["is_hard"] is True
        assert event["text"] == "550 mailbox full"
        assert event["reason"] == "hard"

    def test_click_and_client_fields(self, make_event):
        event = parse_one(make_event(
            event="click",
            url="https://example.com/x",
            client_device="desktop",
            client_os="macOS",
            client_ip="203.0.113.7",
        ))
        assert event["url"] == "https://example.com/x"
        assert event["client_os"] == "macOS"
        assert event["client_ip"] == "203.0.113.7"

    def test_unsubscribe_group_id_as_text(self, make_event):
        event = parse_one(make_event(event="unsubscribe", unsubscribe_group_id=7))
        assert event["unsubscribe_group_id"] == "7"

    def test_nested_metadata(self, make_event):
        metadata = {"campaign": {"id": 1, "tags": ["a", "b"]}}
        assert parse_one(make_event(metadata=metadata))["metadata"] == metadata

    def test_unknown_fields_dropped(self, make_event):
        assert "extra" not in parse_one(make_event(extra="ignored"))

    def test_null_optional_treated_as_absent(self, make_event):
        event = parse_one(make_event(url=None, is_hard=None))
        assert "url" not in event
        assert "is_hard" not in event

    def test_non_object_metadata_rejected(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid metadata"):
            parse_one(make_event(metadata=["a"]))

    def test_non_boolean_is_hard_rejected(self, make_event):
        with pytest.raises(PayloadStructureError, match="Invalid is_hard"):
            parse_one(make_event(is_hard="yes"))


class TestBatchValidation:
    """A single bad event rejects the whole batch."""

    def test_invalid_element_fails_batch(self, make_event):
        body = json.dumps([make_event(), make_event(event="bogus")])
        with pytest.raises(PayloadStructureError, match="Event 1: Invalid event type: bogus"):
            parse_webhook_payload(body)

    def test_non_object_element(self, make_event):
        with pytest.raises(PayloadStructureError, match="Event must be an object"):
            parse_webhook_payload(json.dumps([make_event(), "event"]))

    def test_nested_array_element(self, make_event):
        with pytest.raises(PayloadStructureError, match="Event must be an object"):
            parse_webhook_payload(json.dumps([[make_event()]]))

    def test_malformed_lane_id_in_batch(self, make_event, lane_id):
        body = json.dumps([make_event(), make_event(lane_id=lane_id + "\n")])
        with pytest.raises(PayloadStructureError, match="Event 1: Invalid lane_id format"):
            parse_webhook_payload(body)
