import structlog

from tezeus.shared.logging import (
    CorrelationIdProcessor,
    PIIRedactionProcessor,
    add_request_context,
    bind_request_context,
    clear_request_context,
)


def test_pii_redaction_masks_email_and_phone():
    event = PIIRedactionProcessor()(None, "info", {
        "event": "sent to ana.souza@acme.com.br",
        "details": {"phone": "5511987654321", "ids": ["+5511987654321"]},
        "count": 3,
    })
    assert event["event"] == "sent to ***@acme.com.br"
    assert event["details"]["phone"] == "55****4321"
    assert event["details"]["ids"] == ["+5****4321"]
    assert event["count"] == 3


def test_uuids_are_not_mistaken_for_phone_numbers():
    value = "workspace 7a9b0c1d-0000-4000-8000-000000000002"
    assert PIIRedactionProcessor()(None, "info", {"event": value})["event"] == value


def test_request_context_is_copied_into_events():
    clear_request_context()
    bind_request_context(request_id="req-1", user_id="u1", workspace_id="w1", path="/x")
    try:
        event = add_request_context(None, "info", {"event": "e"})
        event = CorrelationIdProcessor()(None, "info", event)
    finally:
        clear_request_context()
    assert event["user_id"] == "u1"
    assert event["workspace_id"] == "w1"
    assert event["correlation_id"] == "req-1"
    assert "request_id" not in structlog.contextvars.get_contextvars()
