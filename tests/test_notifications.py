import asyncio
import json
import httpx
from formbuilder.config.env_config import settings
from formbuilder.services.notification_service import find_recipient, send_status_notification

SUBMISSION = {
    "uniqueId": "EVEN2024-000123",
    "formId": 1,
    "formTitle": "Event Registration",
    "status": "approved",
    "payment": {"status": "completed"},
    "adminNotes": "See you there",
    "data": {"name": "Jane", "contact": "jane@example.com"},
}
FIELDS = [
    {"id": "name", "type": "text", "label": "Name"},
    {"id": "contact", "type": "email", "label": "Contact"},
]


def mock_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )


def test_find_recipient():
    assert find_recipient(FIELDS, SUBMISSION["data"]) == "jane@example.com"
    assert find_recipient(FIELDS[:1], SUBMISSION["data"]) is None
    assert find_recipient(None, None) is None


def test_skipped_without_webhook_url(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_WEBHOOK_URL", None)
    assert asyncio.run(send_status_notification(SUBMISSION, FIELDS)) is False


def test_posts_status_change(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_WEBHOOK_URL", "https://hooks.example.com/status")
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    mock_transport(monkeypatch, handler)

    assert asyncio.run(send_status_notification(SUBMISSION, FIELDS)) is True
    payload = received[0]
    assert payload["event"] == "submission.status_updated"
    assert payload["submissionId"] == "EVEN2024-000123"
    assert payload["status"] == "approved"
    assert payload["recipient"] == "jane@example.com"


def test_http_errors_are_reported_not_raised(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_WEBHOOK_URL", "https://hooks.example.com/status")
    mock_transport(monkeypatch, lambda request: httpx.Response(503))

    assert asyncio.run(send_status_notification(SUBMISSION, FIELDS)) is False
