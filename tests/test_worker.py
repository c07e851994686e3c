import hashlib
import hmac
import json

import pytest
import redis

from sstdesk.core.config import settings
from sstdesk.services import notifications
from sstdesk.workers import rq_worker


class _Response:
    status_code = 202

    def raise_for_status(self):
        return None


@pytest.fixture
def posted(monkeypatch):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append({"url": url, "data": data, "headers": headers})
        return _Response()

    monkeypatch.setattr(rq_worker.requests, "post", fake_post)
    return calls


def test_event_is_signed_and_posted(monkeypatch, posted):
    monkeypatch.setattr(settings, "webhook_url", "https://hooks.example.com/sst")
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")
    payload = {"service_id": "abc", "client_email": "josé@empresa.com"}

    rq_worker.handle_event("service.completed", payload)

    (call,) = posted
    assert call["headers"]["X-SSTDesk-Event"] == "service.completed"
    # отримувач хешує рівно ті байти, що прийшли в тілі
    wire = call["data"]
    assert isinstance(wire, bytes)
    assert json.loads(wire.decode("utf-8")) == payload
    expected = hmac.new(b"s3cret", wire, hashlib.sha256).hexdigest()
    assert call["headers"]["X-SSTDesk-Signature"] == f"sha256={expected}"


def test_no_webhook_configured(monkeypatch, posted):
    monkeypatch.setattr(settings, "webhook_url", None)
    rq_worker.handle_event("service.assigned", {"service_id": "abc"})
    assert posted == []


def test_unknown_event_is_skipped(monkeypatch, posted):
    monkeypatch.setattr(settings, "webhook_url", "https://hooks.example.com/sst")
    rq_worker.handle_event("service.exploded", {})
    assert posted == []


def test_enqueue_survives_redis_outage(monkeypatch):
    class _BrokenQueue:
        def enqueue(self, *args, **kwargs):
            raise redis.ConnectionError("redis down")

    monkeypatch.setattr(notifications, "_get_queue", lambda: _BrokenQueue())
    assert notifications.enqueue("service.requested", {"service_id": "abc"}) is None
