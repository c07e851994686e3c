import logging

from sstdesk.core.logging import LOG_FORMAT, RequestIdFilter, request_id_ctx
from tests.conftest import auth


def _format(record: logging.LogRecord) -> str:
    RequestIdFilter().filter(record)
    return logging.Formatter(LOG_FORMAT).format(record)


def test_error_line_carries_request_id(client, repo, users, monkeypatch, caplog):
    async def boom():
        raise RuntimeError("db exploded")

    monkeypatch.setattr(repo, "list_configurations", boom)
    with caplog.at_level(logging.ERROR, logger="sstdesk.errors"):
        r = client.get(
            "/api/configuration/service-types",
            headers={**auth(users.admin), "X-Request-ID": "req-42"},
        )
    assert r.status_code == 500
    assert r.headers["X-Request-ID"] == "req-42"
    (record,) = [rec for rec in caplog.records if rec.name == "sstdesk.errors"]
    assert record.request_id == "req-42"
    assert "[req-42] unhandled_error" in _format(record)


def test_request_id_is_generated_when_missing(client):
    r = client.get("/api/health")
    assert len(r.headers["X-Request-ID"]) == 32


def test_line_outside_request_gets_dash():
    record = logging.LogRecord("sstdesk.worker", logging.INFO, __file__, 1, "event_skipped", None, None)
    assert "[-] event_skipped" in _format(record)


def test_filter_reads_context():
    token = request_id_ctx.set("job-7")
    try:
        record = logging.LogRecord("sstdesk", logging.INFO, __file__, 1, "x", None, None)
        assert "[job-7]" in _format(record)
    finally:
        request_id_ctx.reset(token)
