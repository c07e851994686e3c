# sstdesk/workers/rq_worker.py
"""
RQ-воркер доставки подій по заявках: лист (mock у лог) + підписаний вебхук.

Запуск: python -m sstdesk.workers.rq_worker
"""
import hashlib
import hmac
import json
import logging
import os
from typing import Any, Callable, Mapping

import redis
import requests
from rq import Queue, Worker

from sstdesk.core.config import settings
from sstdesk.core.logging import setup_logging

logger = logging.getLogger("worker.notifications")


def _encode(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(payload), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _sign(body: bytes) -> str | None:
    # підпис рахуємо по тих самих байтах, що йдуть у тілі запиту
    if not settings.webhook_secret:
        return None
    return hmac.new(settings.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _post(event_type: str, payload: Mapping[str, Any]) -> None:
    url = settings.webhook_url
    if not url:
        logger.debug("webhook_url_missing", extra={"event_type": event_type})
        return
    headers = {"Content-Type": "application/json; charset=utf-8", "X-SSTDesk-Event": event_type}
    body = _encode(payload)
    sig = _sign(body)
    if sig:
        headers["X-SSTDesk-Signature"] = f"sha256={sig}"
    r = requests.post(url, data=body, headers=headers, timeout=10)
    # 5xx → виняток, RQ повторить задачу (Retry у enqueue)
    r.raise_for_status()
    logger.info("webhook_sent", extra={"event_type": event_type, "status": r.status_code})


def send_mail_mock(to: str, subject: str, body: str) -> None:
    logger.info("SEND_MAIL", extra={"to": to, "subject": subject, "body_len": len(body)})


def on_service_requested(payload: Mapping[str, Any]) -> None:
    sid = payload.get("service_id")
    email = payload.get("client_email")
    if email:
        send_mail_mock(email, f"Solicitud {sid} registrada", "Tu solicitud fue registrada y está en espera de asignación.")


def on_service_assigned(payload: Mapping[str, Any]) -> None:
    sid = payload.get("service_id")
    if payload.get("employee_email"):
        send_mail_mock(payload["employee_email"], f"Servicio {sid} asignado", "Se te ha asignado un nuevo servicio.")
    if payload.get("client_email"):
        send_mail_mock(payload["client_email"], f"Servicio {sid} asignado", "Tu solicitud ya tiene un responsable.")


def on_service_started(payload: Mapping[str, Any]) -> None:
    logger.info("service_started", extra={"service_id": payload.get("service_id")})


def on_service_completed(payload: Mapping[str, Any]) -> None:
    sid = payload.get("service_id")
    if payload.get("client_email"):
        send_mail_mock(payload["client_email"], f"Servicio {sid} completado", "Ya puedes descargar el informe final.")


EVENT_HANDLERS: dict[str, Callable[[Mapping[str, Any]], None]] = {
    "service.requested": on_service_requested,
    "service.assigned": on_service_assigned,
    "service.started": on_service_started,
    "service.completed": on_service_completed,
}


def handle_event(event_type: str, payload: Mapping[str, Any] | None = None) -> None:
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("unknown_event", extra={"event_type": event_type})
        return
    payload = payload or {}
    handler(payload)
    _post(event_type, payload)


def main() -> None:
    setup_logging(settings.log_level)
    logger.info("worker_starting", extra={"queue": settings.notifications_queue, "redis": settings.redis_url})
    conn = redis.from_url(settings.redis_url)
    queue = Queue(settings.notifications_queue, connection=conn)
    worker = Worker([queue], connection=conn, name=os.getenv("WORKER_NAME", "notifications-worker"))
    worker.work(logging_level=logging.INFO)


if __name__ == "__main__":
    main()
