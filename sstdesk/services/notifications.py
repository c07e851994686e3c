# sstdesk/services/notifications.py
"""
Нотифікації: рядок у таблиці notifications (його бачить користувач у кабінеті)
плюс подія в RQ-черзі, яку воркер доставляє назовні (пошта / вебхук).
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import redis
from rq import Queue, Retry

from sstdesk.core.config import settings
from sstdesk.db.models import ActivityLog, Notification

log = logging.getLogger(__name__)

SERVICE_TYPE_NAMES: dict[str, str] = {
    "PROFESIONAL_SST": "Profesional SST",
    "TECNOLOGO_SST": "Tecnólogo SST",
    "TECNICO_SST": "Técnico SST",
    "COORDINADOR_ALTURAS": "Coordinador de Alturas",
    "SUPERVISOR_ESPACIOS_CONFINADOS": "Supervisor Espacios Confinados",
    "CAPACITACIONES_CURSOS": "Capacitaciones o Cursos",
    "ALQUILER_EQUIPOS": "Alquiler de Equipos",
    "ANDAMIERO": "Andamiero",
    "AUDITORIA_SG_SST": "Auditoría SG-SST",
    "RESCATISTA": "Rescatista",
    "TAPH_PARAMEDICO": "TAPH (Paramédico)",
    "AUXILIAR_OPERATIVO": "Auxiliar Operativo",
    "SERVICIOS_ADMINISTRATIVOS": "Servicios Administrativos",
    "NOMINA": "Nómina",
    "FACTURACION": "Facturación",
    "CONTRATOS": "Contratos",
    "SEGURIDAD_SOCIAL": "Seguridad Social",
    "OTRO": "Otro",
}


def service_type_name(service_type: str) -> str:
    return SERVICE_TYPE_NAMES.get(service_type, service_type)


def notify(
    repo,
    *,
    user_id: str,
    title: str,
    message: str,
    type: str,
    data: Optional[Mapping[str, Any]] = None,
) -> Notification:
    """Додає нотифікацію в поточну транзакцію; commit робить роутер."""
    n = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        data=dict(data) if data is not None else None,
        read=False,
    )
    repo.add(n)
    return n


def log_activity(
    repo,
    *,
    user_id: Optional[str],
    action: str,
    entity: str,
    entity_id: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=dict(details) if details is not None else None,
    )
    repo.add(entry)
    return entry


# ==== RQ ====

_queue: Queue | None = None


def _get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.notifications_queue, connection=redis.from_url(settings.redis_url))
    return _queue


def enqueue(event_type: str, payload: Mapping[str, Any]) -> str | None:
    """
    Кладемо подію в чергу: у воркері її обробляє handle_event.
    Повертає job.id або None, якщо Redis недоступний (HTTP-запит не валимо).
    """
    try:
        job = _get_queue().enqueue(
            "sstdesk.workers.rq_worker.handle_event",
            event_type,
            dict(payload),
            job_timeout=60,
            retry=Retry(max=3, interval=[5, 15, 30]),
        )
        return getattr(job, "id", None)
    except redis.RedisError as e:
        log.exception("Failed to enqueue event '%s': %s", event_type, e)
        return None
