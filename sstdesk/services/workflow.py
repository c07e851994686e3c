"""
Service workflow (бізнес-правила для заявок)

Тут живе state machine заявки та правила видимості списків.
Роутери і сторінки імпортують ці функції, щоб не дублювати логіку.

    PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED

Переходи лише вперед. employee_id заповнений тоді й тільки тоді, коли статус
не PENDING; completed_at заповнений тільки у COMPLETED.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Set

from sstdesk.core.errors import Forbidden, InvalidTransition
from sstdesk.db.models import RoleEnum as Role, Service, ServiceStatusEnum as Status, utcnow
from sstdesk.services.access import Identity, is_assigned_employee

# Допустимі переходи (state machine)
ALLOWED_TRANSITIONS: dict[Status, Set[Status]] = {
    Status.pending: {Status.assigned},
    Status.assigned: {Status.in_progress},
    Status.in_progress: {Status.completed},
    Status.completed: set(),
}

STAFFED_STATUSES = frozenset({Status.assigned, Status.in_progress, Status.completed})

# скільки останніх завершених заявок показуємо в історії
COMPLETED_LIST_LIMIT = 50


def can_transition(src: Status, dst: Status) -> bool:
    return dst in ALLOWED_TRANSITIONS.get(src, set())


def has_consistent_assignment(service: Service) -> bool:
    """employee_id є тоді й тільки тоді, коли заявку вже призначено."""
    staffed = Status(service.status) in STAFFED_STATUSES
    return (service.employee_id is not None) == staffed


def _require_transition(service: Service, dst: Status, message: str) -> None:
    src = Status(service.status)
    if not can_transition(src, dst):
        raise InvalidTransition(f"{message}. Estado actual: {src.value}")


def assign(service: Service, employee_id: str) -> Service:
    """PENDING -> ASSIGNED. Рішення про роль приймає роутер (тільки адмін)."""
    _require_transition(service, Status.assigned, "Este servicio ya fue asignado o no está disponible")
    service.employee_id = employee_id
    service.status = Status.assigned
    return service


def start(service: Service, identity: Identity, now: Optional[datetime] = None) -> Service:
    """ASSIGNED -> IN_PROGRESS, тільки призначений працівник."""
    if not is_assigned_employee(identity, service):
        raise Forbidden("Este servicio no está asignado a ti")
    _require_transition(service, Status.in_progress, "Este servicio no puede ser iniciado")
    service.status = Status.in_progress
    service.start_date = now or utcnow()
    return service


def complete(service: Service, identity: Identity, now: Optional[datetime] = None) -> Service:
    """IN_PROGRESS -> COMPLETED, тільки призначений працівник; фіксуємо completed_at."""
    if not is_assigned_employee(identity, service):
        raise Forbidden("Este servicio no está asignado a ti")
    _require_transition(service, Status.completed, "Este servicio no puede ser completado")
    service.status = Status.completed
    service.completed_at = now or utcnow()
    return service


def ensure_executing(service: Service, identity: Identity) -> None:
    """Документи по заявці може додавати лише виконавець, коли заявка в роботі."""
    if not is_assigned_employee(identity, service):
        raise Forbidden("Este servicio no está asignado a ti")
    if Status(service.status) != Status.in_progress:
        raise InvalidTransition("Este servicio no está en progreso")


# ==== Видимість списків ====


class OrderBy(str, enum.Enum):
    start_date = "start_date"
    completed_at = "completed_at"
    created_at = "created_at"


@dataclass(frozen=True)
class ServiceQuery:
    client_id: Optional[str] = None
    employee_id: Optional[str] = None
    status: Optional[Status] = None
    order_by: OrderBy = OrderBy.created_at
    descending: bool = True
    limit: Optional[int] = None

    def with_status(self, status: Optional[Status]) -> "ServiceQuery":
        return replace(self, status=status)


class ServiceView(str, enum.Enum):
    all = "all"
    pending = "pending"
    assigned = "assigned"
    in_progress = "in-progress"
    completed = "completed"


_VIEW_STATUS: dict[ServiceView, Optional[Status]] = {
    ServiceView.all: None,
    ServiceView.pending: Status.pending,
    ServiceView.assigned: Status.assigned,
    ServiceView.in_progress: Status.in_progress,
    ServiceView.completed: Status.completed,
}


def ordering_for(status: Optional[Status]) -> ServiceQuery:
    """Черга (pending/assigned/in-progress) - найближчий старт першим; історія - останні 50."""
    if status == Status.completed:
        return ServiceQuery(
            status=status,
            order_by=OrderBy.completed_at,
            descending=True,
            limit=COMPLETED_LIST_LIMIT,
        )
    if status is None:
        return ServiceQuery(order_by=OrderBy.created_at, descending=True)
    return ServiceQuery(status=status, order_by=OrderBy.start_date, descending=False)


def scope_for(identity: Identity, view: ServiceView = ServiceView.all) -> ServiceQuery:
    """
    Фільтр для списку заявок з урахуванням ролі:
      - працівник бачить тільки свої (employee_id == він);
      - клієнт бачить тільки свої заявки (client_id == він);
      - адмін бачить усе.
    """
    query = ordering_for(_VIEW_STATUS[view])
    if identity.role == Role.employee:
        return replace(query, employee_id=identity.id)
    if identity.role == Role.client:
        return replace(query, client_id=identity.id)
    if identity.role == Role.admin:
        return query
    raise Forbidden("Rol no autorizado")


def view_for(status: Optional[Status]) -> ServiceView:
    if status is None:
        return ServiceView.all
    return next(v for v, s in _VIEW_STATUS.items() if s == status)
