"""
Reports service

Агреговані зрізи по заявках для кабінетів: лічильники за статусом,
статистика працівника. Нічого не зберігає, рахує на льоту.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sstdesk.db.models import RoleEnum as Role, ServiceStatusEnum as Status, User
from sstdesk.services.notifications import service_type_name
from sstdesk.services.workflow import ServiceQuery


def status_summary(counts: Dict[Status, int]) -> Dict[str, int]:
    pending = counts.get(Status.pending, 0)
    assigned = counts.get(Status.assigned, 0)
    in_progress = counts.get(Status.in_progress, 0)
    completed = counts.get(Status.completed, 0)
    return {
        "total": pending + assigned + in_progress + completed,
        "pending": pending,
        "assigned": assigned,
        "inProgress": in_progress,
        "completed": completed,
    }


async def scoped_summary(repo, query: ServiceQuery) -> Dict[str, int]:
    """Лічильники для тієї ж видимості, що й список (статус і ліміт ігноруємо)."""
    scope = ServiceQuery(client_id=query.client_id, employee_id=query.employee_id)
    return status_summary(await repo.count_services_by_status(scope))


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


async def employee_stats(repo, employee: User, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    services = await repo.list_services(ServiceQuery(employee_id=employee.id))

    statuses = [Status(s.status) for s in services]
    completed_this_month = sum(
        1
        for s in services
        if Status(s.status) == Status.completed
        and s.completed_at is not None
        and _aware(s.completed_at) >= month_start
    )
    return {
        "totalServices": len(services),
        "inProgressServices": sum(1 for st in statuses if st in (Status.assigned, Status.in_progress)),
        "completedServices": sum(1 for st in statuses if st == Status.completed),
        "completedThisMonth": completed_this_month,
        "servicesByType": dict(Counter(s.service_type for s in services)),
    }


async def admin_report(repo) -> Dict[str, Any]:
    """Зведення для сторінки звітів адміністратора."""
    by_type = await repo.count_services_by_type()
    employees = await repo.list_users(Role.employee)
    per_employee = await repo.count_services_per_user(Role.employee)
    clients = await repo.list_users(Role.client)
    per_client = await repo.count_services_per_user(Role.client)
    return {
        "services": status_summary(await repo.count_services_by_status(ServiceQuery())),
        "servicesByType": [
            {"serviceType": t, "label": service_type_name(t), "count": n}
            for t, n in sorted(by_type.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        "employees": [
            {"id": e.id, "name": e.name, "active": e.is_active, "services": per_employee.get(e.id, 0)}
            for e in employees
        ],
        "clients": {
            "total": len(clients),
            "withServices": sum(1 for c in clients if per_client.get(c.id)),
        },
    }
