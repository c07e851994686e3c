"""
In-memory ServiceDeskRepository для тестів API без Postgres.

Повторює семантику SqlServiceDeskRepository: фільтри ServiceQuery,
сортування з NULL в кінці, ліміти, підрахунки.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sstdesk.db.models import (
    DocumentTemplate,
    Notification,
    RoleEnum as Role,
    Service,
    ServiceConfiguration,
    ServiceDocument,
    ServiceEvidence,
    ServiceInspection,
    ServiceStatusEnum as Status,
    User,
)
from sstdesk.services.workflow import OrderBy, ServiceQuery

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _apply_defaults(obj) -> None:
    """Те, що у БД заповнює flush: id, created_at, default-значення колонок."""
    for column in obj.__table__.columns:
        key = column.key
        if getattr(obj, key, None) is not None or column.default is None:
            continue
        default = column.default
        if default.is_scalar:
            setattr(obj, key, default.arg)
        elif default.is_callable:
            setattr(obj, key, default.arg(None))


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


class InMemoryRepository:
    def __init__(self) -> None:
        self.rows: dict[type, dict[str, object]] = {}
        self.commits = 0
        self.rollbacks = 0

    # ==== unit of work ====

    def add(self, obj) -> None:
        _apply_defaults(obj)
        self.rows.setdefault(type(obj), {})[obj.id] = obj

    async def delete(self, obj) -> None:
        self.rows.get(type(obj), {}).pop(obj.id, None)

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, obj) -> None:
        return None

    def all(self, model: type) -> list:
        return list(self.rows.get(model, {}).values())

    def _get(self, model: type, obj_id: Optional[str]):
        if obj_id is None:
            return None
        return self.rows.get(model, {}).get(obj_id)

    # ==== users ====

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.all(User) if u.email == email), None)

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = {i for i in user_ids if i}
        return {u.id: u for u in self.all(User) if u.id in ids}

    async def list_users(self, role: Role, *, active: Optional[bool] = None) -> Sequence[User]:
        users = [u for u in self.all(User) if u.role == role]
        if active is not None:
            users = [u for u in users if u.is_active == active]
        return sorted(users, key=lambda u: u.name)

    async def count_services_per_user(self, role: Role) -> dict[str, int]:
        attr = "employee_id" if role == Role.employee else "client_id"
        return dict(Counter(getattr(s, attr) for s in self.all(Service) if getattr(s, attr) is not None))

    # ==== services ====

    async def get_service(self, service_id: str, *, for_update: bool = False) -> Optional[Service]:
        return self._get(Service, service_id)

    def _filtered(self, query: ServiceQuery) -> list[Service]:
        services = self.all(Service)
        if query.client_id is not None:
            services = [s for s in services if s.client_id == query.client_id]
        if query.employee_id is not None:
            services = [s for s in services if s.employee_id == query.employee_id]
        if query.status is not None:
            services = [s for s in services if s.status == query.status]
        return services

    async def list_services(self, query: ServiceQuery) -> Sequence[Service]:
        attr = {
            OrderBy.start_date: "start_date",
            OrderBy.completed_at: "completed_at",
            OrderBy.created_at: "created_at",
        }[query.order_by]
        # другорядний ключ: created_at за зростанням
        services = sorted(self._filtered(query), key=lambda s: _aware(s.created_at) or _EPOCH)
        with_value = [s for s in services if getattr(s, attr) is not None]
        without = [s for s in services if getattr(s, attr) is None]
        with_value.sort(key=lambda s: _aware(getattr(s, attr)), reverse=query.descending)
        result = with_value + without
        if query.limit is not None:
            result = result[: query.limit]
        return result

    async def count_services_by_status(self, query: ServiceQuery) -> dict[Status, int]:
        return dict(Counter(Status(s.status) for s in self._filtered(query)))

    async def count_services_by_type(self) -> dict[str, int]:
        return dict(Counter(s.service_type for s in self.all(Service)))

    # ==== documentation ====

    async def get_document(self, document_id: str) -> Optional[ServiceDocument]:
        return self._get(ServiceDocument, document_id)

    async def list_documents(
        self, service_id: str, document_type: Optional[str] = None
    ) -> Sequence[ServiceDocument]:
        docs = [d for d in self.all(ServiceDocument) if d.service_id == service_id]
        if document_type is not None:
            docs = [d for d in docs if d.document_type == document_type]
        return sorted(docs, key=lambda d: (_aware(d.created_at), d.instance_number), reverse=True)

    async def list_documents_for_employee(self, employee_id: str) -> Sequence[ServiceDocument]:
        own = {s.id for s in self.all(Service) if s.employee_id == employee_id}
        docs = [d for d in self.all(ServiceDocument) if d.service_id in own]
        return sorted(docs, key=lambda d: _aware(d.created_at), reverse=True)

    async def list_documents_for_client(self, client_id: str) -> Sequence[ServiceDocument]:
        own = {s.id for s in self.all(Service) if s.client_id == client_id}
        docs = [d for d in self.all(ServiceDocument) if d.service_id in own]
        return sorted(docs, key=lambda d: _aware(d.created_at), reverse=True)

    async def next_instance_number(self, service_id: str, document_type: str) -> int:
        numbers = [
            d.instance_number
            for d in self.all(ServiceDocument)
            if d.service_id == service_id and d.document_type == document_type
        ]
        return max(numbers, default=0) + 1

    async def get_inspection(self, service_id: str, inspection_type: str) -> Optional[ServiceInspection]:
        return next(
            (
                i
                for i in self.all(ServiceInspection)
                if i.service_id == service_id and i.inspection_type == inspection_type
            ),
            None,
        )

    async def list_inspections(self, service_id: str) -> Sequence[ServiceInspection]:
        items = [i for i in self.all(ServiceInspection) if i.service_id == service_id]
        return sorted(items, key=lambda i: _aware(i.created_at), reverse=True)

    async def list_evidences(self, service_id: str) -> Sequence[ServiceEvidence]:
        items = [e for e in self.all(ServiceEvidence) if e.service_id == service_id]
        return sorted(items, key=lambda e: _aware(e.created_at), reverse=True)

    # ==== configuration ====

    async def get_configuration(self, service_type: str) -> Optional[ServiceConfiguration]:
        return next((c for c in self.all(ServiceConfiguration) if c.service_type == service_type), None)

    async def list_configurations(self) -> Sequence[ServiceConfiguration]:
        return sorted(self.all(ServiceConfiguration), key=lambda c: c.service_type)

    async def list_templates(self) -> Sequence[DocumentTemplate]:
        return sorted(self.all(DocumentTemplate), key=lambda t: _aware(t.created_at), reverse=True)

    # ==== notifications ====

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._get(Notification, notification_id)

    def _notifications(self, user_id: str, unread_only: bool) -> list[Notification]:
        items = [n for n in self.all(Notification) if n.user_id == user_id]
        if unread_only:
            items = [n for n in items if not n.read]
        return items

    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: Optional[int] = None
    ) -> Sequence[Notification]:
        items = sorted(self._notifications(user_id, unread_only), key=lambda n: _aware(n.created_at), reverse=True)
        return items[:limit] if limit is not None else items

    async def count_notifications(self, user_id: str, *, unread_only: bool = False) -> int:
        return len(self._notifications(user_id, unread_only))

    async def count_owned_notifications(self, user_id: str, ids: Sequence[str]) -> int:
        wanted = set(ids)
        return sum(1 for n in self._notifications(user_id, False) if n.id in wanted)

    async def mark_notifications_read(self, user_id: str, ids: Optional[Sequence[str]] = None) -> int:
        items = self._notifications(user_id, True)
        if ids is not None:
            wanted = set(ids)
            items = [n for n in items if n.id in wanted]
        for n in items:
            n.read = True
        return len(items)

    async def delete_notifications(self, user_id: str, *, read_only: bool = True) -> int:
        items = self._notifications(user_id, False)
        if read_only:
            items = [n for n in items if n.read]
        for n in items:
            await self.delete(n)
        return len(items)
