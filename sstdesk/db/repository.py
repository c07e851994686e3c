"""
Доступ до сховища через один інтерфейс.

Роутери не будують SQL самі: вони отримують ServiceDeskRepository через
api.deps.RepoDep і викликають типізовані методи. Продакшн-реалізація -
SqlServiceDeskRepository поверх AsyncSession; у тестах підставляється
in-memory реалізація того ж протоколу.
"""
from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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


class ServiceDeskRepository(Protocol):
    # --- unit of work ---
    def add(self, obj) -> None: ...
    async def delete(self, obj) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def refresh(self, obj) -> None: ...

    # --- users ---
    async def get_user(self, user_id: str) -> Optional[User]: ...
    async def get_user_by_email(self, email: str) -> Optional[User]: ...
    async def get_users(self, user_ids: Iterable[str]) -> dict[str, User]: ...
    async def list_users(self, role: Role, *, active: Optional[bool] = None) -> Sequence[User]: ...
    async def count_services_per_user(self, role: Role) -> dict[str, int]: ...

    # --- services ---
    async def get_service(self, service_id: str, *, for_update: bool = False) -> Optional[Service]: ...
    async def list_services(self, query: ServiceQuery) -> Sequence[Service]: ...
    async def count_services_by_status(self, query: ServiceQuery) -> dict[Status, int]: ...
    async def count_services_by_type(self) -> dict[str, int]: ...

    # --- documentation ---
    async def get_document(self, document_id: str) -> Optional[ServiceDocument]: ...
    async def list_documents(
        self, service_id: str, document_type: Optional[str] = None
    ) -> Sequence[ServiceDocument]: ...
    async def list_documents_for_employee(self, employee_id: str) -> Sequence[ServiceDocument]: ...
    async def list_documents_for_client(self, client_id: str) -> Sequence[ServiceDocument]: ...
    async def next_instance_number(self, service_id: str, document_type: str) -> int: ...
    async def get_inspection(self, service_id: str, inspection_type: str) -> Optional[ServiceInspection]: ...
    async def list_inspections(self, service_id: str) -> Sequence[ServiceInspection]: ...
    async def list_evidences(self, service_id: str) -> Sequence[ServiceEvidence]: ...

    # --- configuration ---
    async def get_configuration(self, service_type: str) -> Optional[ServiceConfiguration]: ...
    async def list_configurations(self) -> Sequence[ServiceConfiguration]: ...
    async def list_templates(self) -> Sequence[DocumentTemplate]: ...

    # --- notifications ---
    async def get_notification(self, notification_id: str) -> Optional[Notification]: ...
    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: Optional[int] = None
    ) -> Sequence[Notification]: ...
    async def count_notifications(self, user_id: str, *, unread_only: bool = False) -> int: ...
    async def count_owned_notifications(self, user_id: str, ids: Sequence[str]) -> int: ...
    async def mark_notifications_read(self, user_id: str, ids: Optional[Sequence[str]] = None) -> int: ...
    async def delete_notifications(self, user_id: str, *, read_only: bool = True) -> int: ...


class SqlServiceDeskRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ==== unit of work ====

    def add(self, obj) -> None:
        self.db.add(obj)

    async def delete(self, obj) -> None:
        await self.db.delete(obj)

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def refresh(self, obj) -> None:
        await self.db.refresh(obj)

    # ==== users ====

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        res = await self.db.execute(select(User).where(User.email == email))
        return res.scalar_one_or_none()

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = {i for i in user_ids if i}
        if not ids:
            return {}
        rows = (await self.db.execute(select(User).where(User.id.in_(ids)))).scalars().all()
        return {u.id: u for u in rows}

    async def list_users(self, role: Role, *, active: Optional[bool] = None) -> Sequence[User]:
        stmt = select(User).where(User.role == role)
        if active is not None:
            stmt = stmt.where(User.is_active == active)
        stmt = stmt.order_by(User.name.asc())
        return (await self.db.execute(stmt)).scalars().all()

    async def count_services_per_user(self, role: Role) -> dict[str, int]:
        column = Service.employee_id if role == Role.employee else Service.client_id
        rows = (
            await self.db.execute(
                select(column, func.count(Service.id)).where(column.isnot(None)).group_by(column)
            )
        ).all()
        return {uid: int(cnt) for uid, cnt in rows}

    # ==== services ====

    async def get_service(self, service_id: str, *, for_update: bool = False) -> Optional[Service]:
        stmt = select(Service).where(Service.id == service_id)
        if for_update:
            # блокуємо рядок до commit: два адміни не призначать одну заявку двічі
            stmt = stmt.with_for_update()
        return (await self.db.execute(stmt)).scalar_one_or_none()

    def _filtered(self, stmt, query: ServiceQuery):
        if query.client_id is not None:
            stmt = stmt.where(Service.client_id == query.client_id)
        if query.employee_id is not None:
            stmt = stmt.where(Service.employee_id == query.employee_id)
        if query.status is not None:
            stmt = stmt.where(Service.status == query.status)
        return stmt

    async def list_services(self, query: ServiceQuery) -> Sequence[Service]:
        stmt = self._filtered(select(Service), query)
        column = {
            OrderBy.start_date: Service.start_date,
            OrderBy.completed_at: Service.completed_at,
            OrderBy.created_at: Service.created_at,
        }[query.order_by]
        order = column.desc() if query.descending else column.asc()
        stmt = stmt.order_by(order.nulls_last(), Service.created_at.asc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        return (await self.db.execute(stmt)).scalars().all()

    async def count_services_by_status(self, query: ServiceQuery) -> dict[Status, int]:
        stmt = self._filtered(select(Service.status, func.count(Service.id)), query).group_by(Service.status)
        rows = (await self.db.execute(stmt)).all()
        return {Status(s): int(c) for s, c in rows}

    async def count_services_by_type(self) -> dict[str, int]:
        rows = (
            await self.db.execute(
                select(Service.service_type, func.count(Service.id)).group_by(Service.service_type)
            )
        ).all()
        return {t: int(c) for t, c in rows}

    # ==== documentation ====

    async def get_document(self, document_id: str) -> Optional[ServiceDocument]:
        return await self.db.get(ServiceDocument, document_id)

    async def list_documents(
        self, service_id: str, document_type: Optional[str] = None
    ) -> Sequence[ServiceDocument]:
        stmt = select(ServiceDocument).where(ServiceDocument.service_id == service_id)
        if document_type is not None:
            stmt = stmt.where(ServiceDocument.document_type == document_type)
        stmt = stmt.order_by(ServiceDocument.created_at.desc(), ServiceDocument.instance_number.desc())
        return (await self.db.execute(stmt)).scalars().all()

    async def list_documents_for_employee(self, employee_id: str) -> Sequence[ServiceDocument]:
        stmt = (
            select(ServiceDocument)
            .join(Service, Service.id == ServiceDocument.service_id)
            .where(Service.employee_id == employee_id)
            .order_by(ServiceDocument.created_at.desc())
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def list_documents_for_client(self, client_id: str) -> Sequence[ServiceDocument]:
        stmt = (
            select(ServiceDocument)
            .join(Service, Service.id == ServiceDocument.service_id)
            .where(Service.client_id == client_id)
            .order_by(ServiceDocument.created_at.desc())
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def next_instance_number(self, service_id: str, document_type: str) -> int:
        current = (
            await self.db.execute(
                select(func.max(ServiceDocument.instance_number)).where(
                    ServiceDocument.service_id == service_id,
                    ServiceDocument.document_type == document_type,
                )
            )
        ).scalar_one_or_none()
        return int(current or 0) + 1

    async def get_inspection(self, service_id: str, inspection_type: str) -> Optional[ServiceInspection]:
        res = await self.db.execute(
            select(ServiceInspection).where(
                ServiceInspection.service_id == service_id,
                ServiceInspection.inspection_type == inspection_type,
            )
        )
        return res.scalar_one_or_none()

    async def list_inspections(self, service_id: str) -> Sequence[ServiceInspection]:
        stmt = (
            select(ServiceInspection)
            .where(ServiceInspection.service_id == service_id)
            .order_by(ServiceInspection.created_at.desc())
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def list_evidences(self, service_id: str) -> Sequence[ServiceEvidence]:
        stmt = (
            select(ServiceEvidence)
            .where(ServiceEvidence.service_id == service_id)
            .order_by(ServiceEvidence.created_at.desc())
        )
        return (await self.db.execute(stmt)).scalars().all()

    # ==== configuration ====

    async def get_configuration(self, service_type: str) -> Optional[ServiceConfiguration]:
        res = await self.db.execute(
            select(ServiceConfiguration).where(ServiceConfiguration.service_type == service_type)
        )
        return res.scalar_one_or_none()

    async def list_configurations(self) -> Sequence[ServiceConfiguration]:
        stmt = select(ServiceConfiguration).order_by(ServiceConfiguration.service_type.asc())
        return (await self.db.execute(stmt)).scalars().all()

    async def list_templates(self) -> Sequence[DocumentTemplate]:
        stmt = select(DocumentTemplate).order_by(DocumentTemplate.created_at.desc())
        return (await self.db.execute(stmt)).scalars().all()

    # ==== notifications ====

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        return await self.db.get(Notification, notification_id)

    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: Optional[int] = None
    ) -> Sequence[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read == False)  # noqa: E712
        stmt = stmt.order_by(Notification.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return (await self.db.execute(stmt)).scalars().all()

    async def count_notifications(self, user_id: str, *, unread_only: bool = False) -> int:
        stmt = select(func.count(Notification.id)).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read == False)  # noqa: E712
        return int((await self.db.execute(stmt)).scalar_one())

    async def count_owned_notifications(self, user_id: str, ids: Sequence[str]) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.id.in_(list(ids)),
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def mark_notifications_read(self, user_id: str, ids: Optional[Sequence[str]] = None) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
            .values(read=True)
        )
        if ids is not None:
            stmt = stmt.where(Notification.id.in_(list(ids)))
        res = await self.db.execute(stmt)
        return int(res.rowcount or 0)

    async def delete_notifications(self, user_id: str, *, read_only: bool = True) -> int:
        stmt = delete(Notification).where(Notification.user_id == user_id)
        if read_only:
            stmt = stmt.where(Notification.read == True)  # noqa: E712
        res = await self.db.execute(stmt)
        return int(res.rowcount or 0)
