"""
Перетворення ORM-об'єктів у JSON-відповіді (camelCase, дати в ISO-8601).

Зв'язки (client / employee) не чіпаємо через lazy-load: у async-сесії це
помилка. Користувачів підтягуємо одним запитом repo.get_users().
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sstdesk.db.models import (
    DocumentTemplate,
    Notification,
    Service,
    ServiceConfiguration,
    ServiceDocument,
    ServiceEvidence,
    ServiceInspection,
    User,
)
from sstdesk.services.notifications import service_type_name


def iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


def user_brief(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}


def user_out(user: User, *, services_count: Optional[int] = None) -> dict:
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": _value(user.role),
        "active": user.is_active,
        "createdAt": iso(user.created_at),
    }
    if services_count is not None:
        data["servicesCount"] = services_count
    return data


def service_out(service: Service, users: Optional[dict[str, User]] = None) -> dict:
    users = users or {}
    return {
        "id": service.id,
        "status": _value(service.status),
        "serviceType": service.service_type,
        "serviceTypeName": service_type_name(service.service_type),
        "description": service.description,
        "address": service.address,
        "contactPerson": service.contact_person,
        "contactPhone": service.contact_phone,
        "observations": service.observations,
        "suggestedDate": iso(service.suggested_date),
        "startDate": iso(service.start_date),
        "completedAt": iso(service.completed_at),
        "requiredDocs": list(service.required_docs or []),
        "requiredInspections": list(service.required_inspections or []),
        "configuredAt": iso(service.configured_at),
        "clientId": service.client_id,
        "employeeId": service.employee_id,
        "client": user_brief(users.get(service.client_id)),
        "employee": user_brief(users.get(service.employee_id)) if service.employee_id else None,
        "createdAt": iso(service.created_at),
        "updatedAt": iso(service.updated_at),
    }


async def services_out(repo, services: Sequence[Service]) -> list[dict]:
    ids: set[str] = set()
    for s in services:
        ids.add(s.client_id)
        if s.employee_id:
            ids.add(s.employee_id)
    users = await repo.get_users(ids)
    return [service_out(s, users) for s in services]


def document_out(doc: ServiceDocument) -> dict:
    return {
        "id": doc.id,
        "serviceId": doc.service_id,
        "documentType": doc.document_type,
        "instanceNumber": doc.instance_number,
        "content": doc.content or {},
        "fileUrl": doc.file_url,
        "completedAt": iso(doc.completed_at),
        "createdAt": iso(doc.created_at),
    }


def inspection_out(insp: ServiceInspection) -> dict:
    return {
        "id": insp.id,
        "serviceId": insp.service_id,
        "inspectionType": insp.inspection_type,
        "data": insp.data or {},
        "passed": insp.passed,
        "observations": insp.observations,
        "completedAt": iso(insp.completed_at),
        "createdAt": iso(insp.created_at),
    }


def evidence_out(ev: ServiceEvidence) -> dict:
    return {
        "id": ev.id,
        "serviceId": ev.service_id,
        "description": ev.description,
        "fileUrl": ev.file_url,
        "createdAt": iso(ev.created_at),
    }


def configuration_out(config: ServiceConfiguration) -> dict:
    return {
        "id": config.id,
        "serviceType": config.service_type,
        "serviceTypeName": service_type_name(config.service_type),
        "requiredDocs": list(config.required_docs or []),
        "requiredInspections": list(config.required_inspections or []),
        "description": config.description,
        "active": config.active,
        "updatedAt": iso(config.updated_at),
    }


def template_out(tpl: DocumentTemplate, users: Optional[dict[str, User]] = None) -> dict:
    owner = (users or {}).get(tpl.user_id) if tpl.user_id else None
    return {
        "id": tpl.id,
        "name": tpl.name,
        "documentType": tpl.document_type,
        "fileUrl": tpl.file_url,
        "createdAt": iso(tpl.created_at),
        "user": {"id": owner.id, "name": owner.name} if owner else None,
    }


def notification_out(n: Notification) -> dict:
    return {
        "id": n.id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "data": n.data,
        "read": n.read,
        "createdAt": iso(n.created_at),
    }


def group_by_type(docs: Iterable[ServiceDocument]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {}
    for d in docs:
        grouped.setdefault(d.document_type, []).append(document_out(d))
    return grouped


async def service_detail_out(repo, service: Service) -> dict:
    users = await repo.get_users([service.client_id, service.employee_id])
    data = service_out(service, users)
    data.update(
        documents=[document_out(d) for d in await repo.list_documents(service.id)],
        inspections=[inspection_out(i) for i in await repo.list_inspections(service.id)],
        evidences=[evidence_out(e) for e in await repo.list_evidences(service.id)],
    )
    return data
