"""
Сторінки кабінетів /dashboard/...

Віддають дані сторінки у JSON (розмітку малює фронт). Замість помилок -
редирект: без сесії або з чужою роллю на /login, недоступна заявка - у свій
кабінет.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Annotated

from fastapi import APIRouter, Depends

from sstdesk.api.deps import IdentityDep, RepoDep, page_identity
from sstdesk.api.presenters import (
    configuration_out,
    document_out,
    group_by_type,
    service_detail_out,
    services_out,
    template_out,
    user_brief,
    user_out,
)
from sstdesk.core.errors import PageRedirect
from sstdesk.db.models import RoleEnum as Role, ServiceTypeEnum
from sstdesk.services import workflow
from sstdesk.services.access import Identity, can_view_service, dashboard_url
from sstdesk.services.notifications import service_type_name
from sstdesk.services.reports import admin_report, scoped_summary
from sstdesk.services.requirements import requirements_for_type, service_progress
from sstdesk.services.workflow import ServiceView

router = APIRouter()

AdminPage = Annotated[Identity, Depends(page_identity(Role.admin))]
EmployeePage = Annotated[Identity, Depends(page_identity(Role.employee))]
ClientPage = Annotated[Identity, Depends(page_identity(Role.client))]

RECENT_LIMIT = 5

# звіти, для яких є дані; фінансових полів у заявці немає
REPORTS = [
    {"id": "services", "title": "Reporte de Servicios", "description": "Servicios por estado y por tipo"},
    {"id": "employees", "title": "Reporte de Empleados", "description": "Servicios asignados por empleado"},
    {"id": "clients", "title": "Reporte de Clientes", "description": "Clientes registrados y con solicitudes"},
]


def _me(identity: Identity) -> dict:
    return {"id": identity.id, "name": identity.name, "email": identity.email, "role": identity.role.value}


async def _services_page(repo, identity: Identity, view: ServiceView) -> dict:
    query = workflow.scope_for(identity, view)
    services = await repo.list_services(query)
    return {
        "user": _me(identity),
        "view": view.value,
        "services": await services_out(repo, services),
        "total": len(services),
    }


async def _overview(repo, identity: Identity) -> dict:
    query = workflow.scope_for(identity, ServiceView.all)
    recent = await repo.list_services(replace(query, limit=RECENT_LIMIT))
    return {
        "user": _me(identity),
        "stats": await scoped_summary(repo, query),
        "recentServices": await services_out(repo, recent),
    }


async def _profile(repo, identity: Identity) -> dict:
    user = await repo.get_user(identity.id)
    return {"user": user_out(user)}


async def _service_page(repo, identity: Identity, service_id: str) -> dict:
    service = await repo.get_service(service_id)
    if service is None or not can_view_service(identity, service):
        raise PageRedirect(dashboard_url(identity))
    return {
        "user": _me(identity),
        "service": await service_detail_out(repo, service),
        "progress": await service_progress(repo, service),
    }


@router.get("")
async def dashboard(identity: IdentityDep):
    raise PageRedirect(dashboard_url(identity))


# ==== ADMIN ====

@router.get("/admin")
async def admin_home(repo: RepoDep, identity: AdminPage):
    return await _overview(repo, identity)


@router.get("/admin/pending")
async def admin_pending(repo: RepoDep, identity: AdminPage):
    page = await _services_page(repo, identity, ServiceView.pending)
    page["employees"] = [user_brief(e) for e in await repo.list_users(Role.employee, active=True)]
    return page


@router.get("/admin/services")
async def admin_services(repo: RepoDep, identity: AdminPage):
    return await _services_page(repo, identity, ServiceView.all)


@router.get("/admin/services/{service_id}")
async def admin_service_detail(service_id: str, repo: RepoDep, identity: AdminPage):
    return await _service_page(repo, identity, service_id)


@router.get("/admin/employees")
async def admin_employees(repo: RepoDep, identity: AdminPage):
    employees = await repo.list_users(Role.employee)
    counts = await repo.count_services_per_user(Role.employee)
    return {
        "user": _me(identity),
        "employees": [user_out(e, services_count=counts.get(e.id, 0)) for e in employees],
        "total": len(employees),
    }


@router.get("/admin/clients")
async def admin_clients(repo: RepoDep, identity: AdminPage):
    clients = await repo.list_users(Role.client)
    counts = await repo.count_services_per_user(Role.client)
    return {
        "user": _me(identity),
        "clients": [user_out(c, services_count=counts.get(c.id, 0)) for c in clients],
        "total": len(clients),
    }


@router.get("/admin/configuration")
async def admin_configuration(repo: RepoDep, identity: AdminPage):
    templates = await repo.list_templates()
    owners = await repo.get_users(t.user_id for t in templates)
    return {
        "user": _me(identity),
        "serviceTypes": [{"value": t.value, "label": service_type_name(t.value)} for t in ServiceTypeEnum],
        "configurations": [configuration_out(c) for c in await repo.list_configurations()],
        "templates": [template_out(t, owners) for t in templates],
    }


@router.get("/admin/reports")
async def admin_reports(repo: RepoDep, identity: AdminPage):
    return {"user": _me(identity), "reports": REPORTS, **await admin_report(repo)}


# ==== EMPLOYEE ====

@router.get("/employee")
async def employee_home(repo: RepoDep, identity: EmployeePage):
    return await _overview(repo, identity)


@router.get("/employee/assigned")
async def employee_assigned(repo: RepoDep, identity: EmployeePage):
    return await _services_page(repo, identity, ServiceView.assigned)


@router.get("/employee/in-progress")
async def employee_in_progress(repo: RepoDep, identity: EmployeePage):
    return await _services_page(repo, identity, ServiceView.in_progress)


@router.get("/employee/completed")
async def employee_completed(repo: RepoDep, identity: EmployeePage):
    return await _services_page(repo, identity, ServiceView.completed)


@router.get("/employee/documents")
async def employee_documents(repo: RepoDep, identity: EmployeePage):
    docs = await repo.list_documents_for_employee(identity.id)
    return {
        "user": _me(identity),
        "documents": [document_out(d) for d in docs],
        "total": len(docs),
    }


@router.get("/employee/profile")
async def employee_profile(repo: RepoDep, identity: EmployeePage):
    return await _profile(repo, identity)


@router.get("/employee/service/{service_id}")
async def employee_service(service_id: str, repo: RepoDep, identity: EmployeePage):
    page = await _service_page(repo, identity, service_id)
    page["documentsByType"] = group_by_type(await repo.list_documents(service_id))
    return page


# ==== CLIENT ====

@router.get("/client")
async def client_home(repo: RepoDep, identity: ClientPage):
    return await _overview(repo, identity)


@router.get("/client/requests")
async def client_requests(repo: RepoDep, identity: ClientPage):
    return await _services_page(repo, identity, ServiceView.all)


@router.get("/client/in-progress")
async def client_in_progress(repo: RepoDep, identity: ClientPage):
    return await _services_page(repo, identity, ServiceView.in_progress)


@router.get("/client/history")
async def client_history(repo: RepoDep, identity: ClientPage):
    return await _services_page(repo, identity, ServiceView.completed)


@router.get("/client/profile")
async def client_profile(repo: RepoDep, identity: ClientPage):
    return await _profile(repo, identity)


@router.get("/client/new-request")
async def client_new_request(repo: RepoDep, identity: ClientPage):
    service_types = []
    for t in ServiceTypeEnum:
        requirements = await requirements_for_type(repo, t.value)
        service_types.append({"value": t.value, "label": service_type_name(t.value), **requirements.to_dict()})
    return {"user": _me(identity), "serviceTypes": service_types}


@router.get("/client/documents")
async def client_documents(repo: RepoDep, identity: ClientPage):
    docs = await repo.list_documents_for_client(identity.id)
    services = await repo.list_services(workflow.scope_for(identity, ServiceView.all))
    by_id = {s.id: s for s in services}
    documents = []
    for d in docs:
        service = by_id[d.service_id]
        documents.append({
            **document_out(d),
            "service": {
                "id": service.id,
                "serviceType": service.service_type,
                "serviceTypeName": service_type_name(service.service_type),
                "status": service.status.value,
                "address": service.address,
            },
        })
    return {"user": _me(identity), "documents": documents, "total": len(documents)}
