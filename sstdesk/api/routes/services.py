# sstdesk/api/routes/services.py
from __future__ import annotations

import logging
from functools import partial
from typing import Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile, status
from fastapi.responses import FileResponse, Response
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError

from sstdesk.api.deps import AdminDep, ClientDep, CurrentDep, EmployeeDep, RepoDep
from sstdesk.api.presenters import (
    document_out,
    evidence_out,
    inspection_out,
    service_detail_out,
    service_out,
    services_out,
)
from sstdesk.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from sstdesk.core.logging import log_extra
from sstdesk.db.models import (
    RoleEnum as Role,
    Service,
    ServiceDocument,
    ServiceEvidence,
    ServiceInspection,
    ServiceStatusEnum as Status,
    new_id,
    utcnow,
)
from sstdesk.schemas.services import (
    AssignIn,
    ConfigureIn,
    ConsolidatedPdfIn,
    DocumentCreateIn,
    DocumentPdfIn,
    EvidenceIn,
    InspectionIn,
    ServiceActionIn,
    ServiceRequestIn,
)
from sstdesk.services import notifications, pdf, uploads, workflow
from sstdesk.services.access import Identity, can_view_service, is_assigned_employee
from sstdesk.services.notifications import log_activity, notify, service_type_name
from sstdesk.services.reports import scoped_summary
from sstdesk.services.requirements import service_progress

router = APIRouter()
logger = logging.getLogger("sstdesk.services")


async def _visible_service(repo, service_id: str, identity: Identity) -> Service:
    """Чужа заявка для читання виглядає як відсутня."""
    service = await repo.get_service(service_id)
    if service is None or not can_view_service(identity, service):
        raise NotFound("Servicio no encontrado")
    return service


async def _existing_service(repo, service_id: str, *, for_update: bool = False) -> Service:
    service = await repo.get_service(service_id, for_update=for_update)
    if service is None:
        raise NotFound("Servicio no encontrado")
    return service


async def _assigned_service(repo, service_id: str, identity: Identity) -> Service:
    service = await _existing_service(repo, service_id)
    if not is_assigned_employee(identity, service):
        raise Forbidden("Este servicio no está asignado a ti")
    return service


# ==== Заявки ====

@router.post("/request", status_code=status.HTTP_201_CREATED)
async def request_service(payload: ServiceRequestIn, request: Request, repo: RepoDep, current: ClientDep):
    service_type = payload.service_type.value
    service = Service(
        client_id=current.id,
        created_by_id=current.id,
        status=Status.pending,
        service_type=service_type,
        description=payload.description,
        address=payload.address,
        contact_person=payload.contact_person,
        contact_phone=payload.contact_phone,
        suggested_date=payload.suggested_date,
        # плановий старт = бажана дата; при фактичному старті перезапишеться
        start_date=payload.suggested_date,
        observations=payload.observations,
    )
    repo.add(service)
    await repo.commit()
    await repo.refresh(service)

    for admin in await repo.list_users(Role.admin, active=True):
        notify(
            repo,
            user_id=admin.id,
            title="Nueva Solicitud de Servicio",
            message=f"{current.name} ha solicitado un servicio de tipo {service_type_name(service_type)}",
            type="service_requested",
            data={"serviceId": service.id, "serviceType": service_type, "clientName": current.name},
        )
    log_activity(
        repo,
        user_id=current.id,
        action="created_service_request",
        entity="service",
        entity_id=service.id,
        details={"serviceType": service_type},
    )
    await repo.commit()

    logger.info("service_requested id=%s type=%s", service.id, service_type, extra=log_extra(request))
    notifications.enqueue(
        "service.requested",
        {"service_id": service.id, "service_type": service_type, "client_email": current.email},
    )
    return {
        "message": "Solicitud de servicio creada exitosamente",
        "service": service_out(service, {current.id: await repo.get_user(current.id)}),
    }


@router.get("/my-services")
async def my_services(
    repo: RepoDep,
    current: CurrentDep,
    status_: Optional[Status] = Query(default=None, alias="status"),
):
    query = workflow.scope_for(current, workflow.view_for(status_))
    services = await repo.list_services(query)
    return {
        "services": await services_out(repo, services),
        "stats": await scoped_summary(repo, query),
    }


# ==== Переходи статусу ====

@router.post("/assign")
async def assign_service(payload: AssignIn, request: Request, repo: RepoDep, current: AdminDep):
    # рядок заблоковано до commit: паралельне призначення побачить ASSIGNED
    service = await _existing_service(repo, payload.service_id, for_update=True)
    employee = await repo.get_user(payload.employee_id)
    if employee is None or employee.role != Role.employee or not employee.is_active:
        raise NotFound("Empleado no encontrado o no está activo")

    workflow.assign(service, employee.id)

    client = await repo.get_user(service.client_id)
    type_name = service_type_name(service.service_type)
    notify(
        repo,
        user_id=employee.id,
        title="Nuevo Servicio Asignado",
        message=f"Se te ha asignado un servicio de tipo {type_name} para el cliente {client.name}",
        type="service_assigned",
        data={
            "serviceId": service.id,
            "serviceType": service.service_type,
            "clientName": client.name,
            "address": service.address,
        },
    )
    notify(
        repo,
        user_id=service.client_id,
        title="Servicio Asignado",
        message=f"Tu solicitud de {type_name} ha sido asignada a {employee.name}",
        type="service_assigned_to_client",
        data={"serviceId": service.id, "employeeName": employee.name, "employeeEmail": employee.email},
    )
    log_activity(
        repo,
        user_id=current.id,
        action="assigned_service",
        entity="service",
        entity_id=service.id,
        details={
            "serviceType": service.service_type,
            "employeeId": employee.id,
            "employeeName": employee.name,
            "previousStatus": Status.pending.value,
            "newStatus": Status.assigned.value,
        },
    )
    await repo.commit()

    logger.info("service_assigned id=%s employee=%s", service.id, employee.id, extra=log_extra(request))
    notifications.enqueue(
        "service.assigned",
        {"service_id": service.id, "employee_email": employee.email, "client_email": client.email},
    )
    return {
        "message": "Servicio asignado exitosamente",
        "service": service_out(service, {client.id: client, employee.id: employee}),
    }


@router.post("/start")
async def start_service(payload: ServiceActionIn, request: Request, repo: RepoDep, current: EmployeeDep):
    service = await _existing_service(repo, payload.service_id)
    workflow.start(service, current, now=utcnow())

    notify(
        repo,
        user_id=service.client_id,
        title="Servicio Iniciado",
        message=f"{current.name} ha iniciado el servicio de {service_type_name(service.service_type)}",
        type="service_started",
        data={"serviceId": service.id, "employeeName": current.name},
    )
    log_activity(
        repo,
        user_id=current.id,
        action="started_service",
        entity="service",
        entity_id=service.id,
        details={
            "serviceType": service.service_type,
            "previousStatus": Status.assigned.value,
            "newStatus": Status.in_progress.value,
        },
    )
    await repo.commit()

    logger.info("service_started id=%s", service.id, extra=log_extra(request))
    notifications.enqueue("service.started", {"service_id": service.id, "employee": current.email})
    return {
        "message": "Servicio iniciado exitosamente",
        "service": {"id": service.id, "status": service.status.value, "startDate": service.start_date.isoformat()},
    }


@router.post("/complete")
async def complete_service(payload: ServiceActionIn, request: Request, repo: RepoDep, current: EmployeeDep):
    service = await _existing_service(repo, payload.service_id)
    workflow.complete(service, current, now=utcnow())
    if payload.observations:
        service.observations = payload.observations

    client = await repo.get_user(service.client_id)
    notify(
        repo,
        user_id=service.client_id,
        title="Servicio Completado",
        message=(
            f"{current.name} ha completado el servicio de {service_type_name(service.service_type)}. "
            "Ya puedes descargar el informe final."
        ),
        type="service_completed",
        data={"serviceId": service.id, "employeeName": current.name},
    )
    for admin in await repo.list_users(Role.admin, active=True):
        notify(
            repo,
            user_id=admin.id,
            title="Servicio Completado",
            message=f"{current.name} completó el servicio para {client.name}",
            type="service_completed_admin",
            data={"serviceId": service.id, "employeeName": current.name, "clientName": client.name},
        )
    documents = await repo.list_documents(service.id)
    inspections = await repo.list_inspections(service.id)
    log_activity(
        repo,
        user_id=current.id,
        action="completed_service",
        entity="service",
        entity_id=service.id,
        details={
            "serviceType": service.service_type,
            "previousStatus": Status.in_progress.value,
            "newStatus": Status.completed.value,
            "documentsCount": len(documents),
            "inspectionsCount": len(inspections),
        },
    )
    await repo.commit()

    logger.info("service_completed id=%s", service.id, extra=log_extra(request))
    notifications.enqueue(
        "service.completed",
        {"service_id": service.id, "employee": current.email, "client_email": client.email},
    )
    return {
        "message": "Servicio completado exitosamente",
        "service": {
            "id": service.id,
            "status": service.status.value,
            "completedAt": service.completed_at.isoformat(),
        },
    }


# ==== Документація ====

@router.post("/documents/create", status_code=status.HTTP_201_CREATED)
async def create_document(payload: DocumentCreateIn, repo: RepoDep, current: EmployeeDep):
    service = await _existing_service(repo, payload.service_id)
    workflow.ensure_executing(service, current)

    number = await repo.next_instance_number(service.id, payload.document_type)
    doc = ServiceDocument(
        id=new_id(),
        service_id=service.id,
        document_type=payload.document_type,
        instance_number=number,
        content=payload.content,
        file_url=payload.file_url,
        completed_at=utcnow(),
    )
    repo.add(doc)
    log_activity(
        repo,
        user_id=current.id,
        action="created_document_instance",
        entity="service_document",
        entity_id=doc.id,
        details={"serviceId": service.id, "documentType": payload.document_type, "instanceNumber": number},
    )
    try:
        await repo.commit()
    except IntegrityError:
        # хтось паралельно взяв той самий номер
        await repo.rollback()
        raise Conflict("El registro ya existe, intenta de nuevo")
    await repo.refresh(doc)
    return {"message": f"Registro #{number} creado exitosamente", "instance": document_out(doc)}


@router.get("/documents/instances")
async def list_document_instances(
    repo: RepoDep,
    current: CurrentDep,
    service_id: Optional[str] = Query(default=None, alias="serviceId"),
    document_type: Optional[str] = Query(default=None, alias="documentType"),
):
    if not service_id:
        raise ValidationFailed("serviceId es requerido")
    service = await _visible_service(repo, service_id, current)
    docs = await repo.list_documents(service.id, document_type)
    docs = sorted(docs, key=lambda d: (d.document_type, -d.instance_number))
    return {
        "serviceId": service.id,
        "documentType": document_type,
        "instances": [document_out(d) for d in docs],
        "totalInstances": len(docs),
    }


@router.delete("/documents/instances")
async def delete_document_instance(
    repo: RepoDep,
    current: EmployeeDep,
    instance_id: Optional[str] = Query(default=None, alias="instanceId"),
):
    if not instance_id:
        raise ValidationFailed("instanceId es requerido")
    doc = await repo.get_document(instance_id)
    if doc is None:
        raise NotFound("Instancia no encontrada")
    service = await _existing_service(repo, doc.service_id)
    if not is_assigned_employee(current, service):
        raise Forbidden("Solo el empleado asignado puede eliminar esta instancia")

    await repo.delete(doc)
    log_activity(
        repo,
        user_id=current.id,
        action="deleted_document_instance",
        entity="service_document",
        entity_id=instance_id,
        details={
            "serviceId": service.id,
            "documentType": doc.document_type,
            "instanceNumber": doc.instance_number,
        },
    )
    await repo.commit()
    return {"message": "Instancia eliminada exitosamente"}


@router.post("/inspections/create")
async def create_inspection(payload: InspectionIn, repo: RepoDep, current: EmployeeDep):
    service = await _assigned_service(repo, payload.service_id, current)

    # одна інспекція на тип: повторна відправка оновлює запис
    inspection = await repo.get_inspection(service.id, payload.inspection_type)
    created = inspection is None
    if created:
        inspection = ServiceInspection(id=new_id(), service_id=service.id, inspection_type=payload.inspection_type)
        repo.add(inspection)
    inspection.data = payload.data
    inspection.passed = payload.passed
    inspection.observations = payload.observations
    inspection.completed_at = utcnow()

    log_activity(
        repo,
        user_id=current.id,
        action="created_inspection" if created else "updated_inspection",
        entity="inspection",
        entity_id=inspection.id,
        details={"serviceId": service.id, "inspectionType": payload.inspection_type, "passed": payload.passed},
    )
    await repo.commit()
    await repo.refresh(inspection)
    return {"success": True, "inspection": inspection_out(inspection)}


@router.post("/evidences/create", status_code=status.HTTP_201_CREATED)
async def create_evidence(payload: EvidenceIn, repo: RepoDep, current: EmployeeDep):
    service = await _assigned_service(repo, payload.service_id, current)
    evidence = ServiceEvidence(
        id=new_id(),
        service_id=service.id,
        description=payload.description,
        file_url=payload.file_url,
    )
    repo.add(evidence)
    log_activity(
        repo,
        user_id=current.id,
        action="created_evidence",
        entity="service_evidence",
        entity_id=evidence.id,
        details={"serviceId": service.id},
    )
    await repo.commit()
    await repo.refresh(evidence)
    return {"success": True, "evidence": evidence_out(evidence)}


# ==== Файли та PDF ====

@router.post("/documents/upload-file")
async def upload_document_file(
    request: Request,
    repo: RepoDep,
    current: EmployeeDep,
    file: UploadFile = File(...),
    instance_id: str = Form(..., alias="instanceId", min_length=1),
    document_type: str = Form(..., alias="documentType", min_length=1),
):
    doc = await repo.get_document(instance_id)
    if doc is None:
        raise NotFound("Instancia no encontrada")
    if doc.document_type != document_type:
        raise ValidationFailed("El tipo de documento no coincide con la instancia")
    service = await _existing_service(repo, doc.service_id)
    if not is_assigned_employee(current, service):
        raise Forbidden("Solo el empleado asignado puede adjuntar archivos")

    data, ext = await uploads.read_upload(file)
    name = uploads.stored_name(doc.document_type, doc.id, ext, utcnow())
    doc.file_url = await uploads.save_file(name, data)
    log_activity(
        repo,
        user_id=current.id,
        action="uploaded_document_file",
        entity="service_document",
        entity_id=doc.id,
        details={"documentType": doc.document_type, "fileName": name, "fileSize": len(data)},
    )
    await repo.commit()

    logger.info("document_file_uploaded id=%s bytes=%d", doc.id, len(data), extra=log_extra(request))
    return {"message": "Archivo subido exitosamente", "fileUrl": doc.file_url, "fileName": name}


@router.get("/documents/file")
async def download_document_file(
    repo: RepoDep,
    current: CurrentDep,
    instance_id: Optional[str] = Query(default=None, alias="instanceId"),
):
    if not instance_id:
        raise ValidationFailed("instanceId es requerido")
    doc = await repo.get_document(instance_id)
    if doc is None:
        raise NotFound("Instancia no encontrada")
    await _visible_service(repo, doc.service_id, current)
    path = uploads.local_path(doc.file_url)
    if path is None:
        raise NotFound("Archivo no encontrado")
    return FileResponse(path, media_type=uploads.media_type(path), filename=path.name)


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/documents/generate-pdf")
async def generate_document_pdf(payload: DocumentPdfIn, repo: RepoDep, current: CurrentDep):
    doc = await repo.get_document(payload.instance_id)
    if doc is None:
        raise NotFound("Instancia no encontrada")
    service = await _visible_service(repo, doc.service_id, current)
    # reportlab синхронний: рендеримо поза event loop
    content = await run_in_threadpool(pdf.render_document, doc, service, payload.document_label)
    label = payload.document_label or doc.document_type
    return _pdf_response(content, pdf.pdf_filename(label, doc.completed_at or doc.created_at))


@router.post("/documents/generate-pdf-from-template")
async def generate_consolidated_pdf(payload: ConsolidatedPdfIn, repo: RepoDep, current: CurrentDep):
    service = await _visible_service(repo, payload.service_id, current)
    instances = await repo.list_documents(service.id, payload.document_type)
    if not instances:
        raise ValidationFailed("No hay instancias para este documento")
    template = next((t for t in await repo.list_templates() if t.document_type == payload.document_type), None)
    now = utcnow()
    content = await run_in_threadpool(
        partial(
            pdf.render_consolidated,
            payload.document_type,
            instances,
            service,
            label=payload.document_label,
            template=template,
            now=now,
        )
    )
    label = payload.document_label or payload.document_type
    return _pdf_response(content, pdf.pdf_filename(label, now, consolidated=True))


# ==== Окрема заявка ====

@router.get("/{service_id}")
async def get_service(service_id: str, repo: RepoDep, current: CurrentDep):
    service = await _visible_service(repo, service_id, current)
    return {"service": await service_detail_out(repo, service)}


@router.post("/{service_id}/configure")
async def configure_service(service_id: str, payload: ConfigureIn, repo: RepoDep, current: AdminDep):
    service = await _existing_service(repo, service_id)
    service.required_docs = list(payload.required_docs)
    service.required_inspections = list(payload.required_inspections)
    service.configured_at = utcnow()
    service.configured_by_id = current.id
    if payload.notes:
        service.observations = f"{service.observations or ''}\n[CONFIG] {payload.notes}".strip()

    log_activity(
        repo,
        user_id=current.id,
        action="configured_service",
        entity="service",
        entity_id=service.id,
        details={
            "requiredDocs": service.required_docs,
            "requiredInspections": service.required_inspections,
            "notes": payload.notes,
        },
    )
    await repo.commit()
    users = await repo.get_users([service.client_id, service.employee_id])
    return {"message": "Servicio configurado exitosamente", "service": service_out(service, users)}


@router.get("/{service_id}/progress")
async def progress(service_id: str, repo: RepoDep, current: CurrentDep):
    service = await _visible_service(repo, service_id, current)
    return {"serviceId": service.id, "progress": await service_progress(repo, service)}
