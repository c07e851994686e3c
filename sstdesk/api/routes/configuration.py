# sstdesk/api/routes/configuration.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from sstdesk.api.deps import AdminDep, RepoDep
from sstdesk.api.presenters import configuration_out, template_out
from sstdesk.core.errors import NotFound, ValidationFailed
from sstdesk.db.models import ServiceConfiguration
from sstdesk.schemas.configuration import ServiceConfigurationIn
from sstdesk.services.notifications import log_activity
from sstdesk.services.requirements import requirements_for_type

router = APIRouter()


@router.get("/required-documents")
async def required_documents(
    repo: RepoDep,
    service_type: Optional[str] = Query(default=None, alias="serviceType"),
):
    """Публічний довідник: що треба заповнити для типу заявки."""
    if not service_type:
        raise ValidationFailed("serviceType es requerido")
    requirements = await requirements_for_type(repo, service_type)
    return requirements.to_dict()


# ---------- ADMIN ----------

@router.get("/service-types")
async def list_service_types(repo: RepoDep, current: AdminDep):
    configs = await repo.list_configurations()
    return {"configurations": [configuration_out(c) for c in configs], "total": len(configs)}


@router.post("/service-types")
async def save_service_type(payload: ServiceConfigurationIn, repo: RepoDep, current: AdminDep):
    config = await repo.get_configuration(payload.service_type)
    if config is None:
        config = ServiceConfiguration(service_type=payload.service_type)
        repo.add(config)
    config.required_docs = list(payload.required_docs)
    config.required_inspections = list(payload.required_inspections)
    config.description = payload.description or None
    config.active = payload.active

    log_activity(
        repo,
        user_id=current.id,
        action="configured_service_type",
        entity="service_configuration",
        details={"serviceType": payload.service_type},
    )
    await repo.commit()
    await repo.refresh(config)
    return {"message": "Configuración guardada exitosamente", "configuration": configuration_out(config)}


@router.delete("/service-types")
async def delete_service_type(
    repo: RepoDep,
    current: AdminDep,
    service_type: Optional[str] = Query(default=None, alias="serviceType"),
):
    if not service_type:
        raise ValidationFailed("serviceType es requerido")
    config = await repo.get_configuration(service_type)
    if config is None:
        raise NotFound("Configuración no encontrada")
    await repo.delete(config)
    await repo.commit()
    return {"message": "Configuración eliminada exitosamente"}


@router.get("/templates")
async def list_templates(repo: RepoDep, current: AdminDep):
    templates = await repo.list_templates()
    users = await repo.get_users(t.user_id for t in templates)
    return {"templates": [template_out(t, users) for t in templates]}
