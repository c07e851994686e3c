# sstdesk/services/requirements.py
"""
Обов'язкові документи та інспекції для типу заявки.

Порядок пошуку:
  1) налаштування конкретної заявки (адмін натиснув "configure");
  2) активний ServiceConfiguration для типу;
  3) вбудовані значення за замовчуванням нижче.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from sstdesk.db.models import Service

# документи, які потрібні для будь-якої польової (критичної) роботи
BASE_DOCUMENTS = ["CHARLA_SEGURIDAD", "ATS"]

# адміністративні послуги документів і інспекцій не мають
ADMINISTRATIVE_TYPES = frozenset({
    "SERVICIOS_ADMINISTRATIVOS",
    "NOMINA",
    "FACTURACION",
    "CONTRATOS",
    "SEGURIDAD_SOCIAL",
})

SPECIFIC_DOCUMENTS: dict[str, List[str]] = {
    "COORDINADOR_ALTURAS": ["PERMISO_ALTURAS"],
    "SUPERVISOR_ESPACIOS_CONFINADOS": ["PERMISO_ESPACIOS_CONFINADOS"],
    "ANDAMIERO": ["PERMISO_ALTURAS"],
    "RESCATISTA": ["PERMISO_ALTURAS", "PERMISO_ESPACIOS_CONFINADOS"],
    "PROFESIONAL_SST": ["PERMISO_TRABAJO"],
    "TECNOLOGO_SST": ["PERMISO_TRABAJO"],
    "TECNICO_SST": ["PERMISO_TRABAJO"],
}
DEFAULT_SPECIFIC_DOCUMENTS = ["PERMISO_TRABAJO"]

DEFAULT_INSPECTIONS: dict[str, List[str]] = {
    "COORDINADOR_ALTURAS": ["ARNES", "ESLINGA", "LINEA_VIDA", "ESCALERA"],
    "SUPERVISOR_ESPACIOS_CONFINADOS": ["MEDICION_GASES", "TRIPODE", "VENTILACION", "EQUIPO_RESCATE"],
    "ANDAMIERO": ["ANDAMIO", "ARNES", "ESCALERA"],
    "RESCATISTA": ["ARNES", "EQUIPO_RESCATE", "LINEA_VIDA"],
    "ALQUILER_EQUIPOS": ["HERRAMIENTA_TALADRO", "HERRAMIENTA_PULIDORA"],
    "TECNICO_SST": ["ARNES", "ESCALERA"],
}


def default_required_documents(service_type: str) -> List[str]:
    if service_type in ADMINISTRATIVE_TYPES:
        return []
    specific = SPECIFIC_DOCUMENTS.get(service_type, DEFAULT_SPECIFIC_DOCUMENTS)
    return [*BASE_DOCUMENTS, *specific]


def default_required_inspections(service_type: str) -> List[str]:
    if service_type in ADMINISTRATIVE_TYPES:
        return []
    return list(DEFAULT_INSPECTIONS.get(service_type, []))


@dataclass(frozen=True)
class Requirements:
    service_type: str
    documents: List[str]
    inspections: List[str]

    @property
    def total(self) -> int:
        return len(self.documents) + len(self.inspections)

    def to_dict(self) -> dict:
        return {
            "serviceType": self.service_type,
            "requiredDocuments": list(self.documents),
            "requiredInspections": list(self.inspections),
            "totalRequired": self.total,
        }


async def requirements_for_type(repo, service_type: str) -> Requirements:
    config = await repo.get_configuration(service_type)
    if config is not None and config.active:
        return Requirements(service_type, list(config.required_docs or []), list(config.required_inspections or []))
    return Requirements(
        service_type,
        default_required_documents(service_type),
        default_required_inspections(service_type),
    )


async def requirements_for_service(repo, service: Service) -> Requirements:
    if service.configured_at is not None:
        return Requirements(
            service.service_type,
            list(service.required_docs or []),
            list(service.required_inspections or []),
        )
    return await requirements_for_type(repo, service.service_type)


def _percent(done: int, total: int) -> int:
    if total == 0:
        return 100
    # половину округлюємо вгору (round() у Python банківський)
    return int(done * 100 / total + 0.5)


def calculate_progress(
    requirements: Requirements,
    completed_documents: Iterable[str],
    completed_inspections: Iterable[str],
) -> dict:
    """Відсоток виконання по документах, інспекціях і загалом (0..100)."""
    docs = set(completed_documents)
    insps = set(completed_inspections)
    docs_done = sum(1 for d in requirements.documents if d in docs)
    insps_done = sum(1 for i in requirements.inspections if i in insps)
    done = docs_done + insps_done
    overall = _percent(done, requirements.total)
    return {
        "documentsProgress": _percent(docs_done, len(requirements.documents)),
        "inspectionsProgress": _percent(insps_done, len(requirements.inspections)),
        "overallProgress": overall,
        # по лічильниках, не по округленому відсотку: 199 з 200 дає 100%, але не готово
        "isComplete": done == requirements.total,
        "missingDocuments": [d for d in requirements.documents if d not in docs],
        "missingInspections": [i for i in requirements.inspections if i not in insps],
    }


async def service_progress(repo, service: Service, requirements: Optional[Requirements] = None) -> dict:
    requirements = requirements or await requirements_for_service(repo, service)
    documents = await repo.list_documents(service.id)
    inspections = await repo.list_inspections(service.id)
    progress = calculate_progress(
        requirements,
        (d.document_type for d in documents),
        (i.inspection_type for i in inspections),
    )
    progress.update(requirements.to_dict())
    return progress
