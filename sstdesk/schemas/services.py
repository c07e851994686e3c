# sstdesk/schemas/services.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from sstdesk.db.models import ServiceTypeEnum
from sstdesk.schemas.base import CamelModel


class ServiceRequestIn(CamelModel):
    service_type: ServiceTypeEnum
    description: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=255)
    contact_person: str = Field(..., min_length=1, max_length=255)
    contact_phone: str = Field(..., min_length=1, max_length=32)
    suggested_date: datetime
    observations: Optional[str] = None


class AssignIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)


class ServiceActionIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    observations: Optional[str] = None


class ConfigureIn(CamelModel):
    required_docs: list[str] = Field(default_factory=list)
    required_inspections: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


class DocumentCreateIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    document_type: str = Field(..., min_length=1, max_length=64)
    content: dict[str, Any] = Field(default_factory=dict)
    file_url: Optional[str] = Field(default=None, max_length=512)


class DocumentPdfIn(CamelModel):
    instance_id: str = Field(..., min_length=1)
    document_label: Optional[str] = Field(default=None, max_length=120)


class ConsolidatedPdfIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    document_type: str = Field(..., min_length=1, max_length=64)
    document_label: Optional[str] = Field(default=None, max_length=120)


class InspectionIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    inspection_type: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)
    passed: Optional[bool] = None
    observations: Optional[str] = None


class EvidenceIn(CamelModel):
    service_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    file_url: Optional[str] = Field(default=None, max_length=512)
