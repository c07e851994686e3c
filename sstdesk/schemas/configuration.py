# sstdesk/schemas/configuration.py
from __future__ import annotations

from typing import Optional

from pydantic import Field

from sstdesk.schemas.base import CamelModel


class ServiceConfigurationIn(CamelModel):
    service_type: str = Field(..., min_length=1, max_length=64)
    required_docs: list[str] = Field(default_factory=list)
    required_inspections: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    active: bool = True
