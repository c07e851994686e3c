# sstdesk/db/models.py
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    String,
    Text,
    Integer,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    func,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sstdesk.db.base import Base

# JSONB у Postgres, звичайний JSON деінде
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==== Енуми (python + sqlalchemy) ====


class RoleEnum(str, enum.Enum):
    admin = "ADMINISTRADOR"
    employee = "EMPLEADO"
    client = "CLIENTE"


class ServiceStatusEnum(str, enum.Enum):
    pending = "PENDING"
    assigned = "ASSIGNED"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"


class ServiceTypeEnum(str, enum.Enum):
    profesional_sst = "PROFESIONAL_SST"
    tecnologo_sst = "TECNOLOGO_SST"
    tecnico_sst = "TECNICO_SST"
    coordinador_alturas = "COORDINADOR_ALTURAS"
    supervisor_espacios_confinados = "SUPERVISOR_ESPACIOS_CONFINADOS"
    capacitaciones_cursos = "CAPACITACIONES_CURSOS"
    alquiler_equipos = "ALQUILER_EQUIPOS"
    andamiero = "ANDAMIERO"
    auditoria_sg_sst = "AUDITORIA_SG_SST"
    rescatista = "RESCATISTA"
    taph_paramedico = "TAPH_PARAMEDICO"
    auxiliar_operativo = "AUXILIAR_OPERATIVO"
    servicios_administrativos = "SERVICIOS_ADMINISTRATIVOS"
    nomina = "NOMINA"
    facturacion = "FACTURACION"
    contratos = "CONTRATOS"
    seguridad_social = "SEGURIDAD_SOCIAL"
    otro = "OTRO"


# ==== Міксини ====


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


# ==== Моделі ====


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(
        Enum(RoleEnum, name="role_enum", values_callable=lambda e: [m.value for m in e]),
        default=RoleEnum.client,
    )
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # relationships
    services_requested: Mapped[List["Service"]] = relationship(
        back_populates="client",
        foreign_keys="Service.client_id",
    )
    services_assigned: Mapped[List["Service"]] = relationship(
        back_populates="employee",
        foreign_keys="Service.employee_id",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Service(TimestampMixin, Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    employee_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[ServiceStatusEnum] = mapped_column(
        Enum(ServiceStatusEnum, name="service_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=ServiceStatusEnum.pending,
        nullable=False,
    )
    # тип зберігаємо рядком: конфігурації можуть посилатись на довільні типи
    service_type: Mapped[str] = mapped_column(String(64))
    description: Mapped[str] = mapped_column(Text)
    address: Mapped[str] = mapped_column(String(255))
    contact_person: Mapped[str] = mapped_column(String(255))
    contact_phone: Mapped[str] = mapped_column(String(32))
    suggested_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # плановий старт (з suggested_date), перезаписується при фактичному старті
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # налаштування адміна під конкретну заявку
    required_docs: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    required_inspections: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    configured_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    configured_by_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # relationships
    client: Mapped["User"] = relationship(
        back_populates="services_requested",
        foreign_keys=[client_id],
    )
    employee: Mapped[Optional["User"]] = relationship(
        back_populates="services_assigned",
        foreign_keys=[employee_id],
    )
    documents: Mapped[List["ServiceDocument"]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
    )
    inspections: Mapped[List["ServiceInspection"]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
    )
    evidences: Mapped[List["ServiceEvidence"]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_services_employee_status", "employee_id", "status"),
        Index("ix_services_status_start", "status", "start_date"),
        Index("ix_services_completed_at", "completed_at"),
        # виконавець є тоді й тільки тоді, коли заявку призначено
        CheckConstraint(
            "(status = 'PENDING') = (employee_id IS NULL)",
            name="ck_services_employee_matches_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Service id={self.id} status={self.status} type={self.service_type}>"


class ServiceDocument(Base):
    __tablename__ = "service_documents"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        index=True,
    )
    document_type: Mapped[str] = mapped_column(String(64))
    instance_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, default=dict)
    file_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    service: Mapped["Service"] = relationship(back_populates="documents")

    __table_args__ = (
        UniqueConstraint("service_id", "document_type", "instance_number", name="uq_document_instance"),
    )


class ServiceInspection(Base):
    __tablename__ = "service_inspections"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        index=True,
    )
    inspection_type: Mapped[str] = mapped_column(String(64))
    data: Mapped[dict] = mapped_column(JSONType, default=dict)
    passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    service: Mapped["Service"] = relationship(back_populates="inspections")

    __table_args__ = (
        UniqueConstraint("service_id", "inspection_type", name="uq_inspection_type"),
    )


class ServiceEvidence(Base):
    __tablename__ = "service_evidences"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        index=True,
    )
    description: Mapped[str] = mapped_column(Text)
    file_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    service: Mapped["Service"] = relationship(back_populates="evidences")


class DocumentTemplate(Base):
    __tablename__ = "document_templates"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    document_type: Mapped[str] = mapped_column(String(64))
    file_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class ServiceConfiguration(TimestampMixin, Base):
    __tablename__ = "service_configurations"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    service_type: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    required_docs: Mapped[list] = mapped_column(JSONType, default=list)
    required_inspections: Mapped[list] = mapped_column(JSONType, default=list)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(64))
    data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
    )


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(64))
    entity: Mapped[str] = mapped_column(String(64))
    entity_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
