"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ROLE_ENUM = sa.Enum("ADMINISTRADOR", "EMPLEADO", "CLIENTE", name="role_enum")
STATUS_ENUM = sa.Enum("PENDING", "ASSIGNED", "IN_PROGRESS", "COMPLETED", name="service_status_enum")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(32), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _service_fk() -> sa.Column:
    return sa.Column(
        "service_id", sa.String(32), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    # ---------- users ----------
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", ROLE_ENUM, nullable=False, server_default="CLIENTE"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ---------- services ----------
    op.create_table(
        "services",
        _id(),
        sa.Column("client_id", sa.String(32), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_by_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", STATUS_ENUM, nullable=False, server_default="PENDING"),
        sa.Column("service_type", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(32), nullable=False),
        sa.Column("suggested_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("required_docs", postgresql.JSONB(), nullable=True),
        sa.Column("required_inspections", postgresql.JSONB(), nullable=True),
        sa.Column("configured_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("configured_by_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        _updated_at(),
        # інваріант: виконавець є тоді й тільки тоді, коли заявку призначено
        sa.CheckConstraint(
            "(status = 'PENDING') = (employee_id IS NULL)",
            name="ck_services_employee_matches_status",
        ),
    )
    op.create_index("ix_services_client_id", "services", ["client_id"])
    op.create_index("ix_services_employee_id", "services", ["employee_id"])
    op.create_index("ix_services_employee_status", "services", ["employee_id", "status"])
    op.create_index("ix_services_status_start", "services", ["status", "start_date"])
    op.create_index("ix_services_completed_at", "services", ["completed_at"])

    # ---------- документація ----------
    op.create_table(
        "service_documents",
        _id(),
        _service_fk(),
        sa.Column("document_type", sa.String(64), nullable=False),
        sa.Column("instance_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("content", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("file_url", sa.String(512), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("service_id", "document_type", "instance_number", name="uq_document_instance"),
    )
    op.create_index("ix_service_documents_service_id", "service_documents", ["service_id"])

    op.create_table(
        "service_inspections",
        _id(),
        _service_fk(),
        sa.Column("inspection_type", sa.String(64), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("service_id", "inspection_type", name="uq_inspection_type"),
    )
    op.create_index("ix_service_inspections_service_id", "service_inspections", ["service_id"])

    op.create_table(
        "service_evidences",
        _id(),
        _service_fk(),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("file_url", sa.String(512), nullable=True),
        _created_at(),
    )
    op.create_index("ix_service_evidences_service_id", "service_evidences", ["service_id"])

    # ---------- налаштування ----------
    op.create_table(
        "document_templates",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("document_type", sa.String(64), nullable=False),
        sa.Column("file_url", sa.String(512), nullable=True),
        sa.Column("user_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_document_templates_user_id", "document_templates", ["user_id"])

    op.create_table(
        "service_configurations",
        _id(),
        sa.Column("service_type", sa.String(64), nullable=False),
        sa.Column("required_docs", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("required_inspections", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_service_configurations_service_type", "service_configurations", ["service_type"], unique=True)

    # ---------- нотифікації / аудит ----------
    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", sa.String(32), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])

    op.create_table(
        "activity_log",
        _id(),
        sa.Column("user_id", sa.String(32), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.String(32), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_activity_log_user_id", "activity_log", ["user_id"])


def downgrade() -> None:
    for table in (
        "activity_log",
        "notifications",
        "service_configurations",
        "document_templates",
        "service_evidences",
        "service_inspections",
        "service_documents",
        "services",
        "users",
    ):
        op.drop_table(table)
    STATUS_ENUM.drop(op.get_bind(), checkfirst=True)
    ROLE_ENUM.drop(op.get_bind(), checkfirst=True)
