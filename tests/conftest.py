from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from sstdesk.api.deps import get_repository
from sstdesk.core.security import hash_password
from sstdesk.db.models import RoleEnum as Role, Service, ServiceStatusEnum as Status, User
from sstdesk.main import app
from sstdesk.services import notifications
from sstdesk.services.auth import make_token_for_user
from tests.fakes import InMemoryRepository

PASSWORD = "password123"
# bcrypt повільний: один хеш на всі тести
PASSWORD_HASH = hash_password(PASSWORD)


def make_user(repo: InMemoryRepository, *, email: str, name: str, role: Role, active: bool = True) -> User:
    user = User(email=email, password_hash=PASSWORD_HASH, role=role, name=name, phone="3000000000", is_active=active)
    repo.add(user)
    return user


def make_service(
    repo: InMemoryRepository,
    *,
    client: User,
    employee: Optional[User] = None,
    status: Status = Status.pending,
    service_type: str = "COORDINADOR_ALTURAS",
    start_date: Optional[datetime] = None,
    completed_at: Optional[datetime] = None,
) -> Service:
    service = Service(
        client_id=client.id,
        created_by_id=client.id,
        employee_id=employee.id if employee else None,
        status=status,
        service_type=service_type,
        description="Trabajo en cubierta",
        address="Calle 1 # 2-3",
        contact_person="Ana",
        contact_phone="3001112233",
        start_date=start_date or datetime.now(timezone.utc) + timedelta(days=1),
        completed_at=completed_at,
    )
    repo.add(service)
    return service


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token_for_user(user)}"}


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def users(repo):
    return SimpleNamespace(
        admin=make_user(repo, email="admin@sst.com", name="Admin", role=Role.admin),
        employee=make_user(repo, email="empleado@sst.com", name="Carlos", role=Role.employee),
        other_employee=make_user(repo, email="otro@sst.com", name="Beatriz", role=Role.employee),
        client=make_user(repo, email="cliente@empresa.com", name="María", role=Role.client),
        other_client=make_user(repo, email="otro@empresa.com", name="Pedro", role=Role.client),
    )


@pytest.fixture
def enqueued(monkeypatch) -> list:
    """Події для RQ пишемо в список замість Redis."""
    events: list = []
    monkeypatch.setattr(notifications, "enqueue", lambda event, payload: events.append((event, dict(payload))))
    return events


@pytest.fixture
def client(repo, enqueued):
    app.dependency_overrides[get_repository] = lambda: repo
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
