"""
Access policy (єдине місце, де вирішується "можна / не можна").

Роутери не пишуть власних `if role != ...`: API бере рішення через
api.deps.require_role, сторінки через api.deps.page_identity. Обидва адаптери
викликають authorize() нижче.

Політика рольова і точна, без ієрархії: адміністратор не отримує прав
працівника чи клієнта автоматично.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from sstdesk.db.models import RoleEnum as Role, Service, User


@dataclass(frozen=True)
class Identity:
    """Знімок користувача на час запиту."""

    id: str
    role: Role
    name: str
    email: str
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            role=Role(user.role),
            name=user.name,
            email=user.email,
            phone=user.phone,
        )


class DenyReason(str, enum.Enum):
    unauthenticated = "unauthenticated"
    forbidden = "forbidden"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


def authorize(identity: Optional[Identity], required: Role | Iterable[Role]) -> Decision:
    if identity is None:
        return Decision.deny(DenyReason.unauthenticated)
    allowed = {Role(required)} if isinstance(required, str) else {Role(r) for r in required}
    if identity.role not in allowed:
        return Decision.deny(DenyReason.forbidden)
    return Decision.allow()


def can_view_service(identity: Identity, service: Service) -> bool:
    if identity.role == Role.admin:
        return True
    if identity.role == Role.employee:
        return service.employee_id == identity.id
    if identity.role == Role.client:
        return service.client_id == identity.id
    return False


def is_assigned_employee(identity: Identity, service: Service) -> bool:
    return identity.role == Role.employee and service.employee_id == identity.id


DASHBOARDS: dict[Role, str] = {
    Role.admin: "/dashboard/admin",
    Role.employee: "/dashboard/employee",
    Role.client: "/dashboard/client",
}


def dashboard_url(identity: Optional[Identity]) -> str:
    if identity is None:
        return "/login"
    return DASHBOARDS.get(identity.role, "/login")
