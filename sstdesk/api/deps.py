from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sstdesk.core.config import settings
from sstdesk.core.errors import Forbidden, PageRedirect, Unauthenticated
from sstdesk.core.security import decode_token
from sstdesk.db.models import RoleEnum as Role
from sstdesk.db.repository import ServiceDeskRepository, SqlServiceDeskRepository
from sstdesk.db.session import get_session
from sstdesk.services.access import DenyReason, Identity, authorize

# OAuth2 bearer (для інтеграції з /api/docs). auto_error=False: відсутній токен
# вирішує authorize(), а не FastAPI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_repository(
    db: Annotated[AsyncSession, Depends(get_session)],
) -> ServiceDeskRepository:
    return SqlServiceDeskRepository(db)


# Тип для DI сховища
RepoDep = Annotated[ServiceDeskRepository, Depends(get_repository)]


async def get_identity(
    request: Request,
    repo: RepoDep,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> Optional[Identity]:
    """
    Bearer JWT (API) або кука access_token (сторінки /dashboard).
    Невалідний токен, видалений чи деактивований користувач → None.
    """
    raw = token or request.cookies.get(settings.session_cookie_name)
    if not raw:
        return None
    try:
        payload = decode_token(raw, settings.jwt_secret, settings.jwt_alg)
    except ValueError:
        return None

    user = await repo.get_user(payload["sub"])
    if not user or not user.is_active:
        return None
    return Identity.from_user(user)


IdentityDep = Annotated[Optional[Identity], Depends(get_identity)]


def require_role(*allowed: Role):
    """
    API-адаптер політики доступу: 401 без сесії, 403 для чужої ролі.
    Без аргументів пускає будь-якого автентифікованого користувача.
    Приклад: current: Annotated[Identity, Depends(require_role(Role.admin))]
    """
    roles = tuple(allowed) or tuple(Role)

    async def _guard(identity: IdentityDep) -> Identity:
        decision = authorize(identity, roles)
        if decision.allowed:
            return identity
        if decision.reason == DenyReason.unauthenticated:
            raise Unauthenticated("No autenticado")
        raise Forbidden("No tienes permisos para esta operación")

    return _guard


def page_identity(*allowed: Role):
    """Сторінковий адаптер: будь-яка відмова → редирект на /login."""
    roles = tuple(allowed) or tuple(Role)

    async def _guard(identity: IdentityDep) -> Identity:
        if not authorize(identity, roles).allowed:
            raise PageRedirect("/login")
        return identity

    return _guard


# Зручні шорткати
CurrentDep = Annotated[Identity, Depends(require_role())]
AdminDep = Annotated[Identity, Depends(require_role(Role.admin))]
EmployeeDep = Annotated[Identity, Depends(require_role(Role.employee))]
ClientDep = Annotated[Identity, Depends(require_role(Role.client))]
