# sstdesk/services/auth.py
from __future__ import annotations

from typing import Optional

from sstdesk.core.config import settings
from sstdesk.core.errors import Conflict
from sstdesk.core.security import create_access_token, hash_password, verify_password
from sstdesk.db.models import RoleEnum as Role, User


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def authenticate(repo, *, email: str, password: str) -> Optional[User]:
    user = await repo.get_user_by_email(normalize_email(email))
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def create_user(
    repo,
    *,
    email: str,
    password: str,
    name: str,
    role: Role,
    phone: str | None = None,
) -> User:
    """Створює користувача з потрібною роллю. Дублікати пошти → Conflict (409)."""
    email = normalize_email(email)
    if await repo.get_user_by_email(email):
        raise Conflict("El email ya está registrado")
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
        name=name.strip(),
        phone=phone,
        is_active=True,
    )
    repo.add(user)
    return user


def serialize_user(user: User) -> dict:
    role_value = getattr(user.role, "value", user.role)  # Enum → str
    return {
        "id": user.id,
        "email": user.email,
        "role": str(role_value),
        "name": user.name,
        "phone": user.phone,
        "active": user.is_active,
    }


def make_token_for_user(user: User) -> str:
    role_value = getattr(user.role, "value", user.role)
    return create_access_token(
        subject=user.id,
        role=str(role_value),
        secret=settings.jwt_secret,
        expires_minutes=settings.jwt_expires_min,
        algorithm=settings.jwt_alg,
    )
