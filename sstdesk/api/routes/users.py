# sstdesk/api/routes/users.py
from __future__ import annotations

from fastapi import APIRouter, status

from sstdesk.api.deps import AdminDep, CurrentDep, RepoDep
from sstdesk.api.presenters import user_out
from sstdesk.core.errors import NotFound, ValidationFailed
from sstdesk.core.security import hash_password, verify_password
from sstdesk.db.models import RoleEnum as Role
from sstdesk.schemas.users import ChangePasswordIn, ProfileOut, ProfileUpdate, RegisterEmployeeIn
from sstdesk.services.auth import create_user
from sstdesk.services.notifications import log_activity

router = APIRouter()


# ---------- SELF ----------

@router.patch("/profile")
async def update_profile(payload: ProfileUpdate, repo: RepoDep, current: CurrentDep):
    user = await repo.get_user(current.id)
    if user is None:
        raise NotFound("Usuario no encontrado")

    # змінюємо лише ті поля, які прийшли в тілі
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        user.name = changes["name"]
    if "phone" in changes:
        user.phone = changes["phone"] or None

    if changes:
        await repo.commit()
    return {
        "message": "Perfil actualizado exitosamente",
        "user": ProfileOut.model_validate(user).model_dump(),
    }


@router.post("/change-password")
async def change_password(payload: ChangePasswordIn, repo: RepoDep, current: CurrentDep):
    user = await repo.get_user(current.id)
    if user is None:
        raise NotFound("Usuario no encontrado")
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationFailed("Contraseña actual incorrecta")

    user.password_hash = hash_password(payload.new_password)
    log_activity(repo, user_id=user.id, action="changed_password", entity="user", entity_id=user.id)
    await repo.commit()
    return {"message": "Contraseña actualizada exitosamente"}


# ---------- ADMIN ----------

@router.get("/clients")
async def list_clients(repo: RepoDep, current: AdminDep):
    clients = await repo.list_users(Role.client)
    counts = await repo.count_services_per_user(Role.client)
    clients = sorted(clients, key=lambda c: c.created_at, reverse=True)
    return {
        "clients": [user_out(c, services_count=counts.get(c.id, 0)) for c in clients],
        "total": len(clients),
    }


@router.post("/register-employee", status_code=status.HTTP_201_CREATED)
async def register_employee(payload: RegisterEmployeeIn, repo: RepoDep, current: AdminDep):
    employee = await create_user(
        repo,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=Role.employee,
        phone=payload.phone,
    )
    await repo.commit()
    await repo.refresh(employee)
    log_activity(
        repo,
        user_id=current.id,
        action="created_employee",
        entity="user",
        entity_id=employee.id,
        details={"employeeName": employee.name, "employeeEmail": employee.email},
    )
    await repo.commit()
    return {"message": "Empleado registrado exitosamente", "employee": user_out(employee)}
