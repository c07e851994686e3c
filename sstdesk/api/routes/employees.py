# sstdesk/api/routes/employees.py
from __future__ import annotations

from fastapi import APIRouter

from sstdesk.api.deps import AdminDep, RepoDep
from sstdesk.api.presenters import user_brief, user_out
from sstdesk.core.errors import NotFound, ValidationFailed
from sstdesk.db.models import RoleEnum as Role, User
from sstdesk.schemas.users import ToggleActiveIn
from sstdesk.services.notifications import log_activity
from sstdesk.services.reports import employee_stats

router = APIRouter()


async def _get_employee(repo, employee_id: str) -> User:
    user = await repo.get_user(employee_id)
    if user is None:
        raise NotFound("Empleado no encontrado")
    if user.role != Role.employee:
        raise ValidationFailed("Este usuario no es un empleado")
    return user


@router.get("/available")
async def available_employees(repo: RepoDep, current: AdminDep):
    """Активні працівники за ім'ям: список для модалки призначення."""
    employees = await repo.list_users(Role.employee, active=True)
    return {"employees": [user_brief(e) for e in employees], "total": len(employees)}


@router.get("/all")
async def all_employees(repo: RepoDep, current: AdminDep):
    employees = await repo.list_users(Role.employee)
    counts = await repo.count_services_per_user(Role.employee)
    # активні першими, далі за ім'ям
    employees = sorted(employees, key=lambda e: (not e.is_active, e.name))
    active = sum(1 for e in employees if e.is_active)
    return {
        "employees": [user_out(e, services_count=counts.get(e.id, 0)) for e in employees],
        "total": len(employees),
        "activeCount": active,
        "inactiveCount": len(employees) - active,
    }


@router.get("/{employee_id}/stats")
async def stats(employee_id: str, repo: RepoDep, current: AdminDep):
    employee = await _get_employee(repo, employee_id)
    return {
        "success": True,
        "stats": await employee_stats(repo, employee),
        "employee": user_out(employee),
    }


@router.patch("/{employee_id}/toggle")
async def toggle(employee_id: str, payload: ToggleActiveIn, repo: RepoDep, current: AdminDep):
    employee = await _get_employee(repo, employee_id)
    previous = employee.is_active
    employee.is_active = payload.active
    log_activity(
        repo,
        user_id=current.id,
        action="activated_employee" if payload.active else "deactivated_employee",
        entity="user",
        entity_id=employee.id,
        details={"employeeName": employee.name, "previousStatus": previous, "newStatus": payload.active},
    )
    await repo.commit()
    return {
        "success": True,
        "message": f"Empleado {'activado' if payload.active else 'desactivado'} exitosamente",
        "employee": user_out(employee),
    }
