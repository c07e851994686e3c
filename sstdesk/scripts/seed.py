"""
Seed: адміністратор, демо-працівник, демо-клієнт і стартові налаштування типів.

    python -m sstdesk.scripts.seed [email] [password] [--no-demo-employee] [--no-demo-client]

Повторний запуск безпечний: існуючих користувачів не чіпає (пароль теж).
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from sstdesk.core.config import settings
from sstdesk.core.errors import Conflict
from sstdesk.core.logging import setup_logging
from sstdesk.db.models import RoleEnum as Role, ServiceConfiguration
from sstdesk.db.repository import SqlServiceDeskRepository
from sstdesk.db.session import AsyncSessionLocal, engine
from sstdesk.services.auth import create_user
from sstdesk.services.requirements import default_required_documents, default_required_inspections

logger = logging.getLogger("sstdesk.seed")

DEMO_PASSWORD = "password123"

# типи з налаштуванням "з коробки"; решта бере вбудовані значення
SEEDED_SERVICE_TYPES = {
    "COORDINADOR_ALTURAS": "Coordinador de trabajo en alturas",
    "SUPERVISOR_ESPACIOS_CONFINADOS": "Supervisor de espacios confinados",
    "SERVICIOS_ADMINISTRATIVOS": "Servicios administrativos",
}


async def _ensure_user(repo, *, email: str, password: str, name: str, role: Role, phone: Optional[str] = None) -> None:
    try:
        await create_user(repo, email=email, password=password, name=name, role=role, phone=phone)
    except Conflict:
        logger.info("[seed] існує без змін: %s", email)
        return
    await repo.commit()
    logger.info("[seed] створено користувача: %s (%s)", email, role.value)


async def _ensure_configuration(repo, service_type: str, description: str) -> None:
    if await repo.get_configuration(service_type) is not None:
        return
    repo.add(
        ServiceConfiguration(
            service_type=service_type,
            required_docs=default_required_documents(service_type),
            required_inspections=default_required_inspections(service_type),
            description=description,
            active=True,
        )
    )
    await repo.commit()
    logger.info("[seed] налаштування типу: %s", service_type)


async def _run(args: argparse.Namespace) -> None:
    async with AsyncSessionLocal() as db:
        repo = SqlServiceDeskRepository(db)
        await _ensure_user(repo, email=args.email, password=args.password, name=args.name, role=Role.admin)
        if args.demo_employee:
            await _ensure_user(
                repo,
                email="empleado@sst.com",
                password=DEMO_PASSWORD,
                name="Carlos Trabajador",
                role=Role.employee,
                phone="3001234567",
            )
        if args.demo_client:
            await _ensure_user(
                repo,
                email="cliente@empresa.com",
                password=DEMO_PASSWORD,
                name="María Cliente",
                role=Role.client,
                phone="3109876543",
            )
        for service_type, description in SEEDED_SERVICE_TYPES.items():
            await _ensure_configuration(repo, service_type, description)
    await engine.dispose()
    logger.info("[seed] завершено")


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed адміністратора, демо-користувачів і налаштувань")
    p.add_argument("email", nargs="?", default=settings.admin_email, help="Email адміністратора")
    p.add_argument("password", nargs="?", default=settings.admin_password, help="Пароль адміністратора")
    p.add_argument("-n", "--name", default=settings.admin_name, help="Ім'я адміністратора")

    p.add_argument("--demo-employee", dest="demo_employee", action="store_true")
    p.add_argument("--no-demo-employee", dest="demo_employee", action="store_false")
    p.set_defaults(demo_employee=settings.create_demo_employee)

    p.add_argument("--demo-client", dest="demo_client", action="store_true")
    p.add_argument("--no-demo-client", dest="demo_client", action="store_false")
    p.set_defaults(demo_client=settings.create_demo_client)
    return p.parse_args()


def main() -> None:
    setup_logging(settings.log_level)
    args = _parse_args()
    if not args.email or not args.password:
        raise SystemExit("Помилка: не задано email або пароль адміністратора (аргументи або ADMIN_EMAIL / ADMIN_PASSWORD)")
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
