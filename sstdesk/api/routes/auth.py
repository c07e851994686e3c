# sstdesk/api/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status

from sstdesk.api.deps import CurrentDep, RepoDep
from sstdesk.core.config import settings
from sstdesk.core.errors import Forbidden, Unauthenticated
from sstdesk.core.logging import log_extra
from sstdesk.db.models import RoleEnum as Role
from sstdesk.schemas.auth import LoginIn, RegisterIn, TokenOut, UserOut
from sstdesk.services.auth import authenticate, create_user, make_token_for_user, serialize_user
from sstdesk.services.notifications import log_activity

router = APIRouter()
logger = logging.getLogger("sstdesk.auth")


# ===== register (клієнт) =====

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, repo: RepoDep):
    # публічна реєстрація створює лише клієнтів
    user = await create_user(
        repo,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=Role.client,
        phone=payload.phone,
    )
    await repo.commit()
    await repo.refresh(user)
    return {"message": "Usuario creado exitosamente", "user": UserOut(**serialize_user(user))}


# ===== login / me =====

@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, request: Request, response: Response, repo: RepoDep):
    user = await authenticate(repo, email=payload.email, password=payload.password)
    if not user:
        logger.info("login_failed", extra=log_extra(request))
        raise Unauthenticated("Credenciales inválidas")
    if not user.is_active:
        raise Forbidden("Tu cuenta está desactivada. Contacta al administrador")

    token = make_token_for_user(user)
    # кука для сторінок /dashboard; API працює з Bearer
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.jwt_expires_min * 60,
        httponly=True,
        samesite="lax",
        secure=settings.env == "prod",
    )
    log_activity(repo, user_id=user.id, action="login", entity="user", entity_id=user.id)
    await repo.commit()
    return TokenOut(access_token=token, user=UserOut(**serialize_user(user)))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.session_cookie_name)
    return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(current: CurrentDep, repo: RepoDep):
    user = await repo.get_user(current.id)
    return UserOut(**serialize_user(user))
