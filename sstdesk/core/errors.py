"""
Помилки домену та їх перетворення у HTTP-відповіді.

API-роути піднімають підкласи ServiceDeskError, сторінки /dashboard —
PageRedirect. Все інше ловить обробник Exception: деталі йдуть тільки в лог,
клієнт отримує загальне повідомлення.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from sstdesk.core.logging import REQUEST_ID_HEADER, log_extra

logger = logging.getLogger("sstdesk.errors")

GENERIC_ERROR_MESSAGE = "Error interno del servidor. Por favor intenta de nuevo."


class ServiceDeskError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "ERROR"
    default_message = "Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(ServiceDeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Datos inválidos"


class Unauthenticated(ServiceDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "No autenticado"


class Forbidden(ServiceDeskError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "No tienes permisos para esta operación"


class NotFound(ServiceDeskError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Recurso no encontrado"


class InvalidTransition(ServiceDeskError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"
    default_message = "Transición de estado no permitida"


class Conflict(ServiceDeskError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Conflicto"


class UpstreamFailure(ServiceDeskError):
    code = "UPSTREAM_FAILURE"
    default_message = GENERIC_ERROR_MESSAGE


class PageRedirect(Exception):
    """Сторінки не показують помилок: тихий редирект (на /login або в свій кабінет)."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(location)


def error_body(code: str, message: str) -> dict:
    return {"detail": message, "code": code}


async def service_desk_error_handler(request: Request, exc: ServiceDeskError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("upstream_failure: %s", exc.message, extra=log_extra(request))
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, GENERIC_ERROR_MESSAGE),
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 422 від FastAPI зводимо до 400, як і решту помилок вводу
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path")) for e in errors]
    fields = [f for f in fields if f]
    message = "Datos inválidos: " + ", ".join(fields) if fields else "Datos inválidos"
    body = error_body(ValidationFailed.code, message)
    body["errors"] = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def page_redirect_handler(request: Request, exc: PageRedirect) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=status.HTTP_303_SEE_OTHER)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("database_error", exc_info=exc, extra=log_extra(request))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(UpstreamFailure.code, GENERIC_ERROR_MESSAGE),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    extra = log_extra(request)
    logger.exception("unhandled_error", exc_info=exc, extra=extra)
    # відповідь формує ServerErrorMiddleware, повз RequestIdMiddleware
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(UpstreamFailure.code, GENERIC_ERROR_MESSAGE),
        headers={REQUEST_ID_HEADER: extra["request_id"]} if extra else None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceDeskError, service_desk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PageRedirect, page_redirect_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
