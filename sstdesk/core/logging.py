"""
Логи застосунку, воркера і Uvicorn.

Кожен рядок несе request id: у межах HTTP-запиту його бере фільтр з
contextvar, поза запитом (воркер, seed, старт) друкується "-".
"""
import logging
import logging.config
import uuid
from contextvars import ContextVar
from typing import Any, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Підставляє request_id, якщо його не передали через extra."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx.get()
        return True


def setup_logging(level: str = "INFO") -> None:
    handler = {
        "class": "logging.StreamHandler",
        "formatter": "plain",
        "filters": ["request_id"],
    }
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {"default": handler},
        "loggers": {
            "": {"handlers": ["default"], "level": level.upper()},
            **{
                name: {"handlers": ["default"], "level": level.upper(), "propagate": False}
                for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
            },
            # SQL-ехо тільки на DEBUG
            "sqlalchemy.engine": {"level": "INFO" if level.upper() == "DEBUG" else "WARNING"},
        },
    })


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    X-Request-ID: береться з запиту або генерується, живе в request.state
    і в contextvar на час обробки, повертається у відповіді.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def log_extra(request: Request) -> Mapping[str, Any]:
    """
    Для обробників, що працюють поза middleware (500 від ServerErrorMiddleware):
    там contextvar уже скинуто, а request.state ще є.
    """
    rid = getattr(request.state, "request_id", None)
    return {"request_id": rid} if rid else {}
