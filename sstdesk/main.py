# sstdesk/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sstdesk.api.routes import (
    auth,
    configuration,
    employees,
    health,
    notifications,
    pages,
    services,
    users,
)
from sstdesk.core.config import settings
from sstdesk.core.errors import register_exception_handlers
from sstdesk.core.logging import RequestIdMiddleware, setup_logging

setup_logging(settings.log_level)

app = FastAPI(
    title="SST Desk",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)

# ==== Middlewares ====
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)

# ==== API під /api ====
app.include_router(health.router,        prefix="/api",               tags=["health"])
app.include_router(auth.router,          prefix="/api/auth",          tags=["auth"])
app.include_router(configuration.router, prefix="/api/configuration", tags=["configuration"])
app.include_router(employees.router,     prefix="/api/employees",     tags=["employees"])
app.include_router(users.router,         prefix="/api/users",         tags=["users"])
app.include_router(services.router,      prefix="/api/services",      tags=["services"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

# ==== Кабінети ====
app.include_router(pages.router, prefix="/dashboard", tags=["pages"], include_in_schema=False)


@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs": "/api/docs"}
