from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.observability import (
    install_exception_handlers,
    log_event,
    request_logging_middleware,
    setup_observability,
)
from app.db.session import engine
from app.routers import auth, customers, sales

LOCALHOST_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description=(
        "Backend API for the toy store.\n\n"
        "Swagger quick test flow:\n"
        "1. Call `POST /auth/register` or `POST /auth/login`.\n"
        "2. Click **Authorize** and use your email + password "
        "(OAuth token URL: `/auth/token`).\n"
        "3. Try `/customers`, `/sales` and the `/sales/stats/*` reports."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "auth", "description": "Account registration and token issuance."},
        {"name": "customers", "description": "Customer records owned by the signed-in account."},
        {"name": "sales", "description": "Sales capture, history, and sales statistics."},
    ],
)


def _cors_options() -> dict:
    origins = settings.cors_origins or ["http://localhost:3000"]
    wildcard = "*" in origins
    origin_regex = settings.cors_origin_regex
    if not origin_regex and settings.is_local:
        # Dev servers pick arbitrary localhost ports.
        origin_regex = LOCALHOST_ORIGIN_REGEX
    return {
        "allow_origins": ["*"] if wildcard else origins,
        "allow_origin_regex": origin_regex,
        "allow_credentials": not wildcard,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }


setup_observability()
install_exception_handlers(app)
app.middleware("http")(request_logging_middleware)
app.add_middleware(CORSMiddleware, **_cors_options())

app.include_router(auth.router)
app.include_router(customers.router)
app.include_router(sales.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event("ready.database_unavailable", error=repr(exc))
        return JSONResponse(status_code=503, content={"ok": False, "database": "unavailable"})
    return {"ok": True, "database": "ok"}
