"""Application wiring for VapeTrack.

Brings together configuration, the database, middlewares, error handling and
the API routers. ``vapetrack.main`` adds logging, health and metrics on top.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import (
    DomainError,
    domain_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .db.session import init_db
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import (
    api_accounts,
    api_auth,
    api_capital,
    api_expenses,
    api_logs,
    api_products,
    api_reports,
    api_sales,
    api_users,
)

app = FastAPI(title=settings.APP_NAME)

# ---------- Middlewares ----------
# Added innermost first: the request id wraps everything, so security headers
# and session handling run inside its timing.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.APP_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=settings.HTTPS_ONLY,
)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(SecurityHeadersMiddleware, https_only=settings.HTTPS_ONLY)
app.add_middleware(RequestIdMiddleware)

# ---------- Exception handling ----------
app.add_exception_handler(DomainError, domain_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ---------- Routers ----------
app.include_router(api_auth.setup_router)
app.include_router(api_auth.router)
app.include_router(api_products.router)
app.include_router(api_sales.router)
app.include_router(api_expenses.router)
app.include_router(api_accounts.router)
app.include_router(api_capital.router)
app.include_router(api_logs.router)
app.include_router(api_users.router)
app.include_router(api_reports.router)


@app.on_event("startup")
def _create_tables() -> None:
    init_db()


__all__ = ["app"]
