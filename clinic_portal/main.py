"""
Portal web surface.

Run with: uvicorn clinic_portal.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError as SchemaError

from clinic_portal.config import Settings, configure_logging, get_settings
from clinic_portal.exceptions import (
    AccessDenied,
    DecodeError,
    HttpError,
    InvalidCredentials,
    Unauthenticated,
    ValidationError,
)
from clinic_portal.portal import Portal
from clinic_portal.routers import auth, dashboard, patients, users, visits
from clinic_portal.services.token_store import TokenStore

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthenticated)
    async def unauthenticated(request: Request, exc: Unauthenticated):
        # Gated surfaces send anonymous visitors back to the entry page.
        portal = request.app.state.portal
        if portal.session.is_authenticated and not portal.token_store.read():
            logger.info("Stored credential is gone; ending the session")
            portal.session.logout()
        status_code = 307 if request.method == "GET" else 303
        return RedirectResponse("/", status_code=status_code)

    @app.exception_handler(AccessDenied)
    async def access_denied(request: Request, exc: AccessDenied):
        return JSONResponse(
            status_code=403,
            content={
                "title": "Access Denied",
                "detail": f"You do not have permission to {exc.action} {exc.resource}.",
            },
        )

    @app.exception_handler(InvalidCredentials)
    async def invalid_credentials(request: Request, exc: InvalidCredentials):
        return JSONResponse(status_code=401, content={"error": "Invalid credentials"})

    @app.exception_handler(DecodeError)
    async def undecodable_credential(request: Request, exc: DecodeError):
        logger.warning("Login returned an unusable credential: %s", exc.reason)
        return JSONResponse(status_code=401, content={"error": "Login failed. Please try again."})

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"field": exc.field, "error": exc.message})

    @app.exception_handler(SchemaError)
    async def malformed_form(request: Request, exc: SchemaError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        return JSONResponse(status_code=422, content={"field": field, "error": first.get("msg", str(exc))})

    @app.exception_handler(HttpError)
    async def upstream_error(request: Request, exc: HttpError):
        status_code = exc.status_code if 400 <= exc.status_code < 500 else 502
        return JSONResponse(
            status_code=status_code,
            content={"error": str(exc), "upstreamStatus": exc.status_code},
        )


def create_app(
    settings: Optional[Settings] = None,
    token_store: Optional[TokenStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    portal = Portal(settings, token_store=token_store, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        portal.start()
        yield
        await portal.aclose()

    app = FastAPI(
        title="Clinic Portal",
        description="Role-gated front-end for clinic patient and visit records",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.portal = portal
    _register_error_handlers(app)

    app.include_router(auth.router, tags=["Auth"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
    app.include_router(patients.router, prefix="/patients", tags=["Patients"])
    app.include_router(visits.router, prefix="/visits", tags=["Visits"])
    app.include_router(users.router, prefix="/users", tags=["Users"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "clinic-portal", "session": portal.session.state.value}

    return app
