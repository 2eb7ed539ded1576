"""FastAPI application factory for Pacer."""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pacer.api.routers import health, status
from pacer.engine import INTEGRITY_ERROR
from pacer.metrics import UnknownStrategyError
from pacer.models import ValidationError
from pacer.observability import add_observability_middleware

log = logging.getLogger("pacer.api")


def create_app() -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(
        title="Pacer",
        description="Progress aggregation and insights for project dashboards",
        version="0.1.0",
    )

    # ---------------------------------------------------------------
    # Exception handlers: {"error": "..."} format
    # ---------------------------------------------------------------

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Extract first meaningful error for concise message
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = ".".join(str(l) for l in first.get("loc", []))
            msg = first.get("msg", "Invalid input")
            detail = f"{loc}: {msg}" if loc else msg
        else:
            detail = "Invalid JSON body"
        return JSONResponse(
            status_code=400,
            content={"error": detail},
        )

    @app.exception_handler(ValidationError)
    async def integrity_exception_handler(request: Request, exc: ValidationError):
        log.warning("Rejected snapshot on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=422,
            content={"error": INTEGRITY_ERROR, "details": exc.errors},
        )

    @app.exception_handler(UnknownStrategyError)
    async def strategy_exception_handler(request: Request, exc: UnknownStrategyError):
        return JSONResponse(
            status_code=400,
            content={"error": str(exc)},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc)},
        )

    # ---------------------------------------------------------------
    # Middleware (order matters: last added = outermost)
    # ---------------------------------------------------------------

    add_observability_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------
    # Routers
    # ---------------------------------------------------------------

    api = APIRouter()
    api.include_router(status.router)
    app.include_router(api, prefix="/v1")

    # Health + metrics (no version prefix)
    app.include_router(health.router)

    return app
