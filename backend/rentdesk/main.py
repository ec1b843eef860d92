# backend/rentdesk/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .domain.errors import LifecycleError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.auth import router as auth_router
from .routers.health import router as health_router
from .routers.maintenance import router as maintenance_router

API_PREFIX = "/api"

log = logging.getLogger("rentdesk.app")


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def _lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.as_dict()))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies are a submission problem, same as a service-level ValidationError.
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "validation_error", "message": "invalid request", "errors": exc.errors()}),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if (settings.app_env or "local").strip().lower() in ("local", "dev", "test"):
        init_db()
    log.info("app.started", extra={"status": settings.app_env})
    yield


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="RentDesk Maintenance API",
        version=settings.api_version,
        lifespan=lifespan,
    )

    # Added last runs first: RequestID wraps StructuredLogging so the id is set before logging.
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LifecycleError, _lifecycle_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(maintenance_router, prefix=API_PREFIX)

    return app


app = create_app()
