# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lockward import __version__
from lockward.api.middleware import RequestMiddleware
from lockward.api.routes import commands, health


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    from lockward.audit.trail import get_audit_trail

    trail = get_audit_trail()
    trail.app_started()

    yield

    trail.app_closed()


def create_app() -> FastAPI:
    app = FastAPI(
        title="lockward",
        description="AppLocker rule compilation, policy health, and compliance evidence",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(commands.router, prefix="/api/v1", tags=["commands"])
    app.add_middleware(RequestMiddleware)

    return app
