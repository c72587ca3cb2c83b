# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Service health endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from lockward import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", service="lockward", version=__version__)
