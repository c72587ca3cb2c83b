# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""HTTP transport for the named command boundary."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lockward.api.auth import require_api_key
from lockward.commands import CommandResult, get_router

router = APIRouter()


class CommandRequest(BaseModel):
    args: list[Any] = Field(default_factory=list)


class CommandInfo(BaseModel):
    name: str
    description: str
    mutating: bool


class CommandListResponse(BaseModel):
    total: int
    commands: list[CommandInfo]


_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 422,
    "NOT_FOUND": 404,
    "CONFLICT_ERROR": 409,
    "EXTERNAL_SERVICE_ERROR": 502,
    "INTERNAL_ERROR": 500,
}


@router.get("/commands", response_model=CommandListResponse)
async def list_commands(
    _api_key: str = Depends(require_api_key),
) -> CommandListResponse:
    registry = get_router()
    commands = [registry.get(name) for name in registry.names()]
    return CommandListResponse(
        total=len(commands),
        commands=[
            CommandInfo(name=c.name, description=c.description, mutating=c.mutating)
            for c in commands
        ],
    )


@router.post("/commands/{name}", response_model=CommandResult)
async def run_command(
    name: str,
    body: CommandRequest | None = None,
    _api_key: str = Depends(require_api_key),
) -> Any:
    """Dispatch *name* with the positional ``args`` from the request body.

    The body is always a :class:`CommandResult`; the status code reflects
    the error code when the command fails.
    """
    result = await get_router().dispatch(name, *(body.args if body else []))
    if result.success or result.error is None:
        return result
    status = _STATUS_BY_CODE.get(result.error.code, 400)
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))
