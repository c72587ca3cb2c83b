# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for lockward."""

from __future__ import annotations

from typing import Any


class LockwardError(Exception):
    """Base exception for all lockward errors.

    Carries a stable machine-readable ``code`` and an optional ``context``
    mapping so the command boundary can serialise failures uniformly.
    """

    code = "LOCKWARD_ERROR"

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


class ConfigurationError(LockwardError):
    """Invalid or missing configuration."""

    code = "CONFIGURATION_ERROR"


class ValidationError(LockwardError):
    """Malformed publisher, path, or rule input."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, context={"field": field} if field else None)
        self.field = field


class NotFoundError(LockwardError):
    """A referenced machine, user, rule, template, or command does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str | None = None) -> None:
        message = (
            f"{resource} with identifier '{identifier}' not found"
            if identifier
            else f"{resource} not found"
        )
        super().__init__(message, context={"resource": resource, "identifier": identifier})


class ExternalServiceError(LockwardError):
    """File-system or downstream execution failure."""

    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service: str,
        message: str,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"External service error ({service}): {message}",
            context={**(context or {}), "service": service},
        )


class ConflictError(LockwardError):
    """Operation conflicts with one already in progress."""

    code = "CONFLICT_ERROR"
