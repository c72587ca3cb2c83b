# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""API key authentication dependency.

Rejected keys are recorded as ``LOGIN_FAILED`` and accepted keys as
``CREDENTIAL_USED`` in the audit trail.  Keys are identified there only by
a short SHA-256 fingerprint.
"""

from __future__ import annotations

import hashlib
import hmac

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from lockward.audit.events import AuditAction
from lockward.audit.trail import get_audit_trail
from lockward.core.config import get_settings

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def key_fingerprint(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:12]


def _matches(api_key: str, configured: list[str]) -> bool:
    # Constant-time over every configured key
    matched = False
    for candidate in configured:
        matched |= hmac.compare_digest(api_key.encode("utf-8"), candidate.encode("utf-8"))
    return matched


async def require_api_key(
    request: Request,
    api_key: str | None = Security(_api_key_header),
) -> str:
    """Check the X-API-Key header against the configured keys.

    With no keys configured the command endpoints are open.
    """
    settings = get_settings()

    if not settings.api_keys:
        return "anonymous"

    trail = get_audit_trail()
    path = request.url.path

    if not api_key:
        trail.log(AuditAction.LOGIN_FAILED, {"path": path}, success=False, error_message="missing API key")
        raise HTTPException(status_code=401, detail="Missing X-API-Key header")

    fingerprint = key_fingerprint(api_key)
    if not _matches(api_key, settings.api_keys):
        trail.log(
            AuditAction.LOGIN_FAILED,
            {"path": path, "key_fingerprint": fingerprint},
            success=False,
            error_message="invalid API key",
        )
        raise HTTPException(status_code=403, detail="Invalid API key")

    trail.log(AuditAction.CREDENTIAL_USED, {"path": path, "key_fingerprint": fingerprint})
    return api_key
