# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Redaction of sensitive keys in audit details."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lockward.core.constants import REDACTION_MARKER

# Matched case-sensitively against detail keys
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "passwd",
    "token",
    "accessToken",
    "access_token",
    "secret",
    "clientSecret",
    "client_secret",
    "key",
    "apiKey",
    "api_key",
    "privateKey",
    "private_key",
    "credential",
    "credentials",
})


def sanitize_details(
    details: Mapping[str, Any],
    *,
    recursive: bool = False,
    sensitive_keys: frozenset[str] = SENSITIVE_KEYS,
) -> dict[str, Any]:
    """Return a copy of *details* with sensitive values replaced.

    Only top-level keys are inspected unless *recursive* is set, in which
    case nested mappings and sequences of mappings are walked as well.
    """
    sanitized: dict[str, Any] = {}
    for key, value in details.items():
        if key in sensitive_keys:
            sanitized[key] = REDACTION_MARKER
        elif recursive:
            sanitized[key] = _sanitize_value(value, sensitive_keys)
        else:
            sanitized[key] = value
    return sanitized


def _sanitize_value(value: Any, sensitive_keys: frozenset[str]) -> Any:
    if isinstance(value, Mapping):
        return sanitize_details(value, recursive=True, sensitive_keys=sensitive_keys)
    if isinstance(value, list | tuple):
        return [_sanitize_value(v, sensitive_keys) for v in value]
    return value
