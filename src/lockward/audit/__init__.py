# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Append-only audit trail for compliance and security event tracking."""

from lockward.audit.events import AuditAction, AuditEntry, AuditSeverity, severity_for
from lockward.audit.sanitize import SENSITIVE_KEYS, sanitize_details
from lockward.audit.trail import (
    AuditStats,
    AuditTrail,
    get_audit_trail,
    reset_audit_trail,
    set_audit_trail,
)

__all__ = [
    "SENSITIVE_KEYS",
    "AuditAction",
    "AuditEntry",
    "AuditSeverity",
    "AuditStats",
    "AuditTrail",
    "get_audit_trail",
    "reset_audit_trail",
    "sanitize_details",
    "set_audit_trail",
    "severity_for",
]
