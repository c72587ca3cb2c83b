# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit entry model, action taxonomy, and the fixed severity table."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(StrEnum):
    """Closed taxonomy of security-relevant actions."""

    # Policy operations
    POLICY_CREATED = "POLICY_CREATED"
    POLICY_MODIFIED = "POLICY_MODIFIED"
    POLICY_DELETED = "POLICY_DELETED"
    POLICY_DEPLOYED = "POLICY_DEPLOYED"
    POLICY_EXPORTED = "POLICY_EXPORTED"
    POLICY_IMPORTED = "POLICY_IMPORTED"

    # Rule operations
    RULE_CREATED = "RULE_CREATED"
    RULE_MODIFIED = "RULE_MODIFIED"
    RULE_DELETED = "RULE_DELETED"

    # Directory group operations
    USER_ADDED_TO_GROUP = "USER_ADDED_TO_GROUP"
    USER_REMOVED_FROM_GROUP = "USER_REMOVED_FROM_GROUP"
    GROUP_CREATED = "GROUP_CREATED"
    GROUP_DELETED = "GROUP_DELETED"

    # Scan operations
    SCAN_INITIATED = "SCAN_INITIATED"
    SCAN_COMPLETED = "SCAN_COMPLETED"
    SCAN_FAILED = "SCAN_FAILED"

    # System operations
    APP_STARTED = "APP_STARTED"
    APP_CLOSED = "APP_CLOSED"
    CONFIG_CHANGED = "CONFIG_CHANGED"
    EXPORT_DATA = "EXPORT_DATA"

    # Authentication
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    CREDENTIAL_USED = "CREDENTIAL_USED"


class AuditSeverity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_BY_ACTION: dict[AuditAction, AuditSeverity] = {
    AuditAction.POLICY_DEPLOYED: AuditSeverity.CRITICAL,
    AuditAction.POLICY_DELETED: AuditSeverity.CRITICAL,
    AuditAction.GROUP_DELETED: AuditSeverity.CRITICAL,
    AuditAction.POLICY_CREATED: AuditSeverity.HIGH,
    AuditAction.POLICY_MODIFIED: AuditSeverity.HIGH,
    AuditAction.USER_ADDED_TO_GROUP: AuditSeverity.HIGH,
    AuditAction.USER_REMOVED_FROM_GROUP: AuditSeverity.HIGH,
    AuditAction.CONFIG_CHANGED: AuditSeverity.HIGH,
    AuditAction.LOGIN_FAILED: AuditSeverity.HIGH,
    AuditAction.RULE_CREATED: AuditSeverity.MEDIUM,
    AuditAction.RULE_MODIFIED: AuditSeverity.MEDIUM,
    AuditAction.RULE_DELETED: AuditSeverity.MEDIUM,
    AuditAction.SCAN_INITIATED: AuditSeverity.MEDIUM,
    AuditAction.SCAN_COMPLETED: AuditSeverity.MEDIUM,
    AuditAction.SCAN_FAILED: AuditSeverity.MEDIUM,
    AuditAction.EXPORT_DATA: AuditSeverity.MEDIUM,
    AuditAction.CREDENTIAL_USED: AuditSeverity.MEDIUM,
    AuditAction.POLICY_EXPORTED: AuditSeverity.MEDIUM,
    AuditAction.POLICY_IMPORTED: AuditSeverity.MEDIUM,
    AuditAction.GROUP_CREATED: AuditSeverity.MEDIUM,
    AuditAction.APP_STARTED: AuditSeverity.LOW,
    AuditAction.APP_CLOSED: AuditSeverity.LOW,
    AuditAction.LOGIN_SUCCESS: AuditSeverity.LOW,
}

DEFAULT_SEVERITY = AuditSeverity.MEDIUM


def severity_for(action: AuditAction | str) -> AuditSeverity:
    """Return the fixed severity of *action*, MEDIUM when unmapped."""
    try:
        return SEVERITY_BY_ACTION.get(AuditAction(action), DEFAULT_SEVERITY)
    except ValueError:
        return DEFAULT_SEVERITY


class AuditEntry(BaseModel):
    """A single immutable audit record."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    action: str
    severity: AuditSeverity
    actor: str = "SYSTEM"
    machine: str = "localhost"
    success: bool = True
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None


# ---------------------------------------------------------------------------
# Per-action payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class PolicyDeployedDetails(_Payload):
    policy_name: str
    target_ou: str


class PolicyCreatedDetails(_Payload):
    policy_name: str
    rule_count: int = Field(ge=0)


class RuleCreatedDetails(_Payload):
    rule_name: str
    rule_type: str


class GroupMembershipDetails(_Payload):
    username: str
    group_name: str


class ScanInitiatedDetails(_Payload):
    target_count: int = Field(ge=0)
    scan_type: str


class ScanCompletedDetails(_Payload):
    target_count: int = Field(ge=0)
    results_count: int = Field(ge=0)
    duration_ms: float = Field(ge=0)


class DataExportedDetails(_Payload):
    export_type: str
    record_count: int = Field(ge=0)


ACTION_PAYLOADS: dict[AuditAction, type[BaseModel]] = {
    AuditAction.POLICY_DEPLOYED: PolicyDeployedDetails,
    AuditAction.POLICY_CREATED: PolicyCreatedDetails,
    AuditAction.RULE_CREATED: RuleCreatedDetails,
    AuditAction.USER_ADDED_TO_GROUP: GroupMembershipDetails,
    AuditAction.USER_REMOVED_FROM_GROUP: GroupMembershipDetails,
    AuditAction.SCAN_INITIATED: ScanInitiatedDetails,
    AuditAction.SCAN_COMPLETED: ScanCompletedDetails,
    AuditAction.EXPORT_DATA: DataExportedDetails,
}


def validate_payload(action: AuditAction | str, details: dict[str, Any]) -> dict[str, Any]:
    """Validate *details* against the payload declared for *action*.

    Actions without a declared payload pass through unchanged.

    Raises:
        pydantic.ValidationError: If the payload does not match.
    """
    try:
        model = ACTION_PAYLOADS.get(AuditAction(action))
    except ValueError:
        model = None
    if model is None:
        return dict(details)
    return model.model_validate(details).model_dump()
