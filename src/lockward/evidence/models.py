# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Evidence readiness and package models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from lockward.core.constants import PolicyDefinitionState, SyncState


class EvidenceStatus(BaseModel):
    """Freshness of each evidence category, recomputed on every call."""

    policy_definitions: PolicyDefinitionState
    audit_logs: SyncState
    system_snapshots: SyncState
    last_update: datetime | None = None


class EvidenceValidation(BaseModel):
    is_valid: bool
    missing_items: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ArtifactFailure(BaseModel):
    name: str
    error: str


class EvidencePackage(BaseModel):
    path: str
    created_at: datetime
    artifacts: list[str] = Field(default_factory=list)
    failed: list[ArtifactFailure] = Field(default_factory=list)


class ComplianceReport(BaseModel):
    """A previously generated evidence package found on disk."""

    id: str
    name: str
    created_at: datetime
    path: str
    size_bytes: int = 0
