# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Evidence readiness validation and compliance package assembly."""

from lockward.evidence.models import (
    ArtifactFailure,
    ComplianceReport,
    EvidencePackage,
    EvidenceStatus,
    EvidenceValidation,
)
from lockward.evidence.validator import EvidenceValidator

__all__ = [
    "ArtifactFailure",
    "ComplianceReport",
    "EvidencePackage",
    "EvidenceStatus",
    "EvidenceValidation",
    "EvidenceValidator",
]
