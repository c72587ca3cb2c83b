# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations, phase scopes, and evidence constants."""

from enum import StrEnum


class RuleType(StrEnum):
    PATH = "Path"
    PUBLISHER = "Publisher"
    HASH = "Hash"


class RuleCategory(StrEnum):
    EXE = "EXE"
    MSI = "MSI"
    SCRIPT = "Script"
    DLL = "DLL"


class RuleAction(StrEnum):
    ALLOW = "Allow"
    DENY = "Deny"


class EnforcementMode(StrEnum):
    NOT_CONFIGURED = "NotConfigured"
    AUDIT_ONLY = "AuditOnly"
    ENABLED = "Enabled"


class PolicyPhase(StrEnum):
    PHASE_1 = "Phase 1 (EXE Only)"
    PHASE_2 = "Phase 2 (EXE + Script)"
    PHASE_3 = "Phase 3 (EXE + Script + MSI)"
    PHASE_4 = "Phase 4 (All including DLL)"


# Rule categories enforced at each rollout phase
PHASE_SCOPE: dict[PolicyPhase, tuple[RuleCategory, ...]] = {
    PolicyPhase.PHASE_1: (RuleCategory.EXE,),
    PolicyPhase.PHASE_2: (RuleCategory.EXE, RuleCategory.SCRIPT),
    PolicyPhase.PHASE_3: (RuleCategory.EXE, RuleCategory.SCRIPT, RuleCategory.MSI),
    PolicyPhase.PHASE_4: (
        RuleCategory.EXE,
        RuleCategory.SCRIPT,
        RuleCategory.MSI,
        RuleCategory.DLL,
    ),
}

# RuleCollection Type attribute per category, in document order
COLLECTION_TYPES: dict[RuleCategory, str] = {
    RuleCategory.EXE: "Exe",
    RuleCategory.MSI: "Msi",
    RuleCategory.SCRIPT: "Script",
    RuleCategory.DLL: "Dll",
}

WELL_KNOWN_SIDS: dict[str, str] = {
    "Everyone": "S-1-1-0",
    "Administrators": "S-1-5-32-544",
    "Users": "S-1-5-32-545",
    "Guests": "S-1-5-32-546",
    "Power Users": "S-1-5-32-547",
    "Authenticated Users": "S-1-5-11",
    "SYSTEM": "S-1-5-18",
}


class PolicyDefinitionState(StrEnum):
    COMPLETE = "COMPLETE"
    INCOMPLETE = "INCOMPLETE"
    STALE = "STALE"


class SyncState(StrEnum):
    SYNCED = "SYNCED"
    STALE = "STALE"
    MISSING = "MISSING"


EVIDENCE_PACKAGE_PREFIX = "Evidence-"
REDACTION_MARKER = "[REDACTED]"
MAX_RULE_INPUT_LENGTH = 1024
