# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Inventory, publisher, and policy rule models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from lockward.core.constants import EnforcementMode, RuleAction, RuleCategory, RuleType


class InventoryItem(BaseModel):
    """An executable observed on a scanned machine."""

    id: str = ""
    name: str
    publisher: str = ""
    path: str = ""
    version: str = ""
    type: RuleCategory = RuleCategory.EXE
    hash: str | None = Field(default=None, description="SHA-256 of the file, hex encoded")


class TrustedPublisher(BaseModel):
    """A signer whose software is trusted fleet-wide."""

    id: str = ""
    name: str
    publisher_name: str = Field(description="Signer distinguished name, e.g. O=..., L=..., S=..., C=...")
    category: str = ""
    description: str = ""


class PolicyRule(BaseModel):
    """Structured counterpart of a compiled rule element."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: RuleType
    category: RuleCategory
    action: RuleAction
    target_group: str
    condition: str = Field(default="", description="Publisher DN, path, or hash the rule matches")


class RuleSpec(BaseModel):
    """Request to compile a single rule.

    ``action`` and ``rule_type`` are kept as plain strings so the compiler
    can reject bad values with its own validation errors.
    """

    action: str
    rule_type: str
    target_group: str
    subject: InventoryItem | TrustedPublisher | str
    category: RuleCategory | None = None


class BatchOptions(BaseModel):
    rule_action: RuleAction = RuleAction.ALLOW
    rule_type: RuleType = RuleType.PUBLISHER
    target_group: str | None = None
    collection_type: RuleCategory | None = None
    group_by_publisher: bool = True
    enforcement_mode: EnforcementMode = EnforcementMode.AUDIT_ONLY


class PublisherRuleOptions(BaseModel):
    action: RuleAction = RuleAction.ALLOW
    target_group: str | None = None
    collection_type: RuleCategory = RuleCategory.EXE
    enforcement_mode: EnforcementMode = EnforcementMode.AUDIT_ONLY


class ItemFailure(BaseModel):
    item: str
    error: str


class BatchResult(BaseModel):
    success: bool
    output_path: str | None = None
    error: str | None = None
    rule_count: int = 0
    rules: list[PolicyRule] = Field(default_factory=list)
    failures: list[ItemFailure] = Field(default_factory=list)


class DuplicateReport(BaseModel):
    path_duplicates: dict[str, list[InventoryItem]] = Field(default_factory=dict)
    publisher_duplicates: dict[str, list[InventoryItem]] = Field(default_factory=dict)
    path_dup_count: int = 0
    pub_dup_count: int = 0
    total_items: int = 0
