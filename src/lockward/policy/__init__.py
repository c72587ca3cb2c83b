# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Rule compilation, templates, and policy health scoring."""

from lockward.policy.compiler import (
    RuleCompiler,
    build_rule,
    detect_duplicates,
    generate_rule_xml,
    group_by_publisher,
    render_policy,
)
from lockward.policy.health import HealthCheckResult, HealthScorer, HealthWeights, compute_score
from lockward.policy.models import (
    BatchOptions,
    BatchResult,
    InventoryItem,
    PolicyRule,
    PublisherRuleOptions,
    RuleSpec,
    TrustedPublisher,
)
from lockward.policy.templates import RuleTemplate, TemplateCatalog, create_rule_from_template

__all__ = [
    "BatchOptions",
    "BatchResult",
    "HealthCheckResult",
    "HealthScorer",
    "HealthWeights",
    "InventoryItem",
    "PolicyRule",
    "PublisherRuleOptions",
    "RuleCompiler",
    "RuleSpec",
    "RuleTemplate",
    "TemplateCatalog",
    "TrustedPublisher",
    "build_rule",
    "compute_score",
    "create_rule_from_template",
    "detect_duplicates",
    "generate_rule_xml",
    "group_by_publisher",
    "render_policy",
]
