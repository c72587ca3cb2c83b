# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Phase-aware policy health scoring.

A health check buckets findings into critical, warning, and info counts and
derives a 0-100 score from configurable penalties.  Only rule categories
enforced by the selected rollout phase are considered; everything else is
ignored for both findings and the coverage ratio.
"""

from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from lockward.core.config import Settings
from lockward.core.constants import PHASE_SCOPE, PolicyPhase, RuleAction, RuleCategory, RuleType
from lockward.core.exceptions import ValidationError
from lockward.policy.models import PolicyRule, TrustedPublisher

logger = logging.getLogger("lockward.policy.health")


@dataclass(frozen=True)
class HealthWeights:
    base_score: int = 100
    critical_penalty: int = 20
    warning_penalty: int = 5
    info_penalty: int = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> HealthWeights:
        return cls(
            base_score=settings.health_base_score,
            critical_penalty=settings.health_critical_penalty,
            warning_penalty=settings.health_warning_penalty,
            info_penalty=settings.health_info_penalty,
        )


DEFAULT_WEIGHTS = HealthWeights()


def compute_score(
    critical: int,
    warning: int,
    info: int,
    weights: HealthWeights = DEFAULT_WEIGHTS,
) -> int:
    """Return ``max(0, base - critical*cp - warning*wp - info*ip)``."""
    if min(critical, warning, info) < 0:
        raise ValidationError("Finding counts must be non-negative")
    raw = (
        weights.base_score
        - critical * weights.critical_penalty
        - warning * weights.warning_penalty
        - info * weights.info_penalty
    )
    return max(0, raw)


_PHASE_NUMBER_RE = re.compile(r"^(?:phase[\s_-]*)?([1-4])$", re.IGNORECASE)
_PHASES_BY_NUMBER = dict(enumerate(PolicyPhase, start=1))


def resolve_phase(phase: PolicyPhase | str | int) -> PolicyPhase:
    """Accept a phase as its label, enum name, number, or ``phaseN`` shorthand."""
    if isinstance(phase, PolicyPhase):
        return phase
    if isinstance(phase, int) and not isinstance(phase, bool):
        if phase in _PHASES_BY_NUMBER:
            return _PHASES_BY_NUMBER[phase]
    elif isinstance(phase, str):
        text = phase.strip()
        try:
            return PolicyPhase(text)
        except ValueError:
            pass
        if text.upper() in PolicyPhase.__members__:
            return PolicyPhase[text.upper()]
        match = _PHASE_NUMBER_RE.match(text)
        if match:
            return _PHASES_BY_NUMBER[int(match.group(1))]
    raise ValidationError(f"Unknown policy phase: {phase!r}", field="phase")


class FindingLevel(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class HealthFinding(BaseModel):
    level: FindingLevel
    code: str
    message: str
    category: RuleCategory | None = None


class HealthCheckResult(BaseModel):
    phase: PolicyPhase
    critical: int = 0
    warning: int = 0
    info: int = 0
    score: int = 100
    coverage: float = Field(default=0.0, description="Percent of in-scope categories with an Allow rule")
    findings: list[HealthFinding] = Field(default_factory=list)


def _coerce_rules(rules: Iterable[PolicyRule | Mapping[str, Any]]) -> list[PolicyRule]:
    valid: list[PolicyRule] = []
    for raw in rules:
        if isinstance(raw, PolicyRule):
            valid.append(raw)
            continue
        try:
            valid.append(PolicyRule.model_validate(raw))
        except PydanticValidationError as exc:
            logger.warning("Skipping malformed rule entry: %d error(s)", exc.error_count())
    return valid


def _publisher_names(publishers: Iterable[TrustedPublisher | Mapping[str, Any] | str]) -> list[str]:
    names: list[str] = []
    for raw in publishers:
        if isinstance(raw, str):
            names.append(raw)
        elif isinstance(raw, TrustedPublisher):
            names.append(raw.publisher_name)
        else:
            try:
                names.append(TrustedPublisher.model_validate(raw).publisher_name)
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed publisher entry: %d error(s)", exc.error_count())
    return [n for n in names if n.strip()]


class HealthScorer:
    """Scores a rule set against the scope of a rollout phase."""

    def __init__(self, weights: HealthWeights | None = None) -> None:
        self.weights = weights or DEFAULT_WEIGHTS

    def run_health_check(
        self,
        phase: PolicyPhase | str | int,
        rules: Iterable[PolicyRule | Mapping[str, Any]] = (),
        publishers: Iterable[TrustedPublisher | Mapping[str, Any] | str] = (),
    ) -> HealthCheckResult:
        resolved = resolve_phase(phase)
        scope = PHASE_SCOPE[resolved]
        all_rules = _coerce_rules(rules)

        if not all_rules:
            logger.info("Health check for %s: no rules to evaluate", resolved)
            return HealthCheckResult(phase=resolved, score=self.weights.base_score)

        in_scope = [r for r in all_rules if r.category in scope]
        findings = [
            *self._coverage_findings(in_scope, scope),
            *self._duplicate_findings(in_scope),
            *self._overlap_findings(in_scope),
            *self._orphan_findings(in_scope, _publisher_names(publishers)),
        ]

        counts = Counter(f.level for f in findings)
        covered = {r.category for r in in_scope if r.action is RuleAction.ALLOW}
        result = HealthCheckResult(
            phase=resolved,
            critical=counts[FindingLevel.CRITICAL],
            warning=counts[FindingLevel.WARNING],
            info=counts[FindingLevel.INFO],
            score=compute_score(
                counts[FindingLevel.CRITICAL],
                counts[FindingLevel.WARNING],
                counts[FindingLevel.INFO],
                self.weights,
            ),
            coverage=round(100 * len(covered) / len(scope), 2),
            findings=findings,
        )
        logger.info(
            "Health check for %s: score=%d critical=%d warning=%d info=%d",
            resolved,
            result.score,
            result.critical,
            result.warning,
            result.info,
        )
        return result

    @staticmethod
    def _coverage_findings(
        rules: list[PolicyRule], scope: tuple[RuleCategory, ...]
    ) -> list[HealthFinding]:
        covered = {r.category for r in rules if r.action is RuleAction.ALLOW}
        return [
            HealthFinding(
                level=FindingLevel.CRITICAL,
                code="missing-coverage",
                message=f"No Allow rule covers the {category} collection",
                category=category,
            )
            for category in scope
            if category not in covered
        ]

    @staticmethod
    def _duplicate_findings(rules: list[PolicyRule]) -> list[HealthFinding]:
        keys = Counter(
            (r.type, r.category, r.action, r.target_group, r.condition.lower()) for r in rules
        )
        return [
            HealthFinding(
                level=FindingLevel.WARNING,
                code="duplicate-rule",
                message=f"{count} identical {action} {rule_type} rules for {condition or '<none>'}",
                category=category,
            )
            for (rule_type, category, action, _group, condition), count in keys.items()
            if count > 1
        ]

    @staticmethod
    def _overlap_findings(rules: list[PolicyRule]) -> list[HealthFinding]:
        actions: dict[tuple[RuleType, RuleCategory, str, str], set[RuleAction]] = defaultdict(set)
        for r in rules:
            actions[(r.type, r.category, r.target_group, r.condition.lower())].add(r.action)
        return [
            HealthFinding(
                level=FindingLevel.WARNING,
                code="overlapping-rule",
                message=f"{condition or '<none>'} is both allowed and denied for {group}",
                category=category,
            )
            for (_type, category, group, condition), seen in actions.items()
            if len(seen) > 1
        ]

    @staticmethod
    def _orphan_findings(rules: list[PolicyRule], publishers: list[str]) -> list[HealthFinding]:
        ruled = {r.condition.lower() for r in rules if r.type is RuleType.PUBLISHER}
        orphans = dict.fromkeys(p for p in publishers if p.lower() not in ruled)
        return [
            HealthFinding(
                level=FindingLevel.INFO,
                code="orphaned-publisher",
                message=f"Trusted publisher {publisher} has no publisher rule",
            )
            for publisher in orphans
        ]
