# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Unit tests for policy health scoring."""

from __future__ import annotations

import itertools

import pytest

from lockward.core.config import Settings
from lockward.core.constants import PolicyPhase, RuleCategory
from lockward.core.exceptions import ValidationError
from lockward.policy.health import (
    FindingLevel,
    HealthScorer,
    HealthWeights,
    compute_score,
    resolve_phase,
)
from lockward.policy.models import PolicyRule

ACME = "O=ACME CORP, L=SEATTLE, S=WASHINGTON, C=US"
_ids = itertools.count(1)


def _rule(category: str = "EXE", action: str = "Allow", condition: str = ACME, **kwargs) -> PolicyRule:
    return PolicyRule(
        id=str(next(_ids)),
        name=kwargs.pop("name", "rule"),
        type=kwargs.pop("type", "Publisher"),
        category=category,
        action=action,
        target_group=kwargs.pop("target_group", "Everyone"),
        condition=condition,
    )


# ---------------------------------------------------------------------------
# Score formula
# ---------------------------------------------------------------------------


class TestComputeScore:
    def test_perfect(self) -> None:
        assert compute_score(0, 0, 0) == 100

    def test_formula(self) -> None:
        assert compute_score(1, 2, 3) == 100 - 20 - 10 - 3

    def test_clamped_at_zero(self) -> None:
        assert compute_score(5, 0, 0) == 0
        assert compute_score(6, 0, 0) == 0
        assert compute_score(50, 50, 50) == 0

    def test_monotonic_in_each_argument(self) -> None:
        for c, w, i in itertools.product(range(7), range(7), range(7)):
            score = compute_score(c, w, i)
            assert 0 <= score <= 100
            assert compute_score(c + 1, w, i) <= score
            assert compute_score(c, w + 1, i) <= score
            assert compute_score(c, w, i + 1) <= score

    def test_custom_weights(self) -> None:
        weights = HealthWeights(base_score=50, critical_penalty=10, warning_penalty=2, info_penalty=0)
        assert compute_score(1, 1, 10, weights) == 38

    def test_weights_from_settings(self) -> None:
        settings = Settings(_env_file=None, health_critical_penalty=30)
        assert HealthWeights.from_settings(settings).critical_penalty == 30

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            compute_score(-1, 0, 0)


class TestResolvePhase:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (PolicyPhase.PHASE_3, PolicyPhase.PHASE_3),
            ("Phase 2 (EXE + Script)", PolicyPhase.PHASE_2),
            ("PHASE_4", PolicyPhase.PHASE_4),
            (1, PolicyPhase.PHASE_1),
            ("3", PolicyPhase.PHASE_3),
            ("phase2", PolicyPhase.PHASE_2),
            ("Phase 4", PolicyPhase.PHASE_4),
        ],
    )
    def test_accepted_forms(self, raw, expected) -> None:
        assert resolve_phase(raw) is expected

    @pytest.mark.parametrize("raw", [0, 5, "phase9", "", True, None])
    def test_rejected(self, raw) -> None:
        with pytest.raises(ValidationError):
            resolve_phase(raw)


# ---------------------------------------------------------------------------
# Health checks
# ---------------------------------------------------------------------------


class TestRunHealthCheck:
    def test_empty_rule_set_is_perfect(self) -> None:
        result = HealthScorer().run_health_check(PolicyPhase.PHASE_4)
        assert result.score == 100
        assert (result.critical, result.warning, result.info) == (0, 0, 0)

    def test_full_coverage_phase_one(self) -> None:
        result = HealthScorer().run_health_check(1, [_rule("EXE")], [ACME])
        assert result.score == 100
        assert result.coverage == 100.0
        assert result.findings == []

    def test_missing_in_scope_category_is_critical(self) -> None:
        result = HealthScorer().run_health_check(2, [_rule("EXE")])
        assert result.critical == 1
        assert result.score == 80
        assert result.coverage == 50.0
        assert result.findings[0].category is RuleCategory.SCRIPT

    def test_out_of_scope_rules_are_ignored(self) -> None:
        rules = [_rule("EXE"), _rule("DLL"), _rule("DLL")]
        result = HealthScorer().run_health_check(1, rules)
        assert result.warning == 0
        assert result.score == 100

    def test_deny_only_does_not_cover(self) -> None:
        result = HealthScorer().run_health_check(1, [_rule("EXE", action="Deny")])
        assert result.critical == 1

    def test_duplicate_rule_is_warning(self) -> None:
        result = HealthScorer().run_health_check(1, [_rule(), _rule()])
        assert result.warning == 1
        assert result.score == 95
        assert result.findings[0].code == "duplicate-rule"

    def test_overlapping_rule_is_warning(self) -> None:
        result = HealthScorer().run_health_check(1, [_rule(), _rule(action="Deny")])
        codes = [f.code for f in result.findings]
        assert codes == ["overlapping-rule"]

    def test_orphaned_publisher_is_info(self) -> None:
        other = "O=OTHER LTD, C=GB"
        result = HealthScorer().run_health_check(
            1, [_rule()], [ACME, {"name": "Other", "publisher_name": other}]
        )
        assert result.info == 1
        assert result.findings[0].level is FindingLevel.INFO
        assert other in result.findings[0].message

    def test_malformed_rules_are_skipped(self) -> None:
        result = HealthScorer().run_health_check(1, [{"bogus": True}, _rule().model_dump()])
        assert result.score == 100

    def test_only_malformed_rules_is_perfect(self) -> None:
        result = HealthScorer().run_health_check(4, [{"bogus": True}])
        assert result.score == 100

    def test_heavy_findings_clamp(self) -> None:
        rules = [_rule("EXE", action="Deny")]
        result = HealthScorer(HealthWeights(critical_penalty=60)).run_health_check(4, rules)
        assert result.critical == 4
        assert result.score == 0
