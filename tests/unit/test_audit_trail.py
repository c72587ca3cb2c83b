# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Unit tests for the audit trail."""

from __future__ import annotations

import csv
import io
import json
import logging
import threading
from datetime import UTC, datetime, timedelta

import pytest

from lockward.audit.events import (
    DEFAULT_SEVERITY,
    SEVERITY_BY_ACTION,
    AuditAction,
    AuditSeverity,
    severity_for,
    validate_payload,
)
from lockward.audit.sanitize import SENSITIVE_KEYS, sanitize_details
from lockward.audit.trail import (
    CSV_HEADER,
    RECENT_FAILURES_LIMIT,
    AuditIdGenerator,
    AuditTrail,
    get_audit_trail,
    reset_audit_trail,
    set_audit_trail,
)
from lockward.core.constants import REDACTION_MARKER
from lockward.core.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------


class TestSeverity:
    """The severity table is fixed and total."""

    def test_every_action_has_an_explicit_severity(self) -> None:
        assert set(SEVERITY_BY_ACTION) == set(AuditAction)

    def test_documented_families(self) -> None:
        assert severity_for(AuditAction.POLICY_DEPLOYED) is AuditSeverity.CRITICAL
        assert severity_for(AuditAction.POLICY_CREATED) is AuditSeverity.HIGH
        assert severity_for(AuditAction.SCAN_INITIATED) is AuditSeverity.MEDIUM
        assert severity_for(AuditAction.SCAN_COMPLETED) is AuditSeverity.MEDIUM
        assert severity_for(AuditAction.APP_STARTED) is AuditSeverity.LOW
        assert severity_for(AuditAction.APP_CLOSED) is AuditSeverity.LOW

    def test_unmapped_action_defaults_to_medium(self) -> None:
        assert DEFAULT_SEVERITY is AuditSeverity.MEDIUM
        assert severity_for("SOMETHING_NEW") is AuditSeverity.MEDIUM

    def test_accepts_plain_strings(self) -> None:
        assert severity_for("POLICY_DEPLOYED") is AuditSeverity.CRITICAL

    def test_same_action_same_severity(self, trail: AuditTrail) -> None:
        first = trail.log(AuditAction.GROUP_DELETED, {})
        second = trail.log(AuditAction.GROUP_DELETED, {}, success=False)
        assert first.severity == second.severity == AuditSeverity.CRITICAL


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


class TestSanitize:
    """Tests for sanitize_details."""

    def test_every_sensitive_key_is_redacted(self) -> None:
        values = [1, "x", None, {"a": 1}, [1, 2], 3.5, True]
        details = {key: values[i % len(values)] for i, key in enumerate(sorted(SENSITIVE_KEYS))}
        sanitized = sanitize_details(details)
        assert all(sanitized[key] == REDACTION_MARKER for key in SENSITIVE_KEYS)

    def test_idempotent(self) -> None:
        details = {"password": "hunter2", "user": "alice", "apiKey": 42, "nested": {"token": "t"}}
        once = sanitize_details(details)
        assert sanitize_details(once) == once

    def test_match_is_case_sensitive(self) -> None:
        sanitized = sanitize_details({"Password": "a", "TOKEN": "b"})
        assert sanitized == {"Password": "a", "TOKEN": "b"}

    def test_shallow_by_default(self) -> None:
        sanitized = sanitize_details({"outer": {"password": "p"}})
        assert sanitized["outer"]["password"] == "p"

    def test_recursive_when_requested(self) -> None:
        details = {"outer": {"password": "p", "items": [{"secret": "s", "ok": 1}]}}
        sanitized = sanitize_details(details, recursive=True)
        assert sanitized["outer"]["password"] == REDACTION_MARKER
        assert sanitized["outer"]["items"][0] == {"secret": REDACTION_MARKER, "ok": 1}

    def test_input_is_not_mutated(self) -> None:
        details = {"password": "p"}
        sanitize_details(details)
        assert details == {"password": "p"}


# ---------------------------------------------------------------------------
# Logging entries
# ---------------------------------------------------------------------------


class TestLog:
    """Tests for AuditTrail.log."""

    def test_entry_fields(self, trail: AuditTrail) -> None:
        entry = trail.log(AuditAction.RULE_CREATED, {"rule_name": "r", "rule_type": "Path"})
        assert entry.id.startswith("AUD-")
        assert entry.action == "RULE_CREATED"
        assert entry.severity is AuditSeverity.MEDIUM
        assert entry.actor == "tester"
        assert entry.machine == "test-host"
        assert entry.success is True
        assert entry.timestamp.tzinfo is not None

    def test_details_are_redacted_before_storage(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.CREDENTIAL_USED, {"username": "svc", "password": "hunter2"})
        stored = trail.get_entries()[0]
        assert stored.details["password"] == REDACTION_MARKER
        assert "hunter2" not in trail.export_to_csv()

    def test_nested_redaction_setting(self) -> None:
        trail = AuditTrail(actor="t", machine="m", redact_nested=True)
        trail.log(AuditAction.CONFIG_CHANGED, {"setting": "x", "new": {"token": "abc"}})
        assert trail.get_entries()[0].details["new"]["token"] == REDACTION_MARKER

    def test_returned_entry_is_a_copy(self, trail: AuditTrail) -> None:
        entry = trail.log(AuditAction.CONFIG_CHANGED, {"setting": "x", "values": [1]})
        entry.details["values"].append(2)
        assert trail.get_entries()[0].details["values"] == [1]

    def test_read_copies_are_independent(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.CONFIG_CHANGED, {"setting": "x", "values": [1]})
        trail.get_entries()[0].details["values"].append(99)
        assert trail.get_entries()[0].details["values"] == [1]

    def test_payload_mismatch_is_logged_not_raised(self, trail: AuditTrail, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="lockward.audit"):
            entry = trail.log(AuditAction.POLICY_DEPLOYED, {"unexpected": True})
        assert entry.details == {"unexpected": True}
        assert "did not match" in caplog.text

    def test_unserialisable_details_degrade(self, trail: AuditTrail) -> None:
        class Boom:
            def __str__(self) -> str:
                raise RuntimeError("no")

        entry = trail.log(AuditAction.CONFIG_CHANGED, {"setting": "x", "value": Boom()})
        assert entry.details == {"degraded": True}
        assert len(trail) == 1

    def test_failure_is_mirrored_to_logging(self, trail: AuditTrail, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="lockward.audit"):
            trail.log(AuditAction.POLICY_DEPLOYED, {}, success=False, error_message="boom")
        records = [r for r in caplog.records if r.name == "lockward.audit"]
        assert records[-1].levelno == logging.ERROR

    def test_retention_bound(self) -> None:
        trail = AuditTrail(max_entries=3, actor="t", machine="m")
        for i in range(5):
            trail.log(AuditAction.CONFIG_CHANGED, {"setting": str(i)})
        settings = [e.details["setting"] for e in trail.get_entries()]
        assert settings == ["2", "3", "4"]

    def test_json_log_flush(self, tmp_path) -> None:
        trail = AuditTrail(log_dir=tmp_path / "logs", actor="t", machine="m")
        trail.log(AuditAction.APP_STARTED, {"version": "1"})
        files = list((tmp_path / "logs").glob("audit-*.jsonl"))
        assert len(files) == 1
        line = json.loads(files[0].read_text().strip())
        assert line["action"] == "APP_STARTED"

    def test_clear_returns_removed_count(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.APP_STARTED)
        trail.log(AuditAction.APP_CLOSED)
        assert trail.clear() == 2
        assert trail.get_entries() == []


class TestPersistence:
    """Entries written to the JSONL log survive a restart."""

    def test_reload_on_construction(self, tmp_path) -> None:
        first = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        written = first.log(AuditAction.POLICY_CREATED, {"policy_name": "baseline", "rule_count": 2})

        second = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        [entry] = second.get_entries()
        assert entry.id == written.id
        assert entry.details == {"policy_name": "baseline", "rule_count": 2}
        assert written.id in second.export_to_csv()

    def test_reload_respects_retention(self, tmp_path) -> None:
        first = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        for i in range(5):
            first.log(AuditAction.CONFIG_CHANGED, {"setting": str(i)})
        second = AuditTrail(log_dir=tmp_path, max_entries=2, actor="t", machine="m")
        assert [e.details["setting"] for e in second.get_entries()] == ["3", "4"]

    def test_unreadable_lines_are_skipped(self, tmp_path, caplog) -> None:
        first = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        first.log(AuditAction.APP_STARTED, {"version": "1"})
        [log_file] = tmp_path.glob("audit-*.jsonl")
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write("{not json\n")
        with caplog.at_level(logging.WARNING, logger="lockward.audit"):
            second = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        assert len(second) == 1
        assert "Skipping unreadable audit record" in caplog.text

    def test_clear_removes_log_files(self, tmp_path) -> None:
        first = AuditTrail(log_dir=tmp_path, actor="t", machine="m")
        first.log(AuditAction.APP_STARTED, {"version": "1"})
        assert first.clear() == 1
        assert list(tmp_path.glob("audit-*.jsonl")) == []
        assert len(AuditTrail(log_dir=tmp_path, actor="t", machine="m")) == 0

    def test_unusable_log_dir(self, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(ConfigurationError, match="cannot be created") as exc_info:
            AuditTrail(log_dir=blocker, actor="t", machine="m")
        assert exc_info.value.context["audit_log_dir"] == str(blocker)


class TestIdentifiers:
    """Identifiers stay unique under concurrent generation."""

    def test_ids_unique_across_threads(self, trail: AuditTrail) -> None:
        def worker() -> None:
            for _ in range(200):
                trail.log(AuditAction.SCAN_INITIATED, {"target_count": 1, "scan_type": "quick"})

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [e.id for e in trail.get_entries()]
        assert len(ids) == 1600
        assert len(set(ids)) == 1600

    def test_generator_format(self) -> None:
        gen = AuditIdGenerator(prefix="X")
        prefix, ts, seq, suffix = gen().split("-")
        assert prefix == "X"
        assert ts.isdigit()
        assert seq == "1"
        assert len(suffix) == 12


# ---------------------------------------------------------------------------
# Queries and statistics
# ---------------------------------------------------------------------------


class TestQueries:
    """Tests for get_entries filtering."""

    def test_filters(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.POLICY_CREATED, {"policy_name": "a", "rule_count": 1})
        trail.log(AuditAction.POLICY_DEPLOYED, {"policy_name": "a", "target_ou": "OU=x"}, success=False)
        trail.log(AuditAction.APP_STARTED)

        assert len(trail.get_entries(action=AuditAction.POLICY_CREATED)) == 1
        assert len(trail.get_entries(success=False)) == 1
        assert len(trail.get_entries(severity=AuditSeverity.LOW)) == 1
        assert len(trail.get_entries(actor="tester")) == 3

    def test_order_is_oldest_first(self, trail: AuditTrail) -> None:
        for name in ("a", "b", "c"):
            trail.log(AuditAction.CONFIG_CHANGED, {"setting": name})
        assert [e.details["setting"] for e in trail.get_entries()] == ["a", "b", "c"]

    def test_time_range(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.APP_STARTED)
        now = datetime.now(UTC)
        assert len(trail.get_entries(start=now - timedelta(minutes=1))) == 1
        assert trail.get_entries(start=now + timedelta(minutes=1)) == []
        assert trail.get_entries(end=now - timedelta(minutes=1)) == []

    def test_naive_bounds_are_utc(self, trail: AuditTrail) -> None:
        trail.log(AuditAction.APP_STARTED)
        naive_past = datetime.now(UTC).replace(tzinfo=None) - timedelta(minutes=1)
        assert len(trail.get_entries(start=naive_past)) == 1
        assert trail.get_entries(end=naive_past) == []


class TestStats:
    """Tests for get_stats."""

    def test_empty_trail(self, trail: AuditTrail) -> None:
        stats = trail.get_stats()
        assert stats.total == 0
        assert stats.success_rate == 0
        assert stats.recent_failures == []

    def test_policy_scenario(self, trail: AuditTrail) -> None:
        trail.policy_created("Baseline", 10)
        trail.policy_created("Baseline-2", 12)
        trail.policy_deployed("Baseline", "OU=Workstations,DC=corp,DC=local", False, "Connection timeout")

        stats = trail.get_stats()
        assert stats.total >= 3
        assert stats.success_rate == pytest.approx(66.67, abs=0.01)
        assert len(stats.recent_failures) == 1
        failure = stats.recent_failures[0]
        assert failure.severity is AuditSeverity.CRITICAL
        assert failure.error_message == "Connection timeout"
        assert stats.by_action == {"POLICY_CREATED": 2, "POLICY_DEPLOYED": 1}
        assert stats.by_severity == {"HIGH": 2, "CRITICAL": 1}

    def test_recent_failures_newest_first_and_capped(self, trail: AuditTrail) -> None:
        for i in range(RECENT_FAILURES_LIMIT + 5):
            trail.log(AuditAction.LOGIN_FAILED, {"attempt": i}, success=False, error_message=str(i))
        failures = trail.get_stats().recent_failures
        assert len(failures) == RECENT_FAILURES_LIMIT
        assert failures[0].error_message == str(RECENT_FAILURES_LIMIT + 4)


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


class TestCsvExport:
    """CSV export survives parsing with standard quoting rules."""

    def test_header_only_when_empty(self, trail: AuditTrail) -> None:
        assert trail.export_to_csv() == ",".join(CSV_HEADER) + "\n"

    def test_round_trip(self, trail: AuditTrail) -> None:
        trail.log(
            AuditAction.CONFIG_CHANGED,
            {"setting": 'quote " and, comma', "note": "line1\nline2"},
            success=False,
            error_message='failed, "badly"\nsecond line',
        )
        trail.app_started()

        rows = list(csv.reader(io.StringIO(trail.export_to_csv())))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 3
        assert all(len(row) == len(CSV_HEADER) for row in rows)

        entry = trail.get_entries()[0]
        first = dict(zip(CSV_HEADER, rows[1], strict=True))
        assert first["ID"] == entry.id
        assert first["Timestamp"] == entry.timestamp.isoformat()
        assert first["Severity"] == "HIGH"
        assert first["User"] == "tester"
        assert first["Machine"] == "test-host"
        assert first["Success"] == "false"
        assert json.loads(first["Details"]) == entry.details
        assert first["Error"] == 'failed, "badly"\nsecond line'

    def test_explicit_entries_keep_order(self, trail: AuditTrail) -> None:
        a = trail.log(AuditAction.APP_STARTED)
        b = trail.log(AuditAction.APP_CLOSED)
        rows = list(csv.reader(io.StringIO(trail.export_to_csv([b, a]))))
        assert [r[0] for r in rows[1:]] == [b.id, a.id]


# ---------------------------------------------------------------------------
# Convenience wrappers
# ---------------------------------------------------------------------------


class TestConvenience:
    """Fixed-shape wrappers over log()."""

    def test_data_exported_hides_file_path(self, trail: AuditTrail) -> None:
        entry = trail.data_exported("audit_csv", 12, "C:\\Users\\alice\\export.csv")
        assert entry.details["file_path"] == REDACTION_MARKER
        assert entry.details["record_count"] == 12

    def test_scan_wrappers(self, trail: AuditTrail) -> None:
        started = trail.scan_initiated(["WS01", "WS02"], "full")
        done = trail.scan_completed(["WS01", "WS02"], 140, 1250.5)
        assert started.details == {"target_count": 2, "scan_type": "full"}
        assert done.details["results_count"] == 140

    def test_group_membership(self, trail: AuditTrail) -> None:
        added = trail.user_added_to_group("alice", "AppLocker-Admins")
        removed = trail.user_removed_from_group("alice", "AppLocker-Admins", False, "denied")
        assert added.severity is AuditSeverity.HIGH
        assert removed.success is False

    def test_app_lifecycle_is_low(self, trail: AuditTrail) -> None:
        assert trail.app_started().severity is AuditSeverity.LOW
        assert trail.app_closed().severity is AuditSeverity.LOW


class TestPayloads:
    def test_unknown_action_passes_through(self) -> None:
        assert validate_payload("NOT_AN_ACTION", {"a": 1}) == {"a": 1}

    def test_extra_keys_are_kept(self) -> None:
        result = validate_payload(AuditAction.EXPORT_DATA, {"export_type": "x", "record_count": 1, "extra": "y"})
        assert result["extra"] == "y"


class TestProcessScopedTrail:
    def test_get_set_reset(self, trail: AuditTrail) -> None:
        set_audit_trail(trail)
        assert get_audit_trail() is trail
        reset_audit_trail()
        assert get_audit_trail() is not trail
