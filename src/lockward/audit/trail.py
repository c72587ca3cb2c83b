# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Append-only, in-memory audit trail with deterministic severity and redaction."""

from __future__ import annotations

import csv
import getpass
import io
import itertools
import json
import logging
import socket
import threading
import time
import uuid
from collections import deque
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PayloadValidationError

from lockward.audit.events import (
    AuditAction,
    AuditEntry,
    AuditSeverity,
    severity_for,
    validate_payload,
)
from lockward.audit.sanitize import sanitize_details
from lockward.core.constants import REDACTION_MARKER
from lockward.core.exceptions import ConfigurationError

_logger = logging.getLogger("lockward.audit")

CSV_HEADER = ["ID", "Timestamp", "Action", "Severity", "User", "Machine", "Success", "Details", "Error"]
RECENT_FAILURES_LIMIT = 10

# Module-level default instance
_audit_trail: AuditTrail | None = None


class AuditIdGenerator:
    """Produces ``AUD-<time_ns>-<counter>-<random>`` identifiers.

    The counter is advanced under a lock, so two calls in the same
    nanosecond tick still yield distinct identifiers even before the
    random suffix is considered.
    """

    def __init__(self, prefix: str = "AUD") -> None:
        self._prefix = prefix
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        with self._lock:
            seq = next(self._counter)
            ts = time.time_ns()
        return f"{self._prefix}-{ts}-{seq}-{uuid.uuid4().hex[:12]}"


class AuditStats(BaseModel):
    total: int
    by_action: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
    success_rate: float
    recent_failures: list[AuditEntry] = Field(default_factory=list)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def detect_environment() -> tuple[str, str]:
    """Return ``(user, machine)`` for the current process, with fallbacks."""
    try:
        user = getpass.getuser() or "SYSTEM"
    except (KeyError, OSError):
        user = "SYSTEM"
    try:
        machine = socket.gethostname() or "localhost"
    except OSError:
        machine = "localhost"
    return user, machine


class AuditTrail:
    """Records security-relevant actions for compliance evidence.

    Entries are appended under a lock and never mutated; readers get deep
    copies.  :meth:`log` never raises: if an entry cannot be built as
    requested, a degraded entry is stored and returned instead.

    Args:
        max_entries: Retention bound; the oldest entries are dropped first.
        log_dir: When set, every entry is also appended to a daily JSONL file.
        redact_nested: Redact sensitive keys inside nested mappings too.
        actor: User recorded on entries (detected from the OS if omitted).
        machine: Host recorded on entries (detected from the OS if omitted).
    """

    def __init__(
        self,
        *,
        max_entries: int = 10_000,
        log_dir: Path | None = None,
        redact_nested: bool = False,
        actor: str | None = None,
        machine: str | None = None,
        id_generator: AuditIdGenerator | None = None,
    ) -> None:
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._ids = id_generator or AuditIdGenerator()
        self._redact_nested = redact_nested
        self._log_dir = log_dir
        if self._log_dir is not None:
            try:
                self._log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigurationError(
                    f"Audit log directory cannot be created: {exc}",
                    context={"audit_log_dir": str(self._log_dir)},
                ) from exc
            self._entries.extend(self._load_json_logs())

        detected_user, detected_machine = detect_environment()
        self.actor = actor or detected_user
        self.machine = machine or detected_machine

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -----------------------------------------------------------------
    # Writing
    # -----------------------------------------------------------------

    def log(
        self,
        action: AuditAction | str,
        details: dict[str, Any] | None = None,
        success: bool = True,
        error_message: str | None = None,
    ) -> AuditEntry:
        """Append one entry and return a copy of it."""
        try:
            entry = self._build_entry(action, details or {}, success, error_message)
        except Exception:
            _logger.exception("Failed to build audit entry for %s; storing degraded entry", action)
            entry = AuditEntry(
                id=self._ids(),
                action=str(action),
                severity=severity_for(action),
                actor=self.actor,
                machine=self.machine,
                success=bool(success),
                details={"degraded": True},
                error_message=error_message if isinstance(error_message, str) else None,
            )

        with self._lock:
            self._entries.append(entry)

        self._write_json_log(entry)
        self._emit(entry)
        return entry.model_copy(deep=True)

    def _build_entry(
        self,
        action: AuditAction | str,
        details: dict[str, Any],
        success: bool,
        error_message: str | None,
    ) -> AuditEntry:
        sanitized = sanitize_details(details, recursive=self._redact_nested)
        try:
            sanitized = validate_payload(action, sanitized)
        except PayloadValidationError as exc:
            _logger.warning(
                "Audit payload for %s did not match its declared shape: %s",
                action,
                exc.errors(include_url=False),
            )

        return AuditEntry(
            id=self._ids(),
            timestamp=datetime.now(UTC),
            action=str(action),
            severity=severity_for(action),
            actor=self.actor,
            machine=self.machine,
            success=success,
            details=json.loads(json.dumps(sanitized, default=str)),
            error_message=error_message,
        )

    def _emit(self, entry: AuditEntry) -> None:
        if entry.success:
            _logger.info(
                "[AUDIT] %s id=%s severity=%s user=%s",
                entry.action,
                entry.id,
                entry.severity,
                entry.actor,
                extra={"audit_id": entry.id},
            )
        else:
            _logger.error(
                "[AUDIT] %s id=%s severity=%s user=%s error=%s",
                entry.action,
                entry.id,
                entry.severity,
                entry.actor,
                entry.error_message,
                extra={"audit_id": entry.id},
            )

    def _write_json_log(self, entry: AuditEntry) -> None:
        """Append a single JSON line to the daily audit log file."""
        if self._log_dir is None:
            return
        try:
            today = datetime.now(UTC).strftime("%Y-%m-%d")
            log_file = self._log_dir / f"audit-{today}.jsonl"
            line = json.dumps(entry.model_dump(mode="json"), default=str)
            with log_file.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except Exception:
            _logger.exception("Failed to write JSON audit log")

    def _json_log_files(self) -> list[Path]:
        if self._log_dir is None:
            return []
        return sorted(self._log_dir.glob("audit-*.jsonl"))

    def _load_json_logs(self) -> list[AuditEntry]:
        """Read retained entries back from the daily JSONL files, oldest first."""
        loaded: list[AuditEntry] = []
        for log_file in self._json_log_files():
            try:
                lines = log_file.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                _logger.warning("Cannot read audit log %s: %s", log_file, exc)
                continue
            for lineno, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                try:
                    loaded.append(AuditEntry.model_validate_json(line))
                except PayloadValidationError:
                    _logger.warning("Skipping unreadable audit record %s:%d", log_file.name, lineno)
        if loaded:
            _logger.info("Reloaded %d audit entries from %s", len(loaded), self._log_dir)
        return loaded

    def _remove_json_logs(self) -> None:
        for log_file in self._json_log_files():
            try:
                log_file.unlink()
            except OSError as exc:
                _logger.warning("Cannot remove audit log %s: %s", log_file, exc)

    def clear(self) -> int:
        """Drop every stored entry and return how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        self._remove_json_logs()
        _logger.warning("Audit trail cleared: %d entries removed", removed)
        return removed

    # -----------------------------------------------------------------
    # Reading
    # -----------------------------------------------------------------

    def _snapshot(self) -> list[AuditEntry]:
        with self._lock:
            return list(self._entries)

    def get_entries(
        self,
        *,
        action: AuditAction | str | None = None,
        success: bool | None = None,
        severity: AuditSeverity | str | None = None,
        actor: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AuditEntry]:
        """Return copies of matching entries, oldest first."""
        entries = self._snapshot()
        if action is not None:
            entries = [e for e in entries if e.action == action]
        if success is not None:
            entries = [e for e in entries if e.success is success]
        if severity is not None:
            entries = [e for e in entries if e.severity == severity]
        if actor is not None:
            entries = [e for e in entries if e.actor == actor]
        if start is not None:
            start = _as_utc(start)
            entries = [e for e in entries if e.timestamp >= start]
        if end is not None:
            end = _as_utc(end)
            entries = [e for e in entries if e.timestamp <= end]
        return [e.model_copy(deep=True) for e in entries]

    def get_stats(self) -> AuditStats:
        entries = self._snapshot()
        by_action: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        successes = 0
        for entry in entries:
            by_action[entry.action] = by_action.get(entry.action, 0) + 1
            by_severity[entry.severity] = by_severity.get(entry.severity, 0) + 1
            if entry.success:
                successes += 1

        failures = [e for e in entries if not e.success]
        recent = [e.model_copy(deep=True) for e in reversed(failures[-RECENT_FAILURES_LIMIT:])]

        total = len(entries)
        return AuditStats(
            total=total,
            by_action=by_action,
            by_severity=by_severity,
            success_rate=(successes / total) * 100 if total else 0.0,
            recent_failures=recent,
        )

    def export_to_csv(self, entries: Iterable[AuditEntry] | None = None) -> str:
        """Serialise *entries* (default: all) as CSV with the fixed header."""
        rows = self._snapshot() if entries is None else list(entries)
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry in rows:
            writer.writerow([
                entry.id,
                entry.timestamp.isoformat(),
                entry.action,
                entry.severity,
                entry.actor,
                entry.machine,
                "true" if entry.success else "false",
                json.dumps(entry.details, default=str),
                entry.error_message or "",
            ])
        return buf.getvalue()

    # -----------------------------------------------------------------
    # Convenience methods for common actions
    # -----------------------------------------------------------------

    def policy_deployed(
        self,
        policy_name: str,
        target_ou: str,
        success: bool = True,
        error: str | None = None,
    ) -> AuditEntry:
        return self.log(
            AuditAction.POLICY_DEPLOYED,
            {"policy_name": policy_name, "target_ou": target_ou},
            success,
            error,
        )

    def policy_created(self, policy_name: str, rule_count: int) -> AuditEntry:
        return self.log(
            AuditAction.POLICY_CREATED,
            {"policy_name": policy_name, "rule_count": rule_count},
        )

    def rule_created(
        self,
        rule_name: str,
        rule_type: str,
        success: bool = True,
        error: str | None = None,
    ) -> AuditEntry:
        return self.log(
            AuditAction.RULE_CREATED,
            {"rule_name": rule_name, "rule_type": rule_type},
            success,
            error,
        )

    def user_added_to_group(
        self,
        username: str,
        group_name: str,
        success: bool = True,
        error: str | None = None,
    ) -> AuditEntry:
        return self.log(
            AuditAction.USER_ADDED_TO_GROUP,
            {"username": username, "group_name": group_name},
            success,
            error,
        )

    def user_removed_from_group(
        self,
        username: str,
        group_name: str,
        success: bool = True,
        error: str | None = None,
    ) -> AuditEntry:
        return self.log(
            AuditAction.USER_REMOVED_FROM_GROUP,
            {"username": username, "group_name": group_name},
            success,
            error,
        )

    def scan_initiated(self, targets: Sequence[str], scan_type: str) -> AuditEntry:
        return self.log(
            AuditAction.SCAN_INITIATED,
            {"target_count": len(targets), "scan_type": scan_type},
        )

    def scan_completed(
        self,
        targets: Sequence[str],
        results_count: int,
        duration_ms: float,
    ) -> AuditEntry:
        return self.log(
            AuditAction.SCAN_COMPLETED,
            {
                "target_count": len(targets),
                "results_count": results_count,
                "duration_ms": duration_ms,
            },
        )

    def data_exported(self, export_type: str, record_count: int, file_path: str) -> AuditEntry:
        """Log an export; the destination *file_path* is never recorded."""
        return self.log(
            AuditAction.EXPORT_DATA,
            {
                "export_type": export_type,
                "record_count": record_count,
                "file_path": REDACTION_MARKER,
            },
        )

    def config_changed(self, setting: str, **details: Any) -> AuditEntry:
        return self.log(AuditAction.CONFIG_CHANGED, {"setting": setting, **details})

    def app_started(self) -> AuditEntry:
        from lockward import __version__

        return self.log(AuditAction.APP_STARTED, {"version": __version__})

    def app_closed(self) -> AuditEntry:
        return self.log(AuditAction.APP_CLOSED, {})


def get_audit_trail() -> AuditTrail:
    """Return the process-scoped AuditTrail, creating it from settings."""
    global _audit_trail
    if _audit_trail is None:
        from lockward.core.config import get_settings

        settings = get_settings()
        _audit_trail = AuditTrail(
            max_entries=settings.audit_max_entries,
            log_dir=Path(settings.audit_log_dir) if settings.audit_log_dir else None,
            redact_nested=settings.audit_redact_nested,
        )
    return _audit_trail


def set_audit_trail(trail: AuditTrail) -> None:
    """Replace the process-scoped AuditTrail (useful for testing)."""
    global _audit_trail
    _audit_trail = trail


def reset_audit_trail() -> None:
    """Forget the process-scoped AuditTrail so the next call builds a fresh one."""
    global _audit_trail
    _audit_trail = None
