# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Evidence readiness checks and evidence package assembly.

Three evidence categories are tracked: rule documents written by the rule
compiler, CSV exports of the audit trail, and JSON system snapshots.  Each
category's freshness is the modification time of its newest file compared
against ``required_audit_days``.  Missing or stale categories are reported
as data; only I/O failure while assembling a package is an error.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import json
import logging
import threading
import zipfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from lockward.audit.trail import AuditTrail, get_audit_trail
from lockward.core.config import Settings, get_settings
from lockward.core.constants import EVIDENCE_PACKAGE_PREFIX, PolicyDefinitionState, SyncState
from lockward.core.exceptions import ConflictError, ExternalServiceError, ValidationError
from lockward.evidence.models import (
    ArtifactFailure,
    ComplianceReport,
    EvidencePackage,
    EvidenceStatus,
    EvidenceValidation,
)
from lockward.storage.base import FileInfo, FileStore
from lockward.storage.local import LocalFileStore

logger = logging.getLogger("lockward.evidence.validator")

POLICY_PATTERN = "*.xml"
AUDIT_EXPORT_PATTERN = "*.csv"
SNAPSHOT_PATTERN = "*.json"
MANIFEST_NAME = "manifest.json"

# One package build at a time per evidence directory
_package_locks: dict[Path, threading.Lock] = {}
_package_locks_guard = threading.Lock()


def package_lock(evidence_dir: Path) -> threading.Lock:
    """Return the lock serialising package builds into *evidence_dir*."""
    key = Path(evidence_dir).resolve()
    with _package_locks_guard:
        return _package_locks.setdefault(key, threading.Lock())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EvidenceValidator:
    """Reports evidence readiness and builds evidence packages.

    Args:
        settings: Source of directory locations and the freshness threshold.
        store: File store used for every read and write.
        audit_trail: Trail exported into packages and audit exports.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: FileStore | None = None,
        audit_trail: AuditTrail | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        settings = settings or get_settings()
        self.policy_dir = Path(settings.policy_dir)
        self.audit_export_dir = Path(settings.audit_export_dir)
        self.snapshot_dir = Path(settings.snapshot_dir)
        self.evidence_dir = Path(settings.evidence_dir)
        self.required_audit_days = settings.required_audit_days
        self._store = store or LocalFileStore()
        self._trail = audit_trail
        self._clock = clock

    @property
    def audit_trail(self) -> AuditTrail:
        return self._trail if self._trail is not None else get_audit_trail()

    def _is_stale(self, info: FileInfo, now: datetime) -> bool:
        return now - info.modified_at > timedelta(days=self.required_audit_days)

    # -----------------------------------------------------------------
    # Readiness
    # -----------------------------------------------------------------

    async def get_evidence_status(self) -> EvidenceStatus:
        now = self._clock()
        policies = await self._store.list_files(self.policy_dir, POLICY_PATTERN)
        exports = await self._store.list_files(self.audit_export_dir, AUDIT_EXPORT_PATTERN)
        snapshots = await self._store.list_files(self.snapshot_dir, SNAPSHOT_PATTERN)

        if not policies:
            policy_state = PolicyDefinitionState.INCOMPLETE
        elif self._is_stale(policies[0], now):
            policy_state = PolicyDefinitionState.STALE
        else:
            policy_state = PolicyDefinitionState.COMPLETE

        newest = [files[0].modified_at for files in (policies, exports, snapshots) if files]
        status = EvidenceStatus(
            policy_definitions=policy_state,
            audit_logs=self._sync_state(exports, now),
            system_snapshots=self._sync_state(snapshots, now),
            last_update=max(newest) if newest else None,
        )
        logger.debug("Evidence status: %s", status.model_dump(mode="json"))
        return status

    def _sync_state(self, files: list[FileInfo], now: datetime) -> SyncState:
        if not files:
            return SyncState.MISSING
        return SyncState.STALE if self._is_stale(files[0], now) else SyncState.SYNCED

    async def validate_evidence_completeness(self) -> EvidenceValidation:
        status = await self.get_evidence_status()
        missing: list[str] = []
        warnings: list[str] = []

        if status.policy_definitions is PolicyDefinitionState.INCOMPLETE:
            missing.append("Policy definitions")
        elif status.policy_definitions is PolicyDefinitionState.STALE:
            warnings.append("Policy definitions are stale")

        for label, state in (("Audit logs", status.audit_logs), ("System snapshots", status.system_snapshots)):
            if state is SyncState.MISSING:
                missing.append(label)
            elif state is SyncState.STALE:
                warnings.append(f"{label} are stale")

        result = EvidenceValidation(is_valid=not missing, missing_items=missing, warnings=warnings)
        if not result.is_valid:
            logger.warning("Evidence incomplete; missing: %s", ", ".join(missing))
        return result

    # -----------------------------------------------------------------
    # Exports and packages
    # -----------------------------------------------------------------

    async def export_audit_log(self) -> Path:
        """Write the trail's CSV export into the audit export directory.

        Raises:
            ValidationError: If the trail holds no entries.
        """
        trail = self.audit_trail
        if len(trail) == 0:
            raise ValidationError("Audit trail is empty; nothing to export", field="audit_trail")
        now = self._clock()
        path = self.audit_export_dir / f"audit-export-{now:%Y%m%dT%H%M%S%fZ}.csv"
        await self._store.write_text(path, trail.export_to_csv())
        logger.info("Exported audit log to %s", path)
        return path

    async def generate_evidence_package(self) -> EvidencePackage:
        """Bundle rule documents, an audit export, and the latest snapshot.

        Raises:
            ConflictError: If a package is already being built into the
                same evidence directory.
            ExternalServiceError: If the package cannot be listed or written.
        """
        lock = package_lock(self.evidence_dir)
        if not lock.acquire(blocking=False):
            raise ConflictError(
                "Evidence package generation already in progress",
                context={"evidence_dir": str(self.evidence_dir)},
            )
        try:
            return await self._build_package()
        finally:
            lock.release()

    async def _build_package(self) -> EvidencePackage:
        now = self._clock()
        artifacts: dict[str, bytes] = {}
        failed: list[ArtifactFailure] = []

        policies = await self._store.list_files(self.policy_dir, POLICY_PATTERN)
        if not policies:
            failed.append(ArtifactFailure(name="policies", error="no rule documents found"))
        for info in sorted(policies, key=lambda i: i.path.name):
            await self._collect(f"policies/{info.path.name}", info.path, artifacts, failed)

        artifacts["audit/audit-log.csv"] = self.audit_trail.export_to_csv().encode("utf-8")

        snapshots = await self._store.list_files(self.snapshot_dir, SNAPSHOT_PATTERN)
        if snapshots:
            latest = snapshots[0]
            await self._collect(f"snapshots/{latest.path.name}", latest.path, artifacts, failed)
        else:
            failed.append(ArtifactFailure(name="snapshots", error="no system snapshot found"))

        manifest = {
            "created_at": now.isoformat(),
            "required_audit_days": self.required_audit_days,
            "artifacts": [
                {"name": name, "sha256": hashlib.sha256(data).hexdigest(), "size": len(data)}
                for name, data in artifacts.items()
            ],
            "failed": [f.model_dump() for f in failed],
        }
        artifacts[MANIFEST_NAME] = json.dumps(manifest, indent=2).encode("utf-8")

        archive = await asyncio.to_thread(_zip_bytes, artifacts)
        path = self.evidence_dir / f"{EVIDENCE_PACKAGE_PREFIX}{now:%Y%m%dT%H%M%S%fZ}.zip"
        await self._store.write_bytes(path, archive)

        logger.info(
            "Evidence package %s written with %d artifact(s), %d failure(s)",
            path,
            len(artifacts),
            len(failed),
        )
        return EvidencePackage(path=str(path), created_at=now, artifacts=list(artifacts), failed=failed)

    async def _collect(
        self,
        name: str,
        path: Path,
        artifacts: dict[str, bytes],
        failed: list[ArtifactFailure],
    ) -> None:
        try:
            artifacts[name] = await self._store.read_bytes(path)
        except ExternalServiceError as exc:
            logger.warning("Could not include %s: %s", name, exc.message)
            failed.append(ArtifactFailure(name=name, error=exc.message))

    async def get_historical_reports(self) -> list[ComplianceReport]:
        """List previously generated packages, newest first."""
        files = await self._store.list_files(self.evidence_dir, f"{EVIDENCE_PACKAGE_PREFIX}*.zip")
        return [
            ComplianceReport(
                id=info.path.stem,
                name=info.path.name,
                created_at=info.modified_at,
                path=str(info.path),
                size_bytes=info.size,
            )
            for info in files
        ]


def _zip_bytes(artifacts: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in artifacts.items():
            zf.writestr(name, data)
    return buf.getvalue()
