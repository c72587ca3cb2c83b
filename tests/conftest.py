# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from pathlib import Path

import pytest

from lockward.audit.trail import AuditTrail
from lockward.core.config import Settings


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Reset process-scoped singletons between tests."""
    from lockward.audit.trail import reset_audit_trail
    from lockward.commands import reset_router
    from lockward.policy.templates import reset_template_catalog

    reset_audit_trail()
    reset_router()
    reset_template_catalog()
    yield
    reset_audit_trail()
    reset_router()
    reset_template_catalog()


@pytest.fixture
def trail() -> AuditTrail:
    return AuditTrail(actor="tester", machine="test-host")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings whose output directories all live under *tmp_path*."""
    return Settings(
        _env_file=None,
        output_dir=tmp_path,
        policy_dir=tmp_path / "policies",
        audit_export_dir=tmp_path / "audit",
        snapshot_dir=tmp_path / "snapshots",
        evidence_dir=tmp_path / "evidence",
    )


@pytest.fixture
def lockward_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the environment-driven settings at *tmp_path*."""
    monkeypatch.setenv("LOCKWARD_POLICY_DIR", str(tmp_path / "policies"))
    monkeypatch.setenv("LOCKWARD_AUDIT_EXPORT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("LOCKWARD_SNAPSHOT_DIR", str(tmp_path / "snapshots"))
    monkeypatch.setenv("LOCKWARD_EVIDENCE_DIR", str(tmp_path / "evidence"))
    monkeypatch.delenv("LOCKWARD_API_KEYS", raising=False)
    return tmp_path
