# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_OUTPUT_SUBDIRS = {
    "policy_dir": "policies",
    "audit_export_dir": "audit",
    "snapshot_dir": "snapshots",
    "evidence_dir": "evidence",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LOCKWARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Output locations; unset directories live under output_dir
    output_dir: Path = Path("output")
    policy_dir: Path | None = None
    audit_export_dir: Path | None = None
    snapshot_dir: Path | None = None
    evidence_dir: Path | None = None

    @model_validator(mode="after")
    def _derive_output_dirs(self) -> "Settings":
        for field, name in _OUTPUT_SUBDIRS.items():
            if getattr(self, field) is None:
                setattr(self, field, self.output_dir / name)
        return self

    # Evidence freshness
    required_audit_days: int = 14

    # Health check weights
    health_base_score: int = 100
    health_critical_penalty: int = 20
    health_warning_penalty: int = 5
    health_info_penalty: int = 1

    # Audit trail
    audit_max_entries: int = 10_000
    audit_log_dir: str = ""
    audit_redact_nested: bool = False

    # Rule generation
    default_target_group: str = "Everyone"
    enforcement_mode: str = "AuditOnly"
    templates_dir: str = ""

    @field_validator("enforcement_mode")
    @classmethod
    def _check_enforcement_mode(cls, v: str) -> str:
        allowed = ("NotConfigured", "AuditOnly", "Enabled")
        if v not in allowed:
            msg = f"enforcement_mode must be one of {', '.join(allowed)}"
            raise ValueError(msg)
        return v

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_keys: list[str] = []

    @field_validator("api_keys", mode="before")
    @classmethod
    def _parse_api_keys(cls, v: object) -> list[str]:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v if isinstance(v, list) else []

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


def get_settings() -> Settings:
    return Settings()
