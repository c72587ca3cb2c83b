# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Named command boundary over the audit, policy, and compliance services.

Every public operation is registered under a ``namespace:operation`` name
and invoked with a positional argument tuple.  :meth:`CommandRouter.dispatch`
never raises: it returns a :class:`CommandResult` whose ``error`` carries
the failing exception's code, message, and context.  Commands that change
state record exactly one audit entry per call.
"""

from __future__ import annotations

import csv
import inspect
import io
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from lockward.audit.events import AuditAction
from lockward.audit.trail import AuditTrail, get_audit_trail
from lockward.core.config import Settings, get_settings
from lockward.core.constants import REDACTION_MARKER
from lockward.core.exceptions import LockwardError, NotFoundError, ValidationError
from lockward.evidence.validator import EvidenceValidator
from lockward.policy.compiler import (
    RuleCompiler,
    detect_duplicates,
    generate_rule_xml,
    group_by_publisher,
)
from lockward.policy.health import HealthScorer, HealthWeights
from lockward.policy.models import BatchResult, InventoryItem
from lockward.policy.templates import TemplateCatalog, create_rule_from_template, get_template_catalog
from lockward.storage.base import FileStore
from lockward.storage.local import LocalFileStore

logger = logging.getLogger("lockward.commands")

Handler = Callable[..., Awaitable[Any]]
AuditDetails = Callable[[tuple[Any, ...], Any], dict[str, Any]]


class CommandError(BaseModel):
    code: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)


class CommandResult(BaseModel):
    success: bool
    data: Any = None
    error: CommandError | None = None


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    description: str = ""
    audit_action: AuditAction | None = None
    audit_details: AuditDetails | None = None

    @property
    def mutating(self) -> bool:
        return self.audit_action is not None


def _error_from(exc: Exception) -> CommandError:
    if isinstance(exc, LockwardError):
        return CommandError(**exc.to_dict())
    if isinstance(exc, PydanticValidationError):
        return CommandError(
            code=ValidationError.code,
            message=f"Invalid input: {exc.error_count()} error(s)",
            context={"errors": exc.errors(include_url=False, include_input=False, include_context=False)},
        )
    return CommandError(code="INTERNAL_ERROR", message=str(exc) or type(exc).__name__)


class CommandRouter:
    """Registry and dispatcher for named commands."""

    def __init__(self, audit_trail: AuditTrail | None = None) -> None:
        self._commands: dict[str, Command] = {}
        self._trail = audit_trail

    @property
    def audit_trail(self) -> AuditTrail:
        return self._trail if self._trail is not None else get_audit_trail()

    def register(
        self,
        name: str,
        handler: Handler,
        *,
        description: str = "",
        audit_action: AuditAction | None = None,
        audit_details: AuditDetails | None = None,
    ) -> None:
        if name in self._commands:
            raise ValueError(f"Command already registered: {name}")
        self._commands[name] = Command(name, handler, description, audit_action, audit_details)

    def names(self) -> list[str]:
        return sorted(self._commands)

    def get(self, name: str) -> Command:
        try:
            return self._commands[name]
        except KeyError:
            raise NotFoundError("Command", name) from None

    async def dispatch(self, name: str, *args: Any) -> CommandResult:
        try:
            command = self.get(name)
        except NotFoundError as exc:
            logger.warning("Unknown command requested: %s", name)
            return CommandResult(success=False, error=_error_from(exc))

        try:
            inspect.signature(command.handler).bind(*args)
        except TypeError as exc:
            err = ValidationError(f"Invalid arguments for {name}: {exc}", field="args")
            return self._finish(command, args, CommandResult(success=False, error=_error_from(err)))

        try:
            value = await command.handler(*args)
        except (LockwardError, PydanticValidationError) as exc:
            logger.warning("Command %s failed: %s", name, exc, extra={"command": name})
            result = CommandResult(success=False, error=_error_from(exc))
        except Exception as exc:
            logger.exception("Command %s raised unexpectedly", name, extra={"command": name})
            result = CommandResult(success=False, error=_error_from(exc))
        else:
            result = self._result_from(value)
        return self._finish(command, args, result, value=result.data)

    @staticmethod
    def _result_from(value: Any) -> CommandResult:
        data = to_jsonable_python(value)
        if isinstance(value, BatchResult) and not value.success:
            return CommandResult(
                success=False,
                data=data,
                error=CommandError(
                    code="OPERATION_FAILED",
                    message=value.error or "Operation failed",
                    context={"failures": len(value.failures)},
                ),
            )
        return CommandResult(success=True, data=data)

    def _finish(
        self,
        command: Command,
        args: tuple[Any, ...],
        result: CommandResult,
        *,
        value: Any = None,
    ) -> CommandResult:
        if command.audit_action is None:
            return result
        details: dict[str, Any] = {"command": command.name}
        if result.success and command.audit_details is not None:
            try:
                details.update(command.audit_details(args, value))
            except (KeyError, TypeError, AttributeError) as exc:
                logger.warning("Could not derive audit details for %s: %s", command.name, exc)
        self.audit_trail.log(
            command.audit_action,
            details,
            success=result.success,
            error_message=result.error.message if result.error else None,
        )
        return result


# ---------------------------------------------------------------------------
# Default command set
# ---------------------------------------------------------------------------


def _parse_time(value: Any) -> datetime | None:
    """Parse an ISO-8601 bound; values without an offset are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            raise ValidationError(f"Invalid ISO-8601 timestamp: {value!r}", field="time") from None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _as_items(items: Any) -> list[InventoryItem]:
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")
    return [i if isinstance(i, InventoryItem) else InventoryItem.model_validate(i) for i in items]


def _csv_rows(text: str) -> int:
    return max(0, sum(1 for _ in csv.reader(io.StringIO(text))) - 1)


def _policy_name(_args: tuple[Any, ...], data: Any) -> dict[str, Any]:
    return {
        "policy_name": Path(data["output_path"]).name,
        "rule_count": data["rule_count"],
    }


def build_default_router(
    settings: Settings | None = None,
    *,
    audit_trail: AuditTrail | None = None,
    store: FileStore | None = None,
    catalog: TemplateCatalog | None = None,
) -> CommandRouter:
    """Wire the standard services into a router."""
    settings = settings or get_settings()
    store = store or LocalFileStore()
    router = CommandRouter(audit_trail)
    compiler = RuleCompiler(store, default_target_group=settings.default_target_group)
    scorer = HealthScorer(HealthWeights.from_settings(settings))
    validator = EvidenceValidator(settings, store=store, audit_trail=audit_trail)

    def policy_path(output_path: Any) -> Path:
        if not isinstance(output_path, str | Path) or not str(output_path).strip():
            raise ValidationError("output_path must be a non-empty path", field="output_path")
        path = Path(output_path)
        # A bare file name lands in the configured policy directory
        if not path.is_absolute() and path.parent == Path("."):
            return Path(settings.policy_dir) / path
        return path

    def with_mode(options: Mapping[str, Any] | None) -> dict[str, Any]:
        return {"enforcement_mode": settings.enforcement_mode, **(options or {})}

    # -- audit -------------------------------------------------------------

    async def get_entries(filters: Mapping[str, Any] | None = None) -> Any:
        f = dict(filters or {})
        return router.audit_trail.get_entries(
            action=f.get("action"),
            success=f.get("success"),
            severity=f.get("severity"),
            actor=f.get("actor"),
            start=_parse_time(f.get("start")),
            end=_parse_time(f.get("end")),
        )

    async def get_stats() -> Any:
        return router.audit_trail.get_stats()

    async def export_csv(filters: Mapping[str, Any] | None = None) -> str:
        entries = await get_entries(filters) if filters else None
        return router.audit_trail.export_to_csv(entries)

    async def clear() -> dict[str, int]:
        return {"removed": router.audit_trail.clear()}

    router.register("audit:getEntries", get_entries, description="List audit entries, oldest first")
    router.register("audit:getStats", get_stats, description="Audit totals and recent failures")
    router.register(
        "audit:exportCSV",
        export_csv,
        description="Export audit entries as CSV text",
        audit_action=AuditAction.EXPORT_DATA,
        audit_details=lambda _a, data: {"export_type": "audit_csv", "record_count": _csv_rows(data)},
    )
    router.register(
        "audit:clear",
        clear,
        description="Remove every stored audit entry",
        audit_action=AuditAction.CONFIG_CHANGED,
        audit_details=lambda _a, data: {"setting": "audit_trail", "removed": data["removed"]},
    )

    # -- policy ------------------------------------------------------------

    async def rule_xml(spec: Mapping[str, Any]) -> str:
        return generate_rule_xml(spec)

    async def batch_rules(items: list[Any], output_path: str, options: Mapping[str, Any] | None = None) -> Any:
        return await compiler.batch_generate_rules(items, policy_path(output_path), with_mode(options))

    async def publisher_rule(publisher: str, output_path: str, options: Mapping[str, Any] | None = None) -> Any:
        return await compiler.create_publisher_rule(publisher, policy_path(output_path), with_mode(options))

    async def batch_publisher_rules(
        publishers: list[str], output_path: str, options: Mapping[str, Any] | None = None
    ) -> Any:
        if not isinstance(publishers, list):
            raise ValidationError("publishers must be a list", field="publishers")
        return await compiler.batch_create_publisher_rules(
            publishers, policy_path(output_path), with_mode(options)
        )

    async def by_publisher(items: list[Any]) -> Any:
        return group_by_publisher(_as_items(items))

    async def duplicates(items: list[Any]) -> Any:
        return detect_duplicates(_as_items(items))

    async def templates(category: str | None = None) -> Any:
        return (catalog or get_template_catalog()).list_templates(category)

    async def from_template(template_id: str, output_path: str, options: Mapping[str, Any] | None = None) -> Any:
        return await create_rule_from_template(
            template_id,
            policy_path(output_path),
            with_mode(options),
            compiler=compiler,
            catalog=catalog,
        )

    async def health_check(phase: Any, rules: list[Any] | None = None, publishers: list[Any] | None = None) -> Any:
        return scorer.run_health_check(phase, rules or (), publishers or ())

    router.register("policy:generateRuleXml", rule_xml, description="Compile one rule element")
    router.register(
        "policy:batchGenerateRules",
        batch_rules,
        description="Compile inventory items into a policy document",
        audit_action=AuditAction.POLICY_CREATED,
        audit_details=_policy_name,
    )
    router.register(
        "policy:createPublisherRule",
        publisher_rule,
        description="Write a single publisher rule",
        audit_action=AuditAction.POLICY_CREATED,
        audit_details=_policy_name,
    )
    router.register(
        "policy:batchCreatePublisherRules",
        batch_publisher_rules,
        description="Write one publisher rule per publisher",
        audit_action=AuditAction.POLICY_CREATED,
        audit_details=_policy_name,
    )
    router.register("policy:groupByPublisher", by_publisher, description="Group inventory by publisher")
    router.register("policy:detectDuplicates", duplicates, description="Find duplicate inventory items")
    router.register("policy:getRuleTemplates", templates, description="List rule templates")
    router.register(
        "policy:createRuleFromTemplate",
        from_template,
        description="Write a rule built from a template",
        audit_action=AuditAction.POLICY_CREATED,
        audit_details=_policy_name,
    )
    router.register("policy:runHealthCheck", health_check, description="Score rules against a phase")

    # -- compliance --------------------------------------------------------

    async def evidence_status() -> Any:
        return await validator.get_evidence_status()

    async def validate_evidence() -> Any:
        return await validator.validate_evidence_completeness()

    async def export_audit_log() -> str:
        return str(await validator.export_audit_log())

    async def generate_evidence() -> Any:
        return await validator.generate_evidence_package()

    async def history() -> Any:
        return await validator.get_historical_reports()

    router.register("compliance:getEvidenceStatus", evidence_status, description="Evidence freshness")
    router.register("compliance:validateEvidence", validate_evidence, description="Evidence completeness")
    router.register(
        "compliance:exportAuditLog",
        export_audit_log,
        description="Write the audit trail to the audit export directory",
        audit_action=AuditAction.EXPORT_DATA,
        audit_details=lambda _a, _data: {
            "export_type": "audit_log",
            "record_count": len(router.audit_trail),
            "file_path": REDACTION_MARKER,
        },
    )
    router.register(
        "compliance:generateEvidence",
        generate_evidence,
        description="Build an evidence package",
        audit_action=AuditAction.EXPORT_DATA,
        audit_details=lambda _a, data: {
            "export_type": "evidence_package",
            "record_count": len(data["artifacts"]),
            "failed": len(data["failed"]),
        },
    )
    router.register("compliance:getHistoricalReports", history, description="Previously built packages")

    return router


_router: CommandRouter | None = None


def get_router() -> CommandRouter:
    global _router
    if _router is None:
        _router = build_default_router()
    return _router


def set_router(router: CommandRouter) -> None:
    global _router
    _router = router


def reset_router() -> None:
    global _router
    _router = None
