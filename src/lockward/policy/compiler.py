# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Compile inventory and publisher records into AppLocker rule documents.

Rule fragments are rendered from fixed templates so that the same subject,
action, and target group always produce byte-identical output apart from
the freshly generated ``Id``.  Every free-text value is validated and then
escaped before it is embedded, and each assembled document is re-parsed to
prove it is well-formed before it leaves this module.
"""

from __future__ import annotations

import logging
import re
import textwrap
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from lockward.core.constants import (
    COLLECTION_TYPES,
    WELL_KNOWN_SIDS,
    EnforcementMode,
    RuleAction,
    RuleCategory,
    RuleType,
)
from lockward.core.exceptions import ExternalServiceError, ValidationError
from lockward.policy.models import (
    BatchOptions,
    BatchResult,
    DuplicateReport,
    InventoryItem,
    ItemFailure,
    PolicyRule,
    PublisherRuleOptions,
    RuleSpec,
    TrustedPublisher,
)
from lockward.policy.validation import (
    escape_xml,
    is_valid_publisher_name,
    is_valid_sha256,
    validate_rule_input,
)
from lockward.storage.base import FileStore
from lockward.storage.local import LocalFileStore

logger = logging.getLogger("lockward.policy.compiler")

VERSION_RANGE_LOW = "0.0.0.0"
VERSION_RANGE_HIGH = "*"

_PUBLISHER_TEMPLATE = (
    "<FilePublisherRule {header}>\n"
    "  <Conditions>\n"
    '    <FilePublisherCondition PublisherName="{publisher}" ProductName="*" BinaryName="*">\n'
    '      <BinaryVersionRange LowSection="{low}" HighSection="{high}" />\n'
    "    </FilePublisherCondition>\n"
    "  </Conditions>\n"
    "</FilePublisherRule>"
)

_PATH_TEMPLATE = (
    "<FilePathRule {header}>\n"
    "  <Conditions>\n"
    '    <FilePathCondition Path="{path}" />\n'
    "  </Conditions>\n"
    "</FilePathRule>"
)

_HASH_TEMPLATE = (
    "<FileHashRule {header}>\n"
    "  <Conditions>\n"
    "    <FileHashCondition>\n"
    '      <FileHash Type="SHA256" Data="{data}" SourceFileName="{source}" SourceFileLength="0" />\n'
    "    </FileHashCondition>\n"
    "  </Conditions>\n"
    "</FileHashRule>"
)


@dataclass(frozen=True)
class CompiledRule:
    rule: PolicyRule
    fragment: str


@dataclass(frozen=True)
class _Subject:
    name: str
    publisher: str
    path: str
    file_hash: str | None
    category: RuleCategory | None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def derive_rule_name(name: str) -> str:
    """Collapse each run of whitespace in *name* into a single hyphen."""
    return re.sub(r"\s+", "-", name.strip())


def publisher_display_name(publisher: str) -> str:
    """Return the organisation component of a signer distinguished name."""
    head = publisher.split(",", 1)[0].strip()
    if head.upper().startswith("O="):
        return head[2:].strip()
    return head


def resolve_sid(target_group: str) -> str:
    """Map a well-known group name to its SID; other values pass through."""
    if target_group.upper().startswith("S-1-"):
        return target_group
    return WELL_KNOWN_SIDS.get(target_group, target_group)


def _subject_fields(subject: InventoryItem | TrustedPublisher | str) -> _Subject:
    if isinstance(subject, str):
        return _Subject(publisher_display_name(subject), subject, "", None, None)
    if isinstance(subject, TrustedPublisher):
        return _Subject(subject.name, subject.publisher_name, "", None, None)
    return _Subject(subject.name, subject.publisher, subject.path, subject.hash, subject.type)


def _choice(value: str, enum: type[RuleAction] | type[RuleType], label: str) -> Any:
    try:
        return enum(value)
    except ValueError:
        expected = ", ".join(m.value for m in enum)
        msg = f"Invalid {label}: {value!r}; expected one of {expected}"
        raise ValidationError(msg, field=label) from None


def _coerce_spec(spec: RuleSpec | Mapping[str, Any]) -> RuleSpec:
    if isinstance(spec, RuleSpec):
        return spec
    try:
        return RuleSpec.model_validate(spec)
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed rule spec: {exc.error_count()} error(s)") from exc


# ---------------------------------------------------------------------------
# Single-rule compilation
# ---------------------------------------------------------------------------


def compile_rule(spec: RuleSpec | Mapping[str, Any], *, rule_id: str | None = None) -> CompiledRule:
    """Validate *spec* and render it as a rule element plus its PolicyRule.

    Raises:
        ValidationError: If any input is unusable.
    """
    spec = _coerce_spec(spec)
    action = _choice(spec.action, RuleAction, "action")
    rule_type = _choice(spec.rule_type, RuleType, "rule type")
    target_group = validate_rule_input(spec.target_group, "target_group")
    subject = _subject_fields(spec.subject)
    name = validate_rule_input(subject.name, "name")
    category = spec.category or subject.category or RuleCategory.EXE

    rid = rule_id or str(uuid.uuid4())
    rule_name = derive_rule_name(name)
    description = f"{action} {rule_type.lower()} rule for {name}"
    header = (
        f'Id="{rid}" Name="{escape_xml(rule_name)}" Description="{escape_xml(description)}" '
        f'UserOrGroupSid="{escape_xml(resolve_sid(target_group))}" Action="{action}"'
    )

    if rule_type is RuleType.PUBLISHER:
        condition = validate_rule_input(subject.publisher, "publisher")
        fragment = _PUBLISHER_TEMPLATE.format(
            header=header,
            publisher=escape_xml(condition),
            low=VERSION_RANGE_LOW,
            high=VERSION_RANGE_HIGH,
        )
    elif rule_type is RuleType.PATH:
        condition = validate_rule_input(subject.path, "path")
        fragment = _PATH_TEMPLATE.format(header=header, path=escape_xml(condition))
    else:
        if not subject.file_hash or not is_valid_sha256(subject.file_hash):
            raise ValidationError("hash must be a SHA-256 hex digest", field="hash")
        condition = "0x" + subject.file_hash.removeprefix("0x").upper()
        source = PureWindowsPath(subject.path).name if subject.path else name
        source = validate_rule_input(source, "path")
        fragment = _HASH_TEMPLATE.format(header=header, data=condition, source=escape_xml(source))

    rule = PolicyRule(
        id=rid,
        name=rule_name,
        type=rule_type,
        category=category,
        action=action,
        target_group=target_group,
        condition=condition,
    )
    return CompiledRule(rule=rule, fragment=fragment)


def generate_rule_xml(spec: RuleSpec | Mapping[str, Any]) -> str:
    """Return the rule element for *spec* as an XML fragment."""
    return compile_rule(spec).fragment


def build_rule(spec: RuleSpec | Mapping[str, Any]) -> PolicyRule:
    """Return the structured PolicyRule for *spec*."""
    return compile_rule(spec).rule


# ---------------------------------------------------------------------------
# Document assembly
# ---------------------------------------------------------------------------


def render_policy(
    rules: Iterable[CompiledRule],
    enforcement_mode: EnforcementMode | str = EnforcementMode.AUDIT_ONLY,
) -> str:
    """Assemble compiled rules into one ``AppLockerPolicy`` document.

    Rule collections appear in the fixed order Exe, Msi, Script, Dll and
    only when they hold at least one rule.
    """
    mode = EnforcementMode(enforcement_mode)
    by_category: dict[RuleCategory, list[CompiledRule]] = {c: [] for c in COLLECTION_TYPES}
    for compiled in rules:
        by_category[compiled.rule.category].append(compiled)

    lines = ['<?xml version="1.0" encoding="utf-8"?>', '<AppLockerPolicy Version="1">']
    for category, collection_type in COLLECTION_TYPES.items():
        members = by_category[category]
        if not members:
            continue
        lines.append(f'  <RuleCollection Type="{collection_type}" EnforcementMode="{mode}">')
        lines.extend(textwrap.indent(c.fragment, "    ") for c in members)
        lines.append("  </RuleCollection>")
    lines.append("</AppLockerPolicy>")
    document = "\n".join(lines) + "\n"

    try:
        ET.fromstring(document.encode("utf-8"))
    except ET.ParseError as exc:
        raise ValidationError(f"Generated policy document is not well-formed: {exc}") from exc
    return document


# ---------------------------------------------------------------------------
# Inventory helpers
# ---------------------------------------------------------------------------


def group_by_publisher(items: Iterable[InventoryItem]) -> dict[str, list[InventoryItem]]:
    groups: dict[str, list[InventoryItem]] = {}
    for item in items:
        groups.setdefault(item.publisher or "Unknown", []).append(item)
    return groups


def detect_duplicates(items: Iterable[InventoryItem]) -> DuplicateReport:
    """Find items sharing a path, or sharing a publisher and name."""
    items = list(items)
    by_path: dict[str, list[InventoryItem]] = {}
    by_publisher: dict[str, list[InventoryItem]] = {}
    for item in items:
        if item.path:
            by_path.setdefault(item.path, []).append(item)
        by_publisher.setdefault(f"{item.publisher}|{item.name}", []).append(item)

    path_dupes = {k: v for k, v in by_path.items() if len(v) > 1}
    pub_dupes = {k: v for k, v in by_publisher.items() if len(v) > 1}
    return DuplicateReport(
        path_duplicates=path_dupes,
        publisher_duplicates=pub_dupes,
        path_dup_count=len(path_dupes),
        pub_dup_count=len(pub_dupes),
        total_items=len(items),
    )


def _has_publisher(item: InventoryItem) -> bool:
    return bool(item.publisher.strip()) and item.publisher.strip().lower() != "unknown"


def _effective_rule_type(item: InventoryItem, requested: RuleType) -> RuleType:
    """Fall back from publisher to path to hash when the item is unsigned."""
    if requested is not RuleType.PUBLISHER or _has_publisher(item):
        return requested
    if item.path:
        return RuleType.PATH
    if item.hash:
        return RuleType.HASH
    return requested


def _describe(raw: object) -> str:
    if isinstance(raw, Mapping):
        return str(raw.get("name") or raw.get("id") or "<unnamed>")
    return str(getattr(raw, "name", raw))[:120]


# ---------------------------------------------------------------------------
# File-producing compiler
# ---------------------------------------------------------------------------


class RuleCompiler:
    """Compiles batches of rules and writes them as policy documents.

    Per-item failures never abort a batch; they are collected in
    :attr:`BatchResult.failures` and whatever compiled is still written.

    Args:
        store: File store used to write documents.
        default_target_group: Group used when options leave it unset.
    """

    def __init__(
        self,
        store: FileStore | None = None,
        *,
        default_target_group: str = "Everyone",
    ) -> None:
        self._store = store or LocalFileStore()
        self._default_target_group = default_target_group

    @property
    def default_target_group(self) -> str:
        return self._default_target_group

    def _try_compile(
        self,
        spec: RuleSpec,
        label: str,
        compiled: list[CompiledRule],
        failures: list[ItemFailure],
    ) -> None:
        try:
            compiled.append(compile_rule(spec))
        except ValidationError as exc:
            logger.warning("Skipping %s: %s", label, exc.message)
            failures.append(ItemFailure(item=label, error=exc.message))

    async def write_rules(
        self,
        compiled: list[CompiledRule],
        output_path: str | Path,
        enforcement_mode: EnforcementMode | str = EnforcementMode.AUDIT_ONLY,
        failures: list[ItemFailure] | None = None,
        *,
        attempted: int | None = None,
    ) -> BatchResult:
        """Render *compiled* and write the document to *output_path*."""
        failures = failures or []
        if not compiled:
            total = attempted if attempted is not None else len(failures)
            return BatchResult(
                success=False,
                error=f"No rules could be generated from {total} item(s)",
                failures=failures,
            )

        document = render_policy(compiled, enforcement_mode)
        try:
            await self._store.write_text(Path(output_path), document)
        except ExternalServiceError as exc:
            logger.error("Failed to write policy document %s: %s", output_path, exc)
            return BatchResult(
                success=False,
                error=str(exc),
                rule_count=len(compiled),
                rules=[c.rule for c in compiled],
                failures=failures,
            )

        logger.info(
            "Wrote %d rule(s) to %s (%d item failure(s))",
            len(compiled),
            output_path,
            len(failures),
        )
        return BatchResult(
            success=True,
            output_path=str(output_path),
            rule_count=len(compiled),
            rules=[c.rule for c in compiled],
            failures=failures,
        )

    async def batch_generate_rules(
        self,
        items: Iterable[InventoryItem | Mapping[str, Any]],
        output_path: str | Path,
        options: BatchOptions | Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Compile every inventory item into one policy document.

        With ``group_by_publisher`` set, signed items sharing a publisher
        (within a collection) produce a single publisher rule.
        """
        opts = options if isinstance(options, BatchOptions) else BatchOptions.model_validate(options or {})
        target_group = opts.target_group or self._default_target_group

        compiled: list[CompiledRule] = []
        failures: list[ItemFailure] = []
        grouped: dict[tuple[str, RuleCategory], list[InventoryItem]] = {}
        attempted = 0

        for raw in items:
            attempted += 1
            try:
                item = raw if isinstance(raw, InventoryItem) else InventoryItem.model_validate(raw)
            except PydanticValidationError as exc:
                failures.append(
                    ItemFailure(
                        item=_describe(raw),
                        error=f"Malformed inventory item: {exc.error_count()} error(s)",
                    )
                )
                continue

            category = opts.collection_type or item.type
            rule_type = _effective_rule_type(item, opts.rule_type)
            if opts.group_by_publisher and rule_type is RuleType.PUBLISHER and _has_publisher(item):
                grouped.setdefault((item.publisher, category), []).append(item)
                continue

            spec = RuleSpec(
                action=opts.rule_action.value,
                rule_type=rule_type.value,
                target_group=target_group,
                subject=item,
                category=category,
            )
            self._try_compile(spec, item.name, compiled, failures)

        for (publisher, category), members in grouped.items():
            logger.debug("Merging %d item(s) under publisher %s", len(members), publisher)
            spec = RuleSpec(
                action=opts.rule_action.value,
                rule_type=RuleType.PUBLISHER.value,
                target_group=target_group,
                subject=publisher,
                category=category,
            )
            self._try_compile(spec, publisher, compiled, failures)

        return await self.write_rules(
            compiled, output_path, opts.enforcement_mode, failures, attempted=attempted
        )

    async def create_publisher_rule(
        self,
        publisher: str,
        output_path: str | Path,
        options: PublisherRuleOptions | Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Write a single publisher rule.

        Raises:
            ValidationError: If *publisher* is not a signer distinguished name.
        """
        opts = (
            options
            if isinstance(options, PublisherRuleOptions)
            else PublisherRuleOptions.model_validate(options or {})
        )
        if not isinstance(publisher, str) or not is_valid_publisher_name(publisher):
            msg = f"Invalid publisher name: {publisher!r}; expected O=...,L=...,S=...,C=..."
            raise ValidationError(msg, field="publisher")

        compiled = compile_rule(
            RuleSpec(
                action=opts.action.value,
                rule_type=RuleType.PUBLISHER.value,
                target_group=opts.target_group or self._default_target_group,
                subject=publisher,
                category=opts.collection_type,
            )
        )
        return await self.write_rules([compiled], output_path, opts.enforcement_mode)

    async def batch_create_publisher_rules(
        self,
        publishers: Iterable[str],
        output_path: str | Path,
        options: PublisherRuleOptions | Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Write one publisher rule per distinct valid publisher."""
        opts = (
            options
            if isinstance(options, PublisherRuleOptions)
            else PublisherRuleOptions.model_validate(options or {})
        )
        target_group = opts.target_group or self._default_target_group

        compiled: list[CompiledRule] = []
        failures: list[ItemFailure] = []
        seen: set[str] = set()
        attempted = 0
        for publisher in publishers:
            attempted += 1
            if not isinstance(publisher, str) or not is_valid_publisher_name(publisher):
                failures.append(ItemFailure(item=str(publisher), error="Invalid publisher name"))
                continue
            if publisher in seen:
                continue
            seen.add(publisher)
            spec = RuleSpec(
                action=opts.action.value,
                rule_type=RuleType.PUBLISHER.value,
                target_group=target_group,
                subject=publisher,
                category=opts.collection_type,
            )
            self._try_compile(spec, publisher, compiled, failures)

        return await self.write_rules(
            compiled, output_path, opts.enforcement_mode, failures, attempted=attempted
        )
