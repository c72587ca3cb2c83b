# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Built-in and YAML-defined rule templates for common AppLocker scenarios."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from lockward.core.constants import EnforcementMode, RuleAction, RuleCategory, RuleType
from lockward.core.exceptions import NotFoundError
from lockward.policy.compiler import RuleCompiler, compile_rule
from lockward.policy.models import BatchResult, InventoryItem, RuleSpec

logger = logging.getLogger("lockward.policy.templates")


class RuleTemplate(BaseModel):
    """A reusable single-rule recipe."""

    id: str
    name: str
    description: str = ""
    action: RuleAction
    rule_type: RuleType
    publisher: str = ""
    path: str = ""
    category: str = Field(default="", description="Display grouping, e.g. 'Security'")
    collection_type: RuleCategory = RuleCategory.EXE
    tags: list[str] = Field(default_factory=list)


class TemplateRuleOptions(BaseModel):
    target_group: str | None = None
    collection_type: RuleCategory | None = None
    enforcement_mode: EnforcementMode = EnforcementMode.AUDIT_ONLY


DEFAULT_TEMPLATES: tuple[RuleTemplate, ...] = (
    RuleTemplate(
        id="microsoft-all",
        name="Allow All Microsoft-Signed Software",
        description="Publisher rule for all Microsoft Corporation signed executables. Recommended for Phase 1.",
        action=RuleAction.ALLOW,
        rule_type=RuleType.PUBLISHER,
        publisher="O=MICROSOFT CORPORATION, L=REDMOND, S=WASHINGTON, C=US",
        category="Enterprise Software",
        tags=["microsoft", "signed", "common", "phase1"],
    ),
    RuleTemplate(
        id="internal-tools",
        name="Allow Internal Signed Tools",
        description="Publisher rule for software signed by the organisation's own certificate.",
        action=RuleAction.ALLOW,
        rule_type=RuleType.PUBLISHER,
        publisher="O=CONTOSO LTD., L=SEATTLE, S=WASHINGTON, C=US",
        category="Internal Tools",
        tags=["internal", "signed"],
    ),
    RuleTemplate(
        id="deny-unsigned-userdirs",
        name="Deny Unsigned Executables in User Directories",
        description="Denies executables in user writable paths.",
        action=RuleAction.DENY,
        rule_type=RuleType.PATH,
        path="%USERPROFILE%\\*",
        category="Security",
        tags=["security", "deny", "unsigned", "user"],
    ),
    RuleTemplate(
        id="allow-programfiles",
        name="Allow Program Files",
        description="Allows executables in Program Files directories. Verify publisher signatures.",
        action=RuleAction.ALLOW,
        rule_type=RuleType.PATH,
        path="%PROGRAMFILES%\\*",
        category="System Paths",
        tags=["system", "programfiles", "common"],
    ),
    RuleTemplate(
        id="allow-windows",
        name="Allow Windows System Files",
        description="Allows executables in Windows system directories.",
        action=RuleAction.ALLOW,
        rule_type=RuleType.PATH,
        path="%WINDIR%\\*",
        category="System Paths",
        tags=["system", "windows", "essential"],
    ),
    RuleTemplate(
        id="deny-temp",
        name="Deny Executables in Temp Directories",
        description="Denies executables in temporary directories.",
        action=RuleAction.DENY,
        rule_type=RuleType.PATH,
        path="%TEMP%\\*",
        category="Security",
        tags=["security", "deny", "temp", "malware"],
    ),
)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


def load_templates_from_directory(templates_dir: str | Path) -> list[RuleTemplate]:
    """Discover and validate YAML templates in *templates_dir*.

    Each ``.yml`` / ``.yaml`` file holds either one template mapping or a
    list of them.  Files that fail to parse or validate are skipped with a
    warning.
    """
    templates_path = Path(templates_dir)

    if not templates_path.is_dir():
        logger.warning("Template directory does not exist: %s", templates_path)
        return []

    yaml_files = sorted([*templates_path.glob("*.yml"), *templates_path.glob("*.yaml")])
    if not yaml_files:
        logger.info("No YAML template files found in %s", templates_path)
        return []

    loaded: list[RuleTemplate] = []
    for filepath in yaml_files:
        try:
            loaded.extend(_load_template_file(filepath))
        except OSError as exc:
            logger.warning("Failed to read templates from %s: %s", filepath, exc)

    logger.info("Loaded %d custom rule templates from %s", len(loaded), templates_path)
    return loaded


def _load_template_file(filepath: Path) -> list[RuleTemplate]:
    raw_text = filepath.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        logger.warning("Invalid YAML syntax in %s: %s", filepath.name, exc)
        return []

    entries = data if isinstance(data, list) else [data]
    templates: list[RuleTemplate] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Expected a mapping in %s, got %s", filepath.name, type(entry).__name__)
            continue
        try:
            templates.append(RuleTemplate(**entry))
        except ValidationError as exc:
            logger.warning("Schema validation failed for %s: %s", filepath.name, exc)
    return templates


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TemplateCatalog:
    """Lookup of templates by id, keeping insertion order."""

    def __init__(self, templates: list[RuleTemplate] | tuple[RuleTemplate, ...] = DEFAULT_TEMPLATES) -> None:
        self._templates: dict[str, RuleTemplate] = {}
        for template in templates:
            self.add(template)

    def add(self, template: RuleTemplate) -> None:
        if template.id in self._templates:
            logger.info("Template %s overridden", template.id)
        self._templates[template.id] = template

    def get(self, template_id: str) -> RuleTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise NotFoundError("Template", template_id) from None

    def list_templates(self, category: str | None = None) -> list[RuleTemplate]:
        templates = list(self._templates.values())
        if category is None:
            return templates
        wanted = category.lower()
        return [t for t in templates if t.category.lower() == wanted]

    def __len__(self) -> int:
        return len(self._templates)


_catalog: TemplateCatalog | None = None


def get_template_catalog() -> TemplateCatalog:
    """Return the process-wide catalog, loading custom templates on first use."""
    global _catalog
    if _catalog is None:
        from lockward.core.config import get_settings

        catalog = TemplateCatalog()
        templates_dir = get_settings().templates_dir
        if templates_dir:
            for template in load_templates_from_directory(templates_dir):
                catalog.add(template)
        _catalog = catalog
    return _catalog


def set_template_catalog(catalog: TemplateCatalog) -> None:
    global _catalog
    _catalog = catalog


def reset_template_catalog() -> None:
    global _catalog
    _catalog = None


async def create_rule_from_template(
    template_id: str,
    output_path: str | Path,
    options: TemplateRuleOptions | Mapping[str, Any] | None = None,
    *,
    compiler: RuleCompiler | None = None,
    catalog: TemplateCatalog | None = None,
) -> BatchResult:
    """Compile the template *template_id* and write it to *output_path*.

    Raises:
        NotFoundError: If no template has that id.
        ValidationError: If the template's contents cannot be compiled.
    """
    opts = (
        options
        if isinstance(options, TemplateRuleOptions)
        else TemplateRuleOptions.model_validate(options or {})
    )
    compiler = compiler or RuleCompiler()
    template = (catalog or get_template_catalog()).get(template_id)
    category = opts.collection_type or template.collection_type

    subject = InventoryItem(
        id=template.id,
        name=template.name,
        publisher=template.publisher,
        path=template.path,
        type=category,
    )
    compiled = compile_rule(
        RuleSpec(
            action=template.action.value,
            rule_type=template.rule_type.value,
            target_group=opts.target_group or compiler.default_target_group,
            subject=subject,
            category=category,
        )
    )
    logger.info("Creating rule from template %s", template.id)
    return await compiler.write_rules([compiled], output_path, opts.enforcement_mode)
