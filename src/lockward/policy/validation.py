# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Input validation and markup escaping for rule compilation."""

from __future__ import annotations

import re

from lockward.core.constants import MAX_RULE_INPUT_LENGTH
from lockward.core.exceptions import ValidationError

# C0 controls, DEL, lone surrogates, and the two XML non-characters
_PROHIBITED = re.compile(r"[\x00-\x1f\x7f\ud800-\udfff\ufffe\uffff]")

# O=<org> followed by one or more L=, S=, or C= components
_PUBLISHER_RE = re.compile(r"^O=[^,]+(,\s*(L|S|C)=[^,]+)+$")

_SHA256_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

_XML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}


def escape_xml(value: str) -> str:
    """Escape the five reserved markup characters."""
    return "".join(_XML_ESCAPES.get(ch, ch) for ch in value)


def validate_rule_input(value: object, field: str) -> str:
    """Return *value* if it is safe to embed in a rule document.

    Raises:
        ValidationError: If the value is not a string, is empty, exceeds
            the length limit, or contains prohibited characters.
    """
    if (
        not isinstance(value, str)
        or not value.strip()
        or len(value) > MAX_RULE_INPUT_LENGTH
        or _PROHIBITED.search(value)
    ):
        msg = f"{field} is empty, too long, or contains prohibited characters"
        raise ValidationError(msg, field=field)
    return value


def is_valid_publisher_name(publisher: str) -> bool:
    return bool(_PUBLISHER_RE.match(publisher))


def is_valid_sha256(value: str) -> bool:
    return bool(_SHA256_RE.match(value))
