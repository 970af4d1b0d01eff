"""Rule compiler: validate a rule document and build an executable RuleSet.

WHY: Rule sets arrive as loosely-typed YAML mappings written by hand.
Every problem with them (missing fields, broken regexes, patterns that
could stall the matcher) must surface once, at startup, with the rule
set name and rule index attached, never while answering a message.

HOW: compile_rule_set() runs three stages:
  1. Shape check against RULE_SET_SCHEMA with jsonschema
  2. Per-rule compilation: re.compile(), empty-match and safety checks
  3. Ranking and first-character dispatch table construction

RULES:
- The only exception raised is CompileError
- Literal patterns are re.escape()d; case_sensitive=False adds re.IGNORECASE
- Rules are ranked by (priority desc, declaration asc)
- ``key`` is accepted as an alias for ``trigger_prefix``
- No global state is read or written
"""

from __future__ import annotations

import re
import string
from types import MappingProxyType
from typing import Any, Mapping

import jsonschema

from conniebot.x2i.models import CompileError, Rule, RuleSet
from conniebot.x2i.notation import NOTATIONS, build_notation
from conniebot.x2i.safety import find_unsafe_construct

# Printable ASCII without whitespace
_ASCII_SAFE = r"\A[!-~]+\Z"

TEMPLATE_FIELDS = frozenset({"spans", "name", "symbol"})

RULE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["pattern", "replacement"],
    "additionalProperties": False,
    "properties": {
        "pattern": {"type": "string", "minLength": 1},
        "replacement": {"type": "string"},
        "case_sensitive": {"type": "boolean"},
        "priority": {"type": "integer"},
        "regex": {"type": "boolean"},
    },
}

RULE_SET_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "trigger_prefix", "rules"],
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "trigger_prefix": {"type": "string", "pattern": _ASCII_SAFE},
        "symbol": {"type": "string"},
        "template": {"type": "string"},
        "notation": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "kind": {"enum": sorted(NOTATIONS)},
                "delimiters": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "array",
                        "minItems": 2,
                        "maxItems": 2,
                        "items": {"type": "string", "minLength": 1},
                    },
                },
            },
        },
        "rules": {"type": "array", "minItems": 1, "items": RULE_SCHEMA},
    },
}


def _normalize(source: Mapping[str, Any]) -> dict[str, Any]:
    data = dict(source)
    if "key" in data and "trigger_prefix" not in data:
        data["trigger_prefix"] = data.pop("key")
    return data


def _source_name(source: Mapping[str, Any], fallback: str) -> str:
    name = source.get("name")
    if isinstance(name, str) and name:
        return name
    return fallback


def _validate_shape(data: dict[str, Any], name: str) -> None:
    """Run the jsonschema check and convert the first error to a CompileError."""
    validator = jsonschema.Draft7Validator(RULE_SET_SCHEMA)
    error = jsonschema.exceptions.best_match(validator.iter_errors(data))
    if error is None:
        return
    path = list(error.absolute_path)
    rule_index = None
    if len(path) >= 2 and path[0] == "rules" and isinstance(path[1], int):
        rule_index = path[1]
    location = ".".join(str(p) for p in path) or "document"
    raise CompileError(name, rule_index, "{}: {}".format(location, error.message))


def _compile_rule(spec: Mapping[str, Any], index: int, name: str) -> Rule:
    pattern = spec["pattern"]
    is_regex = spec.get("regex", False)
    case_sensitive = spec.get("case_sensitive", True)
    flags = 0 if case_sensitive else re.IGNORECASE

    if is_regex:
        problem = find_unsafe_construct(pattern)
        if problem is not None:
            raise CompileError(name, index, "unsafe pattern {!r}: {}".format(pattern, problem))
        source = pattern
    else:
        source = re.escape(pattern)

    try:
        compiled = re.compile(source, flags)
    except re.error as exc:
        raise CompileError(name, index, "invalid pattern {!r}: {}".format(pattern, exc)) from exc

    if compiled.fullmatch("") is not None:
        raise CompileError(name, index, "pattern {!r} matches the empty string".format(pattern))

    first_chars = None
    if not is_regex and case_sensitive:
        first_chars = frozenset(pattern[0])

    return Rule(
        pattern=pattern,
        replacement=spec["replacement"],
        case_sensitive=case_sensitive,
        priority=spec.get("priority", 0),
        regex=is_regex,
        index=index,
        compiled=compiled,
        first_chars=first_chars,
    )


def _build_dispatch(ranked: tuple[Rule, ...]) -> tuple[dict[str, tuple[Rule, ...]], tuple[Rule, ...]]:
    """Build the first-character table that narrows candidates per position.

    Rules with unknown first characters appear in every entry; the ranked
    order is kept within each entry.
    """
    fallback = tuple(r for r in ranked if r.first_chars is None)
    keys: set[str] = set()
    for rule in ranked:
        if rule.first_chars is not None:
            keys |= rule.first_chars
    dispatch = {
        key: tuple(r for r in ranked if r.first_chars is None or key in r.first_chars)
        for key in keys
    }
    return dispatch, fallback


def _check_template(template: str, name: str, symbol: str) -> None:
    """Reject templates that could fail when a line is rendered.

    Only the bare placeholders in TEMPLATE_FIELDS are allowed; indexing
    or attribute access would depend on the converted text.
    """
    try:
        fields = [f for _, f, _, _ in string.Formatter().parse(template) if f is not None]
        unknown = [f for f in fields if f not in TEMPLATE_FIELDS]
        if unknown:
            raise KeyError(unknown[0])
        template.format(spans="", name=name, symbol=symbol)
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
        raise CompileError(name, None, "invalid template {!r}: {}".format(template, exc)) from exc


def compile_rule_set(source: Mapping[str, Any], origin: str = "<unnamed>") -> RuleSet:
    """Compile one rule document into a RuleSet.

    Args:
        source: The deserialized document (see RULE_SET_SCHEMA).
        origin: Label used in errors when the document has no usable name,
            typically the file name.

    Returns:
        An immutable, ready-to-match RuleSet.

    Raises:
        CompileError: On any shape, syntax or safety problem.
    """
    if not isinstance(source, Mapping):
        raise CompileError(origin, None, "document must be a mapping")

    data = _normalize(source)
    name = _source_name(data, origin)
    _validate_shape(data, name)

    rules = tuple(
        _compile_rule(spec, index, name) for index, spec in enumerate(data["rules"])
    )
    ranked = tuple(sorted(rules, key=lambda r: (-r.priority, r.index)))
    dispatch, fallback = _build_dispatch(ranked)

    prefix = data["trigger_prefix"]
    symbol = data.get("symbol") or prefix
    template = data.get("template", "{spans}")
    _check_template(template, name, symbol)

    return RuleSet(
        name=name,
        trigger_prefix=prefix,
        symbol=symbol,
        notation=build_notation(data.get("notation")),
        rules=rules,
        template=template,
        ranked=ranked,
        dispatch=MappingProxyType(dispatch),
        fallback=fallback,
    )
