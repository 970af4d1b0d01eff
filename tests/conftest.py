"""Shared test fixtures for the conniebot test suite.

WHY: Most test modules need the same small rule sets: the two-rule
"pitman" set from the engine documentation, and helpers to build or
write ad-hoc rule documents. Centralizing them keeps the cases short.

HOW: Pytest fixtures provide the raw pitman document, its compiled
RuleSet, a document factory, and a writer that puts YAML rule files into
a tmp_path folder.

RULES:
- PITMAN_SOURCE matches the documented example exactly
  (sh → ʃ at priority 1, s → s at priority 0)
- Rule files are written with yaml.safe_dump(allow_unicode=True)
"""

from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest
import yaml

from conniebot.x2i import RuleSet, compile_rule_set

PITMAN_SOURCE: Dict[str, Any] = {
    "name": "pitman",
    "trigger_prefix": "x",
    "symbol": "x",
    "rules": [
        {"pattern": "sh", "replacement": "ʃ", "priority": 1},
        {"pattern": "s", "replacement": "s", "priority": 0},
    ],
}


@pytest.fixture
def pitman_source() -> Dict[str, Any]:
    """The pitman rule document (a fresh copy per test)."""
    return {**PITMAN_SOURCE, "rules": [dict(r) for r in PITMAN_SOURCE["rules"]]}


@pytest.fixture
def pitman(pitman_source) -> RuleSet:
    return compile_rule_set(pitman_source)


@pytest.fixture
def make_source() -> Callable[..., Dict[str, Any]]:
    """Build a rule document: make_source(name, prefix, rules, **extra).

    ``rules`` may be (pattern, replacement) pairs or full rule dicts.
    """

    def _make(name: str, prefix: str, rules: List[Any], **extra: Any) -> Dict[str, Any]:
        rule_docs = []
        for rule in rules:
            if isinstance(rule, dict):
                rule_docs.append(rule)
            else:
                rule_docs.append({"pattern": rule[0], "replacement": rule[1]})
        return {"name": name, "trigger_prefix": prefix, "rules": rule_docs, **extra}

    return _make


@pytest.fixture
def make_rule_set(make_source) -> Callable[..., RuleSet]:
    """Like make_source, but returns the compiled RuleSet."""

    def _make(name: str, prefix: str, rules: List[Any], **extra: Any) -> RuleSet:
        return compile_rule_set(make_source(name, prefix, rules, **extra))

    return _make


@pytest.fixture
def write_rules(tmp_path) -> Callable[[str, Any], Path]:
    """Write a document (or raw text) as a rule file in tmp_path/x2i."""
    folder = tmp_path / "x2i"
    folder.mkdir()

    def _write(filename: str, document: Any) -> Path:
        path = folder / filename
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(
                yaml.safe_dump(document, allow_unicode=True, sort_keys=False),
                encoding="utf-8",
            )
        return path

    _write.folder = folder  # type: ignore[attr-defined]
    return _write


@pytest.fixture
def rule_dir(write_rules, pitman_source) -> Path:
    """A data folder holding only the pitman rule set."""
    write_rules("pitman.yaml", pitman_source)
    return write_rules.folder
