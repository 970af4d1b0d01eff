"""Dataclasses for compiled X2I rule sets.

WHY: The matcher and the engine run on every chat message. They need a
rule representation that is already validated, ordered and compiled so
that no shape-checking happens in the hot path.

HOW: Two frozen dataclasses plus the error type:
  Rule: one substitution with its compiled pattern
  RuleSet: a named, ordered collection of rules plus trigger metadata
  CompileError: the single load-time failure type

RULES:
- Everything here is immutable once constructed (frozen dataclasses,
  tuples instead of lists, MappingProxyType instead of dict)
- RuleSet.ranked holds the rules in (priority desc, declaration asc)
  order; earlier wins
- RuleSet instances are only created by the compiler
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from conniebot.x2i.notation import SpanNotation


class CompileError(ValueError):
    """A rule set could not be compiled.

    Attributes:
        rule_set: Name of the offending rule set (or the file it came from
            when the name itself could not be read).
        rule_index: Zero-based index of the offending rule, or None when the
            problem concerns the rule set as a whole.
        detail: Human-readable description of the problem.
    """

    def __init__(self, rule_set: str, rule_index: int | None, detail: str) -> None:
        self.rule_set = rule_set
        self.rule_index = rule_index
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.rule_index is None:
            return "rule set '{}': {}".format(self.rule_set, self.detail)
        return "rule set '{}' rule #{}: {}".format(
            self.rule_set, self.rule_index, self.detail
        )


@dataclass(frozen=True)
class Rule:
    """A single substitution rule.

    RULES:
    - pattern: the source text (literal or restricted regex)
    - compiled: the executable pattern, literal rules are re.escape()d
    - index: declaration order within the rule set
    - first_chars: characters a match must start with, or None when that
      cannot be known statically (regex or case-insensitive rules)
    """

    pattern: str
    replacement: str
    case_sensitive: bool
    priority: int
    regex: bool
    index: int
    compiled: re.Pattern[str] = field(compare=False, repr=False)
    first_chars: frozenset[str] | None = field(default=None, compare=False, repr=False)

    def match_at(self, text: str, pos: int) -> int:
        """Return the end of a non-empty match at ``pos``, or -1."""
        m = self.compiled.match(text, pos)
        if m is None or m.end() == pos:
            return -1
        return m.end()


@dataclass(frozen=True)
class RuleSet:
    """A named, ordered collection of rules sharing one trigger notation.

    WHY: Each notation (X-SAMPA, Kirshenbaum, ...) is configured
    independently and may fire in the same message as the others.

    RULES:
    - rules: declaration order
    - ranked: the same rules sorted by (priority desc, index asc)
    - dispatch: read-only map of first character → ranked candidates;
      characters missing from the table use ``fallback`` (rules without a
      known first char)
    """

    name: str
    trigger_prefix: str
    symbol: str
    notation: SpanNotation
    rules: tuple[Rule, ...]
    template: str = "{spans}"
    ranked: tuple[Rule, ...] = field(default=(), compare=False, repr=False)
    dispatch: Mapping[str, tuple[Rule, ...]] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, repr=False
    )
    fallback: tuple[Rule, ...] = field(default=(), compare=False, repr=False)

    def candidates(self, char: str) -> tuple[Rule, ...]:
        """Rules that may match at a position starting with ``char``, best first."""
        return self.dispatch.get(char, self.fallback)

    def apply(self, text: str) -> str:
        from conniebot.x2i.matcher import apply

        return apply(self, text)

    def render(self, spans: list[str]) -> str:
        """Render converted spans into this rule set's output line."""
        return self.template.format(
            spans=" ".join(spans), name=self.name, symbol=self.symbol
        )
