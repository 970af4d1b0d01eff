"""X2I engine: find trigger spans in a message and render one line per rule set.

WHY: A single chat message may use several notations at once
(``x/S/ and k[S]``). The bot answers with one line per notation, in the
order the notations first appear, and stays silent when none is used.

HOW: X2IEngine is built once from compiled rule sets. search() scans the
message forward; at every trigger boundary it checks whether a trigger
prefix starts there, lets that rule set's notation delimit the span,
converts the body with the matcher, and collects the rendered span under
its rule set. Finally each rule set's spans are rendered into a line.

RULES:
- Rule sets and lookup tables are immutable after construction
- Trigger prefixes are pairwise prefix-free, checked at construction
- A trigger only counts at the start of the text, after whitespace or
  after one of TRIGGER_BOUNDARY
- Malformed spans are skipped, never an error
- search() performs no I/O and never raises
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from conniebot.x2i.matcher import apply
from conniebot.x2i.models import CompileError, RuleSet

# Characters after which a trigger prefix may start (besides whitespace)
TRIGGER_BOUNDARY = frozenset("`*_~(|>\"'")


def _check_rule_sets(rule_sets: Sequence[RuleSet]) -> None:
    """Reject duplicate names and overlapping trigger prefixes."""
    seen_names: Dict[str, RuleSet] = {}
    for rule_set in rule_sets:
        if rule_set.name in seen_names:
            raise CompileError(rule_set.name, None, "duplicate rule set name")
        seen_names[rule_set.name] = rule_set

    for i, first in enumerate(rule_sets):
        for second in rule_sets[i + 1:]:
            a, b = first.trigger_prefix, second.trigger_prefix
            if a.startswith(b) or b.startswith(a):
                raise CompileError(
                    second.name,
                    None,
                    "trigger prefix {!r} overlaps {!r} of rule set '{}'".format(
                        b, a, first.name
                    ),
                )


class X2IEngine:
    """Holds every loaded rule set and answers search() calls.

    Instances are read-only; reloading builds a new engine.
    """

    def __init__(self, rule_sets: Sequence[RuleSet]) -> None:
        ordered = tuple(rule_sets)
        _check_rule_sets(ordered)
        self._rule_sets = ordered
        self._by_prefix: Dict[str, RuleSet] = {rs.trigger_prefix: rs for rs in ordered}
        self._first_chars = frozenset(prefix[0] for prefix in self._by_prefix)
        self._alphabet_list = "\n".join(
            "`{}`: {}".format(rs.symbol, rs.name) for rs in ordered
        )

    @property
    def rule_sets(self) -> Tuple[RuleSet, ...]:
        """Rule sets in load order."""
        return self._rule_sets

    @property
    def alphabet_list(self) -> str:
        """Legend of every loaded notation, one ``symbol: name`` line each."""
        return self._alphabet_list

    def get(self, name: str) -> Optional[RuleSet]:
        for rule_set in self._rule_sets:
            if rule_set.name == name:
                return rule_set
        return None

    def _prefix_at(self, text: str, pos: int) -> Optional[RuleSet]:
        if text[pos] not in self._first_chars:
            return None
        if pos > 0:
            before = text[pos - 1]
            if not before.isspace() and before not in TRIGGER_BOUNDARY:
                return None
        for prefix, rule_set in self._by_prefix.items():
            if text.startswith(prefix, pos):
                return rule_set
        return None

    def search(self, text: str) -> List[str]:
        """Convert every X2I span in ``text``.

        Args:
            text: A raw chat message.

        Returns:
            One rendered line per distinct rule set invoked, in order of
            first invocation. Empty when no trigger is found.
        """
        found: Dict[str, List[str]] = {}
        order: List[RuleSet] = []
        pos = 0
        length = len(text)
        while pos < length:
            rule_set = self._prefix_at(text, pos)
            if rule_set is None:
                pos += 1
                continue
            span = rule_set.notation.find(text, pos + len(rule_set.trigger_prefix))
            if span is None:
                pos += 1
                continue
            converted = apply(rule_set, text[span.body_start:span.body_end])
            if rule_set.name not in found:
                found[rule_set.name] = []
                order.append(rule_set)
            found[rule_set.name].append(span.wrap(converted))
            pos = span.end
        return [rs.render(found[rs.name]) for rs in order]
