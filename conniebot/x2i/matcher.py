"""Priority-ordered substitution over a single span of text.

WHY: Shorthand notations overlap heavily (``r``, ``r\\``, ``r\\``` in
X-SAMPA). Which rule fires must be decided by explicit rule authorship,
not by iteration accidents or an implicit longest-match heuristic, so the
same input always converts the same way.

HOW: A left-to-right scan. At each position the rule set's dispatch table
yields the candidate rules already sorted best-first; the first one that
produces a non-empty match wins, its replacement is emitted and the scan
jumps past the consumed input. With no match, one code point is copied
through unchanged.

RULES:
- Highest priority wins; equal priorities favor the earlier declaration
- Match length never overrides priority
- No overlapping matches, output is never re-scanned
- Unmatched input passes through verbatim; apply() never raises
"""

from __future__ import annotations

from typing import Iterator, Optional, Tuple

from conniebot.x2i.models import Rule, RuleSet


def best_rule_at(rule_set: RuleSet, text: str, pos: int) -> Tuple[Optional[Rule], int]:
    """Return the winning rule at ``pos`` and the end of its match.

    Returns (None, pos) when no rule matches there.
    """
    for rule in rule_set.candidates(text[pos]):
        end = rule.match_at(text, pos)
        if end != -1:
            return rule, end
    return None, pos


def iter_matches(rule_set: RuleSet, text: str) -> Iterator[Tuple[int, int, Optional[Rule]]]:
    """Yield consecutive ``(start, end, rule)`` pieces that tile ``text``.

    ``rule`` is None for pass-through pieces, which are always exactly one
    code point long. Concatenating ``text[start:end]`` over all pieces
    reconstructs ``text``.
    """
    pos = 0
    length = len(text)
    while pos < length:
        rule, end = best_rule_at(rule_set, text, pos)
        if rule is None:
            yield pos, pos + 1, None
            pos += 1
        else:
            yield pos, end, rule
            pos = end


def apply(rule_set: RuleSet, text: str) -> str:
    """Convert ``text`` with ``rule_set``.

    Args:
        rule_set: A compiled rule set.
        text: Arbitrary Unicode text.

    Returns:
        The converted text.
    """
    out = []
    for start, end, rule in iter_matches(rule_set, text):
        out.append(text[start:end] if rule is None else rule.replacement)
    return "".join(out)
