"""Static backtracking-risk check for rule patterns.

WHY: Rule patterns run against untrusted chat text at every position of
every span. A pattern like ``(a+)+`` or ``(x|xy)*`` makes Python's
backtracking engine go exponential on crafted input, and ``\\w*\\w*\\w*!``
goes polynomial with a high degree. Either would stall the bot, so such
patterns are rejected when the rule set is loaded instead.

HOW: A single left-to-right pass over the pattern source tracks a stack
of open groups. Each frame records whether its body contains a
quantifier or an alternation, which characters it may consume, and the
characters of the unbounded quantifiers not yet closed off by a
mandatory atom that none of them can match (the "open run").

Two checks run on that state:
  - a group that is closed and immediately repeated must not contain a
    quantifier or an alternation
  - an unbounded quantifier must not follow another unbounded quantifier
    of the same run whose characters may overlap with it

Backreferences and conditionals are rejected outright.

RULES:
- Only the pattern *source* is inspected; syntax errors are left to
  re.compile()
- "Repeated" means ``*``, ``+``, ``{n,}`` or ``{n,m}`` with m > 1;
  a plain ``?`` does not repeat. "Unbounded" means ``*``, ``+`` or ``{n,}``
- Character sets are only known for literals and simple classes;
  ``.``, ``\\w``, ``\\d`` and other escapes count as "any character"
- Letters are compared case-insensitively
- Lookaround groups neither consume nor separate
- The check is conservative: some safe patterns are rejected too
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

_BRACE_QUANT_RE = re.compile(r"\{(\d*)(,?)(\d*)\}")

_LOOKAROUND = ("(?=", "(?!", "(?<=", "(?<!")
_ZERO_WIDTH_ESCAPES = "bBAZ"
_MAX_RANGE = 512

# A character set: None means "any character"
CharSet = Optional[FrozenSet[str]]
_NOTHING: FrozenSet[str] = frozenset()


def _union(a: CharSet, b: CharSet) -> CharSet:
    if a is None or b is None:
        return None
    return a | b


def _overlaps(a: CharSet, b: CharSet) -> bool:
    if a == _NOTHING or b == _NOTHING:
        return False
    if a is None or b is None:
        return True
    return bool(a & b)


@dataclass
class _Frame:
    has_quantifier: bool = False
    has_alternation: bool = False
    lookaround: bool = False
    chars: CharSet = _NOTHING
    unbounded: CharSet = _NOTHING
    open_run: CharSet = _NOTHING
    closed_branches: CharSet = _NOTHING


def _skip_class(pattern: str, i: int) -> int:
    """Return the index just past the character class opening at ``i``."""
    i += 1
    if i < len(pattern) and pattern[i] == "^":
        i += 1
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    while i < len(pattern) and pattern[i] != "]":
        i += 2 if pattern[i] == "\\" else 1
    return i + 1


def _class_chars(body: str) -> CharSet:
    """Characters matched by a class body, or None when not simple enough."""
    if not body or body.startswith("^") or "\\" in body or "[" in body:
        return None
    chars = set()
    i = 0
    while i < len(body):
        if i + 2 < len(body) and body[i + 1] == "-":
            low, high = ord(body[i]), ord(body[i + 2])
            if high - low > _MAX_RANGE:
                return None
            chars.update(chr(c) for c in range(low, high + 1))
            i += 3
        else:
            chars.add(body[i])
            i += 1
    return frozenset(c.lower() for c in chars)


def _escape_chars(escaped: str) -> CharSet:
    # \w, \d, \n, \x41 ... are treated as any character
    if not escaped or escaped.isalnum():
        return None
    return frozenset(escaped)


def _skip_group_prefix(pattern: str, i: int) -> int:
    """Return the index of the first body character of the group opening at ``i``."""
    j = i + 1
    if not pattern.startswith("?", j):
        return j
    j += 1
    if pattern.startswith(("<=", "<!"), j):
        return j + 2
    if j < len(pattern) and pattern[j] in ":=!>":
        return j + 1
    if pattern.startswith(("P<", "<"), j):
        close = pattern.find(">", j)
        return len(pattern) if close == -1 else close + 1
    # inline flags: (?i) or (?i-s:...)
    while j < len(pattern) and (pattern[j].isalpha() or pattern[j] == "-"):
        j += 1
    if j < len(pattern) and pattern[j] == ":":
        j += 1
    return j


def _quantifier_at(pattern: str, i: int) -> Tuple[int, bool, bool, bool]:
    """Return (length, repeats, unbounded, optional) of a quantifier at ``i``.

    Length is 0 when there is no quantifier. Lazy ``?`` and possessive
    ``+`` suffixes are included in the length.
    """
    if i >= len(pattern):
        return 0, False, False, False
    ch = pattern[i]
    if ch == "*":
        length, repeats, unbounded, optional = 1, True, True, True
    elif ch == "+":
        length, repeats, unbounded, optional = 1, True, True, False
    elif ch == "?":
        length, repeats, unbounded, optional = 1, False, False, True
    elif ch == "{":
        m = _BRACE_QUANT_RE.match(pattern, i)
        if m is None or not (m.group(1) or m.group(3)):
            return 0, False, False, False
        low, comma, high = m.groups()
        optional = not low or int(low) == 0
        if not comma:
            repeats, unbounded = int(low) > 1, False
        elif not high:
            repeats, unbounded = True, True
        else:
            repeats, unbounded = int(high) > 1, False
        length = m.end() - i
    else:
        return 0, False, False, False
    if i + length < len(pattern) and pattern[i + length] in "?+":
        length += 1
    return length, repeats, unbounded, optional


def _add_atom(
    frame: _Frame,
    chars: CharSet,
    unbounded: bool,
    optional: bool,
    offset: int,
) -> Optional[str]:
    """Account for one (possibly quantified) atom in the current sequence."""
    frame.chars = _union(frame.chars, chars)
    if unbounded:
        if _overlaps(frame.open_run, chars):
            return "adjacent unbounded quantifiers at offset {}".format(offset)
        frame.unbounded = _union(frame.unbounded, chars)
        frame.open_run = _union(frame.open_run, chars) if optional else chars
    elif not optional and not _overlaps(frame.open_run, chars):
        frame.open_run = _NOTHING
    return None


def _add_group(
    parent: _Frame,
    group: _Frame,
    unbounded: bool,
    optional: bool,
    offset: int,
) -> Optional[str]:
    """Account for a closed (non-lookaround) group in the parent sequence."""
    if unbounded or group.unbounded == _NOTHING:
        return _add_atom(parent, group.chars, unbounded, optional, offset)
    if _overlaps(parent.open_run, group.unbounded):
        return "adjacent unbounded quantifiers at offset {}".format(offset)
    parent.chars = _union(parent.chars, group.chars)
    parent.unbounded = _union(parent.unbounded, group.unbounded)
    trailing = _union(group.open_run, group.closed_branches)
    parent.open_run = _union(parent.open_run, group.unbounded if optional else trailing)
    return None


def find_unsafe_construct(pattern: str) -> Optional[str]:
    """Describe the first construct in ``pattern`` that risks catastrophic backtracking.

    Returns None when the pattern is accepted.

    Args:
        pattern: Regular expression source in Python ``re`` syntax.

    Returns:
        A short description of the problem, or None.
    """
    stack: List[_Frame] = [_Frame()]
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        start = i
        if ch == "\\":
            escaped = pattern[i + 1:i + 2]
            if escaped and escaped in "123456789":
                return "backreference '\\{}' is not allowed".format(escaped)
            i += 2
            if escaped and escaped in _ZERO_WIDTH_ESCAPES:
                continue
            chars = _escape_chars(escaped)
        elif ch == "[":
            end = _skip_class(pattern, i)
            chars = _class_chars(pattern[i + 1:end - 1])
            i = end
        elif ch == "(":
            if pattern.startswith("(?P=", i):
                return "named backreference is not allowed"
            if pattern.startswith("(?(", i):
                return "conditional group is not allowed"
            if pattern.startswith("(?#", i):
                end = pattern.find(")", i)
                i = n if end == -1 else end + 1
                continue
            stack.append(_Frame(lookaround=pattern.startswith(_LOOKAROUND, i)))
            i = _skip_group_prefix(pattern, i)
            continue
        elif ch == ")":
            if len(stack) == 1:
                # unbalanced; re.compile() reports it
                i += 1
                continue
            group = stack.pop()
            length, repeats, unbounded, optional = _quantifier_at(pattern, i + 1)
            if repeats and group.has_quantifier:
                return "nested quantifier at offset {}".format(i)
            if repeats and group.has_alternation:
                return "repeated alternation at offset {}".format(i)
            parent = stack[-1]
            parent.has_quantifier |= group.has_quantifier or bool(length)
            parent.has_alternation |= group.has_alternation
            i += 1 + length
            if group.lookaround:
                continue
            problem = _add_group(parent, group, unbounded, optional, start)
            if problem is not None:
                return problem
            continue
        elif ch == "|":
            frame = stack[-1]
            frame.has_alternation = True
            frame.closed_branches = _union(frame.closed_branches, frame.open_run)
            frame.open_run = _NOTHING
            i += 1
            continue
        elif ch in "^$":
            i += 1
            continue
        else:
            chars = None if ch == "." else frozenset(ch.lower())
            i += 1

        length, _, unbounded, optional = _quantifier_at(pattern, i)
        if length:
            stack[-1].has_quantifier = True
            i += length
        problem = _add_atom(stack[-1], chars, unbounded, optional, start)
        if problem is not None:
            return problem
    return None
