"""Span notations: how far an X2I span extends after its trigger prefix.

WHY: Rule sets disagree on how a span is marked. X-SAMPA users write
``x/.../`` or ``x[...]``, while a word-style notation simply runs to the
next whitespace. The engine must not hard-code either syntax.

HOW: SpanNotation is an ABC with a single ``find()`` method. The engine
calls it with the position right after a trigger prefix; it returns a
SpanMatch (body bounds plus the wrapping to render around the output)
or None for a malformed span. NOTATIONS maps the ``kind`` field of a
rule document to a factory.

RULES:
- find() never raises; malformed spans return None
- A span body is never empty and, for delimited spans, neither starts
  nor ends with whitespace
- Delimited spans end at the first closer on the same line that
  follows a non-whitespace character
- Notations are immutable and hashable
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

DEFAULT_DELIMITERS: Tuple[Tuple[str, str], ...] = (("/", "/"), ("[", "]"))


@dataclass(frozen=True)
class SpanMatch:
    """Location of one span in the source text.

    Attributes:
        body_start: Index of the first character of the body.
        body_end: Index one past the last character of the body.
        end: Index one past the whole span (including any closer).
        opener: Text to render before the converted body.
        closer: Text to render after the converted body.
    """

    body_start: int
    body_end: int
    end: int
    opener: str = ""
    closer: str = ""

    def wrap(self, converted: str) -> str:
        return self.opener + converted + self.closer


class SpanNotation(ABC):
    """Strategy deciding the extent of a span following a trigger prefix."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Identifier used in rule documents, e.g. ``"delimited"``."""

    @abstractmethod
    def find(self, text: str, pos: int) -> Optional[SpanMatch]:
        """Return the span starting at ``pos``, or None if malformed."""


@dataclass(frozen=True)
class DelimitedNotation(SpanNotation):
    """``/body/`` or ``[body]`` directly after the prefix."""

    delimiters: Tuple[Tuple[str, str], ...] = DEFAULT_DELIMITERS

    @property
    def kind(self) -> str:
        return "delimited"

    def find(self, text: str, pos: int) -> Optional[SpanMatch]:
        for opener, closer in self.delimiters:
            if not text.startswith(opener, pos):
                continue
            body_start = pos + len(opener)
            if body_start >= len(text) or text[body_start].isspace():
                continue
            line_end = text.find("\n", body_start)
            if line_end == -1:
                line_end = len(text)
            # body must be non-empty, so the closer is searched one past the start
            search_from = body_start + 1
            while True:
                body_end = text.find(closer, search_from, line_end)
                if body_end == -1:
                    break
                if not text[body_end - 1].isspace():
                    return SpanMatch(
                        body_start=body_start,
                        body_end=body_end,
                        end=body_end + len(closer),
                        opener=opener,
                        closer=closer,
                    )
                search_from = body_end + 1
        return None


@dataclass(frozen=True)
class WordNotation(SpanNotation):
    """The run of non-whitespace characters directly after the prefix."""

    @property
    def kind(self) -> str:
        return "word"

    def find(self, text: str, pos: int) -> Optional[SpanMatch]:
        end = pos
        while end < len(text) and not text[end].isspace():
            end += 1
        if end == pos:
            return None
        return SpanMatch(body_start=pos, body_end=end, end=end)


def _delimited(spec: Mapping[str, Any]) -> SpanNotation:
    pairs = spec.get("delimiters")
    if not pairs:
        return DelimitedNotation()
    return DelimitedNotation(tuple((str(o), str(c)) for o, c in pairs))


def _word(spec: Mapping[str, Any]) -> SpanNotation:
    return WordNotation()


NOTATIONS: Dict[str, Callable[[Mapping[str, Any]], SpanNotation]] = {
    "delimited": _delimited,
    "word": _word,
}


def build_notation(spec: Optional[Mapping[str, Any]]) -> SpanNotation:
    """Build a notation from the ``notation`` mapping of a rule document.

    A missing mapping means the default delimited notation. The mapping
    is assumed to have passed schema validation already.
    """
    if not spec:
        return DelimitedNotation()
    return NOTATIONS[spec.get("kind", "delimited")](spec)
