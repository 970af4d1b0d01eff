"""Unit tests for the X2I engine (trigger detection and line rendering).

WHY: search() is what the chat bot calls on every message. It must stay
silent on ordinary text, group spans per notation in first-use order,
and leave malformed spans alone without raising.

HOW: Engines are built from small compiled rule sets; search() output is
compared against exact expected lines.
"""

import pytest

from conniebot.x2i import CompileError, X2IEngine, compile_rule_set


@pytest.fixture
def alpha(make_rule_set):
    return make_rule_set("alpha", "a", [("t", "T")], symbol="α")


@pytest.fixture
def beta(make_rule_set):
    return make_rule_set("beta", "b", [("t", "θ")], symbol="β")


class TestSearch:
    def test_no_trigger_returns_empty(self, pitman):
        engine = X2IEngine([pitman])
        assert engine.search("hello world, no shorthand here") == []
        assert engine.search("") == []

    def test_slash_span(self, pitman):
        assert X2IEngine([pitman]).search("look: x/ships/") == ["/ʃips/"]

    def test_bracket_span(self, pitman):
        assert X2IEngine([pitman]).search("x[sh]") == ["[ʃ]"]

    def test_spans_of_one_rule_set_share_a_line(self, pitman):
        engine = X2IEngine([pitman])
        assert engine.search("x/sh/ and x[s] too") == ["/ʃ/ [s]"]

    def test_lines_follow_first_invocation_order(self, alpha, beta):
        engine = X2IEngine([beta, alpha])
        assert engine.search("a/t/ then b/t/") == ["/T/", "/θ/"]
        assert engine.search("b/t/ a/t/ b/t/") == ["/θ/ /θ/", "/T/"]

    def test_deterministic(self, alpha, beta):
        engine = X2IEngine([alpha, beta])
        text = "b/tt/ a[t] b/t/"
        assert engine.search(text) == engine.search(text)


class TestMalformedSpans:
    @pytest.mark.parametrize("text", [
        "x/sh",
        "x[sh",
        "x//",
        "x/ sh/",
        "x/sh /",
        "x[ sh ]",
        "x/s\nh/",
        "x",
        "x/",
    ])
    def test_malformed_span_produces_nothing(self, pitman, text):
        assert X2IEngine([pitman]).search(text) == []

    def test_malformed_span_does_not_hide_later_span(self, pitman):
        assert X2IEngine([pitman]).search("x/sh and x[s]") == ["[s]"]

    def test_body_runs_to_closer_after_non_whitespace(self, pitman):
        assert X2IEngine([pitman]).search("x/a /sh/ done") == ["/a /ʃ/"]

    def test_long_unterminated_span(self, pitman):
        assert X2IEngine([pitman]).search("x/" + "s" * 20000) == []


class TestTriggerBoundary:
    def test_prefix_inside_word_is_ignored(self, pitman):
        assert X2IEngine([pitman]).search("box/sh/") == []

    @pytest.mark.parametrize("text", ["(x/sh/)", "`x/sh/`", "*x/sh/*", "> x/sh/", "line\nx/sh/"])
    def test_prefix_after_boundary(self, pitman, text):
        assert X2IEngine([pitman]).search(text) == ["/ʃ/"]

    def test_multi_character_prefix(self, make_rule_set):
        engine = X2IEngine([make_rule_set("demo", "zz", [("s", "S")])])
        assert engine.search("zz/s/ z/s/") == ["/S/"]


class TestNotationsAndTemplates:
    def test_word_notation(self, make_rule_set):
        rule_set = make_rule_set(
            "demo", "w!", [("sh", "ʃ")], notation={"kind": "word"},
        )
        assert X2IEngine([rule_set]).search("see w!ships now, w!shy") == ["ʃips ʃy"]

    def test_custom_delimiters(self, make_rule_set):
        rule_set = make_rule_set(
            "demo", "d", [("sh", "ʃ")],
            notation={"kind": "delimited", "delimiters": [["<<", ">>"]]},
        )
        engine = X2IEngine([rule_set])
        assert engine.search("d<<ship>>") == ["<<ʃip>>"]
        assert engine.search("d/ship/") == []

    def test_template(self, make_source):
        rule_set = compile_rule_set(make_source(
            "pitman", "x", [("sh", "ʃ")], symbol="P", template="{symbol} {name}: {spans}",
        ))
        assert X2IEngine([rule_set]).search("x/sh/") == ["P pitman: /ʃ/"]


class TestConstruction:
    def test_overlapping_prefixes_rejected(self, make_rule_set):
        short = make_rule_set("short", "x!", [("a", "b")])
        long = make_rule_set("long", "x!!", [("a", "b")])
        with pytest.raises(CompileError) as info:
            X2IEngine([short, long])
        assert "'x!'" in str(info.value)
        assert "'x!!'" in str(info.value)

    def test_identical_prefixes_rejected(self, make_rule_set):
        with pytest.raises(CompileError):
            X2IEngine([
                make_rule_set("one", "x", [("a", "b")]),
                make_rule_set("two", "x", [("a", "b")]),
            ])

    def test_duplicate_names_rejected(self, make_rule_set):
        with pytest.raises(CompileError) as info:
            X2IEngine([
                make_rule_set("same", "x", [("a", "b")]),
                make_rule_set("same", "y", [("a", "b")]),
            ])
        assert info.value.rule_set == "same"

    def test_alphabet_list_in_load_order(self, alpha, beta):
        engine = X2IEngine([beta, alpha])
        assert engine.alphabet_list == "`β`: beta\n`α`: alpha"

    def test_rule_sets_and_get(self, alpha, beta):
        engine = X2IEngine([alpha, beta])
        assert engine.rule_sets == (alpha, beta)
        assert engine.get("beta") is beta
        assert engine.get("gamma") is None

    def test_empty_engine(self):
        engine = X2IEngine([])
        assert engine.search("x/sh/") == []
        assert engine.alphabet_list == ""
