"""Tests for loading rule files and reloading engines."""

import logging

import pytest

from conniebot.x2i import CompileError, EngineHolder, build_engine, load_rule_sources


def _doc(name, prefix, pattern="a", replacement="b"):
    return {
        "name": name,
        "trigger_prefix": prefix,
        "rules": [{"pattern": pattern, "replacement": replacement}],
    }


class TestLoadRuleSources:
    def test_file_name_order(self, write_rules):
        write_rules("b.yaml", _doc("second", "b"))
        write_rules("a.yaml", _doc("first", "a"))
        sources = load_rule_sources(write_rules.folder)
        assert [origin for origin, _ in sources] == ["a.yaml", "b.yaml"]
        assert sources[0][1]["name"] == "first"

    def test_only_yaml_files(self, write_rules):
        write_rules("notes.txt", "not a rule file")
        write_rules("short.yml", _doc("short", "s"))
        sources = load_rule_sources(write_rules.folder)
        assert [origin for origin, _ in sources] == ["short.yml"]

    def test_invalid_yaml_names_file(self, write_rules):
        write_rules("broken.yaml", "name: [unclosed\n")
        with pytest.raises(CompileError) as info:
            load_rule_sources(write_rules.folder)
        assert info.value.rule_set == "broken.yaml"
        assert "invalid YAML" in str(info.value)

    def test_missing_folder(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rule_sources(tmp_path / "nowhere")

    def test_unicode_round_trip(self, rule_dir):
        (_, document), = load_rule_sources(rule_dir)
        assert document["rules"][0]["replacement"] == "ʃ"


class TestBuildEngine:
    def test_builds_from_folder(self, rule_dir):
        engine = build_engine(rule_dir)
        assert engine.search("x/ships/") == ["/ʃips/"]

    def test_alphabet_list_follows_file_names(self, write_rules):
        write_rules("20-zulu.yaml", _doc("Zulu", "z"))
        write_rules("10-alpha.yaml", _doc("Alpha", "a"))
        assert build_engine(write_rules.folder).alphabet_list == "`a`: Alpha\n`z`: Zulu"

    def test_invalid_document_aborts(self, write_rules):
        write_rules("good.yaml", _doc("good", "g"))
        write_rules("bad.yaml", {"name": "bad", "trigger_prefix": "b", "rules": []})
        with pytest.raises(CompileError) as info:
            build_engine(write_rules.folder)
        assert info.value.rule_set == "bad"

    def test_skip_invalid_logs_and_continues(self, write_rules, caplog):
        write_rules("good.yaml", _doc("good", "g"))
        write_rules("bad.yaml", {
            "name": "bad",
            "trigger_prefix": "b",
            "rules": [{"pattern": "(a+)+", "replacement": "x", "regex": True}],
        })
        with caplog.at_level(logging.ERROR, logger="conniebot.x2i.loader"):
            engine = build_engine(write_rules.folder, skip_invalid=True)
        assert [rs.name for rs in engine.rule_sets] == ["good"]
        assert "bad.yaml" in caplog.text

    def test_prefix_conflict_raises_even_when_skipping(self, write_rules):
        write_rules("a.yaml", _doc("one", "q"))
        write_rules("b.yaml", _doc("two", "qq"))
        with pytest.raises(CompileError):
            build_engine(write_rules.folder, skip_invalid=True)


class TestEngineHolder:
    def test_reload_picks_up_new_files(self, write_rules, rule_dir):
        holder = EngineHolder(rule_dir)
        assert len(holder.engine.rule_sets) == 1

        write_rules("zz-extra.yaml", _doc("extra", "e", "t", "θ"))
        new_engine = holder.reload()

        assert holder.engine is new_engine
        assert holder.engine.search("e/t/") == ["/θ/"]

    def test_failed_reload_keeps_previous_engine(self, write_rules, rule_dir):
        holder = EngineHolder(rule_dir)
        before = holder.engine

        write_rules("broken.yaml", {"name": "broken", "trigger_prefix": "x!", "rules": []})
        with pytest.raises(CompileError):
            holder.reload()

        assert holder.engine is before
        assert holder.engine.search("x/sh/") == ["/ʃ/"]

    def test_reader_keeps_engine_it_fetched(self, write_rules, rule_dir):
        holder = EngineHolder(rule_dir)
        in_flight = holder.engine
        write_rules("zz-extra.yaml", _doc("extra", "e"))
        holder.reload()
        assert in_flight is not holder.engine
        assert in_flight.search("e/a/") == []
