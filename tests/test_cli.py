"""Tests for the conniebot command-line interface."""

import io

from conniebot import cli


class TestConvert:
    def test_converts_arguments(self, rule_dir, capsys):
        assert cli.main(["--data-dir", str(rule_dir), "say", "x/ships/"]) == 0
        assert capsys.readouterr().out == "/ʃips/\n"

    def test_reads_stdin(self, rule_dir, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("x[sh] and x/s/\n"))
        assert cli.main(["--data-dir", str(rule_dir)]) == 0
        assert capsys.readouterr().out == "[ʃ] /s/\n"

    def test_no_spans_prints_nothing(self, rule_dir, capsys):
        assert cli.main(["--data-dir", str(rule_dir), "plain", "text"]) == 0
        assert capsys.readouterr().out == ""

    def test_max_chars_truncates(self, rule_dir, capsys):
        assert cli.main(["--data-dir", str(rule_dir), "--max-chars", "4", "x/ssssss/"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "/ss…"
        assert len(out) == 2

    def test_missing_folder(self, tmp_path, capsys):
        assert cli.main(["--data-dir", str(tmp_path / "nowhere"), "x/s/"]) == 1
        assert "error:" in capsys.readouterr().err


class TestList:
    def test_lists_alphabets(self, rule_dir, capsys):
        assert cli.main(["--data-dir", str(rule_dir), "--list"]) == 0
        assert capsys.readouterr().out == "`x`: pitman\n"


class TestCheck:
    def test_all_ok(self, rule_dir, capsys):
        assert cli.main(["--data-dir", str(rule_dir), "--check"]) == 0
        assert "pitman.yaml: ok (pitman, 2 rules)" in capsys.readouterr().err

    def test_reports_every_broken_file(self, write_rules, capsys):
        write_rules("a.yaml", {"name": "a", "trigger_prefix": "a", "rules": []})
        write_rules("b.yaml", {
            "name": "b",
            "trigger_prefix": "b",
            "rules": [{"pattern": "(", "replacement": "x", "regex": True}],
        })
        write_rules("c.yaml", {
            "name": "c",
            "trigger_prefix": "c",
            "rules": [{"pattern": "c", "replacement": "ç"}],
        })
        assert cli.main(["--data-dir", str(write_rules.folder), "--check"]) == 1
        err = capsys.readouterr().err
        assert "a.yaml: rule set 'a'" in err
        assert "b.yaml: rule set 'b' rule #0: invalid pattern" in err
        assert "c.yaml: ok" in err

    def test_reports_prefix_conflict(self, write_rules, capsys):
        for name, prefix in (("one", "q"), ("two", "qq")):
            write_rules(name + ".yaml", {
                "name": name,
                "trigger_prefix": prefix,
                "rules": [{"pattern": "a", "replacement": "b"}],
            })
        assert cli.main(["--data-dir", str(write_rules.folder), "--check"]) == 1
        assert "overlaps" in capsys.readouterr().err

    def test_bundled_rules_pass(self, capsys):
        from conniebot.config import BUNDLED_X2I_DIR

        assert cli.main(["--data-dir", str(BUNDLED_X2I_DIR), "--check"]) == 0
