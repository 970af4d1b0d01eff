"""Command-line interface for the X2I engine.

WHY: Rule authors need to try conversions and validate rule files
without a chat workspace, and the same entry point is handy for piping
text through the converter.

HOW: Uses argparse. Text comes from the positional arguments or, when
none are given, from stdin. The engine is built from --data-dir (default
X2I_DATA_DIR). Output lines go to stdout, status and errors to stderr.

RULES:
- --list prints the alphabet list and exits
- --check compiles every rule file, reports each error, exit code 1 on failure
- --max-chars applies the same truncation as the chat bot
- No output and exit code 0 when the text contains no X2I span
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from conniebot import config
from conniebot.slack.messages import build_x2i_response
from conniebot.x2i import CompileError, build_engine, compile_rule_set, load_rule_sources
from conniebot.x2i.engine import X2IEngine


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="conniebot",
        description='Convert X2I spans (e.g. x/h@"loU/) in TEXT into IPA.',
    )
    parser.add_argument("text", nargs="*", help="Text to convert (default: read stdin)")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=config.X2I_DATA_DIR,
        help="Folder of YAML rule files (default: %(default)s)",
    )
    parser.add_argument("--list", action="store_true", help="Print the available notations")
    parser.add_argument("--check", action="store_true", help="Validate every rule file")
    parser.add_argument(
        "--max-chars",
        type=int,
        default=None,
        help="Truncate output like the chat bot does",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log loading details")
    return parser


def check_rule_files(data_dir: Path) -> int:
    """Compile every rule file separately and report all errors.

    Returns the number of problems found.
    """
    try:
        sources = load_rule_sources(data_dir)
    except (CompileError, FileNotFoundError) as exc:
        _status("error: {}".format(exc))
        return 1

    problems = 0
    rule_sets = []
    for origin, document in sources:
        try:
            rule_set = compile_rule_set(document, origin=origin)
        except CompileError as exc:
            _status("{}: {}".format(origin, exc))
            problems += 1
            continue
        _status("{}: ok ({}, {} rules)".format(origin, rule_set.name, len(rule_set.rules)))
        rule_sets.append(rule_set)

    try:
        X2IEngine(rule_sets)
    except CompileError as exc:
        _status("error: {}".format(exc))
        problems += 1
    return problems


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.check:
        return 1 if check_rule_files(args.data_dir) else 0

    try:
        engine = build_engine(args.data_dir, config.X2I_SKIP_INVALID)
    except (CompileError, FileNotFoundError) as exc:
        _status("error: {}".format(exc))
        return 1

    if args.list:
        print(engine.alphabet_list)
        return 0

    text = " ".join(args.text) if args.text else sys.stdin.read()
    lines = engine.search(text)
    if args.max_chars is not None:
        lines = build_x2i_response(lines, args.max_chars, config.TIMEOUT_MESSAGE)
    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
