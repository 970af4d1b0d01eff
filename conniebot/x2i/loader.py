"""Load X2I rule documents from disk and publish engines.

WHY: Rule sets are data, not code. Adding a notation means dropping a
YAML file into the data folder. Startup decides whether a broken file
aborts the bot or is skipped, and a running bot can reload the folder
without ever exposing a half-built engine to message handlers.

HOW: load_rule_sources() reads ``*.yaml`` / ``*.yml`` in file-name order
with yaml.safe_load. build_engine() compiles each document and constructs
an X2IEngine. EngineHolder keeps the current engine and replaces it with
a single attribute assignment once a reload has fully succeeded.

RULES:
- File-name order is load order (alphabet list, first-invocation ties)
- Broken YAML raises CompileError naming the file
- skip_invalid only skips per-document errors; prefix conflicts between
  documents always raise
- A failed reload keeps the previous engine
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Tuple

import yaml

from conniebot.x2i.compiler import compile_rule_set
from conniebot.x2i.engine import X2IEngine
from conniebot.x2i.models import CompileError, RuleSet

logger = logging.getLogger(__name__)

RULE_FILE_SUFFIXES = (".yaml", ".yml")


def load_rule_sources(directory: str | Path) -> List[Tuple[str, Any]]:
    """Read every rule document in ``directory``.

    Args:
        directory: Folder containing one YAML document per rule set.

    Returns:
        ``(file name, document)`` pairs in load order.

    Raises:
        CompileError: If a file is not valid YAML.
        FileNotFoundError: If ``directory`` does not exist.
    """
    folder = Path(directory)
    if not folder.is_dir():
        raise FileNotFoundError("X2I data folder not found: {}".format(folder))

    sources = []
    for path in sorted(folder.iterdir()):
        if path.suffix.lower() not in RULE_FILE_SUFFIXES or not path.is_file():
            continue
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise CompileError(path.name, None, "invalid YAML: {}".format(exc)) from exc
        sources.append((path.name, document))
    return sources


def compile_sources(
    sources: List[Tuple[str, Any]],
    skip_invalid: bool = False,
) -> List[RuleSet]:
    """Compile documents in order, optionally skipping the broken ones."""
    rule_sets = []
    for origin, document in sources:
        try:
            rule_set = compile_rule_set(document, origin=origin)
        except CompileError as exc:
            if not skip_invalid:
                raise
            logger.error("Skipping X2I rule file %s: %s", origin, exc)
            continue
        logger.info(
            "Loaded X2I rule set %s (%s, %d rules)",
            rule_set.name, rule_set.trigger_prefix, len(rule_set.rules),
        )
        rule_sets.append(rule_set)
    return rule_sets


def build_engine(directory: str | Path, skip_invalid: bool = False) -> X2IEngine:
    """Load, compile and assemble every rule set in ``directory``.

    Raises:
        CompileError: On the first invalid document (unless skip_invalid)
            or on conflicting trigger prefixes / names.
    """
    logger.info("Loading X2I keys from %s...", directory)
    engine = X2IEngine(compile_sources(load_rule_sources(directory), skip_invalid))
    logger.info("X2I keys have been loaded (%d rule sets).", len(engine.rule_sets))
    return engine


class EngineHolder:
    """The reload point: owns the engine message handlers read.

    WHY: Handlers run on worker threads. A reload must never let them
    see a partially replaced set of rules, and readers must never wait
    on a reload.

    HOW: ``engine`` is a plain attribute. reload() builds a complete new
    engine first and only then rebinds the attribute; readers that
    fetched the old engine keep using it until their call finishes.
    """

    def __init__(self, directory: str | Path, skip_invalid: bool = False) -> None:
        self.directory = Path(directory)
        self.skip_invalid = skip_invalid
        self.engine = build_engine(self.directory, skip_invalid)

    def reload(self) -> X2IEngine:
        """Rebuild the engine from disk and publish it on success.

        Raises:
            CompileError: The previous engine stays in place.
        """
        engine = build_engine(self.directory, self.skip_invalid)
        self.engine = engine
        return engine
