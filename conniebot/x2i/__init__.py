"""X2I: rule-driven conversion of ASCII phonetic shorthand into IPA.

WHY: Chat users type X-SAMPA or Kirshenbaum because IPA is awkward to
enter on a keyboard. The bot replies with the IPA rendering of every
marked span (``x/h@"loU/`` → ``/həˈloʊ/``).

HOW: Three stages, each independently testable:
  compile: YAML document → validated, ranked RuleSet (compiler.py)
  match:   RuleSet + text → converted text (matcher.py)
  search:  message → one line per invoked rule set (engine.py)
loader.py reads the data folder and owns the reloadable EngineHolder.

RULES:
- CompileError is the only error type, raised at load time only
- search() and apply() never raise
- Adding a notation = adding one YAML file, no code changes
"""

from conniebot.x2i.compiler import compile_rule_set
from conniebot.x2i.engine import X2IEngine
from conniebot.x2i.loader import EngineHolder, build_engine, load_rule_sources
from conniebot.x2i.matcher import apply
from conniebot.x2i.models import CompileError, Rule, RuleSet

__all__ = [
    "CompileError",
    "EngineHolder",
    "Rule",
    "RuleSet",
    "X2IEngine",
    "apply",
    "build_engine",
    "compile_rule_set",
    "load_rule_sources",
]
