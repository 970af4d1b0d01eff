"""conniebot: a chat assistant that converts phonetic shorthand to IPA.

WHY: Linguistics chats are full of X-SAMPA and similar ASCII
transcriptions because IPA is hard to type. conniebot answers every
marked span (``x/.../``) with its IPA rendering.

HOW: The x2i package holds the rule-driven conversion engine, fed by YAML
rule files in data/x2i. The slack package connects it to a workspace and
cli.py exposes it on the terminal.

RULES:
- The engine is pure and knows nothing about chat platforms
- Adding a notation = adding one YAML rule file
"""

__version__ = "0.1.0"
